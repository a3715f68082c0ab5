from enum import Enum
from typing import Optional

from models import AppointmentStatus, Bed, BedStatus


class BedTransition(str, Enum):
    ASSIGN = "ASSIGN"
    RELEASE = "RELEASE"
    MARK_CLEAN = "MARK_CLEAN"
    START_MAINTENANCE = "START_MAINTENANCE"
    END_MAINTENANCE = "END_MAINTENANCE"


# (from, transition) -> to
BED_TRANSITIONS: dict[tuple[BedStatus, BedTransition], BedStatus] = {
    (BedStatus.AVAILABLE, BedTransition.ASSIGN): BedStatus.OCCUPIED,
    (BedStatus.OCCUPIED, BedTransition.RELEASE): BedStatus.CLEANING,
    (BedStatus.CLEANING, BedTransition.MARK_CLEAN): BedStatus.AVAILABLE,
    (BedStatus.AVAILABLE, BedTransition.START_MAINTENANCE): BedStatus.MAINTENANCE,
    (BedStatus.MAINTENANCE, BedTransition.END_MAINTENANCE): BedStatus.AVAILABLE,
}

# Status changes that a plain status update may request. Anything touching
# OCCUPIED has to go through assignment or discharge.
STATUS_UPDATE_TRANSITIONS: dict[tuple[BedStatus, BedStatus], BedTransition] = {
    (BedStatus.CLEANING, BedStatus.AVAILABLE): BedTransition.MARK_CLEAN,
    (BedStatus.AVAILABLE, BedStatus.MAINTENANCE): BedTransition.START_MAINTENANCE,
    (BedStatus.MAINTENANCE, BedStatus.AVAILABLE): BedTransition.END_MAINTENANCE,
}


def transition_bed(bed: Bed, transition: BedTransition, patient_id: Optional[str] = None) -> Bed:
    """Return a new Bed after applying `transition`, raise ValueError if it is not allowed."""
    new_status = BED_TRANSITIONS.get((bed.status, transition))
    if new_status is None:
        raise ValueError(
            f"Invalid bed transition: {bed.id} cannot {transition.value} while {bed.status.value}"
        )

    if transition == BedTransition.ASSIGN:
        if not patient_id:
            raise ValueError("A patient is required to occupy a bed")
        return bed.model_copy(update={"status": new_status, "patient_id": patient_id})

    return bed.model_copy(update={"status": new_status, "patient_id": None})


def transition_for_status_update(current: BedStatus, new_status: BedStatus) -> BedTransition:
    transition = STATUS_UPDATE_TRANSITIONS.get((current, new_status))
    if transition is None:
        if BedStatus.OCCUPIED in (current, new_status):
            raise ValueError(
                f"Cannot change bed status from '{current.value}' to '{new_status.value}'. "
                "Use bed assignment or discharge instead."
            )
        raise ValueError(
            f"Invalid bed status change from '{current.value}' to '{new_status.value}'"
        )
    return transition


APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
}


def validate_appointment_transition(current: AppointmentStatus, new_status: AppointmentStatus) -> bool:
    """Forward-only appointment ordering. Raise ValueError on a backward or terminal move."""
    allowed = APPOINTMENT_TRANSITIONS.get(current)
    if allowed is None:
        raise ValueError(f"No transitions from appointment status '{current.value}'")
    if new_status not in allowed:
        raise ValueError(
            f"Invalid transition: appointment cannot go from '{current.value}' to '{new_status.value}'. "
            f"Allowed: {sorted(s.value for s in allowed)}"
        )
    return True
