import pytest

from models import AppointmentStatus, Bed, BedStatus
from state_machine import (
    BedTransition,
    transition_bed,
    transition_for_status_update,
    validate_appointment_transition,
)


def _bed(status: BedStatus, patient_id=None) -> Bed:
    return Bed(id="B-1", ward_id="W-1", room_number="101", bed_number="A", status=status, patient_id=patient_id)


def test_bed_lifecycle_assign_release_clean():
    bed = transition_bed(_bed(BedStatus.AVAILABLE), BedTransition.ASSIGN, "P-1")
    assert bed.status == BedStatus.OCCUPIED
    assert bed.patient_id == "P-1"

    bed = transition_bed(bed, BedTransition.RELEASE)
    assert bed.status == BedStatus.CLEANING
    assert bed.patient_id is None

    bed = transition_bed(bed, BedTransition.MARK_CLEAN)
    assert bed.status == BedStatus.AVAILABLE


def test_transition_returns_new_bed_and_leaves_input_alone():
    original = _bed(BedStatus.AVAILABLE)
    transition_bed(original, BedTransition.START_MAINTENANCE)
    assert original.status == BedStatus.AVAILABLE


def test_assign_requires_available_bed_and_patient():
    with pytest.raises(ValueError):
        transition_bed(_bed(BedStatus.MAINTENANCE), BedTransition.ASSIGN, "P-1")
    with pytest.raises(ValueError):
        transition_bed(_bed(BedStatus.CLEANING), BedTransition.ASSIGN, "P-1")
    with pytest.raises(ValueError):
        transition_bed(_bed(BedStatus.AVAILABLE), BedTransition.ASSIGN)


def test_status_update_never_touches_occupied():
    with pytest.raises(ValueError, match="Use bed assignment or discharge instead"):
        transition_for_status_update(BedStatus.OCCUPIED, BedStatus.AVAILABLE)
    with pytest.raises(ValueError, match="Use bed assignment or discharge instead"):
        transition_for_status_update(BedStatus.AVAILABLE, BedStatus.OCCUPIED)


def test_status_update_allowed_moves():
    assert transition_for_status_update(BedStatus.CLEANING, BedStatus.AVAILABLE) == BedTransition.MARK_CLEAN
    assert transition_for_status_update(BedStatus.AVAILABLE, BedStatus.MAINTENANCE) == BedTransition.START_MAINTENANCE
    assert transition_for_status_update(BedStatus.MAINTENANCE, BedStatus.AVAILABLE) == BedTransition.END_MAINTENANCE
    with pytest.raises(ValueError):
        transition_for_status_update(BedStatus.CLEANING, BedStatus.MAINTENANCE)


def test_appointment_transitions_are_forward_only():
    assert validate_appointment_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED) is True
    assert validate_appointment_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED) is True
    assert validate_appointment_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.NO_SHOW) is True

    with pytest.raises(ValueError):
        validate_appointment_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.SCHEDULED)
    with pytest.raises(ValueError):
        validate_appointment_transition(AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED)
    with pytest.raises(ValueError):
        validate_appointment_transition(AppointmentStatus.CANCELLED, AppointmentStatus.SCHEDULED)
