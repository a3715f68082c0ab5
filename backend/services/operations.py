"""Operations engine: every named transaction against the state store.

Each mutating operation checks the actor's capability, validates against the
committed snapshot while holding the store's write lock, builds the next
snapshot with whole records replaced, appends one audit entry and commits
once. Failures return `Err` before anything is written.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Iterable, Optional, Sequence, Union

from pydantic import ValidationError

import config
from models import (
    Appointment,
    AppointmentStatus,
    Bed,
    BedStatus,
    CurrentUser,
    LabResult,
    LabStatus,
    Medication,
    Notification,
    NotificationType,
    Patient,
    PatientStatus,
    Prescription,
    PrescriptionStatus,
    ProgressNote,
    Shift,
    Snapshot,
    TreatmentPlan,
    User,
    UserRole,
    UserStatus,
    Vitals,
    Ward,
    utc_now_iso,
)
from results import Err, ErrorKind, Ok, Result, conflict, invalid_input, invalid_state, not_found
from services.access import Capability, allowed
from services.audit import append_entry
from services.passwords import hash_password, verify_password
from services.stats import compute_stats
from state_machine import (
    BedTransition,
    transition_bed,
    transition_for_status_update,
    validate_appointment_transition,
)
from store import PersistenceError, StateStore

logger = logging.getLogger("nexus.operations")

PATIENT_EDITABLE_FIELDS = {
    "first_name",
    "last_name",
    "dob",
    "gender",
    "status",
    "blood_type",
    "allergies",
    "diagnosis",
    "assigned_doctor_id",
}

BEDDED_STATUSES = {PatientStatus.ADMITTED, PatientStatus.EMERGENCY}
ROSTERED_ROLES = {UserRole.DOCTOR, UserRole.NURSE}


def _index(items: Sequence[Any], item_id: str) -> Optional[int]:
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return None


def _replace(items: Sequence[Any], index: int, new_item: Any) -> list:
    updated = list(items)
    updated[index] = new_item
    return updated


def _new_id(prefix: str, existing: Iterable[Any]) -> str:
    taken = {item.id for item in existing}
    while True:
        candidate = f"{prefix}-{uuid.uuid4().hex[:6].upper()}"
        if candidate not in taken:
            return candidate


def _detach(value: Any) -> Any:
    if hasattr(value, "model_copy"):
        return value.model_copy(deep=True)
    if isinstance(value, dict):
        return {key: _detach(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_detach(item) for item in value)
    return value


def _queue_notification(
    notifications: Sequence[Notification], note: Notification, limit: int
) -> list[Notification]:
    """Prepend `note`, then trim to `limit`, dropping the oldest read entries first."""
    queue = [note, *notifications]
    overflow = len(queue) - max(1, limit)
    for index in range(len(queue) - 1, 0, -1):
        if overflow <= 0:
            break
        if queue[index].read:
            del queue[index]
            overflow -= 1
    return queue[:max(1, limit)]


class OperationsEngine:
    def __init__(
        self,
        store: StateStore,
        actor: Union[User, CurrentUser, str, None] = None,
        strict_appointments: Optional[bool] = None,
    ):
        self.store = store
        self.actor_id = actor if isinstance(actor, str) or actor is None else actor.id
        if strict_appointments is None:
            strict_appointments = config.strict_appointment_transitions()
        self.strict_appointments = strict_appointments

    # --- plumbing ---

    def _actor(self, state: Snapshot) -> Optional[User]:
        actor_id = self.actor_id or state.current_user.id
        index = _index(state.users, actor_id)
        if index is None:
            return None
        user = state.users[index]
        if user.status != UserStatus.ACTIVE:
            return None
        return user

    def _authorize(self, state: Snapshot, capability: Optional[Capability]) -> Union[User, Err]:
        user = self._actor(state)
        if user is None:
            return Err(ErrorKind.UNAUTHORIZED, "No active user is bound to this session")
        if capability is not None and not allowed(user.role, capability):
            logger.warning("Denied %s to %s (%s)", capability.value, user.id, user.role.value)
            return Err(
                ErrorKind.UNAUTHORIZED,
                f"Role '{user.role.value}' lacks capability '{capability.value}'",
            )
        return user

    def _commit(
        self,
        state: Snapshot,
        actor: User,
        updates: dict,
        value: Any,
        action: Optional[str] = None,
        details: str = "",
        module: str = "",
    ) -> Result:
        new_state = state.model_copy(update=updates)
        if action is not None:
            audit_actor = CurrentUser(id=actor.id, name=actor.name, role=actor.role)
            new_state = append_entry(new_state, audit_actor, action, details, module)
        try:
            self.store.commit(new_state)
        except PersistenceError:
            logger.exception("Persist failed for %s", action or "update")
            return Err(ErrorKind.UNAVAILABLE, "Could not save changes, please retry")
        if action is not None:
            logger.info("%s by %s: %s", action, actor.id, details)
        return Ok(_detach(value))

    def _read(self, capability: Optional[Capability]) -> Union[tuple[Snapshot, User], Err]:
        state = self.store.read()
        actor = self._authorize(state, capability)
        if isinstance(actor, Err):
            return actor
        return state, actor

    # --- reads ---

    def list_patients(self) -> Result:
        read = self._read(Capability.VIEW_PATIENTS)
        if isinstance(read, Err):
            return read
        return Ok(read[0].patients)

    def get_patient(self, patient_id: str) -> Result:
        read = self._read(Capability.VIEW_PATIENTS)
        if isinstance(read, Err):
            return read
        state = read[0]
        index = _index(state.patients, patient_id)
        if index is None:
            return not_found("Patient")
        return Ok(state.patients[index])

    def list_doctors(self) -> Result:
        read = self._read(None)
        if isinstance(read, Err):
            return read
        return Ok(read[0].doctors)

    def list_wards(self) -> Result:
        read = self._read(Capability.VIEW_BEDS)
        if isinstance(read, Err):
            return read
        return Ok(read[0].wards)

    def list_beds(self, ward_id: Optional[str] = None, status: Optional[BedStatus] = None) -> Result:
        read = self._read(Capability.VIEW_BEDS)
        if isinstance(read, Err):
            return read
        beds = read[0].beds
        if ward_id:
            beds = [bed for bed in beds if bed.ward_id == ward_id]
        if status is not None:
            beds = [bed for bed in beds if bed.status == status]
        return Ok(beds)

    def available_beds(self) -> Result:
        return self.list_beds(status=BedStatus.AVAILABLE)

    def get_bed(self, bed_id: str) -> Result:
        read = self._read(Capability.VIEW_BEDS)
        if isinstance(read, Err):
            return read
        state = read[0]
        index = _index(state.beds, bed_id)
        if index is None:
            return not_found("Bed")
        return Ok(state.beds[index])

    def list_appointments(self, on_date: Optional[str] = None) -> Result:
        read = self._read(Capability.VIEW_APPOINTMENTS)
        if isinstance(read, Err):
            return read
        appointments = read[0].appointments
        if on_date:
            appointments = [appt for appt in appointments if appt.date == on_date]
        return Ok(sorted(appointments, key=lambda appt: (appt.date, appt.time)))

    def list_medications(self) -> Result:
        read = self._read(Capability.VIEW_PHARMACY)
        if isinstance(read, Err):
            return read
        return Ok(read[0].medications)

    def list_prescriptions(self, status: Optional[PrescriptionStatus] = None) -> Result:
        read = self._read(Capability.VIEW_PHARMACY)
        if isinstance(read, Err):
            return read
        prescriptions = read[0].prescriptions
        if status is not None:
            prescriptions = [rx for rx in prescriptions if rx.status == status]
        return Ok(prescriptions)

    def list_users(self) -> Result:
        read = self._read(Capability.MANAGE_USERS)
        if isinstance(read, Err):
            return read
        return Ok(read[0].users)

    def audit_log(self, module: Optional[str] = None) -> Result:
        read = self._read(Capability.VIEW_AUDIT_LOG)
        if isinstance(read, Err):
            return read
        logs = read[0].audit_logs
        if module:
            logs = [entry for entry in logs if entry.module == module.strip().upper()]
        return Ok(logs)

    def list_shifts(self, on_date: Optional[str] = None) -> Result:
        read = self._read(Capability.VIEW_ROSTER)
        if isinstance(read, Err):
            return read
        shifts = read[0].shifts
        if on_date:
            shifts = [shift for shift in shifts if shift.date == on_date]
        return Ok(sorted(shifts, key=lambda shift: (shift.date, shift.start_time)))

    def list_notifications(self, unread_only: bool = False) -> Result:
        read = self._read(None)
        if isinstance(read, Err):
            return read
        notifications = read[0].notifications
        if unread_only:
            notifications = [n for n in notifications if not n.read]
        return Ok(notifications)

    def stats(self) -> Result:
        read = self._read(None)
        if isinstance(read, Err):
            return read
        return Ok(compute_stats(read[0]))

    # --- patients ---

    def register_patient(self, patient: Patient) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.REGISTER_PATIENT)
            if isinstance(actor, Err):
                return actor

            patient_id = patient.id.strip() or _new_id("P", state.patients)
            if _index(state.patients, patient_id) is not None:
                return conflict(f"Patient id '{patient_id}' already exists")
            if not patient.first_name.strip() or not patient.last_name.strip():
                return invalid_input("Patient name cannot be empty")

            admission_date = patient.admission_date
            if patient.status in BEDDED_STATUSES and not admission_date:
                admission_date = utc_now_iso()
            new_patient = patient.model_copy(
                update={
                    "id": patient_id,
                    "bed_id": None,
                    "room_number": None,
                    "admission_date": admission_date,
                },
                deep=True,
            )
            return self._commit(
                state, actor,
                {"patients": [new_patient, *state.patients]},
                new_patient,
                "CREATE_PATIENT", f"Registered patient {patient_id}", "PATIENTS",
            )

    def update_patient(self, patient_id: str, changes: dict) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.EDIT_PATIENT_DEMOGRAPHICS)
            if isinstance(actor, Err):
                return actor

            index = _index(state.patients, patient_id)
            if index is None:
                return not_found("Patient")
            unknown = set(changes) - PATIENT_EDITABLE_FIELDS
            if unknown:
                return invalid_input(f"Fields cannot be edited here: {', '.join(sorted(unknown))}")

            patient = state.patients[index]
            try:
                updated = Patient.model_validate({**patient.model_dump(), **changes})
            except ValidationError as exc:
                return invalid_input(f"Invalid patient data: {exc.errors()[0]['msg']}")

            if updated.bed_id and updated.status not in BEDDED_STATUSES:
                return invalid_state(
                    f"Patient {patient_id} occupies bed {updated.bed_id}; discharge from the bed first"
                )
            return self._commit(
                state, actor,
                {"patients": _replace(state.patients, index, updated)},
                updated,
                "UPDATE_PATIENT", f"Updated patient {patient_id}: {', '.join(sorted(changes))}", "PATIENTS",
            )

    def reidentify_patient(self, old_id: str, new_id: str) -> Result:
        new_id = new_id.strip()
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.REIDENTIFY_PATIENT)
            if isinstance(actor, Err):
                return actor

            index = _index(state.patients, old_id)
            if index is None:
                return not_found("Patient")
            if not new_id or new_id == old_id:
                return invalid_input("A different, non-empty patient id is required")
            if _index(state.patients, new_id) is not None:
                return conflict(f"Patient id '{new_id}' already exists")

            patient = state.patients[index].model_copy(update={"id": new_id})
            beds = [
                bed.model_copy(update={"patient_id": new_id}) if bed.patient_id == old_id else bed
                for bed in state.beds
            ]
            appointments = [
                appt.model_copy(update={"patient_id": new_id}) if appt.patient_id == old_id else appt
                for appt in state.appointments
            ]
            prescriptions = [
                rx.model_copy(update={"patient_id": new_id}) if rx.patient_id == old_id else rx
                for rx in state.prescriptions
            ]
            return self._commit(
                state, actor,
                {
                    "patients": _replace(state.patients, index, patient),
                    "beds": beds,
                    "appointments": appointments,
                    "prescriptions": prescriptions,
                },
                patient,
                "REIDENTIFY_PATIENT", f"Re-identified patient {old_id} as {new_id}", "PATIENTS",
            )

    def _update_patient_record(
        self,
        patient_id: str,
        capability: Capability,
        change,
        action: str,
        details: str,
    ) -> Result:
        """Apply `change(patient, actor) -> Patient | Err` to one patient."""
        with self.store.transaction() as state:
            actor = self._authorize(state, capability)
            if isinstance(actor, Err):
                return actor

            index = _index(state.patients, patient_id)
            if index is None:
                return not_found("Patient")
            updated = change(state.patients[index], actor)
            if isinstance(updated, Err):
                return updated
            return self._commit(
                state, actor,
                {"patients": _replace(state.patients, index, updated)},
                updated,
                action, details, "PATIENTS",
            )

    def add_vitals(self, patient_id: str, vitals: Vitals) -> Result:
        def change(patient: Patient, _actor: User):
            history = [vitals.model_copy(deep=True), *patient.vitals_history]
            return patient.model_copy(update={"vitals_history": history})

        return self._update_patient_record(
            patient_id, Capability.RECORD_VITALS, change,
            "RECORD_VITALS", f"Recorded vitals for patient {patient_id}",
        )

    def update_vitals(self, patient_id: str, index: int, vitals: Vitals) -> Result:
        def change(patient: Patient, _actor: User):
            if index < 0 or index >= len(patient.vitals_history):
                return not_found("Vitals entry")
            history = _replace(patient.vitals_history, index, vitals.model_copy(deep=True))
            return patient.model_copy(update={"vitals_history": history})

        return self._update_patient_record(
            patient_id, Capability.RECORD_VITALS, change,
            "UPDATE_VITALS", f"Corrected vitals entry {index} for patient {patient_id}",
        )

    def add_progress_note(self, patient_id: str, text: str) -> Result:
        text = text.strip()
        if not text:
            return invalid_input("Progress note cannot be empty")

        def change(patient: Patient, actor: User):
            note = ProgressNote(
                id=_new_id("N", patient.progress_notes),
                date=utc_now_iso(),
                author_id=actor.id,
                author_name=actor.name,
                note=text,
            )
            return patient.model_copy(update={"progress_notes": [note, *patient.progress_notes]})

        return self._update_patient_record(
            patient_id, Capability.ADD_PROGRESS_NOTE, change,
            "ADD_NOTE", f"Added progress note for patient {patient_id}",
        )

    def update_treatment_plan(self, patient_id: str, summary: str, goals: Optional[list[str]] = None) -> Result:
        summary = summary.strip()
        if not summary:
            return invalid_input("Treatment plan summary cannot be empty")

        def change(patient: Patient, actor: User):
            plan = TreatmentPlan(
                summary=summary,
                goals=[goal.strip() for goal in goals or [] if goal.strip()],
                updated_at=utc_now_iso(),
                updated_by=actor.name,
            )
            return patient.model_copy(update={"treatment_plan": plan})

        return self._update_patient_record(
            patient_id, Capability.EDIT_TREATMENT_PLAN, change,
            "UPDATE_TREATMENT_PLAN", f"Updated treatment plan for patient {patient_id}",
        )

    def add_lab_result(self, patient_id: str, lab: LabResult) -> Result:
        def change(patient: Patient, _actor: User):
            lab_id = lab.id.strip() or _new_id("L", patient.lab_results)
            if _index(patient.lab_results, lab_id) is not None:
                return conflict(f"Lab result '{lab_id}' already exists")
            new_lab = lab.model_copy(update={"id": lab_id})
            return patient.model_copy(update={"lab_results": [new_lab, *patient.lab_results]})

        return self._update_patient_record(
            patient_id, Capability.ORDER_LABS, change,
            "ORDER_LAB", f"Ordered {lab.test_name} for patient {patient_id}",
        )

    def complete_lab_result(self, patient_id: str, lab_id: str, result: str, flag=None) -> Result:
        def change(patient: Patient, _actor: User):
            index = _index(patient.lab_results, lab_id)
            if index is None:
                return not_found("Lab result")
            lab = patient.lab_results[index]
            if lab.status == LabStatus.COMPLETED:
                return invalid_state(f"Lab result {lab_id} is already completed")
            completed = lab.model_copy(update={"status": LabStatus.COMPLETED, "result": result, "flag": flag})
            return patient.model_copy(update={"lab_results": _replace(patient.lab_results, index, completed)})

        return self._update_patient_record(
            patient_id, Capability.ORDER_LABS, change,
            "COMPLETE_LAB", f"Recorded result of lab {lab_id} for patient {patient_id}",
        )

    # --- beds & wards ---

    def assign_patient_to_bed(self, patient_id: str, bed_id: str) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_BEDS)
            if isinstance(actor, Err):
                return actor

            patient_index = _index(state.patients, patient_id)
            if patient_index is None:
                return not_found("Patient")
            bed_index = _index(state.beds, bed_id)
            if bed_index is None:
                return not_found("Bed")

            patient = state.patients[patient_index]
            beds = list(state.beds)
            try:
                new_bed = transition_bed(beds[bed_index], BedTransition.ASSIGN, patient_id)
                old_index = _index(beds, patient.bed_id) if patient.bed_id else None
                old_bed = None
                if old_index is not None and beds[old_index].patient_id == patient_id:
                    old_bed = transition_bed(beds[old_index], BedTransition.RELEASE)
            except ValueError as exc:
                return invalid_state(str(exc))

            if old_bed is not None:
                beds[old_index] = old_bed
            beds[bed_index] = new_bed
            updated_patient = patient.model_copy(
                update={
                    "bed_id": new_bed.id,
                    "room_number": new_bed.room_number,
                    "status": PatientStatus.ADMITTED,
                    "admission_date": patient.admission_date or utc_now_iso(),
                }
            )
            touched = [bed for bed in (old_bed, new_bed) if bed is not None]
            return self._commit(
                state, actor,
                {"beds": beds, "patients": _replace(state.patients, patient_index, updated_patient)},
                {"patient": updated_patient, "beds": touched},
                "ASSIGN_BED", f"Assigned patient {patient_id} to bed {bed_id}", "BEDS",
            )

    def _release_bed(self, bed_id: str, discharge: bool) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_BEDS)
            if isinstance(actor, Err):
                return actor

            bed_index = _index(state.beds, bed_id)
            if bed_index is None:
                return not_found("Bed")
            bed = state.beds[bed_index]
            if not bed.patient_id:
                return invalid_state(f"Bed {bed_id} has no occupant")
            try:
                released = transition_bed(bed, BedTransition.RELEASE)
            except ValueError as exc:
                return invalid_state(str(exc))

            patient_id = bed.patient_id
            patients = state.patients
            updated_patient = None
            patient_index = _index(patients, patient_id)
            if patient_index is not None and patients[patient_index].bed_id == bed_id:
                patient = patients[patient_index]
                status = PatientStatus.DISCHARGED if discharge else patient.status
                updated_patient = patient.model_copy(
                    update={"bed_id": None, "room_number": None, "status": status}
                )
                patients = _replace(patients, patient_index, updated_patient)

            if discharge:
                action, details = "DISCHARGE_PATIENT", f"Discharged patient {patient_id} from bed {bed_id}"
            else:
                action, details = "VACATE_BED", f"Moved patient {patient_id} out of bed {bed_id}"
            return self._commit(
                state, actor,
                {"beds": _replace(state.beds, bed_index, released), "patients": patients},
                {"bed": released, "patient": updated_patient},
                action, details, "BEDS",
            )

    def discharge_patient_from_bed(self, bed_id: str) -> Result:
        return self._release_bed(bed_id, discharge=True)

    def vacate_bed(self, bed_id: str) -> Result:
        return self._release_bed(bed_id, discharge=False)

    def update_bed_status(self, bed_id: str, new_status: BedStatus) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_BEDS)
            if isinstance(actor, Err):
                return actor

            index = _index(state.beds, bed_id)
            if index is None:
                return not_found("Bed")
            bed = state.beds[index]
            try:
                updated = transition_bed(bed, transition_for_status_update(bed.status, new_status))
            except ValueError as exc:
                return invalid_state(str(exc))
            return self._commit(
                state, actor,
                {"beds": _replace(state.beds, index, updated)},
                updated,
                "UPDATE_BED", f"Bed {bed_id} changed from {bed.status.value} to {new_status.value}", "BEDS",
            )

    def add_ward(self, ward: Ward) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_FACILITIES)
            if isinstance(actor, Err):
                return actor
            if _index(state.wards, ward.id) is not None:
                return conflict(f"Ward id '{ward.id}' already exists")
            return self._commit(
                state, actor,
                {"wards": [*state.wards, ward]},
                ward,
                "ADD_WARD", f"Added ward {ward.id} ({ward.name})", "BEDS",
            )

    def add_bed(self, bed: Bed) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_FACILITIES)
            if isinstance(actor, Err):
                return actor
            if _index(state.wards, bed.ward_id) is None:
                return not_found("Ward")
            if _index(state.beds, bed.id) is not None:
                return conflict(f"Bed id '{bed.id}' already exists")
            new_bed = bed.model_copy(update={"status": BedStatus.AVAILABLE, "patient_id": None})
            return self._commit(
                state, actor,
                {"beds": [*state.beds, new_bed]},
                new_bed,
                "ADD_BED", f"Added bed {bed.id} to ward {bed.ward_id}", "BEDS",
            )

    # --- appointments ---

    def schedule_appointment(self, appointment: Appointment) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_APPOINTMENTS)
            if isinstance(actor, Err):
                return actor
            if _index(state.patients, appointment.patient_id) is None:
                return not_found("Patient")
            if _index(state.doctors, appointment.doctor_id) is None:
                return not_found("Doctor")
            if appointment.duration <= 0:
                return invalid_input("Appointment duration must be positive")

            appt_id = appointment.id.strip() or _new_id("A", state.appointments)
            if _index(state.appointments, appt_id) is not None:
                return conflict(f"Appointment id '{appt_id}' already exists")
            new_appt = appointment.model_copy(update={"id": appt_id})
            return self._commit(
                state, actor,
                {"appointments": [*state.appointments, new_appt]},
                new_appt,
                "CREATE_APPT", f"Scheduled appointment {appt_id}", "APPOINTMENTS",
            )

    def update_appointment_status(self, appointment_id: str, new_status: AppointmentStatus) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_APPOINTMENTS)
            if isinstance(actor, Err):
                return actor

            index = _index(state.appointments, appointment_id)
            if index is None:
                return not_found("Appointment")
            appt = state.appointments[index]
            if self.strict_appointments:
                try:
                    validate_appointment_transition(appt.status, new_status)
                except ValueError as exc:
                    return invalid_state(str(exc))

            updated = appt.model_copy(update={"status": new_status})
            return self._commit(
                state, actor,
                {"appointments": _replace(state.appointments, index, updated)},
                updated,
                "UPDATE_APPT", f"Appointment {appointment_id} set to {new_status.value}", "APPOINTMENTS",
            )

    # --- pharmacy ---

    def add_medication(self, medication: Medication) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_INVENTORY)
            if isinstance(actor, Err):
                return actor
            if medication.stock < 0 or medication.reorder_level < 0:
                return invalid_input("Stock and reorder level cannot be negative")

            med_id = medication.id.strip() or _new_id("M", state.medications)
            if _index(state.medications, med_id) is not None:
                return conflict(f"Medication id '{med_id}' already exists")
            new_med = medication.model_copy(update={"id": med_id})
            return self._commit(
                state, actor,
                {"medications": [new_med, *state.medications]},
                new_med,
                "ADD_MEDICATION", f"Added medication {new_med.name}", "PHARMACY",
            )

    def restock_medication(self, medication_id: str, quantity: int) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_INVENTORY)
            if isinstance(actor, Err):
                return actor
            if quantity <= 0:
                return invalid_input("Restock quantity must be positive")

            index = _index(state.medications, medication_id)
            if index is None:
                return not_found("Medication")
            med = state.medications[index]
            updated = med.model_copy(update={"stock": med.stock + quantity})
            return self._commit(
                state, actor,
                {"medications": _replace(state.medications, index, updated)},
                updated,
                "RESTOCK", f"Restocked {med.name} by {quantity} (now {updated.stock})", "PHARMACY",
            )

    def add_prescription(self, prescription: Prescription) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.PRESCRIBE_MEDICATION)
            if isinstance(actor, Err):
                return actor
            if _index(state.patients, prescription.patient_id) is None:
                return not_found("Patient")
            if _index(state.doctors, prescription.doctor_id) is None:
                return not_found("Doctor")
            if _index(state.medications, prescription.medication_id) is None:
                return not_found("Medication")
            if prescription.quantity <= 0:
                return invalid_input("Prescription quantity must be positive")

            rx_id = prescription.id.strip() or _new_id("RX", state.prescriptions)
            if _index(state.prescriptions, rx_id) is not None:
                return conflict(f"Prescription id '{rx_id}' already exists")
            new_rx = prescription.model_copy(
                update={
                    "id": rx_id,
                    "status": PrescriptionStatus.PENDING,
                    "dispensed_at": None,
                    "date": prescription.date or date.today().isoformat(),
                }
            )
            return self._commit(
                state, actor,
                {"prescriptions": [new_rx, *state.prescriptions]},
                new_rx,
                "PRESCRIBE", f"Prescribed RX {rx_id} for patient {new_rx.patient_id}", "PHARMACY",
            )

    def cancel_prescription(self, prescription_id: str) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.PRESCRIBE_MEDICATION)
            if isinstance(actor, Err):
                return actor

            index = _index(state.prescriptions, prescription_id)
            if index is None:
                return not_found("Prescription")
            rx = state.prescriptions[index]
            if rx.status != PrescriptionStatus.PENDING:
                return invalid_state(f"Prescription {prescription_id} is {rx.status.value}")
            updated = rx.model_copy(update={"status": PrescriptionStatus.CANCELLED})
            return self._commit(
                state, actor,
                {"prescriptions": _replace(state.prescriptions, index, updated)},
                updated,
                "CANCEL_RX", f"Cancelled RX {prescription_id}", "PHARMACY",
            )

    def dispense_prescription(self, prescription_id: str) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.DISPENSE_MEDICATION)
            if isinstance(actor, Err):
                return actor

            rx_index = _index(state.prescriptions, prescription_id)
            if rx_index is None:
                return not_found("Prescription")
            rx = state.prescriptions[rx_index]
            if rx.status == PrescriptionStatus.DISPENSED:
                return invalid_state("Already dispensed")
            if rx.status == PrescriptionStatus.CANCELLED:
                return invalid_state("Prescription was cancelled")

            med_index = _index(state.medications, rx.medication_id)
            if med_index is None:
                return Err(ErrorKind.NOT_FOUND, "Medication not found in inventory")
            med = state.medications[med_index]
            if med.stock < rx.quantity:
                return Err(
                    ErrorKind.INSUFFICIENT_RESOURCE,
                    f"Insufficient stock. Required: {rx.quantity}, Available: {med.stock}",
                )

            updated_med = med.model_copy(update={"stock": med.stock - rx.quantity})
            updated_rx = rx.model_copy(
                update={"status": PrescriptionStatus.DISPENSED, "dispensed_at": utc_now_iso()}
            )
            updates = {
                "medications": _replace(state.medications, med_index, updated_med),
                "prescriptions": _replace(state.prescriptions, rx_index, updated_rx),
            }
            if updated_med.stock <= updated_med.reorder_level:
                warning = Notification(
                    id=_new_id("n", state.notifications),
                    message=(
                        f"Low stock: {updated_med.name} ({updated_med.stock} left, "
                        f"reorder level {updated_med.reorder_level})"
                    ),
                    type=NotificationType.WARNING,
                )
                updates["notifications"] = _queue_notification(
                    state.notifications, warning, config.NOTIFICATION_LIMIT
                )
            return self._commit(
                state, actor,
                updates,
                {"prescription": updated_rx, "medication": updated_med},
                "DISPENSE", f"Dispensed RX {prescription_id}", "PHARMACY",
            )

    # --- users & sessions ---

    def validate_user(self, email: str, password: str) -> Result:
        email = email.strip().lower()
        state = self.store.read()
        matches = [
            user for user in state.users
            if user.email.lower() == email and user.status == UserStatus.ACTIVE
        ]
        if len(matches) != 1 or not verify_password(password, matches[0].password_hash):
            return Err(ErrorKind.UNAUTHORIZED, "Invalid credentials")
        return Ok(matches[0])

    def login(self, email: str, password: str) -> Result:
        validated = self.validate_user(email, password)
        if isinstance(validated, Err):
            logger.info("Failed login for %s", email.strip().lower())
            return validated

        with self.store.transaction() as state:
            index = _index(state.users, validated.value.id)
            if index is None or state.users[index].status != UserStatus.ACTIVE:
                return Err(ErrorKind.UNAUTHORIZED, "Invalid credentials")
            user = state.users[index].model_copy(update={"last_login": utc_now_iso()})
            self.actor_id = user.id
            return self._commit(
                state, user,
                {
                    "users": _replace(state.users, index, user),
                    "current_user": CurrentUser(id=user.id, name=user.name, role=user.role),
                },
                user,
                "USER_LOGIN", "Successful login", "AUTH",
            )

    def logout(self) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, None)
            if isinstance(actor, Err):
                return actor
            return self._commit(state, actor, {}, None, "USER_LOGOUT", "Signed out", "AUTH")

    def add_user(
        self,
        name: str,
        email: str,
        role: UserRole,
        password: str,
        user_id: Optional[str] = None,
    ) -> Result:
        name = name.strip()
        email = email.strip().lower()
        if not name or not email:
            return invalid_input("Name and email are required")
        if not password:
            return invalid_input("Password cannot be empty")

        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_USERS)
            if isinstance(actor, Err):
                return actor
            if any(user.email.lower() == email for user in state.users):
                return conflict("Email already registered")

            new_id = (user_id or "").strip() or _new_id("U", state.users)
            if _index(state.users, new_id) is not None:
                return conflict(f"User id '{new_id}' already exists")
            user = User(id=new_id, name=name, email=email, role=role, password_hash=hash_password(password))
            return self._commit(
                state, actor,
                {"users": [*state.users, user]},
                user,
                "CREATE_USER", f"Created user {name} ({role.value})", "ADMIN",
            )

    def update_user_status(self, user_id: str, new_status: UserStatus) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_USERS)
            if isinstance(actor, Err):
                return actor

            index = _index(state.users, user_id)
            if index is None:
                return not_found("User")
            if user_id == actor.id and new_status == UserStatus.INACTIVE:
                return invalid_state("You cannot deactivate your own account")
            updated = state.users[index].model_copy(update={"status": new_status})
            return self._commit(
                state, actor,
                {"users": _replace(state.users, index, updated)},
                updated,
                "UPDATE_USER", f"Changed status of {user_id} to {new_status.value}", "ADMIN",
            )

    def update_user_password(self, user_id: str, new_password: str) -> Result:
        if not new_password:
            return invalid_input("Password cannot be empty")

        with self.store.transaction() as state:
            actor = self._authorize(state, None)
            if isinstance(actor, Err):
                return actor
            if actor.id != user_id and not allowed(actor.role, Capability.MANAGE_USERS):
                return Err(ErrorKind.UNAUTHORIZED, "Only administrators can change other users' passwords")

            index = _index(state.users, user_id)
            if index is None:
                return not_found("User")
            updated = state.users[index].model_copy(update={"password_hash": hash_password(new_password)})
            return self._commit(
                state, actor,
                {"users": _replace(state.users, index, updated)},
                updated,
                "CHANGE_PASSWORD", f"Changed password for user {updated.name}", "ADMIN",
            )

    # --- roster ---

    def add_shift(self, shift: Shift) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_ROSTER)
            if isinstance(actor, Err):
                return actor

            user_index = _index(state.users, shift.user_id)
            if user_index is None:
                return not_found("User")
            staff = state.users[user_index]
            if staff.role not in ROSTERED_ROLES:
                return invalid_input(f"Only doctors and nurses can be rostered, not {staff.role.value}")
            if shift.start_time == shift.end_time:
                return invalid_input("Shift start and end times must differ")

            new_shift = shift.model_copy(
                update={
                    "id": shift.id.strip() or _new_id("S", state.shifts),
                    "user_name": staff.name,
                    "user_role": staff.role,
                }
            )
            if _index(state.shifts, new_shift.id) is not None:
                return conflict(f"Shift id '{new_shift.id}' already exists")
            return self._commit(
                state, actor,
                {"shifts": [*state.shifts, new_shift]},
                new_shift,
                "ADD_SHIFT", f"Rostered {staff.name} on {shift.date} {shift.start_time}-{shift.end_time}", "ROSTER",
            )

    def delete_shift(self, shift_id: str) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, Capability.MANAGE_ROSTER)
            if isinstance(actor, Err):
                return actor

            index = _index(state.shifts, shift_id)
            if index is None:
                return not_found("Shift")
            removed = state.shifts[index]
            shifts = [shift for shift in state.shifts if shift.id != shift_id]
            return self._commit(
                state, actor,
                {"shifts": shifts},
                removed,
                "DELETE_SHIFT", f"Removed shift {shift_id} for {removed.user_name}", "ROSTER",
            )

    # --- notifications ---

    def mark_notification_read(self, notification_id: str) -> Result:
        with self.store.transaction() as state:
            actor = self._authorize(state, None)
            if isinstance(actor, Err):
                return actor

            index = _index(state.notifications, notification_id)
            if index is None:
                return not_found("Notification")
            updated = state.notifications[index].model_copy(update={"read": True})
            return self._commit(
                state, actor,
                {"notifications": _replace(state.notifications, index, updated)},
                updated,
            )
