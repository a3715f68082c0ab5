from models import ClinicalFlag, LabResult, LabStatus, Patient, PatientStatus, Vitals
from results import ErrorKind


def _patient(snapshot, patient_id):
    return next(p for p in snapshot.patients if p.id == patient_id)


def _vitals(heart_rate=80, flag=None) -> Vitals:
    return Vitals(date="2024-02-01T08:00", heart_rate=heart_rate, bp_systolic=120, bp_diastolic=80,
                  temperature=36.9, spo2=98, resp_rate=15, flag=flag)


def test_register_patient_inserts_at_head_with_generated_id(store, ops_for):
    result = ops_for("receptionist").register_patient(
        Patient(first_name="Ada", last_name="Lovelace", dob="1990-12-10", gender="Female")
    )
    assert result.ok
    patient = result.value
    assert patient.id.startswith("P-")

    snapshot = store.read()
    assert snapshot.patients[0].id == patient.id
    assert snapshot.audit_logs[0].action == "CREATE_PATIENT"
    assert snapshot.audit_logs[0].module == "PATIENTS"
    assert snapshot.audit_logs[0].user_id == "U-004"


def test_register_patient_never_carries_a_bed(admin_ops):
    result = admin_ops.register_patient(
        Patient(first_name="Bo", last_name="Bed", dob="1980-01-01", gender="Male",
                status=PatientStatus.EMERGENCY, bed_id="B-301-A", room_number="301")
    )
    assert result.value.bed_id is None
    assert result.value.room_number is None
    assert result.value.admission_date


def test_register_patient_id_collision_is_conflict(store, admin_ops):
    before = store.read()
    result = admin_ops.register_patient(
        Patient(id="P-1001", first_name="Dup", last_name="Licate", dob="1970-01-01", gender="Male")
    )
    assert result.kind == ErrorKind.CONFLICT
    assert store.read() == before


def test_nurse_cannot_register_patients(ops_for):
    result = ops_for("nurse").register_patient(
        Patient(first_name="No", last_name="Access", dob="2000-01-01", gender="Male")
    )
    assert result.kind == ErrorKind.UNAUTHORIZED


def test_update_patient_demographics(store, ops_for):
    result = ops_for("records").update_patient("P-1003", {"blood_type": "B+", "allergies": ["Latex"]})
    assert result.ok
    patient = _patient(store.read(), "P-1003")
    assert patient.blood_type == "B+"
    assert patient.allergies == ["Latex"]


def test_update_patient_rejects_bed_fields_and_bad_values(store, admin_ops):
    assert admin_ops.update_patient("P-1003", {"bed_id": "B-301-A"}).kind == ErrorKind.INVALID_INPUT
    assert admin_ops.update_patient("P-1003", {"status": "ASLEEP"}).kind == ErrorKind.INVALID_INPUT
    assert admin_ops.update_patient("P-0000", {"gender": "Male"}).kind == ErrorKind.NOT_FOUND


def test_bedded_patient_cannot_be_made_outpatient(store, admin_ops):
    result = admin_ops.update_patient("P-1001", {"status": PatientStatus.OUTPATIENT})
    assert result.kind == ErrorKind.INVALID_STATE
    assert _patient(store.read(), "P-1001").status == PatientStatus.ADMITTED


def test_reidentify_rewrites_every_reference(store, ops_for):
    result = ops_for("records").reidentify_patient("P-1001", "P-2001")
    assert result.ok

    snapshot = store.read()
    ids = {p.id for p in snapshot.patients}
    assert "P-1001" not in ids and "P-2001" in ids
    assert next(b for b in snapshot.beds if b.id == "B-304-A").patient_id == "P-2001"
    assert next(a for a in snapshot.appointments if a.id == "A-101").patient_id == "P-2001"
    assert next(rx for rx in snapshot.prescriptions if rx.id == "RX-501").patient_id == "P-2001"
    assert snapshot.audit_logs[0].action == "REIDENTIFY_PATIENT"


def test_reidentify_to_existing_id_is_conflict(store, ops_for):
    before = store.read()
    assert ops_for("records").reidentify_patient("P-1001", "P-1002").kind == ErrorKind.CONFLICT
    assert ops_for("doctor").reidentify_patient("P-1001", "P-3000").kind == ErrorKind.UNAUTHORIZED
    assert store.read() == before


def test_vitals_are_prepended_and_correctable(store, ops_for):
    nurse = ops_for("nurse")
    assert nurse.add_vitals("P-1003", _vitals(heart_rate=101)).ok
    history = _patient(store.read(), "P-1003").vitals_history
    assert history[0].heart_rate == 101
    assert len(history) == 2

    assert nurse.update_vitals("P-1003", 0, _vitals(heart_rate=95, flag=ClinicalFlag.ABNORMAL)).ok
    assert _patient(store.read(), "P-1003").vitals_history[0].heart_rate == 95
    assert nurse.update_vitals("P-1003", 7, _vitals()).kind == ErrorKind.NOT_FOUND


def test_progress_note_records_author(store, ops_for):
    result = ops_for("doctor").add_progress_note("P-1002", "Stable overnight, continue fluids.")
    assert result.ok
    note = _patient(store.read(), "P-1002").progress_notes[0]
    assert note.author_id == "U-002"
    assert note.author_name == "Dr. Gregory House"
    assert ops_for("doctor").add_progress_note("P-1002", "   ").kind == ErrorKind.INVALID_INPUT
    assert ops_for("receptionist").add_progress_note("P-1002", "hi").kind == ErrorKind.UNAUTHORIZED


def test_lab_order_and_completion(store, ops_for):
    doctor = ops_for("doctor")
    ordered = doctor.add_lab_result("P-1003", LabResult(test_name="HbA1c", date="2024-02-02"))
    lab = ordered.value.lab_results[0]
    assert lab.id.startswith("L-")
    assert lab.status == LabStatus.PENDING

    done = doctor.complete_lab_result("P-1003", lab.id, "5.4%", ClinicalFlag.NORMAL)
    assert done.ok
    completed = _patient(store.read(), "P-1003").lab_results[0]
    assert completed.status == LabStatus.COMPLETED
    assert completed.result == "5.4%"
    assert doctor.complete_lab_result("P-1003", lab.id, "again").kind == ErrorKind.INVALID_STATE


def test_treatment_plan_update(store, ops_for):
    result = ops_for("doctor").update_treatment_plan("P-1001", "Titrate metformin", ["HbA1c < 7%", ""])
    assert result.ok
    plan = _patient(store.read(), "P-1001").treatment_plan
    assert plan.summary == "Titrate metformin"
    assert plan.goals == ["HbA1c < 7%"]
    assert plan.updated_by == "Dr. Gregory House"
    assert ops_for("nurse").update_treatment_plan("P-1001", "x").kind == ErrorKind.UNAUTHORIZED


def test_patient_reads(ops_for):
    records = ops_for("records")
    assert len(records.list_patients().value) == 3
    assert records.get_patient("P-1002").value.last_name == "Howlett"
    assert records.get_patient("P-0000").kind == ErrorKind.NOT_FOUND
