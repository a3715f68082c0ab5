import sys
from datetime import date, datetime, timedelta, timezone

from models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    AuditLog,
    Bed,
    BedStatus,
    BedType,
    ClinicalFlag,
    CurrentUser,
    Doctor,
    LabResult,
    LabStatus,
    Medication,
    MedicationType,
    Notification,
    NotificationType,
    Patient,
    PatientStatus,
    Prescription,
    PrescriptionStatus,
    Snapshot,
    User,
    UserRole,
    Vitals,
    Ward,
)
from services.passwords import hash_password

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"id": "U-001", "name": "Admin User", "email": "admin@nexus.hms", "role": UserRole.ADMIN},
    {"id": "U-002", "name": "Dr. Gregory House", "email": "house@nexus.hms", "role": UserRole.DOCTOR},
    {"id": "U-003", "name": "Nurse Joy", "email": "joy@nexus.hms", "role": UserRole.NURSE},
    {"id": "U-004", "name": "Receptionist Pam", "email": "pam@nexus.hms", "role": UserRole.RECEPTIONIST},
    {"id": "U-005", "name": "Records Officer Ray", "email": "ray@nexus.hms", "role": UserRole.MEDICAL_RECORDS},
]


def seed_users() -> list[User]:
    now = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return [
        User(**spec, last_login=now if spec["role"] == UserRole.ADMIN else None, password_hash=hash_password(DEMO_PASSWORD))
        for spec in DEMO_USERS
    ]


def seed_audit_logs() -> list[AuditLog]:
    now = datetime.now(timezone.utc)
    return [
        AuditLog(
            id="LOG-002", action="USER_LOGIN", user_id="U-001", user_name="Admin User",
            timestamp=now.isoformat(timespec="seconds"), details="Successful login", module="AUTH",
        ),
        AuditLog(
            id="LOG-003", action="ADMIT_PATIENT", user_id="U-003", user_name="Nurse Joy",
            timestamp=(now - timedelta(hours=1)).isoformat(timespec="seconds"),
            details="Admitted Patient P-1002", module="PATIENTS",
        ),
        AuditLog(
            id="LOG-001", action="SYSTEM_INIT", user_id="SYSTEM", user_name="System",
            timestamp=(now - timedelta(days=1)).isoformat(timespec="seconds"),
            details="Database initialized", module="SYSTEM",
        ),
    ]


def seed_current_user() -> CurrentUser:
    return CurrentUser(id="U-001", name="Admin User", role=UserRole.ADMIN)


def _patients() -> list[Patient]:
    return [
        Patient(
            id="P-1001", first_name="Sarah", last_name="Connor", dob="1984-05-12", gender="Female",
            status=PatientStatus.ADMITTED, blood_type="O-", allergies=["Penicillin"],
            diagnosis=["Hypertension", "Type 2 Diabetes"], room_number="304", bed_id="B-304-A",
            admission_date="2023-10-25T10:00:00",
            vitals_history=[
                Vitals(date="2023-10-26T08:00", heart_rate=78, bp_systolic=135, bp_diastolic=85,
                       temperature=37.1, spo2=98, resp_rate=16),
                Vitals(date="2023-10-25T08:00", heart_rate=82, bp_systolic=140, bp_diastolic=88,
                       temperature=37.2, spo2=97, resp_rate=18),
            ],
            lab_results=[
                LabResult(id="L-501", test_name="Complete Blood Count", date="2023-10-25",
                          status=LabStatus.COMPLETED, result="WBC 11.5 (High)", flag=ClinicalFlag.ABNORMAL),
                LabResult(id="L-502", test_name="Lipid Panel", date="2023-10-25", status=LabStatus.PENDING),
            ],
        ),
        Patient(
            id="P-1002", first_name="James", last_name="Howlett", dob="1970-11-01", gender="Male",
            status=PatientStatus.EMERGENCY, blood_type="AB+", diagnosis=["Multiple Trauma", "Lacerations"],
            room_number="ER-1", bed_id="B-ER-1", admission_date="2023-10-27T02:30:00",
            vitals_history=[
                Vitals(date="2023-10-27T02:35", heart_rate=110, bp_systolic=90, bp_diastolic=60,
                       temperature=36.5, spo2=94, resp_rate=22, flag=ClinicalFlag.CRITICAL),
            ],
        ),
        Patient(
            id="P-1003", first_name="Elena", last_name="Roslin", dob="1995-02-14", gender="Female",
            status=PatientStatus.OUTPATIENT, blood_type="A+", allergies=["Peanuts", "Latex"],
            diagnosis=["Seasonal Allergies", "Mild Asthma"],
            vitals_history=[
                Vitals(date="2023-10-20T14:00", heart_rate=72, bp_systolic=118, bp_diastolic=75,
                       temperature=36.8, spo2=99, resp_rate=14),
            ],
        ),
    ]


def _doctors() -> list[Doctor]:
    return [
        Doctor(id="D-001", name="Dr. Gregory House", specialty="Diagnostician", availability="On Call"),
        Doctor(id="D-002", name="Dr. Stephen Strange", specialty="Neurosurgeon", availability="Available"),
        Doctor(id="D-003", name="Dr. Meredith Grey", specialty="General Surgery", availability="In Surgery"),
    ]


def _wards() -> list[Ward]:
    return [
        Ward(id="W-GEN", name="General Ward", specialty="General Medicine", floor=3),
        Ward(id="W-ICU", name="Intensive Care Unit", specialty="Critical Care", floor=4),
        Ward(id="W-ER", name="Emergency Room", specialty="Emergency", floor=1),
    ]


def _beds() -> list[Bed]:
    rows = [
        ("B-301-A", "W-GEN", "301", "A", BedType.STANDARD, BedStatus.AVAILABLE, None),
        ("B-301-B", "W-GEN", "301", "B", BedType.STANDARD, BedStatus.AVAILABLE, None),
        ("B-302-A", "W-GEN", "302", "A", BedType.STANDARD, BedStatus.CLEANING, None),
        ("B-303-A", "W-GEN", "303", "A", BedType.STANDARD, BedStatus.MAINTENANCE, None),
        ("B-304-A", "W-GEN", "304", "A", BedType.STANDARD, BedStatus.OCCUPIED, "P-1001"),
        ("B-304-B", "W-GEN", "304", "B", BedType.STANDARD, BedStatus.AVAILABLE, None),
        ("B-ICU-1", "W-ICU", "ICU-1", "1", BedType.ICU, BedStatus.AVAILABLE, None),
        ("B-ICU-2", "W-ICU", "ICU-2", "1", BedType.ICU, BedStatus.AVAILABLE, None),
        ("B-ER-1", "W-ER", "ER-1", "1", BedType.ER, BedStatus.OCCUPIED, "P-1002"),
        ("B-ER-2", "W-ER", "ER-2", "1", BedType.ER, BedStatus.AVAILABLE, None),
        ("B-ER-3", "W-ER", "ER-3", "1", BedType.ER, BedStatus.CLEANING, None),
    ]
    return [
        Bed(id=bed_id, ward_id=ward_id, room_number=room, bed_number=number, type=bed_type,
            status=status, patient_id=patient_id)
        for bed_id, ward_id, room, number, bed_type, status, patient_id in rows
    ]


def _appointments(today: str) -> list[Appointment]:
    return [
        Appointment(id="A-100", patient_id="P-1003", doctor_id="D-001", date=today, time="09:00", duration=30,
                    type=AppointmentType.CONSULTATION, status=AppointmentStatus.SCHEDULED,
                    notes="Recurring migraine headaches"),
        Appointment(id="A-101", patient_id="P-1001", doctor_id="D-002", date=today, time="11:00", duration=60,
                    type=AppointmentType.CHECKUP, status=AppointmentStatus.CONFIRMED,
                    notes="Post-op follow up"),
        Appointment(id="A-102", patient_id="P-1002", doctor_id="D-003", date=today, time="14:30", duration=45,
                    type=AppointmentType.FOLLOW_UP, status=AppointmentStatus.SCHEDULED,
                    notes="Wound dressing change"),
    ]


def _medications() -> list[Medication]:
    return [
        Medication(id="M-101", name="Paracetamol", generic_name="Acetaminophen", type=MedicationType.TABLET,
                   strength="500mg", stock=5000, reorder_level=1000, unit_price=0.10,
                   expiry_date="2025-12-31", manufacturer="PharmaCorp"),
        Medication(id="M-102", name="Amoxil", generic_name="Amoxicillin", type=MedicationType.CAPSULE,
                   strength="500mg", stock=200, reorder_level=500, unit_price=0.45,
                   expiry_date="2024-06-30", manufacturer="BioGen"),
        Medication(id="M-103", name="Lipitor", generic_name="Atorvastatin", type=MedicationType.TABLET,
                   strength="20mg", stock=800, reorder_level=200, unit_price=1.20,
                   expiry_date="2025-01-15", manufacturer="Pfizer"),
        Medication(id="M-104", name="Ventolin", generic_name="Salbutamol", type=MedicationType.INJECTION,
                   strength="100mcg", stock=50, reorder_level=100, unit_price=8.50,
                   expiry_date="2024-11-20", manufacturer="GSK"),
        Medication(id="M-105", name="Ibuprofen", generic_name="Ibuprofen", type=MedicationType.TABLET,
                   strength="400mg", stock=1200, reorder_level=300, unit_price=0.15,
                   expiry_date="2026-03-10", manufacturer="GenericLab"),
    ]


def _prescriptions(today: str) -> list[Prescription]:
    return [
        Prescription(id="RX-501", patient_id="P-1001", doctor_id="D-001", medication_id="M-103", date=today,
                     dosage="20mg once daily", quantity=30, status=PrescriptionStatus.PENDING,
                     notes="Take with food to avoid stomach upset."),
        Prescription(id="RX-502", patient_id="P-1003", doctor_id="D-002", medication_id="M-105", date=today,
                     dosage="400mg every 6 hours as needed", quantity=20, status=PrescriptionStatus.DISPENSED,
                     dispensed_at="2023-10-27T09:30:00"),
        Prescription(id="RX-503", patient_id="P-1002", doctor_id="D-003", medication_id="M-101", date=today,
                     dosage="1g IV every 6 hours", quantity=4, status=PrescriptionStatus.PENDING,
                     notes="Monitor liver function if high dosage persists."),
    ]


def build_seed_snapshot() -> Snapshot:
    today = date.today().isoformat()
    return Snapshot(
        patients=_patients(),
        doctors=_doctors(),
        wards=_wards(),
        beds=_beds(),
        appointments=_appointments(today),
        medications=_medications(),
        prescriptions=_prescriptions(today),
        users=seed_users(),
        shifts=[],
        audit_logs=seed_audit_logs(),
        current_user=seed_current_user(),
        notifications=[
            Notification(id="n1", message="System Maintenance scheduled for midnight.", type=NotificationType.INFO),
            Notification(id="n2", message="Critical Lab Result: P-1002", type=NotificationType.ERROR),
        ],
    )


def run_seed(reset: bool = False):
    from database import SqlBlobStore, create_db, engine
    from store import StateStore

    create_db()
    blob_store = SqlBlobStore(engine)
    if reset:
        store = StateStore(blob_store, build_seed_snapshot())
        store.commit(store.read())
        print("Snapshot reset to demo data.")
        return store

    store = StateStore.load(blob_store)
    print(f"Snapshot ready: {len(store.read().patients)} patients, {len(store.read().beds)} beds.")
    return store


if __name__ == "__main__":
    run_seed(reset="--reset" in sys.argv[1:])
