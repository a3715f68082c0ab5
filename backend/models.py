from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    RECEPTIONIST = "RECEPTIONIST"
    MEDICAL_RECORDS = "MEDICAL_RECORDS"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class PatientStatus(str, Enum):
    OUTPATIENT = "OUTPATIENT"
    ADMITTED = "ADMITTED"
    EMERGENCY = "EMERGENCY"
    DISCHARGED = "DISCHARGED"


class ClinicalFlag(str, Enum):
    NORMAL = "NORMAL"
    ABNORMAL = "ABNORMAL"
    CRITICAL = "CRITICAL"


class LabStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class BedStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    CLEANING = "CLEANING"
    MAINTENANCE = "MAINTENANCE"


class BedType(str, Enum):
    STANDARD = "STANDARD"
    ICU = "ICU"
    ER = "ER"
    MATERNITY = "MATERNITY"
    PEDIATRIC = "PEDIATRIC"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class AppointmentType(str, Enum):
    CONSULTATION = "CONSULTATION"
    CHECKUP = "CHECKUP"
    SURGERY = "SURGERY"
    FOLLOW_UP = "FOLLOW_UP"


class MedicationType(str, Enum):
    TABLET = "TABLET"
    CAPSULE = "CAPSULE"
    SYRUP = "SYRUP"
    INJECTION = "INJECTION"
    CREAM = "CREAM"
    DROPS = "DROPS"


class PrescriptionStatus(str, Enum):
    PENDING = "PENDING"
    DISPENSED = "DISPENSED"
    CANCELLED = "CANCELLED"


class ShiftType(str, Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"
    ON_CALL = "ON_CALL"


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Vitals(SQLModel):
    date: str
    heart_rate: int
    bp_systolic: int
    bp_diastolic: int
    temperature: float
    spo2: int
    resp_rate: int
    flag: Optional[ClinicalFlag] = None


class LabResult(SQLModel):
    id: str = ""
    test_name: str
    date: str
    status: LabStatus = LabStatus.PENDING
    result: Optional[str] = None
    flag: Optional[ClinicalFlag] = None


class ProgressNote(SQLModel):
    id: str
    date: str
    author_id: str
    author_name: str
    note: str


class TreatmentPlan(SQLModel):
    summary: str
    goals: list[str] = Field(default_factory=list)
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None


class Patient(SQLModel):
    id: str = ""
    first_name: str
    last_name: str
    dob: str
    gender: str
    status: PatientStatus = PatientStatus.OUTPATIENT
    blood_type: str = "Unknown"
    allergies: list[str] = Field(default_factory=list)
    diagnosis: list[str] = Field(default_factory=list)
    vitals_history: list[Vitals] = Field(default_factory=list)
    lab_results: list[LabResult] = Field(default_factory=list)
    progress_notes: list[ProgressNote] = Field(default_factory=list)
    treatment_plan: Optional[TreatmentPlan] = None
    assigned_doctor_id: Optional[str] = None
    room_number: Optional[str] = None
    bed_id: Optional[str] = None
    admission_date: Optional[str] = None


class Doctor(SQLModel):
    id: str
    name: str
    specialty: str
    availability: str = "Available"


class Ward(SQLModel):
    id: str
    name: str
    specialty: str
    floor: int


class Bed(SQLModel):
    id: str
    ward_id: str
    room_number: str
    bed_number: str
    type: BedType = BedType.STANDARD
    status: BedStatus = BedStatus.AVAILABLE
    patient_id: Optional[str] = None


class Appointment(SQLModel):
    id: str = ""
    patient_id: str
    doctor_id: str
    date: str
    time: str
    duration: int = 30
    type: AppointmentType = AppointmentType.CONSULTATION
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None


class Medication(SQLModel):
    id: str = ""
    name: str
    generic_name: str = ""
    type: MedicationType = MedicationType.TABLET
    strength: str = ""
    stock: int = 0
    reorder_level: int = 0
    unit_price: float = 0.0
    expiry_date: str = ""
    manufacturer: str = ""


class Prescription(SQLModel):
    id: str = ""
    patient_id: str
    doctor_id: str
    medication_id: str
    date: str
    dosage: str
    quantity: int
    status: PrescriptionStatus = PrescriptionStatus.PENDING
    dispensed_at: Optional[str] = None
    notes: Optional[str] = None


class User(SQLModel):
    id: str
    name: str
    email: str
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE
    last_login: Optional[str] = None
    password_hash: str = ""


class Shift(SQLModel):
    id: str = ""
    user_id: str
    user_name: str = ""
    user_role: Optional[UserRole] = None
    date: str
    start_time: str
    end_time: str
    type: ShiftType = ShiftType.DAY
    location: str = ""


class AuditLog(SQLModel):
    id: str
    action: str
    user_id: str
    user_name: str
    timestamp: str
    details: str
    module: str


class Notification(SQLModel):
    id: str
    message: str
    type: NotificationType = NotificationType.INFO
    read: bool = False


class CurrentUser(SQLModel):
    id: str
    name: str
    role: UserRole


class Snapshot(SQLModel):
    patients: list[Patient] = Field(default_factory=list)
    doctors: list[Doctor] = Field(default_factory=list)
    wards: list[Ward] = Field(default_factory=list)
    beds: list[Bed] = Field(default_factory=list)
    appointments: list[Appointment] = Field(default_factory=list)
    medications: list[Medication] = Field(default_factory=list)
    prescriptions: list[Prescription] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
    shifts: list[Shift] = Field(default_factory=list)
    audit_logs: list[AuditLog] = Field(default_factory=list)
    current_user: CurrentUser
    notifications: list[Notification] = Field(default_factory=list)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
