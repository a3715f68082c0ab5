from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from models import ClinicalFlag, LabResult, Patient, PatientStatus, Vitals
from routers.deps import get_operations, unwrap
from services.operations import OperationsEngine

router = APIRouter(prefix="/patients", tags=["patients"])


class PatientCreate(BaseModel):
    id: str = Field(default="", max_length=40)
    first_name: str = Field(min_length=1, max_length=80)
    last_name: str = Field(min_length=1, max_length=80)
    dob: str = Field(min_length=1, max_length=32)
    gender: str = Field(min_length=1, max_length=32)
    status: PatientStatus = PatientStatus.OUTPATIENT
    blood_type: str = Field(default="Unknown", max_length=10)
    allergies: list[str] = Field(default_factory=list)
    diagnosis: list[str] = Field(default_factory=list)
    assigned_doctor_id: Optional[str] = None
    admission_date: Optional[str] = None


class PatientUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=80)
    dob: Optional[str] = Field(default=None, min_length=1, max_length=32)
    gender: Optional[str] = Field(default=None, min_length=1, max_length=32)
    status: Optional[PatientStatus] = None
    blood_type: Optional[str] = Field(default=None, max_length=10)
    allergies: Optional[list[str]] = None
    diagnosis: Optional[list[str]] = None
    assigned_doctor_id: Optional[str] = None


class ReidentifyRequest(BaseModel):
    new_id: str = Field(min_length=1, max_length=40)


class NoteCreate(BaseModel):
    note: str = Field(min_length=1, max_length=5000)


class LabOrder(BaseModel):
    test_name: str = Field(min_length=1, max_length=120)
    date: str = Field(min_length=1, max_length=32)


class LabCompletion(BaseModel):
    result: str = Field(min_length=1, max_length=2000)
    flag: Optional[ClinicalFlag] = None


class TreatmentPlanUpdate(BaseModel):
    summary: str = Field(min_length=1, max_length=5000)
    goals: list[str] = Field(default_factory=list)


@router.get("")
def list_patients(ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.list_patients())


@router.post("", status_code=201)
def create_patient(body: PatientCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.register_patient(Patient(**body.model_dump())))


@router.get("/{patient_id}")
def get_patient(patient_id: str, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.get_patient(patient_id))


@router.patch("/{patient_id}")
def update_patient(patient_id: str, body: PatientUpdate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.update_patient(patient_id, body.model_dump(exclude_unset=True)))


@router.post("/{patient_id}/reidentify")
def reidentify_patient(patient_id: str, body: ReidentifyRequest, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.reidentify_patient(patient_id, body.new_id))


@router.post("/{patient_id}/vitals", status_code=201)
def add_vitals(patient_id: str, body: Vitals, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_vitals(patient_id, body))


@router.put("/{patient_id}/vitals/{index}")
def update_vitals(patient_id: str, index: int, body: Vitals, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.update_vitals(patient_id, index, body))


@router.post("/{patient_id}/notes", status_code=201)
def add_note(patient_id: str, body: NoteCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_progress_note(patient_id, body.note))


@router.post("/{patient_id}/labs", status_code=201)
def order_lab(patient_id: str, body: LabOrder, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_lab_result(patient_id, LabResult(test_name=body.test_name, date=body.date)))


@router.patch("/{patient_id}/labs/{lab_id}")
def complete_lab(patient_id: str, lab_id: str, body: LabCompletion, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.complete_lab_result(patient_id, lab_id, body.result, body.flag))


@router.put("/{patient_id}/treatment-plan")
def update_treatment_plan(
    patient_id: str,
    body: TreatmentPlanUpdate,
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.update_treatment_plan(patient_id, body.summary, body.goals))
