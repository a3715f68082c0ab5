from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from models import Medication, MedicationType, Prescription, PrescriptionStatus
from routers.deps import get_operations, unwrap
from services.operations import OperationsEngine

router = APIRouter(tags=["pharmacy"])


class MedicationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    generic_name: str = Field(default="", max_length=120)
    type: MedicationType = MedicationType.TABLET
    strength: str = Field(default="", max_length=40)
    stock: int = Field(default=0, ge=0)
    reorder_level: int = Field(default=0, ge=0)
    unit_price: float = Field(default=0.0, ge=0)
    expiry_date: str = Field(default="", max_length=10)
    manufacturer: str = Field(default="", max_length=120)


class RestockRequest(BaseModel):
    quantity: int = Field(gt=0)


class PrescriptionCreate(BaseModel):
    patient_id: str = Field(min_length=1, max_length=40)
    doctor_id: str = Field(min_length=1, max_length=40)
    medication_id: str = Field(min_length=1, max_length=40)
    dosage: str = Field(min_length=1, max_length=200)
    quantity: int = Field(gt=0)
    date: str = Field(default="", max_length=10)
    notes: Optional[str] = Field(default=None, max_length=2000)


@router.get("/medications")
def list_medications(ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.list_medications())


@router.post("/medications", status_code=201)
def create_medication(body: MedicationCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_medication(Medication(**body.model_dump())))


@router.post("/medications/{medication_id}/restock")
def restock_medication(medication_id: str, body: RestockRequest, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.restock_medication(medication_id, body.quantity))


@router.get("/prescriptions")
def list_prescriptions(
    status: Optional[PrescriptionStatus] = Query(default=None),
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.list_prescriptions(status))


@router.post("/prescriptions", status_code=201)
def create_prescription(body: PrescriptionCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_prescription(Prescription(**body.model_dump())))


@router.post("/prescriptions/{prescription_id}/dispense")
def dispense_prescription(prescription_id: str, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.dispense_prescription(prescription_id))


@router.post("/prescriptions/{prescription_id}/cancel")
def cancel_prescription(prescription_id: str, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.cancel_prescription(prescription_id))
