from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from models import Appointment, AppointmentStatus, AppointmentType
from routers.deps import get_operations, unwrap
from services.operations import OperationsEngine

router = APIRouter(tags=["appointments"])


class AppointmentCreate(BaseModel):
    patient_id: str = Field(min_length=1, max_length=40)
    doctor_id: str = Field(min_length=1, max_length=40)
    date: str = Field(min_length=10, max_length=10)
    time: str = Field(min_length=4, max_length=5)
    duration: int = Field(default=30, ge=5, le=24 * 60)
    type: AppointmentType = AppointmentType.CONSULTATION
    notes: Optional[str] = Field(default=None, max_length=2000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


@router.get("/doctors")
def list_doctors(ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.list_doctors())


@router.get("/appointments")
def list_appointments(
    date: str = Query(default="", max_length=10),
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.list_appointments(date.strip() or None))


@router.post("/appointments", status_code=201)
def create_appointment(body: AppointmentCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.schedule_appointment(Appointment(**body.model_dump())))


@router.patch("/appointments/{appointment_id}/status")
def update_appointment_status(
    appointment_id: str,
    body: AppointmentStatusUpdate,
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.update_appointment_status(appointment_id, body.status))
