import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from models import Bed, BedStatus, BedType, Ward
from routers.deps import get_operations, unwrap
from services.operations import OperationsEngine
from ws import manager

logger = logging.getLogger("nexus.beds")

router = APIRouter(tags=["beds"])


class WardCreate(BaseModel):
    id: str = Field(min_length=1, max_length=40)
    name: str = Field(min_length=1, max_length=120)
    specialty: str = Field(default="", max_length=120)
    floor: int = Field(default=1, ge=0, le=200)


class BedCreate(BaseModel):
    id: str = Field(min_length=1, max_length=40)
    ward_id: str = Field(min_length=1, max_length=40)
    room_number: str = Field(min_length=1, max_length=40)
    bed_number: str = Field(min_length=1, max_length=20)
    type: BedType = BedType.STANDARD


class BedAssignment(BaseModel):
    patient_id: str = Field(min_length=1, max_length=40)


class BedStatusUpdate(BaseModel):
    status: BedStatus


@router.get("/wards")
def list_wards(ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.list_wards())


@router.post("/wards", status_code=201)
def create_ward(body: WardCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_ward(Ward(**body.model_dump())))


@router.get("/beds")
def list_beds(
    ward_id: str = Query(default="", max_length=40),
    status: Optional[BedStatus] = Query(default=None),
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.list_beds(ward_id=ward_id.strip() or None, status=status))


@router.get("/beds/available")
def available_beds(ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.available_beds())


@router.get("/beds/{bed_id}")
def get_bed(bed_id: str, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.get_bed(bed_id))


@router.post("/beds", status_code=201)
async def create_bed(body: BedCreate, ops: OperationsEngine = Depends(get_operations)):
    bed = unwrap(ops.add_bed(Bed(**body.model_dump())))
    await manager.broadcast_beds("bed_added", [bed])
    return bed


@router.post("/beds/{bed_id}/assign")
async def assign_bed(bed_id: str, body: BedAssignment, ops: OperationsEngine = Depends(get_operations)):
    outcome = unwrap(ops.assign_patient_to_bed(body.patient_id, bed_id))
    await manager.broadcast_beds("bed_assigned", outcome["beds"], body.patient_id)
    return outcome


@router.post("/beds/{bed_id}/discharge")
async def discharge_bed(bed_id: str, ops: OperationsEngine = Depends(get_operations)):
    outcome = unwrap(ops.discharge_patient_from_bed(bed_id))
    patient = outcome["patient"]
    await manager.broadcast_beds("bed_released", [outcome["bed"]], patient.id if patient else None)
    return outcome


@router.post("/beds/{bed_id}/vacate")
async def vacate_bed(bed_id: str, ops: OperationsEngine = Depends(get_operations)):
    outcome = unwrap(ops.vacate_bed(bed_id))
    patient = outcome["patient"]
    await manager.broadcast_beds("bed_released", [outcome["bed"]], patient.id if patient else None)
    return outcome


@router.patch("/beds/{bed_id}/status")
async def update_bed_status(bed_id: str, body: BedStatusUpdate, ops: OperationsEngine = Depends(get_operations)):
    bed = unwrap(ops.update_bed_status(bed_id, body.status))
    logger.info("Bed %s now %s", bed.id, bed.status.value)
    await manager.broadcast_beds("bed_status", [bed])
    return bed
