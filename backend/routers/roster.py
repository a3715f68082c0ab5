from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from models import Shift, ShiftType
from routers.deps import get_operations, unwrap
from services.operations import OperationsEngine

router = APIRouter(prefix="/shifts", tags=["roster"])

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ShiftCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=40)
    date: str = Field(min_length=10, max_length=10)
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    type: ShiftType = ShiftType.DAY
    location: str = Field(default="", max_length=120)


@router.get("")
def list_shifts(
    date: str = Query(default="", max_length=10),
    ops: OperationsEngine = Depends(get_operations),
):
    return unwrap(ops.list_shifts(date.strip() or None))


@router.post("", status_code=201)
def create_shift(body: ShiftCreate, ops: OperationsEngine = Depends(get_operations)):
    return unwrap(ops.add_shift(Shift(**body.model_dump())))


@router.delete("/{shift_id}")
def delete_shift(shift_id: str, ops: OperationsEngine = Depends(get_operations)):
    removed = unwrap(ops.delete_shift(shift_id))
    return {"status": "deleted", "id": removed.id}
