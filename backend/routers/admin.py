from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from models import UserRole, UserStatus
from routers.deps import get_operations, unwrap
from services.auth import user_payload
from services.operations import OperationsEngine

router = APIRouter(tags=["admin"])


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=8, max_length=256)
    role: UserRole
    id: Optional[str] = Field(default=None, max_length=40)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class PasswordReset(BaseModel):
    new_password: str = Field(min_length=8, max_length=256)


@router.get("/users")
def list_users(ops: OperationsEngine = Depends(get_operations)):
    return [user_payload(user) for user in unwrap(ops.list_users())]


@router.post("/users", status_code=201)
def create_user(body: UserCreate, ops: OperationsEngine = Depends(get_operations)):
    user = unwrap(ops.add_user(body.name, body.email, body.role, body.password, user_id=body.id))
    return user_payload(user)


@router.patch("/users/{user_id}/status")
def update_user_status(user_id: str, body: UserStatusUpdate, ops: OperationsEngine = Depends(get_operations)):
    return user_payload(unwrap(ops.update_user_status(user_id, body.status)))


@router.put("/users/{user_id}/password")
def reset_user_password(user_id: str, body: PasswordReset, ops: OperationsEngine = Depends(get_operations)):
    return user_payload(unwrap(ops.update_user_password(user_id, body.new_password)))


@router.get("/audit-log")
def list_audit_log(
    module: str = Query(default="", max_length=40),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
    ops: OperationsEngine = Depends(get_operations),
):
    entries = unwrap(ops.audit_log(module.strip() or None))
    start = (page - 1) * page_size
    return {
        "entries": entries[start:start + page_size],
        "total": len(entries),
        "page": page,
        "page_size": page_size,
    }
