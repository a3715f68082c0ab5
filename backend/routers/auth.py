from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from models import User
from routers.deps import get_operations, unwrap
from services.auth import create_access_token, get_current_user, user_payload
from services.operations import OperationsEngine
from store import StateStore, get_store

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=256)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=256)
    new_password: str = Field(min_length=8, max_length=256)


@router.post("/login")
def login(body: LoginRequest, store: StateStore = Depends(get_store)):
    email = body.email.strip().lower()
    if not email:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Email cannot be empty")

    result = OperationsEngine(store).login(email, body.password)
    if not result.ok and result.retryable:
        unwrap(result)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user = result.value
    return {
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": user_payload(user),
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return user_payload(current_user)


@router.post("/logout")
def logout(ops: OperationsEngine = Depends(get_operations)):
    unwrap(ops.logout())
    return {"status": "logged out"}


@router.post("/password")
def change_own_password(
    body: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    ops: OperationsEngine = Depends(get_operations),
):
    if not ops.validate_user(current_user.email, body.current_password).ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
    unwrap(ops.update_user_password(current_user.id, body.new_password))
    return {"status": "password updated"}
