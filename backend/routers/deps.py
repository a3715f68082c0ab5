from fastapi import Depends, HTTPException, status

from models import User
from results import Err, ErrorKind, Result
from services.auth import get_current_user
from services.operations import OperationsEngine
from store import StateStore, get_store

STATUS_FOR_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_RESOURCE: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def unwrap(result: Result):
    if isinstance(result, Err):
        raise HTTPException(status_code=STATUS_FOR_KIND[result.kind], detail=result.message)
    return result.value


def get_operations(
    current_user: User = Depends(get_current_user),
    store: StateStore = Depends(get_store),
) -> OperationsEngine:
    return OperationsEngine(store, actor=current_user)
