from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    INSUFFICIENT_RESOURCE = "INSUFFICIENT_RESOURCE"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"
    INVALID_INPUT = "INVALID_INPUT"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.UNAVAILABLE


Result = Union[Ok[Any], Err]


def not_found(what: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, f"{what} not found")


def invalid_state(message: str) -> Err:
    return Err(ErrorKind.INVALID_STATE, message)


def invalid_input(message: str) -> Err:
    return Err(ErrorKind.INVALID_INPUT, message)


def conflict(message: str) -> Err:
    return Err(ErrorKind.CONFLICT, message)
