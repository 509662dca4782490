from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_DIAMONDS = "INSUFFICIENT_DIAMONDS"
    NO_LIVES_REMAINING = "NO_LIVES_REMAINING"
    EMPTY_POOL = "EMPTY_POOL"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    code: ErrorCode
    message: str

    def as_detail(self) -> dict:
        return {"code": self.code.value, "message": self.message}


Result = Union[Ok[T], Failure]


def not_found(what: str, ident) -> Failure:
    return Failure(ErrorCode.NOT_FOUND, f"{what} {ident} not found")


def invalid(message: str) -> Failure:
    return Failure(ErrorCode.VALIDATION_ERROR, message)
