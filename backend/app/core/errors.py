"""
Closed set of business-rule failures and the result type operations return.

Team, invitation and credential operations never raise for rule violations;
they return ``Ok(value)`` or ``Err(kind, message)`` and the API layer maps the
kind onto an HTTP response.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    USED = "used"
    EMAIL_MISMATCH = "email_mismatch"
    USER_EXISTS = "user_exists"
    SELF_REMOVAL = "self_removal"
    SELF_CHANGE = "self_change"
    INVALID_ROLE = "invalid_role"
    VALIDATION = "validation_error"
    CRYPTO = "crypto_error"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TOKEN: 400,
    ErrorKind.EXPIRED: 410,
    ErrorKind.USED: 409,
    ErrorKind.EMAIL_MISMATCH: 400,
    ErrorKind.USER_EXISTS: 409,
    ErrorKind.SELF_REMOVAL: 400,
    ErrorKind.SELF_CHANGE: 400,
    ErrorKind.INVALID_ROLE: 400,
    ErrorKind.VALIDATION: 422,
    ErrorKind.CRYPTO: 500,
}

DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UNAUTHORIZED: "Authentication required",
    ErrorKind.FORBIDDEN: "Insufficient permissions",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.INVALID_TOKEN: "Invalid invitation",
    ErrorKind.EXPIRED: "Invitation has expired",
    ErrorKind.USED: "Invitation has already been used",
    ErrorKind.EMAIL_MISMATCH: "Email does not match the invitation",
    ErrorKind.USER_EXISTS: "User already exists",
    ErrorKind.SELF_REMOVAL: "You cannot remove yourself",
    ErrorKind.SELF_CHANGE: "You cannot change your own role",
    ErrorKind.INVALID_ROLE: "Invalid role",
    ErrorKind.VALIDATION: "Invalid request",
    ErrorKind.CRYPTO: "Unable to process stored credential",
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", DEFAULT_MESSAGES[self.kind])

    @property
    def ok(self) -> bool:
        return False

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.kind.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


Result = Union[Ok[T], Err]


@dataclass
class OperationFailed(Exception):
    """Carries an Err across the HTTP boundary; raised only by the API layer."""

    error: Err

    def __post_init__(self) -> None:
        super().__init__(self.error.message)
