"""
core/errors.py -- Failure taxonomy shared by the stores and services.

Every component surfaces one of these kinds instead of passing raw storage
errors through. The HTTP layer maps ErrorKind to a status code in a single
exception handler (api/main.py); the CLI maps any IdentityError to exit code 1.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    VALIDATION = "validation_error"
    INTERNAL = "internal_error"


class IdentityError(Exception):
    """Base class. Subclasses pin `kind` and a default message."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(IdentityError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Invalid credentials"


class ConflictError(IdentityError):
    kind = ErrorKind.CONFLICT
    default_message = "Username already exists"


class NotFoundError(IdentityError):
    kind = ErrorKind.NOT_FOUND
    default_message = "User not found"


class InvalidStateError(IdentityError):
    kind = ErrorKind.INVALID_STATE
    default_message = "Operation not allowed in the current state"


class ValidationFailedError(IdentityError):
    kind = ErrorKind.VALIDATION
    default_message = "Request validation failed."


class InternalError(IdentityError):
    kind = ErrorKind.INTERNAL
