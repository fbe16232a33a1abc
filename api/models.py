"""
API request and response models for the Identity Core REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

JSON field names are camelCase (firstName, loginsCounter, sessionId, ...).
Python attribute names stay snake_case; the alias generator bridges the two
and populate_by_name lets tests and internal callers use either form.

No response model has a password or digest field, so a digest cannot leak
through serialization even if a route forgets to strip it.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from auth.models import MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH, NewUser, User, UserPage, UserPatch, UserStatus
from auth.passwords import MAX_PASSWORD_BYTES

# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------

# Names are trimmed before the length check, so "   " is rejected as empty.
# Passwords are never trimmed: leading and trailing spaces are part of the secret.
NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SortFieldEnum(str, Enum):
    username = "username"
    firstName = "firstName"
    status = "status"
    loginsCounter = "loginsCounter"
    createdAt = "createdAt"
    updatedAt = "updatedAt"


class SortDirectionEnum(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignInRequest(_CamelModel):
    """Request body for POST /api/v1/auth/login.

    No minimum lengths here: a too-short username simply fails the lookup and
    gets the same 401 as any other bad credential.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserCreate(_CamelModel):
    """Request body for POST /auth/register and POST /users."""

    username: str = Field(min_length=MIN_USERNAME_LENGTH, max_length=255)
    first_name: NameStr
    last_name: NameStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_BYTES)
    status: UserStatus = UserStatus.ACTIVE

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)

    def to_domain(self) -> NewUser:
        return NewUser(
            username=self.username,
            first_name=self.first_name,
            last_name=self.last_name,
            password=self.password,
            status=self.status,
        )


class UserUpdate(_CamelModel):
    """Request body for PUT /users/{id}. Every field is optional.

    extra="forbid" turns an attempt to send username (immutable) or any
    unknown field into a 422 instead of silently ignoring it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    first_name: Optional[NameStr] = None
    last_name: Optional[NameStr] = None
    password: Optional[str] = Field(default=None, min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_BYTES)
    status: Optional[UserStatus] = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)

    def to_domain(self) -> UserPatch:
        return UserPatch(
            first_name=self.first_name,
            last_name=self.last_name,
            password=self.password,
            status=self.status,
        )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(_CamelModel):
    """A user as seen from outside. Never carries the password digest."""

    id: str
    username: str
    first_name: str
    last_name: str
    status: UserStatus
    logins_counter: int
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        """Factory Method -- the mapping lives here, next to the output model."""
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            status=user.status,
            logins_counter=user.logins_counter,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class AuthResponse(_CamelModel):
    """Response for sign-in and sign-up. session_id is the bearer token."""

    session_id: str
    user: UserResponse


class UserPageResponse(_CamelModel):
    items: list[UserResponse]
    total_count: int
    current_page: int
    last_page: int
    limit: int

    @classmethod
    def from_domain(cls, page: UserPage) -> "UserPageResponse":
        return cls(
            items=[UserResponse.from_domain(u) for u in page.items],
            total_count=page.total_count,
            current_page=page.current_page,
            last_page=page.last_page,
            limit=page.limit,
        )


class MessageResponse(BaseModel):
    message: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
