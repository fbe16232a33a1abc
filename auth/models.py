"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, next to no logic). Dataclasses own
domain shape; stores and services do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# Public (camelCase) names of the columns a directory listing may be ordered
# by. Anything outside this tuple is rejected before it reaches SQL.
SORTABLE_FIELDS: tuple[str, ...] = (
    "username",
    "firstName",
    "status",
    "loginsCounter",
    "createdAt",
    "updatedAt",
)

# Floors enforced at every entry point that accepts a new account or password
# (HTTP request models and the admin CLI).
MIN_USERNAME_LENGTH = 6
MIN_PASSWORD_LENGTH = 6


@dataclass
class User:
    """A registered identity.

    password_digest is a bcrypt hash (salt embedded). It is populated only on
    records that come straight out of UserStore; everything the services hand
    back to callers goes through public() first, which blanks it.

    logins_counter counts successful authentication events. Sign-up is one of
    them, so a freshly registered user already reports 1.
    """

    username: str
    first_name: str
    last_name: str
    status: UserStatus = UserStatus.ACTIVE
    id: str | None = None
    password_digest: str | None = field(default=None, repr=False)
    logins_counter: int = 0
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def public(self) -> User:
        """Return a copy that is safe to leave the credential trust boundary."""
        return replace(self, password_digest=None)


@dataclass
class NewUser:
    """Candidate record for sign-up and administrative create. password is plaintext."""

    username: str
    first_name: str
    last_name: str
    password: str = field(repr=False)
    status: UserStatus = UserStatus.ACTIVE


@dataclass
class UserPatch:
    """Partial update. None means "leave unchanged".

    username is deliberately absent: it is immutable after creation.
    """

    first_name: str | None = None
    last_name: str | None = None
    password: str | None = field(default=None, repr=False)
    status: UserStatus | None = None

    def is_empty(self) -> bool:
        return all(v is None for v in (self.first_name, self.last_name, self.password, self.status))


@dataclass
class Session:
    """One authenticated login. The id doubles as the bearer token.

    terminated_at is None while the session is live. Once set it never
    changes back: sessions are closed, not reopened.
    """

    user_id: str
    id: str | None = None
    created_at: str | None = None
    terminated_at: str | None = None

    @property
    def is_live(self) -> bool:
        return self.terminated_at is None


@dataclass
class AuthResult:
    """Outcome of a successful sign-in or sign-up."""

    session_id: str
    user: User


@dataclass
class UserPage:
    items: list[User]
    total_count: int
    current_page: int
    limit: int

    @property
    def last_page(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0
