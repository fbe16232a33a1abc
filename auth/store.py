"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Dynamic ordering: find_paged() accepts a caller-supplied field name. It is
  looked up in _SORT_COLUMNS (a closed mapping to Column objects) and never
  interpolated. Unknown names raise ValueError -- fail closed.

  Plaintext passwords enter this module only through create_user() and
  update_user(), and are hashed before any SQL is built.

Error translation:
  IntegrityError on insert       -> ConflictError  (UNIQUE(username))
  any other SQLAlchemyError      -> InternalError
  update/delete matching 0 rows  -> NotFoundError
  guarded update on inactive row -> InvalidStateError
  over-long password             -> ValidationFailedError (auth/passwords.py)

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.db import now_iso
from auth.db import users as _users
from auth.models import NewUser, SortDirection, User, UserPatch, UserStatus
from auth.passwords import hash_password
from core.errors import ConflictError, InternalError, InvalidStateError, NotFoundError

logger = logging.getLogger("identitycore.store")

_SORT_COLUMNS = {
    "username": _users.c.username,
    "firstName": _users.c.first_name,
    "status": _users.c.status,
    "loginsCounter": _users.c.logins_counter,
    "createdAt": _users.c.created_at,
    "updatedAt": _users.c.updated_at,
}


class UserStore:
    """Repository for User entities (the credential store).

    Usage:
        engine = create_db_engine("sqlite:///identity.db")
        init_schema(engine)
        store = UserStore(engine)
        user = store.create_user(NewUser("jdoe_01", "Jane", "Doe", "s3cret!"))
        store.increment_login_counter(user.id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, candidate: NewUser) -> User:
        """Hash the password, insert the record and return it (digest included).

        Raises ConflictError if the username is taken. The UNIQUE constraint
        decides, so two concurrent creates for the same name yield exactly one
        row and one ConflictError.
        """
        now = now_iso()
        user = User(
            id=str(uuid.uuid4()),
            username=candidate.username,
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            status=UserStatus(candidate.status),
            password_digest=hash_password(candidate.password),
            logins_counter=0,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        username=user.username,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        password_digest=user.password_digest,
                        status=user.status.value,
                        logins_counter=0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            logger.info("Rejected duplicate username %r", candidate.username)
            raise ConflictError("Username already exists") from exc
        except SQLAlchemyError as exc:
            logger.exception("create_user failed")
            raise InternalError() from exc
        return user

    def update_user(self, user_id: str, patch: UserPatch, require_active: bool = False) -> User:
        """Apply a partial update and return the fresh record.

        A password in the patch is re-hashed with a new salt. When the patch
        has no password the stored digest is untouched. updated_at is always
        refreshed. Raises NotFoundError if user_id does not exist.

        With require_active the UPDATE also matches on status = active, so a
        deactivation committed after the caller last read the row makes the
        write a no-op and raises InvalidStateError instead.
        """
        values: dict = {"updated_at": now_iso()}
        if patch.first_name is not None:
            values["first_name"] = patch.first_name
        if patch.last_name is not None:
            values["last_name"] = patch.last_name
        if patch.status is not None:
            values["status"] = UserStatus(patch.status).value
        if patch.password is not None:
            values["password_digest"] = hash_password(patch.password)
        try:
            with self.engine.connect() as conn:
                stmt = _users.update().where(_users.c.id == user_id)
                if require_active:
                    stmt = stmt.where(_users.c.status == UserStatus.ACTIVE.value)
                result = conn.execute(stmt.values(**values))
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("update_user failed for id=%s", user_id)
            raise InternalError() from exc
        if result.rowcount == 0:
            if require_active and self.get_by_id(user_id) is not None:
                raise InvalidStateError(f'User with ID "{user_id}" is inactive')
            raise NotFoundError(f'User with ID "{user_id}" not found')
        updated = self.get_by_id(user_id)
        if updated is None:
            # Deleted between the UPDATE and the re-read.
            raise NotFoundError(f'User with ID "{user_id}" not found')
        return updated

    def delete_user(self, user_id: str) -> None:
        """Permanently delete a user. Sessions go with it (ON DELETE CASCADE).

        Raises NotFoundError if no row matched.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.delete().where(_users.c.id == user_id))
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("delete_user failed for id=%s", user_id)
            raise InternalError() from exc
        if result.rowcount == 0:
            raise NotFoundError(f'User with ID "{user_id}" not found')

    def increment_login_counter(self, user_id: str) -> None:
        """Add one to logins_counter in SQL.

        The increment is relative to the stored value (SET x = x + 1), so
        concurrent logins for the same user never lose a count.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.update()
                    .where(_users.c.id == user_id)
                    .values(logins_counter=_users.c.logins_counter + 1, updated_at=now_iso())
                )
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("increment_login_counter failed for id=%s", user_id)
            raise InternalError() from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def find_paged(
        self,
        page: int = 1,
        limit: int = 10,
        sort_field: str = "createdAt",
        sort_direction: SortDirection = SortDirection.DESC,
    ) -> tuple[list[User], int]:
        """Return one page of users plus the total row count.

        Ordering is sort_field in sort_direction, then id ascending as a
        stable tiebreaker so page boundaries do not shift between requests.

        Raises ValueError for page/limit < 1 or a sort_field outside
        _SORT_COLUMNS.
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive integers")
        column = _SORT_COLUMNS.get(sort_field)
        if column is None:
            raise ValueError(f"Unsupported sort field: {sort_field!r}")
        ordering = column.asc() if SortDirection(sort_direction) == SortDirection.ASC else column.desc()
        stmt = _users.select().order_by(ordering, _users.c.id.asc()).limit(limit).offset((page - 1) * limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
            total = conn.execute(select(func.count()).select_from(_users)).scalar() or 0
        return [_row_to_user(r) for r in rows], total


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        first_name=row.first_name,
        last_name=row.last_name,
        password_digest=row.password_digest,
        status=UserStatus(row.status),
        logins_counter=row.logins_counter,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
