"""
auth/sessions.py -- SQLAlchemy Core persistence layer for login sessions.

A session id is a random UUID4 string handed to the caller as an opaque bearer
token. Sessions are never reopened and never deleted here: termination stamps
terminated_at once, and rows only disappear when their owning user is deleted
(ON DELETE CASCADE, see auth/db.py).

Termination is a single conditional UPDATE (WHERE terminated_at IS NULL). It
is idempotent -- a second call matches no rows -- and concurrent calls on the
same id commute: whichever commits first sets the timestamp, the rest no-op.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.db import now_iso
from auth.db import sessions as _sessions
from auth.models import Session
from core.errors import InternalError, NotFoundError

logger = logging.getLogger("identitycore.store")


class SessionStore:
    """Repository for Session entities."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_session(self, user_id: str) -> Session:
        """Mint a new live session for user_id.

        Raises NotFoundError if the user does not exist (foreign key).
        """
        session = Session(user_id=user_id, id=str(uuid.uuid4()), created_at=now_iso())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _sessions.insert().values(
                        id=session.id,
                        user_id=session.user_id,
                        created_at=session.created_at,
                        terminated_at=None,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise NotFoundError(f'User with ID "{user_id}" not found') from exc
        except SQLAlchemyError as exc:
            logger.exception("create_session failed for user_id=%s", user_id)
            raise InternalError() from exc
        return session

    def terminate_session(self, session_id: str) -> None:
        """Close a session. Unknown and already-closed ids are a silent success."""
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _sessions.update()
                    .where((_sessions.c.id == session_id) & (_sessions.c.terminated_at.is_(None)))
                    .values(terminated_at=now_iso())
                )
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("terminate_session failed")
            raise InternalError() from exc

    def resolve_session(self, session_id: str) -> Session | None:
        """Return the session only if it exists and is still live."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _sessions.select().where((_sessions.c.id == session_id) & (_sessions.c.terminated_at.is_(None)))
            ).fetchone()
        return _row_to_session(row) if row is not None else None

    def get_session(self, session_id: str) -> Session | None:
        """Return the raw session record, live or terminated."""
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.id == session_id)).fetchone()
        return _row_to_session(row) if row is not None else None


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        created_at=row.created_at,
        terminated_at=row.terminated_at,
    )
