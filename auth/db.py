"""
auth/db.py -- SQLAlchemy Core schema and engine factory for identity data.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py remain the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Both stores share one engine and one MetaData: sessions.user_id is a foreign
key to users.id with ON DELETE CASCADE, so deleting a user removes its
sessions in the same statement.

Schema notes:
  users.username carries a UNIQUE constraint. This is the only place username
  uniqueness is enforced -- a check-then-insert in Python would race.

  Timestamps are ISO 8601 UTC strings (datetime.isoformat()). They sort
  lexicographically in the same order as chronologically.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255), nullable=False),
    Column("password_digest", String(60), nullable=False),  # bcrypt output is always 60 chars
    Column("status", String(16), nullable=False, server_default="active"),
    Column("logins_counter", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

sessions = Table(
    "sessions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("terminated_at", String(32)),  # NULL = live
)


def now_iso() -> str:
    # Fixed width (always microseconds) so string order matches time order.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys is OFF by default in SQLite,
    which would silently disable the sessions ON DELETE CASCADE.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Build an Engine for db_url with SQLite-specific connection setup."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def init_schema(engine: Engine) -> None:
    """Create any missing tables. Idempotent -- safe to call on every startup."""
    metadata.create_all(engine)
