"""Unit tests for auth/sessions.py -- the session store.

Covers:
- create_session() mints a live session with a unique id
- terminate_session() is idempotent and never raises for unknown ids
- resolve_session() returns live sessions only
- deleting the owning user cascades to its sessions
"""

from __future__ import annotations

import pytest

from core.errors import NotFoundError
from tests.factories import make_candidate


@pytest.fixture
def owner(user_store):
    return user_store.create_user(make_candidate())


def test_create_session_is_live(session_store, owner) -> None:
    session = session_store.create_session(owner.id)
    assert session.id
    assert session.user_id == owner.id
    assert session.created_at
    assert session.is_live
    assert session_store.resolve_session(session.id) == session


def test_session_ids_are_unique(session_store, owner) -> None:
    ids = {session_store.create_session(owner.id).id for _ in range(20)}
    assert len(ids) == 20


def test_create_session_for_unknown_user(session_store) -> None:
    with pytest.raises(NotFoundError):
        session_store.create_session("no-such-user")


def test_terminate_closes_session(session_store, owner) -> None:
    session = session_store.create_session(owner.id)
    session_store.terminate_session(session.id)

    assert session_store.resolve_session(session.id) is None
    stored = session_store.get_session(session.id)
    assert stored is not None
    assert stored.terminated_at is not None
    assert not stored.is_live


def test_terminate_twice_keeps_first_timestamp(session_store, owner) -> None:
    session = session_store.create_session(owner.id)
    session_store.terminate_session(session.id)
    first = session_store.get_session(session.id).terminated_at

    session_store.terminate_session(session.id)
    assert session_store.get_session(session.id).terminated_at == first


def test_terminate_unknown_id_is_noop(session_store) -> None:
    session_store.terminate_session("never-issued")
    assert session_store.get_session("never-issued") is None


def test_terminating_one_session_leaves_others(session_store, owner) -> None:
    a = session_store.create_session(owner.id)
    b = session_store.create_session(owner.id)
    session_store.terminate_session(a.id)
    assert session_store.resolve_session(a.id) is None
    assert session_store.resolve_session(b.id) is not None


def test_user_delete_cascades_to_sessions(user_store, session_store, owner) -> None:
    session = session_store.create_session(owner.id)
    user_store.delete_user(owner.id)
    assert session_store.get_session(session.id) is None
    assert session_store.resolve_session(session.id) is None
