"""Unit tests for auth/directory.py -- the user directory service.

Covers:
- create() strips the digest and starts the counter at 0
- list() paging metadata, sort validation, limit bounds
- update() inactive-account freeze (names, password) vs status-only patches
- update()/delete() NotFound paths
- a deactivation that lands between read and write still freezes the account
"""

from __future__ import annotations

import time

import pytest

from auth.models import SortDirection, UserPatch, UserStatus
from auth.passwords import verify_password
from core.errors import InvalidStateError, NotFoundError, ValidationFailedError
from tests.factories import make_candidate


@pytest.fixture
def inactive_user(directory):
    return directory.create(make_candidate(status=UserStatus.INACTIVE, first_name="Frozen", last_name="Account"))


# ---------------------------------------------------------------------------
# Create / get
# ---------------------------------------------------------------------------


def test_create_hides_digest(directory) -> None:
    user = directory.create(make_candidate())
    assert user.password_digest is None
    assert user.logins_counter == 0


def test_create_overlong_password_is_validation_error(directory) -> None:
    with pytest.raises(ValidationFailedError):
        directory.create(make_candidate(password="x" * 80))


def test_get_unknown_is_not_found(directory) -> None:
    with pytest.raises(NotFoundError):
        directory.get("missing-id")


def test_get_hides_digest(directory) -> None:
    created = directory.create(make_candidate())
    assert directory.get(created.id).password_digest is None


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


class TestList:
    @pytest.fixture(autouse=True)
    def _seed(self, directory) -> None:
        for i in range(15):
            directory.create(make_candidate(username=f"member_{i:02d}"))
            time.sleep(0.001)

    def test_page_metadata(self, directory) -> None:
        page = directory.list(page=2, limit=5)
        assert page.current_page == 2
        assert page.total_count == 15
        assert page.last_page == 3
        assert len(page.items) == 5

    def test_pages_differ(self, directory) -> None:
        first = directory.list(page=1, limit=5)
        second = directory.list(page=2, limit=5)
        assert {u.id for u in first.items}.isdisjoint({u.id for u in second.items})

    def test_default_limit(self, directory) -> None:
        page = directory.list()
        assert page.limit == 10
        assert len(page.items) == 10

    def test_items_have_no_digest(self, directory) -> None:
        assert all(u.password_digest is None for u in directory.list(limit=15).items)

    def test_direction_is_case_insensitive(self, directory) -> None:
        page = directory.list(limit=15, sort_field="username", sort_direction="asc")
        names = [u.username for u in page.items]
        assert names == sorted(names)

    def test_default_order_is_newest_first(self, directory) -> None:
        page = directory.list(limit=15)
        stamps = [u.created_at for u in page.items]
        assert stamps == sorted(stamps, reverse=True)

    def test_sort_by_logins_counter(self, directory, user_store) -> None:
        target = directory.list(limit=1, sort_field="username", sort_direction=SortDirection.ASC).items[0]
        user_store.increment_login_counter(target.id)
        top = directory.list(limit=1, sort_field="loginsCounter", sort_direction=SortDirection.DESC).items[0]
        assert top.id == target.id

    def test_unknown_sort_field_rejected(self, directory) -> None:
        with pytest.raises(ValidationFailedError):
            directory.list(sort_field="passwordDigest")

    def test_bad_direction_rejected(self, directory) -> None:
        with pytest.raises(ValidationFailedError):
            directory.list(sort_direction="sideways")

    @pytest.mark.parametrize("page,limit", [(0, 5), (1, 0), (1, 101)])
    def test_out_of_range_paging_rejected(self, directory, page: int, limit: int) -> None:
        with pytest.raises(ValidationFailedError):
            directory.list(page=page, limit=limit)


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_active_user_rename(self, directory) -> None:
        user = directory.create(make_candidate())
        updated = directory.update(user.id, UserPatch(first_name="Renamed"))
        assert updated.first_name == "Renamed"
        assert updated.password_digest is None

    def test_inactive_first_name_rejected(self, directory, inactive_user) -> None:
        with pytest.raises(InvalidStateError):
            directory.update(inactive_user.id, UserPatch(first_name="Thawed"))

    def test_inactive_last_name_rejected(self, directory, inactive_user) -> None:
        with pytest.raises(InvalidStateError):
            directory.update(inactive_user.id, UserPatch(last_name="Thawed"))

    def test_reactivate_and_rename_together_rejected(self, directory, inactive_user) -> None:
        with pytest.raises(InvalidStateError):
            directory.update(inactive_user.id, UserPatch(status=UserStatus.ACTIVE, first_name="Thawed"))
        assert directory.get(inactive_user.id).status == UserStatus.INACTIVE

    def test_inactive_password_rejected(self, directory, inactive_user) -> None:
        with pytest.raises(InvalidStateError):
            directory.update(inactive_user.id, UserPatch(password="newpassword123"))

    def test_inactive_unchanged_names_allowed(self, directory, inactive_user) -> None:
        updated = directory.update(
            inactive_user.id,
            UserPatch(first_name="Frozen", last_name="Account", status=UserStatus.ACTIVE),
        )
        assert updated.status == UserStatus.ACTIVE

    def test_inactive_status_only_succeeds(self, directory, inactive_user) -> None:
        updated = directory.update(inactive_user.id, UserPatch(status=UserStatus.ACTIVE))
        assert updated.status == UserStatus.ACTIVE
        renamed = directory.update(inactive_user.id, UserPatch(first_name="Thawed"))
        assert renamed.first_name == "Thawed"

    def test_password_reset_verifies(self, directory, user_store) -> None:
        user = directory.create(make_candidate())
        directory.update(user.id, UserPatch(password="newpassword123"))
        assert verify_password("newpassword123", user_store.get_by_id(user.id).password_digest)

    def test_empty_patch_rejected(self, directory) -> None:
        user = directory.create(make_candidate())
        with pytest.raises(ValidationFailedError):
            directory.update(user.id, UserPatch())

    def test_unknown_user(self, directory) -> None:
        with pytest.raises(NotFoundError):
            directory.update("missing-id", UserPatch(status=UserStatus.ACTIVE))


# ---------------------------------------------------------------------------
# Deactivation racing an update
# ---------------------------------------------------------------------------


@pytest.fixture
def deactivate_after_read(user_store, monkeypatch):
    """Make the next get_by_id() return its snapshot, then deactivate the row."""
    real_get = user_store.get_by_id
    fired = []

    def get_then_deactivate(user_id):
        snapshot = real_get(user_id)
        if not fired:
            fired.append(user_id)
            user_store.update_user(user_id, UserPatch(status=UserStatus.INACTIVE))
        return snapshot

    monkeypatch.setattr(user_store, "get_by_id", get_then_deactivate)
    return real_get


def test_rename_loses_to_concurrent_deactivation(directory, deactivate_after_read) -> None:
    user = directory.create(make_candidate(first_name="Ada"))
    with pytest.raises(InvalidStateError) as exc_info:
        directory.update(user.id, UserPatch(first_name="Renamed"))
    assert exc_info.value.message == "Cannot update names for inactive users"

    stored = deactivate_after_read(user.id)
    assert stored.status == UserStatus.INACTIVE
    assert stored.first_name == "Ada"


def test_password_change_loses_to_concurrent_deactivation(directory, deactivate_after_read) -> None:
    user = directory.create(make_candidate())
    before = deactivate_after_read(user.id).password_digest
    with pytest.raises(InvalidStateError) as exc_info:
        directory.update(user.id, UserPatch(password="newpassword123"))
    assert exc_info.value.message == "Cannot change the password of an inactive user"
    assert deactivate_after_read(user.id).password_digest == before


def test_status_patch_unaffected_by_concurrent_deactivation(directory, deactivate_after_read) -> None:
    user = directory.create(make_candidate())
    updated = directory.update(user.id, UserPatch(status=UserStatus.ACTIVE))
    assert updated.status == UserStatus.ACTIVE


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


def test_delete_then_lookup_absent(directory, user_store) -> None:
    user = directory.create(make_candidate())
    directory.delete(user.id)
    assert user_store.get_by_username(user.username) is None
    with pytest.raises(NotFoundError):
        directory.get(user.id)


def test_delete_unknown_is_not_found(directory) -> None:
    with pytest.raises(NotFoundError):
        directory.delete("missing-id")
