"""
auth/directory.py -- User directory: CRUD and paginated listing with policy.

UserDirectoryService delegates persistence to UserStore and adds the rules
that are not storage concerns:

  Inactive accounts are frozen: a patch that changes first_name or last_name,
  or sets a new password, on a user whose *current* status is inactive is
  rejected with InvalidStateError. The check reads the stored status before
  anything is written, so "reactivate and rename" in one patch is still
  rejected. The write itself is conditional on the row still being active,
  so a deactivation that commits between the read and the write also wins.
  A status-only patch always goes through.

  Listing parameters are validated here (positive page/limit, limit within
  max_limit, sort field on the allow-list) and reported as
  ValidationFailedError.

The service never asks who the caller is. Deactivating or deleting the
caller's own account is performed like any other; reacting to it (e.g. ending
the caller's session) is the request boundary's job.

Every user returned from this module has had its password digest stripped.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.models import SORTABLE_FIELDS, NewUser, SortDirection, User, UserPage, UserPatch
from auth.store import UserStore
from core.errors import InvalidStateError, NotFoundError, ValidationFailedError

logger = logging.getLogger("identitycore.auth")

_NAMES_FROZEN = "Cannot update names for inactive users"
_PASSWORD_FROZEN = "Cannot change the password of an inactive user"


class UserDirectoryService:
    def __init__(self, users: UserStore, default_limit: int = 10, max_limit: int = 100) -> None:
        self.users = users
        self.default_limit = default_limit
        self.max_limit = max_limit

    def create(self, candidate: NewUser) -> User:
        """Administrative create. The new user starts with logins_counter == 0."""
        user = self.users.create_user(candidate)
        logger.info("Created user_id=%s", user.id)
        return user.public()

    def get(self, user_id: str) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.public()

    def list(
        self,
        page: int = 1,
        limit: int | None = None,
        sort_field: str = "createdAt",
        sort_direction: SortDirection | str = SortDirection.DESC,
    ) -> UserPage:
        """Return one page of users ordered by an allow-listed field."""
        if limit is None:
            limit = self.default_limit
        if page < 1:
            raise ValidationFailedError("page must be a positive integer")
        if limit < 1 or limit > self.max_limit:
            raise ValidationFailedError(f"limit must be between 1 and {self.max_limit}")
        if sort_field not in SORTABLE_FIELDS:
            raise ValidationFailedError(f"sortField must be one of: {', '.join(SORTABLE_FIELDS)}")
        try:
            direction = SortDirection(str(getattr(sort_direction, "value", sort_direction)).upper())
        except ValueError as exc:
            raise ValidationFailedError("sortDirection must be ASC or DESC") from exc

        items, total = self.users.find_paged(page, limit, sort_field, direction)
        return UserPage(
            items=[u.public() for u in items],
            total_count=total,
            current_page=page,
            limit=limit,
        )

    def update(self, user_id: str, patch: UserPatch) -> User:
        """Apply a partial update under the inactive-account policy."""
        if patch.is_empty():
            raise ValidationFailedError("No fields to update.")

        current = self.users.get_by_id(user_id)
        if current is None:
            raise NotFoundError("User not found")

        renames = (patch.first_name is not None and patch.first_name != current.first_name) or (
            patch.last_name is not None and patch.last_name != current.last_name
        )
        frozen_reason = None
        if renames:
            frozen_reason = _NAMES_FROZEN
        elif patch.password is not None:
            frozen_reason = _PASSWORD_FROZEN

        if frozen_reason and not current.is_active:
            raise InvalidStateError(frozen_reason)

        # Guarded write: a deactivation committed since the read above wins.
        try:
            updated = self.users.update_user(user_id, patch, require_active=frozen_reason is not None)
        except InvalidStateError as exc:
            raise InvalidStateError(frozen_reason) from exc
        logger.info("Updated user_id=%s", user_id)
        return updated.public()

    def delete(self, user_id: str) -> None:
        """Remove a user. Its sessions are removed with it."""
        self.users.delete_user(user_id)
        logger.info("Deleted user_id=%s", user_id)
