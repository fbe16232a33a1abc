"""
auth/service.py -- Sign-in, sign-up and sign-out.

IdentityService composes UserStore and SessionStore. It holds no state of its
own beyond references to the stores, so one instance serves every request.

Sign-in runs four gates in order -- credential lookup, password check, status
check, session issue -- and every rejection raises the same
UnauthorizedError("Invalid credentials"). An attacker cannot tell an unknown
username from a wrong password from a disabled account, either by message or
by timing: the unknown-username branch still pays for one bcrypt check.

Cross-store sequences (create user, then create session) are independent
transactions. A crash in between leaves a valid user with no session; the
caller recovers by signing in.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from auth.models import AuthResult, NewUser
from auth.passwords import burn_verification, verify_password
from auth.sessions import SessionStore
from auth.store import UserStore
from core.errors import UnauthorizedError

logger = logging.getLogger("identitycore.auth")

_INACTIVE_MESSAGE = "User is inactive and cannot log in."


class IdentityService:
    def __init__(self, users: UserStore, sessions: SessionStore, disclose_inactive: bool = False) -> None:
        self.users = users
        self.sessions = sessions
        self.disclose_inactive = disclose_inactive

    def sign_in(self, username: str, password: str) -> AuthResult:
        """Authenticate and open a session. Raises UnauthorizedError on any gate failure."""
        user = self.users.get_by_username(username)
        if user is None:
            burn_verification(password)
            logger.info("Sign-in rejected: unknown username")
            raise UnauthorizedError()

        if not verify_password(password, user.password_digest or ""):
            logger.info("Sign-in rejected: bad password for user_id=%s", user.id)
            raise UnauthorizedError()

        if not user.is_active:
            logger.info("Sign-in rejected: inactive user_id=%s", user.id)
            raise UnauthorizedError(_INACTIVE_MESSAGE if self.disclose_inactive else None)

        self.users.increment_login_counter(user.id)
        session = self.sessions.create_session(user.id)
        logger.info("Sign-in ok for user_id=%s", user.id)
        signed_in = replace(user.public(), logins_counter=user.logins_counter + 1)
        return AuthResult(session_id=session.id, user=signed_in)

    def sign_up(self, candidate: NewUser) -> AuthResult:
        """Register a user and open their first session.

        Registration counts as the first successful authentication, so the
        returned user reports logins_counter == 1. The increment is applied
        in SQL and mirrored on the local copy instead of re-reading the row.

        Raises ConflictError if the username is taken.
        """
        user = self.users.create_user(candidate)
        self.users.increment_login_counter(user.id)
        user = replace(user.public(), logins_counter=user.logins_counter + 1)
        session = self.sessions.create_session(user.id)
        logger.info("Sign-up ok for user_id=%s", user.id)
        return AuthResult(session_id=session.id, user=user)

    def logout(self, session_id: str | None) -> None:
        """Terminate the session. Always succeeds, even for unknown or closed ids."""
        if not session_id:
            return
        self.sessions.terminate_session(session_id)
