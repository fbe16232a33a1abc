"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Callers present the session id as `Authorization: Bearer <session id>`. The
id is resolved through SessionStore (live sessions only), then the owning user
is loaded. A terminated session, a deleted user, or an inactive user all
resolve to "unauthenticated".

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated. On
success the resolved Session is parked on request.state.session so routes can
tell whether an operation touches the caller's own identity.

Layer rule: auth/dependencies.py may import from fastapi (for
Request/HTTPException) because this module is part of the FastAPI dependency
injection system. Nothing else in auth/ does.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.directory import UserDirectoryService
from auth.models import User
from auth.service import IdentityService


def bearer_token(request: Request) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header, if any."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity


def get_directory(request: Request) -> UserDirectoryService:
    return request.app.state.directory


def try_get_current_user(request: Request) -> User | None:
    """Resolve the bearer session to an active user. Never raises."""
    token = bearer_token(request)
    if not token:
        return None
    session = request.app.state.session_store.resolve_session(token)
    if session is None:
        return None
    user = request.app.state.user_store.get_by_id(session.user_id)
    if user is None or not user.is_active:
        return None
    request.state.session = session
    return user.public()


def get_current_user(request: Request) -> User:
    """Require a live session. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
