"""
api/routes/v1/users.py -- User directory REST endpoints.

Routes:
  POST   /api/v1/users          -- create user; 201
  GET    /api/v1/users          -- paginated, sortable listing
  GET    /api/v1/users/{id}     -- single user
  PUT    /api/v1/users/{id}     -- partial update (inactive users: no renames)
  DELETE /api/v1/users/{id}     -- remove user and its sessions; 204

Sorting:
  sortField is declared as SortFieldEnum, so FastAPI rejects anything outside
  the allow-list with 422 before the handler runs. The directory service and
  the store check again; the raw string never reaches SQL.

Self-modification:
  The directory service does not know who is calling. When the caller
  deactivates or deletes its own account, the route ends the caller's session
  itself after the mutation succeeds. Deletion also removes the session via
  the ON DELETE CASCADE; the explicit terminate covers deactivation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import SortDirectionEnum, SortFieldEnum, UserCreate, UserPageResponse, UserResponse, UserUpdate
from auth.dependencies import get_current_user, get_directory
from auth.directory import UserDirectoryService
from auth.models import User, UserStatus

# Every directory route requires a live session. Router-level dependency
# applies to every route registered on this router, so individual handlers
# don't each need to repeat Depends(get_current_user).
router = APIRouter(dependencies=[Depends(get_current_user)])


def _end_own_session(request: Request) -> None:
    session = getattr(request.state, "session", None)
    if session is not None:
        request.app.state.identity.logout(session.id)


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    body: UserCreate,
    directory: UserDirectoryService = Depends(get_directory),
) -> UserResponse:
    """Create a user account. The new account starts with loginsCounter == 0."""
    return UserResponse.from_domain(directory.create(body.to_domain()))


@router.get("/users", response_model=UserPageResponse)
def list_users(
    directory: UserDirectoryService = Depends(get_directory),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    sort_field: SortFieldEnum = Query(default=SortFieldEnum.createdAt, alias="sortField"),
    sort_direction: SortDirectionEnum = Query(default=SortDirectionEnum.DESC, alias="sortDirection"),
) -> UserPageResponse:
    """Return one page of users. limit defaults to DEFAULT_PAGE_SIZE."""
    result = directory.list(
        page=page,
        limit=limit,
        sort_field=sort_field.value,
        sort_direction=sort_direction.value,
    )
    return UserPageResponse.from_domain(result)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    directory: UserDirectoryService = Depends(get_directory),
) -> UserResponse:
    return UserResponse.from_domain(directory.get(user_id))


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: str,
    body: UserUpdate,
    directory: UserDirectoryService = Depends(get_directory),
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Partially update a user.

    Renaming an inactive user is rejected with 400 invalid_state, even when
    the same request also reactivates it.
    """
    updated = directory.update(user_id, body.to_domain())
    if updated.id == current_user.id and updated.status == UserStatus.INACTIVE:
        _end_own_session(request)
    return UserResponse.from_domain(updated)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: str,
    directory: UserDirectoryService = Depends(get_directory),
    current_user: User = Depends(get_current_user),
) -> Response:
    """Delete a user. 404 if it does not exist."""
    directory.delete(user_id)
    if user_id == current_user.id:
        _end_own_session(request)
    return Response(status_code=204)
