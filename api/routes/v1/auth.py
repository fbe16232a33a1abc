"""
api/routes/v1/auth.py -- Sign-in, sign-up and sign-out REST endpoints.

Routes:
  POST /api/v1/auth/login     -- password login; returns {sessionId, user}
  POST /api/v1/auth/register  -- create account and first session; 201
  POST /api/v1/auth/logout    -- terminate the presented session; always 200
  GET  /api/v1/auth/me        -- current user (requires a live session)

Security:
  [H2] login and register are rate-limited per IP (LOGIN_RATE_LIMIT).
  [C1] IdentityService.sign_in() provides timing equalization and a uniform
       error -- use it, never inline get_by_username() + verify_password().
  [M5] Cache-Control: no-store on every response that carries a session id.

Handlers that hash passwords or hit the database are plain `def` so FastAPI
runs them in its worker thread pool. bcrypt is CPU-bound; running it inside an
`async def` would stall every other request on the event loop.

Domain errors (UnauthorizedError, ConflictError, ...) are not caught here.
They propagate to the IdentityError handler in api/main.py, which maps the
error kind to a status code and the standard error envelope.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter, login_rate_limit
from api.models import AuthResponse, MessageResponse, SignInRequest, UserCreate, UserResponse
from auth.dependencies import bearer_token, get_current_user, get_identity_service
from auth.models import User
from auth.service import IdentityService

# Auth policy:
# - POST /api/v1/auth/login:     public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/register:  public -- self-service sign-up
# - POST /api/v1/auth/logout:    public -- terminating a token needs no prior check
# - GET  /api/v1/auth/me:        requires a live session (get_current_user)
router = APIRouter()


@limiter.limit(login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=AuthResponse)
def login(
    request: Request,
    response: Response,
    body: SignInRequest,
    identity: IdentityService = Depends(get_identity_service),
) -> AuthResponse:
    """Authenticate with username and password and open a session.

    Unknown username, wrong password and inactive account all produce the
    same 401 "Invalid credentials".
    """
    result = identity.sign_in(body.username, body.password)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return AuthResponse(session_id=result.session_id, user=UserResponse.from_domain(result.user))


@limiter.limit(login_rate_limit)  # [H2]
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(
    request: Request,
    response: Response,
    body: UserCreate,
    identity: IdentityService = Depends(get_identity_service),
) -> AuthResponse:
    """Create an account and sign it in. The returned user has loginsCounter == 1."""
    result = identity.sign_up(body.to_domain())
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return AuthResponse(session_id=result.session_id, user=UserResponse.from_domain(result.user))


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    request: Request,
    identity: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    """Terminate the presented session.

    Succeeds whether the token is live, already terminated, unknown, or
    missing altogether -- in every case the session is no longer usable.
    """
    identity.logout(bearer_token(request))
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the user that owns the presented session."""
    return UserResponse.from_domain(current_user)
