"""
api/routes/v1/auth.py -- Registration and login endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; 201 {user, token}
  POST /api/v1/auth/login     -- password login; 200 {user, token}

Security:
  [R1] Both routes are rate-limited per client address (Settings.auth_rate_limit,
       default 5 per 15 minutes). @router.post must stay ABOVE @limiter.limit so
       FastAPI registers the rate-limited wrapper.
  [R2] Login returns the same InvalidCredentials for an unknown email and a
       wrong password; the flow also equalizes bcrypt work between the two.
  [R3] Cache-Control: no-store on both responses -- they carry a bearer token.

Errors are raised as auth.errors types and rendered by api/main.py.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import auth_limit, limiter
from api.models import AuthData, AuthResponse, LoginRequest, RegisterRequest, UserOut
from auth import accounts
from auth.models import User

# Auth policy:
# - POST /api/v1/auth/register: public, rate-limited [R1]
# - POST /api/v1/auth/login:    public, rate-limited [R1]
router = APIRouter()


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
@limiter.limit(auth_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a user and return it with a freshly issued token.

    Raises EmailTaken (409) if the email is already registered, including
    when a concurrent request wins the insert race.
    """
    user, token = accounts.register(
        request.app.state.user_store,
        request.app.state.tokens,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return _auth_response(201, "User registered successfully", user, token)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(auth_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the user and a token [R2]."""
    user, token = accounts.login(
        request.app.state.user_store,
        request.app.state.tokens,
        email=body.email,
        password=body.password,
    )
    return _auth_response(200, "Login successful", user, token)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _auth_response(status_code: int, message: str, user: User, token: str) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            message=message,
            data=AuthData(user=UserOut.from_user(user), token=token),
        ).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"  # [R3]
    return resp
