"""
API request and response models for passgate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclass in auth/models.py, which
owns the internal domain representation. Route handlers map between the two.

Wire format is camelCase (firstName, createdAt, ...). Python attribute names
stay snake_case; the alias generator does the translation both ways.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

import re
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PASSWORD_MIN_LENGTH = 8
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

# One lowercase, one uppercase, one digit and one of the listed symbols.
_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9])(?=.*[!@#$%^&*])")
PASSWORD_RULE_MESSAGE = (
    "Password must contain at least one lowercase letter, one uppercase letter, one number, and one special character"
)

_Name = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH),
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(_CamelModel):
    """Request body for POST /api/v1/auth/register.

    Unknown fields are ignored. Names are trimmed before the length check.
    The email is lowercased by the registration flow, not here, so the
    validation error for a bad address echoes what the client sent.
    """

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    first_name: _Name
    last_name: _Name

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")
        if not _PASSWORD_RULE.match(value):
            raise ValueError(PASSWORD_RULE_MESSAGE)
        return value


class LoginRequest(_CamelModel):
    """Request body for POST /api/v1/auth/login. No strength rules on the password."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserOut(_CamelModel):
    """Public view of a user. There is no password field, by construction."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    first_name: str
    last_name: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserOut
    token: str


class AuthResponse(BaseModel):
    """Response body for register (201) and login (200)."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: AuthData


class ProfileData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserOut


class ProfileResponse(BaseModel):
    """Response body for GET /api/v1/users/me."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: ProfileData


class FieldError(BaseModel):
    """One validation failure, keyed by the wire (camelCase) field name."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    errors: Optional[list[FieldError]] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "OK"
    timestamp: str
    uptime: float
    version: str
