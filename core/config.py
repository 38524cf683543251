"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for passgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  Explicit threading: the API lifespan reads Settings once and hands the
      relevant values to UserStore and TokenIssuer constructors. Nothing under
      auth/ calls get_settings() itself, so tests can build collaborators from
      a hand-made Settings instance.

Security notes:
  [S1] JWT_SECRET is required. There is no generated fallback -- a missing
       secret is a hard startup failure.
  [S2] JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy and a short key weakens every issued token.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("passgate.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'passgate.db'}"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def parse_duration(value: str | int) -> int:
    """Convert "7d" / "12h" / "30m" / "45s" / "3600" into a number of seconds.

    Integers pass through unchanged. Raises ValueError for anything else.
    """
    if isinstance(value, int):
        return value
    match = _DURATION_RE.match(str(value))
    if match is None:
        raise ValueError(f"Invalid duration {value!r}. Use seconds or a value like '7d', '12h', '30m'.")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except jwt_secret has a default. The validators enforce the
    startup-safety rules, so an invalid environment fails before the server
    binds its port.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured"; the validator raises.
    jwt_secret: str = ""
    # Accepts TOKEN_EXPIRE_SECONDS=604800 or the shorter JWT_EXPIRES_IN=7d.
    token_expire_seconds: int = Field(
        default=7 * 24 * 3600,
        validation_alias=AliasChoices("token_expire_seconds", "jwt_expires_in"),
    )

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    host: str = "0.0.0.0"  # noqa: S104 # nosec B104 -- bind address is operator-configurable
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: list[str] = ["*"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Rate limiting (slowapi limit strings)
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    auth_rate_limit: str = "5/15minutes"
    global_rate_limit: str = "100/15minutes"

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("token_expire_seconds", mode="before")
    @classmethod
    def parse_token_expiry(cls, value):
        seconds = parse_duration(value)
        if seconds <= 0:
            raise ValueError("Token expiry must be a positive duration.")
        return seconds

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}.")
        return level

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Refuse to start without a usable signing secret [S1][S2]."""
        if not self.jwt_secret:
            raise ValueError(
                "JWT_SECRET is required. " "Set JWT_SECRET in your environment or .env file before starting the server."
            )
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    def public_view(self) -> dict:
        """Return the settings as a dict with the signing secret masked."""
        data = self.model_dump()
        data["jwt_secret"] = "********"
        return data


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    This is the FastAPI pattern for config (see FastAPI docs /advanced/settings/).

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
