"""Unit tests for core/config.py -- Settings loading and startup validation."""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings, parse_duration

SECRET = "c" * 40


@pytest.mark.parametrize(
    ("raw", "seconds"),
    [("7d", 604800), ("12h", 43200), ("30m", 1800), ("45s", 45), ("3600", 3600), (90, 90)],
)
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == seconds


@pytest.mark.parametrize("raw", ["soon", "7w", "1.5h", ""])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_missing_secret_fails_fast(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValidationError, match="JWT_SECRET is required"):
        Settings(_env_file=None)


def test_short_secret_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, jwt_secret="too-short")


def test_defaults():
    settings = Settings(_env_file=None, jwt_secret=SECRET)
    assert settings.token_expire_seconds == 7 * 24 * 3600
    assert Settings.model_fields["bcrypt_rounds"].default == 12
    assert settings.port == 3000
    assert settings.auth_rate_limit == "5/15minutes"
    assert settings.global_rate_limit == "100/15minutes"
    assert settings.database_url.startswith("sqlite:///")


def test_expiry_from_jwt_expires_in(monkeypatch):
    monkeypatch.setenv("JWT_EXPIRES_IN", "12h")
    assert Settings(_env_file=None, jwt_secret=SECRET).token_expire_seconds == 43200


def test_expiry_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret=SECRET, token_expire_seconds=0)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///elsewhere.db")
    monkeypatch.setenv("CORS_ORIGINS", '["https://app.acme.io"]')
    settings = Settings(_env_file=None, jwt_secret=SECRET)
    assert settings.port == 8080
    assert settings.database_url == "sqlite:///elsewhere.db"
    assert settings.cors_origins == ["https://app.acme.io"]


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret=SECRET, bcrypt_rounds=3)


def test_log_level_normalized():
    assert Settings(_env_file=None, jwt_secret=SECRET, log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        Settings(_env_file=None, jwt_secret=SECRET, log_level="chatty")


def test_public_view_masks_secret():
    view = Settings(_env_file=None, jwt_secret=SECRET).public_view()
    assert view["jwt_secret"] == "********"
    assert SECRET not in str(view)


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
