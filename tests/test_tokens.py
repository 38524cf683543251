"""Unit tests for auth/tokens.py -- TokenIssuer issue/verify."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.tokens import ALGORITHM, TOKEN_AUDIENCE, TOKEN_ISSUER, TokenIssuer

SECRET = "s" * 40


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(secret=SECRET, expire_seconds=3600)


@pytest.mark.parametrize("user_id", [1, 42, 2**31 - 1])
def test_verify_returns_issued_subject(issuer, user_id):
    assert issuer.verify(issuer.issue(user_id)) == user_id


def test_token_claims(issuer):
    claims = jwt.get_unverified_claims(issuer.issue(7))
    assert claims["sub"] == "7"
    assert claims["iss"] == TOKEN_ISSUER
    assert claims["aud"] == TOKEN_AUDIENCE
    assert claims["exp"] - claims["iat"] == 3600


def test_default_lifetime_comes_from_configuration():
    short = TokenIssuer(secret=SECRET, expire_seconds=60)
    claims = jwt.get_unverified_claims(short.issue(1))
    assert claims["exp"] - claims["iat"] == 60


def test_expired_token_raises_token_expired(issuer):
    token = issuer.issue(5, expires_in=timedelta(seconds=-1))
    with pytest.raises(TokenExpired):
        issuer.verify(token)


def test_wrong_secret_raises_token_invalid(issuer):
    other = TokenIssuer(secret="o" * 40, expire_seconds=3600)
    with pytest.raises(TokenInvalid):
        issuer.verify(other.issue(5))


def test_expired_and_forged_reports_invalid(issuer):
    """Signature is checked before expiry: a forged token is never reported as merely expired."""
    other = TokenIssuer(secret="o" * 40, expire_seconds=3600)
    with pytest.raises(TokenInvalid):
        issuer.verify(other.issue(5, expires_in=timedelta(seconds=-1)))


@pytest.mark.parametrize(
    "claims",
    [
        {"iss": "someone-else", "aud": TOKEN_AUDIENCE},
        {"iss": TOKEN_ISSUER, "aud": "someone-else"},
    ],
    ids=["issuer", "audience"],
)
def test_claim_mismatch_raises_token_invalid(issuer, claims):
    now = datetime.now(timezone.utc)
    token = jwt.encode({"sub": "5", "iat": now, "exp": now + timedelta(minutes=5), **claims}, SECRET, ALGORITHM)
    with pytest.raises(TokenInvalid):
        issuer.verify(token)


def test_non_numeric_subject_raises_token_invalid(issuer):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "alice", "iss": TOKEN_ISSUER, "aud": TOKEN_AUDIENCE, "exp": now + timedelta(minutes=5)},
        SECRET,
        ALGORITHM,
    )
    with pytest.raises(TokenInvalid):
        issuer.verify(token)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token_raises_token_invalid(issuer, token):
    with pytest.raises(TokenInvalid):
        issuer.verify(token)


def test_issuer_requires_secret():
    with pytest.raises(ValueError):
        TokenIssuer(secret="", expire_seconds=3600)


def test_from_settings_threads_configuration():
    from core.config import Settings

    settings = Settings(_env_file=None, jwt_secret="k" * 40, token_expire_seconds="2h")
    issuer = TokenIssuer.from_settings(settings)
    assert issuer.expire_seconds == 7200
    assert TokenIssuer(secret="k" * 40, expire_seconds=10).verify(issuer.issue(3)) == 3
