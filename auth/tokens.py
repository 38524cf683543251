"""
auth/tokens.py -- JWT issue and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (the user id, as a string --
       RFC 7519 requires a StringOrURI), iss, aud, iat and exp. Nothing is
       persisted: a token is valid exactly when its signature, issuer, audience
       and expiry check out at verification time. There is no revocation list.

  Errors: verify() distinguishes an expired token (TokenExpired, 401 -- the
       client should prompt for a new login) from every other failure
       (TokenInvalid, 403 -- bad signature, wrong issuer/audience, malformed).
       jose checks the signature before the claims, so a tampered token that
       is also expired still reports TokenInvalid.

  Secret: passed in through Settings, which refuses to load without a
       JWT_SECRET of at least 32 characters. TokenIssuer never reads the
       environment itself.

Layer rule: no imports from api/. core.config is imported for typing only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("passgate.auth")

ALGORITHM = "HS256"
TOKEN_ISSUER = "auth-api"
TOKEN_AUDIENCE = "auth-api-users"


class TokenIssuer:
    """Signs and verifies bearer tokens with one process-wide secret.

    Usage:
        tokens = TokenIssuer(secret=settings.jwt_secret, expire_seconds=settings.token_expire_seconds)
        token = tokens.issue(42)
        tokens.verify(token)  # -> 42
    """

    def __init__(self, secret: str, expire_seconds: int) -> None:
        if not secret:
            raise ValueError("TokenIssuer requires a signing secret.")
        self._secret = secret
        self.expire_seconds = expire_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(secret=settings.jwt_secret, expire_seconds=settings.token_expire_seconds)

    def issue(self, user_id: int, expires_in: timedelta | None = None) -> str:
        """Encode a signed JWT whose subject is user_id.

        Args:
            user_id:    Numeric user ID from the store.
            expires_in: Override for the configured lifetime. Tests pass a
                        negative delta to mint an already-expired token.
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_in if expires_in is not None else timedelta(seconds=self.expire_seconds)
        payload = {
            "sub": str(user_id),
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the user id embedded in a valid token.

        Raises TokenExpired if the token is past its exp claim, TokenInvalid
        for a bad signature, issuer or audience mismatch, or malformed token.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=TOKEN_AUDIENCE,
                issuer=TOKEN_ISSUER,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            logger.info("Rejected token: %s", exc.__class__.__name__)
            raise TokenInvalid() from exc

        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenInvalid() from exc
