"""
auth/dependencies.py -- FastAPI Depends() helper for bearer-token authentication.

get_current_user_id() is the authenticated-request guard:
  - reads "Authorization: Bearer <token>"
  - verifies the token with the TokenIssuer on app.state
  - stores the verified id on request.state.user_id and returns it

It performs no database lookup. Handlers that need the full record (e.g.
GET /users/me) load it themselves, so a deleted account surfaces as 404 from
the handler rather than as an auth failure.

Failures raise the typed errors from auth.errors; api/main.py renders them:
  no header / not a Bearer header -> MissingToken (401)
  expired                         -> TokenExpired (401)
  bad signature / claims / format -> TokenInvalid (403)

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import MissingToken
from auth.tokens import TokenIssuer


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user_id(request: Request) -> int:
    """Require a valid bearer token and return the user id it was issued for.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user_id: int = Depends(get_current_user_id)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise MissingToken()
    tokens: TokenIssuer = request.app.state.tokens
    user_id = tokens.verify(token)
    request.state.user_id = user_id
    return user_id
