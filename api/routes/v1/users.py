"""
api/routes/v1/users.py -- Endpoints for the authenticated user.

Routes:
  GET /api/v1/users/me -- profile of the token's subject (requires Bearer token)

The guard (auth.dependencies.get_current_user_id) only verifies the token.
This handler loads the record, so a token for a deleted account yields 404.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import ProfileData, ProfileResponse, UserOut
from auth import accounts
from auth.dependencies import get_current_user_id

router = APIRouter()


@router.get("/users/me", response_model=ProfileResponse)
def me(request: Request, user_id: int = Depends(get_current_user_id)) -> JSONResponse:
    """Return the current user's profile. The password hash is never included."""
    user = accounts.get_profile(request.app.state.user_store, user_id)
    return JSONResponse(
        content=ProfileResponse(
            message="User profile retrieved successfully",
            data=ProfileData(user=UserOut.from_user(user)),
        ).model_dump(by_alias=True)
    )
