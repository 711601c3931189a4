"""Profile endpoints for the signed-in account."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from versenest_auth.core.errors import AuthError
from versenest_auth.db.accounts import AccountDirectory
from versenest_auth.models.auth import ProfileResponse
from versenest_auth.routers.auth import get_current_user, get_directory, http_error

router = APIRouter(prefix="/users", tags=["users"])


# PUBLIC_INTERFACE
@router.get("/me", response_model=ProfileResponse, summary="Current user")
def me(current=Depends(get_current_user)):
    """Return current user data."""
    return ProfileResponse(user=current)


# PUBLIC_INTERFACE
@router.put("/me", response_model=ProfileResponse, summary="Update profile", description="Partially update the current user.")
def update_me(
    changes: Dict[str, Any] = Body(...),
    current=Depends(get_current_user),
    directory: AccountDirectory = Depends(get_directory),
):
    """Apply a partial update. Identity fields and other-role fields are rejected with 422."""
    try:
        user = directory.update_profile(current.id, changes)
    except AuthError as exc:
        raise http_error(exc)
    return ProfileResponse(user=user)
