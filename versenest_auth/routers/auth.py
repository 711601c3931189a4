"""Authentication routes: login, register, logout, validate.

Accounts live in the ``AccountDirectory`` attached to the app state.

Controls:
- Validate inputs via Pydantic models.
- Hash passwords; do not log secrets.
- Use Bearer tokens signed as JWT.
"""
from __future__ import annotations

from typing import Annotated, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from versenest_auth.core.errors import AuthError, NotAuthenticated
from versenest_auth.db.accounts import AccountDirectory
from versenest_auth.models.auth import (
    AuthResponse,
    LoginRequest,
    LogoutResponse,
    ReaderRegistration,
    TokenValidationRequest,
    TokenValidationResponse,
    WriterRegistration,
)

router = APIRouter(prefix="/auth", tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False)


def get_directory(request: Request) -> AccountDirectory:
    return request.app.state.directory


def http_error(exc: AuthError) -> HTTPException:
    """Translate a directory error into the HTTP response the client maps back."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=exc.status_code or status.HTTP_400_BAD_REQUEST, detail=exc.user_message, headers=headers)


def bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    directory: AccountDirectory = Depends(get_directory),
):
    """Dependency to resolve the current user from the bearer token."""
    if not token:
        raise http_error(NotAuthenticated())
    try:
        return directory.resolve_token(token)
    except AuthError as exc:
        raise http_error(exc)


def _auth_response(directory: AccountDirectory, user) -> AuthResponse:
    token, refresh_token = directory.issue_tokens(user)
    return AuthResponse(user=user, token=token, refresh_token=refresh_token)


# PUBLIC_INTERFACE
@router.post("/login", response_model=AuthResponse, summary="Login", description="Authenticate and receive tokens.")
def login(payload: LoginRequest, directory: AccountDirectory = Depends(get_directory)):
    """Authenticate a user for the role they picked.

    Returns:
        200 with user and tokens.
        401 on unknown email, wrong password or role mismatch.
    """
    try:
        user = directory.authenticate(str(payload.email), payload.password, payload.role)
    except AuthError as exc:
        raise http_error(exc)
    return _auth_response(directory, user)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register user",
    description="Create a reader or writer account.",
)
def register(
    payload: Annotated[Union[WriterRegistration, ReaderRegistration], Body(discriminator="role")],
    directory: AccountDirectory = Depends(get_directory),
):
    """Register a new account with a hashed password.

    Returns:
        201 with user and tokens if created.
        409 if email already exists.
        422 if validation fails.
    """
    try:
        user = directory.register(payload)
    except AuthError as exc:
        raise http_error(exc)
    return _auth_response(directory, user)


# PUBLIC_INTERFACE
@router.post("/logout", response_model=LogoutResponse, summary="Logout", description="Revoke the presented token.")
def logout(token: Optional[str] = Depends(bearer_token), directory: AccountDirectory = Depends(get_directory)):
    """Best-effort logout; succeeds even when the token is already unusable."""
    if token:
        directory.revoke(token)
    return LogoutResponse()


# PUBLIC_INTERFACE
@router.post("/validate", response_model=TokenValidationResponse, summary="Validate token")
def validate(payload: TokenValidationRequest, directory: AccountDirectory = Depends(get_directory)):
    """Report whether a token is still usable."""
    return TokenValidationResponse(valid=directory.is_token_valid(payload.token))
