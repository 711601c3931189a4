"""Identity service boundary.

``IdentityService`` is the five-operation contract the session store depends
on. ``HttpIdentityClient`` talks to the HTTP identity service with
``httpx.AsyncClient``; ``LocalIdentityClient`` (see ``local_identity``) serves
the same contract in-process.

No retries happen here: a failed call raises immediately and the caller
decides whether to let the user resubmit.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Type, Union

import httpx
from pydantic import ValidationError

from versenest_auth.core.config import Settings, get_settings
from versenest_auth.core.errors import (
    AuthError,
    DuplicateAccount,
    InvalidCredentials,
    NetworkFailure,
    NotAuthenticated,
    ServerFailure,
    ValidationRejected,
)
from versenest_auth.models.auth import AuthResponse, AuthResult, ProfileResponse, TokenValidationResponse
from versenest_auth.models.domain import ReaderUser, WriterUser

logger = logging.getLogger(__name__)

AnyUser = Union[WriterUser, ReaderUser]


class IdentityService(Protocol):
    """Operations the auth workflow needs from an identity backend."""

    async def login(self, credentials: Mapping[str, Any]) -> AuthResult: ...

    async def register(self, payload: Mapping[str, Any]) -> AuthResult: ...

    async def validate_token(self, token: str) -> bool: ...

    async def logout(self, token: Optional[str]) -> None: ...

    async def update_profile(self, token: str, changes: Mapping[str, Any]) -> AnyUser: ...


def _detail(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    detail = body.get("detail") if isinstance(body, dict) else None
    return detail if isinstance(detail, str) else None


# PUBLIC_INTERFACE
def error_for_response(response: httpx.Response, unauthorized: Type[AuthError] = InvalidCredentials) -> AuthError:
    """Map an unsuccessful response to the error taxonomy.

    ``unauthorized`` picks the error for 401/403 since a rejected login and an
    expired session read differently to the user.
    """
    status = response.status_code
    if status in (401, 403):
        return unauthorized(status_code=status)
    if status == 409:
        return DuplicateAccount(status_code=status)
    if status in (400, 422):
        return ValidationRejected(status_code=status)
    if status >= 500:
        return ServerFailure(status_code=status)
    return AuthError(_detail(response), status_code=status)


class HttpIdentityClient:
    """``IdentityService`` over HTTP.

    Pass ``client`` to reuse or substitute the underlying ``httpx.AsyncClient``
    (for example one mounted on an ASGI app in tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "HttpIdentityClient":
        settings = settings or get_settings()
        return cls(settings.identity_base_url, timeout=settings.identity_timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Mapping[str, Any]] = None,
        token: Optional[str] = None,
        unauthorized: Type[AuthError] = InvalidCredentials,
    ) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.request(method, path, json=dict(json) if json is not None else None, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("Identity service %s %s failed: %s", method, path, type(exc).__name__)
            raise NetworkFailure() from exc
        if response.is_error:
            raise error_for_response(response, unauthorized)
        try:
            return response.json()
        except ValueError as exc:
            raise ServerFailure("Unexpected response from the identity service.") from exc

    @staticmethod
    def _auth_result(body: Dict[str, Any]) -> AuthResult:
        try:
            parsed = AuthResponse.model_validate(body)
        except ValidationError as exc:
            raise ServerFailure("Unexpected response from the identity service.") from exc
        return AuthResult(user=parsed.user, token=parsed.token, refresh_token=parsed.refresh_token)

    async def login(self, credentials: Mapping[str, Any]) -> AuthResult:
        body = await self._request("POST", "/auth/login", json=credentials)
        return self._auth_result(body)

    async def register(self, payload: Mapping[str, Any]) -> AuthResult:
        body = await self._request("POST", "/auth/register", json=payload)
        return self._auth_result(body)

    async def validate_token(self, token: str) -> bool:
        body = await self._request("POST", "/auth/validate", json={"token": token})
        try:
            return TokenValidationResponse.model_validate(body).valid
        except ValidationError as exc:
            raise ServerFailure("Unexpected response from the identity service.") from exc

    async def logout(self, token: Optional[str]) -> None:
        await self._request("POST", "/auth/logout", token=token, unauthorized=NotAuthenticated)

    async def update_profile(self, token: str, changes: Mapping[str, Any]) -> AnyUser:
        body = await self._request("PUT", "/users/me", json=changes, token=token, unauthorized=NotAuthenticated)
        try:
            return ProfileResponse.model_validate(body).user
        except ValidationError as exc:
            raise ServerFailure("Unexpected response from the identity service.") from exc
