"""In-process ``IdentityService`` backed by an ``AccountDirectory``.

Used for development without a running identity service, and by the tests.
Payloads go through the same pydantic models the HTTP service validates
with, so rejections match what the HTTP client would see.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from versenest_auth.core.errors import InvalidCredentials, NotAuthenticated, ValidationRejected
from versenest_auth.db.accounts import AccountDirectory
from versenest_auth.models.auth import AuthResult, LoginRequest, registration_adapter
from versenest_auth.models.domain import ReaderUser, WriterUser

logger = logging.getLogger(__name__)


class LocalIdentityClient:
    """Identity operations served directly from an account directory."""

    def __init__(self, directory: Optional[AccountDirectory] = None) -> None:
        self.directory = directory if directory is not None else AccountDirectory()

    def _issue(self, user: Union[WriterUser, ReaderUser]) -> AuthResult:
        token, refresh_token = self.directory.issue_tokens(user)
        return AuthResult(user=user, token=token, refresh_token=refresh_token)

    async def login(self, credentials: Mapping[str, Any]) -> AuthResult:
        try:
            request = LoginRequest.model_validate(dict(credentials))
        except ValidationError:
            # a malformed email or unknown role can only be wrong credentials
            raise InvalidCredentials()
        user = self.directory.authenticate(str(request.email), request.password, request.role)
        return self._issue(user)

    async def register(self, payload: Mapping[str, Any]) -> AuthResult:
        try:
            registration = registration_adapter.validate_python(dict(payload))
        except ValidationError as ve:
            raise ValidationRejected(status_code=422) from ve
        user = self.directory.register(registration)
        return self._issue(user)

    async def validate_token(self, token: str) -> bool:
        return self.directory.is_token_valid(token)

    async def logout(self, token: Optional[str]) -> None:
        if token and not self.directory.revoke(token):
            logger.debug("Logout with an unusable token")

    async def update_profile(self, token: str, changes: Mapping[str, Any]) -> Union[WriterUser, ReaderUser]:
        if not token:
            raise NotAuthenticated()
        user = self.directory.resolve_token(token)
        return self.directory.update_profile(user.id, changes)
