"""Session store: the client's single source of truth about who is signed in.

Construct one instance per running client and pass it to whatever needs it;
nothing else reads or writes the persisted keys below.

Persisted keys:
- ``authToken``: JSON ``{"token": ..., "refreshToken": ...}``
- ``userData``: the serialized user

Concurrent ``login``/``signup`` calls are not coalesced; whichever resolves
last wins. Forms disable submit while ``is_loading`` to avoid that in
practice.
"""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from versenest_auth.core.config import RevalidationMode
from versenest_auth.core.errors import AuthError, NotAuthenticated, StorageFailure, ValidationFailed
from versenest_auth.db.storage import ClientStorage
from versenest_auth.models.auth import AuthResult
from versenest_auth.models.domain import ReaderUser, Role, WriterUser, dump_user, parse_user
from versenest_auth.services.identity import IdentityService
from versenest_auth.services.payloads import build_profile_changes
from versenest_auth.services.validation import validate_profile_update

logger = logging.getLogger(__name__)

TOKEN_KEY = "authToken"
USER_KEY = "userData"

AnyUser = Union[WriterUser, ReaderUser]


@dataclass(frozen=True)
class AuthOutcome:
    """Result handed back to forms after a session operation."""
    success: bool
    user: Optional[AnyUser] = None
    error: Optional[str] = None


class SessionStore:
    """Current user, credentials, loading flag and error slot."""

    def __init__(
        self,
        identity: IdentityService,
        storage: ClientStorage,
        revalidation: RevalidationMode = "optimistic",
    ) -> None:
        self.identity = identity
        self.storage = storage
        self.revalidation = revalidation
        self.user: Optional[AnyUser] = None
        self.token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None
        self.initialized = False
        self.revalidation_task: Optional[asyncio.Task] = None

    # --- derived state -------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    @property
    def role(self) -> Optional[Role]:
        return Role(self.user.role) if self.user is not None else None

    @property
    def is_reader(self) -> bool:
        return self.role is Role.READER

    @property
    def is_writer(self) -> bool:
        return self.role is Role.WRITER

    def clear_error(self) -> None:
        """Drop the last failure message, e.g. once the user edits the form."""
        self.error = None

    # --- loading scope -------------------------------------------------

    @asynccontextmanager
    async def _loading(self) -> AsyncIterator[None]:
        self.is_loading = True
        self.error = None
        try:
            yield
        finally:
            self.is_loading = False

    # --- persistence ---------------------------------------------------

    async def _persist(self) -> None:
        if self.user is None or self.token is None:
            return
        items = {
            TOKEN_KEY: json.dumps({"token": self.token, "refreshToken": self.refresh_token}),
            USER_KEY: dump_user(self.user),
        }
        try:
            await self.storage.set_items(items)
        except StorageFailure as exc:
            # the in-memory session keeps working; it just won't survive a reload
            logger.warning("Could not persist session: %s", exc)

    async def _clear_persisted(self) -> None:
        try:
            await self.storage.remove_items([TOKEN_KEY, USER_KEY])
        except StorageFailure as exc:
            logger.warning("Could not clear persisted session: %s", exc)

    async def _read_persisted(self) -> Optional[tuple]:
        try:
            raw_token = await self.storage.get_item(TOKEN_KEY)
            raw_user = await self.storage.get_item(USER_KEY)
        except StorageFailure as exc:
            logger.warning("Could not read persisted session: %s", exc)
            return None
        if not raw_token or not raw_user:
            return None
        try:
            tokens = json.loads(raw_token)
            user = parse_user(raw_user)
        except (ValueError, ValidationError):
            logger.warning("Discarding unreadable persisted session")
            await self._clear_persisted()
            return None
        token = tokens.get("token") if isinstance(tokens, dict) else None
        if not token:
            await self._clear_persisted()
            return None
        return user, token, tokens.get("refreshToken")

    def _apply(self, result: AuthResult) -> None:
        self.user = result.user
        self.token = result.token
        self.refresh_token = result.refresh_token

    def _forget(self) -> None:
        self.user = None
        self.token = None
        self.refresh_token = None

    # --- lifecycle -----------------------------------------------------

    # PUBLIC_INTERFACE
    async def initialize(self) -> None:
        """Rehydrate the session from persisted storage.

        Runs once per store; later calls do nothing. With ``optimistic``
        revalidation the cached user is trusted without a network call,
        ``background`` trusts it and checks the token in a task, and
        ``blocking`` checks the token before marking the session
        authenticated. Never raises.
        """
        if self.initialized:
            return
        self.initialized = True
        self.is_loading = True
        try:
            cached = await self._read_persisted()
            if cached is None:
                return
            user, token, refresh_token = cached
            if self.revalidation == "blocking" and not await self._token_still_valid(token):
                await self._clear_persisted()
                return
            self.user, self.token, self.refresh_token = user, token, refresh_token
            if self.revalidation == "background":
                self.revalidation_task = asyncio.create_task(self._revalidate(token))
        finally:
            self.is_loading = False

    async def _token_still_valid(self, token: str) -> bool:
        try:
            return await self.identity.validate_token(token)
        except AuthError as exc:
            # an unreachable service is not proof the token is bad
            logger.warning("Token revalidation failed: %s", type(exc).__name__)
            return True
        except Exception:
            logger.exception("Unexpected failure while revalidating the cached token")
            return True

    async def _revalidate(self, token: str) -> None:
        if await self._token_still_valid(token):
            return
        if self.token == token:
            logger.info("Cached session token was rejected; signing out")
            self._forget()
            await self._clear_persisted()

    # PUBLIC_INTERFACE
    async def login(self, credentials: Mapping[str, Any]) -> AuthOutcome:
        """Sign in. Failures land in ``error`` and leave ``user`` untouched."""
        return await self._authenticate(self.identity.login, credentials)

    # PUBLIC_INTERFACE
    async def signup(self, payload: Mapping[str, Any]) -> AuthOutcome:
        """Register and sign in, same contract as ``login``."""
        return await self._authenticate(self.identity.register, payload)

    async def _authenticate(
        self, call: Callable[[Mapping[str, Any]], Awaitable[AuthResult]], body: Mapping[str, Any]
    ) -> AuthOutcome:
        async with self._loading():
            try:
                result = await call(body)
            except AuthError as exc:
                self.error = exc.user_message
                return AuthOutcome(success=False, error=self.error)
            self._apply(result)
            await self._persist()
            logger.info("Signed in as %s %s", result.user.role, result.user.id)
            return AuthOutcome(success=True, user=result.user)

    # PUBLIC_INTERFACE
    async def logout(self) -> None:
        """Sign out locally whether or not the identity service hears about it."""
        token = self.token
        try:
            if token:
                await self.identity.logout(token)
        except AuthError as exc:
            logger.warning("Remote logout failed: %s", type(exc).__name__)
        finally:
            self._forget()
            self.error = None
            await self._clear_persisted()

    # PUBLIC_INTERFACE
    async def update_profile(self, changes: Mapping[str, Any]) -> AuthOutcome:
        """Send a partial profile update; only the confirmed user is kept."""
        if self.user is None or self.token is None:
            self.error = NotAuthenticated.user_message
            return AuthOutcome(success=False, error=self.error)
        changes = build_profile_changes(changes)
        async with self._loading():
            try:
                validation = validate_profile_update(changes, self.user.role)
                if not validation.is_valid:
                    raise ValidationFailed(validation.errors, next(iter(validation.errors.values())))
                confirmed = await self.identity.update_profile(self.token, changes)
            except AuthError as exc:
                self.error = exc.user_message
                return AuthOutcome(success=False, error=self.error)
            if confirmed.id != self.user.id or confirmed.role != self.user.role:
                self.error = "The identity service returned a different account."
                return AuthOutcome(success=False, error=self.error)
            self.user = confirmed
            await self._persist()
            return AuthOutcome(success=True, user=confirmed)
