"""Client context for dependency injection."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from versenest_auth.controllers.auth_form import Navigate
from versenest_auth.controllers.role_selection import RoleSelectionController
from versenest_auth.core.config import Settings, get_settings
from versenest_auth.db.storage import ClientStorage, storage_from_settings
from versenest_auth.services.identity import HttpIdentityClient, IdentityService
from versenest_auth.services.session import SessionStore


@dataclass
class AuthContext:
    """
    Everything the auth screens need, built once per running client.

    Usage:
        async with AuthContext.from_settings() as ctx:
            await ctx.session.initialize()
            panels = ctx.role_selection(navigate=router.push)
    """

    settings: Settings
    identity: IdentityService
    storage: ClientStorage
    session: SessionStore = field(init=False)

    def __post_init__(self) -> None:
        self.session = SessionStore(self.identity, self.storage, revalidation=self.settings.startup_revalidation)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, identity: Optional[IdentityService] = None) -> "AuthContext":
        settings = settings or get_settings()
        return cls(
            settings=settings,
            identity=identity or HttpIdentityClient.from_settings(settings),
            storage=storage_from_settings(settings),
        )

    def role_selection(self, navigate: Navigate) -> RoleSelectionController:
        """A fresh role-selection controller for one start screen."""
        return RoleSelectionController(self.session, navigate)

    async def aclose(self) -> None:
        """Cancel pending revalidation and release the identity client's connections."""
        task = self.session.revalidation_task
        if task is not None and not task.done():
            task.cancel()
        close = getattr(self.identity, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "AuthContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
