"""Which role panel is open and which tab it shows.

At most one of the writer/reader panels is expanded. Opening one forces the
other back to its closed, default state, and every change of role or tab
throws away the previous form.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from versenest_auth.controllers.auth_form import AuthFormController, Navigate
from versenest_auth.models.domain import AuthMode, Role
from versenest_auth.services.session import SessionStore

DEFAULT_TAB = AuthMode.SIGNUP

FormFactory = Callable[[Role, AuthMode], AuthFormController]


class RoleSelectionError(RuntimeError):
    """A transition was requested from a state that does not allow it."""


@dataclass
class PanelState:
    expanded: bool = False
    tab: AuthMode = DEFAULT_TAB


@dataclass(frozen=True)
class RoleSelectionState:
    active_role: Optional[Role]
    active_tab: Optional[AuthMode]


class RoleSelectionController:
    """State machine over (active role, active tab) for the start screen."""

    def __init__(self, session: SessionStore, navigate: Navigate, form_factory: Optional[FormFactory] = None) -> None:
        self.session = session
        self.navigate = navigate
        self._form_factory = form_factory or (lambda role, mode: AuthFormController(role, mode, session, navigate))
        self.panels: Dict[Role, PanelState] = {role: PanelState() for role in Role}
        self.form: Optional[AuthFormController] = None

    @property
    def active_role(self) -> Optional[Role]:
        for role, panel in self.panels.items():
            if panel.expanded:
                return role
        return None

    @property
    def active_tab(self) -> Optional[AuthMode]:
        role = self.active_role
        return self.panels[role].tab if role else None

    def is_expanded(self, role: Union[Role, str]) -> bool:
        return self.panels[Role(role)].expanded

    def snapshot(self) -> RoleSelectionState:
        return RoleSelectionState(active_role=self.active_role, active_tab=self.active_tab)

    def _replace_form(self, role: Optional[Role], tab: Optional[AuthMode]) -> None:
        if self.form is not None:
            self.form.dispose()
        self.form = self._form_factory(role, tab) if role and tab else None

    # PUBLIC_INTERFACE
    def open_role(self, role: Union[Role, str], tab: Union[AuthMode, str] = DEFAULT_TAB) -> AuthFormController:
        """Expand ``role``'s panel on ``tab``, closing the other panel."""
        role, tab = Role(role), AuthMode(tab)
        self.panels[role.other] = PanelState()
        self.panels[role] = PanelState(expanded=True, tab=tab)
        self._replace_form(role, tab)
        return self.form

    # PUBLIC_INTERFACE
    def change_tab(self, tab: Union[AuthMode, str]) -> AuthFormController:
        """Switch the open panel between login and signup."""
        role = self.active_role
        if role is None:
            raise RoleSelectionError("No role panel is open")
        tab = AuthMode(tab)
        if tab is self.panels[role].tab and self.form is not None:
            return self.form
        self.panels[role].tab = tab
        self._replace_form(role, tab)
        return self.form

    # PUBLIC_INTERFACE
    def close_role(self) -> None:
        """Collapse the open panel, discarding its form."""
        self.panels = {role: PanelState() for role in Role}
        self._replace_form(None, None)

    # PUBLIC_INTERFACE
    def reset(self) -> None:
        """Return to the initial state when the owning screen goes away."""
        self.close_role()
