"""Form logic for one (role, mode) auth panel.

The controller owns the form values and per-field errors, validates before
any network call, delegates to the session store, and navigates to the
role's landing route on success. A failed submission never discards what the
user typed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from versenest_auth.models.domain import GENRE_OPTIONS, MOOD_OPTIONS, AuthMode, Role
from versenest_auth.services import redirect
from versenest_auth.services.payloads import build_login_payload, build_registration_payload
from versenest_auth.services.session import SessionStore
from versenest_auth.services.validation import applicable_fields, validate_form

logger = logging.getLogger(__name__)

Navigate = Callable[[str], Any]

UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."

_SELECTION_OPTIONS = {
    "genres": GENRE_OPTIONS,
    "preferredGenres": GENRE_OPTIONS,
    "moodPreferences": MOOD_OPTIONS,
}
_SELECTION_FIELDS = frozenset(_SELECTION_OPTIONS)


def initial_values(role: Union[Role, str], mode: Union[AuthMode, str]) -> Dict[str, Any]:
    """Blank values for every field the (role, mode) form renders."""
    values: Dict[str, Any] = {}
    for name in applicable_fields(mode, role):
        if name in _SELECTION_FIELDS:
            values[name] = []
        elif name == "acceptTerms":
            values[name] = False
        else:
            values[name] = ""
    return values


@dataclass
class FormState:
    values: Dict[str, Any]
    errors: Dict[str, str] = field(default_factory=dict)
    submitting: bool = False
    form_error: Optional[str] = None


class AuthFormController:
    """Login or signup form for one role."""

    def __init__(
        self,
        role: Union[Role, str],
        mode: Union[AuthMode, str],
        session: SessionStore,
        navigate: Navigate,
    ) -> None:
        self.role = Role(role)
        self.mode = AuthMode(mode)
        self.session = session
        self.navigate = navigate
        self.state = FormState(values=initial_values(self.role, self.mode))
        self.disposed = False

    @property
    def values(self) -> Dict[str, Any]:
        return self.state.values

    @property
    def errors(self) -> Dict[str, str]:
        return self.state.errors

    @property
    def can_submit(self) -> bool:
        return not (self.disposed or self.state.submitting or self.session.is_loading)

    def _check_field(self, name: str) -> None:
        if name not in self.state.values:
            raise KeyError(f"{name!r} is not a field of the {self.role.value} {self.mode.value} form")

    # PUBLIC_INTERFACE
    def set_field(self, name: str, value: Any) -> None:
        """Update one field, clearing only that field's error."""
        self._check_field(name)
        self.state.values[name] = value
        self.state.errors.pop(name, None)
        if self.state.form_error is not None:
            self.state.form_error = None
            self.session.clear_error()

    def options_for(self, name: str) -> List[Dict[str, str]]:
        """Value/label pairs a checkbox-group field offers."""
        self._check_field(name)
        if name not in _SELECTION_FIELDS:
            raise KeyError(f"{name!r} is not a selection field")
        return list(_SELECTION_OPTIONS[name])

    # PUBLIC_INTERFACE
    def toggle_option(self, name: str, option: Any) -> None:
        """Add or remove ``option`` from a checkbox-group field."""
        self.options_for(name)  # KeyError unless a selection field
        selected = list(self.state.values[name])
        if option in selected:
            selected.remove(option)
        else:
            selected.append(option)
        self.set_field(name, selected)

    # PUBLIC_INTERFACE
    async def submit(self) -> bool:
        """Validate and, when valid, sign in or sign up.

        Returns True when the session operation succeeded.
        """
        if not self.can_submit:
            return False
        validation = validate_form(self.state.values, self.mode, self.role)
        if not validation.is_valid:
            self.state.errors = dict(validation.errors)
            return False

        self.state.errors = {}
        self.state.form_error = None
        self.state.submitting = True
        try:
            if self.mode is AuthMode.LOGIN:
                outcome = await self.session.login(build_login_payload(self.state.values, self.role))
            else:
                outcome = await self.session.signup(build_registration_payload(self.state.values, self.role))
        except Exception:
            logger.exception("Unexpected failure during %s", self.mode.value)
            if not self.disposed:
                self.state.form_error = UNEXPECTED_ERROR
            return False
        finally:
            self.state.submitting = False

        if self.disposed:
            # panel was closed mid-flight; the session store already holds the result
            return outcome.success
        if not outcome.success:
            self.state.form_error = outcome.error or self.session.error
            return False
        self.navigate(redirect.resolve(outcome.user.role))
        return True

    # PUBLIC_INTERFACE
    def dispose(self) -> None:
        """Detach from the screen. An in-flight call still updates the session."""
        self.disposed = True
