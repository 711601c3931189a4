"""Turn form values into identity-service payloads, plus small display helpers."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Union

from versenest_auth.models.domain import ReaderUser, Role, WriterUser

MAX_INPUT_LENGTH = 500

_ANGLE_BRACKETS = re.compile(r"[<>]")


def sanitize_input(value: Any) -> Any:
    """Trim text, drop angle brackets and cap the length. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    return _ANGLE_BRACKETS.sub("", value.strip())[:MAX_INPUT_LENGTH]


def _tags(value: Any) -> List[str]:
    if not value:
        return []
    # keep selection order, drop repeats
    return list(dict.fromkeys(str(getattr(v, "value", v)) for v in value))


def _email(form_data: Mapping[str, Any]) -> str:
    return sanitize_input((form_data.get("email") or "").lower())


# PUBLIC_INTERFACE
def build_login_payload(form_data: Mapping[str, Any], role: Union[Role, str]) -> Dict[str, Any]:
    """Credentials for ``IdentityService.login``."""
    return {
        "email": _email(form_data),
        "password": form_data.get("password") or "",
        "role": Role(role).value,
    }


# PUBLIC_INTERFACE
def build_registration_payload(form_data: Mapping[str, Any], role: Union[Role, str]) -> Dict[str, Any]:
    """Registration body for ``role``.

    Only the chosen role's fields are included; ``confirmPassword`` and
    ``acceptTerms`` never leave the client.
    """
    role = Role(role)
    payload: Dict[str, Any] = {
        "email": _email(form_data),
        "password": form_data.get("password") or "",
        "name": sanitize_input(form_data.get("name") or ""),
        "role": role.value,
    }
    if role is Role.WRITER:
        payload.update(
            penName=sanitize_input(form_data.get("penName") or ""),
            bio=sanitize_input(form_data.get("bio") or ""),
            genres=_tags(form_data.get("genres")),
        )
    else:
        payload.update(
            preferredGenres=_tags(form_data.get("preferredGenres")),
            moodPreferences=_tags(form_data.get("moodPreferences")),
        )
    return payload


# PUBLIC_INTERFACE
def build_profile_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Sanitize a partial profile update before it is sent."""
    cleaned: Dict[str, Any] = {}
    for key, value in changes.items():
        if value is None:
            # explicit nulls leave the stored value alone
            cleaned[key] = None
        elif key in {"genres", "preferredGenres", "moodPreferences"}:
            cleaned[key] = _tags(value)
        else:
            cleaned[key] = sanitize_input(value)
    return cleaned


# PUBLIC_INTERFACE
def display_name(user: Optional[Union[WriterUser, ReaderUser]]) -> str:
    """Name shown in navigation: pen name for writers, then name, then email local part."""
    if user is None:
        return "Guest"
    if isinstance(user, WriterUser) and user.pen_name:
        return user.pen_name
    if user.name:
        return user.name
    local = user.email.split("@")[0] if user.email else ""
    return local or "User"
