"""Role- and mode-aware validation for the auth forms.

Pure and synchronous. Field names follow the form field names used by the
client (``email``, ``password``, ``confirmPassword``, ``name``, ``penName``,
``bio``, ``genres``, ``preferredGenres``, ``moodPreferences``,
``acceptTerms``).
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from versenest_auth.models.domain import AuthMode, Genre, Mood, Role

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_REGEX = re.compile(r"^[A-Za-z\s]+$")
SPECIAL_CHAR_REGEX = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

PASSWORD_MIN_LENGTH = 8
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PEN_NAME_MIN_LENGTH = 2
PEN_NAME_MAX_LENGTH = 50
BIO_MAX_LENGTH = 500

LOGIN_FIELDS: Tuple[str, ...] = ("email", "password")
SIGNUP_FIELDS: Tuple[str, ...] = ("name", "email", "password", "confirmPassword", "acceptTerms")
WRITER_SIGNUP_FIELDS: Tuple[str, ...] = ("penName", "bio", "genres")
READER_SIGNUP_FIELDS: Tuple[str, ...] = ("preferredGenres", "moodPreferences")

IMMUTABLE_PROFILE_FIELDS = frozenset({"id", "email", "role", "createdAt"})


@dataclass(frozen=True)
class FieldResult:
    is_valid: bool
    message: str = ""


VALID = FieldResult(True)


@dataclass
class FormValidation:
    is_valid: bool
    errors: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationContext:
    """What a single field is validated against.

    ``form_data`` is only consulted for cross-field rules (password
    confirmation).
    """
    mode: AuthMode = AuthMode.SIGNUP
    role: Optional[Role] = None
    form_data: Mapping[str, Any] = field(default_factory=dict)


def _invalid(message: str) -> FieldResult:
    return FieldResult(False, message)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def validate_required(value: Any, label: str) -> FieldResult:
    if not _text(value).strip():
        return _invalid(f"{label} is required")
    return VALID


def validate_email(value: Any) -> FieldResult:
    email = _text(value)
    if not email:
        return _invalid("Email is required")
    if not EMAIL_REGEX.match(email.strip()):
        return _invalid("Please enter a valid email address")
    return VALID


def validate_password(value: Any, mode: AuthMode = AuthMode.SIGNUP) -> FieldResult:
    password = _text(value)
    if not password:
        return _invalid("Password is required")
    if mode is AuthMode.LOGIN:
        return VALID
    if len(password) < PASSWORD_MIN_LENGTH:
        return _invalid(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        return _invalid("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        return _invalid("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        return _invalid("Password must contain at least one number")
    return VALID


def validate_password_confirmation(password: Any, confirm_password: Any) -> FieldResult:
    if not _text(confirm_password):
        return _invalid("Please confirm your password")
    if password != confirm_password:
        return _invalid("Passwords do not match")
    return VALID


def validate_name(value: Any) -> FieldResult:
    required = validate_required(value, "Name")
    if not required.is_valid:
        return required
    name = _text(value).strip()
    if len(name) < NAME_MIN_LENGTH:
        return _invalid(f"Name must be at least {NAME_MIN_LENGTH} characters long")
    if len(name) > NAME_MAX_LENGTH:
        return _invalid(f"Name must be at most {NAME_MAX_LENGTH} characters")
    if not NAME_REGEX.match(name):
        return _invalid("Name can only contain letters and spaces")
    return VALID


def validate_pen_name(value: Any) -> FieldResult:
    required = validate_required(value, "Pen name")
    if not required.is_valid:
        return required
    pen_name = _text(value).strip()
    if len(pen_name) < PEN_NAME_MIN_LENGTH:
        return _invalid(f"Pen name must be at least {PEN_NAME_MIN_LENGTH} characters long")
    if len(pen_name) > PEN_NAME_MAX_LENGTH:
        return _invalid(f"Pen name must be at most {PEN_NAME_MAX_LENGTH} characters")
    return VALID


def validate_bio(value: Any) -> FieldResult:
    if value is not None and not isinstance(value, str):
        return _invalid("Bio must be text")
    if value and len(value) > BIO_MAX_LENGTH:
        return _invalid(f"Bio must be at most {BIO_MAX_LENGTH} characters")
    return VALID


def validate_selection(value: Any, message: str, min_items: int = 1) -> FieldResult:
    if not isinstance(value, (list, tuple, set, frozenset)) or len(value) < min_items:
        return _invalid(message)
    return VALID


def _validate_tags(value: Any, allowed: type, label: str) -> FieldResult:
    if value is None:
        return VALID
    if not isinstance(value, (list, tuple, set, frozenset)):
        return _invalid(f"{label} must be a list of options")
    known = {member.value for member in allowed}
    unknown = sorted(str(v) for v in value if getattr(v, "value", v) not in known)
    if unknown:
        return _invalid(f"Unknown {label.lower()}: {', '.join(unknown)}")
    return VALID


def validate_terms(value: Any) -> FieldResult:
    if value is not True:
        return _invalid("You must accept the terms to continue")
    return VALID


# PUBLIC_INTERFACE
def applicable_fields(mode: Union[AuthMode, str], role: Union[Role, str, None]) -> Tuple[str, ...]:
    """Field names that take part in validation for this (mode, role)."""
    mode = AuthMode(mode)
    if mode is AuthMode.LOGIN:
        return LOGIN_FIELDS
    role = Role.coerce(role)
    if role is Role.WRITER:
        return SIGNUP_FIELDS + WRITER_SIGNUP_FIELDS
    if role is Role.READER:
        return SIGNUP_FIELDS + READER_SIGNUP_FIELDS
    return SIGNUP_FIELDS


_FIELD_RULES: Dict[str, Callable[[Any, ValidationContext], FieldResult]] = {
    "email": lambda v, ctx: validate_email(v),
    "password": lambda v, ctx: validate_password(v, ctx.mode),
    "confirmPassword": lambda v, ctx: validate_password_confirmation(ctx.form_data.get("password"), v),
    "name": lambda v, ctx: validate_name(v),
    "penName": lambda v, ctx: validate_pen_name(v),
    "bio": lambda v, ctx: validate_bio(v),
    "genres": lambda v, ctx: validate_selection(v, "Please select at least one genre"),
    "preferredGenres": lambda v, ctx: validate_selection(v, "Please select at least one preferred genre"),
    "moodPreferences": lambda v, ctx: _validate_tags(v, Mood, "Mood preferences"),
    "acceptTerms": lambda v, ctx: validate_terms(v),
}


# PUBLIC_INTERFACE
def validate_field(field_name: str, value: Any, context: Optional[ValidationContext] = None) -> FieldResult:
    """Validate one field.

    Fields that do not apply to the context's mode and role (or that have no
    rule) are always valid.
    """
    context = context or ValidationContext()
    if field_name not in applicable_fields(context.mode, context.role):
        return VALID
    rule = _FIELD_RULES.get(field_name)
    return rule(value, context) if rule else VALID


# PUBLIC_INTERFACE
def validate_form(form_data: Mapping[str, Any], mode: Union[AuthMode, str], role: Union[Role, str, None]) -> FormValidation:
    """Validate every field applicable to (mode, role) and collect messages."""
    context = ValidationContext(mode=AuthMode(mode), role=Role.coerce(role), form_data=form_data)
    errors: Dict[str, str] = {}
    for name in applicable_fields(context.mode, context.role):
        result = validate_field(name, form_data.get(name), context)
        if not result.is_valid:
            errors[name] = result.message
    return FormValidation(is_valid=not errors, errors=errors)


# PUBLIC_INTERFACE
def validate_profile_update(changes: Mapping[str, Any], role: Union[Role, str]) -> FormValidation:
    """Check a partial profile update for an account of ``role``.

    Identity fields and fields of the other role are refused; the remaining
    fields follow the signup rules. A None value means "leave unchanged".
    """
    role = Role.coerce(role)
    editable = {"name", *(WRITER_SIGNUP_FIELDS if role is Role.WRITER else READER_SIGNUP_FIELDS)}
    context = ValidationContext(mode=AuthMode.SIGNUP, role=role, form_data=changes)
    errors: Dict[str, str] = {}
    for name, value in changes.items():
        if name in IMMUTABLE_PROFILE_FIELDS:
            errors[name] = f"{name} cannot be changed"
        elif name not in editable:
            errors[name] = f"{name} is not a {role.value if role else 'profile'} field"
        elif value is not None:
            result = validate_field(name, value, context)
            if result.is_valid and name in {"genres", "preferredGenres"}:
                result = _validate_tags(value, Genre, "Genres")
            if not result.is_valid:
                errors[name] = result.message
    return FormValidation(is_valid=not errors, errors=errors)


@dataclass(frozen=True)
class PasswordStrength:
    score: int
    strength: str
    feedback: List[str]

    @property
    def is_valid(self) -> bool:
        return self.score >= 3


# PUBLIC_INTERFACE
def password_strength(password: str) -> PasswordStrength:
    """Score a password for a strength meter (0-5)."""
    password = password or ""
    checks = [
        (len(password) >= PASSWORD_MIN_LENGTH, f"At least {PASSWORD_MIN_LENGTH} characters"),
        (bool(re.search(r"[A-Z]", password)), "One uppercase letter"),
        (bool(re.search(r"[a-z]", password)), "One lowercase letter"),
        (bool(re.search(r"\d", password)), "One number"),
    ]
    score = sum(1 for ok, _ in checks if ok)
    feedback = [hint for ok, hint in checks if not ok]
    if SPECIAL_CHAR_REGEX.search(password):
        score += 1
    strength = "weak" if score < 2 else "medium" if score < 4 else "strong"
    return PasswordStrength(score=score, strength=strength, feedback=feedback)
