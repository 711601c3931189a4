"""In-memory account directory backing the reference identity service.

Holds user records with password hashes, enforces email uniqueness, issues
and revokes tokens. Both the FastAPI routes and ``LocalIdentityClient`` sit on
top of one directory instance.

Controls:
- Hash passwords; never store or log them in clear text.
- Normalize emails before lookup.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Set, Tuple, Union
from uuid import uuid4

from jose import JWTError
from pydantic import ValidationError

from versenest_auth.core.errors import DuplicateAccount, InvalidCredentials, NotAuthenticated, ValidationRejected
from versenest_auth.models.auth import (
    ReaderProfileUpdate,
    ReaderRegistration,
    WriterProfileUpdate,
    WriterRegistration,
)
from versenest_auth.models.domain import ReaderUser, Role, WriterUser
from versenest_auth.security.tokens import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

AnyUser = Union[WriterUser, ReaderUser]
AnyRegistration = Union[WriterRegistration, ReaderRegistration]


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountDirectory:
    """User records keyed by id, with an email index and a token revocation list."""

    def __init__(self) -> None:
        self._users: Dict[str, AnyUser] = {}  # id -> user
        self._password_hashes: Dict[str, str] = {}  # id -> hash
        self._ids_by_email: Dict[str, str] = {}  # email -> id
        self._revoked: Set[str] = set()  # jti and sid

    # PUBLIC_INTERFACE
    def reset(self) -> None:
        """Forget every account and revoked token."""
        self._users.clear()
        self._password_hashes.clear()
        self._ids_by_email.clear()
        self._revoked.clear()

    def __len__(self) -> int:
        return len(self._users)

    def get(self, user_id: str) -> Optional[AnyUser]:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[AnyUser]:
        uid = self._ids_by_email.get(normalize_email(email))
        return self._users.get(uid) if uid else None

    # PUBLIC_INTERFACE
    def register(self, registration: AnyRegistration) -> AnyUser:
        """Create an account from a validated registration payload.

        Raises:
            DuplicateAccount: If the email is already registered.
        """
        email = normalize_email(str(registration.email))
        if email in self._ids_by_email:
            raise DuplicateAccount()
        try:
            pwd_hash = hash_password(registration.password)
        except ValueError as ve:
            raise ValidationRejected(str(ve))

        common = {
            "id": uuid4().hex,
            "email": email,
            "name": registration.name.strip(),
            "created_at": datetime.now(timezone.utc),
        }
        user: AnyUser
        if isinstance(registration, WriterRegistration):
            user = WriterUser(
                **common,
                pen_name=registration.pen_name.strip(),
                bio=registration.bio.strip(),
                genres=list(dict.fromkeys(registration.genres)),
            )
        else:
            user = ReaderUser(
                **common,
                preferred_genres=list(dict.fromkeys(registration.preferred_genres)),
                mood_preferences=list(dict.fromkeys(registration.mood_preferences)),
            )
        self._users[user.id] = user
        self._password_hashes[user.id] = pwd_hash
        self._ids_by_email[email] = user.id
        logger.info("Registered %s account %s", user.role, user.id)
        return user

    # PUBLIC_INTERFACE
    def authenticate(self, email: str, password: str, role: Union[Role, str]) -> AnyUser:
        """Return the account for valid credentials.

        A correct password used with a role other than the registered one is
        rejected like a wrong password.

        Raises:
            InvalidCredentials: On unknown email, wrong password or role mismatch.
        """
        user = self.get_by_email(email)
        if user is None:
            raise InvalidCredentials()
        if not verify_password(password, self._password_hashes.get(user.id, "")):
            raise InvalidCredentials()
        if user.role != Role.coerce(role):
            raise InvalidCredentials()
        return user

    # PUBLIC_INTERFACE
    def issue_tokens(self, user: AnyUser) -> Tuple[str, str]:
        """Return a fresh (access token, refresh token) pair for ``user``."""
        # both tokens share a session id so logout can revoke the pair
        claims = {"role": user.role, "email": user.email, "sid": uuid4().hex}
        return create_access_token(subject=user.id, claims=claims), create_refresh_token(subject=user.id, claims=claims)

    def _claims(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            payload = decode_token(token)
        except JWTError:
            return None
        if payload.get("jti") in self._revoked or payload.get("sid") in self._revoked:
            return None
        return payload

    # PUBLIC_INTERFACE
    def is_token_valid(self, token: str) -> bool:
        """True when ``token`` is a signed, unexpired, unrevoked access token for a live account."""
        payload = self._claims(token)
        return bool(payload) and payload.get("type") == "access" and payload.get("sub") in self._users

    # PUBLIC_INTERFACE
    def resolve_token(self, token: str) -> AnyUser:
        """Return the user an access token belongs to.

        Raises:
            NotAuthenticated: If the token is invalid, revoked or not an access token.
        """
        payload = self._claims(token)
        if not payload or payload.get("type") != "access":
            raise NotAuthenticated()
        user = self._users.get(payload.get("sub", ""))
        if user is None:
            raise NotAuthenticated()
        return user

    # PUBLIC_INTERFACE
    def revoke(self, token: str) -> bool:
        """Revoke a token and its sibling. Returns False when the token was not usable anyway."""
        payload = self._claims(token)
        if not payload:
            return False
        self._revoked.add(payload["jti"])
        if payload.get("sid"):
            self._revoked.add(payload["sid"])
        return True

    # PUBLIC_INTERFACE
    def update_profile(self, user_id: str, changes: Mapping[str, Any]) -> AnyUser:
        """Apply a partial profile update for the account's own role.

        Raises:
            NotAuthenticated: If the account no longer exists.
            ValidationRejected: If the changes name immutable or other-role fields,
                or break field constraints.
        """
        user = self._users.get(user_id)
        if user is None:
            raise NotAuthenticated()
        model = WriterProfileUpdate if isinstance(user, WriterUser) else ReaderProfileUpdate
        try:
            update = model.model_validate(dict(changes))
        except ValidationError as ve:
            raise ValidationRejected(_first_error(ve))
        # explicit nulls leave the stored value alone
        patch = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}
        if "name" in patch:
            patch["name"] = patch["name"].strip()
        updated = user.model_copy(update=patch)
        self._users[user_id] = updated
        return updated


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationRejected.user_message
    loc = ".".join(str(p) for p in errors[0].get("loc", ()))
    return f"{loc}: {errors[0].get('msg', 'invalid value')}" if loc else errors[0].get("msg", "invalid value")
