"""Password hashing and token issuing for the reference identity service.

Uses passlib's pbkdf2_sha256 handler (pure Python, no C extension) and
python-jose for signed tokens.

Controls:
- Use constant-time comparisons (delegated to passlib).
- Avoid logging secrets.
- Every token carries a unique ``jti`` so it can be revoked on logout.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional
from uuid import uuid4

from jose import jwt
from passlib.context import CryptContext

from versenest_auth.core.config import get_settings

TokenType = Literal["access", "refresh"]

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """
    PUBLIC_INTERFACE
    Hash a password securely.

    Raises:
        ValueError: If password policy fails.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise ValueError("Password must be at least 8 characters.")
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, hashed: str) -> bool:
    """
    PUBLIC_INTERFACE
    Verify a password against a stored hash. Malformed hashes never verify.
    """
    if not hashed:
        return False
    try:
        return _pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        return False


def _create_token(subject: str, token_type: TokenType, expires_minutes: int, claims: Optional[dict[str, Any]]) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "jti": uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if isinstance(claims, dict):
        for k, v in claims.items():
            if k not in {"sub", "type", "jti", "iat", "exp"}:
                to_encode[k] = v
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


# PUBLIC_INTERFACE
def create_access_token(subject: str, expires_minutes: Optional[int] = None, claims: Optional[dict[str, Any]] = None) -> str:
    """
    PUBLIC_INTERFACE
    Create a signed access token.

    Args:
        subject: The user identifier.
        expires_minutes: TTL override; if None, use settings.
        claims: Additional claims to include (e.g. role).

    Returns:
        A compact JWT string.
    """
    settings = get_settings()
    exp_minutes = expires_minutes if isinstance(expires_minutes, int) and expires_minutes > 0 else settings.access_token_expire_minutes
    return _create_token(subject, "access", exp_minutes, claims)


# PUBLIC_INTERFACE
def create_refresh_token(subject: str, claims: Optional[dict[str, Any]] = None) -> str:
    """Create a signed refresh token with the configured refresh TTL."""
    return _create_token(subject, "refresh", get_settings().refresh_token_expire_minutes, claims)


# PUBLIC_INTERFACE
def decode_token(token: str) -> dict[str, Any]:
    """
    PUBLIC_INTERFACE
    Decode and validate a token, returning claims.

    Raises:
        JWTError: If token is invalid or expired.
    """
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
