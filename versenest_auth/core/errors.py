"""Error taxonomy for the auth workflow.

Every error carries a ``user_message`` that is safe to render in a form. The
identity client raises these, the session store turns them into its ``error``
slot, and the reference service maps them to HTTP status codes.
"""
from __future__ import annotations

from typing import Dict, Optional


class AuthError(Exception):
    """Base class for all auth workflow errors."""
    user_message = "An unexpected error occurred. Please try again."
    status_code: Optional[int] = None

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None):
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(AuthError):
    """Local, field-scoped validation failure. Never reaches the network."""
    user_message = "Please correct the highlighted fields."

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message)
        self.errors = dict(errors)


class InvalidCredentials(AuthError):
    user_message = "Invalid credentials. Please check your email and password."
    status_code = 401


class DuplicateAccount(AuthError):
    user_message = "An account with this email already exists. Try signing in instead."
    status_code = 409


class ValidationRejected(AuthError):
    """The identity service refused the payload (schema or enum constraint)."""
    user_message = "Please check your information and try again."
    status_code = 422


class NotAuthenticated(AuthError):
    user_message = "Your session has expired. Please sign in again."
    status_code = 401


class ServerFailure(AuthError):
    user_message = "Server error. Please try again later."
    status_code = 500


class NetworkFailure(AuthError):
    user_message = "Network error. Please check your connection and try again."


class StorageFailure(AuthError):
    """Persisted client storage could not be read or written."""
    user_message = "Your session could not be saved on this device."
