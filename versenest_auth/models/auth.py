"""Auth wire DTOs shared by the identity client and the reference service."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, List, Literal, Optional, Union

from pydantic import ConfigDict, EmailStr, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from versenest_auth.models.domain import (
    CamelModel,
    Genre,
    Mood,
    ReaderUser,
    Role,
    User,
    WriterUser,
)

NAME_PATTERN = r"^[A-Za-z\s]+$"


class LoginRequest(CamelModel):
    """Login payload."""
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Password")
    role: Role = Field(..., description="Role the visitor is signing in as")


class _RegistrationBase(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=8, description="Raw password (not stored).")
    name: str = Field(..., min_length=2, max_length=50, pattern=NAME_PATTERN, description="Display name")


class WriterRegistration(_RegistrationBase):
    """Writer signup payload."""
    role: Literal["writer"] = "writer"
    pen_name: str = Field(..., min_length=2, max_length=50, description="Pen name")
    bio: str = Field(default="", max_length=500, description="Short biography")
    genres: List[Genre] = Field(..., min_length=1, description="Genre focus")


class ReaderRegistration(_RegistrationBase):
    """Reader signup payload."""
    role: Literal["reader"] = "reader"
    preferred_genres: List[Genre] = Field(..., min_length=1, description="Preferred genres")
    mood_preferences: List[Mood] = Field(default_factory=list, description="Mood preferences")


Registration = Annotated[Union[WriterRegistration, ReaderRegistration], Field(discriminator="role")]

registration_adapter: TypeAdapter = TypeAdapter(Registration)


class WriterProfileUpdate(CamelModel):
    """Editable writer fields. Identity fields and reader fields are refused."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=50, pattern=NAME_PATTERN)
    pen_name: Optional[str] = Field(None, min_length=2, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    genres: Optional[List[Genre]] = Field(None, min_length=1)


class ReaderProfileUpdate(CamelModel):
    """Editable reader fields. Identity fields and writer fields are refused."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=50, pattern=NAME_PATTERN)
    preferred_genres: Optional[List[Genre]] = Field(None, min_length=1)
    mood_preferences: Optional[List[Mood]] = None


class AuthResponse(CamelModel):
    """Successful login/registration response."""
    success: bool = True
    user: User
    token: str = Field(..., description="Bearer access token")
    refresh_token: str = Field(..., description="Refresh token")


class TokenValidationRequest(CamelModel):
    token: str


class TokenValidationResponse(CamelModel):
    valid: bool


class ProfileResponse(CamelModel):
    success: bool = True
    user: User


class LogoutResponse(CamelModel):
    success: bool = True


@dataclass(frozen=True)
class AuthResult:
    """What the identity client hands back after login or registration."""
    user: Union[WriterUser, ReaderUser]
    token: str
    refresh_token: str
