"""Domain types: roles, form modes, genre/mood tags and the User union."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """Closed set of account roles. Fixed at registration."""
    READER = "reader"
    WRITER = "writer"

    @classmethod
    def coerce(cls, value: Any) -> Optional["Role"]:
        """Return the Role for ``value`` or None when it is not a role."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def other(self) -> "Role":
        return Role.READER if self is Role.WRITER else Role.WRITER


class AuthMode(str, Enum):
    """Login/signup tab of a role panel."""
    LOGIN = "login"
    SIGNUP = "signup"


class Genre(str, Enum):
    LYRICAL = "lyrical"
    NARRATIVE = "narrative"
    SONNET = "sonnet"
    HAIKU = "haiku"
    FREE_VERSE = "free-verse"
    EPIC = "epic"
    BALLAD = "ballad"
    LIMERICK = "limerick"
    ACROSTIC = "acrostic"
    OTHER = "other"


class Mood(str, Enum):
    REFLECTIVE = "reflective"
    UPLIFTING = "uplifting"
    MELANCHOLIC = "melancholic"
    ROMANTIC = "romantic"
    INSPIRING = "inspiring"
    PEACEFUL = "peaceful"
    ENERGETIC = "energetic"
    CONTEMPLATIVE = "contemplative"


def _label(value: str) -> str:
    return value.replace("-", " ").title()


GENRE_OPTIONS = [{"value": g.value, "label": _label(g.value)} for g in Genre]
MOOD_OPTIONS = [{"value": m.value, "label": _label(m.value)} for m in Mood]


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserBase(CamelModel):
    """Fields shared by every account."""
    id: str = Field(..., description="Identifier assigned by the identity service")
    email: str = Field(..., description="Lowercased account email")
    name: str = Field(..., description="Display name")
    created_at: datetime = Field(default_factory=_utcnow, description="Creation timestamp")


class WriterUser(UserBase):
    """A writer account."""
    role: Literal["writer"] = "writer"
    pen_name: Optional[str] = Field(None, description="Optional display alias")
    bio: str = Field(default="", max_length=500, description="Short biography")
    genres: List[Genre] = Field(default_factory=list, description="Genres the writer focuses on")


class ReaderUser(UserBase):
    """A reader account."""
    role: Literal["reader"] = "reader"
    preferred_genres: List[Genre] = Field(default_factory=list, description="Preferred genres")
    mood_preferences: List[Mood] = Field(default_factory=list, description="Preferred moods")


User = Annotated[Union[WriterUser, ReaderUser], Field(discriminator="role")]

_user_adapter: TypeAdapter = TypeAdapter(User)


# PUBLIC_INTERFACE
def parse_user(data: Union[Mapping[str, Any], str, bytes]) -> Union[WriterUser, ReaderUser]:
    """Build the role-specific user model from a mapping or a JSON document.

    Raises:
        pydantic.ValidationError: If the payload is not a valid user.
    """
    if isinstance(data, (str, bytes)):
        return _user_adapter.validate_json(data)
    return _user_adapter.validate_python(dict(data))


# PUBLIC_INTERFACE
def dump_user(user: Union[WriterUser, ReaderUser]) -> str:
    """Serialize a user to a camelCase JSON document."""
    return user.model_dump_json(by_alias=True)
