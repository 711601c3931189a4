"""
Pytest configuration and shared fixtures.

The repository root is put on sys.path so `import versenest_auth` works when
tests run from a checkout without an installed package.
"""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
repo_root_str = str(REPO_ROOT)
if repo_root_str not in sys.path:
    sys.path.insert(0, repo_root_str)

from versenest_auth.core.config import reset_settings_cache  # noqa: E402
from versenest_auth.db.accounts import AccountDirectory  # noqa: E402
from versenest_auth.db.storage import MemoryStorage  # noqa: E402
from versenest_auth.services.local_identity import LocalIdentityClient  # noqa: E402
from versenest_auth.services.session import SessionStore  # noqa: E402

STRONG_PASSWORD = "Sonnet4Ever"


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def directory():
    return AccountDirectory()


@pytest.fixture
def identity(directory):
    return LocalIdentityClient(directory)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session(identity, storage):
    return SessionStore(identity, storage)


@pytest.fixture
def writer_signup():
    return {
        "email": "Emily.Verse@VerseNest.io",
        "password": STRONG_PASSWORD,
        "name": "Emily Verse",
        "role": "writer",
        "penName": "E. Verse",
        "bio": "Writes about tides.",
        "genres": ["sonnet", "free-verse"],
    }


@pytest.fixture
def reader_signup():
    return {
        "email": "walt@versenest.io",
        "password": STRONG_PASSWORD,
        "name": "Walt Reader",
        "role": "reader",
        "preferredGenres": ["haiku"],
        "moodPreferences": ["peaceful"],
    }


class Navigator:
    """Records navigation requests made by forms."""

    def __init__(self):
        self.routes = []

    def __call__(self, route):
        self.routes.append(route)


@pytest.fixture
def navigator():
    return Navigator()
