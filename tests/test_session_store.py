import asyncio
import json

import pytest

from versenest_auth.core.errors import InvalidCredentials, NetworkFailure, StorageFailure
from versenest_auth.db.storage import MemoryStorage
from versenest_auth.models.auth import AuthResult
from versenest_auth.models.domain import ReaderUser, WriterUser
from versenest_auth.services.session import TOKEN_KEY, USER_KEY, SessionStore

from conftest import STRONG_PASSWORD


class ScriptedIdentity:
    """Identity client whose login outcome is chosen by the test."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []
        self.seen_loading = []
        self.session = None

    async def login(self, credentials):
        self.calls.append(("login", dict(credentials)))
        if self.session is not None:
            self.seen_loading.append(self.session.is_loading)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    register = login

    async def validate_token(self, token):
        self.calls.append(("validate", token))
        return True

    async def logout(self, token):
        self.calls.append(("logout", token))

    async def update_profile(self, token, changes):
        raise AssertionError("not used")


class BrokenStorage(MemoryStorage):
    async def get_item(self, key):
        raise StorageFailure("disk gone")

    async def set_items(self, items):
        raise StorageFailure("disk gone")

    async def remove_items(self, keys):
        raise StorageFailure("disk gone")


def _result():
    user = ReaderUser(id="r1", email="walt@versenest.io", name="Walt Reader", preferred_genres=["haiku"])
    return AuthResult(user=user, token="tok", refresh_token="ref")


@pytest.mark.parametrize(
    "outcome",
    [_result(), InvalidCredentials(), NetworkFailure(), RuntimeError("socket exploded")],
    ids=["success", "invalid-credentials", "network-failure", "unexpected"],
)
def test_loading_flag_always_released(outcome, storage):
    identity = ScriptedIdentity(outcome)
    store = SessionStore(identity, storage)
    identity.session = store

    async def run():
        try:
            await store.login({"email": "walt@versenest.io", "password": "pw", "role": "reader"})
        except RuntimeError:
            pass

    asyncio.run(run())
    assert identity.seen_loading == [True]
    assert store.is_loading is False


def test_unexpected_client_error_propagates(storage):
    store = SessionStore(ScriptedIdentity(RuntimeError("boom")), storage)
    with pytest.raises(RuntimeError):
        asyncio.run(store.login({"email": "a@b.io", "password": "pw", "role": "reader"}))
    assert store.user is None


def test_failed_login_sets_error_and_keeps_user(storage):
    store = SessionStore(ScriptedIdentity(_result()), storage)
    asyncio.run(store.login({}))
    previous = store.user

    store.identity = ScriptedIdentity(InvalidCredentials())
    outcome = asyncio.run(store.login({}))
    assert outcome.success is False
    assert store.error == InvalidCredentials.user_message
    assert store.user == previous

    store.identity = ScriptedIdentity(_result())
    asyncio.run(store.login({}))
    assert store.error is None


def test_signup_persists_and_rehydrates_without_network(session, storage, writer_signup):
    outcome = asyncio.run(session.signup(writer_signup))
    assert outcome.success, outcome.error
    assert isinstance(session.user, WriterUser)
    assert session.is_writer and not session.is_reader

    persisted = storage.snapshot()
    assert json.loads(persisted[TOKEN_KEY])["token"] == session.token

    offline = ScriptedIdentity(AssertionError("network must not be used"))
    fresh = SessionStore(offline, MemoryStorage(persisted))
    asyncio.run(fresh.initialize())
    assert fresh.user == session.user
    assert fresh.token == session.token
    assert fresh.refresh_token == session.refresh_token
    assert fresh.is_loading is False
    assert offline.calls == []


def test_signup_lowercases_email_at_identity(session, writer_signup):
    asyncio.run(session.signup(writer_signup))
    assert session.user.email == "emily.verse@versenest.io"


def test_duplicate_signup_surfaces_message(session, reader_signup):
    asyncio.run(session.signup(reader_signup))
    asyncio.run(session.logout())
    outcome = asyncio.run(session.signup(reader_signup))
    assert outcome.success is False
    assert "already exists" in session.error
    assert session.user is None


def test_rejected_genre_surfaces_validation_message(session, reader_signup):
    reader_signup["preferredGenres"] = ["romance-novel"]
    outcome = asyncio.run(session.signup(reader_signup))
    assert outcome.success is False
    assert session.error == "Please check your information and try again."


def test_logout_clears_memory_and_storage(session, storage, reader_signup, directory):
    asyncio.run(session.signup(reader_signup))
    token = session.token
    asyncio.run(session.logout())

    assert session.user is None
    assert session.token is None
    assert session.error is None
    assert storage.snapshot() == {}
    assert directory.is_token_valid(token) is False

    fresh = SessionStore(session.identity, storage)
    asyncio.run(fresh.initialize())
    assert fresh.is_authenticated is False


def test_logout_proceeds_when_remote_fails(storage):
    class Unreachable(ScriptedIdentity):
        async def logout(self, token):
            raise NetworkFailure()

    store = SessionStore(Unreachable(_result()), storage)
    asyncio.run(store.login({}))
    asyncio.run(store.logout())
    assert store.user is None
    assert storage.snapshot() == {}


def test_storage_failure_does_not_block_session():
    store = SessionStore(ScriptedIdentity(_result()), BrokenStorage())
    asyncio.run(store.initialize())
    assert store.user is None

    outcome = asyncio.run(store.login({}))
    assert outcome.success
    assert store.is_authenticated

    asyncio.run(store.logout())
    assert store.user is None


def test_initialize_with_empty_or_corrupt_storage():
    empty = SessionStore(ScriptedIdentity(_result()), MemoryStorage())
    asyncio.run(empty.initialize())
    assert empty.is_authenticated is False

    corrupt_storage = MemoryStorage({TOKEN_KEY: "not json", USER_KEY: "{}"})
    corrupt = SessionStore(ScriptedIdentity(_result()), corrupt_storage)
    asyncio.run(corrupt.initialize())
    assert corrupt.is_authenticated is False
    assert corrupt_storage.snapshot() == {}


def test_initialize_runs_once(session, storage, reader_signup):
    asyncio.run(session.initialize())
    asyncio.run(session.signup(reader_signup))
    asyncio.run(session.logout())
    asyncio.run(session.initialize())
    assert session.user is None


def test_blocking_revalidation_drops_revoked_token(directory, identity, storage, reader_signup):
    first = SessionStore(identity, storage)
    asyncio.run(first.signup(reader_signup))
    directory.revoke(first.token)

    fresh = SessionStore(identity, MemoryStorage(storage.snapshot()), revalidation="blocking")
    asyncio.run(fresh.initialize())
    assert fresh.is_authenticated is False


def test_background_revalidation_signs_out_revoked_token(directory, identity, storage, reader_signup):
    first = SessionStore(identity, storage)
    asyncio.run(first.signup(reader_signup))
    directory.revoke(first.token)

    fresh = SessionStore(identity, MemoryStorage(storage.snapshot()), revalidation="background")

    async def run():
        await fresh.initialize()
        trusted = fresh.is_authenticated
        await fresh.revalidation_task
        return trusted

    assert asyncio.run(run()) is True
    assert fresh.is_authenticated is False


def test_update_profile_replaces_user_with_confirmed_record(session, storage, writer_signup):
    asyncio.run(session.signup(writer_signup))
    outcome = asyncio.run(session.update_profile({"bio": "Now writes about rivers.", "genres": ["ballad"]}))
    assert outcome.success, outcome.error
    assert session.user.bio == "Now writes about rivers."
    assert [g.value for g in session.user.genres] == ["ballad"]
    assert "rivers" in storage.snapshot()[USER_KEY]


def test_update_profile_failure_keeps_previous_user(session, writer_signup):
    asyncio.run(session.signup(writer_signup))
    before = session.user
    outcome = asyncio.run(session.update_profile({"preferredGenres": ["haiku"]}))
    assert outcome.success is False
    assert session.user == before
    assert session.error
    assert session.is_loading is False


def test_update_profile_requires_session(session):
    outcome = asyncio.run(session.update_profile({"bio": "x"}))
    assert outcome.success is False
    assert "sign in" in session.error


def test_login_after_signup_with_wrong_role_is_rejected(session, reader_signup):
    asyncio.run(session.signup(reader_signup))
    asyncio.run(session.logout())
    outcome = asyncio.run(session.login({"email": "walt@versenest.io", "password": STRONG_PASSWORD, "role": "writer"}))
    assert outcome.success is False
    assert session.error == InvalidCredentials.user_message

    outcome = asyncio.run(session.login({"email": "walt@versenest.io", "password": STRONG_PASSWORD, "role": "reader"}))
    assert outcome.success
    assert isinstance(session.user, ReaderUser)


def test_update_profile_null_leaves_field_unchanged(session, writer_signup):
    asyncio.run(session.signup(writer_signup))
    outcome = asyncio.run(session.update_profile({"name": None, "penName": None, "genres": None, "bio": "New bio"}))
    assert outcome.success, outcome.error
    assert session.user.bio == "New bio"
    assert session.user.name == "Emily Verse"
    assert session.user.pen_name == "E. Verse"
    assert [g.value for g in session.user.genres] == ["sonnet", "free-verse"]


def test_update_profile_null_for_identity_field_is_still_refused(session, writer_signup):
    asyncio.run(session.signup(writer_signup))
    outcome = asyncio.run(session.update_profile({"role": None}))
    assert outcome.success is False


class RaisingValidator(ScriptedIdentity):
    async def validate_token(self, token):
        raise RuntimeError("boom")


def _cached_storage():
    storage = MemoryStorage()
    asyncio.run(SessionStore(ScriptedIdentity(_result()), storage).login({"email": "walt@versenest.io"}))
    return storage


def test_blocking_revalidation_survives_unexpected_error():
    fresh = SessionStore(RaisingValidator(_result()), MemoryStorage(_cached_storage().snapshot()), revalidation="blocking")
    asyncio.run(fresh.initialize())
    assert fresh.is_authenticated
    assert fresh.is_loading is False


def test_background_revalidation_survives_unexpected_error():
    fresh = SessionStore(RaisingValidator(_result()), MemoryStorage(_cached_storage().snapshot()), revalidation="background")

    async def run():
        await fresh.initialize()
        await fresh.revalidation_task
        return fresh.revalidation_task.exception()

    assert asyncio.run(run()) is None
    assert fresh.is_authenticated


def test_clear_error(storage):
    store = SessionStore(ScriptedIdentity(InvalidCredentials()), storage)
    asyncio.run(store.login({"email": "walt@versenest.io", "password": "x"}))
    assert store.error == InvalidCredentials.user_message
    store.clear_error()
    assert store.error is None
