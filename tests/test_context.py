import asyncio

from versenest_auth.context import AuthContext
from versenest_auth.core.config import reset_settings_cache
from versenest_auth.db.storage import MemoryStorage
from versenest_auth.services.identity import HttpIdentityClient

from conftest import STRONG_PASSWORD


def _memory_settings(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("STARTUP_REVALIDATION", "blocking")
    reset_settings_cache()


def test_context_wires_session_and_role_selection(monkeypatch, identity, navigator):
    _memory_settings(monkeypatch)

    async def run():
        async with AuthContext.from_settings(identity=identity) as ctx:
            assert isinstance(ctx.storage, MemoryStorage)
            assert ctx.session.revalidation == "blocking"
            await ctx.session.initialize()
            assert ctx.session.is_authenticated is False

            panels = ctx.role_selection(navigator)
            form = panels.open_role("reader")
            form.set_field("name", "Walt Reader")
            form.set_field("email", "walt@versenest.io")
            form.set_field("password", STRONG_PASSWORD)
            form.set_field("confirmPassword", STRONG_PASSWORD)
            form.toggle_option("preferredGenres", "haiku")
            form.set_field("acceptTerms", True)
            assert await form.submit() is True
            return ctx

    ctx = asyncio.run(run())
    assert navigator.routes == ["/reader/home"]
    assert ctx.session.user.email == "walt@versenest.io"


def test_context_closes_its_http_client(monkeypatch):
    _memory_settings(monkeypatch)

    async def run():
        ctx = AuthContext.from_settings()
        assert isinstance(ctx.identity, HttpIdentityClient)
        await ctx.aclose()
        return ctx.identity

    client = asyncio.run(run())
    assert client._client.is_closed
