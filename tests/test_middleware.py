"""
Tests for the aiohttp session middleware.

Tests cover:
- Loading the session from the Cookie header
- Set-Cookie written only when the session changed or was invalidated
- Tampered encrypted cookies replaced by a new session
"""
import logging

import pytest
from aiohttp import hdrs, web
from aiohttp.test_utils import make_mocked_request

from sealed_session.crypto import derive_key, generate_key
from sealed_session.data import SessionData
from sealed_session.encrypted import EncryptedCookie
from sealed_session.middleware import SESSION_KEY, get_session, session_middleware
from sealed_session.storage import (
    create_memory_session_storage,
    create_session_storage,
)
from sealed_session.storage.memory import MemorySessionStorage


@pytest.fixture
def storage():
    return create_memory_session_storage({"secrets": ["s3cr3t"]})


def request_with(cookie_header=None):
    headers = {hdrs.COOKIE: cookie_header} if cookie_header else {}
    return make_mocked_request("GET", "/", headers=headers)


async def login(request):
    get_session(request)["user"] = "jesus"
    return web.Response(text="ok")


async def noop(request):
    get_session(request)
    return web.Response(text="ok")


async def logout(request):
    get_session(request).invalidate()
    return web.Response(text="bye")


class TestSessionMiddleware:
    """Tests for session_middleware."""

    @pytest.mark.asyncio
    async def test_changed_session_sets_cookie(self, storage):
        middleware = session_middleware(storage)
        response = await middleware(request_with(), login)
        assert response.headers[hdrs.SET_COOKIE].startswith("__session=")

    @pytest.mark.asyncio
    async def test_untouched_session_sets_nothing(self, storage):
        """Test a session that did not change writes no cookie."""
        middleware = session_middleware(storage)
        response = await middleware(request_with(), noop)
        assert hdrs.SET_COOKIE not in response.headers

    @pytest.mark.asyncio
    async def test_existing_session_loaded(self, storage):
        """Test the handler sees the session from the Cookie header."""
        header = await storage.commit_session(SessionData({"user": "jesus"}))
        request = request_with(header.split(";")[0])
        seen = {}

        async def handler(request):
            seen["user"] = get_session(request)["user"]
            return web.Response(text="ok")

        await session_middleware(storage)(request, handler)
        assert seen["user"] == "jesus"
        assert isinstance(request[SESSION_KEY], SessionData)

    @pytest.mark.asyncio
    async def test_invalidate_expires_cookie(self, storage):
        """Test an invalidated session destroys its data and cookie."""
        session = SessionData({"user": "jesus"})
        header = await storage.commit_session(session)
        response = await session_middleware(storage)(
            request_with(header.split(";")[0]), logout
        )
        assert "1970" in response.headers[hdrs.SET_COOKIE]
        assert await storage.id_storage.read_data(session.id) is None

    @pytest.mark.asyncio
    async def test_redirect_after_login_sets_cookie(self, storage):
        """Test a raised HTTP exception carries the session cookie."""
        async def handler(request):
            get_session(request)["user"] = "jesus"
            raise web.HTTPFound("/home")

        with pytest.raises(web.HTTPFound) as exc:
            await session_middleware(storage)(request_with(), handler)
        header = exc.value.headers[hdrs.SET_COOKIE]
        assert header.startswith("__session=")
        assert exc.value.headers[hdrs.LOCATION] == "/home"
        assert (await storage.get_session(header))["user"] == "jesus"

    @pytest.mark.asyncio
    async def test_raised_exception_without_changes(self, storage):
        """Test an untouched session adds no cookie to a raised exception."""
        async def handler(request):
            get_session(request)
            raise web.HTTPNotFound()

        with pytest.raises(web.HTTPNotFound) as exc:
            await session_middleware(storage)(request_with(), handler)
        assert hdrs.SET_COOKIE not in exc.value.headers

    @pytest.mark.asyncio
    async def test_prepared_response(self, storage):
        """Test a session cannot be saved into a prepared response."""
        async def handler(request):
            get_session(request)["user"] = "jesus"
            response = web.StreamResponse()
            await response.prepare(request)
            return response

        with pytest.raises(RuntimeError):
            await session_middleware(storage)(request_with(), handler)

    @pytest.mark.asyncio
    async def test_tampered_cookie_starts_new_session(self, caplog):
        """Test an envelope sealed with a foreign key is logged and ignored."""
        cookie = EncryptedCookie(
            "__session", derive_key(generate_key()), secrets=["s3cr3t"]
        )
        forger = EncryptedCookie(
            "__session", derive_key(generate_key()), secrets=["s3cr3t"]
        )
        storage = create_session_storage(cookie, MemorySessionStorage())
        forged = await forger.serialize("someone-else")
        seen = {}

        async def handler(request):
            seen["session"] = get_session(request)
            return web.Response(text="ok")

        with caplog.at_level(logging.WARNING, logger="sealed_session"):
            await session_middleware(storage)(
                request_with(forged.split(";")[0]), handler
            )
        assert seen["session"].new is True
        assert any("tampered" in r.getMessage() for r in caplog.records)


class TestGetSession:
    """Tests for get_session."""

    def test_without_middleware(self):
        with pytest.raises(RuntimeError):
            get_session(request_with())

    def test_typed_request_key(self):
        """Test the session is stored under a typed request key."""
        assert isinstance(SESSION_KEY, web.RequestKey)
        request = request_with()
        session = SessionData({"user": 1})
        request[SESSION_KEY] = session
        assert get_session(request) is session
