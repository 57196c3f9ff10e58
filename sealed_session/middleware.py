"""aiohttp binding for session storages.

``session_middleware`` loads the session from the request's Cookie header,
exposes it as ``request[SESSION_KEY]`` and writes a Set-Cookie header on
the way out when the session changed or was invalidated. Handlers that
answer by raising ``web.HTTPException`` (``raise web.HTTPFound(...)`` after
a login) get the header on the exception.
"""
import logging
from typing import Optional
from collections.abc import Awaitable, Callable

from aiohttp import hdrs, web

from .data import SessionData
from .exceptions import AuthenticationError
from .storage.base import BaseSessionStorage

logger = logging.getLogger("sealed_session")

SESSION_KEY = web.RequestKey("sealed_session", SessionData)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


async def load_session(
    request: web.Request, storage: BaseSessionStorage
) -> SessionData:
    """Read the session for ``request``.

    A cookie that fails authentication is logged and replaced by a new,
    empty session.
    """
    header = request.headers.get(hdrs.COOKIE)
    try:
        return await storage.get_session(header)
    except AuthenticationError:
        logger.warning(
            "Rejected tampered %r cookie from %s",
            storage.cookie.name, request.remote,
        )
        return SessionData()


async def save_session(
    session: SessionData, storage: BaseSessionStorage
) -> Optional[str]:
    """Persist or destroy ``session``; returns the Set-Cookie value, if any."""
    if session.destroyed:
        return await storage.destroy_session(session)
    if session.is_changed:
        return await storage.commit_session(session)
    return None


def get_session(request: web.Request) -> SessionData:
    """Return the session attached by ``session_middleware``."""
    try:
        return request[SESSION_KEY]
    except KeyError:
        raise RuntimeError(
            "Session not found, is session_middleware installed?"
        ) from None


def session_middleware(storage: BaseSessionStorage):
    """Build an aiohttp middleware bound to ``storage``."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        session = await load_session(request, storage)
        request[SESSION_KEY] = session
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            header = await save_session(session, storage)
            if header is not None:
                exc.headers.add(hdrs.SET_COOKIE, header)
            raise
        header = await save_session(session, storage)
        if header is None:
            return response
        if response.prepared:
            raise RuntimeError("Cannot save session data into prepared response")
        response.headers.add(hdrs.SET_COOKIE, header)
        return response

    return middleware
