"""
Session storage contract and the session manager built on top of it.

A ``SessionIdStorage`` persists session data under an opaque id; a
``SessionStorage`` stores that id in a cookie and turns Cookie headers into
``SessionData`` objects and back.
"""
import abc
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from collections.abc import Mapping

from ..conf import DEFAULT_COOKIE_NAME
from ..cookies import Cookie, CookieLike, CookieOptions, CookieOverrides, is_cookie
from ..data import SessionData

logger = logging.getLogger("sealed_session")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_warned_unsigned: set[str] = set()


def ensure_cookie(
    cookie: Union[CookieLike, Mapping[str, Any], None] = None
) -> CookieLike:
    """Return ``cookie`` itself, or build one from a mapping of options.

    The mapping may carry ``name`` and ``secrets`` next to the cookie
    attributes; the name defaults to ``__session``.
    """
    if cookie is not None and is_cookie(cookie):
        return cookie
    options = dict(cookie or {})
    name = options.pop("name", DEFAULT_COOKIE_NAME)
    secrets = options.pop("secrets", ())
    return Cookie(name, options, secrets=secrets)


def warn_unsigned_cookie(cookie: CookieLike) -> None:
    """Log once per cookie name when a session cookie is not signed."""
    if cookie.is_signed or cookie.name in _warned_unsigned:
        return
    _warned_unsigned.add(cookie.name)
    logger.warning(
        "The %r cookie used for sessions is not signed; session cookies "
        "should be signed with secrets to prevent tampering",
        cookie.name,
    )


def resolve_expires(
    cookie: CookieLike, options: CookieOverrides = None
) -> Optional[datetime]:
    """Expiration for a commit: per-call ``max_age``/``expires`` first."""
    if isinstance(options, CookieOptions):
        options = options.model_dump(exclude_unset=True)
    options = options or {}
    if options.get("max_age") is not None:
        return datetime.now(timezone.utc) + timedelta(seconds=options["max_age"])
    if options.get("expires") is not None:
        return options["expires"]
    return cookie.expires


def destroy_options(options: CookieOverrides = None) -> dict[str, Any]:
    """Overrides that make the browser drop the cookie immediately."""
    if isinstance(options, CookieOptions):
        options = options.model_dump(exclude_unset=True)
    return {**dict(options or {}), "max_age": None, "expires": EPOCH}


class SessionIdStorage(abc.ABC):
    """Persists session data keyed by an opaque session id."""

    @abc.abstractmethod
    async def create_data(
        self, data: Mapping[str, Any], expires: Optional[datetime] = None
    ) -> str:
        """Store ``data`` under a new unique id and return the id."""

    @abc.abstractmethod
    async def read_data(self, id: str) -> Optional[dict[str, Any]]:
        """Return the data stored under ``id``, or None."""

    @abc.abstractmethod
    async def update_data(
        self, id: str, data: Mapping[str, Any], expires: Optional[datetime] = None
    ) -> None:
        """Overwrite the data stored under ``id``."""

    @abc.abstractmethod
    async def delete_data(self, id: str) -> None:
        """Remove the data stored under ``id``; missing ids are ignored."""


class BaseSessionStorage(abc.ABC):
    """Turns Cookie headers into sessions and sessions into Set-Cookie values."""

    def __init__(self, cookie: CookieLike) -> None:
        if not is_cookie(cookie):
            raise TypeError(f"Expected a cookie, got {type(cookie).__name__}")
        self.cookie: CookieLike = cookie
        warn_unsigned_cookie(cookie)

    @abc.abstractmethod
    async def get_session(
        self,
        cookie_header: Optional[str],
        options: Optional[Mapping[str, Any]] = None,
    ) -> SessionData:
        """Return the session referenced by ``cookie_header`` (or a new one)."""

    @abc.abstractmethod
    async def commit_session(
        self, session: SessionData, options: CookieOverrides = None
    ) -> str:
        """Persist ``session`` and return the Set-Cookie header value."""

    @abc.abstractmethod
    async def destroy_session(
        self, session: SessionData, options: CookieOverrides = None
    ) -> str:
        """Remove ``session`` and return a Set-Cookie value that clears it."""


class SessionStorage(BaseSessionStorage):
    """Session storage keeping only the session id in the cookie.

    Args:
        cookie: Cookie carrying the session id (plain, signed or encrypted).
        id_storage: Backend holding the session data.
    """

    def __init__(self, cookie: CookieLike, id_storage: SessionIdStorage) -> None:
        super().__init__(cookie)
        self.id_storage: SessionIdStorage = id_storage

    async def get_session(
        self,
        cookie_header: Optional[str],
        options: Optional[Mapping[str, Any]] = None,
    ) -> SessionData:
        id = await self.cookie.parse(cookie_header, options) if cookie_header else None
        if not id or not isinstance(id, str):
            return SessionData()
        data = await self.id_storage.read_data(id)
        if data is None:
            logger.debug("Session %s not found, starting a new one", id)
            return SessionData()
        return SessionData(data, id=id)

    async def commit_session(
        self, session: SessionData, options: CookieOverrides = None
    ) -> str:
        expires = resolve_expires(self.cookie, options)
        data = dict(session.data)
        if session.id:
            await self.id_storage.update_data(session.id, data, expires)
            id = session.id
        else:
            id = await self.id_storage.create_data(data, expires)
            session._id_ = id
            session._new = False
        session.is_changed = False
        return await self.cookie.serialize(id, options)

    async def destroy_session(
        self, session: SessionData, options: CookieOverrides = None
    ) -> str:
        if session.id:
            await self.id_storage.delete_data(session.id)
        return await self.cookie.serialize("", destroy_options(options))


def create_session_storage(
    cookie: CookieLike, id_storage: SessionIdStorage
) -> SessionStorage:
    """Create a SessionStorage binding ``cookie`` to ``id_storage``."""
    return SessionStorage(cookie, id_storage)
