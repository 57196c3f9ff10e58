"""
KV Session Storage — session data persisted in a key-value engine.

The cookie only carries the session id; the data lives in the engine
returned by ``kv.open_kv``, with the session expiration translated into
an engine TTL.
"""
import time
import uuid
import logging
from datetime import datetime
from typing import Any, Optional, Union
from collections.abc import Callable, Mapping

from ..conf import DEFAULT_ID_ATTEMPTS
from ..cookies import CookieLike
from ..exceptions import ExhaustedRetriesError
from ..kv import KVEngine, open_kv
from .base import SessionIdStorage, SessionStorage, ensure_cookie

logger = logging.getLogger("sealed_session")

IdGenerator = Callable[[Mapping[str, Any]], str]


def default_id_generator(data: Mapping[str, Any]) -> str:
    return str(uuid.uuid4())


def expire_in(expires: Optional[datetime]) -> Optional[float]:
    """Milliseconds from now until ``expires``; None means no expiration."""
    if expires is None:
        return None
    return (expires.timestamp() - time.time()) * 1000


class KVSessionStorage(SessionIdStorage):
    """Session id storage backed by a KV engine.

    Args:
        path: KV engine URL; defaults to the configured SESSION_KV_URL.
        id_generator: Callable ``(data) -> str`` producing candidate ids.
        max_attempts: Candidate ids tried before giving up; None retries
            forever.
        engine: Use this engine instead of the shared one for ``path``.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        id_generator: Optional[IdGenerator] = None,
        max_attempts: Optional[int] = DEFAULT_ID_ATTEMPTS,
        engine: Optional[KVEngine] = None,
    ) -> None:
        self._path = path
        self._db: Optional[KVEngine] = engine
        self._id_generator: IdGenerator = id_generator or default_id_generator
        self.max_attempts = max_attempts

    @property
    def db(self) -> KVEngine:
        """Shared engine handle, acquired on first use."""
        if self._db is None:
            self._db = open_kv(self._path)
        return self._db

    def generate_id(self, data: Mapping[str, Any]) -> str:
        return self._id_generator(data)

    async def create_data(
        self, data: Mapping[str, Any], expires: Optional[datetime] = None
    ) -> str:
        """Store ``data`` under a fresh id that no live record uses.

        Raises:
            ExhaustedRetriesError: No free id within ``max_attempts``.
        """
        db = self.db
        value = dict(data)
        attempts = 0
        while self.max_attempts is None or attempts < self.max_attempts:
            attempts += 1
            id = self.generate_id(data)
            entry = await db.get(id)
            if entry.exists:
                logger.debug("Session id collision on attempt %d", attempts)
                continue
            if await db.create(id, value, expire_in=expire_in(expires)):
                return id
            logger.debug("Session id taken concurrently on attempt %d", attempts)
        logger.error("Could not allocate a session id after %d attempts", attempts)
        raise ExhaustedRetriesError(attempts)

    async def read_data(self, id: str) -> Optional[dict[str, Any]]:
        entry = await self.db.get(id)
        if entry.exists:
            return entry.value
        return None

    async def update_data(
        self, id: str, data: Mapping[str, Any], expires: Optional[datetime] = None
    ) -> None:
        await self.db.set(id, dict(data), expire_in=expire_in(expires))

    async def delete_data(self, id: str) -> None:
        await self.db.delete(id)


def create_kv_session_storage(
    cookie: Union[CookieLike, Mapping[str, Any], None] = None,
    path: Optional[str] = None,
    *,
    id_generator: Optional[IdGenerator] = None,
    max_attempts: Optional[int] = DEFAULT_ID_ATTEMPTS,
) -> SessionStorage:
    """Create a SessionStorage that keeps session data in a KV engine.

    KV entries may hold much more data than a cookie can.
    """
    return SessionStorage(
        ensure_cookie(cookie),
        KVSessionStorage(
            path, id_generator=id_generator, max_attempts=max_attempts
        ),
    )
