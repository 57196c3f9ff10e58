import os
import time
from datetime import datetime
from typing import Any, Optional, Union
from collections.abc import Mapping

from ..cookies import CookieLike
from .base import SessionIdStorage, SessionStorage, ensure_cookie


class MemorySessionStorage(SessionIdStorage):
    """Session id storage holding data in a process-local dict.

    Useful for development and tests; data is lost on restart and not
    shared between processes.
    """

    def __init__(self) -> None:
        self._map: dict[str, tuple[dict[str, Any], Optional[datetime]]] = {}

    def __len__(self) -> int:
        return len(self._map)

    async def create_data(
        self, data: Mapping[str, Any], expires: Optional[datetime] = None
    ) -> str:
        while True:
            id = os.urandom(8).hex()
            if id not in self._map:
                break
        self._map[id] = (dict(data), expires)
        return id

    async def read_data(self, id: str) -> Optional[dict[str, Any]]:
        if id not in self._map:
            return None
        data, expires = self._map[id]
        if expires is not None and expires.timestamp() < time.time():
            del self._map[id]
            return None
        return dict(data)

    async def update_data(
        self, id: str, data: Mapping[str, Any], expires: Optional[datetime] = None
    ) -> None:
        self._map[id] = (dict(data), expires)

    async def delete_data(self, id: str) -> None:
        self._map.pop(id, None)


def create_memory_session_storage(
    cookie: Union[CookieLike, Mapping[str, Any], None] = None,
) -> SessionStorage:
    """Create a SessionStorage that keeps session data in memory."""
    return SessionStorage(ensure_cookie(cookie), MemorySessionStorage())
