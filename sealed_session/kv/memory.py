import time
from typing import Any, Optional

from .base import KVEngine, KVEntry, dump_value, load_value, ttl_milliseconds


class MemoryKV(KVEngine):
    """In-process KV engine.

    Values are stored serialized so callers never share mutable state with
    the store. Expired entries are dropped lazily, when touched. Writes do
    not await between the existence check and the write, so ``create`` is
    atomic within one event loop.
    """

    def __init__(self, url: str = "memory://default") -> None:
        super().__init__(url)
        # key -> (serialized value, versionstamp, deadline in monotonic seconds)
        self._entries: dict[str, tuple[bytes, str, Optional[float]]] = {}
        self._version = 0

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)

    def _next_version(self) -> str:
        self._version += 1
        return f"{self._version:020x}"

    def _deadline(self, expire_in: Optional[float]) -> Optional[float]:
        ttl = ttl_milliseconds(expire_in)
        if ttl is None:
            return None
        return time.monotonic() + ttl / 1000

    def _alive(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        deadline = entry[2]
        if deadline is not None and deadline <= time.monotonic():
            del self._entries[key]
            return False
        return True

    def _purge(self) -> None:
        for key in list(self._entries):
            self._alive(key)

    async def get(self, key: str) -> KVEntry:
        if not self._alive(key):
            return KVEntry(key, None, None, False)
        raw, version, _ = self._entries[key]
        return KVEntry(key, load_value(raw), version, True)

    async def set(
        self, key: str, value: Any, *, expire_in: Optional[float] = None
    ) -> None:
        raw = dump_value(value)
        self._entries[key] = (raw, self._next_version(), self._deadline(expire_in))

    async def create(
        self, key: str, value: Any, *, expire_in: Optional[float] = None
    ) -> bool:
        raw = dump_value(value)
        if self._alive(key):
            return False
        self._entries[key] = (raw, self._next_version(), self._deadline(expire_in))
        return True

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def close(self) -> None:
        self._entries.clear()
