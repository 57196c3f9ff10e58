import abc
from typing import Any, NamedTuple, Optional

import orjson


class KVEntry(NamedTuple):
    """Result of a ``get``: the stored value plus an existence marker."""

    key: str
    value: Any
    versionstamp: Optional[str]
    exists: bool


def dump_value(value: Any) -> bytes:
    return orjson.dumps(value)


def load_value(raw: bytes) -> Any:
    return orjson.loads(raw)


def ttl_milliseconds(expire_in: Optional[float]) -> Optional[int]:
    """Normalize a TTL in milliseconds; expired-on-arrival becomes 1 ms."""
    if expire_in is None:
        return None
    return max(1, int(expire_in))


class KVEngine(abc.ABC):
    """Key-value engine used by the KV session storage.

    ``expire_in`` is always expressed in milliseconds; ``None`` means the
    entry never expires.
    """

    def __init__(self, url: str) -> None:
        self.url: str = url

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} url={self.url!r}>"

    @abc.abstractmethod
    async def get(self, key: str) -> KVEntry:
        """Return the entry at ``key``; ``exists`` is False when missing."""

    @abc.abstractmethod
    async def set(
        self, key: str, value: Any, *, expire_in: Optional[float] = None
    ) -> None:
        """Write ``value`` at ``key`` unconditionally."""

    @abc.abstractmethod
    async def create(
        self, key: str, value: Any, *, expire_in: Optional[float] = None
    ) -> bool:
        """Write ``value`` only if ``key`` is absent.

        Returns:
            True if the value was written, False if the key already existed.
        """

    @abc.abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    async def close(self) -> None:
        """Release the resources held by this engine."""
