"""Key-value engines and the process-wide handle registry.

``open_kv`` hands out one shared engine per URL, created on first use and
reused afterwards; ``close_all`` releases them on shutdown.
"""
import logging
from typing import Optional

from ..conf import default_kv_url
from .base import KVEngine, KVEntry
from .memory import MemoryKV
from .redis import RedisKV

logger = logging.getLogger("sealed_session")

_handles: dict[str, KVEngine] = {}


def _create_engine(url: str) -> KVEngine:
    if url.startswith("memory://"):
        return MemoryKV(url)
    if url.startswith(("redis://", "rediss://", "unix://")):
        return RedisKV(url)
    raise ValueError(f"Unsupported KV backend: {url}")


def open_kv(path: Optional[str] = None) -> KVEngine:
    """Return the shared engine for ``path``, creating it on first use.

    Args:
        path: ``memory://<name>`` or a Redis URL. Defaults to the
            configured SESSION_KV_URL.
    """
    url = path or default_kv_url()
    engine = _handles.get(url)
    if engine is None:
        engine = _create_engine(url)
        _handles[url] = engine
        logger.debug("Opened KV engine %s", engine)
    return engine


async def close_kv(path: Optional[str] = None) -> None:
    """Close and forget the shared engine for ``path``, if open."""
    engine = _handles.pop(path or default_kv_url(), None)
    if engine is not None:
        await engine.close()
        logger.debug("Closed KV engine %s", engine)


async def close_all() -> None:
    """Close every shared engine."""
    for url in list(_handles):
        await close_kv(url)


__all__ = [
    "KVEngine",
    "KVEntry",
    "MemoryKV",
    "RedisKV",
    "open_kv",
    "close_kv",
    "close_all",
]
