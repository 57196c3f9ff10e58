from .base import (
    BaseSessionStorage,
    SessionIdStorage,
    SessionStorage,
    create_session_storage,
)
from .cookie import CookieSessionStorage, create_cookie_session_storage
from .kv import KVSessionStorage, create_kv_session_storage
from .memory import MemorySessionStorage, create_memory_session_storage

__all__ = [
    "BaseSessionStorage",
    "SessionIdStorage",
    "SessionStorage",
    "create_session_storage",
    "CookieSessionStorage",
    "create_cookie_session_storage",
    "KVSessionStorage",
    "create_kv_session_storage",
    "MemorySessionStorage",
    "create_memory_session_storage",
]
