from typing import Any, Optional

import redis.asyncio as aioredis

from .base import KVEngine, KVEntry, dump_value, load_value, ttl_milliseconds


class RedisKV(KVEngine):
    """KV engine backed by Redis.

    ``create`` relies on ``SET NX`` so concurrent callers can never commit
    the same key twice.
    """

    def __init__(
        self,
        url: str,
        *,
        redis_client: Optional[aioredis.Redis] = None,
        prefix: str = "session:",
    ) -> None:
        super().__init__(url)
        self._redis: aioredis.Redis = redis_client or aioredis.from_url(url)
        self.prefix: str = prefix

    def redis_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> KVEntry:
        raw = await self._redis.get(self.redis_key(key))
        if raw is None:
            return KVEntry(key, None, None, False)
        return KVEntry(key, load_value(raw), None, True)

    async def set(
        self, key: str, value: Any, *, expire_in: Optional[float] = None
    ) -> None:
        await self._redis.set(
            self.redis_key(key), dump_value(value), px=ttl_milliseconds(expire_in)
        )

    async def create(
        self, key: str, value: Any, *, expire_in: Optional[float] = None
    ) -> bool:
        created = await self._redis.set(
            self.redis_key(key),
            dump_value(value),
            px=ttl_milliseconds(expire_in),
            nx=True,
        )
        return bool(created)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self.redis_key(key))

    async def close(self) -> None:
        await self._redis.aclose()
