"""
Redis Store
===========
Redis/Valkey-backed store using Lua scripts for atomic operations.
"""

import asyncio
from typing import Any, Dict, Optional

import structlog
from redis import asyncio as aioredis
from redis.exceptions import NoScriptError, RedisError

from otp_core.errors import StoreUnavailable

from .base import KeyValueStore
from .models import CounterState

logger = structlog.get_logger(__name__)

# Lua script for atomic fetch-and-delete
GET_AND_DELETE_SCRIPT = """
local value = redis.call('GET', KEYS[1])
if value then
    redis.call('DEL', KEYS[1])
end
return value
"""

# Lua script for atomic bounded counter with a fixed window
INCREMENT_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])
local limit = tonumber(ARGV[2])

local count = tonumber(redis.call('GET', key) or '0')
local ttl = redis.call('TTL', key)

if limit >= 0 and count >= limit then
    if ttl < 0 then
        ttl = 0
    end
    return {0, count, ttl}
end

count = redis.call('INCR', key)
if ttl < 0 then
    redis.call('EXPIRE', key, window)
    ttl = window
end

return {1, count, ttl}
"""


def _decode(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisStore(KeyValueStore):
    """
    Store backed by an async Redis client.

    Uses Lua scripts so that fetch-and-delete and conditional increment
    each happen in a single round trip.
    """

    name = "redis"

    def __init__(self, redis_client):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis)
        """
        self.redis = redis_client
        self._script_shas: Dict[str, str] = {}

    @classmethod
    def from_url(cls, url: str, timeout_seconds: float = 2.0) -> "RedisStore":
        """Create a store with finite socket and connect timeouts."""
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client)

    async def _ensure_script(self, script: str) -> str:
        """Load Lua script into Redis if needed."""
        sha = self._script_shas.get(script)
        if sha is None:
            sha = await self.redis.script_load(script)
            self._script_shas[script] = sha
        return sha

    async def _run_script(self, script: str, keys: list, args: list):
        sha = await self._ensure_script(script)
        try:
            return await self.redis.evalsha(sha, len(keys), *keys, *args)
        except NoScriptError:
            # Script cache was flushed (restart or failover)
            self._script_shas.pop(script, None)
            sha = await self._ensure_script(script)
            return await self.redis.evalsha(sha, len(keys), *keys, *args)

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailable:
        logger.error("Store operation failed", store=self.name, operation=operation, error=str(exc))
        return StoreUnavailable("Key/value store unavailable", operation=operation, details=str(exc))

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.redis.set(key, value, ex=ttl_seconds)
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            raise self._unavailable("set", e) from e

    async def get(self, key: str) -> Optional[str]:
        try:
            return _decode(await self.redis.get(key))
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            raise self._unavailable("get", e) from e

    async def get_and_delete(self, key: str) -> Optional[str]:
        try:
            value = await self._run_script(GET_AND_DELETE_SCRIPT, [key], [])
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            raise self._unavailable("get_and_delete", e) from e
        return _decode(value)

    async def increment_with_ttl(
        self,
        key: str,
        ttl_seconds: int,
        limit: Optional[int] = None,
    ) -> CounterState:
        try:
            result = await self._run_script(
                INCREMENT_SCRIPT,
                [key],
                [ttl_seconds, -1 if limit is None else limit],
            )
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            raise self._unavailable("increment_with_ttl", e) from e

        incremented, count, ttl = result
        return CounterState(
            incremented=bool(int(incremented)),
            count=int(count),
            ttl_seconds=int(ttl),
        )

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            raise self._unavailable("ping", e) from e

    async def close(self) -> None:
        await self.redis.aclose()
