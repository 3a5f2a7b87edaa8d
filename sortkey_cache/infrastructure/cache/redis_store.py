"""Redis-backed index store.

Uses redis.asyncio. The index is a sorted set whose members all score 0,
so ZRANGEBYLEX gives lexicographic scans; values are plain strings.
Mutations run as Lua scripts (one indivisible call each); a batch is a
MULTI/EXEC pipeline of EVALSHAs.

Two ownership modes:
- owned (from_url / from_settings): open() pings and close() closes the
  connection; configure_in_memory() may change server config.
- borrowed (from_client): the caller owns the connection; open/close are
  no-ops and server config is never touched, since other tenants share it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import redis.asyncio as redis
from redis.commands.core import AsyncScript

from sortkey_cache.core.config import Settings, get_settings
from sortkey_cache.infrastructure.cache.lua_scripts import LUA_SCRIPTS
from sortkey_cache.infrastructure.cache.store_protocol import AtomicOperation

logger = logging.getLogger(__name__)


def _as_bytes(value: bytes | str | None) -> bytes | None:
    """Normalize replies of clients created with decode_responses=True."""
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def _as_str(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStore:
    """Index store over a redis.asyncio client."""

    def __init__(self, client: redis.Redis, *, managed: bool) -> None:
        """Wrap a client.

        Args:
            client: redis.asyncio client.
            managed: True when the caller owns the connection lifecycle.
        """
        self._client = client
        self.is_managed = managed
        # A borrowed client is assumed open; an owned one is opened by open().
        self._connected = managed
        self._scripts: dict[str, AsyncScript] = {
            name: client.register_script(lua) for name, lua in LUA_SCRIPTS.items()
        }

    @classmethod
    def from_url(cls, url: str, socket_timeout: float | None = 5.0) -> RedisStore:
        """Owned store connecting to url (not connected until open())."""
        client = redis.Redis.from_url(
            url,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            socket_keepalive=True,
        )
        return cls(client, managed=False)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> RedisStore:
        """Owned store using redis_url, or host/port/db/password from settings."""
        settings = settings or get_settings()
        if settings.redis_url:
            return cls.from_url(settings.redis_url, settings.redis_socket_timeout)
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=(
                settings.redis_password.get_secret_value()
                if settings.redis_password
                else None
            ),
            socket_connect_timeout=settings.redis_socket_timeout,
            socket_timeout=settings.redis_socket_timeout,
            socket_keepalive=True,
        )
        return cls(client, managed=False)

    @classmethod
    def from_client(cls, client: redis.Redis) -> RedisStore:
        """Borrowed store: the caller opens and closes client."""
        return cls(client, managed=True)

    def is_available(self) -> bool:
        return self._connected

    async def open(self) -> None:
        """Connect and verify with PING. Errors propagate; there is no retry."""
        if self.is_managed:
            logger.debug("Redis client is managed by caller; not opening")
            return
        if self._connected:
            return
        await self._client.ping()
        self._connected = True
        logger.info("Redis store connected")

    async def close(self) -> None:
        """Close an owned connection."""
        if self.is_managed:
            logger.debug("Redis client is managed by caller; not closing")
            return
        if not self._connected:
            return
        await self._client.aclose()
        self._connected = False
        logger.info("Redis store disconnected")

    async def configure_in_memory(self) -> None:
        """Disable AOF and RDB snapshots on an owned connection."""
        if self.is_managed:
            logger.warning("Redis client is managed by caller; not changing config")
            return
        logger.info("Configuring Redis for no-persistence mode")
        await self._client.config_set("appendonly", "no")
        await self._client.config_set("save", "")
        logger.info("Redis no-persistence configuration done")

    async def save(self) -> None:
        """Blocking SAVE on an owned connection."""
        if self.is_managed:
            logger.warning("Redis client is managed by caller; not saving")
            return
        logger.warning("Saving Redis dataset to disk (blocking)")
        await self._client.save()

    async def get(self, name: str) -> bytes | None:
        return _as_bytes(await self._client.get(name))

    async def mget(self, names: Sequence[str]) -> list[bytes | None]:
        if not names:
            return []
        return [_as_bytes(value) for value in await self._client.mget(list(names))]

    async def range_by_lex(
        self,
        index: str,
        lower: str,
        upper: str,
        *,
        reverse: bool = False,
        offset: int = 0,
        count: int | None = None,
    ) -> list[str]:
        # LIMIT needs both offset and count; a negative count means "all".
        start: int | None = None
        num: int | None = None
        if offset or count is not None:
            start = offset
            num = -1 if count is None else count
        if reverse:
            members = await self._client.zrevrangebylex(index, upper, lower, start, num)
        else:
            members = await self._client.zrangebylex(index, lower, upper, start, num)
        return [_as_str(member) for member in members]

    async def run_atomic(self, operation: AtomicOperation) -> Any:
        script = self._scripts[operation.procedure]
        return await script(keys=list(operation.keys), args=list(operation.args), client=self._client)

    async def run_atomic_batch(self, operations: Sequence[AtomicOperation]) -> list[Any]:
        if not operations:
            return []
        async with self._client.pipeline(transaction=True) as pipe:
            for operation in operations:
                script = self._scripts[operation.procedure]
                # Buffered: returns the pipeline, executed on EXEC.
                await script(keys=list(operation.keys), args=list(operation.args), client=pipe)
            results = await pipe.execute()
        logger.debug("Redis transaction executed: %s operations", len(operations))
        return results

    def storage(self) -> redis.Redis:
        return self._client
