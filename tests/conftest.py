"""Pytest configuration and fixtures for sortkey_cache.

Unit tests run against MemoryStore. Integration tests use the Redis
server at REDIS_URL and skip (pytest.skip) when it is unreachable.
"""

import os
import uuid
from collections.abc import Callable

import pytest

from sortkey_cache.application.services.sort_key_cache import SortKeyCache
from sortkey_cache.core.config import CacheOptions, get_settings
from sortkey_cache.infrastructure.cache.memory_store import MemoryStore

_DEFAULT_REDIS_URL = "redis://localhost:6379/15"


def _sort_key(
    block_height: int,
    sequencer_value: str = "1643210931796",
    hash_: str = "81e1bea09d3262ee36ce8cfdbbb2ce3feb18a717c3020c47d206cb8ecb43b767",
) -> str:
    """Sort key for a block height: zero-padded height, sequencer value, hash."""
    return f"{block_height:012d},{sequencer_value},{hash_}"


@pytest.fixture(autouse=True)
def _fresh_settings() -> None:
    """Settings are re-read for every test so env overrides do not leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sort_key() -> Callable[..., str]:
    """Builds realistic, lexicographically monotonic sort keys."""
    return _sort_key


@pytest.fixture
def make_value() -> Callable[[int], int]:
    return lambda i: 100 * i


@pytest.fixture
async def store() -> MemoryStore:
    """Opened in-process store."""
    memory_store = MemoryStore()
    await memory_store.open()
    yield memory_store
    await memory_store.close()


@pytest.fixture
def make_cache(store: MemoryStore) -> Callable[..., SortKeyCache]:
    """Factory for caches over the shared store: make_cache(min_retained=..., ...)."""

    def _make(**overrides) -> SortKeyCache:
        options = {"namespace": "sortkey-cache-test", "min_retained": 10, "max_retained": 100}
        options.update(overrides)
        return SortKeyCache(store, CacheOptions(**options))

    return _make


@pytest.fixture
def cache(make_cache: Callable[..., SortKeyCache]) -> SortKeyCache:
    return make_cache()


@pytest.fixture
async def redis_client():
    """Client for the Redis at REDIS_URL (db 15 by default); flushed after the test."""
    import redis.asyncio as redis

    client = redis.Redis.from_url(os.environ.get("REDIS_URL", _DEFAULT_REDIS_URL))
    try:
        await client.ping()
    except (redis.ConnectionError, redis.TimeoutError, OSError):
        await client.aclose()
        pytest.skip("Redis not reachable: set REDIS_URL to run integration tests")
    yield client
    await client.flushdb()
    await client.aclose()


@pytest.fixture
def redis_namespace() -> str:
    return f"sortkey-cache-it-{uuid.uuid4().hex[:8]}"
