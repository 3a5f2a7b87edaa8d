"""RedisStore unit tests with a mocked redis.asyncio client."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sortkey_cache.infrastructure.cache.lua_scripts import LUA_SCRIPTS
from sortkey_cache.infrastructure.cache.redis_store import RedisStore
from sortkey_cache.infrastructure.cache.store_protocol import atomic_prune, atomic_put


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.register_script = MagicMock(side_effect=lambda lua: AsyncMock(name="script"))
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    client.config_set = AsyncMock()
    client.save = AsyncMock()
    client.get = AsyncMock(return_value="decoded")
    client.mget = AsyncMock(return_value=[b"a", None])
    client.zrangebylex = AsyncMock(return_value=[b"k\x1f1"])
    client.zrevrangebylex = AsyncMock(return_value=[b"k\x1f2", "k\x1f1"])
    return client


def test_registers_every_procedure(client: MagicMock) -> None:
    RedisStore(client, managed=True)
    assert client.register_script.call_count == len(LUA_SCRIPTS)


@pytest.mark.asyncio
async def test_owned_open_close(client: MagicMock) -> None:
    store = RedisStore(client, managed=False)
    assert not store.is_available()
    await store.open()
    assert store.is_available()
    client.ping.assert_awaited_once()
    await store.close()
    client.aclose.assert_awaited_once()
    assert not store.is_available()


@pytest.mark.asyncio
async def test_borrowed_client_lifecycle_and_config_untouched(client: MagicMock) -> None:
    store = RedisStore.from_client(client)
    assert store.is_managed and store.is_available()
    await store.open()
    await store.close()
    await store.configure_in_memory()
    client.ping.assert_not_called()
    client.aclose.assert_not_called()
    client.config_set.assert_not_called()


@pytest.mark.asyncio
async def test_owned_in_memory_config(client: MagicMock) -> None:
    await RedisStore(client, managed=False).configure_in_memory()
    client.config_set.assert_any_await("appendonly", "no")
    client.config_set.assert_any_await("save", "")


@pytest.mark.asyncio
async def test_save_skipped_on_borrowed_client(client: MagicMock) -> None:
    await RedisStore.from_client(client).save()
    client.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_owned_save(client: MagicMock) -> None:
    await RedisStore(client, managed=False).save()
    client.save.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_propagates_connection_errors(client: MagicMock) -> None:
    client.ping = AsyncMock(side_effect=ConnectionError("refused"))
    store = RedisStore(client, managed=False)
    with pytest.raises(ConnectionError):
        await store.open()
    assert not store.is_available()


@pytest.mark.asyncio
async def test_replies_normalized(client: MagicMock) -> None:
    store = RedisStore(client, managed=True)
    assert await store.get("x") == b"decoded"
    assert await store.mget(["a", "b"]) == [b"a", None]
    assert await store.mget([]) == []
    client.mget.assert_awaited_once_with(["a", "b"])


@pytest.mark.asyncio
async def test_range_by_lex_argument_mapping(client: MagicMock) -> None:
    store = RedisStore(client, managed=True)

    assert await store.range_by_lex("ns.keys", "-", "+") == ["k\x1f1"]
    client.zrangebylex.assert_awaited_once_with("ns.keys", "-", "+", None, None)

    members = await store.range_by_lex("ns.keys", "[k", "[k\x1f9", reverse=True, count=1)
    assert members == ["k\x1f2", "k\x1f1"]
    client.zrevrangebylex.assert_awaited_once_with("ns.keys", "[k\x1f9", "[k", 0, 1)


@pytest.mark.asyncio
async def test_run_atomic_calls_script(client: MagicMock) -> None:
    store = RedisStore(client, managed=True)
    op = atomic_prune(2, "ns", "\x1f")
    await store.run_atomic(op)
    script = store._scripts["atomic_prune"]
    script.assert_awaited_once_with(keys=[2], args=["ns", "\x1f"], client=client)


@pytest.mark.asyncio
async def test_run_atomic_batch_uses_transaction_pipeline(client: MagicMock) -> None:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, [5, 2]])
    pipeline_cm = MagicMock()
    pipeline_cm.__aenter__ = AsyncMock(return_value=pipe)
    pipeline_cm.__aexit__ = AsyncMock(return_value=False)
    client.pipeline = MagicMock(return_value=pipeline_cm)
    store = RedisStore(client, managed=True)

    put = atomic_put("k", "1", b"v", 1, 2, "ns", "\x1f")
    results = await store.run_atomic_batch([put, atomic_prune(2, "ns", "\x1f")])

    assert results == [0, [5, 2]]
    client.pipeline.assert_called_once_with(transaction=True)
    store._scripts["atomic_put"].assert_awaited_once_with(
        keys=["k", "1"], args=[b"v", 1, 2, "ns", "\x1f"], client=pipe
    )
    assert await store.run_atomic_batch([]) == []


@pytest.mark.asyncio
async def test_from_settings_builds_owned_store() -> None:
    from sortkey_cache.application.services.sort_key_cache import SortKeyCache
    from sortkey_cache.core.config import Settings

    settings = Settings(_env_file=None, redis_url="redis://localhost:6379/3", cache_namespace="cfg")
    store = RedisStore.from_settings(settings)
    assert not store.is_managed
    assert not store.is_available()

    cache = SortKeyCache.from_settings(settings)
    assert cache.namespace == "cfg"
    assert not cache.is_managed
    await store.storage().aclose()
    await cache.storage().aclose()
