"""
Shared fixtures: an in-process Redis behind a real blocking connection pool
"""

import fakeredis
import pytest

from redis_object_cache.cache.manager import ObjectCacheManager
from redis_object_cache.store.config import StoreConfig
from redis_object_cache.store.connection import ConnectionProvider


@pytest.fixture
def fake_server():
    """Fresh fake Redis server per test"""
    return fakeredis.FakeServer()


@pytest.fixture
def store_config():
    """Small pool with short waits so exhaustion tests finish quickly"""
    return StoreConfig(max_connections=4, pool_timeout=0.2, socket_timeout=1)


@pytest.fixture
def provider(store_config, fake_server):
    """Connection provider wired to the fake server"""
    provider = ConnectionProvider(
        store_config,
        connection_class=fakeredis.FakeConnection,
        server=fake_server,
    )
    yield provider
    provider.close()


@pytest.fixture
def cache(provider):
    """Object cache manager sharing the test provider"""
    return ObjectCacheManager(provider=provider)


@pytest.fixture
def raw_redis(fake_server):
    """Direct client for inspecting what the cache wrote"""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)
