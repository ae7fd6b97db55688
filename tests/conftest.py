"""
Pytest configuration and shared fixtures for cache tests.

Provides an in-memory stand-in for the redis.asyncio client, a
controllable clock, and managers wired to both.
"""

from fnmatch import fnmatchcase

import pytest
import pytest_asyncio
import redis.asyncio as redis

from resilient_cache.cache.connection import RedisCache
from resilient_cache.cache.manager import CacheManager, set_cache_manager
from resilient_cache.cache.memory import MemoryCache
from resilient_cache.config import CacheSettings

CACHE_ENV_VARS = (
    "BACKEND_URL",
    "REDIS_URL",
    "CACHE_DISABLED",
    "DISABLE_REDIS",
    "DEFAULT_TTL_SECONDS",
    "CACHE_FAILURE_THRESHOLD",
    "CACHE_SOCKET_TIMEOUT",
    "CACHE_MAX_CONNECTIONS",
    "CACHE_LOCAL_MAX_ENTRIES",
    "CACHE_SWEEP_INTERVAL",
)

TEST_URL = "redis://localhost:6379/0"


class FakeRedis:
    """Dictionary-backed subset of the redis.asyncio client API."""

    def __init__(self, decode_responses=False):
        self.decode_responses = decode_responses
        self.store = {}
        self.ttls = {}
        self.calls = []
        self.fail = False

    def _command(self, name):
        self.calls.append(name)
        if self.fail:
            raise redis.ConnectionError("Connection refused")

    async def ping(self):
        self._command("ping")
        return True

    async def get(self, key):
        self._command("get")
        value = self.store.get(key)
        if self.decode_responses and isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def setex(self, key, ttl, value):
        self._command("setex")
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def set(self, key, value):
        self._command("set")
        self.store[key] = value
        self.ttls.pop(key, None)
        return True

    async def delete(self, *keys):
        self._command("delete")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def scan_iter(self, match="*", count=None):
        self._command("scan")
        for key in list(self.store):
            if fnmatchcase(key, match):
                yield key

    async def flushdb(self):
        self._command("flushdb")
        self.store.clear()
        self.ttls.clear()
        return True

    async def aclose(self):
        self.calls.append("aclose")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_cache_env(monkeypatch, tmp_path):
    """Isolate tests from cache settings in the surrounding environment."""
    for name in CACHE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    set_cache_manager(None)


@pytest.fixture
def settings():
    return CacheSettings(backend_url=TEST_URL, _env_file=None)


@pytest.fixture
def disabled_settings():
    return CacheSettings(cache_disabled=True, _env_file=None)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def decoding_redis():
    """Client stand-in that decodes responses like decode_responses=True."""
    return FakeRedis(decode_responses=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def remote(fake_redis):
    client = RedisCache(
        TEST_URL,
        failure_threshold=3,
        backoff_base=0.01,
        backoff_max=0.05,
        client=fake_redis,
    )
    yield client
    await client.close()


@pytest_asyncio.fixture
async def local(clock):
    store = MemoryCache(max_entries=100, sweep_interval=60, clock=clock)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def manager(settings, remote, local):
    cache = CacheManager(settings, remote=remote, local=local)
    await cache.connect()
    yield cache
    await cache.close()


@pytest_asyncio.fixture
async def disabled_manager(disabled_settings, local):
    cache = CacheManager(disabled_settings, local=local)
    yield cache
    await cache.close()
