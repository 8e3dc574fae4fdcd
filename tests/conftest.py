"""Shared fixtures for the cache tests."""

import pytest

from m3_mcp_server.cache.persistent import CacheStores
from m3_mcp_server.cache.versioning import CacheVersionManager
from m3_mcp_server.utils.config import UserConfigManager

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeFingerprintSource:
    """Stand-in for UpstreamFingerprintChecker returning canned fingerprints."""

    def __init__(self, fingerprint: str = "flutter-1:web-1"):
        self.fingerprint = fingerprint
        self.error = None
        self.calls = 0

    async def fetch_fingerprint(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.fingerprint


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return UserConfigManager(config_dir=tmp_path / "home")


@pytest.fixture
def stores(config, clock):
    return CacheStores.create(config, clock=clock)


@pytest.fixture
def fingerprints():
    return FakeFingerprintSource()


@pytest.fixture
def manager(stores, fingerprints, clock):
    return CacheVersionManager(stores, fingerprints, clock=clock)
