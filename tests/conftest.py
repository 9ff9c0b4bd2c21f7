import pytest
from fastapi.testclient import TestClient

from blobsync.cache import ReadCache
from blobsync.main import create_app
from blobsync.shared import Config
from blobsync.storage import KeyedStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return KeyedStore(tmp_path / "data")


@pytest.fixture
def config():
    # Generous rate limit so functional tests never trip it
    return Config.model_validate(
        {"network": {"rate_limit": {"requests_per_second": 10_000}}}
    )


@pytest.fixture
def cache(clock):
    return ReadCache(ttl=60, clock=clock)


@pytest.fixture
def client(config, store, cache):
    return TestClient(create_app(config, store=store, cache=cache))
