from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Makes the pos_api package importable when running the tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pos_api.core.config import get_settings
from pos_api.db.memory import MemoryBackend
from pos_api.db.selector import BackendKind
from pos_api.db.store import KVStore
from pos_api.repositories import Repositories


class TickingClock:
    """Deterministic UTC clock that moves forward by ``step`` on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class ManualTime:
    """Epoch-seconds clock for the in-memory backend."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "APP_ENV",
        "KV_BACKEND",
        "KV_REST_API_URL",
        "KV_REST_API_TOKEN",
        "KV_REST_API_READ_ONLY_TOKEN",
        "REDIS_URL",
        "KV_COMPAT_MODE",
        "POS_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def manual_time():
    return ManualTime()


@pytest.fixture
def store():
    kv = KVStore(MemoryBackend(sweep_interval=60), BackendKind.MEMORY)
    with kv:
        yield kv


@pytest.fixture
def repos(store, clock):
    return Repositories.build(store, clock=clock)
