"""Pytest configuration and fixtures for the Driftwatch tests."""

import pytest

from driftwatch.cache import TTLCache
from driftwatch.ingest import ReportIngestor
from driftwatch.storage import MemoryReportStore


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(ttl_sec=60.0, max_entries=100, clock=clock)


@pytest.fixture
def store() -> MemoryReportStore:
    return MemoryReportStore()


@pytest.fixture
def ingestor(store: MemoryReportStore, cache: TTLCache) -> ReportIngestor:
    return ReportIngestor(store=store, cache=cache)
