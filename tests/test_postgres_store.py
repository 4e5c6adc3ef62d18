"""PostgresReportStore against a recording fake pool (no database)."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import asyncpg
import pytest

from driftwatch.errors import AlreadyExistsError, NotFoundError
from driftwatch.models import AlertStatus, Project
from driftwatch.storage import PostgresReportStore

pytestmark = pytest.mark.anyio

CREATED = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class FakeConnection:
    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.execute_result = "INSERT 0 1"
        self.execute_error: Exception | None = None
        self.rows: list[dict] = []

    async def execute(self, query, *args):
        self.calls.append((query, args))
        if self.execute_error:
            raise self.execute_error
        return self.execute_result

    async def fetch(self, query, *args):
        self.calls.append((query, args))
        return self.rows

    async def fetchrow(self, query, *args):
        self.calls.append((query, args))
        return self.rows[0] if self.rows else None


class FakePool:
    def __init__(self) -> None:
        self.conn = FakeConnection()

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def store(pool: FakePool) -> PostgresReportStore:
    return PostgresReportStore(pool=pool)


def _alert_row(status: str = "dismissed") -> dict:
    return {
        "id": uuid.uuid4(),
        "threshold_id": uuid.uuid4(),
        "metric_id": uuid.uuid4(),
        "status": status,
        "baseline_value": 100.0,
        "percent_change": 50.0,
        "current_value": 150.0,
        "created_at": CREATED,
        "updated_at": CREATED,
    }


async def test_duplicate_project(store: PostgresReportStore, pool: FakePool):
    pool.conn.execute_error = asyncpg.UniqueViolationError("duplicate key")

    with pytest.raises(AlreadyExistsError):
        await store.create_project(Project(id=str(uuid.uuid4()), slug="p", name="P"))


async def test_baseline_query_is_capped_and_excludes_current(
    store: PostgresReportStore, pool: FakePool
):
    pool.conn.rows = [{"value": 3.0}, {"value": 2.0}]

    values = await store.fetch_baseline(
        benchmark_id="b",
        measure_id="m",
        branch_id="br",
        testbed_id="tb",
        exclude_metric_id="current",
        limit=2,
    )

    query, args = pool.conn.calls[-1]
    assert values == [3.0, 2.0]
    assert "ORDER BY m.created_at DESC" in query
    assert args == ("b", "m", "br", "tb", "current", 2)


async def test_threshold_row_conversion(store: PostgresReportStore, pool: FakePool):
    threshold_id = uuid.uuid4()
    pool.conn.rows = [
        {
            "id": threshold_id,
            "project_id": uuid.uuid4(),
            "measure_id": uuid.uuid4(),
            "branch_id": None,
            "testbed_id": uuid.uuid4(),
            "upper_boundary": 10.0,
            "lower_boundary": None,
            "min_sample_size": 2,
            "created_at": CREATED,
            "updated_at": CREATED,
        }
    ]

    threshold = await store.get_threshold(str(threshold_id))

    assert threshold.id == str(threshold_id)
    assert threshold.branch_id is None
    assert threshold.testbed_id is not None
    assert threshold.created_at.startswith("2026-01-15T12:00:00")


async def test_non_uuid_ids_never_reach_the_database(store: PostgresReportStore, pool: FakePool):
    assert await store.get_threshold("missing") is None
    assert await store.get_alert("missing") is None
    assert await store.delete_threshold("missing") is False
    with pytest.raises(NotFoundError):
        await store.set_alert_status("missing", AlertStatus.RESOLVED)

    assert pool.conn.calls == []


async def test_delete_reports_whether_a_row_went(store: PostgresReportStore, pool: FakePool):
    pool.conn.execute_result = "DELETE 0"
    assert await store.delete_threshold(str(uuid.uuid4())) is False

    pool.conn.execute_result = "DELETE 1"
    assert await store.delete_threshold(str(uuid.uuid4())) is True


async def test_set_alert_status(store: PostgresReportStore, pool: FakePool):
    pool.conn.rows = [_alert_row("dismissed")]

    alert = await store.set_alert_status(str(uuid.uuid4()), AlertStatus.DISMISSED)

    assert alert.status == AlertStatus.DISMISSED
    assert pool.conn.calls[-1][1][1] == "dismissed"


async def test_set_alert_status_missing_row(store: PostgresReportStore, pool: FakePool):
    with pytest.raises(NotFoundError):
        await store.set_alert_status(str(uuid.uuid4()), AlertStatus.RESOLVED)
