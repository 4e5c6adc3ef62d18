"""PostgreSQL store backed by an asyncpg pool.

Date/Time: models carry ISO 8601 strings; they are converted with `whenever`
to Python datetimes for asyncpg TIMESTAMPTZ columns and back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime  # noqa: TC003 — asyncpg requires runtime datetime
from typing import TYPE_CHECKING

import asyncpg
from whenever import Instant

from driftwatch.errors import AlreadyExistsError, NotFoundError
from driftwatch.models import Alert, AlertStatus, Metric, NamedEntity, Project, Report, Threshold

if TYPE_CHECKING:
    from driftwatch.storage.base import EntityKind

logger = logging.getLogger("driftwatch.storage")

_ENTITY_TABLES: dict[str, str] = {
    "branch": "branches",
    "testbed": "testbeds",
    "benchmark": "benchmarks",
    "measure": "measures",
}

_THRESHOLD_COLUMNS = """
    id, project_id, measure_id, branch_id, testbed_id, upper_boundary,
    lower_boundary, min_sample_size, created_at, updated_at
"""

_ALERT_COLUMNS = """
    a.id, a.threshold_id, a.metric_id, a.status, a.baseline_value,
    a.percent_change, a.current_value, a.created_at, a.updated_at
"""


def _iso_to_datetime(iso_str: str) -> datetime:
    """Convert ISO 8601 string to Python datetime for asyncpg."""
    return Instant.parse_iso(iso_str).py_datetime()


def _datetime_to_iso(dt) -> str:
    """Convert Python datetime to ISO 8601 string."""
    return Instant.from_py_datetime(dt).format_iso()


def _optional_id(value) -> str | None:
    return str(value) if value is not None else None


def _is_uuid(value: str) -> bool:
    """Path ids that are not UUIDs can never match a row."""
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class PostgresReportStore:
    """ReportStore over PostgreSQL. Every call acquires its own connection."""

    def __init__(self, *, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def create_project(self, project: Project) -> Project:
        async with self._pool.acquire() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO projects (id, slug, name, description, created_at)
                    VALUES ($1, $2, $3, $4, $5)
                    """,
                    project.id,
                    project.slug,
                    project.name,
                    project.description,
                    _iso_to_datetime(project.created_at),
                )
            except asyncpg.UniqueViolationError as exc:
                msg = f"Project {project.slug} already exists"
                raise AlreadyExistsError(msg) from exc
        return project

    async def get_project(self, slug: str) -> Project | None:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, slug, name, description, created_at FROM projects WHERE slug = $1",
                slug,
            )
        if not row:
            return None
        return Project(
            id=str(row["id"]),
            slug=row["slug"],
            name=row["name"],
            description=row["description"],
            created_at=_datetime_to_iso(row["created_at"]),
        )

    async def upsert_entity(
        self,
        kind: EntityKind,
        project_id: str,
        name: str,
        *,
        units: str | None = None,
    ) -> NamedEntity:
        table = _ENTITY_TABLES[kind]
        async with self._pool.acquire() as conn:
            if kind == "measure":
                row = await conn.fetchrow(
                    """
                    INSERT INTO measures (id, project_id, name, units)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (project_id, name) DO UPDATE SET name = EXCLUDED.name
                    RETURNING id, project_id, name, units
                    """,
                    str(uuid.uuid4()),
                    project_id,
                    name,
                    units,
                )
            else:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO {table} (id, project_id, name)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (project_id, name) DO UPDATE SET name = EXCLUDED.name
                    RETURNING id, project_id, name
                    """,  # noqa: S608 — table name comes from _ENTITY_TABLES
                    str(uuid.uuid4()),
                    project_id,
                    name,
                )
        return NamedEntity(
            id=str(row["id"]),
            project_id=str(row["project_id"]),
            name=row["name"],
            units=row["units"] if kind == "measure" else None,
        )

    async def list_entities(self, kind: EntityKind, project_id: str) -> list[NamedEntity]:
        table = _ENTITY_TABLES[kind]
        units = "units" if kind == "measure" else "NULL AS units"
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT id, project_id, name, {units} FROM {table} "  # noqa: S608
                "WHERE project_id = $1 ORDER BY name",
                project_id,
            )
        return [
            NamedEntity(
                id=str(row["id"]),
                project_id=str(row["project_id"]),
                name=row["name"],
                units=row["units"],
            )
            for row in rows
        ]

    async def create_report(self, report: Report) -> Report:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO reports
                    (id, project_id, branch_id, testbed_id, git_hash, pr_number, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                report.id,
                report.project_id,
                report.branch_id,
                report.testbed_id,
                report.git_hash,
                report.pr_number,
                _iso_to_datetime(report.created_at),
            )
        return report

    async def create_metric(self, metric: Metric) -> Metric:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO metrics
                    (id, report_id, benchmark_id, measure_id, value,
                     lower_value, upper_value, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                """,
                metric.id,
                metric.report_id,
                metric.benchmark_id,
                metric.measure_id,
                metric.value,
                metric.lower_value,
                metric.upper_value,
                _iso_to_datetime(metric.created_at),
            )
        return metric

    async def fetch_baseline(
        self,
        *,
        benchmark_id: str,
        measure_id: str,
        branch_id: str,
        testbed_id: str,
        exclude_metric_id: str,
        limit: int,
    ) -> list[float]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT m.value
                FROM metrics m
                JOIN reports r ON r.id = m.report_id
                WHERE m.benchmark_id = $1
                  AND m.measure_id = $2
                  AND r.branch_id = $3
                  AND r.testbed_id = $4
                  AND m.id <> $5
                ORDER BY m.created_at DESC
                LIMIT $6
                """,
                benchmark_id,
                measure_id,
                branch_id,
                testbed_id,
                exclude_metric_id,
                limit,
            )
        return [row["value"] for row in rows]

    async def list_thresholds(
        self, project_id: str, *, measure_id: str | None = None
    ) -> list[Threshold]:
        async with self._pool.acquire() as conn:
            if measure_id:
                rows = await conn.fetch(
                    f"""
                    SELECT {_THRESHOLD_COLUMNS}
                    FROM thresholds
                    WHERE project_id = $1 AND measure_id = $2
                    ORDER BY created_at
                    """,  # noqa: S608
                    project_id,
                    measure_id,
                )
            else:
                rows = await conn.fetch(
                    f"""
                    SELECT {_THRESHOLD_COLUMNS}
                    FROM thresholds
                    WHERE project_id = $1
                    ORDER BY created_at
                    """,  # noqa: S608
                    project_id,
                )
        return [_threshold_from_row(row) for row in rows]

    async def get_threshold(self, threshold_id: str) -> Threshold | None:
        if not _is_uuid(threshold_id):
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_THRESHOLD_COLUMNS} FROM thresholds WHERE id = $1",  # noqa: S608
                threshold_id,
            )
        return _threshold_from_row(row) if row else None

    async def create_threshold(self, threshold: Threshold) -> Threshold:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO thresholds
                    (id, project_id, measure_id, branch_id, testbed_id, upper_boundary,
                     lower_boundary, min_sample_size, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                """,
                threshold.id,
                threshold.project_id,
                threshold.measure_id,
                threshold.branch_id,
                threshold.testbed_id,
                threshold.upper_boundary,
                threshold.lower_boundary,
                threshold.min_sample_size,
                _iso_to_datetime(threshold.created_at),
                _iso_to_datetime(threshold.updated_at),
            )
        return threshold

    async def update_threshold(self, threshold: Threshold) -> Threshold:
        async with self._pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE thresholds
                SET upper_boundary = $2, lower_boundary = $3,
                    min_sample_size = $4, updated_at = $5
                WHERE id = $1
                """,
                threshold.id,
                threshold.upper_boundary,
                threshold.lower_boundary,
                threshold.min_sample_size,
                _iso_to_datetime(threshold.updated_at),
            )
        if result == "UPDATE 0":
            msg = f"Threshold {threshold.id} not found"
            raise NotFoundError(msg)
        return threshold

    async def delete_threshold(self, threshold_id: str) -> bool:
        if not _is_uuid(threshold_id):
            return False
        async with self._pool.acquire() as conn:
            result = await conn.execute("DELETE FROM thresholds WHERE id = $1", threshold_id)
        return result != "DELETE 0"

    async def create_alert(self, alert: Alert) -> Alert:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO alerts
                    (id, threshold_id, metric_id, status, baseline_value,
                     percent_change, current_value, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                """,
                alert.id,
                alert.threshold_id,
                alert.metric_id,
                alert.status.value,
                alert.baseline_value,
                alert.percent_change,
                alert.current_value,
                _iso_to_datetime(alert.created_at),
                _iso_to_datetime(alert.updated_at),
            )
        return alert

    async def get_alert(self, alert_id: str) -> Alert | None:
        if not _is_uuid(alert_id):
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_ALERT_COLUMNS} FROM alerts a WHERE a.id = $1",  # noqa: S608
                alert_id,
            )
        return _alert_from_row(row) if row else None

    async def list_alerts(
        self, project_id: str, *, status: AlertStatus | None = None
    ) -> list[Alert]:
        async with self._pool.acquire() as conn:
            if status:
                rows = await conn.fetch(
                    f"""
                    SELECT {_ALERT_COLUMNS}
                    FROM alerts a
                    JOIN thresholds t ON t.id = a.threshold_id
                    WHERE t.project_id = $1 AND a.status = $2
                    ORDER BY a.created_at DESC
                    """,  # noqa: S608
                    project_id,
                    status.value,
                )
            else:
                rows = await conn.fetch(
                    f"""
                    SELECT {_ALERT_COLUMNS}
                    FROM alerts a
                    JOIN thresholds t ON t.id = a.threshold_id
                    WHERE t.project_id = $1
                    ORDER BY a.created_at DESC
                    """,  # noqa: S608
                    project_id,
                )
        return [_alert_from_row(row) for row in rows]

    async def set_alert_status(self, alert_id: str, status: AlertStatus) -> Alert:
        if not _is_uuid(alert_id):
            msg = f"Alert {alert_id} not found"
            raise NotFoundError(msg)
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE alerts a
                SET status = $2, updated_at = $3
                WHERE a.id = $1
                RETURNING {_ALERT_COLUMNS}
                """,  # noqa: S608
                alert_id,
                status.value,
                Instant.now().py_datetime(),
            )
        if not row:
            msg = f"Alert {alert_id} not found"
            raise NotFoundError(msg)
        logger.info("Alert %s marked %s", alert_id, status.value)
        return _alert_from_row(row)


def _threshold_from_row(row) -> Threshold:
    return Threshold(
        id=str(row["id"]),
        project_id=str(row["project_id"]),
        measure_id=str(row["measure_id"]),
        branch_id=_optional_id(row["branch_id"]),
        testbed_id=_optional_id(row["testbed_id"]),
        upper_boundary=row["upper_boundary"],
        lower_boundary=row["lower_boundary"],
        min_sample_size=row["min_sample_size"],
        created_at=_datetime_to_iso(row["created_at"]),
        updated_at=_datetime_to_iso(row["updated_at"]),
    )


def _alert_from_row(row) -> Alert:
    return Alert(
        id=str(row["id"]),
        threshold_id=str(row["threshold_id"]),
        metric_id=str(row["metric_id"]),
        status=AlertStatus(row["status"]),
        baseline_value=row["baseline_value"],
        percent_change=row["percent_change"],
        current_value=row["current_value"],
        created_at=_datetime_to_iso(row["created_at"]),
        updated_at=_datetime_to_iso(row["updated_at"]),
    )
