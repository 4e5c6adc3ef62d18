"""Storage protocol shared by the PostgreSQL and in-memory stores."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from driftwatch.models import (
        Alert,
        AlertStatus,
        Metric,
        NamedEntity,
        Project,
        Report,
        Threshold,
    )

EntityKind = Literal["branch", "testbed", "benchmark", "measure"]


class ReportStore(Protocol):
    """Everything the ingestor and API need from persistence."""

    async def create_project(self, project: Project) -> Project: ...

    async def get_project(self, slug: str) -> Project | None: ...

    async def upsert_entity(
        self,
        kind: EntityKind,
        project_id: str,
        name: str,
        *,
        units: str | None = None,
    ) -> NamedEntity:
        """Return the named entity, creating it if it does not exist."""
        ...

    async def list_entities(self, kind: EntityKind, project_id: str) -> list[NamedEntity]:
        """Entities of one kind for the project, ordered by name."""
        ...

    async def create_report(self, report: Report) -> Report: ...

    async def create_metric(self, metric: Metric) -> Metric: ...

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
        """Most recent values for the series, newest first, at most `limit`."""
        ...

    async def list_thresholds(
        self, project_id: str, *, measure_id: str | None = None
    ) -> list[Threshold]: ...

    async def get_threshold(self, threshold_id: str) -> Threshold | None: ...

    async def create_threshold(self, threshold: Threshold) -> Threshold: ...

    async def update_threshold(self, threshold: Threshold) -> Threshold: ...

    async def delete_threshold(self, threshold_id: str) -> bool: ...

    async def create_alert(self, alert: Alert) -> Alert: ...

    async def get_alert(self, alert_id: str) -> Alert | None: ...

    async def list_alerts(
        self, project_id: str, *, status: AlertStatus | None = None
    ) -> list[Alert]:
        """Alerts for the project's thresholds, newest first."""
        ...

    async def set_alert_status(self, alert_id: str, status: AlertStatus) -> Alert: ...
