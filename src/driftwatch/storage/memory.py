"""In-process store used by tests and by the API when no database is configured."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from whenever import Instant

from driftwatch.errors import AlreadyExistsError, NotFoundError
from driftwatch.models import Alert, AlertStatus, Metric, NamedEntity, Project, Report, Threshold

if TYPE_CHECKING:
    from driftwatch.storage.base import EntityKind


class MemoryReportStore:
    """Dict-backed ReportStore. Insertion order stands in for created_at."""

    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}
        self.entities: dict[tuple[str, str, str], NamedEntity] = {}
        self.reports: dict[str, Report] = {}
        self.metrics: dict[str, Metric] = {}
        self.thresholds: dict[str, Threshold] = {}
        self.alerts: dict[str, Alert] = {}

    async def create_project(self, project: Project) -> Project:
        if project.slug in self.projects:
            msg = f"Project {project.slug} already exists"
            raise AlreadyExistsError(msg)
        self.projects[project.slug] = project
        return project

    async def get_project(self, slug: str) -> Project | None:
        return self.projects.get(slug)

    async def upsert_entity(
        self,
        kind: EntityKind,
        project_id: str,
        name: str,
        *,
        units: str | None = None,
    ) -> NamedEntity:
        key = (kind, project_id, name)
        entity = self.entities.get(key)
        if entity is None:
            entity = NamedEntity(
                id=str(uuid.uuid4()), project_id=project_id, name=name, units=units
            )
            self.entities[key] = entity
        return entity

    async def list_entities(self, kind: EntityKind, project_id: str) -> list[NamedEntity]:
        return sorted(
            (e for (k, pid, _), e in self.entities.items() if k == kind and pid == project_id),
            key=lambda e: e.name,
        )

    async def create_report(self, report: Report) -> Report:
        self.reports[report.id] = report
        return report

    async def create_metric(self, metric: Metric) -> Metric:
        self.metrics[metric.id] = metric
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
        values: list[float] = []
        for metric in reversed(self.metrics.values()):
            if len(values) >= limit:
                break
            if metric.id == exclude_metric_id:
                continue
            if metric.benchmark_id != benchmark_id or metric.measure_id != measure_id:
                continue
            report = self.reports[metric.report_id]
            if report.branch_id == branch_id and report.testbed_id == testbed_id:
                values.append(metric.value)
        return values

    async def list_thresholds(
        self, project_id: str, *, measure_id: str | None = None
    ) -> list[Threshold]:
        return [
            t
            for t in self.thresholds.values()
            if t.project_id == project_id and (measure_id is None or t.measure_id == measure_id)
        ]

    async def get_threshold(self, threshold_id: str) -> Threshold | None:
        return self.thresholds.get(threshold_id)

    async def create_threshold(self, threshold: Threshold) -> Threshold:
        self.thresholds[threshold.id] = threshold
        return threshold

    async def update_threshold(self, threshold: Threshold) -> Threshold:
        if threshold.id not in self.thresholds:
            msg = f"Threshold {threshold.id} not found"
            raise NotFoundError(msg)
        self.thresholds[threshold.id] = threshold
        return threshold

    async def delete_threshold(self, threshold_id: str) -> bool:
        return self.thresholds.pop(threshold_id, None) is not None

    async def create_alert(self, alert: Alert) -> Alert:
        self.alerts[alert.id] = alert
        return alert

    async def get_alert(self, alert_id: str) -> Alert | None:
        return self.alerts.get(alert_id)

    async def list_alerts(
        self, project_id: str, *, status: AlertStatus | None = None
    ) -> list[Alert]:
        alerts = [
            a
            for a in self.alerts.values()
            if a.threshold_id in self.thresholds
            and self.thresholds[a.threshold_id].project_id == project_id
            and (status is None or a.status == status)
        ]
        return list(reversed(alerts))

    async def set_alert_status(self, alert_id: str, status: AlertStatus) -> Alert:
        alert = self.alerts.get(alert_id)
        if alert is None:
            msg = f"Alert {alert_id} not found"
            raise NotFoundError(msg)
        updated = alert.model_copy(
            update={"status": status, "updated_at": Instant.now().format_iso()}
        )
        self.alerts[alert_id] = updated
        return updated
