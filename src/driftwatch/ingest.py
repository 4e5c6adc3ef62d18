"""Report ingestion: evaluate each stored metric against its thresholds.

For each metric in a submitted report:
1. Upsert the benchmark and measure by name
2. Store the metric
3. Resolve thresholds for (measure, branch-or-any, testbed-or-any)
4. Fetch the most recent min_sample_size values of the same series,
   excluding the metric just stored
5. Evaluate; store an active alert for every violation

Metrics of one report are processed in order so a baseline query never
sees a half-written report. Distinct reports may be ingested concurrently.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from whenever import Instant

from driftwatch.errors import InvalidTransitionError, NotFoundError
from driftwatch.evaluator import evaluate
from driftwatch.models import (
    DEFAULT_MIN_SAMPLE_SIZE,
    Alert,
    AlertStatus,
    Metric,
    Project,
    Report,
    ReportResult,
    Threshold,
    ThresholdConfig,
)

if TYPE_CHECKING:
    from driftwatch.cache import TTLCache
    from driftwatch.models import (
        CreateProjectRequest,
        CreateReportRequest,
        CreateThresholdRequest,
        MetricInput,
        NamedEntity,
        UpdateThresholdRequest,
    )
    from driftwatch.storage import EntityKind, ReportStore

logger = logging.getLogger("driftwatch.ingest")

DEFAULT_MEASURE = "latency"
DEFAULT_MEASURE_UNITS = "ns"


def _new_id() -> str:
    return str(uuid.uuid4())


def _thresholds_key(project_id: str, measure_id: str) -> str:
    return f"project:{project_id}:measure:{measure_id}:thresholds"


class ReportIngestor:
    """Caller-side orchestration around the threshold evaluator."""

    def __init__(
        self,
        *,
        store: ReportStore,
        cache: TTLCache,
        default_min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE,
    ) -> None:
        self._store = store
        self._cache = cache
        self._default_min_sample_size = default_min_sample_size

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    async def create_project(self, request: CreateProjectRequest) -> Project:
        """Create a project and its default latency measure."""
        project = await self._store.create_project(
            Project(
                id=_new_id(),
                slug=request.slug,
                name=request.name,
                description=request.description,
            )
        )
        await self._store.upsert_entity(
            "measure", project.id, DEFAULT_MEASURE, units=DEFAULT_MEASURE_UNITS
        )
        logger.info("Created project %s", project.slug)
        return project

    async def _require_project(self, slug: str) -> Project:
        project = await self._store.get_project(slug)
        if project is None:
            msg = f"Project {slug} not found"
            raise NotFoundError(msg)
        return project

    async def _require_entity(self, kind: EntityKind, project: Project, entity_id: str) -> None:
        entities = await self._store.list_entities(kind, project.id)
        if entity_id not in {e.id for e in entities}:
            msg = f"{kind.capitalize()} {entity_id} not found in project {project.slug}"
            raise NotFoundError(msg)

    async def list_entities(self, project_slug: str, kind: EntityKind) -> list[NamedEntity]:
        """Branches, testbeds, benchmarks or measures seen for a project."""
        project = await self._require_project(project_slug)
        return await self._store.list_entities(kind, project.id)

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def ingest(self, request: CreateReportRequest) -> ReportResult:
        """Store a report and evaluate every metric against its thresholds."""
        project = await self._require_project(request.project_slug)
        branch = await self._store.upsert_entity("branch", project.id, request.branch)
        testbed = await self._store.upsert_entity("testbed", project.id, request.testbed)

        report = await self._store.create_report(
            Report(
                id=_new_id(),
                project_id=project.id,
                branch_id=branch.id,
                testbed_id=testbed.id,
                git_hash=request.git_hash,
                pr_number=request.pr_number,
            )
        )

        result = ReportResult(report=report)
        for metric_input in request.metrics:
            metric, alerts = await self._ingest_metric(report, metric_input)
            result.metrics.append(metric)
            result.alerts.extend(alerts)

        logger.info(
            "Stored report %s for %s (%s/%s): %d metrics, %d alerts",
            report.id,
            project.slug,
            request.branch,
            request.testbed,
            len(result.metrics),
            len(result.alerts),
        )
        return result

    async def _ingest_metric(
        self, report: Report, metric_input: MetricInput
    ) -> tuple[Metric, list[Alert]]:
        benchmark = await self._store.upsert_entity(
            "benchmark", report.project_id, metric_input.benchmark
        )
        measure = await self._store.upsert_entity(
            "measure", report.project_id, metric_input.measure
        )
        metric = await self._store.create_metric(
            Metric(
                id=_new_id(),
                report_id=report.id,
                benchmark_id=benchmark.id,
                measure_id=measure.id,
                value=metric_input.value,
                lower_value=metric_input.lower_value,
                upper_value=metric_input.upper_value,
            )
        )

        thresholds = await self.applicable_thresholds(
            project_id=report.project_id,
            measure_id=measure.id,
            branch_id=report.branch_id,
            testbed_id=report.testbed_id,
        )

        alerts: list[Alert] = []
        for threshold in thresholds:
            baseline = await self._store.fetch_baseline(
                benchmark_id=benchmark.id,
                measure_id=measure.id,
                branch_id=report.branch_id,
                testbed_id=report.testbed_id,
                exclude_metric_id=metric.id,
                limit=threshold.min_sample_size,
            )
            violation = evaluate(threshold.config, metric.value, baseline)
            if violation is None:
                continue

            logger.warning(
                "Threshold %s violated by %s/%s: %+.2f%% vs baseline %.4g (%s)",
                threshold.id,
                metric_input.benchmark,
                metric_input.measure,
                violation.percent_change,
                violation.baseline_value,
                violation.type.value,
            )
            alert = Alert.from_violation(
                violation,
                alert_id=_new_id(),
                threshold_id=threshold.id,
                metric_id=metric.id,
                current_value=metric.value,
            )
            alerts.append(await self._store.create_alert(alert))

        return metric, alerts

    async def applicable_thresholds(
        self,
        *,
        project_id: str,
        measure_id: str,
        branch_id: str,
        testbed_id: str,
    ) -> list[Threshold]:
        """Thresholds for the measure whose branch/testbed scope covers this run."""
        key = _thresholds_key(project_id, measure_id)
        thresholds = self._cache.get(key)
        if thresholds is None:
            thresholds = await self._store.list_thresholds(project_id, measure_id=measure_id)
            self._cache.set(key, thresholds)
        return [t for t in thresholds if t.applies_to(branch_id=branch_id, testbed_id=testbed_id)]

    # -------------------------------------------------------------------------
    # Thresholds
    # -------------------------------------------------------------------------

    async def list_thresholds(self, project_slug: str) -> list[Threshold]:
        project = await self._require_project(project_slug)
        return await self._store.list_thresholds(project.id)

    async def create_threshold(
        self, project_slug: str, request: CreateThresholdRequest
    ) -> Threshold:
        """Store a threshold. At least one boundary must be set."""
        project = await self._require_project(project_slug)
        await self._require_entity("measure", project, request.measure_id)
        if request.branch_id is not None:
            await self._require_entity("branch", project, request.branch_id)
        if request.testbed_id is not None:
            await self._require_entity("testbed", project, request.testbed_id)
        min_sample_size = request.min_sample_size or self._default_min_sample_size
        ThresholdConfig(
            upper_boundary=request.upper_boundary,
            lower_boundary=request.lower_boundary,
            min_sample_size=min_sample_size,
        ).require_boundary()

        now = Instant.now().format_iso()
        threshold = await self._store.create_threshold(
            Threshold(
                id=_new_id(),
                project_id=project.id,
                measure_id=request.measure_id,
                branch_id=request.branch_id,
                testbed_id=request.testbed_id,
                upper_boundary=request.upper_boundary,
                lower_boundary=request.lower_boundary,
                min_sample_size=min_sample_size,
                created_at=now,
                updated_at=now,
            )
        )
        self._cache.invalidate_prefix(f"project:{project.id}:")
        logger.info("Created threshold %s for project %s", threshold.id, project.slug)
        return threshold

    async def update_threshold(
        self, threshold_id: str, request: UpdateThresholdRequest
    ) -> Threshold:
        """Apply the fields present in the request; the result must keep a boundary."""
        existing = await self._store.get_threshold(threshold_id)
        if existing is None:
            msg = f"Threshold {threshold_id} not found"
            raise NotFoundError(msg)

        changes = {
            field: getattr(request, field)
            for field in request.model_fields_set
            if field != "min_sample_size" or request.min_sample_size is not None
        }
        updated = existing.model_copy(update={**changes, "updated_at": Instant.now().format_iso()})
        updated.config.require_boundary()

        stored = await self._store.update_threshold(updated)
        self._cache.invalidate_prefix(f"project:{stored.project_id}:")
        return stored

    async def delete_threshold(self, threshold_id: str) -> None:
        existing = await self._store.get_threshold(threshold_id)
        if existing is None or not await self._store.delete_threshold(threshold_id):
            msg = f"Threshold {threshold_id} not found"
            raise NotFoundError(msg)
        self._cache.invalidate_prefix(f"project:{existing.project_id}:")

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    async def list_alerts(
        self, project_slug: str, *, status: AlertStatus | None = None
    ) -> list[Alert]:
        project = await self._require_project(project_slug)
        return await self._store.list_alerts(project.id, status=status)

    async def dismiss_alert(self, alert_id: str) -> Alert:
        return await self._transition_alert(alert_id, AlertStatus.DISMISSED)

    async def resolve_alert(self, alert_id: str) -> Alert:
        return await self._transition_alert(alert_id, AlertStatus.RESOLVED)

    async def _transition_alert(self, alert_id: str, status: AlertStatus) -> Alert:
        alert = await self._store.get_alert(alert_id)
        if alert is None:
            msg = f"Alert {alert_id} not found"
            raise NotFoundError(msg)
        if alert.status != AlertStatus.ACTIVE:
            msg = f"Alert {alert_id} is {alert.status.value}, not active"
            raise InvalidTransitionError(msg)
        return await self._store.set_alert_status(alert_id, status)
