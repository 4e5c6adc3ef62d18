"""Report, metric and alert models.

Date/Time: timestamps are ISO 8601 strings produced with `whenever`
(UTC-first), the same way as stored rows and API responses.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field
from whenever import Instant

from .threshold import ThresholdConfig, ThresholdViolation  # noqa: TC001


def _now_iso() -> str:
    """Return current UTC time as ISO 8601 string."""
    return Instant.now().format_iso()


class AlertStatus(StrEnum):
    """Alert lifecycle: active → dismissed | resolved."""

    ACTIVE = "active"
    DISMISSED = "dismissed"
    RESOLVED = "resolved"


# =============================================================================
# Stored entities
# =============================================================================


class Project(BaseModel):
    id: str
    slug: str
    name: str
    description: str | None = None
    created_at: str = Field(default_factory=_now_iso)


class NamedEntity(BaseModel):
    """A branch, testbed, benchmark or measure. Names are unique per project."""

    id: str
    project_id: str
    name: str
    units: str | None = None


class Report(BaseModel):
    id: str
    project_id: str
    branch_id: str
    testbed_id: str
    git_hash: str | None = None
    pr_number: int | None = None
    created_at: str = Field(default_factory=_now_iso)


class Metric(BaseModel):
    id: str
    report_id: str
    benchmark_id: str
    measure_id: str
    value: float
    lower_value: float | None = None
    upper_value: float | None = None
    created_at: str = Field(default_factory=_now_iso)


class Alert(BaseModel):
    id: str
    threshold_id: str
    metric_id: str
    status: AlertStatus = AlertStatus.ACTIVE
    baseline_value: float
    percent_change: float
    current_value: float
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    @classmethod
    def from_violation(
        cls,
        violation: ThresholdViolation,
        *,
        alert_id: str,
        threshold_id: str,
        metric_id: str,
        current_value: float,
    ) -> Alert:
        return cls(
            id=alert_id,
            threshold_id=threshold_id,
            metric_id=metric_id,
            baseline_value=violation.baseline_value,
            percent_change=violation.percent_change,
            current_value=current_value,
        )


# =============================================================================
# Requests
# =============================================================================


class CreateProjectRequest(BaseModel):
    slug: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str | None = None


class MetricInput(BaseModel):
    benchmark: str = Field(min_length=1)
    measure: str = Field(default="latency", min_length=1)
    value: float = Field(allow_inf_nan=False)
    lower_value: float | None = Field(default=None, allow_inf_nan=False)
    upper_value: float | None = Field(default=None, allow_inf_nan=False)


class CreateReportRequest(BaseModel):
    project_slug: str
    branch: str = Field(min_length=1)
    testbed: str = Field(min_length=1)
    git_hash: str | None = None
    pr_number: int | None = Field(default=None, gt=0)
    metrics: list[MetricInput] = Field(default_factory=list)


class EvaluateRequest(BaseModel):
    """Stateless evaluation of one value against a baseline."""

    upper_boundary: float | None = Field(default=None, ge=0)
    lower_boundary: float | None = Field(default=None, ge=0)
    min_sample_size: int = Field(default=2, ge=1)
    new_value: float
    baseline_values: list[float] = Field(default_factory=list)

    @property
    def config(self) -> ThresholdConfig:
        return ThresholdConfig(
            upper_boundary=self.upper_boundary,
            lower_boundary=self.lower_boundary,
            min_sample_size=self.min_sample_size,
        )


# =============================================================================
# Responses
# =============================================================================


class ReportResult(BaseModel):
    """A stored report with its metrics and any alerts it raised."""

    report: Report
    metrics: list[Metric] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)

    @property
    def regression_count(self) -> int:
        return len(self.alerts)

    @property
    def passed(self) -> bool:
        return not self.alerts


class EvaluateResponse(BaseModel):
    violation: ThresholdViolation | None = None
