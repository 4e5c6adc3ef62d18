"""Pydantic models for Driftwatch.

- Threshold models: ThresholdConfig (evaluator input), ThresholdViolation
  (evaluator output) and the stored Threshold row
- Report models: projects, reports, metrics and the alerts they raise
- Config: DriftwatchConfig, read from DRIFTWATCH_* environment variables
"""

from .config import CacheSettings, DriftwatchConfig, PoolSettings
from .report import (
    Alert,
    AlertStatus,
    CreateProjectRequest,
    CreateReportRequest,
    EvaluateRequest,
    EvaluateResponse,
    Metric,
    MetricInput,
    NamedEntity,
    Project,
    Report,
    ReportResult,
)
from .threshold import (
    DEFAULT_MIN_SAMPLE_SIZE,
    CreateThresholdRequest,
    Threshold,
    ThresholdConfig,
    ThresholdViolation,
    UpdateThresholdRequest,
    ViolationType,
)

__all__ = [
    # Config
    "CacheSettings",
    "DriftwatchConfig",
    "PoolSettings",
    # Thresholds
    "DEFAULT_MIN_SAMPLE_SIZE",
    "CreateThresholdRequest",
    "Threshold",
    "ThresholdConfig",
    "ThresholdViolation",
    "UpdateThresholdRequest",
    "ViolationType",
    # Reports
    "Alert",
    "AlertStatus",
    "CreateProjectRequest",
    "CreateReportRequest",
    "EvaluateRequest",
    "EvaluateResponse",
    "Metric",
    "MetricInput",
    "NamedEntity",
    "Project",
    "Report",
    "ReportResult",
]
