"""Threshold models — evaluator input/output and the persisted threshold row.

A ThresholdConfig carries two independent optional percent boundaries.
Neither is required by the model itself: a config with no boundary never
fires, and rejecting it is a creation-time concern (see require_boundary).
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from driftwatch.errors import InvalidThresholdError

DEFAULT_MIN_SAMPLE_SIZE = 2


class ViolationType(StrEnum):
    """Direction of a threshold violation."""

    UPPER = "upper"  # value increased beyond upper_boundary
    LOWER = "lower"  # value decreased beyond lower_boundary


class ThresholdConfig(BaseModel):
    """Boundaries and sample-size gate for one monitored measure scope."""

    model_config = ConfigDict(frozen=True)

    upper_boundary: float | None = Field(
        default=None,
        ge=0,
        description="Percent increase above which an alert fires",
    )
    lower_boundary: float | None = Field(
        default=None,
        ge=0,
        description="Percent decrease beyond which an alert fires",
    )
    min_sample_size: int = Field(
        default=DEFAULT_MIN_SAMPLE_SIZE,
        ge=1,
        description="Baseline samples required before evaluation is attempted",
    )

    @property
    def has_boundary(self) -> bool:
        return self.upper_boundary is not None or self.lower_boundary is not None

    def require_boundary(self) -> ThresholdConfig:
        """Return self, or raise if neither boundary is set."""
        if not self.has_boundary:
            msg = "At least one of upper_boundary or lower_boundary must be set"
            raise InvalidThresholdError(msg)
        return self


class ThresholdViolation(BaseModel):
    """Result of a threshold check that fired."""

    model_config = ConfigDict(frozen=True)

    baseline_value: float = Field(description="Arithmetic mean of the baseline samples")
    percent_change: float = Field(description="Signed percent change from the baseline mean")
    type: ViolationType


class Threshold(BaseModel):
    """A stored threshold, scoped to a measure and optionally a branch/testbed.

    A null branch_id or testbed_id matches every branch or testbed.
    """

    id: str
    project_id: str
    measure_id: str
    branch_id: str | None = None
    testbed_id: str | None = None
    upper_boundary: float | None = None
    lower_boundary: float | None = None
    min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE
    created_at: str
    updated_at: str

    @property
    def config(self) -> ThresholdConfig:
        return ThresholdConfig(
            upper_boundary=self.upper_boundary,
            lower_boundary=self.lower_boundary,
            min_sample_size=self.min_sample_size,
        )

    def applies_to(self, *, branch_id: str, testbed_id: str) -> bool:
        """True if this threshold covers the given branch and testbed."""
        return self.branch_id in (None, branch_id) and self.testbed_id in (None, testbed_id)


class CreateThresholdRequest(BaseModel):
    """A new threshold. branch_id and testbed_id left unset match any run."""

    measure_id: str
    branch_id: str | None = None
    testbed_id: str | None = None
    upper_boundary: float | None = Field(default=None, ge=0)
    lower_boundary: float | None = Field(default=None, ge=0)
    min_sample_size: int | None = Field(default=None, ge=1)


class UpdateThresholdRequest(BaseModel):
    """Partial update; only fields explicitly supplied are applied."""

    upper_boundary: float | None = Field(default=None, ge=0)
    lower_boundary: float | None = Field(default=None, ge=0)
    min_sample_size: int | None = Field(default=None, ge=1)
