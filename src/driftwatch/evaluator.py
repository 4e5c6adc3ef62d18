"""Threshold evaluator: deterministic regression and improvement detection.

Given a newly recorded value and a window of prior baseline values, decide
whether the percent change from the baseline mean crosses a configured
boundary. Pure: no I/O and no shared state.

Decision order:
0. NaN or infinite input -> NonFiniteValueError
1. Fewer baseline samples than min_sample_size -> no violation
2. Baseline mean of zero -> no violation (percent change undefined)
3. percent_change > upper_boundary -> UPPER
4. percent_change < -lower_boundary -> LOWER
5. Otherwise -> no violation

Boundaries are compared strictly: a change exactly equal to a boundary
does not fire. Upper is checked before lower.
"""

from __future__ import annotations

import math
import sys
from typing import TYPE_CHECKING

from driftwatch.errors import NonFiniteValueError
from driftwatch.models.threshold import ThresholdViolation, ViolationType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from driftwatch.models.threshold import ThresholdConfig


def evaluate(
    config: ThresholdConfig,
    new_value: float,
    baseline_values: Sequence[float],
) -> ThresholdViolation | None:
    """Check new_value against the mean of baseline_values.

    Args:
        config: Boundaries and sample-size gate, already resolved for the
            (measure, branch, testbed) scope being evaluated
        new_value: The metric value just recorded
        baseline_values: Prior values for the same series, excluding
            new_value. Order does not matter.

    Returns:
        A ThresholdViolation if a boundary was crossed, otherwise None.

    Raises:
        NonFiniteValueError: new_value or a baseline value is NaN or infinite.
    """
    _require_finite(new_value, baseline_values)

    if len(baseline_values) < config.min_sample_size:
        return None

    baseline_avg = _mean(baseline_values)
    change = percent_change(baseline_avg, new_value)
    if change is None:
        return None

    if config.upper_boundary is not None and change > config.upper_boundary:
        return ThresholdViolation(
            baseline_value=baseline_avg,
            percent_change=change,
            type=ViolationType.UPPER,
        )

    if config.lower_boundary is not None and change < -config.lower_boundary:
        return ThresholdViolation(
            baseline_value=baseline_avg,
            percent_change=change,
            type=ViolationType.LOWER,
        )

    return None


def percent_change(baseline: float, value: float) -> float | None:
    """Signed percent change from baseline to value. None if baseline is 0.

    A change too large for a float saturates at +/-sys.float_info.max.
    """
    if baseline == 0:
        return None
    change = ((value - baseline) / baseline) * 100
    if math.isinf(change):
        return math.copysign(sys.float_info.max, change)
    return change


def _mean(values: Sequence[float]) -> float:
    # Scaling by a power of two >= n keeps every partial sum finite
    n = len(values)
    scale = 2.0 ** (n - 1).bit_length()
    mean = math.fsum(v / scale for v in values) / n * scale
    return max(-sys.float_info.max, min(sys.float_info.max, mean))


def _require_finite(new_value: float, baseline_values: Sequence[float]) -> None:
    if not math.isfinite(new_value):
        msg = f"new_value must be finite, got {new_value!r}"
        raise NonFiniteValueError(msg)
    for i, v in enumerate(baseline_values):
        if not math.isfinite(v):
            msg = f"baseline_values[{i}] must be finite, got {v!r}"
            raise NonFiniteValueError(msg)
