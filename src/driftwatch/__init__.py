"""Driftwatch - benchmark tracking with threshold-based regression alerts.

Quick start:

    from driftwatch.evaluator import evaluate
    from driftwatch.models import ThresholdConfig

    config = ThresholdConfig(upper_boundary=10.0, min_sample_size=2)
    violation = evaluate(config, 115.0, [100.0, 100.0])
    # ThresholdViolation(baseline_value=100.0, percent_change=15.0, type=UPPER)
"""

__version__ = "0.1.0"
