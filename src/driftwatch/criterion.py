"""Parse Criterion.rs benchmark output into metrics.

Criterion prints one estimate line per benchmark:

    parse/small             time:   [1.5203 µs 1.5290 µs 1.5380 µs]

Long names go on their own line with the estimate indented below:

    parse/a_rather_long_benchmark_name
                            time:   [12.041 ms 12.112 ms 12.190 ms]

The middle estimate becomes the metric value and the outer two its bounds.
All times are normalized to nanoseconds for the ``latency`` measure.
"""

from __future__ import annotations

import logging
import re

from driftwatch.models import MetricInput

logger = logging.getLogger("driftwatch.criterion")

LATENCY_MEASURE = "latency"

_UNIT_TO_NS: dict[str, float] = {
    "ps": 1e-3,
    "ns": 1.0,
    "us": 1e3,
    "µs": 1e3,  # micro sign
    "μs": 1e3,  # greek mu
    "ms": 1e6,
    "s": 1e9,
}

_NUMBER = r"[-+]?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?"

_TIME_LINE = re.compile(
    rf"^(?P<name>\S.*?)?\s*time:\s*\["
    rf"(?P<lower>{_NUMBER})\s*(?P<lower_unit>\S+)\s+"
    rf"(?P<value>{_NUMBER})\s*(?P<value_unit>\S+)\s+"
    rf"(?P<upper>{_NUMBER})\s*(?P<upper_unit>\S+)\s*\]"
)


def to_nanoseconds(value: str, unit: str) -> float | None:
    factor = _UNIT_TO_NS.get(unit)
    if factor is None:
        return None
    return float(value) * factor


def parse_criterion_output(output: str) -> list[MetricInput]:
    """Extract one latency metric per benchmark estimate in ``output``."""
    metrics: list[MetricInput] = []
    pending_name: str | None = None

    for line in output.splitlines():
        match = _TIME_LINE.match(line)
        if match is None:
            stripped = line.strip()
            # A bare, unindented single token is a long benchmark name
            if stripped and not line[0].isspace() and len(stripped.split()) == 1:
                pending_name = stripped
            elif stripped:
                pending_name = None
            continue

        name = (match["name"] or "").strip() or pending_name
        pending_name = None
        if not name:
            logger.debug("Skipping estimate with no benchmark name: %r", line)
            continue

        lower = to_nanoseconds(match["lower"], match["lower_unit"])
        value = to_nanoseconds(match["value"], match["value_unit"])
        upper = to_nanoseconds(match["upper"], match["upper_unit"])
        if value is None or lower is None or upper is None:
            logger.warning("Skipping %s: unrecognised time unit in %r", name, line.strip())
            continue

        metrics.append(
            MetricInput(
                benchmark=name,
                measure=LATENCY_MEASURE,
                value=value,
                lower_value=lower,
                upper_value=upper,
            )
        )

    return metrics
