"""Property tests for the threshold evaluator."""

import math

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from driftwatch.evaluator import evaluate, percent_change
from driftwatch.models import ThresholdConfig, ViolationType

from .strategies import (
    any_finite,
    baselines,
    boundaries,
    positive_values,
    threshold_configs,
    values,
)


@given(config=threshold_configs(), new_value=values, data=st.data())
@settings(max_examples=200)
def test_insufficient_samples_never_fire(config, new_value, data):
    baseline = data.draw(baselines(max_size=config.min_sample_size - 1))

    assert evaluate(config, new_value, baseline) is None


@given(
    config=threshold_configs(),
    new_value=values,
    halves=st.lists(positive_values, min_size=5, max_size=5),
)
@settings(max_examples=200)
def test_zero_mean_never_fires(config, new_value, halves):
    # x and -x pairs sum to exactly zero under fsum
    baseline = [v for x in halves for v in (x, -x)]

    assert evaluate(config, new_value, baseline) is None


@given(config=threshold_configs(require_boundary=True), new_value=values, data=st.data())
@settings(max_examples=300)
def test_result_matches_percent_change(config, new_value, data):
    baseline = data.draw(baselines(min_size=config.min_sample_size, elements=values))
    avg = math.fsum(baseline) / len(baseline)
    assume(abs(avg) > 1e-6)
    expected = ((new_value - avg) / avg) * 100

    result = evaluate(config, new_value, baseline)

    upper_hit = config.upper_boundary is not None and expected > config.upper_boundary
    lower_hit = config.lower_boundary is not None and expected < -config.lower_boundary
    if result is None:
        assert not upper_hit
        assert not lower_hit
        return

    assert math.isclose(result.baseline_value, avg, rel_tol=1e-15, abs_tol=1e-300)
    assert math.isclose(result.percent_change, expected, rel_tol=1e-12, abs_tol=1e-9)
    if upper_hit:
        assert result.type == ViolationType.UPPER
    else:
        assert result.type == ViolationType.LOWER
        assert lower_hit


@given(
    upper=boundaries,
    lower=boundaries,
    baseline=baselines(min_size=2),
    a=values,
    b=values,
)
@settings(max_examples=300)
def test_monotonic_in_new_value(upper, lower, baseline, a, b):
    config = ThresholdConfig(upper_boundary=upper, lower_boundary=lower, min_sample_size=2)
    low, high = min(a, b), max(a, b)

    low_result = evaluate(config, low, baseline)
    high_result = evaluate(config, high, baseline)

    if low_result is not None and low_result.type == ViolationType.UPPER:
        assert high_result is not None
        assert high_result.type == ViolationType.UPPER
    if high_result is not None and high_result.type == ViolationType.LOWER:
        assert low_result is not None
        assert low_result.type == ViolationType.LOWER


@given(k=st.integers(min_value=0, max_value=40))
def test_upper_boundary_is_strict(k):
    # Mean 64 and a step of 16 keep the percent change an exact multiple of 25
    baseline = [64.0, 64.0]
    new_value = 64.0 + 16.0 * k
    pct = 25.0 * k
    assert percent_change(64.0, new_value) == pct

    at_boundary = ThresholdConfig(upper_boundary=pct, min_sample_size=2)
    assert evaluate(at_boundary, new_value, baseline) is None

    if pct > 0:
        just_below = ThresholdConfig(
            upper_boundary=math.nextafter(pct, -math.inf), min_sample_size=2
        )
        result = evaluate(just_below, new_value, baseline)
        assert result is not None
        assert result.type == ViolationType.UPPER


@given(k=st.integers(min_value=0, max_value=4))
def test_lower_boundary_is_strict(k):
    baseline = [64.0, 64.0]
    new_value = 64.0 - 16.0 * k
    pct = 25.0 * k
    assert percent_change(64.0, new_value) == -pct

    at_boundary = ThresholdConfig(lower_boundary=pct, min_sample_size=2)
    assert evaluate(at_boundary, new_value, baseline) is None

    if pct > 0:
        inside = ThresholdConfig(lower_boundary=math.nextafter(pct, -math.inf), min_sample_size=2)
        result = evaluate(inside, new_value, baseline)
        assert result is not None
        assert result.type == ViolationType.LOWER


@given(new_value=values, baseline=baselines(min_size=2))
def test_no_boundary_never_fires(new_value, baseline):
    config = ThresholdConfig(min_sample_size=2)

    assert evaluate(config, new_value, baseline) is None


@given(
    config=threshold_configs(require_boundary=True),
    new_value=any_finite,
    baseline=st.lists(any_finite, min_size=1, max_size=10),
)
@settings(max_examples=300)
def test_finite_input_never_raises(config, new_value, baseline):
    result = evaluate(config, new_value, baseline)

    if result is not None:
        assert math.isfinite(result.baseline_value)
        assert math.isfinite(result.percent_change)
