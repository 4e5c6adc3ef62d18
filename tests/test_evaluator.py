"""Unit tests for the threshold evaluator and ThresholdConfig validation."""

import math
import sys

import pytest
from pydantic import ValidationError

from driftwatch.errors import InvalidThresholdError, NonFiniteValueError
from driftwatch.evaluator import evaluate, percent_change
from driftwatch.models import ThresholdConfig, ViolationType


class TestScenarios:
    def test_large_increase_fires_upper(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=2)

        result = evaluate(config, 150, [100, 100])

        assert result is not None
        assert result.type == ViolationType.UPPER
        assert result.baseline_value == 100
        assert result.percent_change == pytest.approx(50)

    def test_increase_within_boundary(self):
        config = ThresholdConfig(upper_boundary=50, min_sample_size=2)

        assert evaluate(config, 120, [100, 100]) is None

    def test_insufficient_samples(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=5)

        assert evaluate(config, 500, [100]) is None

    def test_large_decrease_fires_lower(self):
        config = ThresholdConfig(lower_boundary=20, min_sample_size=2)

        result = evaluate(config, 50, [100, 100])

        assert result is not None
        assert result.type == ViolationType.LOWER
        assert result.percent_change == pytest.approx(-50)

    def test_zero_mean_guard(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=2)

        assert evaluate(config, 100, [0, 0]) is None


class TestDecisionOrder:
    def test_upper_checked_first_with_zero_boundaries(self):
        config = ThresholdConfig(upper_boundary=0, lower_boundary=0, min_sample_size=1)

        assert evaluate(config, 101, [100]).type == ViolationType.UPPER
        assert evaluate(config, 99, [100]).type == ViolationType.LOWER
        assert evaluate(config, 100, [100]) is None

    def test_decrease_ignored_without_lower_boundary(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=2)

        assert evaluate(config, 1, [100, 100]) is None

    def test_baseline_longer_than_min_sample_size_is_averaged(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=2)

        result = evaluate(config, 130, [90, 100, 110])

        assert result is not None
        assert result.baseline_value == pytest.approx(100)

    def test_negative_mean_divides_by_signed_mean(self):
        # -100 -> -150 is a +50% change relative to a negative mean
        config = ThresholdConfig(upper_boundary=10, lower_boundary=10, min_sample_size=2)

        result = evaluate(config, -150, [-100, -100])

        assert result is not None
        assert result.type == ViolationType.UPPER
        assert result.percent_change == pytest.approx(50)


class TestExtremeFiniteInput:
    def test_baseline_near_float_max_does_not_overflow(self):
        config = ThresholdConfig(upper_boundary=10, lower_boundary=10, min_sample_size=2)

        result = evaluate(config, 1.0, [1e308, 1e308])

        assert result is not None
        assert result.type == ViolationType.LOWER
        assert result.baseline_value == pytest.approx(1e308)
        assert result.percent_change == pytest.approx(-100)

    def test_three_max_values_average_to_max(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=3)
        largest = sys.float_info.max

        result = evaluate(config, largest, [largest, largest, largest])

        assert result is None

    def test_huge_change_saturates(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=1)

        result = evaluate(config, 1e308, [1e-308])

        assert result is not None
        assert result.type == ViolationType.UPPER
        assert result.percent_change == sys.float_info.max

    def test_saturated_change_is_serializable(self):
        result = evaluate(ThresholdConfig(lower_boundary=10, min_sample_size=1), -1e308, [1e-308])

        assert result.percent_change == -sys.float_info.max
        assert "null" not in result.model_dump_json()


class TestNonFiniteInput:
    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_new_value_rejected(self, value):
        config = ThresholdConfig(upper_boundary=10)

        with pytest.raises(NonFiniteValueError, match="new_value"):
            evaluate(config, value, [100, 100])

    def test_non_finite_baseline_rejected_before_sample_gate(self):
        config = ThresholdConfig(upper_boundary=10, min_sample_size=5)

        with pytest.raises(NonFiniteValueError, match=r"baseline_values\[1\]"):
            evaluate(config, 100, [100, math.nan])

    def test_non_finite_is_value_error(self):
        with pytest.raises(ValueError):
            evaluate(ThresholdConfig(upper_boundary=10), math.inf, [])


class TestThresholdConfig:
    def test_defaults(self):
        config = ThresholdConfig()

        assert config.min_sample_size == 2
        assert not config.has_boundary

    @pytest.mark.parametrize("min_sample_size", [0, -1])
    def test_min_sample_size_must_be_positive(self, min_sample_size):
        with pytest.raises(ValidationError):
            ThresholdConfig(upper_boundary=10, min_sample_size=min_sample_size)

    def test_negative_boundary_rejected(self):
        with pytest.raises(ValidationError):
            ThresholdConfig(upper_boundary=-5)

    def test_require_boundary(self):
        with pytest.raises(InvalidThresholdError):
            ThresholdConfig().require_boundary()

        config = ThresholdConfig(lower_boundary=5)
        assert config.require_boundary() is config

    def test_frozen(self):
        config = ThresholdConfig(upper_boundary=10)

        with pytest.raises(ValidationError):
            config.upper_boundary = 20


def test_percent_change_zero_baseline():
    assert percent_change(0, 10) is None
    assert percent_change(200, 150) == pytest.approx(-25)
    assert percent_change(1e-308, -1e308) == -sys.float_info.max
