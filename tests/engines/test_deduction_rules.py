"""
Tests for the Deduction Evaluator.

Covers:
- Each rule type: FIXED, PER_HOUR, PER_DAY_SALARY, TIERED_COUNT
- Rounding to the money quantum
- Rule validation (value ranges, tiered thresholds)
- Negative counts
- Properties: non-negative, quantized, monotone in count
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_engines.deduction import (
    evaluate_deduction,
    quantize_money,
    validate_exception_type,
)
from payroll_engines.types import AttendanceExceptionType, DeductionRuleType
from payroll_kernel.exceptions import (
    InvalidDeductionRuleError,
    NegativeExceptionCountError,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _exception_type(
    rule: DeductionRuleType = DeductionRuleType.FIXED,
    value: Decimal = Decimal("30"),
    threshold: Decimal | None = None,
    type_id: int = 1,
) -> AttendanceExceptionType:
    return AttendanceExceptionType(
        id=type_id,
        name=f"{rule.value}_exception",
        deduction_rule_type=rule,
        deduction_rule_value=value,
        deduction_rule_threshold=threshold,
    )


DAILY = Decimal("200")


# ===========================================================================
# Rule types
# ===========================================================================


class TestFixedRule:
    """FIXED charges its value once per period if the exception occurred."""

    def test_charged_once_regardless_of_count(self):
        et = _exception_type(DeductionRuleType.FIXED, Decimal("30"))
        assert evaluate_deduction(et, Decimal("7"), DAILY) == Decimal("30.00")

    def test_zero_count_charges_nothing(self):
        et = _exception_type(DeductionRuleType.FIXED, Decimal("30"))
        assert evaluate_deduction(et, Decimal("0"), DAILY) == Decimal("0.00")

    def test_fractional_count_still_charged(self):
        et = _exception_type(DeductionRuleType.FIXED, Decimal("30"))
        assert evaluate_deduction(et, Decimal("0.5"), DAILY) == Decimal("30.00")


class TestPerHourRule:

    def test_value_times_hours(self):
        et = _exception_type(DeductionRuleType.PER_HOUR, Decimal("20"))
        assert evaluate_deduction(et, Decimal("2.5"), DAILY) == Decimal("50.00")

    def test_ignores_daily_salary(self):
        et = _exception_type(DeductionRuleType.PER_HOUR, Decimal("20"))
        assert evaluate_deduction(et, Decimal("1"), Decimal("0")) == Decimal("20.00")


class TestPerDaySalaryRule:
    """PER_DAY_SALARY charges a fraction of daily salary per day."""

    def test_half_day_salary_for_three_days(self):
        et = _exception_type(DeductionRuleType.PER_DAY_SALARY, Decimal("0.5"))
        assert evaluate_deduction(et, Decimal("3"), Decimal("200")) == Decimal("300.00")

    def test_full_day_salary(self):
        et = _exception_type(DeductionRuleType.PER_DAY_SALARY, Decimal("1"))
        assert evaluate_deduction(et, Decimal("2"), Decimal("183.91")) == Decimal("367.82")

    def test_boundaries_zero_and_one_accepted(self):
        for value in (Decimal("0"), Decimal("1")):
            et = _exception_type(DeductionRuleType.PER_DAY_SALARY, value)
            validate_exception_type(et)

    def test_negative_daily_salary_charges_nothing(self):
        et = _exception_type(DeductionRuleType.PER_DAY_SALARY, Decimal("1"))
        assert evaluate_deduction(et, Decimal("2"), Decimal("-50")) == Decimal("0.00")


class TestTieredCountRule:
    """TIERED_COUNT charges only occurrences beyond the free threshold."""

    def test_five_occurrences_threshold_three(self):
        et = _exception_type(DeductionRuleType.TIERED_COUNT, Decimal("50"), Decimal("3"))
        assert evaluate_deduction(et, Decimal("5"), DAILY) == Decimal("100.00")

    def test_below_threshold_charges_nothing(self):
        et = _exception_type(DeductionRuleType.TIERED_COUNT, Decimal("50"), Decimal("3"))
        assert evaluate_deduction(et, Decimal("2"), DAILY) == Decimal("0.00")

    def test_exactly_at_threshold_charges_nothing(self):
        et = _exception_type(DeductionRuleType.TIERED_COUNT, Decimal("50"), Decimal("3"))
        assert evaluate_deduction(et, Decimal("3"), DAILY) == Decimal("0.00")

    def test_zero_threshold_charges_every_occurrence(self):
        et = _exception_type(DeductionRuleType.TIERED_COUNT, Decimal("50"), Decimal("0"))
        assert evaluate_deduction(et, Decimal("2"), DAILY) == Decimal("100.00")


# ===========================================================================
# Rounding
# ===========================================================================


class TestRounding:

    def test_half_up(self):
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")
        assert quantize_money(Decimal("-2.345")) == Decimal("-2.35")

    def test_result_is_quantized(self):
        et = _exception_type(DeductionRuleType.PER_HOUR, Decimal("0.333"))
        result = evaluate_deduction(et, Decimal("1"), DAILY)
        assert result == Decimal("0.33")
        assert result.as_tuple().exponent == -2

    def test_custom_quantum(self):
        et = _exception_type(DeductionRuleType.PER_HOUR, Decimal("12.6"))
        assert evaluate_deduction(
            et, Decimal("1"), DAILY, money_quantum=Decimal("1"),
        ) == Decimal("13")


# ===========================================================================
# Validation
# ===========================================================================


class TestRuleValidation:
    """Stored rules that violate their invariants are rejected, not coerced."""

    def test_per_day_fraction_above_one_rejected(self):
        et = _exception_type(DeductionRuleType.PER_DAY_SALARY, Decimal("1.5"))
        with pytest.raises(InvalidDeductionRuleError) as exc_info:
            evaluate_deduction(et, Decimal("1"), DAILY)
        assert exc_info.value.exception_type_id == 1
        assert exc_info.value.rule_type == "per_day_salary"

    def test_per_day_negative_fraction_rejected(self):
        et = _exception_type(DeductionRuleType.PER_DAY_SALARY, Decimal("-0.1"))
        with pytest.raises(InvalidDeductionRuleError):
            validate_exception_type(et)

    @pytest.mark.parametrize("rule", [
        DeductionRuleType.FIXED,
        DeductionRuleType.PER_HOUR,
    ])
    def test_negative_value_rejected(self, rule):
        et = _exception_type(rule, Decimal("-5"))
        with pytest.raises(InvalidDeductionRuleError):
            evaluate_deduction(et, Decimal("1"), DAILY)

    def test_tiered_without_threshold_rejected(self):
        et = _exception_type(DeductionRuleType.TIERED_COUNT, Decimal("50"), None)
        with pytest.raises(InvalidDeductionRuleError) as exc_info:
            evaluate_deduction(et, Decimal("5"), DAILY)
        assert "threshold is required" in str(exc_info.value)

    @pytest.mark.parametrize("threshold", [Decimal("2.5"), Decimal("-1")])
    def test_tiered_threshold_must_be_non_negative_integer(self, threshold):
        et = _exception_type(DeductionRuleType.TIERED_COUNT, Decimal("50"), threshold)
        with pytest.raises(InvalidDeductionRuleError):
            validate_exception_type(et)

    def test_non_finite_value_rejected(self):
        et = _exception_type(DeductionRuleType.PER_HOUR, Decimal("NaN"))
        with pytest.raises(InvalidDeductionRuleError):
            validate_exception_type(et)

    def test_disabled_type_still_validated(self):
        et = AttendanceExceptionType(
            9, "bad", DeductionRuleType.PER_DAY_SALARY, Decimal("2"), is_enabled=False,
        )
        with pytest.raises(InvalidDeductionRuleError):
            validate_exception_type(et)


class TestNegativeCount:

    def test_negative_count_raises(self):
        et = _exception_type(DeductionRuleType.PER_HOUR, Decimal("20"), type_id=4)
        with pytest.raises(NegativeExceptionCountError) as exc_info:
            evaluate_deduction(et, Decimal("-1"), DAILY)
        assert exc_info.value.exception_type_id == 4
        assert exc_info.value.count == "-1"


# ===========================================================================
# Tracing
# ===========================================================================


class TestDeductionTrace:

    def test_trace_record_emitted(self, captured_logs):
        et = _exception_type(DeductionRuleType.FIXED, Decimal("30"))
        evaluate_deduction(et, Decimal("1"), DAILY)

        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "deduction"
        assert len(traces[-1]["input_fingerprint"]) == 16


# ===========================================================================
# Properties
# ===========================================================================


_amounts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("100000"),
    places=2, allow_nan=False, allow_infinity=False,
)
_counts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("200"),
    places=1, allow_nan=False, allow_infinity=False,
)
_fractions = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1"),
    places=2, allow_nan=False, allow_infinity=False,
)


@st.composite
def _valid_exception_types(draw) -> AttendanceExceptionType:
    rule = draw(st.sampled_from(list(DeductionRuleType)))
    if rule == DeductionRuleType.PER_DAY_SALARY:
        return _exception_type(rule, draw(_fractions))
    if rule == DeductionRuleType.TIERED_COUNT:
        threshold = Decimal(draw(st.integers(min_value=0, max_value=20)))
        return _exception_type(rule, draw(_amounts), threshold)
    return _exception_type(rule, draw(_amounts))


class TestDeductionProperties:

    @pytest.mark.slow
    @given(et=_valid_exception_types(), count=_counts, daily=_amounts)
    @settings(max_examples=200)
    def test_never_negative_and_quantized(self, et, count, daily):
        result = evaluate_deduction(et, count, daily)
        assert result >= 0
        assert result == result.quantize(Decimal("0.01"))

    @pytest.mark.slow
    @given(et=_valid_exception_types(), a=_counts, b=_counts, daily=_amounts)
    @settings(max_examples=200)
    def test_monotone_in_count(self, et, a, b, daily):
        low, high = min(a, b), max(a, b)
        assert evaluate_deduction(et, low, daily) <= evaluate_deduction(et, high, daily)
