"""
Deduction Evaluator -- attendance exception type + count -> monetary deduction.

Responsibility:
    Apply one exception type's deduction rule to an aggregated count.

    Rules:
        FIXED           value if count > 0, else 0 (once per period)
        PER_HOUR        value * count               (count in hours)
        PER_DAY_SALARY  value * daily_salary * count (count in days)
        TIERED_COUNT    value * max(0, count - threshold)

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The result is never negative.
    - PER_DAY_SALARY value lies in [0, 1].
    - TIERED_COUNT threshold is a non-negative integer.
    - FIXED / PER_HOUR / TIERED_COUNT value is non-negative.
    - Amounts are quantized to the money quantum with ROUND_HALF_UP.

Failure modes:
    - NegativeExceptionCountError for a negative aggregated count.
    - InvalidDeductionRuleError when the stored rule violates the above.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from payroll_engines.tracer import traced_engine
from payroll_engines.types import AttendanceExceptionType, DeductionRuleType
from payroll_kernel.exceptions import (
    InvalidDeductionRuleError,
    NegativeExceptionCountError,
)

ZERO = Decimal("0")
ONE = Decimal("1")
DEFAULT_MONEY_QUANTUM = Decimal("0.01")


def quantize_money(amount: Decimal, quantum: Decimal = DEFAULT_MONEY_QUANTUM) -> Decimal:
    """Round a monetary amount half-up to ``quantum``."""
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def validate_exception_type(exception_type: AttendanceExceptionType) -> None:
    """Check a stored rule against its invariants.

    Raises:
        InvalidDeductionRuleError: On the first violated invariant.
    """
    rule = exception_type.deduction_rule_type
    value = exception_type.deduction_rule_value

    def fail(reason: str) -> InvalidDeductionRuleError:
        return InvalidDeductionRuleError(exception_type.id, rule.value, reason)

    if not isinstance(value, Decimal) or not value.is_finite():
        raise fail(f"value {value!r} is not a finite decimal")

    if rule == DeductionRuleType.PER_DAY_SALARY:
        if not ZERO <= value <= ONE:
            raise fail(f"value {value} outside [0, 1]")
    elif value < ZERO:
        raise fail(f"value {value} is negative")

    if rule == DeductionRuleType.TIERED_COUNT:
        threshold = exception_type.deduction_rule_threshold
        if threshold is None:
            raise fail("threshold is required")
        threshold = Decimal(threshold)
        if threshold < ZERO or threshold != threshold.to_integral_value():
            raise fail(f"threshold {threshold} is not a non-negative integer")


@traced_engine(
    "deduction", "1.0",
    fingerprint_fields=("exception_type", "aggregated_count", "daily_salary"),
)
def evaluate_deduction(
    exception_type: AttendanceExceptionType,
    aggregated_count: Decimal,
    daily_salary: Decimal,
    money_quantum: Decimal = DEFAULT_MONEY_QUANTUM,
) -> Decimal:
    """Compute the deduction owed for one exception type in one period.

    Args:
        exception_type: The exception type carrying the rule.
        aggregated_count: Sum of counts for the period (hours, days or
            occurrences depending on the type).
        daily_salary: Gross earnings divided by the standard working days.
        money_quantum: Rounding quantum for the returned amount.

    Returns:
        Non-negative Decimal amount, quantized.

    Raises:
        NegativeExceptionCountError: If ``aggregated_count`` is negative.
        InvalidDeductionRuleError: If the rule violates its invariants.
    """
    if aggregated_count < ZERO:
        raise NegativeExceptionCountError(exception_type.id, str(aggregated_count))
    validate_exception_type(exception_type)

    rule = exception_type.deduction_rule_type
    value = exception_type.deduction_rule_value

    if rule == DeductionRuleType.FIXED:
        amount = value if aggregated_count > ZERO else ZERO
    elif rule == DeductionRuleType.PER_HOUR:
        amount = value * aggregated_count
    elif rule == DeductionRuleType.PER_DAY_SALARY:
        amount = value * max(daily_salary, ZERO) * aggregated_count
    else:
        excess = aggregated_count - exception_type.deduction_rule_threshold
        amount = value * max(ZERO, excess)

    return quantize_money(amount, money_quantum)
