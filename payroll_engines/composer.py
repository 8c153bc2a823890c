"""
Payslip Composer -- salary items + deductions + adjustments -> Payslip.

Responsibility:
    Combine an employee's resolved salary group, aggregated attendance
    exceptions, exception type catalog and reward/punishment adjustments
    into a Payslip.

    1. Salary items are applied in declared order as a left-to-right
       reduce over an immutable running state.  Each step sees only the
       subtotal and the item amounts computed before it.
    2. gross_earnings is the sum of item amounts.  With no group the
       employee's recorded base salary is paid and the payslip is flagged
       with ``configuration_gap``.
    3. Each aggregated exception type, in ascending id, is charged with
       ``daily_salary = gross_earnings / standard_working_days``.
    4. net_pay = gross - deductions + adjustments.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Same inputs produce an equal Payslip (no clock, no random ids).
    - A formula item can read base variables and earlier items only.
    - Negative net pay always yields a NEGATIVE_NET_PAY anomaly.  The
      amount is clamped to zero only when the policy forbids negative pay.

Failure modes:
    - ExceptionTypeNotFoundError for an aggregated type missing from the
      catalog.
    - InvalidSalaryItemError for an item whose value does not fit its
      compute mode, or whose subsidy cycle is below one.
    - FormulaError, NegativeExceptionCountError, InvalidDeductionRuleError
      propagated from the formula and deduction engines.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType

from payroll_engines.deduction import DEFAULT_MONEY_QUANTUM, evaluate_deduction, quantize_money
from payroll_engines.formula import evaluate_formula
from payroll_engines.period import PayPeriod
from payroll_engines.tracer import traced_engine
from payroll_engines.types import (
    AdjustmentKind,
    AdjustmentLine,
    AdjustmentRecord,
    AttendanceExceptionType,
    CalculationAnomaly,
    ComputeMode,
    DeductionLine,
    EmployeeProfile,
    ItemLine,
    Payslip,
    ResolvedSalaryGroup,
    SalaryItem,
)
from payroll_kernel.exceptions import (
    DataIntegrityError,
    ExceptionTypeNotFoundError,
    InvalidSalaryItemError,
)

ZERO = Decimal("0")

NEGATIVE_NET_PAY = "NEGATIVE_NET_PAY"

# Variables every formula can read.  camelCase aliases keep formulas
# written for the desktop application working unchanged.
# attendance_exceptions sums the aggregated counts rather than counting
# rows, so it does not depend on how the import split the records.
BASE_VARIABLE_NAMES: frozenset[str] = frozenset({
    "base_salary", "baseSalary",
    "work_years", "workYears",
    "attendance_exceptions", "attendanceExceptions",
    "year", "month",
})


@dataclass(frozen=True)
class ComposerPolicy:
    """Calculation policy knobs, normally built from PayrollEngineConfig."""

    standard_working_days: Decimal = Decimal("21.75")
    allow_negative_net_pay: bool = True
    money_quantum: Decimal = DEFAULT_MONEY_QUANTUM

    def __post_init__(self) -> None:
        if self.standard_working_days <= 0:
            raise ValueError("standard_working_days must be positive")
        if self.money_quantum <= 0:
            raise ValueError("money_quantum must be positive")


DEFAULT_POLICY = ComposerPolicy()


@dataclass(frozen=True)
class _RunningState:
    """Accumulator threaded through the item reduce; never mutated."""

    subtotal: Decimal = ZERO
    lines: tuple[ItemLine, ...] = ()
    variables: Mapping[str, Decimal] = field(default_factory=lambda: MappingProxyType({}))


def completed_work_years(entry_date: date | None, as_of: date) -> int:
    """Whole years of service completed on ``as_of``."""
    if entry_date is None or entry_date > as_of:
        return 0
    years = as_of.year - entry_date.year
    if (as_of.month, as_of.day) < (entry_date.month, entry_date.day):
        years -= 1
    return years


def formula_base_variables(
    employee: EmployeeProfile,
    period: PayPeriod,
    aggregated: Mapping[int, Decimal],
) -> dict[str, Decimal]:
    """The variables a formula sees before any salary item is computed."""
    work_years = Decimal(completed_work_years(employee.entry_date, period.end))
    exceptions = sum(aggregated.values(), ZERO)
    return {
        "base_salary": employee.base_salary,
        "baseSalary": employee.base_salary,
        "work_years": work_years,
        "workYears": work_years,
        "attendance_exceptions": exceptions,
        "attendanceExceptions": exceptions,
        "year": Decimal(period.year),
        "month": Decimal(period.month),
    }


def is_item_due(item: SalaryItem, period: PayPeriod) -> bool:
    """Whether an item's subsidy cycle pays out in ``period``.

    A cycle of N months pays in January and every N months after it.
    """
    if item.subsidy_cycle < 1:
        raise InvalidSalaryItemError(item.id, f"subsidy_cycle {item.subsidy_cycle} below 1")
    return (period.month - 1) % item.subsidy_cycle == 0


def _item_amount(item: SalaryItem, state: _RunningState) -> Decimal:
    if item.compute_mode == ComputeMode.FORMULA:
        if not isinstance(item.value, str):
            raise InvalidSalaryItemError(item.id, "formula item needs an expression")
        return evaluate_formula(item.value, state.variables, item.id)

    if not isinstance(item.value, Decimal) or not item.value.is_finite():
        raise InvalidSalaryItemError(item.id, f"value {item.value!r} is not a decimal amount")
    if item.compute_mode == ComputeMode.FIXED:
        return item.value
    return item.value * state.subtotal


def _apply_item(
    state: _RunningState, item: SalaryItem, period: PayPeriod, policy: ComposerPolicy,
) -> _RunningState:
    # Skipped items stay readable by later formulas, as zero.
    if not item.is_enabled or not is_item_due(item, period):
        return _RunningState(
            subtotal=state.subtotal,
            lines=state.lines,
            variables=MappingProxyType({**state.variables, item.name: ZERO}),
        )

    amount = quantize_money(_item_amount(item, state), policy.money_quantum)
    return _RunningState(
        subtotal=state.subtotal + amount,
        lines=state.lines + (ItemLine(item=item, amount=amount),),
        variables=MappingProxyType({**state.variables, item.name: amount}),
    )


def _deduction_lines(
    aggregated: Mapping[int, Decimal],
    exception_catalog: Mapping[int, AttendanceExceptionType],
    daily_salary: Decimal,
    policy: ComposerPolicy,
) -> tuple[DeductionLine, ...]:
    lines = []
    for type_id in sorted(aggregated):
        exception_type = exception_catalog.get(type_id)
        if exception_type is None:
            raise ExceptionTypeNotFoundError(type_id)
        if not exception_type.is_enabled:
            continue
        count = aggregated[type_id]
        amount = evaluate_deduction(
            exception_type, count, daily_salary, money_quantum=policy.money_quantum,
        )
        lines.append(DeductionLine(exception_type=exception_type, aggregated_count=count, amount=amount))
    return tuple(lines)


def _adjustment_lines(
    adjustments: Iterable[AdjustmentRecord], policy: ComposerPolicy,
) -> tuple[AdjustmentLine, ...]:
    lines = []
    for record in sorted(adjustments, key=lambda r: r.record_date):
        if record.amount < 0:
            raise DataIntegrityError(
                f"Negative {record.kind.value} amount {record.amount} "
                f"for employee {record.employee_id} on {record.record_date}"
            )
        amount = quantize_money(record.amount, policy.money_quantum)
        signed = amount if record.kind == AdjustmentKind.REWARD else -amount
        lines.append(AdjustmentLine(
            kind=record.kind, reason=record.reason,
            record_date=record.record_date, amount=signed,
        ))
    return tuple(lines)


@traced_engine(
    "payslip_composer", "1.0",
    fingerprint_fields=("employee", "period", "resolved_group", "aggregated"),
)
def compose_payslip(
    employee: EmployeeProfile,
    period: PayPeriod | str,
    resolved_group: ResolvedSalaryGroup | None,
    aggregated: Mapping[int, Decimal],
    exception_catalog: Mapping[int, AttendanceExceptionType],
    adjustments: Iterable[AdjustmentRecord] = (),
    policy: ComposerPolicy = DEFAULT_POLICY,
) -> Payslip:
    """Compose the payslip for one employee and one period.

    Args:
        employee: Employee profile (base salary, entry date).
        period: Pay period, as a PayPeriod or ``YYYY-MM``.
        resolved_group: Effective salary group, or None for a
            configuration gap.
        aggregated: exception_type_id -> total count for the period.
        exception_catalog: exception_type_id -> AttendanceExceptionType,
            covering at least every key of ``aggregated``.
        adjustments: Reward/punishment records dated within the period.
        policy: Working-day basis, rounding and negative-pay policy.
    """
    period = PayPeriod.parse(period)

    if resolved_group is None:
        item_lines: tuple[ItemLine, ...] = ()
        gross = quantize_money(employee.base_salary, policy.money_quantum)
    else:
        initial = _RunningState(
            variables=MappingProxyType(formula_base_variables(employee, period, aggregated)),
        )
        final = functools.reduce(
            lambda state, item: _apply_item(state, item, period, policy),
            resolved_group.items,
            initial,
        )
        item_lines = final.lines
        gross = final.subtotal

    daily_salary = gross / policy.standard_working_days
    deduction_lines = _deduction_lines(aggregated, exception_catalog, daily_salary, policy)
    adjustment_lines = _adjustment_lines(adjustments, policy)

    total_deductions = sum((line.amount for line in deduction_lines), ZERO)
    total_adjustments = sum((line.amount for line in adjustment_lines), ZERO)
    net_pay = gross - total_deductions + total_adjustments

    anomalies: tuple[CalculationAnomaly, ...] = ()
    if net_pay < 0:
        anomalies = (CalculationAnomaly(
            code=NEGATIVE_NET_PAY,
            message=f"Deductions exceed earnings by {-net_pay}",
            amount=net_pay,
        ),)
        if not policy.allow_negative_net_pay:
            net_pay = quantize_money(ZERO, policy.money_quantum)

    return Payslip(
        employee_id=employee.id,
        period=str(period),
        salary_group_id=resolved_group.group_id if resolved_group else None,
        assignment_level=resolved_group.assignment_level if resolved_group else None,
        base_salary=employee.base_salary,
        gross_earnings=gross,
        item_breakdown=item_lines,
        deduction_breakdown=deduction_lines,
        adjustment_breakdown=adjustment_lines,
        total_deductions=total_deductions,
        total_adjustments=total_adjustments,
        net_pay=net_pay,
        anomalies=anomalies,
        configuration_gap=resolved_group is None,
    )
