"""
Payroll Domain Types (``payroll_engines.types``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of the salary
calculation: salary items and groups, employee profiles, attendance
exception types and records, reward/punishment adjustments, and the
Payslip the composer produces.

Architecture position
---------------------
**Engines layer** -- pure data definitions with ZERO I/O.  Produced by the
storage collaborator, consumed by the resolver, aggregator, deduction
evaluator and composer.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary and count fields use ``Decimal`` -- NEVER ``float``.
* Rule invariants (value ranges, thresholds) are NOT enforced at
  construction: stored data may be malformed, and that must surface as a
  ``DataIntegrityError`` for one employee, not as a loader crash.  See
  ``payroll_engines.deduction.validate_exception_type``.

Failure modes
-------------
* Construction with an unknown enum value raises the typed integrity
  error for that entity (``InvalidSalaryItemError``,
  ``InvalidDeductionRuleError``, ``InvalidAdjustmentError``), so a bad
  stored row fails one employee with a classified reason.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_kernel.exceptions import (
    InvalidAdjustmentError,
    InvalidDeductionRuleError,
    InvalidSalaryItemError,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ComputeMode(str, Enum):
    """How a salary item's amount is derived."""
    FIXED = "fixed"
    PERCENTAGE_OF_BASE = "percentage_of_base"  # value x running subtotal
    FORMULA = "formula"


class DeductionRuleType(str, Enum):
    """Deduction rule attached to an attendance exception type."""
    FIXED = "fixed"  # once per period if the exception occurred at all
    PER_HOUR = "per_hour"  # count is hours
    PER_DAY_SALARY = "per_day_salary"  # count is days, value is a fraction of daily pay
    TIERED_COUNT = "tiered_count"  # occurrences beyond a free threshold


class AssignmentLevel(str, Enum):
    """Precedence level at which a salary group assignment was found."""
    EMPLOYEE = "employee"
    DEPARTMENT = "department"
    POSITION = "position"


class AdjustmentKind(str, Enum):
    """Reward adds to net pay, punishment subtracts."""
    REWARD = "reward"
    PUNISHMENT = "punishment"


# ---------------------------------------------------------------------------
# Compensation structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SalaryItem:
    """A named compensation component.

    ``value`` is a Decimal for FIXED and PERCENTAGE_OF_BASE items and an
    expression string for FORMULA items.  ``subsidy_cycle`` is the number of
    months between payments (1 = every month).
    """
    id: int
    name: str
    compute_mode: ComputeMode
    value: Decimal | str
    order: int = 0
    subsidy_cycle: int = 1
    is_enabled: bool = True
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.compute_mode, ComputeMode):
            try:
                mode = ComputeMode(self.compute_mode)
            except ValueError:
                raise InvalidSalaryItemError(
                    self.id, f"unknown compute mode {self.compute_mode!r}",
                ) from None
            object.__setattr__(self, "compute_mode", mode)


@dataclass(frozen=True)
class SalaryGroupItemRef:
    """One entry of a salary group: which item, in which calculation order."""
    salary_item_id: int
    calculation_order: int


@dataclass(frozen=True)
class SalaryGroup:
    """An ordered bundle of salary item references (storage-side definition)."""
    id: int
    name: str
    items: tuple[SalaryGroupItemRef, ...] = field(default_factory=tuple)
    description: str = ""


@dataclass(frozen=True)
class ResolvedSalaryGroup:
    """A salary group with its items materialized in calculation order.

    Produced by ``SalaryGroupResolver``; ``assignment_level`` records which
    precedence level selected the group.
    """
    group_id: int
    name: str
    assignment_level: AssignmentLevel | None
    items: tuple[SalaryItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EmployeeProfile:
    """The employee record as the calculation needs it."""
    id: int
    name: str
    department_id: int | None = None
    position_id: int | None = None
    base_salary: Decimal = Decimal("0")
    entry_date: date | None = None
    is_active: bool = True


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttendanceExceptionType:
    """A category of attendance infraction and its deduction rule."""
    id: int
    name: str
    deduction_rule_type: DeductionRuleType
    deduction_rule_value: Decimal = Decimal("0")
    deduction_rule_threshold: Decimal | None = None
    is_enabled: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.deduction_rule_type, DeductionRuleType):
            try:
                rule = DeductionRuleType(self.deduction_rule_type)
            except ValueError:
                raise InvalidDeductionRuleError(
                    self.id, str(self.deduction_rule_type), "unknown rule type",
                ) from None
            object.__setattr__(self, "deduction_rule_type", rule)


@dataclass(frozen=True)
class AttendanceRecord:
    """One imported attendance exception; unit of count implied by its type."""
    employee_id: int
    record_date: date
    exception_type_id: int
    exception_count: Decimal
    remark: str = ""


@dataclass(frozen=True)
class AdjustmentRecord:
    """A reward or punishment recorded against an employee."""
    employee_id: int
    record_date: date
    kind: AdjustmentKind
    amount: Decimal
    reason: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.kind, AdjustmentKind):
            try:
                kind = AdjustmentKind(self.kind)
            except ValueError:
                raise InvalidAdjustmentError(self.employee_id, str(self.kind)) from None
            object.__setattr__(self, "kind", kind)


# ---------------------------------------------------------------------------
# Payslip
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemLine:
    """One salary item and the amount it contributed."""
    item: SalaryItem
    amount: Decimal


@dataclass(frozen=True)
class DeductionLine:
    """One attendance exception type and the deduction it produced."""
    exception_type: AttendanceExceptionType
    aggregated_count: Decimal
    amount: Decimal


@dataclass(frozen=True)
class AdjustmentLine:
    """A reward/punishment and its signed effect on net pay."""
    kind: AdjustmentKind
    reason: str
    record_date: date
    amount: Decimal  # signed: reward > 0, punishment < 0


@dataclass(frozen=True)
class CalculationAnomaly:
    """A condition needing manual review; data, never an exception."""
    code: str
    message: str
    amount: Decimal | None = None


@dataclass(frozen=True)
class Payslip:
    """Computed earnings, deductions and net pay for one employee and period.

    Contains no timestamps or generated ids, so two calculations over
    unchanged inputs compare equal.
    """
    employee_id: int
    period: str  # YYYY-MM
    salary_group_id: int | None
    assignment_level: AssignmentLevel | None
    base_salary: Decimal
    gross_earnings: Decimal
    item_breakdown: tuple[ItemLine, ...] = ()
    deduction_breakdown: tuple[DeductionLine, ...] = ()
    adjustment_breakdown: tuple[AdjustmentLine, ...] = ()
    total_deductions: Decimal = Decimal("0")
    total_adjustments: Decimal = Decimal("0")
    net_pay: Decimal = Decimal("0")
    anomalies: tuple[CalculationAnomaly, ...] = ()
    configuration_gap: bool = False

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)
