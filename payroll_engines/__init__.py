"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    salary calculation engines.  This is the import surface for
    payroll_batch and payroll_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (exceptions, logging) and sibling
    engine modules.  MUST NOT import payroll_batch or payroll_services.

Invariants enforced:
    - Purity: engines never read a clock; the period is always passed in.
    - Decimal-only arithmetic for every amount and count.
    - Determinism: identical inputs always produce an equal Payslip.

Usage:
    from payroll_engines import SalaryGroupResolver, compose_payslip
    from payroll_engines.deduction import evaluate_deduction
"""

from payroll_engines.aggregation import AttendanceAggregator, aggregate_attendance
from payroll_engines.composer import (
    BASE_VARIABLE_NAMES,
    DEFAULT_POLICY,
    NEGATIVE_NET_PAY,
    ComposerPolicy,
    compose_payslip,
)
from payroll_engines.deduction import evaluate_deduction, validate_exception_type
from payroll_engines.formula import FormulaIssue, evaluate_formula, validate_formula
from payroll_engines.period import PayPeriod
from payroll_engines.resolver import SalaryGroupResolver, validate_salary_group_formulas
from payroll_engines.types import (
    AdjustmentKind,
    AdjustmentLine,
    AdjustmentRecord,
    AssignmentLevel,
    AttendanceExceptionType,
    AttendanceRecord,
    CalculationAnomaly,
    ComputeMode,
    DeductionLine,
    DeductionRuleType,
    EmployeeProfile,
    ItemLine,
    Payslip,
    ResolvedSalaryGroup,
    SalaryGroup,
    SalaryGroupItemRef,
    SalaryItem,
)

__all__ = [
    "BASE_VARIABLE_NAMES",
    "DEFAULT_POLICY",
    "NEGATIVE_NET_PAY",
    "AdjustmentKind",
    "AdjustmentLine",
    "AdjustmentRecord",
    "AssignmentLevel",
    "AttendanceAggregator",
    "AttendanceExceptionType",
    "AttendanceRecord",
    "CalculationAnomaly",
    "ComposerPolicy",
    "ComputeMode",
    "DeductionLine",
    "DeductionRuleType",
    "EmployeeProfile",
    "FormulaIssue",
    "ItemLine",
    "PayPeriod",
    "Payslip",
    "ResolvedSalaryGroup",
    "SalaryGroup",
    "SalaryGroupItemRef",
    "SalaryGroupResolver",
    "SalaryItem",
    "aggregate_attendance",
    "compose_payslip",
    "evaluate_deduction",
    "evaluate_formula",
    "validate_exception_type",
    "validate_formula",
    "validate_salary_group_formulas",
]
