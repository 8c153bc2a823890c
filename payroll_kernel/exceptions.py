"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PayrollKernelError:

    PayrollKernelError (base)
    |
    +-- DataIntegrityError
    |   +-- SalaryGroupNotFoundError
    |   +-- SalaryItemNotFoundError
    |   +-- ExceptionTypeNotFoundError
    |   +-- NegativeExceptionCountError
    |   +-- InvalidDeductionRuleError
    |   +-- InvalidSalaryItemError
    |   +-- InvalidAdjustmentError
    |   +-- FormulaError
    |
    +-- EmployeeNotFoundError
    |
    +-- InvalidPeriodError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Integrity       | SALARY_GROUP_NOT_FOUND      | Assignment points at a deleted group
                | SALARY_ITEM_NOT_FOUND       | Group entry points at a deleted item
                | EXCEPTION_TYPE_NOT_FOUND    | Attendance record of unknown type
                | NEGATIVE_EXCEPTION_COUNT    | Malformed attendance magnitude
                | INVALID_DEDUCTION_RULE      | Unknown rule type, value out of range
                | INVALID_SALARY_ITEM         | Unknown mode, value unusable for mode
                | INVALID_ADJUSTMENT          | Reward/punishment of unknown kind
                | FORMULA_ERROR               | Formula rejected or failed to evaluate
----------------|-----------------------------|-----------------------------------------
Employee        | EMPLOYEE_NOT_FOUND          | No employee record for the id
----------------|-----------------------------|-----------------------------------------
Period          | INVALID_PERIOD              | Period string is not YYYY-MM

===============================================================================
HANDLING PATTERNS
===============================================================================

Single-employee calculation propagates these exceptions to the caller.
Batch runs catch them per employee and record ``exc.code`` as the failure
reason, so callers never parse messages:

    try:
        payslip = service.calculate_employee_salary(employee_id, "2024-05")
    except SalaryGroupNotFoundError as e:
        flag_for_hr(employee_id, e.salary_group_id, e.assignment_level)
    except DataIntegrityError as e:
        log.error(f"Payroll data problem: {e.code}")

Net pay below zero is NOT an exception; it is reported as a
CalculationAnomaly on the Payslip itself.
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


# Data integrity exceptions


class DataIntegrityError(PayrollKernelError):
    """
    Referenced entity is missing or a stored value violates its invariant.

    Always attributable to one employee or one record; never coerced.
    """

    code: str = "DATA_INTEGRITY_ERROR"


class SalaryGroupNotFoundError(DataIntegrityError):
    """An assignment references a salary group that does not exist."""

    code: str = "SALARY_GROUP_NOT_FOUND"

    def __init__(self, salary_group_id: int, assignment_level: str | None = None):
        self.salary_group_id = salary_group_id
        self.assignment_level = assignment_level
        where = f" ({assignment_level}-level assignment)" if assignment_level else ""
        super().__init__(f"Salary group not found: {salary_group_id}{where}")


class SalaryItemNotFoundError(DataIntegrityError):
    """A salary group entry references a salary item that does not exist."""

    code: str = "SALARY_ITEM_NOT_FOUND"

    def __init__(self, salary_item_id: int, salary_group_id: int):
        self.salary_item_id = salary_item_id
        self.salary_group_id = salary_group_id
        super().__init__(
            f"Salary item {salary_item_id} referenced by group "
            f"{salary_group_id} not found"
        )


class ExceptionTypeNotFoundError(DataIntegrityError):
    """Attendance records reference an exception type that does not exist."""

    code: str = "EXCEPTION_TYPE_NOT_FOUND"

    def __init__(self, exception_type_id: int):
        self.exception_type_id = exception_type_id
        super().__init__(f"Attendance exception type not found: {exception_type_id}")


class NegativeExceptionCountError(DataIntegrityError):
    """An attendance exception count is negative."""

    code: str = "NEGATIVE_EXCEPTION_COUNT"

    def __init__(self, exception_type_id: int, count: str):
        self.exception_type_id = exception_type_id
        self.count = count
        super().__init__(
            f"Negative exception count {count} for exception type {exception_type_id}"
        )


class InvalidDeductionRuleError(DataIntegrityError):
    """A deduction rule value or threshold violates its declared invariant."""

    code: str = "INVALID_DEDUCTION_RULE"

    def __init__(self, exception_type_id: int, rule_type: str, reason: str):
        self.exception_type_id = exception_type_id
        self.rule_type = rule_type
        self.reason = reason
        super().__init__(
            f"Invalid {rule_type} rule on exception type {exception_type_id}: {reason}"
        )


class InvalidSalaryItemError(DataIntegrityError):
    """A salary item carries a value that cannot be used for its compute mode."""

    code: str = "INVALID_SALARY_ITEM"

    def __init__(self, salary_item_id: int, reason: str):
        self.salary_item_id = salary_item_id
        self.reason = reason
        super().__init__(f"Invalid salary item {salary_item_id}: {reason}")


class InvalidAdjustmentError(DataIntegrityError):
    """A reward/punishment record carries a kind the engine does not know."""

    code: str = "INVALID_ADJUSTMENT"

    def __init__(self, employee_id: int, kind: str):
        self.employee_id = employee_id
        self.kind = kind
        super().__init__(
            f"Unknown adjustment kind {kind!r} for employee {employee_id}"
        )


class FormulaError(DataIntegrityError):
    """A formula salary item was rejected or could not be evaluated."""

    code: str = "FORMULA_ERROR"

    def __init__(self, expression: str, reason: str, salary_item_id: int | None = None):
        self.expression = expression
        self.reason = reason
        self.salary_item_id = salary_item_id
        super().__init__(f"Formula {expression!r} failed: {reason}")


# Employee exceptions


class EmployeeNotFoundError(PayrollKernelError):
    """No employee record exists for the requested id."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: int):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


# Period exceptions


class InvalidPeriodError(PayrollKernelError):
    """Pay period text could not be parsed as a calendar year-month."""

    code: str = "INVALID_PERIOD"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid pay period {value!r}, expected YYYY-MM")
