"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- ``captured_logs`` for asserting on JSON log records
- A deterministic clock
- ``payroll_store``: an in-memory store holding a small, hand-checkable roster
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from payroll_engines.types import (
    AttendanceExceptionType,
    ComputeMode,
    DeductionRuleType,
    EmployeeProfile,
    SalaryGroup,
    SalaryGroupItemRef,
    SalaryItem,
)
from payroll_kernel.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_services.store import InMemoryPayrollStore


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            service.calculate_employee_salary(1, "2024-05")
            logs = captured_logs()
            assert any(r["message"] == "payslip_composed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Payroll data
# =============================================================================

# Salary items
BASE_PAY = SalaryItem(1, "base_pay", ComputeMode.FIXED, Decimal("4000"), order=1)
POST_ALLOWANCE = SalaryItem(2, "post_allowance", ComputeMode.FIXED, Decimal("1000"), order=2)
OVERTIME = SalaryItem(3, "overtime", ComputeMode.PERCENTAGE_OF_BASE, Decimal("0.1"), order=3)
SENIORITY = SalaryItem(4, "seniority", ComputeMode.FORMULA, "work_years * 100", order=4)
FULL_ATTENDANCE = SalaryItem(
    5, "full_attendance", ComputeMode.FORMULA,
    "IF(attendance_exceptions == 0, 500, 0)", order=5,
)

STANDARD_GROUP = SalaryGroup(
    id=10,
    name="Standard",
    items=(
        SalaryGroupItemRef(1, 1),
        SalaryGroupItemRef(2, 2),
        SalaryGroupItemRef(3, 3),
        SalaryGroupItemRef(4, 4),
        SalaryGroupItemRef(5, 5),
    ),
)
FLAT_GROUP = SalaryGroup(id=20, name="Flat", items=(SalaryGroupItemRef(1, 1),))

# Attendance exception types
LATE = AttendanceExceptionType(
    1, "late", DeductionRuleType.TIERED_COUNT, Decimal("50"), Decimal("3"),
)
ABSENCE = AttendanceExceptionType(2, "absence", DeductionRuleType.PER_DAY_SALARY, Decimal("1"))
EARLY_LEAVE = AttendanceExceptionType(3, "early_leave", DeductionRuleType.PER_HOUR, Decimal("20"))
MISSED_PUNCH = AttendanceExceptionType(4, "missed_punch", DeductionRuleType.FIXED, Decimal("30"))

# Employees: dept 1 uses the Standard group; employee 3 overrides with Flat
ALICE = EmployeeProfile(1, "Alice", department_id=1, position_id=1,
                        base_salary=Decimal("4000"), entry_date=date(2020, 3, 1))
BOB = EmployeeProfile(2, "Bob", department_id=1, position_id=2,
                      base_salary=Decimal("4000"), entry_date=date(2023, 7, 15))
CAROL = EmployeeProfile(3, "Carol", department_id=1, position_id=1,
                        base_salary=Decimal("4000"), entry_date=date(2019, 1, 1))
DAVE = EmployeeProfile(4, "Dave", department_id=2, position_id=3,
                       base_salary=Decimal("3500"), entry_date=date(2022, 1, 1))
ERIN = EmployeeProfile(5, "Erin", department_id=1, position_id=1,
                       base_salary=Decimal("4000"), is_active=False)


@pytest.fixture
def payroll_store() -> InMemoryPayrollStore:
    """A roster with one group per level and every deduction rule type.

    Dave (department 2, position 3) has no assignment at any level.
    """
    store = InMemoryPayrollStore()
    for item in (BASE_PAY, POST_ALLOWANCE, OVERTIME, SENIORITY, FULL_ATTENDANCE):
        store.add_salary_item(item)
    store.add_salary_group(STANDARD_GROUP)
    store.add_salary_group(FLAT_GROUP)
    for exception_type in (LATE, ABSENCE, EARLY_LEAVE, MISSED_PUNCH):
        store.add_exception_type(exception_type)
    for employee in (ALICE, BOB, CAROL, DAVE, ERIN):
        store.add_employee(employee)
    store.department_assignments[1] = STANDARD_GROUP.id
    store.employee_assignments[CAROL.id] = FLAT_GROUP.id
    return store
