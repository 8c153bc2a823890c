"""
payroll_batch -- batch payroll runs with per-employee failure isolation.

Usage:
    from payroll_batch import BatchPayrollRunner

    runner = BatchPayrollRunner(service.calculate_employee_salary, max_workers=4)
    result = runner.run([1, 2, 3], "2024-05")
"""

from payroll_batch.domain.types import (
    BatchResult,
    BatchStatus,
    EmployeeFailed,
    EmployeeOutcome,
    EmployeeSucceeded,
)
from payroll_batch.runner import UNHANDLED_EXCEPTION, BatchPayrollRunner

__all__ = [
    "UNHANDLED_EXCEPTION",
    "BatchPayrollRunner",
    "BatchResult",
    "BatchStatus",
    "EmployeeFailed",
    "EmployeeOutcome",
    "EmployeeSucceeded",
]
