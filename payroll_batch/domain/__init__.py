"""Pure batch payroll DTOs."""

from payroll_batch.domain.types import (
    BatchResult,
    BatchStatus,
    EmployeeFailed,
    EmployeeOutcome,
    EmployeeSucceeded,
)

__all__ = [
    "BatchResult",
    "BatchStatus",
    "EmployeeFailed",
    "EmployeeOutcome",
    "EmployeeSucceeded",
]
