"""
payroll_batch.domain.types -- Pure frozen dataclasses for batch payroll runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Each employee in a run produces exactly one tagged outcome:
``EmployeeSucceeded`` (carrying the Payslip) or ``EmployeeFailed``
(carrying a machine-readable reason).  Employees never dispatched because
the run was cancelled appear only in ``BatchResult.skipped``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from payroll_engines.types import Payslip


class BatchStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # Every employee succeeded
    PARTIALLY_COMPLETED = "partially_completed"  # Some employees failed
    FAILED = "failed"  # No employee succeeded
    CANCELLED = "cancelled"  # Stopped before every employee was dispatched


@dataclass(frozen=True)
class EmployeeSucceeded:
    """A payslip was composed for the employee."""

    employee_id: int
    payslip: Payslip
    duration_ms: int = 0


@dataclass(frozen=True)
class EmployeeFailed:
    """The employee's calculation raised.

    ``reason`` is the error code of the typed exception, or
    ``UNHANDLED_EXCEPTION`` for anything outside the kernel hierarchy.
    """

    employee_id: int
    reason: str
    message: str = ""
    duration_ms: int = 0


EmployeeOutcome = Union[EmployeeSucceeded, EmployeeFailed]


@dataclass(frozen=True)
class BatchResult:
    """Immutable result of one batch payroll run."""

    batch_id: str
    period: str  # YYYY-MM
    status: BatchStatus
    outcomes: tuple[EmployeeOutcome, ...]  # input order, dispatched employees only
    skipped: tuple[int, ...] = ()
    cancelled: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> tuple[Payslip, ...]:
        return tuple(o.payslip for o in self.outcomes if isinstance(o, EmployeeSucceeded))

    @property
    def failed(self) -> tuple[EmployeeFailed, ...]:
        return tuple(o for o in self.outcomes if isinstance(o, EmployeeFailed))

    @property
    def total(self) -> int:
        return len(self.outcomes) + len(self.skipped)
