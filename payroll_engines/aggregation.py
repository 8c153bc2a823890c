"""
Attendance aggregation: raw attendance records -> per-type totals.

``aggregate_attendance`` is the pure core; ``AttendanceAggregator`` binds
it to a record source so callers can ask by employee and period alone.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Protocol

from payroll_engines.period import PayPeriod
from payroll_engines.types import AttendanceRecord
from payroll_kernel.exceptions import NegativeExceptionCountError


class AttendanceRecordSource(Protocol):
    def get_attendance_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> Iterable[AttendanceRecord]: ...


def aggregate_attendance(
    records: Iterable[AttendanceRecord],
    employee_id: int,
    period: PayPeriod | str,
) -> dict[int, Decimal]:
    """Sum exception counts by type for one employee within one period.

    Records belonging to other employees or dated outside the period
    (bounds inclusive) are ignored.  Keys are returned in ascending type id.

    Raises:
        NegativeExceptionCountError: If a counted record is negative.
    """
    period = PayPeriod.parse(period)
    totals: dict[int, Decimal] = {}
    for record in records:
        if record.employee_id != employee_id or not period.contains(record.record_date):
            continue
        if record.exception_count < 0:
            raise NegativeExceptionCountError(
                record.exception_type_id, str(record.exception_count),
            )
        totals[record.exception_type_id] = (
            totals.get(record.exception_type_id, Decimal("0")) + record.exception_count
        )
    return dict(sorted(totals.items()))


class AttendanceAggregator:
    """Aggregates an employee's attendance exceptions for a period."""

    def __init__(self, source: AttendanceRecordSource):
        self._source = source

    def aggregate(self, employee_id: int, period: PayPeriod | str) -> Mapping[int, Decimal]:
        period = PayPeriod.parse(period)
        records = self._source.get_attendance_records(employee_id, period.start, period.end)
        return aggregate_attendance(records, employee_id, period)
