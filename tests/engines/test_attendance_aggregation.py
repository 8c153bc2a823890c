"""
Tests for attendance aggregation.

Covers:
- Summing counts per exception type
- Period bounds (inclusive) and employee filtering
- Ascending key order
- Negative counts
- AttendanceAggregator over a record source
"""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_engines.aggregation import AttendanceAggregator, aggregate_attendance
from payroll_engines.period import PayPeriod
from payroll_engines.types import AttendanceRecord
from payroll_kernel.exceptions import NegativeExceptionCountError
from payroll_services.store import InMemoryPayrollStore


def _record(
    type_id: int,
    count: str = "1",
    record_date: date = date(2024, 5, 10),
    employee_id: int = 1,
) -> AttendanceRecord:
    return AttendanceRecord(
        employee_id=employee_id,
        record_date=record_date,
        exception_type_id=type_id,
        exception_count=Decimal(count),
    )


MAY = PayPeriod(2024, 5)


class TestAggregateAttendance:

    def test_sums_by_type(self):
        records = [_record(1), _record(1, "2"), _record(3, "1.5"), _record(3, "0.5")]
        assert aggregate_attendance(records, 1, MAY) == {1: Decimal("3"), 3: Decimal("2.0")}

    def test_empty_when_no_records(self):
        assert aggregate_attendance([], 1, MAY) == {}

    def test_other_employees_ignored(self):
        records = [_record(1), _record(1, "5", employee_id=2)]
        assert aggregate_attendance(records, 1, MAY) == {1: Decimal("1")}

    def test_period_bounds_inclusive(self):
        records = [
            _record(1, record_date=date(2024, 4, 30)),
            _record(1, record_date=date(2024, 5, 1)),
            _record(1, record_date=date(2024, 5, 31)),
            _record(1, record_date=date(2024, 6, 1)),
        ]
        assert aggregate_attendance(records, 1, MAY) == {1: Decimal("2")}

    def test_keys_ascending(self):
        records = [_record(7), _record(2), _record(5)]
        assert list(aggregate_attendance(records, 1, MAY)) == [2, 5, 7]

    def test_period_text_accepted(self):
        assert aggregate_attendance([_record(1)], 1, "2024-05") == {1: Decimal("1")}

    def test_negative_count_raises(self):
        with pytest.raises(NegativeExceptionCountError) as exc_info:
            aggregate_attendance([_record(2, "-1")], 1, MAY)
        assert exc_info.value.exception_type_id == 2

    def test_negative_count_outside_period_ignored(self):
        records = [_record(2, "-1", record_date=date(2024, 6, 2))]
        assert aggregate_attendance(records, 1, MAY) == {}


class TestAttendanceAggregator:

    def test_reads_from_source(self):
        store = InMemoryPayrollStore()
        store.add_attendance_records([
            _record(1, "2"),
            _record(1, "1", record_date=date(2024, 6, 3)),
            _record(2, "1", employee_id=9),
        ])
        assert AttendanceAggregator(store).aggregate(1, "2024-05") == {1: Decimal("2")}


_in_period_records = st.lists(
    st.builds(
        _record,
        type_id=st.integers(min_value=1, max_value=5),
        count=st.integers(min_value=0, max_value=10).map(str),
        record_date=st.integers(min_value=1, max_value=31).map(lambda d: date(2024, 5, d)),
    ),
    max_size=40,
)


class TestAggregationProperties:

    @pytest.mark.slow
    @given(records=_in_period_records)
    @settings(max_examples=100)
    def test_total_preserved(self, records):
        totals = aggregate_attendance(records, 1, MAY)
        assert sum(totals.values(), Decimal("0")) == sum(
            (r.exception_count for r in records), Decimal("0"),
        )
