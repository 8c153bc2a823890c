"""
Storage collaborator for the salary calculation.

``PayrollDataSource`` is the read interface the calculation needs.  Every
lookup returns the entity or ``None``; deciding what a missing entity
means is the engines' job, not the store's.

``InMemoryPayrollStore`` is a dict-backed implementation used by tests
and by callers that assemble data themselves.  It is read-only while a
batch runs, so concurrent workers can share it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from payroll_engines.types import (
    AdjustmentRecord,
    AttendanceExceptionType,
    AttendanceRecord,
    EmployeeProfile,
    Payslip,
    SalaryGroup,
    SalaryItem,
)


@runtime_checkable
class PayrollDataSource(Protocol):
    """Read access to everything one salary calculation needs."""

    def get_salary_group(self, salary_group_id: int) -> SalaryGroup | None: ...

    def get_salary_item(self, salary_item_id: int) -> SalaryItem | None: ...

    def get_employee_assignment(self, employee_id: int) -> int | None: ...

    def get_department_assignment(self, department_id: int) -> int | None: ...

    def get_position_assignment(self, position_id: int) -> int | None: ...

    def get_attendance_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> list[AttendanceRecord]: ...

    def get_exception_type(self, exception_type_id: int) -> AttendanceExceptionType | None: ...

    def get_employee_base_salary(self, employee_id: int) -> Decimal | None: ...

    def get_employee(self, employee_id: int) -> EmployeeProfile | None: ...

    def list_employee_ids(self, department_id: int | None = None) -> list[int]: ...

    def get_adjustment_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> list[AdjustmentRecord]: ...


@runtime_checkable
class PayslipSink(Protocol):
    """Optional write side: stores that can keep computed payslips."""

    def save_payslip(self, payslip: Payslip) -> None: ...

    def delete_payslip(self, employee_id: int, period: str) -> bool: ...


@dataclass
class InMemoryPayrollStore:
    """Dict-backed ``PayrollDataSource`` and ``PayslipSink``."""

    employees: dict[int, EmployeeProfile] = field(default_factory=dict)
    salary_items: dict[int, SalaryItem] = field(default_factory=dict)
    salary_groups: dict[int, SalaryGroup] = field(default_factory=dict)
    employee_assignments: dict[int, int] = field(default_factory=dict)
    department_assignments: dict[int, int] = field(default_factory=dict)
    position_assignments: dict[int, int] = field(default_factory=dict)
    exception_types: dict[int, AttendanceExceptionType] = field(default_factory=dict)
    attendance_records: list[AttendanceRecord] = field(default_factory=list)
    adjustment_records: list[AdjustmentRecord] = field(default_factory=list)
    payslips: dict[tuple[int, str], Payslip] = field(default_factory=dict)

    # -- population helpers ------------------------------------------------

    def add_employee(self, employee: EmployeeProfile) -> None:
        self.employees[employee.id] = employee

    def add_salary_item(self, item: SalaryItem) -> None:
        self.salary_items[item.id] = item

    def add_salary_group(self, group: SalaryGroup) -> None:
        self.salary_groups[group.id] = group

    def add_exception_type(self, exception_type: AttendanceExceptionType) -> None:
        self.exception_types[exception_type.id] = exception_type

    def add_attendance_records(self, records: Iterable[AttendanceRecord]) -> None:
        self.attendance_records.extend(records)

    def add_adjustment_records(self, records: Iterable[AdjustmentRecord]) -> None:
        self.adjustment_records.extend(records)

    # -- PayrollDataSource -------------------------------------------------

    def get_salary_group(self, salary_group_id: int) -> SalaryGroup | None:
        return self.salary_groups.get(salary_group_id)

    def get_salary_item(self, salary_item_id: int) -> SalaryItem | None:
        return self.salary_items.get(salary_item_id)

    def get_employee_assignment(self, employee_id: int) -> int | None:
        return self.employee_assignments.get(employee_id)

    def get_department_assignment(self, department_id: int) -> int | None:
        return self.department_assignments.get(department_id)

    def get_position_assignment(self, position_id: int) -> int | None:
        return self.position_assignments.get(position_id)

    def get_attendance_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> list[AttendanceRecord]:
        return [
            r for r in self.attendance_records
            if r.employee_id == employee_id and period_start <= r.record_date <= period_end
        ]

    def get_exception_type(self, exception_type_id: int) -> AttendanceExceptionType | None:
        return self.exception_types.get(exception_type_id)

    def get_employee_base_salary(self, employee_id: int) -> Decimal | None:
        employee = self.employees.get(employee_id)
        return employee.base_salary if employee else None

    def get_employee(self, employee_id: int) -> EmployeeProfile | None:
        return self.employees.get(employee_id)

    def list_employee_ids(self, department_id: int | None = None) -> list[int]:
        return sorted(
            e.id for e in self.employees.values()
            if e.is_active and (department_id is None or e.department_id == department_id)
        )

    def get_adjustment_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> list[AdjustmentRecord]:
        return [
            r for r in self.adjustment_records
            if r.employee_id == employee_id and period_start <= r.record_date <= period_end
        ]

    # -- PayslipSink -------------------------------------------------------

    def save_payslip(self, payslip: Payslip) -> None:
        self.payslips[(payslip.employee_id, payslip.period)] = payslip

    def delete_payslip(self, employee_id: int, period: str) -> bool:
        return self.payslips.pop((employee_id, period), None) is not None
