"""
ORM models for the HR application's payroll tables.

Contract:
    Table and column names follow the desktop application's SQLite schema
    (``employees``, ``salary_items``, ``attendance_exception_settings``,
    ...).  Each model that feeds the calculation has a ``to_dto()`` method
    returning the frozen engine type.

Architecture: payroll_services.  Imports from payroll_kernel.db.base and
    payroll_engines.types only.

Invariants enforced:
    - Amounts and counts are Numeric columns read back as Decimal.
    - ``employees.status == 1`` marks an active employee.
    - One stored payslip per (employee_id, period).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_engines.types import (
    AdjustmentRecord,
    AttendanceExceptionType,
    AttendanceRecord,
    ComputeMode,
    EmployeeProfile,
    SalaryGroup,
    SalaryGroupItemRef,
    SalaryItem,
)
from payroll_kernel.db.base import TrackedBase

ACTIVE_STATUS = 1

# Spellings the desktop application writes to salary_items.calculation_type
# that differ from the engine enum.
STORED_COMPUTE_MODES = {"percentage": ComputeMode.PERCENTAGE_OF_BASE.value}


class DepartmentModel(TrackedBase):
    """Department, optionally carrying a department-level salary group."""

    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("departments.id", ondelete="SET NULL"), nullable=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    salary_group_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class PositionModel(TrackedBase):
    """Position, optionally carrying a position-level salary group."""

    __tablename__ = "positions"

    __table_args__ = (UniqueConstraint("name", "department_id"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    department_id: Mapped[int | None] = mapped_column(
        ForeignKey("departments.id", ondelete="CASCADE"), nullable=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    salary_group_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class EmployeeModel(TrackedBase):
    """Employee record; ``salary_group_id`` is the employee-level assignment."""

    __tablename__ = "employees"

    __table_args__ = (
        Index("ix_employees_department_status", "department_id", "status"),
    )

    employee_no: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    department_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    entry_date: Mapped[date | None] = mapped_column(nullable=True)
    status: Mapped[int] = mapped_column(Integer, default=ACTIVE_STATUS, nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    salary_group_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def to_dto(self) -> EmployeeProfile:
        return EmployeeProfile(
            id=self.id,
            name=self.name,
            department_id=self.department_id,
            position_id=self.position_id,
            base_salary=Decimal(self.base_salary),
            entry_date=self.entry_date,
            is_active=self.status == ACTIVE_STATUS,
        )


class SalaryItemModel(TrackedBase):
    """A salary item; ``calculation_value`` holds an amount, a rate or a formula."""

    __tablename__ = "salary_items"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    calculation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    calculation_value: Mapped[str] = mapped_column(Text, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    subsidy_cycle: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_preset: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> SalaryItem:
        stored = self.calculation_type
        mode = STORED_COMPUTE_MODES.get(stored, stored)
        value: Decimal | str = self.calculation_value
        if mode != ComputeMode.FORMULA.value:
            # Unparseable amounts stay text; the composer rejects them per employee.
            try:
                value = Decimal(self.calculation_value)
            except InvalidOperation:
                value = self.calculation_value
        return SalaryItem(
            id=self.id,
            name=self.name,
            compute_mode=mode,
            value=value,
            order=self.display_order,
            subsidy_cycle=self.subsidy_cycle,
            is_enabled=self.is_enabled,
            description=self.description or "",
        )


class SalaryGroupModel(TrackedBase):
    """A named, ordered bundle of salary items."""

    __tablename__ = "salary_groups"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    entries: Mapped[list["SalaryGroupItemModel"]] = relationship(
        "SalaryGroupItemModel",
        back_populates="group",
        order_by="SalaryGroupItemModel.calculation_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self) -> SalaryGroup:
        return SalaryGroup(
            id=self.id,
            name=self.name,
            items=tuple(
                SalaryGroupItemRef(
                    salary_item_id=entry.salary_item_id,
                    calculation_order=entry.calculation_order,
                )
                for entry in self.entries
            ),
            description=self.description or "",
        )


class SalaryGroupItemModel(TrackedBase):
    """Membership of a salary item in a group, with its calculation order."""

    __tablename__ = "salary_group_items"

    __table_args__ = (UniqueConstraint("salary_group_id", "salary_item_id"),)

    salary_group_id: Mapped[int] = mapped_column(
        ForeignKey("salary_groups.id", ondelete="CASCADE"), nullable=False,
    )
    salary_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    calculation_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    group: Mapped[SalaryGroupModel] = relationship(
        "SalaryGroupModel", back_populates="entries",
    )


class AttendanceExceptionSettingModel(TrackedBase):
    """An attendance exception type and its deduction rule."""

    __tablename__ = "attendance_exception_settings"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    deduction_rule_type: Mapped[str] = mapped_column(String(50), nullable=False)
    deduction_rule_value: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    deduction_rule_threshold: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def to_dto(self) -> AttendanceExceptionType:
        return AttendanceExceptionType(
            id=self.id,
            name=self.name,
            deduction_rule_type=self.deduction_rule_type,
            deduction_rule_value=Decimal(self.deduction_rule_value),
            deduction_rule_threshold=(
                Decimal(self.deduction_rule_threshold)
                if self.deduction_rule_threshold is not None else None
            ),
            is_enabled=self.is_enabled,
        )


class AttendanceRecordModel(TrackedBase):
    """One imported attendance exception."""

    __tablename__ = "attendance_records"

    __table_args__ = (
        Index("ix_attendance_records_employee_date", "employee_id", "record_date"),
    )

    employee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    record_date: Mapped[date] = mapped_column(nullable=False)
    exception_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    exception_count: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> AttendanceRecord:
        return AttendanceRecord(
            employee_id=self.employee_id,
            record_date=self.record_date,
            exception_type_id=self.exception_type_id,
            exception_count=Decimal(self.exception_count),
            remark=self.remark or "",
        )


class RewardPunishmentModel(TrackedBase):
    """A reward or punishment adjusting an employee's net pay."""

    __tablename__ = "reward_punishment_records"

    __table_args__ = (
        Index("ix_reward_punishment_employee_date", "employee_id", "record_date"),
    )

    employee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    record_date: Mapped[date] = mapped_column(nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> AdjustmentRecord:
        return AdjustmentRecord(
            employee_id=self.employee_id,
            record_date=self.record_date,
            kind=self.kind,
            amount=Decimal(self.amount),
            reason=self.reason or "",
        )


class PayrollRecordModel(TrackedBase):
    """A stored payslip; ``detail`` holds the full serialized breakdown."""

    __tablename__ = "payroll_records"

    __table_args__ = (UniqueConstraint("employee_id", "period"),)

    employee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    salary_group_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gross_earnings: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    total_adjustments: Mapped[Decimal] = mapped_column(nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)
    configuration_gap: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_anomalies: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    detail: Mapped[dict] = mapped_column(JSON, nullable=False)
