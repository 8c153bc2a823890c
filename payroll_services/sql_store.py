"""
SqlAlchemyPayrollStore -- PayrollDataSource over the HR database.

Contract:
    Implements ``PayrollDataSource`` and ``PayslipSink`` on the tables in
    ``payroll_services.orm``.  Every call opens its own short-lived
    session from the injected ``sessionmaker``, so one store can serve
    concurrent batch workers.

Non-goals:
    - Does NOT create or migrate the schema (see
      ``payroll_kernel.db.create_tables`` for tests and fresh installs).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from payroll_engines.types import (
    AdjustmentRecord,
    AttendanceExceptionType,
    AttendanceRecord,
    EmployeeProfile,
    Payslip,
    SalaryGroup,
    SalaryItem,
)
from payroll_kernel.logging_config import get_logger
from payroll_services.orm import (
    ACTIVE_STATUS,
    AttendanceExceptionSettingModel,
    AttendanceRecordModel,
    DepartmentModel,
    EmployeeModel,
    PayrollRecordModel,
    PositionModel,
    RewardPunishmentModel,
    SalaryGroupModel,
    SalaryItemModel,
)
from payroll_services.serialization import payslip_to_dict

logger = get_logger("services.sql_store")


class SqlAlchemyPayrollStore:
    """Reads payroll inputs from, and writes payslips to, a SQL database."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    # -------------------------------------------------------------------------
    # Salary structure
    # -------------------------------------------------------------------------

    def get_salary_group(self, salary_group_id: int) -> SalaryGroup | None:
        with self._session_factory() as session:
            model = session.get(SalaryGroupModel, salary_group_id)
            return model.to_dto() if model else None

    def get_salary_item(self, salary_item_id: int) -> SalaryItem | None:
        with self._session_factory() as session:
            model = session.get(SalaryItemModel, salary_item_id)
            return model.to_dto() if model else None

    def get_employee_assignment(self, employee_id: int) -> int | None:
        with self._session_factory() as session:
            return session.execute(
                select(EmployeeModel.salary_group_id).where(EmployeeModel.id == employee_id)
            ).scalar_one_or_none()

    def get_department_assignment(self, department_id: int) -> int | None:
        with self._session_factory() as session:
            return session.execute(
                select(DepartmentModel.salary_group_id).where(DepartmentModel.id == department_id)
            ).scalar_one_or_none()

    def get_position_assignment(self, position_id: int) -> int | None:
        with self._session_factory() as session:
            return session.execute(
                select(PositionModel.salary_group_id).where(PositionModel.id == position_id)
            ).scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Attendance and adjustments
    # -------------------------------------------------------------------------

    def get_attendance_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> list[AttendanceRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(AttendanceRecordModel)
                .where(
                    AttendanceRecordModel.employee_id == employee_id,
                    AttendanceRecordModel.record_date >= period_start,
                    AttendanceRecordModel.record_date <= period_end,
                )
                .order_by(AttendanceRecordModel.record_date, AttendanceRecordModel.id)
            ).scalars().all()
            return [row.to_dto() for row in rows]

    def get_exception_type(self, exception_type_id: int) -> AttendanceExceptionType | None:
        with self._session_factory() as session:
            model = session.get(AttendanceExceptionSettingModel, exception_type_id)
            return model.to_dto() if model else None

    def get_adjustment_records(
        self, employee_id: int, period_start: date, period_end: date,
    ) -> list[AdjustmentRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(RewardPunishmentModel)
                .where(
                    RewardPunishmentModel.employee_id == employee_id,
                    RewardPunishmentModel.record_date >= period_start,
                    RewardPunishmentModel.record_date <= period_end,
                )
                .order_by(RewardPunishmentModel.record_date, RewardPunishmentModel.id)
            ).scalars().all()
            return [row.to_dto() for row in rows]

    # -------------------------------------------------------------------------
    # Employees
    # -------------------------------------------------------------------------

    def get_employee(self, employee_id: int) -> EmployeeProfile | None:
        with self._session_factory() as session:
            model = session.get(EmployeeModel, employee_id)
            return model.to_dto() if model else None

    def get_employee_base_salary(self, employee_id: int) -> Decimal | None:
        with self._session_factory() as session:
            value = session.execute(
                select(EmployeeModel.base_salary).where(EmployeeModel.id == employee_id)
            ).scalar_one_or_none()
            return Decimal(value) if value is not None else None

    def list_employee_ids(self, department_id: int | None = None) -> list[int]:
        stmt = select(EmployeeModel.id).where(EmployeeModel.status == ACTIVE_STATUS)
        if department_id is not None:
            stmt = stmt.where(EmployeeModel.department_id == department_id)
        with self._session_factory() as session:
            return list(session.execute(stmt.order_by(EmployeeModel.id)).scalars())

    # -------------------------------------------------------------------------
    # Payslips
    # -------------------------------------------------------------------------

    def save_payslip(self, payslip: Payslip) -> None:
        """Insert or replace the stored payslip for (employee, period)."""
        with self._session_factory() as session, session.begin():
            model = session.execute(
                select(PayrollRecordModel).where(
                    PayrollRecordModel.employee_id == payslip.employee_id,
                    PayrollRecordModel.period == payslip.period,
                )
            ).scalar_one_or_none()
            if model is None:
                model = PayrollRecordModel(employee_id=payslip.employee_id, period=payslip.period)
                session.add(model)
            model.salary_group_id = payslip.salary_group_id
            model.gross_earnings = payslip.gross_earnings
            model.total_deductions = payslip.total_deductions
            model.total_adjustments = payslip.total_adjustments
            model.net_pay = payslip.net_pay
            model.configuration_gap = payslip.configuration_gap
            model.has_anomalies = payslip.has_anomalies
            model.detail = payslip_to_dict(payslip)

        logger.info(
            "payslip_saved",
            extra={"employee_id": payslip.employee_id, "period": payslip.period},
        )

    def delete_payslip(self, employee_id: int, period: str) -> bool:
        """Delete the stored payslip; returns whether one existed."""
        with self._session_factory() as session, session.begin():
            model = session.execute(
                select(PayrollRecordModel).where(
                    PayrollRecordModel.employee_id == employee_id,
                    PayrollRecordModel.period == period,
                )
            ).scalar_one_or_none()
            if model is None:
                return False
            session.delete(model)

        logger.info("payslip_deleted", extra={"employee_id": employee_id, "period": period})
        return True

    def get_stored_payslip(self, employee_id: int, period: str) -> dict | None:
        """The serialized detail of a stored payslip, if any."""
        with self._session_factory() as session:
            return session.execute(
                select(PayrollRecordModel.detail).where(
                    PayrollRecordModel.employee_id == employee_id,
                    PayrollRecordModel.period == period,
                )
            ).scalar_one_or_none()
