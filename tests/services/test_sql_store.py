"""
Tests for SqlAlchemyPayrollStore on SQLite.

Covers:
- Each PayrollDataSource lookup mapped onto the HR tables
- Assignments read from employees/departments/positions
- Payslip save (upsert), delete and read-back
- The calculation service end to end over the database
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update

from payroll_engines.types import ComputeMode, DeductionRuleType
from payroll_kernel.db.engine import session_scope
from payroll_kernel.exceptions import (
    InvalidAdjustmentError,
    InvalidDeductionRuleError,
    InvalidSalaryItemError,
    SalaryGroupNotFoundError,
)
from payroll_services.orm import (
    AttendanceExceptionSettingModel,
    PayrollRecordModel,
    RewardPunishmentModel,
    SalaryItemModel,
)
from payroll_services.payroll_service import PayrollCalculationService
from payroll_services.store import PayrollDataSource, PayslipSink


class TestProtocols:

    def test_implements_source_and_sink(self, sql_store):
        assert isinstance(sql_store, PayrollDataSource)
        assert isinstance(sql_store, PayslipSink)


# ===========================================================================
# Lookups
# ===========================================================================


class TestSalaryStructure:

    def test_group_entries_in_calculation_order(self, sql_store):
        group = sql_store.get_salary_group(10)
        assert group.name == "Standard"
        assert [ref.salary_item_id for ref in group.items] == [1, 2, 3]

    def test_missing_group(self, sql_store):
        assert sql_store.get_salary_group(404) is None

    def test_amount_item_parsed_as_decimal(self, sql_store):
        item = sql_store.get_salary_item(2)
        assert item.compute_mode == ComputeMode.PERCENTAGE_OF_BASE
        assert item.value == Decimal("0.1")

    def test_formula_item_kept_as_text(self, sql_store):
        item = sql_store.get_salary_item(3)
        assert item.compute_mode == ComputeMode.FORMULA
        assert item.value == "work_years * 100"

    def test_unparseable_amount_kept_as_text(self, sql_store):
        with session_scope() as session:
            session.add(SalaryItemModel(
                id=9, name="broken", calculation_type="fixed", calculation_value="n/a",
            ))
        assert sql_store.get_salary_item(9).value == "n/a"

    def test_assignments(self, sql_store):
        assert sql_store.get_employee_assignment(1) is None
        assert sql_store.get_employee_assignment(3) == 404
        assert sql_store.get_department_assignment(1) == 10
        assert sql_store.get_department_assignment(2) is None
        assert sql_store.get_position_assignment(1) is None
        assert sql_store.get_employee_assignment(999) is None


class TestAttendanceAndEmployees:

    def test_attendance_within_period(self, sql_store):
        records = sql_store.get_attendance_records(1, date(2024, 5, 1), date(2024, 5, 31))
        assert [(r.exception_type_id, r.exception_count) for r in records] == [
            (1, Decimal("5")),
        ]

    def test_exception_type(self, sql_store):
        late = sql_store.get_exception_type(1)
        assert late.deduction_rule_type == DeductionRuleType.TIERED_COUNT
        assert late.deduction_rule_threshold == Decimal("3")
        assert sql_store.get_exception_type(2).deduction_rule_threshold is None

    def test_adjustments(self, sql_store):
        records = sql_store.get_adjustment_records(1, date(2024, 5, 1), date(2024, 5, 31))
        assert len(records) == 1
        assert records[0].amount == Decimal("300")
        assert records[0].reason == "Project delivery"

    def test_employee_profile(self, sql_store):
        alice = sql_store.get_employee(1)
        assert alice.name == "Alice"
        assert alice.entry_date == date(2020, 3, 1)
        assert alice.is_active
        assert not sql_store.get_employee(2).is_active
        assert sql_store.get_employee(999) is None

    def test_base_salary(self, sql_store):
        assert sql_store.get_employee_base_salary(1) == Decimal("4000")
        assert sql_store.get_employee_base_salary(999) is None

    def test_active_employee_ids(self, sql_store):
        assert sql_store.list_employee_ids() == [1, 3]
        assert sql_store.list_employee_ids(department_id=1) == [1]


# ===========================================================================
# Payslips
# ===========================================================================


def _payslip_rows() -> int:
    with session_scope() as session:
        return session.execute(select(func.count()).select_from(PayrollRecordModel)).scalar_one()


class TestPayslipStorage:

    def test_save_and_read_back(self, sql_store):
        payslip = PayrollCalculationService(sql_store).calculate_employee_salary(1, "2024-05")
        sql_store.save_payslip(payslip)

        stored = sql_store.get_stored_payslip(1, "2024-05")
        assert stored["net_pay"] == "5000.00"
        assert stored["items"][0]["name"] == "base_pay"

    def test_save_replaces_same_period(self, sql_store):
        payslip = PayrollCalculationService(sql_store).calculate_employee_salary(1, "2024-05")
        sql_store.save_payslip(payslip)
        sql_store.save_payslip(payslip)
        assert _payslip_rows() == 1

    def test_delete(self, sql_store):
        payslip = PayrollCalculationService(sql_store).calculate_employee_salary(1, "2024-05")
        sql_store.save_payslip(payslip)

        assert sql_store.delete_payslip(1, "2024-05") is True
        assert sql_store.delete_payslip(1, "2024-05") is False
        assert sql_store.get_stored_payslip(1, "2024-05") is None


# ===========================================================================
# End to end
# ===========================================================================


class TestServiceOverDatabase:

    def test_alice_may_payslip(self, sql_store):
        payslip = PayrollCalculationService(sql_store).calculate_employee_salary(1, "2024-05")

        assert [line.amount for line in payslip.item_breakdown] == [
            Decimal("4000.00"), Decimal("400.00"), Decimal("400.00"),
        ]
        assert payslip.gross_earnings == Decimal("4800.00")
        assert payslip.total_deductions == Decimal("100.00")
        assert payslip.total_adjustments == Decimal("300.00")
        assert payslip.net_pay == Decimal("5000.00")

    def test_deleted_group_fails_one_employee(self, sql_store):
        service = PayrollCalculationService(sql_store)
        with pytest.raises(SalaryGroupNotFoundError):
            service.calculate_employee_salary(3, "2024-05")

        result = service.batch_calculate_salary("2024-05", save=True)
        assert [p.employee_id for p in result.succeeded] == [1]
        assert [f.employee_id for f in result.failed] == [3]
        assert _payslip_rows() == 1

    def test_recalculate_replaces_row(self, sql_store):
        service = PayrollCalculationService(sql_store)
        service.recalculate_employee_salary(1, "2024-05")
        service.recalculate_employee_salary(1, "2024-05")
        assert _payslip_rows() == 1


# ===========================================================================
# Stored values outside the engine enums
# ===========================================================================


def _update(model, row_id: int, **values) -> None:
    with session_scope() as session:
        row = session.get(model, row_id)
        for name, value in values.items():
            setattr(row, name, value)


class TestStoredEnumSpellings:

    def test_desktop_percentage_spelling(self, sql_store):
        _update(SalaryItemModel, 2, calculation_type="percentage")

        item = sql_store.get_salary_item(2)
        assert item.compute_mode == ComputeMode.PERCENTAGE_OF_BASE
        assert item.value == Decimal("0.1")

        payslip = PayrollCalculationService(sql_store).calculate_employee_salary(1, "2024-05")
        assert payslip.gross_earnings == Decimal("4800.00")

    def test_unknown_compute_mode(self, sql_store):
        _update(SalaryItemModel, 2, calculation_type="attendance_based")

        with pytest.raises(InvalidSalaryItemError) as exc_info:
            sql_store.get_salary_item(2)
        assert exc_info.value.salary_item_id == 2
        assert "attendance_based" in str(exc_info.value)

    def test_unknown_compute_mode_fails_one_employee(self, sql_store):
        _update(SalaryItemModel, 2, calculation_type="attendance_based")
        service = PayrollCalculationService(sql_store)

        with pytest.raises(InvalidSalaryItemError):
            service.calculate_employee_salary(1, "2024-05")

        result = service.batch_calculate_salary("2024-05")
        assert [(f.employee_id, f.reason) for f in result.failed] == [
            (1, "INVALID_SALARY_ITEM"),
            (3, "SALARY_GROUP_NOT_FOUND"),
        ]

    def test_unknown_deduction_rule_type(self, sql_store):
        _update(AttendanceExceptionSettingModel, 1, deduction_rule_type="weekly")

        with pytest.raises(InvalidDeductionRuleError) as exc_info:
            sql_store.get_exception_type(1)
        assert exc_info.value.exception_type_id == 1
        assert exc_info.value.rule_type == "weekly"

        result = PayrollCalculationService(sql_store).batch_calculate_salary("2024-05")
        assert result.failed[0].reason == "INVALID_DEDUCTION_RULE"

    def test_unknown_adjustment_kind(self, sql_store):
        with session_scope() as session:
            session.execute(
                update(RewardPunishmentModel)
                .where(RewardPunishmentModel.employee_id == 1)
                .values(kind="bonus")
            )

        with pytest.raises(InvalidAdjustmentError) as exc_info:
            sql_store.get_adjustment_records(1, date(2024, 5, 1), date(2024, 5, 31))
        assert exc_info.value.kind == "bonus"
        assert exc_info.value.code == "INVALID_ADJUSTMENT"
