"""
Fixtures for the SQL-backed store and the command line.

``hr_rows`` is a small HR database in ORM form:

- Engineering (department 1) -> Standard group (base 4000, overtime 10%,
  seniority 100 per year)
- Alice (1): active, hired 2020-03-01, five late arrivals and one June
  absence, a 300 reward in May
- Bob (2):   inactive
- Carol (3): active, Sales (department 2), assigned to a deleted group
"""

from datetime import date
from decimal import Decimal

import pytest

from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from payroll_services.orm import (
    AttendanceExceptionSettingModel,
    AttendanceRecordModel,
    DepartmentModel,
    EmployeeModel,
    PositionModel,
    RewardPunishmentModel,
    SalaryGroupItemModel,
    SalaryGroupModel,
    SalaryItemModel,
)
from payroll_services.sql_store import SqlAlchemyPayrollStore


@pytest.fixture
def hr_rows() -> list:
    return [
        SalaryItemModel(
            id=1, name="base_pay", calculation_type="fixed",
            calculation_value="4000", display_order=1,
        ),
        SalaryItemModel(
            id=2, name="overtime", calculation_type="percentage_of_base",
            calculation_value="0.1", display_order=2,
        ),
        SalaryItemModel(
            id=3, name="seniority", calculation_type="formula",
            calculation_value="work_years * 100", display_order=3,
        ),
        SalaryGroupModel(
            id=10, name="Standard",
            entries=[
                SalaryGroupItemModel(salary_item_id=3, calculation_order=3),
                SalaryGroupItemModel(salary_item_id=1, calculation_order=1),
                SalaryGroupItemModel(salary_item_id=2, calculation_order=2),
            ],
        ),
        DepartmentModel(id=1, name="Engineering", salary_group_id=10),
        DepartmentModel(id=2, name="Sales", salary_group_id=None),
        PositionModel(id=1, name="Engineer", department_id=1),
        EmployeeModel(
            id=1, employee_no="E001", name="Alice", department_id=1, position_id=1,
            entry_date=date(2020, 3, 1), base_salary=Decimal("4000"),
        ),
        EmployeeModel(
            id=2, employee_no="E002", name="Bob", department_id=1, position_id=1,
            entry_date=date(2021, 1, 4), base_salary=Decimal("3800"), status=0,
        ),
        EmployeeModel(
            id=3, employee_no="E003", name="Carol", department_id=2,
            base_salary=Decimal("3000"), salary_group_id=404,
        ),
        AttendanceExceptionSettingModel(
            id=1, name="late", deduction_rule_type="tiered_count",
            deduction_rule_value=Decimal("50"), deduction_rule_threshold=Decimal("3"),
        ),
        AttendanceExceptionSettingModel(
            id=2, name="absence", deduction_rule_type="per_day_salary",
            deduction_rule_value=Decimal("1"),
        ),
        AttendanceRecordModel(
            employee_id=1, record_date=date(2024, 5, 6), exception_type_id=1,
            exception_count=Decimal("5"),
        ),
        AttendanceRecordModel(
            employee_id=1, record_date=date(2024, 6, 3), exception_type_id=2,
            exception_count=Decimal("1"),
        ),
        RewardPunishmentModel(
            employee_id=1, record_date=date(2024, 5, 20), kind="reward",
            amount=Decimal("300"), reason="Project delivery",
        ),
    ]


@pytest.fixture
def sql_store(hr_rows):
    """SqlAlchemyPayrollStore over a seeded in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    with session_scope() as session:
        session.add_all(hr_rows)
    yield SqlAlchemyPayrollStore(get_session_factory())
    drop_tables()
    reset_engine()


@pytest.fixture
def hr_database_url(tmp_path, hr_rows) -> str:
    """URL of a seeded SQLite file; the engine is released before the test runs."""
    url = f"sqlite:///{tmp_path / 'hr.db'}"
    init_engine_from_url(url)
    create_tables()
    with session_scope() as session:
        session.add_all(hr_rows)
    reset_engine()
    yield url
    reset_engine()
