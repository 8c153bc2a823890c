"""
payroll_services -- storage collaborators and the calculation service facade.

Usage:
    from payroll_services import InMemoryPayrollStore, PayrollCalculationService

    service = PayrollCalculationService(store)
    payslip = service.calculate_employee_salary(42, "2024-05")
"""

from payroll_services.payroll_service import (
    PayrollCalculationService,
    SalaryGroupValidation,
    policy_from_config,
)
from payroll_services.store import InMemoryPayrollStore, PayrollDataSource, PayslipSink

__all__ = [
    "InMemoryPayrollStore",
    "PayrollCalculationService",
    "PayrollDataSource",
    "PayslipSink",
    "SalaryGroupValidation",
    "policy_from_config",
]
