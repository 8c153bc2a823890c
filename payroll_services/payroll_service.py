"""
Payroll Calculation Service (``payroll_services.payroll_service``).

Responsibility
--------------
The surface the desktop shell calls: calculate one employee's salary,
run a batch over a department or the whole roster, recalculate and
replace a stored payslip, and validate a salary group's formulas.  Pure
computation is delegated to ``payroll_engines``; batch isolation to
``payroll_batch``; data access to an injected ``PayrollDataSource``.

Architecture position
---------------------
**Services layer** -- thin glue.  Owns no state beyond its collaborators
and the runner of the batch in progress (so it can be cancelled).

Invariants enforced
-------------------
* The salary group is resolved on every calculation; nothing is cached.
* Payslips are stored only when the caller asks and the store supports
  it; the engines never write.
* A recalculation computes the new payslip before replacing the old one,
  so a failing recalculation leaves the stored payslip untouched.

Failure modes
-------------
* Single-employee calls propagate the typed ``PayrollKernelError``.
* Batch calls never raise per employee; failures land in the BatchResult.

Usage::

    service = PayrollCalculationService(store, get_active_config())
    payslip = service.calculate_employee_salary(42, "2024-05")
    result = service.batch_calculate_salary("2024-05", department_id=3)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from payroll_batch.domain.types import BatchResult
from payroll_batch.runner import BatchPayrollRunner
from payroll_config.schema import PayrollEngineConfig
from payroll_engines.aggregation import AttendanceAggregator
from payroll_engines.composer import BASE_VARIABLE_NAMES, ComposerPolicy, compose_payslip
from payroll_engines.period import PayPeriod
from payroll_engines.resolver import SalaryGroupResolver, validate_salary_group_formulas
from payroll_engines.types import AttendanceExceptionType, Payslip
from payroll_kernel.clock import Clock, SystemClock
from payroll_kernel.exceptions import EmployeeNotFoundError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.store import PayrollDataSource, PayslipSink

logger = get_logger("services.payroll")


def policy_from_config(config: PayrollEngineConfig) -> ComposerPolicy:
    """Build the composer policy from engine settings."""
    return ComposerPolicy(
        standard_working_days=config.standard_working_days,
        allow_negative_net_pay=config.allow_negative_net_pay,
        money_quantum=config.money_quantum,
    )


@dataclass(frozen=True)
class SalaryGroupValidation:
    """Outcome of checking a salary group's formulas."""

    salary_group_id: int
    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


class PayrollCalculationService:
    """Salary calculation entry point over one data source."""

    def __init__(
        self,
        store: PayrollDataSource,
        config: PayrollEngineConfig | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._config = config or PayrollEngineConfig.with_defaults()
        self._policy = policy_from_config(self._config)
        self._clock = clock or SystemClock()
        self._resolver = SalaryGroupResolver(store)
        self._aggregator = AttendanceAggregator(store)
        self._active_runner: BatchPayrollRunner | None = None

    @property
    def config(self) -> PayrollEngineConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Single employee
    # -------------------------------------------------------------------------

    def calculate_employee_salary(
        self, employee_id: int, period: PayPeriod | str,
    ) -> Payslip:
        """Compute one employee's payslip for ``period``.

        Raises:
            InvalidPeriodError: If ``period`` is not ``YYYY-MM``.
            EmployeeNotFoundError: If the employee does not exist.
            DataIntegrityError: On dangling references or invalid rules.
        """
        period = PayPeriod.parse(period)
        with LogContext.bind(employee_id=employee_id, period=period):
            employee = self._store.get_employee(employee_id)
            if employee is None:
                raise EmployeeNotFoundError(employee_id)
            # Base pay comes from its own lookup so a store can keep
            # compensation apart from the employee profile.
            base_salary = self._store.get_employee_base_salary(employee.id)
            if base_salary is not None and base_salary != employee.base_salary:
                employee = replace(employee, base_salary=base_salary)

            resolved = self._resolver.resolve(
                employee.id, employee.department_id, employee.position_id,
            )
            aggregated = self._aggregator.aggregate(employee.id, period)
            catalog: dict[int, AttendanceExceptionType] = {}
            for type_id in aggregated:
                exception_type = self._store.get_exception_type(type_id)
                if exception_type is not None:
                    catalog[type_id] = exception_type
            adjustments = self._store.get_adjustment_records(
                employee.id, period.start, period.end,
            )

            group_id = resolved.group_id if resolved is not None else None
            with LogContext.bind(salary_group_id=group_id):
                payslip = compose_payslip(
                    employee, period, resolved, aggregated, catalog,
                    adjustments=adjustments, policy=self._policy,
                )

                if payslip.configuration_gap:
                    logger.warning("salary_group_not_configured")
                for anomaly in payslip.anomalies:
                    logger.warning(
                        "payslip_anomaly",
                        extra={"anomaly_code": anomaly.code, "amount": anomaly.amount},
                    )
                logger.info(
                    "payslip_composed",
                    extra={
                        "gross_earnings": payslip.gross_earnings,
                        "total_deductions": payslip.total_deductions,
                        "net_pay": payslip.net_pay,
                    },
                )
            return payslip

    def recalculate_employee_salary(
        self, employee_id: int, period: PayPeriod | str,
    ) -> Payslip:
        """Recompute a payslip and replace any stored one for the same period."""
        payslip = self.calculate_employee_salary(employee_id, period)
        if isinstance(self._store, PayslipSink):
            self._store.delete_payslip(employee_id, payslip.period)
            self._store.save_payslip(payslip)
        logger.info(
            "payslip_recalculated",
            extra={"employee_id": employee_id, "period": payslip.period},
        )
        return payslip

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def batch_calculate_salary(
        self,
        period: PayPeriod | str,
        department_id: int | None = None,
        employee_ids: Sequence[int] | None = None,
        save: bool = False,
    ) -> BatchResult:
        """Run payroll for a department, an explicit id list, or everyone active.

        With ``save=True`` and a store that accepts payslips, every
        successful payslip is stored once the run has finished.
        """
        period = PayPeriod.parse(period)
        if employee_ids is None:
            employee_ids = self._store.list_employee_ids(department_id)

        runner = BatchPayrollRunner(
            self.calculate_employee_salary,
            clock=self._clock,
            max_workers=self._config.batch_max_workers,
        )
        self._active_runner = runner
        try:
            result = runner.run(list(employee_ids), period)
        finally:
            self._active_runner = None

        if save and isinstance(self._store, PayslipSink):
            for payslip in result.succeeded:
                self._store.save_payslip(payslip)
        return result

    def cancel_batch(self) -> bool:
        """Cancel the batch in progress; returns False when none is running."""
        runner = self._active_runner
        if runner is None:
            return False
        runner.cancel()
        return True

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_salary_group(self, salary_group_id: int) -> SalaryGroupValidation:
        """Check a salary group's formulas without calculating anything.

        Raises:
            SalaryGroupNotFoundError / SalaryItemNotFoundError: On dangling
                references.
        """
        resolved = self._resolver.materialize(salary_group_id)
        errors = validate_salary_group_formulas(resolved.items, BASE_VARIABLE_NAMES)
        logger.info(
            "salary_group_validated",
            extra={"salary_group_id": salary_group_id, "error_count": len(errors)},
        )
        return SalaryGroupValidation(salary_group_id=salary_group_id, errors=tuple(errors))
