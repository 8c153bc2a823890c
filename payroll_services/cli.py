"""
payroll-run -- calculate salaries from the command line.

Usage:
    payroll-run --period 2024-05
    payroll-run --period 2024-05 --department 3 --json
    payroll-run --period 2024-05 --employee 42 --save
    payroll-run --period 2024-05 --db-url sqlite:///hr.db --config payroll.yaml

Exit codes:
    0  every employee calculated
    1  usage, configuration or connection error
    2  one or more employees failed
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from decimal import Decimal

import yaml
from sqlalchemy.exc import SQLAlchemyError

from payroll_config import get_active_config
from payroll_engines.period import PayPeriod
from payroll_engines.types import Payslip
from payroll_kernel.db.engine import get_session_factory, init_engine_from_url, reset_engine
from payroll_kernel.exceptions import InvalidPeriodError, PayrollKernelError
from payroll_kernel.logging_config import configure_logging
from payroll_services.payroll_service import PayrollCalculationService
from payroll_services.serialization import batch_result_to_dict, payslip_to_dict
from payroll_services.sql_store import SqlAlchemyPayrollStore

DEFAULT_DB_URL = "sqlite:///payroll.db"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL_FAILURE = 2

W = 60


def banner(title: str) -> None:
    print("=" * W)
    print(f"  {title}")
    print("=" * W)


def print_payslip(payslip: Payslip) -> None:
    print(f"  Employee {payslip.employee_id}  period {payslip.period}")
    if payslip.configuration_gap:
        print("    (no salary group assigned -- base salary only)")
    for line in payslip.item_breakdown:
        print(f"    {line.item.name:<24} {line.amount:>12}")
    print(f"    {'gross':<24} {payslip.gross_earnings:>12}")
    for line in payslip.deduction_breakdown:
        label = f"- {line.exception_type.name} x{line.aggregated_count}"
        print(f"    {label:<24} {line.amount:>12}")
    for line in payslip.adjustment_breakdown:
        label = f"{line.kind.value}: {line.reason}"[:24]
        print(f"    {label:<24} {line.amount:>12}")
    print(f"    {'net':<24} {payslip.net_pay:>12}")
    for anomaly in payslip.anomalies:
        print(f"    ! {anomaly.code}: {anomaly.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payroll-run",
        description="Calculate payslips for one employee, a department, or everyone.",
    )
    parser.add_argument(
        "--period", type=str, required=True,
        help="Pay period as YYYY-MM",
    )
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--department", type=int, help="Department id to run")
    scope.add_argument("--employee", type=int, help="Single employee id to calculate")
    parser.add_argument(
        "--json", action="store_true",
        help="Output the full JSON result instead of a summary",
    )
    parser.add_argument(
        "--save", action="store_true",
        help="Store computed payslips, replacing any for the same period",
    )
    parser.add_argument(
        "--db-url", type=str, default=None,
        help=f"Database URL (default: config database_url, then {DEFAULT_DB_URL})",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML settings file (default: $PAYROLL_ENGINE_CONFIG, then built-in defaults)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        period = PayPeriod.parse(args.period)
    except InvalidPeriodError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return EXIT_ERROR

    try:
        config = get_active_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"  ERROR: Cannot load configuration: {exc}", file=sys.stderr)
        return EXIT_ERROR

    configure_logging(level=config.log_level, stream=sys.stderr)

    db_url = args.db_url or config.database_url or DEFAULT_DB_URL
    try:
        init_engine_from_url(db_url)
    except SQLAlchemyError as exc:
        print(f"  ERROR: Cannot connect to database: {exc}", file=sys.stderr)
        return EXIT_ERROR

    try:
        service = PayrollCalculationService(
            SqlAlchemyPayrollStore(get_session_factory()), config,
        )
        if args.employee is not None:
            return _run_single(service, args.employee, period, args.json, args.save)
        return _run_batch(service, period, args.department, args.json, args.save)
    except SQLAlchemyError as exc:
        print(f"  ERROR: Database error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        reset_engine()


def _run_single(
    service: PayrollCalculationService,
    employee_id: int,
    period: PayPeriod,
    as_json: bool,
    save: bool,
) -> int:
    try:
        if save:
            payslip = service.recalculate_employee_salary(employee_id, period)
        else:
            payslip = service.calculate_employee_salary(employee_id, period)
    except PayrollKernelError as exc:
        if as_json:
            print(json.dumps(
                {"employee_id": employee_id, "reason": exc.code, "message": str(exc)},
                indent=2,
            ))
        else:
            print(f"  FAILED [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_PARTIAL_FAILURE

    if as_json:
        print(json.dumps(payslip_to_dict(payslip), indent=2))
    else:
        banner("PAYSLIP")
        print_payslip(payslip)
    return EXIT_OK


def _run_batch(
    service: PayrollCalculationService,
    period: PayPeriod,
    department_id: int | None,
    as_json: bool,
    save: bool,
) -> int:
    result = service.batch_calculate_salary(period, department_id=department_id, save=save)

    if as_json:
        print(json.dumps(batch_result_to_dict(result), indent=2))
    else:
        scope = f"department {department_id}" if department_id is not None else "all employees"
        banner(f"PAYROLL RUN {result.period} ({scope})")
        print(f"  status:    {result.status.value}")
        print(f"  succeeded: {len(result.succeeded)}")
        print(f"  failed:    {len(result.failed)}")
        print(f"  duration:  {result.duration_ms} ms")
        for failure in result.failed:
            print(f"    employee {failure.employee_id}: {failure.reason} -- {failure.message}")
        net_total = sum((p.net_pay for p in result.succeeded), Decimal("0"))
        print(f"  net total: {net_total}")

    return EXIT_PARTIAL_FAILURE if result.failed else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
