"""JSON-ready views of payslips and batch results.

Decimals are rendered as strings so no precision is lost on the way out.
"""

from __future__ import annotations

from typing import Any

from payroll_batch.domain.types import BatchResult, EmployeeFailed
from payroll_engines.types import Payslip


def payslip_to_dict(payslip: Payslip) -> dict[str, Any]:
    return {
        "employee_id": payslip.employee_id,
        "period": payslip.period,
        "salary_group_id": payslip.salary_group_id,
        "assignment_level": (
            payslip.assignment_level.value if payslip.assignment_level else None
        ),
        "configuration_gap": payslip.configuration_gap,
        "base_salary": str(payslip.base_salary),
        "gross_earnings": str(payslip.gross_earnings),
        "items": [
            {
                "salary_item_id": line.item.id,
                "name": line.item.name,
                "compute_mode": line.item.compute_mode.value,
                "amount": str(line.amount),
            }
            for line in payslip.item_breakdown
        ],
        "deductions": [
            {
                "exception_type_id": line.exception_type.id,
                "name": line.exception_type.name,
                "rule": line.exception_type.deduction_rule_type.value,
                "aggregated_count": str(line.aggregated_count),
                "amount": str(line.amount),
            }
            for line in payslip.deduction_breakdown
        ],
        "adjustments": [
            {
                "kind": line.kind.value,
                "reason": line.reason,
                "record_date": line.record_date.isoformat(),
                "amount": str(line.amount),
            }
            for line in payslip.adjustment_breakdown
        ],
        "total_deductions": str(payslip.total_deductions),
        "total_adjustments": str(payslip.total_adjustments),
        "net_pay": str(payslip.net_pay),
        "anomalies": [
            {
                "code": a.code,
                "message": a.message,
                "amount": str(a.amount) if a.amount is not None else None,
            }
            for a in payslip.anomalies
        ],
    }


def failure_to_dict(failure: EmployeeFailed) -> dict[str, Any]:
    return {
        "employee_id": failure.employee_id,
        "reason": failure.reason,
        "message": failure.message,
    }


def batch_result_to_dict(result: BatchResult) -> dict[str, Any]:
    return {
        "batch_id": result.batch_id,
        "period": result.period,
        "status": result.status.value,
        "cancelled": result.cancelled,
        "started_at": result.started_at.isoformat() if result.started_at else None,
        "completed_at": result.completed_at.isoformat() if result.completed_at else None,
        "duration_ms": result.duration_ms,
        "succeeded": [payslip_to_dict(p) for p in result.succeeded],
        "failed": [failure_to_dict(f) for f in result.failed],
        "skipped": list(result.skipped),
    }
