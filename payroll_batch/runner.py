"""
BatchPayrollRunner -- per-employee isolated payroll runs.

Contract:
    ``run(employee_ids, period)`` calculates every listed employee
    independently and returns one ``BatchResult``.  ``cancel()`` stops
    dispatching further employees.

Architecture: payroll_batch.  Imports payroll_engines and payroll_kernel
    only.  The per-employee pipeline (load profile, resolve group,
    aggregate attendance, compose) is injected as a callable so the runner
    never touches storage itself.

Invariants enforced:
    - One employee's failure never aborts, retries or alters a sibling.
    - Every dispatched employee yields exactly one tagged outcome.
    - Outcomes are merged once, in input order, after all workers finish;
      workers share no mutable accumulator.
    - All timestamps come from the injected Clock.
    - After ``cancel()`` in-flight calculations finish, nothing new is
      dispatched, and the undispatched ids are reported as skipped.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from uuid import uuid4

from payroll_batch.domain.types import (
    BatchResult,
    BatchStatus,
    EmployeeFailed,
    EmployeeOutcome,
    EmployeeSucceeded,
)
from payroll_engines.period import PayPeriod
from payroll_engines.types import Payslip
from payroll_kernel.clock import Clock, SystemClock
from payroll_kernel.exceptions import PayrollKernelError
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.runner")

UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"

CalculateFn = Callable[[int, PayPeriod], Payslip]


class BatchPayrollRunner:
    """Runs the payroll pipeline over many employees with failure isolation.

    Contract:
        - ``run()`` never raises for a per-employee failure.
        - ``max_workers == 1`` runs sequentially on the calling thread.
        - ``max_workers > 1`` uses a thread pool with at most
          ``max_workers`` calculations in flight.

    Non-goals:
        - Does NOT persist payslips; the caller decides what to store.
        - Does NOT retry failed employees.
    """

    def __init__(
        self,
        calculate: CalculateFn,
        clock: Clock | None = None,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._calculate = calculate
        self._clock = clock or SystemClock()
        self._max_workers = max_workers
        self._cancel_requested = threading.Event()

    # -------------------------------------------------------------------------
    # Cancel
    # -------------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop dispatching employees in the current run."""
        self._cancel_requested.set()
        logger.info("batch_cancel_requested")

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, employee_ids: Sequence[int], period: PayPeriod | str) -> BatchResult:
        """Calculate payroll for ``employee_ids`` in ``period``.

        Raises:
            InvalidPeriodError: If ``period`` is not a valid year-month.
        """
        period = PayPeriod.parse(period)
        try:
            return self._run(employee_ids, period)
        finally:
            # A cancel requested before the run starts applies to it; the
            # flag is reset only once the run is over.
            self._cancel_requested.clear()

    def _run(self, employee_ids: Sequence[int], period: PayPeriod) -> BatchResult:
        batch_id = str(uuid4())
        start_time = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(batch_id=batch_id, period=period):
            logger.info(
                "batch_run_started",
                extra={"employee_count": len(employee_ids), "max_workers": self._max_workers},
            )

            if self._max_workers == 1:
                outcomes, skipped = self._run_sequential(employee_ids, period, batch_id)
            else:
                outcomes, skipped = self._run_concurrent(employee_ids, period, batch_id)

            completed_at = self._clock.now()
            total_duration = int((time.monotonic() - start_time) * 1000)
            result = BatchResult(
                batch_id=batch_id,
                period=str(period),
                status=_final_status(outcomes, skipped),
                outcomes=outcomes,
                skipped=skipped,
                cancelled=bool(skipped) or self.cancel_requested,
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=total_duration,
            )

            logger.info(
                "batch_run_completed",
                extra={
                    "status": result.status.value,
                    "succeeded": len(result.succeeded),
                    "failed": len(result.failed),
                    "skipped": len(skipped),
                    "duration_ms": total_duration,
                },
            )
        return result

    def _run_sequential(
        self, employee_ids: Sequence[int], period: PayPeriod, batch_id: str,
    ) -> tuple[tuple[EmployeeOutcome, ...], tuple[int, ...]]:
        outcomes: list[EmployeeOutcome] = []
        for index, employee_id in enumerate(employee_ids):
            if self.cancel_requested:
                return tuple(outcomes), tuple(employee_ids[index:])
            outcomes.append(self._calculate_one(employee_id, period, batch_id))
        return tuple(outcomes), ()

    def _run_concurrent(
        self, employee_ids: Sequence[int], period: PayPeriod, batch_id: str,
    ) -> tuple[tuple[EmployeeOutcome, ...], tuple[int, ...]]:
        results: dict[int, EmployeeOutcome] = {}
        in_flight: dict[Future, int] = {}
        next_index = 0

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="payroll-batch",
        ) as pool:
            while True:
                while (
                    next_index < len(employee_ids)
                    and len(in_flight) < self._max_workers
                    and not self.cancel_requested
                ):
                    future = pool.submit(
                        self._calculate_one, employee_ids[next_index], period, batch_id,
                    )
                    in_flight[future] = next_index
                    next_index += 1
                if not in_flight:
                    break
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    results[in_flight.pop(future)] = future.result()

        outcomes = tuple(results[i] for i in sorted(results))
        return outcomes, tuple(employee_ids[next_index:])

    def _calculate_one(
        self, employee_id: int, period: PayPeriod, batch_id: str,
    ) -> EmployeeOutcome:
        item_start = time.monotonic()
        with LogContext.bind(
            batch_id=batch_id, period=period, employee_id=employee_id,
        ):
            try:
                payslip = self._calculate(employee_id, period)
            except PayrollKernelError as exc:
                logger.warning(
                    "batch_employee_failed",
                    extra={"error_code": exc.code, "error_message": str(exc)},
                )
                return EmployeeFailed(
                    employee_id=employee_id,
                    reason=exc.code,
                    message=str(exc),
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )
            except Exception as exc:
                logger.error(
                    "batch_employee_failed",
                    extra={"error_code": UNHANDLED_EXCEPTION, "error_message": str(exc)},
                    exc_info=True,
                )
                return EmployeeFailed(
                    employee_id=employee_id,
                    reason=UNHANDLED_EXCEPTION,
                    message=str(exc),
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )

            return EmployeeSucceeded(
                employee_id=employee_id,
                payslip=payslip,
                duration_ms=int((time.monotonic() - item_start) * 1000),
            )


def _final_status(
    outcomes: tuple[EmployeeOutcome, ...], skipped: tuple[int, ...],
) -> BatchStatus:
    if skipped:
        return BatchStatus.CANCELLED
    failed = sum(1 for o in outcomes if isinstance(o, EmployeeFailed))
    if failed == 0:
        return BatchStatus.COMPLETED
    if failed == len(outcomes):
        return BatchStatus.FAILED
    return BatchStatus.PARTIALLY_COMPLETED
