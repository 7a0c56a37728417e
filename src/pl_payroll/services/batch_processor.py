"""Batch calculation of a payroll period over a workforce."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable
from uuid import UUID

from pl_payroll.calculators.rounding import ZERO
from pl_payroll.calculators.types import (
    BatchError,
    BatchResult,
    EmployeeContext,
    PayrollInputs,
    PayrollPeriod,
    PeriodStatus,
    RateTable,
    RecordStatus,
)
from pl_payroll.errors import EmployeeCalculationError, FatalPayrollError, PeriodNotFoundError
from pl_payroll.services.state_machine import PeriodStateMachine
from pl_payroll.services.store import PayrollStore

if TYPE_CHECKING:
    from pl_payroll.calculators.engine import PayrollEngine

logger = logging.getLogger(__name__)

_PROCESSED = "processed"
_FAILED = "failed"
_NOT_STARTED = "not_started"


class BatchProcessor:
    """Runs the engine over many employees of one period.

    Flow:
    1) Period-wide checks (period exists and is calculable, earlier months
       finalized, rate table resolves). Any failure aborts before a single
       employee is touched.
    2) Period moves to CALCULATING.
    3) Employees fan out, at most `concurrency` at a time. Failures of one
       employee become an ERROR record and an entry in BatchResult.errors.
    4) Period aggregates are recomputed from the stored records and the period
       moves to CALCULATED.

    A fatal error raised mid-batch restores the pre-batch period status and
    propagates. Cancellation stops units that have not started yet; units
    already running finish.
    """

    def __init__(
        self,
        engine: PayrollEngine,
        store: PayrollStore | None = None,
        concurrency: int | None = None,
    ):
        self.engine = engine
        self.store = store or engine.store
        self.concurrency = concurrency or engine.settings.batch_concurrency
        if self.concurrency < 1:
            raise ValueError(f"Concurrency must be >= 1, got {self.concurrency}")

    async def process_batch(
        self,
        employees: Iterable[EmployeeContext],
        period_id: UUID,
        inputs: dict[UUID, PayrollInputs] | None = None,
        recalculate: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Calculate a period for a list of employees.

        Args:
            employees: Employees to calculate
            period_id: Period to calculate
            inputs: Per-employee period inputs; missing employees get the
                engine's default inputs
            recalculate: Overwrite records that are already CALCULATED
            cancel_event: Set to stop scheduling further employees

        Returns:
            Counts, per-employee errors and the recomputed period aggregates

        Raises:
            FatalPayrollError: Period-wide failure; nothing was calculated
        """
        period = await self.store.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)

        original_status = PeriodStatus(period.status)
        rates = await self.engine.prepare(period)

        inputs = inputs or {}
        result = BatchResult(period_id=period_id)

        existing = {r.employee_id: r for r in await self.store.list_records(period_id)}
        pending: list[EmployeeContext] = []
        seen: set[UUID] = set()
        for employee in employees:
            # Repeated employee_ids are calculated once, first occurrence wins
            if employee.employee_id in seen:
                result.skipped_count += 1
                continue
            seen.add(employee.employee_id)
            record = existing.get(employee.employee_id)
            if record is not None and record.status == RecordStatus.CALCULATED and not recalculate:
                result.skipped_count += 1
                continue
            pending.append(employee)

        await self._set_status(period, PeriodStatus.CALCULATING)
        logger.info(
            "Batch started for period %s (%s-%02d): %d to calculate, %d skipped",
            period_id,
            period.year,
            period.month,
            len(pending),
            result.skipped_count,
        )

        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(
            *(
                self._run_unit(
                    semaphore,
                    employee,
                    period,
                    inputs.get(employee.employee_id),
                    rates,
                    result,
                    cancel_event,
                )
                for employee in pending
            ),
            return_exceptions=True,
        )

        fatal = next((o for o in outcomes if isinstance(o, BaseException)), None)
        if fatal is not None:
            await self._set_status(period, original_status)
            logger.error("Batch for period %s aborted: %s", period_id, fatal)
            raise fatal

        result.processed_count = sum(1 for o in outcomes if o == _PROCESSED)
        result.cancelled = any(o == _NOT_STARTED for o in outcomes)

        await self._recompute_aggregates(period, result)
        if result.cancelled:
            await self._set_status(period, original_status)
        else:
            await self._set_status(period, PeriodStatus.CALCULATED)

        logger.info(
            "Batch finished for period %s: processed=%d skipped=%d errors=%d cancelled=%s",
            period_id,
            result.processed_count,
            result.skipped_count,
            result.error_count,
            result.cancelled,
        )
        return result

    async def _run_unit(
        self,
        semaphore: asyncio.Semaphore,
        employee: EmployeeContext,
        period: PayrollPeriod,
        inputs: PayrollInputs | None,
        rates: RateTable,
        result: BatchResult,
        cancel_event: asyncio.Event | None,
    ) -> str:
        """Calculate one employee, converting recoverable failures to ERROR records."""
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                return _NOT_STARTED

            try:
                await self.engine.calculate(employee, period, inputs, rates=rates)
                return _PROCESSED
            except FatalPayrollError:
                raise
            except EmployeeCalculationError as e:
                logger.warning(
                    "Calculation failed for employee %s: %s", employee.employee_id, e
                )
                message = str(e)
                error_type = type(e).__name__
            except Exception as e:
                logger.exception(
                    "Unexpected error calculating employee %s", employee.employee_id
                )
                message = f"Unexpected error: {e}"
                error_type = type(e).__name__

            result.errors.append(
                BatchError(
                    employee_id=employee.employee_id,
                    error=message,
                    error_type=error_type,
                )
            )
            async with self.store.employee_lock(employee.tenant_id, employee.employee_id):
                await self.store.upsert_record(
                    self.engine.build_error_record(employee, period, message)
                )
            return _FAILED

    async def _recompute_aggregates(self, period: PayrollPeriod, result: BatchResult) -> None:
        """Recompute period totals from all CALCULATED and ERROR records."""
        records = [
            r
            for r in await self.store.list_records(period.period_id)
            if r.status in (RecordStatus.CALCULATED, RecordStatus.ERROR)
        ]
        period.total_gross = sum((r.gross_salary for r in records), ZERO)
        period.total_net = sum((r.net_salary for r in records), ZERO)
        period.total_employer_cost = sum((r.employer_total_cost for r in records), ZERO)
        period.employee_count = len(records)

        result.total_gross = period.total_gross
        result.total_net = period.total_net
        result.total_employer_cost = period.total_employer_cost
        result.employee_count = period.employee_count

    async def _set_status(self, period: PayrollPeriod, status: PeriodStatus) -> None:
        """Persist a status change, validating it against the state machine."""
        if period.status != status:
            PeriodStateMachine.validate_transition(period.status, status)
            period.status = status
        await self.store.save_period(period)
