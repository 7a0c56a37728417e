"""Year-to-date figures derived from finalized payroll records."""

from __future__ import annotations

import logging
from uuid import UUID

from pl_payroll.calculators.rounding import ZERO
from pl_payroll.calculators.types import PayrollRecord, RecordStatus, YTDSnapshot
from pl_payroll.services.state_machine import PeriodStateMachine
from pl_payroll.services.store import PayrollStore

logger = logging.getLogger(__name__)


class YTDLedger:
    """Supplies and updates an employee's year-to-date figures.

    A snapshot for month N sums the records of months 1..N-1 of the same tax
    year whose period is finalized (APPROVED, PAID or CLOSED) and whose
    record status is CALCULATED. Draft periods, error records and later
    months never contribute. A new tax year starts from zero.
    """

    def __init__(self, store: PayrollStore):
        self.store = store

    async def snapshot_before(
        self, tenant_id: UUID, employee_id: UUID, year: int, month: int
    ) -> YTDSnapshot:
        """YTD figures as of the end of the month before (year, month)."""
        periods = await self.store.list_periods(tenant_id, year)
        finalized = {
            p.period_id
            for p in periods
            if p.month < month and PeriodStateMachine.is_finalized(p.status)
        }

        gross = ZERO
        si_basis = ZERO
        tax_basis = ZERO
        cost = ZERO
        for record in await self.store.list_employee_records(tenant_id, employee_id, year):
            if record.period_id not in finalized or record.month >= month:
                continue
            if record.status != RecordStatus.CALCULATED:
                continue
            gross += record.gross_salary
            si_basis += record.social_insurance_basis
            tax_basis += record.tax_basis
            cost += record.cost_of_revenue

        return YTDSnapshot(
            gross=gross,
            social_insurance_basis=si_basis,
            tax_basis=tax_basis,
            cost_of_revenue=cost,
        )

    async def unfinalized_prior_months(self, tenant_id: UUID, year: int, month: int) -> list[int]:
        """Months before (year, month) whose period exists but is not finalized."""
        periods = await self.store.list_periods(tenant_id, year)
        return [
            p.month
            for p in periods
            if p.month < month and not PeriodStateMachine.is_finalized(p.status)
        ]

    async def commit(self, record: PayrollRecord) -> None:
        """Persist a record together with the YTD figures it carries."""
        await self.store.upsert_record(record)
        logger.debug(
            "Committed YTD for employee %s %s-%02d: gross=%s si_basis=%s tax_basis=%s",
            record.employee_id,
            record.year,
            record.month,
            record.ytd_gross,
            record.ytd_social_insurance_basis,
            record.ytd_tax_basis,
        )
