"""Tests for YTD figures derived from finalized periods."""

from decimal import Decimal
from uuid import uuid4

import pytest

from pl_payroll.calculators.types import PayrollRecord, PeriodStatus, RecordStatus
from pl_payroll.services.store import InMemoryPayrollStore
from pl_payroll.services.ytd_ledger import YTDLedger

pytestmark = pytest.mark.asyncio


def make_record(period, employee_id, gross="10000", status=RecordStatus.CALCULATED):
    gross = Decimal(gross)
    return PayrollRecord(
        period_id=period.period_id,
        employee_id=employee_id,
        tenant_id=period.tenant_id,
        year=period.year,
        month=period.month,
        status=status,
        calculation_id=uuid4(),
        gross_salary=gross,
        social_insurance_basis=gross,
        tax_basis=gross - Decimal("1621"),
        cost_of_revenue=Decimal("250"),
    )


@pytest.fixture
def employee_id():
    return uuid4()


class TestSnapshot:
    """Test which records contribute to a snapshot."""

    async def test_sums_finalized_prior_months(self, make_period, employee_id, tenant_id):
        jan = make_period(2024, 1, PeriodStatus.CLOSED)
        feb = make_period(2024, 2, PeriodStatus.PAID)
        mar = make_period(2024, 3, PeriodStatus.APPROVED)
        store = InMemoryPayrollStore(
            periods=[jan, feb, mar],
            records=[make_record(p, employee_id) for p in (jan, feb, mar)],
        )

        snapshot = await YTDLedger(store).snapshot_before(tenant_id, employee_id, 2024, 4)

        assert snapshot.gross == Decimal("30000")
        assert snapshot.social_insurance_basis == Decimal("30000")
        assert snapshot.tax_basis == Decimal("25137")
        assert snapshot.cost_of_revenue == Decimal("750")

    async def test_draft_periods_excluded(self, make_period, employee_id, tenant_id):
        jan = make_period(2024, 1, PeriodStatus.APPROVED)
        feb = make_period(2024, 2, PeriodStatus.CALCULATED)
        store = InMemoryPayrollStore(
            periods=[jan, feb],
            records=[make_record(jan, employee_id), make_record(feb, employee_id)],
        )

        snapshot = await YTDLedger(store).snapshot_before(tenant_id, employee_id, 2024, 3)

        assert snapshot.gross == Decimal("10000")

    async def test_current_and_later_months_excluded(self, make_period, employee_id, tenant_id):
        periods = [make_period(2024, m, PeriodStatus.CLOSED) for m in (1, 2, 3)]
        store = InMemoryPayrollStore(
            periods=periods, records=[make_record(p, employee_id) for p in periods]
        )

        snapshot = await YTDLedger(store).snapshot_before(tenant_id, employee_id, 2024, 2)

        assert snapshot.gross == Decimal("10000")

    async def test_error_records_excluded(self, make_period, employee_id, tenant_id):
        jan = make_period(2024, 1, PeriodStatus.CLOSED)
        store = InMemoryPayrollStore(
            periods=[jan],
            records=[make_record(jan, employee_id, status=RecordStatus.ERROR)],
        )

        snapshot = await YTDLedger(store).snapshot_before(tenant_id, employee_id, 2024, 2)

        assert snapshot.gross == Decimal("0")

    async def test_new_tax_year_starts_from_zero(self, make_period, employee_id, tenant_id):
        dec = make_period(2024, 12, PeriodStatus.CLOSED)
        store = InMemoryPayrollStore(periods=[dec], records=[make_record(dec, employee_id)])

        snapshot = await YTDLedger(store).snapshot_before(tenant_id, employee_id, 2025, 1)

        assert snapshot.gross == Decimal("0")
        assert snapshot.tax_basis == Decimal("0")

    async def test_other_employees_excluded(self, make_period, employee_id, tenant_id):
        jan = make_period(2024, 1, PeriodStatus.CLOSED)
        store = InMemoryPayrollStore(periods=[jan], records=[make_record(jan, uuid4())])

        snapshot = await YTDLedger(store).snapshot_before(tenant_id, employee_id, 2024, 2)

        assert snapshot.gross == Decimal("0")


class TestPriorPeriods:
    """Test detection of unfinalized earlier months."""

    async def test_unfinalized_prior_months(self, make_period, tenant_id):
        store = InMemoryPayrollStore(
            periods=[
                make_period(2024, 1, PeriodStatus.CLOSED),
                make_period(2024, 2, PeriodStatus.CALCULATED),
                make_period(2024, 3, PeriodStatus.OPEN),
                make_period(2024, 4, PeriodStatus.OPEN),
            ]
        )

        months = await YTDLedger(store).unfinalized_prior_months(tenant_id, 2024, 4)

        assert months == [2, 3]

    async def test_first_month_has_no_prior(self, make_period, tenant_id):
        store = InMemoryPayrollStore(periods=[make_period(2024, 12, PeriodStatus.OPEN)])

        assert await YTDLedger(store).unfinalized_prior_months(tenant_id, 2025, 1) == []

    async def test_commit_upserts(self, make_period, employee_id):
        jan = make_period(2024, 1)
        store = InMemoryPayrollStore(periods=[jan])
        ledger = YTDLedger(store)

        await ledger.commit(make_record(jan, employee_id, gross="1000"))
        await ledger.commit(make_record(jan, employee_id, gross="2000"))

        records = await store.list_records(jan.period_id)
        assert len(records) == 1
        assert records[0].gross_salary == Decimal("2000")
