"""Unit tests for PayrollEngine.

Tests the engine against the in-memory store.
"""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from pl_payroll.calculators.engine import PayrollEngine
from pl_payroll.calculators.types import (
    ContractType,
    ManualComponent,
    PayrollInputs,
    PayrollRecord,
    PeriodStatus,
    RecordStatus,
)
from pl_payroll.errors import (
    NoActiveContractError,
    PeriodClosedError,
    PeriodLockedError,
    PriorPeriodNotFinalizedError,
    RatesNotConfiguredError,
    ValidationError,
)
from pl_payroll.services.store import InMemoryPayrollStore, PayrollStore


class TestCalculationIdGeneration:
    """Test deterministic calculation ID generation."""

    def test_same_inputs_produce_same_id(self, make_period):
        """Same inputs should always produce the same calculation ID."""
        engine = PayrollEngine.__new__(PayrollEngine)
        engine.settings = type("Settings", (), {"engine_version": "1.0.0"})()

        period = make_period()
        employee_id = uuid4()

        id1 = engine._generate_calculation_id(period, employee_id, "abc123", "def456")
        id2 = engine._generate_calculation_id(period, employee_id, "abc123", "def456")

        assert id1 == id2

    def test_different_inputs_produce_different_id(self, make_period):
        """Different inputs should produce different calculation IDs."""
        engine = PayrollEngine.__new__(PayrollEngine)
        engine.settings = type("Settings", (), {"engine_version": "1.0.0"})()

        period = make_period()
        employee_id = uuid4()

        id1 = engine._generate_calculation_id(period, employee_id, "abc123", "def456")
        id2 = engine._generate_calculation_id(period, employee_id, "xyz789", "def456")

        assert id1 != id2

    def test_engine_version_changes_id(self, make_period):
        """A new engine version should produce a new calculation ID."""
        period = make_period()
        employee_id = uuid4()

        engine_v1 = PayrollEngine.__new__(PayrollEngine)
        engine_v1.settings = type("Settings", (), {"engine_version": "1.0.0"})()
        engine_v2 = PayrollEngine.__new__(PayrollEngine)
        engine_v2.settings = type("Settings", (), {"engine_version": "1.1.0"})()

        assert engine_v1._generate_calculation_id(
            period, employee_id, "abc", "def"
        ) != engine_v2._generate_calculation_id(period, employee_id, "abc", "def")


class TestReferenceCalculation:
    """Test a full month at 15 000 PLN with standard costs and full relief."""

    async def test_reference_month(self, engine, employee, make_period, full_month):
        period = make_period(2024, 1)

        record = await engine.calculate(employee, period, full_month)

        assert record.status == RecordStatus.CALCULATED
        assert record.gross_salary == Decimal("15000")
        assert record.social_insurance_employee_total == Decimal("2056.50")
        assert record.social_insurance_employer_total == Decimal("3072.00")
        assert record.health_base == Decimal("12943.50")
        assert record.health_contribution == Decimal("1164.92")
        assert record.health_deductible == Decimal("1003.12")
        assert record.tax_basis == Decimal("12694")
        assert record.tax_before_relief == Decimal("1523.28")
        assert record.tax_advance == Decimal("220")
        assert record.net_salary == Decimal("11558.58")
        assert record.employer_total_cost == Decimal("18072.00")
        assert record.ceiling_applied is False

        assert record.ytd_gross == Decimal("15000")
        assert record.ytd_social_insurance_basis == Decimal("15000")
        assert record.ytd_tax_basis == Decimal("12694")

    async def test_record_is_stored(self, engine, store, employee, make_period, full_month):
        period = make_period(2024, 1)

        record = await engine.calculate(employee, period, full_month)

        assert await store.get_record(period.period_id, employee.employee_id) == record

    async def test_default_inputs_use_working_day_norm(self, engine, employee, make_period):
        """Without inputs the employee is paid for full attendance."""
        record = await engine.calculate(employee, make_period(2024, 1))

        assert record.gross_salary == Decimal("15000")
        assert engine.default_inputs(make_period(2024, 1)).working_days == 21

    @pytest.mark.parametrize("salary", ["4242", "7000.01", "15000", "33333.33"])
    async def test_net_salary_identity(self, engine, make_employee, make_period, salary):
        """net = gross - employee ZUS - health - advance, to the grosz."""
        inputs = PayrollInputs(
            working_days=21,
            overtime_hours=Decimal("3.5"),
            manual_components=(ManualComponent(code="BONUS", label="Premia", amount=Decimal("321.09")),),
        )
        record = await engine.calculate(make_employee(salary), make_period(2024, 3), inputs)

        assert record.net_salary == (
            record.gross_salary
            - record.social_insurance_employee_total
            - record.health_contribution
            - record.tax_advance
        )
        assert record.employer_total_cost == (
            record.gross_salary + record.social_insurance_employer_total
        )


class TestIdempotence:
    """Test recalculation behaviour."""

    async def test_recalculation_is_identical(self, engine, store, employee, make_period, full_month):
        period = make_period(2024, 1)

        first = await engine.calculate(employee, period, full_month)
        second = await engine.calculate(employee, period, full_month)

        assert first == second
        assert first.calculation_id == second.calculation_id
        assert len(await store.list_records(period.period_id)) == 1

    async def test_changed_inputs_overwrite(self, engine, store, employee, make_period, full_month):
        period = make_period(2024, 1)

        first = await engine.calculate(employee, period, full_month)
        second = await engine.calculate(
            employee, period, PayrollInputs(working_days=21, worked_days=20)
        )

        assert first.calculation_id != second.calculation_id
        stored = await store.get_record(period.period_id, employee.employee_id)
        assert stored == second

    async def test_concurrent_recalculations(self, engine, store, employee, make_period, full_month):
        """Two racing recalculations of one employee leave one consistent record."""
        period = make_period(2024, 1)

        first, second = await asyncio.gather(
            engine.calculate(employee, period, full_month),
            engine.calculate(employee, period, full_month),
        )

        assert first == second
        records = await store.list_records(period.period_id)
        assert records == [first]

    async def test_employee_locks_released(
        self, engine, store, make_employee, make_period, full_month
    ):
        period = make_period(2024, 1)
        employee = make_employee()

        await asyncio.gather(
            engine.calculate(employee, period, full_month),
            engine.calculate(employee, period, full_month),
            engine.calculate(make_employee(), period, full_month),
        )

        assert store._locks == {}

    async def test_lock_shared_while_waiting(self, store, tenant_id):
        employee_id = uuid4()
        key = (tenant_id, employee_id)
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with store.employee_lock(tenant_id, employee_id):
                entered.set()
                await release.wait()

        async def waiter():
            async with store.employee_lock(tenant_id, employee_id):
                pass

        first = asyncio.create_task(holder())
        await entered.wait()
        second = asyncio.create_task(waiter())
        await asyncio.sleep(0)

        assert store._locks[key][1] == 2
        release.set()
        await asyncio.gather(first, second)
        assert key not in store._locks

    def test_store_must_implement_storage(self):
        class PeriodsOnly(PayrollStore):
            async def get_period(self, period_id):
                return None

        with pytest.raises(TypeError):
            PeriodsOnly()


class TestYearToDate:
    """Test YTD figures flowing between months."""

    async def test_finalized_month_feeds_next(self, engine, store, employee, make_period, full_month):
        jan = make_period(2024, 1)
        feb = make_period(2024, 2)
        await engine.calculate(employee, jan, full_month)
        jan.status = PeriodStatus.APPROVED
        await store.save_period(jan)

        record = await engine.calculate(employee, feb, full_month)

        assert record.ytd_gross == Decimal("30000")
        assert record.ytd_social_insurance_basis == Decimal("30000")
        assert record.ytd_tax_basis == Decimal("25388")

    async def test_draft_month_ignored(self, engine, store, employee, make_period, full_month):
        jan = make_period(2024, 1)
        await engine.calculate(employee, jan, full_month)
        await store.save_period(jan)

        record = await engine.calculate(employee, make_period(2024, 2), full_month)

        assert record.ytd_gross == Decimal("15000")

    async def test_ceiling_crossed_in_december(
        self, rate_provider, settings, employee, make_period, full_month
    ):
        """230 000 of basis used by November leaves 4 720 for December."""
        nov = make_period(2024, 11, PeriodStatus.PAID)
        prior = PayrollRecord(
            period_id=nov.period_id,
            employee_id=employee.employee_id,
            tenant_id=employee.tenant_id,
            year=2024,
            month=11,
            status=RecordStatus.CALCULATED,
            calculation_id=uuid4(),
            gross_salary=Decimal("230000"),
            social_insurance_basis=Decimal("230000"),
            tax_basis=Decimal("200000"),
        )
        store = InMemoryPayrollStore(periods=[nov], records=[prior])
        engine = PayrollEngine(rate_provider, store, settings)

        record = await engine.calculate(employee, make_period(2024, 12), full_month)

        assert record.pension_employee == Decimal("460.67")
        assert record.disability_employee == Decimal("70.80")
        assert record.sickness_employee == Decimal("367.50")
        assert record.social_insurance_basis == Decimal("4720")
        assert record.ytd_social_insurance_basis == Decimal("234720")
        assert record.ceiling_applied is True
        # Second bracket for the whole month
        assert record.tax_before_relief == record.tax_basis * Decimal("0.32")


class TestValidation:
    """Test per-employee and period-wide failures."""

    async def test_closed_period(self, engine, employee, make_period, full_month):
        with pytest.raises(PeriodClosedError):
            await engine.calculate(employee, make_period(2024, 1, PeriodStatus.CLOSED), full_month)

    async def test_approved_period(self, engine, employee, make_period, full_month):
        with pytest.raises(PeriodLockedError):
            await engine.calculate(
                employee, make_period(2024, 1, PeriodStatus.APPROVED), full_month
            )

    async def test_missing_rates(self, engine, employee, make_period, full_month):
        with pytest.raises(RatesNotConfiguredError):
            await engine.calculate(employee, make_period(2023, 6), full_month)

    async def test_no_contract(self, engine, make_employee, make_period, full_month):
        employee = make_employee(contract_start=None)

        with pytest.raises(NoActiveContractError) as exc_info:
            await engine.calculate(employee, make_period(2024, 1), full_month)

        assert exc_info.value.employee_id == employee.employee_id

    async def test_contract_ended_before_period(self, engine, make_employee, make_period, full_month):
        employee = make_employee(contract_end=date(2023, 12, 31))

        with pytest.raises(NoActiveContractError):
            await engine.calculate(employee, make_period(2024, 1), full_month)

    async def test_contract_starting_mid_month(self, engine, make_employee, make_period):
        employee = make_employee(contract_start=date(2024, 1, 15))
        inputs = PayrollInputs(working_days=21, worked_days=13)

        record = await engine.calculate(employee, make_period(2024, 1), inputs)

        assert record.gross_salary == Decimal("9285.71")

    async def test_unsupported_contract_type(self, engine, make_employee, make_period, full_month):
        employee = make_employee(contract_type=ContractType.MANDATE)

        with pytest.raises(ValidationError) as exc_info:
            await engine.calculate(employee, make_period(2024, 1), full_month)

        assert exc_info.value.field == "contract_type"

    async def test_other_tenant(self, engine, make_employee, make_period, full_month):
        employee = make_employee(tenant_id=uuid4())

        with pytest.raises(ValidationError) as exc_info:
            await engine.calculate(employee, make_period(2024, 1), full_month)

        assert exc_info.value.field == "tenant_id"

    async def test_prepare_requires_finalized_prior_months(self, engine, store, make_period):
        await store.save_period(make_period(2024, 1, PeriodStatus.CALCULATED))

        with pytest.raises(PriorPeriodNotFinalizedError) as exc_info:
            await engine.prepare(make_period(2024, 2))

        assert exc_info.value.prior_months == [1]

    async def test_error_record(self, engine, employee, make_period):
        period = make_period(2024, 1)

        record = engine.build_error_record(employee, period, "Working days must be positive")

        assert record.status == RecordStatus.ERROR
        assert record.is_error
        assert record.gross_salary == Decimal("0")
        assert record.error_message == "Working days must be positive"
