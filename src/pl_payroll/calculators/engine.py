"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any
from uuid import UUID

from pl_payroll.calculators.component_builder import ComponentBuilder
from pl_payroll.calculators.contribution_calculator import ContributionCalculator
from pl_payroll.calculators.rate_provider import RateProvider
from pl_payroll.calculators.rounding import round2
from pl_payroll.calculators.tax_calculator import TaxCalculator
from pl_payroll.calculators.types import (
    ContractType,
    EmployeeContext,
    PayrollInputs,
    PayrollPeriod,
    PayrollRecord,
    RateTable,
    RecordStatus,
    YTDSnapshot,
)
from pl_payroll.calculators.work_calendar import working_days_in_month
from pl_payroll.config import Settings, get_settings
from pl_payroll.errors import (
    NoActiveContractError,
    PriorPeriodNotFinalizedError,
    ValidationError,
)
from pl_payroll.services.state_machine import PeriodStateMachine
from pl_payroll.services.store import PayrollStore
from pl_payroll.services.ytd_ledger import YTDLedger

logger = logging.getLogger(__name__)


class PayrollEngine:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Validate period state, contract and contract type
    2) Resolve the rate table for the month
    3) Read YTD figures of finalized prior months
    4) Build gross components
    5) Social insurance on the SI-included gross, capped by the annual ceiling
    6) Health insurance and tax advance on the taxable gross
    7) Net salary and employer cost
    8) Upsert the record keyed by (period, employee)

    Steps 3 to 8 run inside the store's per-employee critical section, so two
    concurrent recalculations of one employee cannot read the same snapshot
    and double-count.
    """

    def __init__(
        self,
        rate_provider: RateProvider,
        store: PayrollStore,
        settings: Settings | None = None,
    ):
        self.rate_provider = rate_provider
        self.store = store
        self.ledger = YTDLedger(store)
        self.settings = settings or get_settings()

    async def prepare(self, period: PayrollPeriod) -> RateTable:
        """Run the period-wide checks and return the rate table.

        Raises:
            PeriodClosedError / PeriodLockedError: Period no longer calculable
            PriorPeriodNotFinalizedError: An earlier month is still a draft
            RatesNotConfiguredError: No rate table for the month
        """
        PeriodStateMachine.ensure_calculable(period.period_id, period.status)

        unfinalized = await self.ledger.unfinalized_prior_months(
            period.tenant_id, period.year, period.month
        )
        if unfinalized:
            raise PriorPeriodNotFinalizedError(period.year, period.month, unfinalized)

        return await self.rate_provider.resolve(period.year, period.month)

    async def calculate(
        self,
        employee: EmployeeContext,
        period: PayrollPeriod,
        overrides: PayrollInputs | None = None,
        rates: RateTable | None = None,
    ) -> PayrollRecord:
        """Calculate and store one employee's record for a period.

        Args:
            employee: Employee and contract data
            period: Period being calculated
            overrides: Period inputs; full attendance at the statutory
                working-day norm when omitted
            rates: Pre-resolved rate table (batch runs resolve it once)

        Returns:
            The stored CALCULATED record
        """
        PeriodStateMachine.ensure_calculable(period.period_id, period.status)
        self.validate_employee(employee, period)

        if rates is None:
            rates = await self.rate_provider.resolve(period.year, period.month)
        inputs = overrides or self.default_inputs(period)

        async with self.store.employee_lock(employee.tenant_id, employee.employee_id):
            ytd = await self.ledger.snapshot_before(
                employee.tenant_id, employee.employee_id, period.year, period.month
            )
            record = self.compute(employee, period, inputs, rates, ytd)
            await self.ledger.commit(record)

        logger.info(
            "Calculated employee %s for %s-%02d: gross=%s net=%s tax_advance=%s",
            employee.employee_id,
            period.year,
            period.month,
            record.gross_salary,
            record.net_salary,
            record.tax_advance,
        )
        return record

    @staticmethod
    def default_inputs(period: PayrollPeriod) -> PayrollInputs:
        return PayrollInputs(working_days=working_days_in_month(period.year, period.month))

    @staticmethod
    def validate_employee(employee: EmployeeContext, period: PayrollPeriod) -> None:
        """Per-employee preconditions for calculating in a period."""
        if employee.tenant_id != period.tenant_id:
            raise ValidationError(
                f"Employee {employee.employee_id} does not belong to tenant {period.tenant_id}",
                field="tenant_id",
            )
        if not employee.has_contract_in(period.first_day, period.last_day):
            raise NoActiveContractError(employee.employee_id, period.year, period.month)
        if employee.contract_type != ContractType.EMPLOYMENT:
            raise ValidationError(
                f"Contract type {employee.contract_type.value} is not supported",
                field="contract_type",
            )

    def compute(
        self,
        employee: EmployeeContext,
        period: PayrollPeriod,
        inputs: PayrollInputs,
        rates: RateTable,
        ytd: YTDSnapshot,
    ) -> PayrollRecord:
        """Pure calculation of a record from inputs, rates and YTD figures."""
        components = ComponentBuilder.build(employee, inputs)
        gross = components.gross_total

        contributions = ContributionCalculator.calculate(
            components.social_insurance_gross, rates, ytd.social_insurance_basis
        )
        tax = TaxCalculator.calculate(
            components.taxable_gross,
            contributions.employee_total,
            rates,
            ytd,
            employee.cost_election,
            employee.relief_election,
        )

        net = round2(
            gross - contributions.employee_total - tax.health_contribution - tax.tax_advance
        )
        employer_cost = round2(gross + contributions.employer_total)

        inputs_fingerprint = self._compute_inputs_fingerprint(employee, inputs, ytd)
        rates_fingerprint = self._compute_rates_fingerprint(rates)

        return PayrollRecord(
            period_id=period.period_id,
            employee_id=employee.employee_id,
            tenant_id=employee.tenant_id,
            year=period.year,
            month=period.month,
            status=RecordStatus.CALCULATED,
            calculation_id=self._generate_calculation_id(
                period, employee.employee_id, inputs_fingerprint, rates_fingerprint
            ),
            gross_salary=gross,
            components=components.components,
            pension_employee=contributions.pension_employee,
            disability_employee=contributions.disability_employee,
            sickness_employee=contributions.sickness_employee,
            social_insurance_employee_total=contributions.employee_total,
            pension_employer=contributions.pension_employer,
            disability_employer=contributions.disability_employer,
            accident_employer=contributions.accident_employer,
            labor_fund=contributions.labor_fund,
            guaranteed_fund=contributions.guaranteed_fund,
            social_insurance_employer_total=contributions.employer_total,
            social_insurance_basis=contributions.capped_basis,
            ceiling_applied=contributions.ceiling_applied,
            health_base=tax.health_base,
            health_contribution=tax.health_contribution,
            health_deductible=tax.health_deductible,
            cost_of_revenue=tax.cost_of_revenue,
            tax_basis=tax.tax_basis,
            relief=tax.relief,
            tax_before_relief=tax.tax_before_relief,
            tax_advance=tax.tax_advance,
            net_salary=net,
            employer_total_cost=employer_cost,
            ytd_gross=ytd.gross + gross,
            ytd_social_insurance_basis=contributions.ytd_social_insurance_basis,
            ytd_tax_basis=tax.ytd_tax_basis,
            ytd_cost_of_revenue=ytd.cost_of_revenue + tax.cost_of_revenue,
        )

    def build_error_record(
        self, employee: EmployeeContext, period: PayrollPeriod, message: str
    ) -> PayrollRecord:
        """Build an ERROR record that replaces any draft result for the key."""
        return PayrollRecord(
            period_id=period.period_id,
            employee_id=employee.employee_id,
            tenant_id=employee.tenant_id,
            year=period.year,
            month=period.month,
            status=RecordStatus.ERROR,
            calculation_id=self._generate_calculation_id(period, employee.employee_id, "", ""),
            error_message=message,
        )

    def _generate_calculation_id(
        self,
        period: PayrollPeriod,
        employee_id: UUID,
        inputs_fingerprint: str,
        rates_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "period_id": str(period.period_id),
            "employee_id": str(employee_id),
            "period": f"{period.year}-{period.month:02d}",
            "engine_version": self.settings.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
            "rates_fingerprint": rates_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(
        self, employee: EmployeeContext, inputs: PayrollInputs, ytd: YTDSnapshot
    ) -> str:
        """Compute fingerprint of everything the calculation read."""
        data: dict[str, Any] = {
            "employee": {
                "gross_base_salary": str(employee.gross_base_salary),
                "working_hours_fraction": str(employee.working_hours_fraction),
                "contract_type": employee.contract_type.value,
                "cost_election": employee.cost_election.value,
                "relief_election": employee.relief_election.value,
            },
            "inputs": inputs.to_canonical_dict(),
            "ytd": {
                "gross": str(ytd.gross),
                "social_insurance_basis": str(ytd.social_insurance_basis),
                "tax_basis": str(ytd.tax_basis),
                "cost_of_revenue": str(ytd.cost_of_revenue),
            },
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def _compute_rates_fingerprint(self, rates: RateTable) -> str:
        """Compute fingerprint of the rate table used."""
        json_str = json.dumps(rates.to_mapping(), sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
