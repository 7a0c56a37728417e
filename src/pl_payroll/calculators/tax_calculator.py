"""Health insurance and income-tax advance (zaliczka na PIT) calculation."""

from __future__ import annotations

from decimal import Decimal

from pl_payroll.calculators.rounding import ZERO, round2, round_whole
from pl_payroll.calculators.types import (
    CostElection,
    RateTable,
    ReliefElection,
    TaxResult,
    YTDSnapshot,
)


class TaxCalculator:
    """Calculates the monthly tax advance on the progressive scale.

    Rounding sequence (reference behaviour):
    1) health base = taxable gross - employee ZUS, exact to grosze
    2) health contribution and its deductible part, each rounded to grosze
    3) tax basis = health base - cost of revenue, rounded to whole PLN
    4) bracket split on the whole-PLN basis, sum rounded to grosze
    5) advance = tax - deductible health - relief, rounded to whole PLN, >= 0

    The bracket is chosen from the year-to-date tax basis BEFORE this month.
    A month that crosses the threshold is taxed at both rates.
    """

    @staticmethod
    def cost_of_revenue(
        election: CostElection,
        rates: RateTable,
        health_base: Decimal,
        ytd_cost: Decimal = ZERO,
    ) -> Decimal:
        """Monthly cost-of-revenue deduction for an election."""
        if election is CostElection.STANDARD:
            return rates.standard_cost
        if election is CostElection.ELEVATED:
            return rates.elevated_cost
        if election is CostElection.RIGHTS_BASED:
            remaining_cap = max(ZERO, rates.rights_cost_annual_cap - ytd_cost)
            return min(round2(max(ZERO, health_base) * rates.rights_cost_rate), remaining_cap)
        raise ValueError(f"Unknown cost election: {election}")

    @staticmethod
    def relief_amount(election: ReliefElection, rates: RateTable) -> Decimal:
        """Monthly relief for an election."""
        if election is ReliefElection.FULL:
            return rates.monthly_relief
        if election is ReliefElection.HALF:
            return round2(rates.monthly_relief / 2)
        if election is ReliefElection.NONE:
            return ZERO
        raise ValueError(f"Unknown relief election: {election}")

    @staticmethod
    def progressive_tax(tax_basis: Decimal, ytd_tax_basis: Decimal, rates: RateTable) -> Decimal:
        """Tax on this month's basis given the year-to-date basis before it."""
        if tax_basis <= 0:
            return ZERO

        threshold = rates.tax_threshold
        if ytd_tax_basis >= threshold:
            return round2(tax_basis * rates.tax_rate_2)

        if ytd_tax_basis + tax_basis > threshold:
            below = threshold - ytd_tax_basis
            above = tax_basis - below
            return round2(below * rates.tax_rate_1 + above * rates.tax_rate_2)

        return round2(tax_basis * rates.tax_rate_1)

    @classmethod
    def calculate(
        cls,
        taxable_gross: Decimal,
        employee_social_insurance: Decimal,
        rates: RateTable,
        ytd: YTDSnapshot,
        cost_election: CostElection = CostElection.STANDARD,
        relief_election: ReliefElection = ReliefElection.FULL,
    ) -> TaxResult:
        """Calculate health insurance and the tax advance for a month."""
        health_base = taxable_gross - employee_social_insurance
        health_contribution = round2(max(ZERO, health_base) * rates.health_rate)
        health_deductible = round2(max(ZERO, health_base) * rates.health_deductible_rate)

        cost = cls.cost_of_revenue(cost_election, rates, health_base, ytd.cost_of_revenue)
        tax_basis = max(ZERO, round_whole(health_base - cost))

        tax_before_relief = cls.progressive_tax(tax_basis, ytd.tax_basis, rates)
        relief = cls.relief_amount(relief_election, rates)
        tax_advance = max(ZERO, round_whole(tax_before_relief - health_deductible - relief))

        return TaxResult(
            health_base=health_base,
            health_contribution=health_contribution,
            health_deductible=health_deductible,
            cost_of_revenue=cost,
            tax_basis=tax_basis,
            tax_before_relief=tax_before_relief,
            relief=relief,
            tax_advance=tax_advance,
            ytd_tax_basis=ytd.tax_basis + tax_basis,
        )
