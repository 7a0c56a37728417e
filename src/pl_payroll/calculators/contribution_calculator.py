"""Social insurance (ZUS) contribution calculation."""

from __future__ import annotations

from decimal import Decimal

from pl_payroll.calculators.rounding import ZERO, round2
from pl_payroll.calculators.types import ContributionResult, RateTable


class ContributionCalculator:
    """Computes employee and employer ZUS contributions for one month.

    Pension and disability (both sides) are charged on the gross capped by
    what remains of the annual ceiling. Sickness (employee), accident, Labour
    Fund and FGSP (employer) are charged on the full gross, uncapped.

    Every line item is rounded to grosze on its own; totals are sums of the
    rounded lines.
    """

    @staticmethod
    def _line(basis: Decimal, rate: Decimal) -> Decimal:
        return round2(basis * rate)

    @staticmethod
    def remaining_ceiling(rates: RateTable, ytd_basis: Decimal) -> Decimal:
        """Part of the annual ceiling not yet used this year."""
        return max(ZERO, rates.annual_ceiling - ytd_basis)

    @classmethod
    def calculate(
        cls,
        gross: Decimal,
        rates: RateTable,
        ytd_basis: Decimal = ZERO,
    ) -> ContributionResult:
        """Calculate contributions on a month's social insurance gross.

        Args:
            gross: Gross subject to social insurance this month
            rates: Rate table in force
            ytd_basis: Capped pension/disability basis of prior months

        Returns:
            Contribution breakdown with the new cumulative basis
        """
        remaining = cls.remaining_ceiling(rates, ytd_basis)
        capped_basis = min(gross, remaining)

        pension_ee = cls._line(capped_basis, rates.pension_employee_rate)
        disability_ee = cls._line(capped_basis, rates.disability_employee_rate)
        sickness_ee = cls._line(gross, rates.sickness_employee_rate)

        pension_er = cls._line(capped_basis, rates.pension_employer_rate)
        disability_er = cls._line(capped_basis, rates.disability_employer_rate)
        accident_er = cls._line(gross, rates.accident_employer_rate)
        labor_fund = cls._line(gross, rates.labor_fund_rate)
        guaranteed_fund = cls._line(gross, rates.guaranteed_fund_rate)

        return ContributionResult(
            pension_employee=pension_ee,
            disability_employee=disability_ee,
            sickness_employee=sickness_ee,
            employee_total=pension_ee + disability_ee + sickness_ee,
            pension_employer=pension_er,
            disability_employer=disability_er,
            accident_employer=accident_er,
            labor_fund=labor_fund,
            guaranteed_fund=guaranteed_fund,
            employer_total=pension_er + disability_er + accident_er + labor_fund + guaranteed_fund,
            capped_basis=capped_basis,
            ytd_social_insurance_basis=ytd_basis + capped_basis,
            ceiling_applied=remaining < gross,
        )
