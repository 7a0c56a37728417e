"""Built-in ZUS/PIT rate catalogue.

Rates follow the statutory values in force since the 2022 tax scale reform
(12%/32%, 120 000 PLN threshold, 300 PLN monthly relief). The annual
pension/disability ceiling changes every year.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pl_payroll.calculators.types import RateTable

_COMMON = {
    "pension_employee_rate": Decimal("0.0976"),
    "disability_employee_rate": Decimal("0.0150"),
    "sickness_employee_rate": Decimal("0.0245"),
    "pension_employer_rate": Decimal("0.0976"),
    "disability_employer_rate": Decimal("0.0650"),
    "accident_employer_rate": Decimal("0.0167"),
    "labor_fund_rate": Decimal("0.0245"),
    "guaranteed_fund_rate": Decimal("0.0010"),
    "health_rate": Decimal("0.09"),
    "health_deductible_rate": Decimal("0.0775"),
    "tax_rate_1": Decimal("0.12"),
    "tax_threshold": Decimal("120000"),
    "tax_rate_2": Decimal("0.32"),
    "monthly_relief": Decimal("300"),
    "standard_cost": Decimal("250"),
    "elevated_cost": Decimal("300"),
}

RATES_2024 = RateTable(
    effective_from=date(2024, 1, 1),
    effective_to=date(2024, 12, 31),
    annual_ceiling=Decimal("234720"),
    **_COMMON,
)

RATES_2025 = RateTable(
    effective_from=date(2025, 1, 1),
    effective_to=None,
    annual_ceiling=Decimal("257520"),
    **_COMMON,
)

DEFAULT_RATE_TABLES: tuple[RateTable, ...] = (RATES_2024, RATES_2025)
