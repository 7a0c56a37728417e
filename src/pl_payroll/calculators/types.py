"""Type definitions for the calculation pipeline."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pl_payroll.calculators.rounding import ZERO


class ContractType(str, Enum):
    """Contract types known to the engine."""

    EMPLOYMENT = "EMPLOYMENT"  # umowa o prace
    MANDATE = "MANDATE"  # umowa zlecenie
    SPECIFIC_WORK = "SPECIFIC_WORK"  # umowa o dzielo


class CostElection(str, Enum):
    """Cost-of-revenue election (koszty uzyskania przychodu)."""

    STANDARD = "STANDARD"
    ELEVATED = "ELEVATED"  # commuting from another town
    RIGHTS_BASED = "RIGHTS_BASED"  # 50% author's rights costs


class ReliefElection(str, Enum):
    """Monthly tax relief election (kwota zmniejszajaca podatek)."""

    FULL = "FULL"
    HALF = "HALF"
    NONE = "NONE"


class RecordStatus(str, Enum):
    """Payroll record status."""

    CALCULATED = "CALCULATED"
    ERROR = "ERROR"


class PeriodStatus(str, Enum):
    """Payroll period status values."""

    OPEN = "OPEN"
    CALCULATING = "CALCULATING"
    CALCULATED = "CALCULATED"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class RateTable:
    """ZUS and PIT parameters effective for a date range.

    All rates are fractions (0.0976 for 9.76%), all amounts in PLN.
    """

    effective_from: date
    effective_to: date | None

    # Social insurance - employee side
    pension_employee_rate: Decimal
    disability_employee_rate: Decimal
    sickness_employee_rate: Decimal

    # Social insurance - employer side
    pension_employer_rate: Decimal
    disability_employer_rate: Decimal
    accident_employer_rate: Decimal
    labor_fund_rate: Decimal
    guaranteed_fund_rate: Decimal

    # Health insurance
    health_rate: Decimal
    health_deductible_rate: Decimal

    # Annual cap on the pension/disability basis
    annual_ceiling: Decimal

    # Progressive tax scale
    tax_rate_1: Decimal
    tax_threshold: Decimal
    tax_rate_2: Decimal
    monthly_relief: Decimal
    standard_cost: Decimal
    elevated_cost: Decimal
    rights_cost_rate: Decimal = Decimal("0.50")
    rights_cost_annual_cap: Decimal = Decimal("120000")

    def covers(self, day: date) -> bool:
        """Check if this table is in force on a given day."""
        if self.effective_from > day:
            return False
        return self.effective_to is None or self.effective_to >= day

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> RateTable:
        """Build a table from a plain mapping (JSON payload, seed data)."""
        values: dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            if name not in data:
                continue
            raw = data[name]
            if name in ("effective_from", "effective_to"):
                values[name] = date.fromisoformat(raw) if isinstance(raw, str) else raw
            else:
                values[name] = Decimal(str(raw))
        return cls(**values)

    def to_mapping(self) -> dict[str, Any]:
        """Return a JSON-safe mapping (inverse of from_mapping)."""
        data: dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, date):
                data[name] = value.isoformat()
            elif value is None:
                data[name] = None
            else:
                data[name] = str(value)
        return data


@dataclass(frozen=True)
class EmployeeContext:
    """Employee and contract data needed by the engine (read-only)."""

    employee_id: UUID
    tenant_id: UUID
    gross_base_salary: Decimal
    contract_start: date | None
    contract_end: date | None = None
    contract_type: ContractType = ContractType.EMPLOYMENT
    working_hours_fraction: Decimal = Decimal("1")
    cost_election: CostElection = CostElection.STANDARD
    relief_election: ReliefElection = ReliefElection.FULL

    def has_contract_in(self, period_start: date, period_end: date) -> bool:
        """Check if the contract overlaps the given date range."""
        if self.contract_start is None or self.contract_start > period_end:
            return False
        return self.contract_end is None or self.contract_end >= period_start


@dataclass(frozen=True)
class ManualComponent:
    """Operator-entered gross component (bonus, allowance, ...)."""

    code: str
    label: str
    amount: Decimal
    taxable: bool = True
    social_insurance: bool = True


@dataclass(frozen=True)
class PayrollInputs:
    """Per-period calculation inputs for one employee."""

    working_days: int
    worked_days: int | None = None  # None = full attendance
    overtime_hours: Decimal = ZERO
    overtime_multiplier: Decimal = Decimal("1.5")
    sick_days: int = 0
    manual_components: tuple[ManualComponent, ...] = ()

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "working_days": self.working_days,
            "worked_days": self.worked_days,
            "overtime_hours": str(self.overtime_hours),
            "overtime_multiplier": str(self.overtime_multiplier),
            "sick_days": self.sick_days,
            "manual_components": [
                {
                    "code": c.code,
                    "label": c.label,
                    "amount": str(c.amount),
                    "taxable": c.taxable,
                    "social_insurance": c.social_insurance,
                }
                for c in self.manual_components
            ],
        }


@dataclass(frozen=True)
class PayComponent:
    """One line of the gross breakdown."""

    code: str
    label: str
    amount: Decimal
    taxable: bool = True
    social_insurance: bool = True

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "label": self.label,
            "amount": str(self.amount),
            "taxable": self.taxable,
            "social_insurance": self.social_insurance,
        }


@dataclass(frozen=True)
class ComponentResult:
    """Gross components for a period and their sums."""

    components: tuple[PayComponent, ...]
    gross_total: Decimal
    social_insurance_gross: Decimal
    taxable_gross: Decimal


@dataclass(frozen=True)
class YTDSnapshot:
    """Year-to-date figures from finalized periods before the current one."""

    gross: Decimal = ZERO
    social_insurance_basis: Decimal = ZERO
    tax_basis: Decimal = ZERO
    cost_of_revenue: Decimal = ZERO


@dataclass(frozen=True)
class ContributionResult:
    """Social insurance (ZUS) contributions for a period."""

    pension_employee: Decimal
    disability_employee: Decimal
    sickness_employee: Decimal
    employee_total: Decimal

    pension_employer: Decimal
    disability_employer: Decimal
    accident_employer: Decimal
    labor_fund: Decimal
    guaranteed_fund: Decimal
    employer_total: Decimal

    capped_basis: Decimal
    ytd_social_insurance_basis: Decimal
    ceiling_applied: bool


@dataclass(frozen=True)
class TaxResult:
    """Health insurance and income-tax advance for a period."""

    health_base: Decimal
    health_contribution: Decimal
    health_deductible: Decimal
    cost_of_revenue: Decimal
    tax_basis: Decimal
    tax_before_relief: Decimal
    relief: Decimal
    tax_advance: Decimal
    ytd_tax_basis: Decimal


@dataclass
class PayrollPeriod:
    """One calendar month of payroll for a tenant."""

    period_id: UUID
    tenant_id: UUID
    year: int
    month: int
    status: PeriodStatus = PeriodStatus.OPEN

    # Aggregates, recomputed after each batch
    total_gross: Decimal = ZERO
    total_net: Decimal = ZERO
    total_employer_cost: Decimal = ZERO
    employee_count: int = 0

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])


@dataclass(frozen=True)
class PayrollRecord:
    """Result of calculating one employee for one period.

    Keyed by (period_id, employee_id). Carries no timestamps so that a
    recalculation from identical inputs compares equal.
    """

    period_id: UUID
    employee_id: UUID
    tenant_id: UUID
    year: int
    month: int
    status: RecordStatus
    calculation_id: UUID

    gross_salary: Decimal = ZERO
    components: tuple[PayComponent, ...] = ()

    # Employee social insurance
    pension_employee: Decimal = ZERO
    disability_employee: Decimal = ZERO
    sickness_employee: Decimal = ZERO
    social_insurance_employee_total: Decimal = ZERO

    # Employer social insurance
    pension_employer: Decimal = ZERO
    disability_employer: Decimal = ZERO
    accident_employer: Decimal = ZERO
    labor_fund: Decimal = ZERO
    guaranteed_fund: Decimal = ZERO
    social_insurance_employer_total: Decimal = ZERO

    social_insurance_basis: Decimal = ZERO
    ceiling_applied: bool = False

    # Health insurance
    health_base: Decimal = ZERO
    health_contribution: Decimal = ZERO
    health_deductible: Decimal = ZERO

    # Income tax
    cost_of_revenue: Decimal = ZERO
    tax_basis: Decimal = ZERO
    relief: Decimal = ZERO
    tax_before_relief: Decimal = ZERO
    tax_advance: Decimal = ZERO

    net_salary: Decimal = ZERO
    employer_total_cost: Decimal = ZERO

    # Year-to-date as of and including this period
    ytd_gross: Decimal = ZERO
    ytd_social_insurance_basis: Decimal = ZERO
    ytd_tax_basis: Decimal = ZERO
    ytd_cost_of_revenue: Decimal = ZERO

    error_message: str | None = None

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.period_id, self.employee_id)

    @property
    def is_error(self) -> bool:
        return self.status == RecordStatus.ERROR


@dataclass(frozen=True)
class BatchError:
    """A per-employee failure captured by a batch."""

    employee_id: UUID
    error: str
    error_type: str


@dataclass
class BatchResult:
    """Summary of a batch run over a period."""

    period_id: UUID
    processed_count: int = 0
    skipped_count: int = 0
    errors: list[BatchError] = field(default_factory=list)
    cancelled: bool = False

    total_gross: Decimal = ZERO
    total_net: Decimal = ZERO
    total_employer_cost: Decimal = ZERO
    employee_count: int = 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def success(self) -> bool:
        return not self.errors and not self.cancelled
