"""Payroll calculation components.

PayrollEngine lives in pl_payroll.calculators.engine and is imported from
there; it depends on the services layer, which in turn depends on these types.
"""

from pl_payroll.calculators.component_builder import ComponentBuilder
from pl_payroll.calculators.contribution_calculator import ContributionCalculator
from pl_payroll.calculators.default_rates import DEFAULT_RATE_TABLES
from pl_payroll.calculators.rate_provider import InMemoryRateProvider, RateProvider
from pl_payroll.calculators.tax_calculator import TaxCalculator
from pl_payroll.calculators.types import (
    BatchError,
    BatchResult,
    ContractType,
    CostElection,
    EmployeeContext,
    ManualComponent,
    PayComponent,
    PayrollInputs,
    PayrollPeriod,
    PayrollRecord,
    PeriodStatus,
    RateTable,
    RecordStatus,
    ReliefElection,
    YTDSnapshot,
)
from pl_payroll.calculators.work_calendar import working_days_in_month

__all__ = [
    "BatchError",
    "BatchResult",
    "ComponentBuilder",
    "ContractType",
    "ContributionCalculator",
    "CostElection",
    "DEFAULT_RATE_TABLES",
    "EmployeeContext",
    "InMemoryRateProvider",
    "ManualComponent",
    "PayComponent",
    "PayrollInputs",
    "PayrollPeriod",
    "PayrollRecord",
    "PeriodStatus",
    "RateProvider",
    "RateTable",
    "RecordStatus",
    "ReliefElection",
    "TaxCalculator",
    "YTDSnapshot",
    "working_days_in_month",
]
