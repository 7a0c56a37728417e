"""Pydantic schemas for payroll inputs and exported results."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pl_payroll.calculators.types import (
    ContractType,
    CostElection,
    EmployeeContext,
    ManualComponent,
    PayrollInputs,
    RecordStatus,
    ReliefElection,
)


# ============================================================================
# Input schemas
# ============================================================================


class ManualComponentSchema(BaseModel):
    """Operator-entered gross component."""

    code: str
    label: str
    amount: Decimal = Field(decimal_places=2)
    taxable: bool = True
    social_insurance: bool = True


class PayrollInputsSchema(BaseModel):
    """Period inputs for one employee."""

    working_days: int = Field(gt=0)
    worked_days: int | None = Field(default=None, ge=0)
    overtime_hours: Decimal = Field(default=Decimal("0"), ge=0)
    overtime_multiplier: Decimal = Field(default=Decimal("1.5"), gt=0)
    sick_days: int = Field(default=0, ge=0)
    manual_components: list[ManualComponentSchema] = Field(default_factory=list)

    def to_inputs(self) -> PayrollInputs:
        return PayrollInputs(
            working_days=self.working_days,
            worked_days=self.worked_days,
            overtime_hours=self.overtime_hours,
            overtime_multiplier=self.overtime_multiplier,
            sick_days=self.sick_days,
            manual_components=tuple(
                ManualComponent(**c.model_dump()) for c in self.manual_components
            ),
        )


class EmployeeSchema(BaseModel):
    """Employee and contract data as supplied by employee management."""

    employee_id: UUID
    tenant_id: UUID
    gross_base_salary: Decimal = Field(ge=0)
    contract_start: date | None = None
    contract_end: date | None = None
    contract_type: ContractType = ContractType.EMPLOYMENT
    working_hours_fraction: Decimal = Field(default=Decimal("1"), gt=0, le=1)
    cost_election: CostElection = CostElection.STANDARD
    relief_election: ReliefElection = ReliefElection.FULL
    inputs: PayrollInputsSchema | None = None

    def to_context(self) -> EmployeeContext:
        return EmployeeContext(
            employee_id=self.employee_id,
            tenant_id=self.tenant_id,
            gross_base_salary=self.gross_base_salary,
            contract_start=self.contract_start,
            contract_end=self.contract_end,
            contract_type=self.contract_type,
            working_hours_fraction=self.working_hours_fraction,
            cost_election=self.cost_election,
            relief_election=self.relief_election,
        )


# ============================================================================
# Export schemas
# ============================================================================


class PayComponentSchema(BaseModel):
    """One line of the gross breakdown."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    label: str
    amount: Decimal = Field(decimal_places=2)
    taxable: bool
    social_insurance: bool


class PayrollRecordSchema(BaseModel):
    """Payroll record as consumed by payslips, declarations and accounting."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    employee_id: UUID
    tenant_id: UUID
    year: int
    month: int
    status: RecordStatus
    calculation_id: UUID

    gross_salary: Decimal
    components: list[PayComponentSchema]

    pension_employee: Decimal
    disability_employee: Decimal
    sickness_employee: Decimal
    social_insurance_employee_total: Decimal

    pension_employer: Decimal
    disability_employer: Decimal
    accident_employer: Decimal
    labor_fund: Decimal
    guaranteed_fund: Decimal
    social_insurance_employer_total: Decimal

    social_insurance_basis: Decimal
    ceiling_applied: bool

    health_base: Decimal
    health_contribution: Decimal
    health_deductible: Decimal

    cost_of_revenue: Decimal
    tax_basis: Decimal
    relief: Decimal
    tax_before_relief: Decimal
    tax_advance: Decimal

    net_salary: Decimal
    employer_total_cost: Decimal

    ytd_gross: Decimal
    ytd_social_insurance_basis: Decimal
    ytd_tax_basis: Decimal
    ytd_cost_of_revenue: Decimal

    error_message: str | None = None


class BatchErrorSchema(BaseModel):
    """Per-employee failure in a batch."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    error: str
    error_type: str


class BatchResultSchema(BaseModel):
    """Batch summary for operator reporting."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    processed_count: int
    skipped_count: int
    error_count: int
    cancelled: bool
    errors: list[BatchErrorSchema]
    total_gross: Decimal
    total_net: Decimal
    total_employer_cost: Decimal
    employee_count: int
