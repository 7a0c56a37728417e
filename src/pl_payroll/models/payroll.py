"""Payroll period and record models."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from pl_payroll.calculators.types import (
    PayComponent,
    PayrollPeriod,
    PayrollRecord,
    PeriodStatus,
    RecordStatus,
)
from pl_payroll.models.base import Base, JsonType, TimestampMixin

Money = Numeric(14, 2)
YtdMoney = Numeric(16, 2)


class PayrollPeriodRow(Base, TimestampMixin):
    """One calendar month of payroll for a tenant."""

    __tablename__ = "payroll_period"

    period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=PeriodStatus.OPEN.value)

    total_gross: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    total_employer_cost: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("tenant_id", "year", "month", name="payroll_period_month_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_period_month_check"),
        CheckConstraint(
            "status IN ('OPEN', 'CALCULATING', 'CALCULATED', 'APPROVED', 'PAID', 'CLOSED')",
            name="payroll_period_status_check",
        ),
    )

    def to_period(self) -> PayrollPeriod:
        return PayrollPeriod(
            period_id=self.period_id,
            tenant_id=self.tenant_id,
            year=self.year,
            month=self.month,
            status=PeriodStatus(self.status),
            total_gross=self.total_gross,
            total_net=self.total_net,
            total_employer_cost=self.total_employer_cost,
            employee_count=self.employee_count,
        )

    @staticmethod
    def values_from(period: PayrollPeriod) -> dict[str, Any]:
        """Column values for inserting or updating a period."""
        return {
            "period_id": period.period_id,
            "tenant_id": period.tenant_id,
            "year": period.year,
            "month": period.month,
            "status": PeriodStatus(period.status).value,
            "total_gross": period.total_gross,
            "total_net": period.total_net,
            "total_employer_cost": period.total_employer_cost,
            "employee_count": period.employee_count,
        }


# Record columns copied one-to-one from PayrollRecord
_RECORD_AMOUNTS = (
    "gross_salary",
    "pension_employee",
    "disability_employee",
    "sickness_employee",
    "social_insurance_employee_total",
    "pension_employer",
    "disability_employer",
    "accident_employer",
    "labor_fund",
    "guaranteed_fund",
    "social_insurance_employer_total",
    "social_insurance_basis",
    "health_base",
    "health_contribution",
    "health_deductible",
    "cost_of_revenue",
    "tax_basis",
    "relief",
    "tax_before_relief",
    "tax_advance",
    "net_salary",
    "employer_total_cost",
    "ytd_gross",
    "ytd_social_insurance_basis",
    "ytd_tax_basis",
    "ytd_cost_of_revenue",
)


class PayrollRecordRow(Base, TimestampMixin):
    """Calculated payroll of one employee for one period."""

    __tablename__ = "payroll_record"

    payroll_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)

    gross_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    components_json: Mapped[list[dict[str, Any]]] = mapped_column(JsonType, nullable=False)

    # Social insurance - employee
    pension_employee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    disability_employee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    sickness_employee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    social_insurance_employee_total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # Social insurance - employer
    pension_employer: Mapped[Decimal] = mapped_column(Money, nullable=False)
    disability_employer: Mapped[Decimal] = mapped_column(Money, nullable=False)
    accident_employer: Mapped[Decimal] = mapped_column(Money, nullable=False)
    labor_fund: Mapped[Decimal] = mapped_column(Money, nullable=False)
    guaranteed_fund: Mapped[Decimal] = mapped_column(Money, nullable=False)
    social_insurance_employer_total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    social_insurance_basis: Mapped[Decimal] = mapped_column(Money, nullable=False)
    ceiling_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Health insurance
    health_base: Mapped[Decimal] = mapped_column(Money, nullable=False)
    health_contribution: Mapped[Decimal] = mapped_column(Money, nullable=False)
    health_deductible: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # Income tax
    cost_of_revenue: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_basis: Mapped[Decimal] = mapped_column(Money, nullable=False)
    relief: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_before_relief: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_advance: Mapped[Decimal] = mapped_column(Money, nullable=False)

    net_salary: Mapped[Decimal] = mapped_column(Money, nullable=False)
    employer_total_cost: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # Year-to-date including this period
    ytd_gross: Mapped[Decimal] = mapped_column(YtdMoney, nullable=False)
    ytd_social_insurance_basis: Mapped[Decimal] = mapped_column(YtdMoney, nullable=False)
    ytd_tax_basis: Mapped[Decimal] = mapped_column(YtdMoney, nullable=False)
    ytd_cost_of_revenue: Mapped[Decimal] = mapped_column(YtdMoney, nullable=False)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("period_id", "employee_id", name="payroll_record_period_employee_unique"),
        CheckConstraint(
            "status IN ('CALCULATED', 'ERROR')",
            name="payroll_record_status_check",
        ),
    )

    def to_record(self) -> PayrollRecord:
        amounts = {name: getattr(self, name) for name in _RECORD_AMOUNTS}
        return PayrollRecord(
            period_id=self.period_id,
            employee_id=self.employee_id,
            tenant_id=self.tenant_id,
            year=self.year,
            month=self.month,
            status=RecordStatus(self.status),
            calculation_id=self.calculation_id,
            components=tuple(
                PayComponent(
                    code=c["code"],
                    label=c["label"],
                    amount=Decimal(c["amount"]),
                    taxable=c["taxable"],
                    social_insurance=c["social_insurance"],
                )
                for c in self.components_json
            ),
            ceiling_applied=self.ceiling_applied,
            error_message=self.error_message,
            **amounts,
        )

    @staticmethod
    def values_from(record: PayrollRecord) -> dict[str, Any]:
        """Column values for upserting a record (primary key excluded)."""
        values: dict[str, Any] = {name: getattr(record, name) for name in _RECORD_AMOUNTS}
        values.update(
            period_id=record.period_id,
            employee_id=record.employee_id,
            tenant_id=record.tenant_id,
            year=record.year,
            month=record.month,
            status=RecordStatus(record.status).value,
            calculation_id=record.calculation_id,
            components_json=[c.to_canonical_dict() for c in record.components],
            ceiling_applied=record.ceiling_applied,
            error_message=record.error_message,
        )
        return values
