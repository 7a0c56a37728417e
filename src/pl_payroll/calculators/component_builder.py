"""Gross pay component assembly."""

from __future__ import annotations

from decimal import Decimal

from pl_payroll.calculators.rounding import ZERO, round2
from pl_payroll.calculators.types import (
    ComponentResult,
    EmployeeContext,
    PayComponent,
    PayrollInputs,
)
from pl_payroll.errors import ValidationError


class ComponentBuilder:
    """Builds the gross components of one employee's month.

    Component order (stable, part of the record):
    1) BASE - base salary, pro-rated by worked/working days
    2) OVERTIME - hours x hourly rate x multiplier
    3) SICK_PAY - employer-paid sick pay at 80%
    4) manual components, verbatim

    Hourly rate is base / (working days x 8) and is kept unrounded; each
    component amount is rounded to grosze. Sick pay is taxable but outside
    the social insurance basis. The 182-day sick pay limit is enforced by
    leave management, not here.
    """

    HOURS_PER_DAY = Decimal("8")
    SICK_PAY_RATE = Decimal("0.80")

    BASE = "BASE"
    OVERTIME = "OVERTIME"
    SICK_PAY = "SICK_PAY"

    @staticmethod
    def validate(employee: EmployeeContext, inputs: PayrollInputs) -> int:
        """Validate inputs, returning the effective worked days."""
        if inputs.working_days <= 0:
            raise ValidationError(
                f"Working days must be positive, got {inputs.working_days}",
                field="working_days",
            )
        worked = inputs.working_days if inputs.worked_days is None else inputs.worked_days
        if worked < 0:
            raise ValidationError(
                f"Worked days cannot be negative, got {worked}", field="worked_days"
            )
        if worked > inputs.working_days:
            raise ValidationError(
                f"Worked days ({worked}) exceed working days ({inputs.working_days})",
                field="worked_days",
            )
        if inputs.overtime_hours < 0:
            raise ValidationError("Overtime hours cannot be negative", field="overtime_hours")
        if inputs.overtime_multiplier <= 0:
            raise ValidationError(
                "Overtime multiplier must be positive", field="overtime_multiplier"
            )
        if inputs.sick_days < 0:
            raise ValidationError("Sick days cannot be negative", field="sick_days")
        if employee.gross_base_salary < 0:
            raise ValidationError("Base salary cannot be negative", field="gross_base_salary")
        if not ZERO < employee.working_hours_fraction <= 1:
            raise ValidationError(
                f"Working hours fraction must be in (0, 1], got {employee.working_hours_fraction}",
                field="working_hours_fraction",
            )
        for manual in inputs.manual_components:
            if manual.amount != round2(manual.amount):
                raise ValidationError(
                    f"Manual component {manual.code} amount {manual.amount} "
                    "has more than 2 decimal places",
                    field="manual_components",
                )
        return worked

    @staticmethod
    def monthly_base(employee: EmployeeContext) -> Decimal:
        """Contractual monthly base adjusted to the working-hours fraction."""
        return round2(employee.gross_base_salary * employee.working_hours_fraction)

    @classmethod
    def hourly_rate(cls, monthly_base: Decimal, working_days: int) -> Decimal:
        return monthly_base / (Decimal(working_days) * cls.HOURS_PER_DAY)

    @classmethod
    def build(cls, employee: EmployeeContext, inputs: PayrollInputs) -> ComponentResult:
        """Build the ordered component list and its sums.

        Raises:
            ValidationError: If working days are zero or worked days exceed them
        """
        worked = cls.validate(employee, inputs)
        base = cls.monthly_base(employee)
        components: list[PayComponent] = []

        if worked != inputs.working_days:
            base_amount = round2(base * Decimal(worked) / Decimal(inputs.working_days))
            base_label = f"Wynagrodzenie zasadnicze ({worked}/{inputs.working_days} dni)"
        else:
            base_amount = base
            base_label = "Wynagrodzenie zasadnicze"
        components.append(PayComponent(code=cls.BASE, label=base_label, amount=base_amount))

        hourly = cls.hourly_rate(base, inputs.working_days)

        if inputs.overtime_hours > 0:
            components.append(
                PayComponent(
                    code=cls.OVERTIME,
                    label=f"Nadgodziny: {inputs.overtime_hours} h x {inputs.overtime_multiplier}",
                    amount=round2(inputs.overtime_hours * hourly * inputs.overtime_multiplier),
                )
            )

        if inputs.sick_days > 0:
            components.append(
                PayComponent(
                    code=cls.SICK_PAY,
                    label=f"Wynagrodzenie chorobowe: {inputs.sick_days} dni",
                    amount=round2(
                        Decimal(inputs.sick_days) * hourly * cls.HOURS_PER_DAY * cls.SICK_PAY_RATE
                    ),
                    social_insurance=False,
                )
            )

        for manual in inputs.manual_components:
            components.append(
                PayComponent(
                    code=manual.code,
                    label=manual.label,
                    amount=manual.amount,
                    taxable=manual.taxable,
                    social_insurance=manual.social_insurance,
                )
            )

        return ComponentResult(
            components=tuple(components),
            gross_total=sum((c.amount for c in components), ZERO),
            social_insurance_gross=sum(
                (c.amount for c in components if c.social_insurance), ZERO
            ),
            taxable_gross=sum((c.amount for c in components if c.taxable), ZERO),
        )
