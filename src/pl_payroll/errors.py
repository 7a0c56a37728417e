"""Exception taxonomy for payroll calculation.

Two families matter to callers:

- FatalPayrollError: affects every employee of a period equally (missing rate
  table, closed period). A batch aborts before touching any employee.
- EmployeeCalculationError: specific to one employee (bad inputs, no
  contract). A batch records it and carries on with the others.
"""

from __future__ import annotations

from uuid import UUID


class PayrollError(Exception):
    """Base class for payroll engine errors."""


class FatalPayrollError(PayrollError):
    """Error that aborts a whole batch."""


class EmployeeCalculationError(PayrollError):
    """Error isolated to a single employee's calculation."""


class RatesNotConfiguredError(FatalPayrollError):
    """Raised when no rate table is effective for a period."""

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"No rate table effective for {year}-{month:02d}")


class PeriodNotFoundError(FatalPayrollError):
    """Raised when a payroll period does not exist."""

    def __init__(self, period_id: UUID):
        self.period_id = period_id
        super().__init__(f"Payroll period {period_id} not found")


class PeriodStateError(FatalPayrollError):
    """Raised when the period status does not allow calculation."""

    def __init__(self, period_id: UUID, status: str, reason: str | None = None):
        self.period_id = period_id
        self.status = status
        msg = f"Payroll period {period_id} cannot be calculated in status '{status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PeriodClosedError(PeriodStateError):
    """Raised when calculating in a CLOSED period."""


class PeriodLockedError(PeriodStateError):
    """Raised when calculating in an APPROVED or PAID period."""


class PriorPeriodNotFinalizedError(FatalPayrollError):
    """Raised when an earlier period of the tax year is still open."""

    def __init__(self, year: int, month: int, prior_months: list[int]):
        self.year = year
        self.month = month
        self.prior_months = prior_months
        months = ", ".join(f"{year}-{m:02d}" for m in prior_months)
        super().__init__(
            f"Cannot calculate {year}-{month:02d}: earlier periods not finalized ({months})"
        )


class ValidationError(EmployeeCalculationError):
    """Raised when calculation inputs are invalid."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NoActiveContractError(EmployeeCalculationError):
    """Raised when the employee has no contract covering the period."""

    def __init__(self, employee_id: UUID, year: int, month: int):
        self.employee_id = employee_id
        self.year = year
        self.month = month
        super().__init__(
            f"No active contract for employee {employee_id} in {year}-{month:02d}"
        )
