"""SQLAlchemy ORM models."""

from pl_payroll.models.base import Base, JsonType, TimestampMixin
from pl_payroll.models.payroll import PayrollPeriodRow, PayrollRecordRow
from pl_payroll.models.rates import RateTableRow

__all__ = [
    "Base",
    "JsonType",
    "PayrollPeriodRow",
    "PayrollRecordRow",
    "RateTableRow",
    "TimestampMixin",
]
