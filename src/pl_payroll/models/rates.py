"""Effective-dated rate table model."""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pl_payroll.calculators.types import RateTable
from pl_payroll.models.base import Base, JsonType, TimestampMixin


class RateTableRow(Base, TimestampMixin):
    """ZUS/PIT parameters effective from a date.

    Rates and amounts are kept in payload_json as decimal strings so that no
    precision is lost between seeding and calculation.
    """

    __tablename__ = "rate_table"

    rate_table_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    legal_basis: Mapped[str | None] = mapped_column(String, nullable=True)
    payload_json: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False)

    __table_args__ = (
        UniqueConstraint("effective_from", name="rate_table_effective_from_unique"),
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="rate_table_dates_check",
        ),
    )

    def to_rate_table(self) -> RateTable:
        """Build the calculator's rate table from this row."""
        data = dict(self.payload_json)
        data["effective_from"] = self.effective_from
        data["effective_to"] = self.effective_to
        return RateTable.from_mapping(data)

    @classmethod
    def from_rate_table(cls, table: RateTable, legal_basis: str | None = None) -> RateTableRow:
        payload = table.to_mapping()
        payload.pop("effective_from")
        payload.pop("effective_to")
        return cls(
            effective_from=table.effective_from,
            effective_to=table.effective_to,
            legal_basis=legal_basis,
            payload_json=payload,
        )
