"""SQLAlchemy-backed rate provider and payroll store.

Every operation opens its own session, so concurrent batch units never share
an AsyncSession. Records are written with INSERT ... ON CONFLICT DO UPDATE on
the (period_id, employee_id) key, which makes a recalculation an overwrite.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pl_payroll.calculators.rate_provider import RateProvider, check_no_overlap, target_date
from pl_payroll.calculators.types import PayrollPeriod, PayrollRecord, RateTable
from pl_payroll.errors import RatesNotConfiguredError
from pl_payroll.models import PayrollPeriodRow, PayrollRecordRow, RateTableRow
from pl_payroll.services.store import PayrollStore

logger = logging.getLogger(__name__)


def _dialect_insert(engine: AsyncEngine):
    """INSERT construct supporting on_conflict_do_update for the engine's dialect."""
    name = engine.dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise ValueError(f"Upserts are not supported for dialect '{name}'")


def _session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


class SqlRateProvider(RateProvider):
    """Rate provider reading the rate_table catalogue.

    Resolved tables are cached per (year, month); tables are immutable once in
    force.
    """

    def __init__(self, engine: AsyncEngine):
        self.session_factory = _session_factory(engine)
        self._cache: dict[tuple[int, int], RateTable] = {}

    async def resolve(self, year: int, month: int) -> RateTable:
        key = (year, month)
        if key in self._cache:
            return self._cache[key]

        day = target_date(year, month)
        async with self.session_factory() as session:
            result = await session.execute(
                select(RateTableRow)
                .where(
                    RateTableRow.effective_from <= day,
                    (RateTableRow.effective_to.is_(None) | (RateTableRow.effective_to >= day)),
                )
                .order_by(RateTableRow.effective_from.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()

        if row is None:
            logger.error("No rate table configured for %s-%02d", year, month)
            raise RatesNotConfiguredError(year, month)

        table = row.to_rate_table()
        self._cache[key] = table
        return table

    async def list_tables(self) -> list[RateTable]:
        """All tables in the catalogue, oldest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(RateTableRow).order_by(RateTableRow.effective_from)
            )
            return [row.to_rate_table() for row in result.scalars().all()]

    async def seed(self, tables: Iterable[RateTable], legal_basis: str | None = None) -> int:
        """Insert tables whose effective_from is not in the catalogue yet.

        Returns:
            Number of tables inserted

        Raises:
            ValueError: If a new table would be in force on the same day as
                another table; nothing is inserted
        """
        async with self.session_factory() as session, session.begin():
            result = await session.execute(select(RateTableRow))
            existing = {row.effective_from: row.to_rate_table() for row in result.scalars().all()}

            new_tables: dict[date, RateTable] = {}
            for table in tables:
                if table.effective_from not in existing:
                    new_tables.setdefault(table.effective_from, table)
            check_no_overlap([*existing.values(), *new_tables.values()])

            for table in new_tables.values():
                session.add(RateTableRow.from_rate_table(table, legal_basis))
            inserted = len(new_tables)
        self._cache.clear()
        logger.info("Seeded %d rate table(s)", inserted)
        return inserted


class SqlPayrollStore(PayrollStore):
    """Payroll store on the payroll_period and payroll_record tables."""

    def __init__(self, engine: AsyncEngine):
        super().__init__()
        self.engine = engine
        self.session_factory = _session_factory(engine)
        self._insert = _dialect_insert(engine)

    async def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        async with self.session_factory() as session:
            row = await session.get(PayrollPeriodRow, period_id)
            return row.to_period() if row is not None else None

    async def list_periods(self, tenant_id: UUID, year: int) -> list[PayrollPeriod]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PayrollPeriodRow)
                .where(PayrollPeriodRow.tenant_id == tenant_id, PayrollPeriodRow.year == year)
                .order_by(PayrollPeriodRow.month)
            )
            return [row.to_period() for row in result.scalars().all()]

    async def save_period(self, period: PayrollPeriod) -> None:
        values = PayrollPeriodRow.values_from(period)
        await self._upsert(PayrollPeriodRow, values, ["period_id"])

    async def get_record(self, period_id: UUID, employee_id: UUID) -> PayrollRecord | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PayrollRecordRow).where(
                    PayrollRecordRow.period_id == period_id,
                    PayrollRecordRow.employee_id == employee_id,
                )
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row is not None else None

    async def list_records(self, period_id: UUID) -> list[PayrollRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PayrollRecordRow).where(PayrollRecordRow.period_id == period_id)
            )
            return [row.to_record() for row in result.scalars().all()]

    async def list_employee_records(
        self, tenant_id: UUID, employee_id: UUID, year: int
    ) -> list[PayrollRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PayrollRecordRow)
                .where(
                    PayrollRecordRow.tenant_id == tenant_id,
                    PayrollRecordRow.employee_id == employee_id,
                    PayrollRecordRow.year == year,
                )
                .order_by(PayrollRecordRow.month)
            )
            return [row.to_record() for row in result.scalars().all()]

    async def upsert_record(self, record: PayrollRecord) -> None:
        values = PayrollRecordRow.values_from(record)
        await self._upsert(PayrollRecordRow, values, ["period_id", "employee_id"])

    async def _upsert(self, model: Any, values: dict[str, Any], keys: list[str]) -> None:
        """INSERT ... ON CONFLICT (keys) DO UPDATE in its own transaction."""
        stmt = self._insert(model).values(**values)
        updates = {name: value for name, value in values.items() if name not in keys}
        updates["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(index_elements=keys, set_=updates)
        async with self.session_factory() as session, session.begin():
            await session.execute(stmt)
