"""Persistence boundary for periods and payroll records.

The engine only needs per-key atomic upserts: the unit of atomicity is
always one (period, employee) record. Concurrent calculations for the same
employee are serialized by employee_lock; different employees never wait on
each other.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import AsyncIterator
from uuid import UUID

from pl_payroll.calculators.types import PayrollPeriod, PayrollRecord


class PayrollStore(ABC):
    """Storage interface used by the engine and batch processor."""

    def __init__(self) -> None:
        # Lock and number of holders or waiters per employee; an entry is
        # dropped as soon as nobody uses it.
        self._locks: dict[tuple[UUID, UUID], tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def employee_lock(self, tenant_id: UUID, employee_id: UUID) -> AsyncIterator[None]:
        """Critical section around one employee's YTD read and record write."""
        key = (tenant_id, employee_id)
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @abstractmethod
    async def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        ...

    @abstractmethod
    async def list_periods(self, tenant_id: UUID, year: int) -> list[PayrollPeriod]:
        """All periods of a tenant's tax year, ordered by month."""
        ...

    @abstractmethod
    async def save_period(self, period: PayrollPeriod) -> None:
        """Persist period status and aggregate totals."""
        ...

    @abstractmethod
    async def get_record(self, period_id: UUID, employee_id: UUID) -> PayrollRecord | None:
        ...

    @abstractmethod
    async def list_records(self, period_id: UUID) -> list[PayrollRecord]:
        ...

    @abstractmethod
    async def list_employee_records(
        self, tenant_id: UUID, employee_id: UUID, year: int
    ) -> list[PayrollRecord]:
        """All records of an employee in a tax year, ordered by month."""
        ...

    @abstractmethod
    async def upsert_record(self, record: PayrollRecord) -> None:
        """Insert or overwrite the record keyed by (period_id, employee_id)."""
        ...


class InMemoryPayrollStore(PayrollStore):
    """Dictionary-backed store for tests and embedded use."""

    def __init__(
        self,
        periods: list[PayrollPeriod] | None = None,
        records: list[PayrollRecord] | None = None,
    ) -> None:
        super().__init__()
        self._periods: dict[UUID, PayrollPeriod] = {}
        self._records: dict[tuple[UUID, UUID], PayrollRecord] = {}
        for period in periods or []:
            self._periods[period.period_id] = replace(period)
        for record in records or []:
            self._records[record.key] = record

    async def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        period = self._periods.get(period_id)
        return replace(period) if period is not None else None

    async def list_periods(self, tenant_id: UUID, year: int) -> list[PayrollPeriod]:
        periods = [
            replace(p)
            for p in self._periods.values()
            if p.tenant_id == tenant_id and p.year == year
        ]
        return sorted(periods, key=lambda p: p.month)

    async def save_period(self, period: PayrollPeriod) -> None:
        self._periods[period.period_id] = replace(period)

    async def get_record(self, period_id: UUID, employee_id: UUID) -> PayrollRecord | None:
        return self._records.get((period_id, employee_id))

    async def list_records(self, period_id: UUID) -> list[PayrollRecord]:
        return [r for r in self._records.values() if r.period_id == period_id]

    async def list_employee_records(
        self, tenant_id: UUID, employee_id: UUID, year: int
    ) -> list[PayrollRecord]:
        records = [
            r
            for r in self._records.values()
            if r.tenant_id == tenant_id and r.employee_id == employee_id and r.year == year
        ]
        return sorted(records, key=lambda r: r.month)

    async def upsert_record(self, record: PayrollRecord) -> None:
        self._records[record.key] = record
