"""Pytest fixtures for payroll engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pl_payroll.calculators.default_rates import RATES_2024, RATES_2025
from pl_payroll.calculators.engine import PayrollEngine
from pl_payroll.calculators.rate_provider import InMemoryRateProvider
from pl_payroll.calculators.types import (
    EmployeeContext,
    PayrollInputs,
    PayrollPeriod,
    PeriodStatus,
    RateTable,
)
from pl_payroll.config import Settings
from pl_payroll.models import Base
from pl_payroll.services.store import InMemoryPayrollStore


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        engine_version="test",
        batch_concurrency=4,
        log_level="DEBUG",
    )


@pytest.fixture
def rates_2024() -> RateTable:
    return RATES_2024


@pytest.fixture
def rates_2025() -> RateTable:
    return RATES_2025


@pytest.fixture
def rate_provider() -> InMemoryRateProvider:
    return InMemoryRateProvider([RATES_2024, RATES_2025])


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_employee(tenant_id: UUID):
    """Factory for employees of the test tenant."""

    def _make(salary: str = "15000", **overrides) -> EmployeeContext:
        data = {
            "employee_id": uuid4(),
            "tenant_id": tenant_id,
            "gross_base_salary": Decimal(salary),
            "contract_start": date(2020, 1, 1),
        }
        data.update(overrides)
        return EmployeeContext(**data)

    return _make


@pytest.fixture
def employee(make_employee) -> EmployeeContext:
    """Full-time employee earning 15 000 PLN gross."""
    return make_employee()


@pytest.fixture
def make_period(tenant_id: UUID):
    """Factory for periods of the test tenant."""

    def _make(year: int = 2024, month: int = 1, status: PeriodStatus = PeriodStatus.OPEN):
        return PayrollPeriod(
            period_id=uuid4(),
            tenant_id=tenant_id,
            year=year,
            month=month,
            status=status,
        )

    return _make


@pytest.fixture
def full_month() -> PayrollInputs:
    """Full attendance, no overtime or absence."""
    return PayrollInputs(working_days=21)


@pytest.fixture
def store() -> InMemoryPayrollStore:
    return InMemoryPayrollStore()


@pytest.fixture
def engine(rate_provider: InMemoryRateProvider, store: InMemoryPayrollStore, settings: Settings):
    return PayrollEngine(rate_provider, store, settings)


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite database with the payroll schema.

    A file (not :memory:) so that every session gets its own connection to
    the same database.
    """
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}", echo=False)

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db_engine

    await db_engine.dispose()
