"""Seed script for the ZUS/PIT rate catalogue.

Run with:
    python scripts/seed_rate_tables.py

Creates the payroll tables if needed and inserts the built-in 2024 and 2025
rate tables. Tables already present (same effective_from) are left untouched.
"""

from __future__ import annotations

import asyncio

from pl_payroll.calculators.default_rates import DEFAULT_RATE_TABLES
from pl_payroll.database import create_schema, get_engine
from pl_payroll.services.sql_store import SqlRateProvider

LEGAL_BASIS = "Ustawa o systemie ubezpieczen spolecznych; ustawa o PIT (skala 12%/32%)"


async def main():
    """Run seed script."""
    print("Seeding rate tables...")

    engine = get_engine()
    try:
        await create_schema(engine)
        provider = SqlRateProvider(engine)
        inserted = await provider.seed(DEFAULT_RATE_TABLES, legal_basis=LEGAL_BASIS)
        for table in await provider.list_tables():
            end = table.effective_to.isoformat() if table.effective_to else "open"
            print(f"  {table.effective_from.isoformat()} .. {end}: ceiling {table.annual_ceiling}")
    finally:
        await engine.dispose()

    print(f"\nDone! {inserted} rate table(s) inserted.")


if __name__ == "__main__":
    asyncio.run(main())
