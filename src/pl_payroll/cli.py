"""Payroll Command Line Interface.

Provides operational tools for:
- Batch calculation of a payroll month
- Seeding the ZUS/PIT rate catalogue
- Inspecting rate tables
- Working-day norms

Usage:
    python -m pl_payroll calculate --tenant-id X --year 2025 --month 3 --employees staff.json
    python -m pl_payroll seed-rates
    python -m pl_payroll rates --year 2025 --month 3
    python -m pl_payroll working-days --year 2025
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Callable
from uuid import UUID, uuid4

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from pl_payroll.calculators.default_rates import DEFAULT_RATE_TABLES
from pl_payroll.calculators.engine import PayrollEngine
from pl_payroll.calculators.types import (
    BatchResult,
    PayrollPeriod,
    PayrollRecord,
    PeriodStatus,
    RateTable,
)
from pl_payroll.calculators.work_calendar import working_days_in_month
from pl_payroll.config import get_settings
from pl_payroll.database import create_schema, get_engine
from pl_payroll.errors import FatalPayrollError
from pl_payroll.schemas import BatchResultSchema, EmployeeSchema, PayrollRecordSchema
from pl_payroll.services.batch_processor import BatchProcessor
from pl_payroll.services.sql_store import SqlPayrollStore, SqlRateProvider

logger = logging.getLogger(__name__)

_employees_adapter = TypeAdapter(list[EmployeeSchema])


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_month(s: str) -> int:
    """Parse a calendar month number."""
    month = int(s)
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError(f"month must be 1-12, got {month}")
    return month


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m pl_payroll",
            description="Polish payroll calculation tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # calculate command
        calculate = subparsers.add_parser(
            "calculate",
            help="Calculate a payroll month for a list of employees",
        )
        calculate.add_argument(
            "--tenant-id",
            type=parse_uuid,
            required=True,
            help="Tenant the period belongs to",
        )
        calculate.add_argument("--year", type=int, required=True, help="Tax year")
        calculate.add_argument("--month", type=parse_month, required=True, help="Month (1-12)")
        calculate.add_argument(
            "--employees",
            type=Path,
            required=True,
            help="JSON file with a list of employees and optional per-employee inputs",
        )
        calculate.add_argument(
            "--recalculate",
            action="store_true",
            help="Overwrite records that are already calculated",
        )
        calculate.add_argument(
            "--concurrency",
            type=int,
            help="Concurrent calculations (default: PAYROLL_BATCH_CONCURRENCY)",
        )
        calculate.add_argument(
            "--output",
            type=Path,
            help="Write the period's records to this JSON file",
        )

        # seed-rates command
        subparsers.add_parser(
            "seed-rates",
            help="Create tables and seed the built-in rate catalogue",
        )

        # rates command
        rates = subparsers.add_parser(
            "rates",
            help="Show rate tables",
        )
        rates.add_argument("--year", type=int, help="Resolve the table for this year")
        rates.add_argument("--month", type=parse_month, help="Resolve the table for this month")

        # working-days command
        days = subparsers.add_parser(
            "working-days",
            help="Show monthly working-day norms",
        )
        days.add_argument("--year", type=int, required=True, help="Calendar year")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "calculate": self._cmd_calculate,
            "seed-rates": self._cmd_seed_rates,
            "rates": self._cmd_rates,
            "working-days": self._cmd_working_days,
        }

        handler = handlers.get(parsed.command)
        if handler:
            return handler(parsed)

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _cmd_calculate(self, args: argparse.Namespace) -> int:
        """Calculate a payroll month."""
        try:
            employees = _employees_adapter.validate_json(args.employees.read_bytes())
        except (OSError, SchemaValidationError) as e:
            print(f"ERROR: cannot read employees file: {e}", file=sys.stderr)
            return 1

        try:
            result, records = asyncio.run(self._calculate(args, employees))
        except FatalPayrollError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        summary = BatchResultSchema.model_validate(result)
        print(summary.model_dump_json(indent=2))

        if args.output:
            payload = [PayrollRecordSchema.model_validate(r).model_dump(mode="json") for r in records]
            args.output.write_text(json.dumps(payload, indent=2, ensure_ascii=False))
            print(f"Wrote {len(payload)} record(s) to {args.output}")

        return 0 if result.success else 2

    async def _calculate(
        self, args: argparse.Namespace, employees: list[EmployeeSchema]
    ) -> tuple[BatchResult, list[PayrollRecord]]:
        engine = get_engine(args.database_url)
        try:
            await create_schema(engine)
            store = SqlPayrollStore(engine)
            period = await self._get_or_create_period(store, args.tenant_id, args.year, args.month)

            payroll_engine = PayrollEngine(SqlRateProvider(engine), store)
            processor = BatchProcessor(payroll_engine, concurrency=args.concurrency)

            cancel_event = asyncio.Event()
            try:
                asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel_event.set)
            except NotImplementedError:
                pass

            result = await processor.process_batch(
                [e.to_context() for e in employees],
                period.period_id,
                inputs={e.employee_id: e.inputs.to_inputs() for e in employees if e.inputs},
                recalculate=args.recalculate,
                cancel_event=cancel_event,
            )
            records = await store.list_records(period.period_id)
            return result, records
        finally:
            await engine.dispose()

    async def _get_or_create_period(
        self, store: SqlPayrollStore, tenant_id: UUID, year: int, month: int
    ) -> PayrollPeriod:
        for period in await store.list_periods(tenant_id, year):
            if period.month == month:
                return period
        period = PayrollPeriod(
            period_id=uuid4(),
            tenant_id=tenant_id,
            year=year,
            month=month,
            status=PeriodStatus.OPEN,
        )
        await store.save_period(period)
        logger.info("Opened payroll period %s for %s-%02d", period.period_id, year, month)
        return period

    def _cmd_seed_rates(self, args: argparse.Namespace) -> int:
        """Seed the built-in rate catalogue."""

        async def seed() -> int:
            engine = get_engine(args.database_url)
            try:
                await create_schema(engine)
                return await SqlRateProvider(engine).seed(DEFAULT_RATE_TABLES)
            finally:
                await engine.dispose()

        inserted = asyncio.run(seed())
        print(f"Seeded {inserted} rate table(s); {len(DEFAULT_RATE_TABLES) - inserted} already present.")
        return 0

    def _cmd_rates(self, args: argparse.Namespace) -> int:
        """Show the catalogue or the table in force for a month."""
        if (args.year is None) != (args.month is None):
            print("ERROR: --year and --month go together", file=sys.stderr)
            return 1

        async def load() -> list[RateTable]:
            engine = get_engine(args.database_url)
            try:
                await create_schema(engine)
                provider = SqlRateProvider(engine)
                if args.year is not None:
                    return [await provider.resolve(args.year, args.month)]
                return await provider.list_tables()
            finally:
                await engine.dispose()

        try:
            tables = asyncio.run(load())
        except FatalPayrollError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

        if not tables:
            print("No rate tables configured. Run: python -m pl_payroll seed-rates")
            return 1
        print(json.dumps([t.to_mapping() for t in tables], indent=2))
        return 0

    def _cmd_working_days(self, args: argparse.Namespace) -> int:
        """Print the working-day norm of every month of a year."""
        print(f"Working days {args.year}")
        print("-" * 20)
        for month in range(1, 13):
            print(f"  {args.year}-{month:02d}: {working_days_in_month(args.year, month):>3}")
        return 0


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = PayrollCli()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
