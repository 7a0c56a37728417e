"""Effective-dated ZUS/PIT rate table resolution."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable

from pl_payroll.calculators.types import RateTable
from pl_payroll.errors import RatesNotConfiguredError

logger = logging.getLogger(__name__)


def target_date(year: int, month: int) -> date:
    """Date used to select the rate table for a payroll month."""
    return date(year, month, 1)


def check_no_overlap(tables: Iterable[RateTable]) -> list[RateTable]:
    """Sort tables by start date, raising ValueError if two are in force on one day.

    Only the last table may be open-ended.
    """
    ordered = sorted(tables, key=lambda t: t.effective_from)
    for prev, curr in zip(ordered, ordered[1:]):
        if prev.effective_to is None or prev.effective_to >= curr.effective_from:
            raise ValueError(
                f"Rate table effective {prev.effective_from} overlaps "
                f"table effective {curr.effective_from}"
            )
    return ordered


class RateProvider(ABC):
    """Resolves the rate table effective for a payroll month.

    Selection rule: the latest table whose effective_from <= target date and
    whose effective_to is open or >= target date. The target date is the
    first day of the month. Providers are read-only and safe to share across
    concurrent calculations.
    """

    @abstractmethod
    async def resolve(self, year: int, month: int) -> RateTable:
        """Return the table for (year, month).

        Raises:
            RatesNotConfiguredError: If no table is effective
        """


class InMemoryRateProvider(RateProvider):
    """Rate provider backed by an ordered list of tables."""

    def __init__(self, tables: Iterable[RateTable]):
        self._tables = check_no_overlap(tables)

    async def resolve(self, year: int, month: int) -> RateTable:
        day = target_date(year, month)
        for table in reversed(self._tables):
            if table.covers(day):
                return table
        logger.error("No rate table configured for %s-%02d", year, month)
        raise RatesNotConfiguredError(year, month)

    @property
    def tables(self) -> list[RateTable]:
        return list(self._tables)
