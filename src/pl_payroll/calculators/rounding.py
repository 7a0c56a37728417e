"""Statutory rounding rules.

Contribution line items, health insurance and the net salary are rounded to
grosze. The income-tax basis and the tax advance are rounded to whole zloty
(amounts below 50 groszy drop, 50 groszy and above round up).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
GROSZ = Decimal("0.01")
ZLOTY = Decimal("1")


def round2(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return amount.quantize(GROSZ, rounding=ROUND_HALF_UP)


def round_whole(amount: Decimal) -> Decimal:
    """Round to a whole currency unit, half up."""
    return amount.quantize(ZLOTY, rounding=ROUND_HALF_UP)
