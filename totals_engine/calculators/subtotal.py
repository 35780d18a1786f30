"""
Subtotal Calculator

Sums the agreed sale prices of the units attached to a deal.
"""

from decimal import Decimal

from .fees import quantize_money


class SubtotalCalculator:
    """Calculates the units subtotal."""

    def calculate(self, unit_prices: list[Decimal]) -> Decimal:
        return quantize_money(sum(unit_prices, Decimal("0")))
