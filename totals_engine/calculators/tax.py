"""
Tax Calculator

Calculates deal taxes from percent presets, fixed presets and explicit tax rows.
"""

from decimal import Decimal

from ..models import FeeAggregation, TaxCalculation
from .fees import quantize_money


class TaxCalculator:
    """Calculates the tax step of the flat evaluation."""

    def calculate(
        self,
        subtotal: Decimal,
        fees: FeeAggregation,
        percent_presets: list[Decimal],
        fixed_presets: list[Decimal],
    ) -> TaxCalculation:
        """
        Calculate tax_total.

        Tax Base  = subtotal + discounts_total + taxable add-on fees
        Tax Total = Σ(base × rate) + Σ(fixed) + Σ(explicit tax rows)

        Only the final sum is rounded; per-preset amounts carry full precision.
        """
        tax_base = self.tax_base(subtotal, fees)
        percent_tax = sum((tax_base * rate for rate in percent_presets), Decimal("0"))
        fixed_tax = sum(fixed_presets, Decimal("0"))

        return TaxCalculation(
            tax_base=tax_base,
            percent_tax=percent_tax,
            fixed_tax=fixed_tax,
            explicit_tax=fees.explicit_tax,
            tax_total=quantize_money(percent_tax + fixed_tax + fees.explicit_tax),
        )

    @staticmethod
    def tax_base(subtotal: Decimal, fees: FeeAggregation) -> Decimal:
        """Net of discounts, plus taxable add-on fees."""
        return subtotal + fees.discounts_total + fees.taxable_fees_sum
