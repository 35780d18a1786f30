"""
Fee Aggregation for the Deal Totals Engine

Splits a deal's fee rows into discounts, add-on fees and explicit taxes.
All aggregates use Decimal with ROUND_HALF_UP rounding.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..errors import ValidationError
from ..models import Fee, FeeAggregation, FeeKind

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Result needs more digits than the decimal context carries
        raise ValidationError("amount", f"too large to round to cents: {value}") from None


class FeeAggregator:
    """Aggregates fee rows by kind."""

    def aggregate(self, fees: list[Fee]) -> FeeAggregation:
        """Calculate discount, fee, taxable-fee and explicit-tax sums."""
        return FeeAggregation(
            discounts_total=self._calculate_discounts(fees),
            fees_total=self._calculate_fees(fees),
            taxable_fees_sum=self._calculate_taxable_fees(fees),
            explicit_tax=self._calculate_explicit_tax(fees),
        )

    def _calculate_discounts(self, fees: list[Fee]) -> Decimal:
        """
        Total of discount rows as a reduction (always <= 0).

        Magnitudes are summed so a discount keyed in as -100 or 100
        reduces the deal by the same amount.
        """
        magnitude = sum((abs(f.amount) for f in fees if f.is_discount), Decimal("0"))
        return quantize_money(Decimal("0") - magnitude)

    def _calculate_fees(self, fees: list[Fee]) -> Decimal:
        """Add-on fees (everything except tax and discount), signed as stored."""
        return quantize_money(sum((f.amount for f in fees if f.is_add_on), Decimal("0")))

    def _calculate_taxable_fees(self, fees: list[Fee]) -> Decimal:
        """Add-on fees flagged taxable. Left unrounded; it only feeds the tax base."""
        return sum((f.amount for f in fees if f.is_add_on and f.taxable), Decimal("0"))

    def _calculate_explicit_tax(self, fees: list[Fee]) -> Decimal:
        return sum((f.amount for f in fees if f.kind == FeeKind.TAX), Decimal("0"))
