"""
Total Due Calculator

Calculates the amount due and the commission base from the aggregated steps.
"""

from decimal import Decimal

from ..models import CommissionBasis, ProcessingContext
from .fees import quantize_money


class TotalDueCalculator:
    """Calculates total_due and commission_base."""

    def calculate(self, ctx: ProcessingContext) -> Decimal:
        """
        Total Due = Subtotal
                  + Discounts Total (<= 0)
                  + Fees Total
                  + Tax Total
        """
        return quantize_money(ctx.subtotal + ctx.discounts_total + ctx.fees_total + ctx.tax_total)

    def commission_base(self, ctx: ProcessingContext) -> Decimal:
        if ctx.commission_basis == CommissionBasis.SUBTOTAL_PLUS_FEES:
            return quantize_money(ctx.subtotal + ctx.fees_total)
        return ctx.total_due
