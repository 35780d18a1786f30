"""
Output Builder

Constructs totals results and API responses from the processing context.
"""

from decimal import Decimal

from .models import DealTotals, ProcessingContext, RuleBasedTotals, TotalsLine


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return round(float(value), 2)


def _fmt(value) -> str:
    """Format a number as currency string for descriptions."""
    return f"${value:,.2f}"


class OutputBuilder:
    """Builds totals results and their dictionary form."""

    def build(self, ctx: ProcessingContext) -> DealTotals:
        """Construct the canonical totals from the processing context."""
        return DealTotals(
            subtotal=ctx.subtotal,
            discounts_total=ctx.discounts_total,
            fees_total=ctx.fees_total,
            tax_total=ctx.tax_total,
            total_due=ctx.total_due,
            commission_base=ctx.commission_base,
        )

    def build_rule_based(self, ctx: ProcessingContext) -> RuleBasedTotals:
        rules = ctx.rules
        return RuleBasedTotals(
            totals=self.build(ctx),
            taxes=list(rules.taxes),
            fees=list(rules.fees),
            discounts=list(rules.discounts),
        )

    def totals_to_dict(self, totals: DealTotals) -> dict:
        return {
            "subtotal": to_money(totals.subtotal),
            "discounts_total": to_money(totals.discounts_total),
            "fees_total": to_money(totals.fees_total),
            "tax_total": to_money(totals.tax_total),
            "total_due": to_money(totals.total_due),
            "commission_base": to_money(totals.commission_base),
        }

    def rule_based_to_dict(self, result: RuleBasedTotals) -> dict:
        output = self.totals_to_dict(result.totals)
        output["taxes"] = [self._line_to_dict(line) for line in result.taxes]
        output["fees"] = [self._line_to_dict(line) for line in result.fees]
        output["discounts"] = [self._line_to_dict(line) for line in result.discounts]
        return output

    def _line_to_dict(self, line: TotalsLine) -> dict:
        return {
            "label": line.label,
            "kind": line.kind,
            "amount": to_money(line.amount),
            "source": line.source,
            "rule_id": line.rule_id,
        }

    def build_breakdown(self, ctx: ProcessingContext) -> dict:
        """Build the explained breakdown with a value and description for each step."""
        fees = ctx.fee_aggregation
        tax = ctx.tax

        subtotal = to_money(ctx.subtotal)
        discounts = to_money(ctx.discounts_total)
        fees_total = to_money(ctx.fees_total)
        tax_total = to_money(ctx.tax_total)
        total_due = to_money(ctx.total_due)

        unit_count = len(ctx.unit_prices)
        discount_rows = sum(1 for f in ctx.fees if f.is_discount)
        taxable_rows = sum(1 for f in ctx.fees if f.is_add_on and f.taxable)

        return {
            "subtotal": {
                "value": subtotal,
                "description": f"Sum of {unit_count} unit price{'s' if unit_count != 1 else ''} = {_fmt(subtotal)}"
            },
            "discounts_total": {
                "value": discounts,
                "description": f"{discount_rows} discount row(s) applied as a reduction of {_fmt(abs(discounts))}" if discount_rows else "No discounts on this deal"
            },
            "fees_total": {
                "value": fees_total,
                "description": f"Add-on fees excluding tax and discount rows = {_fmt(fees_total)}"
            },
            "tax_base": {
                "value": to_money(tax.tax_base),
                "description": f"subtotal ({_fmt(subtotal)}) + discounts ({_fmt(discounts)}) + taxable fees ({_fmt(to_money(fees.taxable_fees_sum))}, {taxable_rows} row(s)) = {_fmt(to_money(tax.tax_base))}"
            },
            "tax_total": {
                "value": tax_total,
                "description": f"percent presets ({_fmt(to_money(tax.percent_tax))}) + fixed presets ({_fmt(to_money(tax.fixed_tax))}) + explicit tax rows ({_fmt(to_money(tax.explicit_tax))}) = {_fmt(tax_total)}"
            },
            "total_due": {
                "value": total_due,
                "description": f"subtotal ({_fmt(subtotal)}) + discounts ({_fmt(discounts)}) + fees ({_fmt(fees_total)}) + tax ({_fmt(tax_total)}) = {_fmt(total_due)}"
            },
            "commission_base": {
                "value": to_money(ctx.commission_base),
                "description": f"Commission calculated on {ctx.commission_basis.value.replace('_', ' ')}"
            },
        }
