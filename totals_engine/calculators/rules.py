"""
Preset Rule Evaluator

Applies switch-driven tax preset rules to a deal and itemises the resulting
tax, fee and discount lines. Each rule amount is rounded on its own before
the lines are summed.
"""

from decimal import Decimal

from ..errors import ConfigurationError
from ..models import (
    Fee,
    RuleBase,
    RuleEvaluation,
    RuleFormula,
    RuleKind,
    TaxPresetRule,
    TotalsLine,
)
from .fees import quantize_money


class PresetRuleEvaluator:
    """Evaluates active preset rules and merges in the deal's own fee rows."""

    def evaluate(
        self,
        subtotal: Decimal,
        fees: list[Fee],
        rules: list[TaxPresetRule],
        active_switches: frozenset[str],
    ) -> RuleEvaluation:
        """
        Evaluate rules in order, then append existing fee rows.

        Rules whose enabled_by set shares no switch with active_switches are
        skipped. Existing discount rows always land as negative lines; every
        other existing row is listed as a fee.
        """
        result = RuleEvaluation()
        taxable_fees = sum((f.amount for f in fees if f.taxable), Decimal("0"))

        for rule in rules:
            if not rule.is_enabled(active_switches):
                continue

            amount = quantize_money(self._rule_amount(rule, subtotal, taxable_fees))
            line = TotalsLine(label=rule.label, kind=rule.kind.value, amount=amount, rule_id=rule.id)
            target = result.taxes if rule.kind == RuleKind.TAX else result.fees

            if rule.formula == RuleFormula.OVERRIDE:
                self._replace_or_append(target, line)
            else:
                target.append(line)

        for fee in fees:
            if fee.is_discount:
                result.discounts.append(
                    TotalsLine(label=fee.label, kind=fee.kind.value, amount=-abs(fee.amount),
                               source="deal_fee", rule_id=fee.id)
                )
            else:
                result.fees.append(
                    TotalsLine(label=fee.label, kind=fee.kind.value, amount=fee.amount,
                               source="deal_fee", rule_id=fee.id)
                )

        result.discounts_total = quantize_money(sum((line.amount for line in result.discounts), Decimal("0")))
        result.fees_total = quantize_money(sum((line.amount for line in result.fees), Decimal("0")))
        result.tax_total = quantize_money(sum((line.amount for line in result.taxes), Decimal("0")))
        return result

    def _rule_amount(self, rule: TaxPresetRule, subtotal: Decimal, taxable_fees: Decimal) -> Decimal:
        if rule.formula in (RuleFormula.FLAT, RuleFormula.OVERRIDE):
            return rule.value

        if rule.formula == RuleFormula.RATE:
            return self._tax_base(rule, subtotal, taxable_fees) * rule.value

        raise ConfigurationError(rule.id, f"unsupported formula: {rule.formula!r}")

    @staticmethod
    def _tax_base(rule: TaxPresetRule, subtotal: Decimal, taxable_fees: Decimal) -> Decimal:
        if rule.base == RuleBase.UNITS_SUBTOTAL:
            return subtotal
        if rule.base == RuleBase.TAXABLE_FEES:
            return taxable_fees
        raise ConfigurationError(rule.id, "rate formula requires a base")

    @staticmethod
    def _replace_or_append(lines: list[TotalsLine], line: TotalsLine) -> None:
        """An override takes the place of an earlier line with the same label."""
        for i, existing in enumerate(lines):
            if existing.label == line.label:
                lines[i] = line
                return
        lines.append(line)
