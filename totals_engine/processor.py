"""
Totals Processor - Main Orchestrator

Coordinates the deal totals pipeline through discrete, testable steps.
"""

from decimal import Decimal
from typing import Dict, Any, Iterable

from .models import (
    CommissionBasis,
    DealTotals,
    DealTotalsInput,
    Fee,
    ProcessingContext,
    RuleBasedInput,
    RuleBasedTotals,
    TaxPresetRule,
    normalize_switches,
)
from .validators import InputValidator
from .calculators import (
    SubtotalCalculator,
    FeeAggregator,
    TaxCalculator,
    PresetRuleEvaluator,
    TotalDueCalculator,
)
from .output import OutputBuilder


class TotalsProcessor:
    """
    Main orchestrator for deal totals.

    Flat evaluation (canonical):
    1. Validate Input
    2. Build Context
    3. Calculate Subtotal
    4. Aggregate Fees (discounts, add-on fees, taxable fees, explicit tax)
    5. Calculate Tax
    6. Calculate Total Due
    7. Calculate Commission Base
    8. Build Output

    Rule-based evaluation replaces steps 4-5 with preset rule evaluation.
    """

    def __init__(self):
        # Initialize all calculators
        self.validator = InputValidator()
        self.subtotal_calculator = SubtotalCalculator()
        self.fee_aggregator = FeeAggregator()
        self.tax_calculator = TaxCalculator()
        self.rule_evaluator = PresetRuleEvaluator()
        self.total_calculator = TotalDueCalculator()
        self.output_builder = OutputBuilder()

    def process(self, input_data: DealTotalsInput) -> DealTotals:
        """
        Compute totals from flat percent/fixed presets.

        Args:
            input_data: DealTotalsInput object

        Returns:
            DealTotals with every aggregate rounded to cents
        """
        ctx = self._run(input_data)
        return self.output_builder.build(ctx)

    def process_rules(self, input_data: RuleBasedInput) -> RuleBasedTotals:
        """Compute totals from switch-driven preset rules."""
        # Step 1: Validate
        self.validator.validate_rule_based(input_data)

        # Step 2: Build initial context
        ctx = ProcessingContext(
            unit_prices=input_data.unit_prices,
            fees=input_data.fees,
            commission_basis=input_data.commission_basis,
        )

        # Step 3: Subtotal
        ctx.subtotal = self.subtotal_calculator.calculate(ctx.unit_prices)

        # Step 4: Evaluate rules and merge existing fee rows
        ctx.rules = self.rule_evaluator.evaluate(
            ctx.subtotal, ctx.fees, input_data.rules, input_data.active_switches
        )
        ctx.discounts_total = ctx.rules.discounts_total
        ctx.fees_total = ctx.rules.fees_total
        ctx.tax_total = ctx.rules.tax_total

        # Step 5: Total due and commission base
        ctx.total_due = self.total_calculator.calculate(ctx)
        ctx.commission_base = self.total_calculator.commission_base(ctx)

        return self.output_builder.build_rule_based(ctx)

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Compute flat totals from raw dictionary input.

        Convenience method for API usage. Pass "explain": true to include
        the per-step breakdown.
        """
        input_data = DealTotalsInput.from_dict(data)
        ctx = self._run(input_data)
        output = self.output_builder.totals_to_dict(self.output_builder.build(ctx))
        if data.get("explain"):
            output["breakdown"] = self.output_builder.build_breakdown(ctx)
        return output

    def process_rules_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Compute rule-based totals from raw dictionary input."""
        input_data = RuleBasedInput.from_dict(data)
        result = self.process_rules(input_data)
        return self.output_builder.rule_based_to_dict(result)

    def _run(self, input_data: DealTotalsInput) -> ProcessingContext:
        # Step 1: Validate
        self.validator.validate(input_data)

        # Step 2: Build initial context
        ctx = ProcessingContext(
            unit_prices=input_data.unit_prices,
            fees=input_data.fees,
            commission_basis=input_data.commission_basis,
        )

        # Step 3: Subtotal
        ctx.subtotal = self.subtotal_calculator.calculate(ctx.unit_prices)

        # Step 4: Fee aggregation
        ctx.fee_aggregation = self.fee_aggregator.aggregate(ctx.fees)
        ctx.discounts_total = ctx.fee_aggregation.discounts_total
        ctx.fees_total = ctx.fee_aggregation.fees_total

        # Step 5: Tax (depends on the discounted subtotal and taxable fees)
        ctx.tax = self.tax_calculator.calculate(
            ctx.subtotal,
            ctx.fee_aggregation,
            input_data.tax_percent_presets,
            input_data.tax_fixed_presets,
        )
        ctx.tax_total = ctx.tax.tax_total

        # Step 6-7: Total due and commission base
        ctx.total_due = self.total_calculator.calculate(ctx)
        ctx.commission_base = self.total_calculator.commission_base(ctx)

        return ctx


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def compute_totals(
    unit_prices: Iterable[Decimal],
    fees: Iterable[Fee],
    tax_percent_presets: Iterable[Decimal],
    tax_fixed_presets: Iterable[Decimal],
    commission_basis: CommissionBasis = CommissionBasis.TOTAL_DUE,
) -> DealTotals:
    """Compute the canonical deal totals. Pure: inputs are never modified."""
    input_data = DealTotalsInput(
        unit_prices=list(unit_prices),
        fees=list(fees),
        tax_percent_presets=list(tax_percent_presets),
        tax_fixed_presets=list(tax_fixed_presets),
        commission_basis=commission_basis,
    )
    return TotalsProcessor().process(input_data)


def compute_totals_from_rules(
    unit_prices: Iterable[Decimal],
    fees: Iterable[Fee],
    rules: Iterable[TaxPresetRule],
    active_switches,
    commission_basis: CommissionBasis = CommissionBasis.TOTAL_DUE,
) -> RuleBasedTotals:
    """Compute totals by evaluating the preset rules enabled by active_switches."""
    input_data = RuleBasedInput(
        unit_prices=list(unit_prices),
        fees=list(fees),
        rules=list(rules),
        active_switches=normalize_switches(active_switches),
        commission_basis=commission_basis,
    )
    return TotalsProcessor().process_rules(input_data)


def process_totals_from_json(json_input: str) -> str:
    """
    Compute flat totals from JSON string input and return JSON string output.
    """
    import json

    try:
        input_data = json.loads(json_input)
        processor = TotalsProcessor()
        result = processor.process_from_dict(input_data)
        return json.dumps(result, indent=2)

    except ValueError as e:
        error_response = {"error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)
