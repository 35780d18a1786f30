"""
Unit Tests for Subtotal and Tax Calculators
"""

from decimal import Decimal

import pytest

from totals_engine.calculators.subtotal import SubtotalCalculator
from totals_engine.calculators.tax import TaxCalculator
from totals_engine.models import FeeAggregation


class TestSubtotalCalculator:
    """Test the units subtotal."""

    @pytest.fixture
    def calculator(self):
        return SubtotalCalculator()

    def test_sums_unit_prices(self, calculator):
        assert calculator.calculate([Decimal("100"), Decimal("200")]) == Decimal("300.00")

    def test_no_units_is_zero(self, calculator):
        assert calculator.calculate([]) == Decimal("0.00")

    def test_rounds_sum_half_up(self, calculator):
        """19,999.995 rounds to 20,000.00"""
        assert calculator.calculate([Decimal("19999.995")]) == Decimal("20000.00")


class TestTaxCalculator:
    """Test the tax step of the flat evaluation."""

    @pytest.fixture
    def calculator(self):
        return TaxCalculator()

    def test_tax_base_nets_discounts_and_adds_taxable_fees(self, calculator):
        """1000 - 100 + 50 = 950"""
        fees = FeeAggregation(discounts_total=Decimal("-100"), taxable_fees_sum=Decimal("50"))
        result = calculator.calculate(Decimal("1000"), fees, [Decimal("0.10")], [])
        assert result.tax_base == Decimal("950")
        assert result.tax_total == Decimal("95.00")

    def test_percent_presets_each_apply_to_base(self, calculator):
        """$1,000 × (6.25% + 2%) = $82.50"""
        result = calculator.calculate(
            Decimal("1000"), FeeAggregation(), [Decimal("0.0625"), Decimal("0.02")], []
        )
        assert result.percent_tax == Decimal("82.5000")
        assert result.tax_total == Decimal("82.50")

    def test_fixed_presets_added(self, calculator):
        result = calculator.calculate(Decimal("1000"), FeeAggregation(), [], [Decimal("25"), Decimal("10")])
        assert result.fixed_tax == Decimal("35")
        assert result.tax_total == Decimal("35.00")

    def test_explicit_tax_passthrough(self, calculator):
        fees = FeeAggregation(explicit_tax=Decimal("42"))
        result = calculator.calculate(Decimal("1000"), fees, [], [])
        assert result.tax_total == Decimal("42.00")

    def test_rounds_once_after_summing(self, calculator):
        """
        Two 0.05 presets on 100.05: each is 5.0025.
        Summed first (10.005) the total rounds to 10.01.
        """
        result = calculator.calculate(
            Decimal("100.05"), FeeAggregation(), [Decimal("0.05"), Decimal("0.05")], []
        )
        assert result.tax_total == Decimal("10.01")

    def test_no_presets_no_tax(self, calculator):
        result = calculator.calculate(Decimal("1000"), FeeAggregation(), [], [])
        assert result.tax_total == Decimal("0.00")
