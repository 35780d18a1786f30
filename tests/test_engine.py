"""
Tests for the Deal Totals Engine

Run with: python -m pytest tests/ -v
"""

import copy
import json
from decimal import Decimal

import pytest

from totals_engine import (
    TotalsProcessor,
    compute_totals,
    compute_totals_from_rules,
)
from totals_engine.models import CommissionBasis, Fee, FeeKind, RuleFormula, RuleKind, TaxPresetRule, RuleBase
from totals_engine.processor import process_totals_from_json


def D(value):
    return Decimal(str(value))


def fee(kind, amount, taxable=False, label=""):
    return Fee(kind=kind, amount=D(amount), taxable=taxable, label=label)


class TestComputeTotals:
    """Known-value scenarios for the canonical evaluation."""

    def test_zero_fee_case(self):
        totals = compute_totals([D(100), D(200)], [], [], [])

        assert totals.subtotal == D("300.00")
        assert totals.discounts_total == 0
        assert totals.fees_total == 0
        assert totals.tax_total == 0
        assert totals.total_due == D("300.00")
        assert totals.commission_base == D("300.00")

    def test_percent_tax_case(self):
        """$1,000 at 8.25% = $82.50 tax"""
        totals = compute_totals([D(1000)], [], [D("0.0825")], [])

        assert totals.tax_total == D("82.50")
        assert totals.total_due == D("1082.50")

    def test_discount_and_taxable_fee_interaction(self):
        """
        Tax base = 1000 - 100 + 50 = 950, tax = 95
        Total = 1000 - 100 + 50 + 95 = 1045
        """
        fees = [fee(FeeKind.DISCOUNT, 100), fee(FeeKind.DOC, 50, taxable=True)]
        totals = compute_totals([D(1000)], fees, [D("0.10")], [])

        assert totals.discounts_total == D("-100.00")
        assert totals.fees_total == D("50.00")
        assert totals.tax_total == D("95.00")
        assert totals.total_due == D("1045.00")

    def test_non_taxable_fee_excluded_from_tax_base(self):
        fees = [fee(FeeKind.TRANSPORT, 500, taxable=False)]
        totals = compute_totals([D(1000)], fees, [D("0.10")], [])

        assert totals.tax_total == D("100.00")
        assert totals.total_due == D("1600.00")

    def test_explicit_tax_fee_passthrough(self):
        totals = compute_totals([D(1000)], [fee(FeeKind.TAX, 42)], [D("0.05")], [D(10)])

        # 50 percent + 10 fixed + 42 explicit
        assert totals.tax_total == D("102.00")
        assert totals.fees_total == 0

    def test_explicit_tax_alone(self):
        totals = compute_totals([D(1000)], [fee(FeeKind.TAX, 42)], [], [])
        assert totals.tax_total == D("42.00")
        assert totals.total_due == D("1042.00")

    def test_fixed_presets(self):
        totals = compute_totals([D(1000)], [], [], [D("33.00"), D("5.00")])
        assert totals.tax_total == D("38.00")

    @pytest.mark.parametrize("price, expected", [("12.345", "12.35"), ("12.344", "12.34")])
    def test_rounding_boundary(self, price, expected):
        totals = compute_totals([D(price)], [], [], [])
        assert totals.subtotal == D(expected)
        assert totals.total_due == D(expected)

    def test_subtotal_plus_fees_commission_basis(self):
        """Commission on subtotal + fees excludes tax and discounts."""
        fees = [fee(FeeKind.DOC, 50, taxable=True), fee(FeeKind.DISCOUNT, 20)]
        totals = compute_totals(
            [D(1000)], fees, [D("0.10")], [], commission_basis=CommissionBasis.SUBTOTAL_PLUS_FEES
        )

        # base 1030 → tax 103; total 1000 - 20 + 50 + 103
        assert totals.total_due == D("1133.00")
        assert totals.commission_base == D("1050.00")


class TestTotalsProperties:
    """Invariants that hold for every valid input."""

    SCENARIOS = [
        ([100, 200], [], [], []),
        ([19999.99, 4500.01], [(FeeKind.DISCOUNT, -250), (FeeKind.DOC, 150, True)], [0.0625], [33]),
        ([0.01], [(FeeKind.DISCOUNT, 0.02)], [0.0825], []),
        ([123.45, 678.9], [(FeeKind.TRANSPORT, 89.99, True), (FeeKind.TAX, 12.5)], [0.0625, 0.02], [5.5]),
    ]

    def _build(self, scenario):
        prices, fee_specs, percents, fixed = scenario
        fees = [fee(spec[0], spec[1], *spec[2:]) for spec in fee_specs]
        return [D(p) for p in prices], fees, [D(p) for p in percents], [D(f) for f in fixed]

    @pytest.mark.parametrize("scenario", SCENARIOS)
    def test_discounts_never_positive(self, scenario):
        totals = compute_totals(*self._build(scenario))
        assert totals.discounts_total <= 0

    @pytest.mark.parametrize("scenario", SCENARIOS)
    def test_total_identity(self, scenario):
        t = compute_totals(*self._build(scenario))
        recomputed = t.subtotal + t.discounts_total + t.fees_total + t.tax_total
        assert abs(t.total_due - recomputed) <= D("0.01")

    @pytest.mark.parametrize("scenario", SCENARIOS)
    def test_idempotent(self, scenario):
        args = self._build(scenario)
        assert compute_totals(*args) == compute_totals(*args)

    def test_discount_sign_irrelevant(self):
        positive = compute_totals([D(500)], [fee(FeeKind.DISCOUNT, 40)], [D("0.1")], [])
        negative = compute_totals([D(500)], [fee(FeeKind.DISCOUNT, -40)], [D("0.1")], [])
        assert positive == negative

    def test_subtotal_additive_across_unit_partitions(self):
        a = [D("100.10"), D("200.20")]
        b = [D("50.05")]
        union = compute_totals(a + b, [], [], []).subtotal
        assert union == compute_totals(a, [], [], []).subtotal + compute_totals(b, [], [], []).subtotal

    def test_inputs_not_mutated(self):
        prices = [D(1000)]
        fees = [fee(FeeKind.DISCOUNT, -100), fee(FeeKind.DOC, 50, taxable=True)]
        before = copy.deepcopy(fees)

        compute_totals(prices, fees, [D("0.1")], [])

        assert fees == before
        assert prices == [D(1000)]

    def test_oversized_unit_price_is_validation_error(self):
        with pytest.raises(ValueError, match="unit_prices\\[0\\]"):
            compute_totals([Decimal("1E+27")], [], [], [])

    def test_string_taxable_flag_does_not_reach_tax_base(self):
        data = {"unitPrices": [1000], "fees": [{"kind": "doc", "amount": 50, "taxable": "false"}],
                "taxPercentPresets": [0.1]}
        with pytest.raises(ValueError, match="fees\\[0\\].taxable"):
            TotalsProcessor().process_from_dict(data)


class TestProcessFromDict:
    """Dictionary/JSON entry points used by the API surfaces."""

    @pytest.fixture
    def processor(self):
        return TotalsProcessor()

    @pytest.fixture
    def sample_input(self):
        return {
            "unitPrices": [1000],
            "fees": [
                {"kind": "discount", "label": "Promo", "amount": 100, "taxable": False, "sort_order": 0},
                {"kind": "doc", "label": "Doc fee", "amount": 50, "taxable": True, "sort_order": 1},
            ],
            "taxPercentPresets": [0.10],
            "taxFixedPresets": [],
        }

    def test_output_shape(self, processor, sample_input):
        result = processor.process_from_dict(sample_input)

        assert result == {
            "subtotal": 1000.0,
            "discounts_total": -100.0,
            "fees_total": 50.0,
            "tax_total": 95.0,
            "total_due": 1045.0,
            "commission_base": 1045.0,
        }

    def test_snake_case_keys_accepted(self, processor, sample_input):
        snake = {
            "unit_prices": sample_input["unitPrices"],
            "fees": sample_input["fees"],
            "tax_percent_presets": sample_input["taxPercentPresets"],
            "tax_fixed_presets": [],
        }
        assert processor.process_from_dict(snake) == processor.process_from_dict(sample_input)

    def test_explain_adds_breakdown(self, processor, sample_input):
        sample_input["explain"] = True
        result = processor.process_from_dict(sample_input)

        breakdown = result["breakdown"]
        assert breakdown["tax_base"]["value"] == 950.0
        assert "$950.00" in breakdown["tax_base"]["description"]
        assert breakdown["total_due"]["value"] == result["total_due"]

    def test_zero_discounts_serialise_as_positive_zero(self, processor):
        result = processor.process_from_dict({"unitPrices": [100]})
        assert json.dumps(result["discounts_total"]) == "0.0"

    def test_invalid_fee_kind_propagates(self, processor, sample_input):
        sample_input["fees"][0]["kind"] = "rebate"
        with pytest.raises(ValueError, match="fees\\[0\\].kind"):
            processor.process_from_dict(sample_input)

    def test_rules_from_dict_with_stored_presets(self, processor):
        data = {
            "unitPrices": [20000],
            "fees": [
                {"kind": "doc", "label": "Doc", "amount": 150, "taxable": True},
                {"kind": "discount", "label": "Promo", "amount": 500},
            ],
            "presets": [
                {
                    "id": "tx",
                    "name": "TX Combo",
                    "type": "percent",
                    "rate": 0,
                    "is_active": True,
                    "rules": {
                        "lines": [
                            {"id": "r1", "kind": "tax", "label": "Sales Tax", "formula": "rate",
                             "value": 0.0625, "enabledBy": ["in_state"], "base": "units_subtotal"},
                            {"id": "r2", "kind": "fee", "label": "Temp Plate", "formula": "flat",
                             "value": 5, "enabledBy": ["temp_plate"]},
                        ]
                    },
                },
                {
                    "id": "old",
                    "name": "Retired",
                    "type": "percent",
                    "rate": 0,
                    "is_active": False,
                    "rules": [{"id": "r3", "kind": "tax", "label": "Old Tax", "formula": "flat",
                               "value": 999, "enabledBy": ["in_state"]}],
                },
            ],
            "switches": {"in_state": True, "temp_plate": False},
        }

        result = processor.process_rules_from_dict(data)

        assert result["subtotal"] == 20000.0
        assert [t["label"] for t in result["taxes"]] == ["Sales Tax"]
        assert result["tax_total"] == 1250.0
        assert result["fees_total"] == 150.0
        assert result["discounts_total"] == -500.0
        assert result["total_due"] == 20900.0

    def test_json_round_trip_reports_validation_failure(self):
        output = json.loads(process_totals_from_json(json.dumps({"unitPrices": [-5]})))
        assert output["status"] == "validation_failed"
        assert "unit_prices[0]" in output["error"]

    def test_json_entry_point_success(self):
        output = json.loads(process_totals_from_json(json.dumps({"unitPrices": [100, 200]})))
        assert output["total_due"] == 300.0

    def test_rule_enabled_by_string_does_not_match_single_letters(self, processor):
        data = {
            "unitPrices": [100],
            "rules": [{"id": "r2", "kind": "fee", "label": "Temp Plate", "formula": "flat",
                       "value": 5, "enabledBy": "temp_plate"}],
            "switches": ["t"],
        }

        result = processor.process_rules_from_dict(data)

        assert result["fees"] == []
        assert result["total_due"] == 100.0

    def test_inactive_rule_with_bad_value_does_not_block_deal(self, processor):
        data = {
            "unitPrices": [100],
            "rules": [{"id": "r9", "kind": "fee", "label": "Draft", "formula": "flat",
                       "value": "ten", "enabledBy": ["draft"]}],
            "switches": {"draft": False},
        }

        assert processor.process_rules_from_dict(data)["total_due"] == 100.0

        data["switches"] = {"draft": True}
        with pytest.raises(ValueError, match="r9"):
            processor.process_rules_from_dict(data)


class TestComputeTotalsFromRules:
    """Rule-based evaluation through the public function."""

    def test_total_includes_all_line_groups(self):
        rules = [
            TaxPresetRule(id="r1", kind=RuleKind.TAX, label="Sales Tax", formula=RuleFormula.RATE,
                          value=D("0.0625"), enabled_by=frozenset({"combo"}), base=RuleBase.UNITS_SUBTOTAL),
            TaxPresetRule(id="r2", kind=RuleKind.FEE, label="Title", formula=RuleFormula.FLAT,
                          value=D("33"), enabled_by=frozenset({"combo"})),
        ]
        fees = [fee(FeeKind.DISCOUNT, 100), fee(FeeKind.DOC, 150, taxable=True)]

        result = compute_totals_from_rules([D(10000)], fees, rules, ["combo"])
        totals = result.totals

        assert totals.tax_total == D("625.00")
        assert totals.fees_total == D("183.00")
        assert totals.discounts_total == D("-100.00")
        # 10000 + 183 + 625 - 100
        assert totals.total_due == D("10708.00")
        assert totals.commission_base == totals.total_due

    def test_switch_map_accepted(self):
        rules = [TaxPresetRule(id="r1", kind=RuleKind.FEE, label="Temp Plate", formula=RuleFormula.FLAT,
                               value=D("5"), enabled_by=frozenset({"temp_plate"}))]
        on = compute_totals_from_rules([D(100)], [], rules, {"temp_plate": True})
        off = compute_totals_from_rules([D(100)], [], rules, {"temp_plate": False})

        assert on.totals.total_due == D("105.00")
        assert off.totals.total_due == D("100.00")
