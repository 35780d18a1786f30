"""
Input Validation for the Deal Totals Engine

Validates all input data before processing begins.
Raises ValidationError / ConfigurationError naming the offending field.
"""

from decimal import Decimal

from .errors import ConfigurationError, ValidationError
from .models import (
    CommissionBasis,
    DealTotalsInput,
    Fee,
    FeeKind,
    RuleBasedInput,
    RuleFormula,
    TaxPresetRule,
)


class InputValidator:
    """Validates totals input according to business rules."""

    # Every amount, rate and preset must stay below this magnitude so sums
    # and products keep their cents within the default 28-digit context.
    MAX_AMOUNT = Decimal("1e15")

    def validate(self, input_data: DealTotalsInput) -> None:
        """
        Run all validations for the flat evaluation. Raises if any check fails.
        """
        self._validate_unit_prices(input_data.unit_prices)
        self._validate_fees(input_data.fees)
        self._validate_presets(input_data.tax_percent_presets, "tax_percent_presets")
        self._validate_presets(input_data.tax_fixed_presets, "tax_fixed_presets")
        self._validate_commission_basis(input_data.commission_basis)

    def validate_rule_based(self, input_data: RuleBasedInput) -> None:
        """
        Run all validations for the rule evaluation.

        Only rules enabled by an active switch are checked for evaluability;
        a half-configured rule nobody switched on does not block the deal.
        """
        self._validate_unit_prices(input_data.unit_prices)
        self._validate_fees(input_data.fees)
        self._validate_commission_basis(input_data.commission_basis)
        for rule in input_data.rules:
            if rule.is_enabled(input_data.active_switches):
                self._validate_rule(rule)

    def _validate_unit_prices(self, unit_prices: list[Decimal]) -> None:
        for i, price in enumerate(unit_prices):
            field = f"unit_prices[{i}]"
            self._require_finite(price, field)
            if price < 0:
                raise ValidationError(field, f"unit price cannot be negative, got: {price}")

    def _validate_fees(self, fees: list[Fee]) -> None:
        for i, fee in enumerate(fees):
            prefix = f"fees[{i}]"
            if not isinstance(fee.kind, FeeKind):
                raise ValidationError(f"{prefix}.kind", f"unsupported fee kind: {fee.kind!r}")
            self._require_finite(fee.amount, f"{prefix}.amount")
            # Discounts may be entered with either sign; everything else is a charge
            if fee.amount < 0 and not fee.is_discount:
                raise ValidationError(
                    f"{prefix}.amount",
                    f"{fee.kind.value} fee amount cannot be negative, got: {fee.amount}",
                )

    def _validate_presets(self, presets: list[Decimal], name: str) -> None:
        for i, value in enumerate(presets):
            field = f"{name}[{i}]"
            self._require_finite(value, field)
            if value < 0:
                raise ValidationError(field, f"preset cannot be negative, got: {value}")

    def _validate_commission_basis(self, basis: CommissionBasis) -> None:
        if not isinstance(basis, CommissionBasis):
            raise ValidationError("commission_basis", f"unsupported commission basis: {basis!r}")

    def _validate_rule(self, rule: TaxPresetRule) -> None:
        if not isinstance(rule.formula, RuleFormula):
            raise ConfigurationError(rule.id, f"unsupported formula: {rule.formula!r}")

        if not isinstance(rule.value, Decimal) or not rule.value.is_finite():
            raise ConfigurationError(rule.id, f"value must be a finite number, got: {rule.value}")

        if rule.value < 0:
            raise ConfigurationError(rule.id, f"value cannot be negative, got: {rule.value}")

        if rule.value >= self.MAX_AMOUNT:
            raise ConfigurationError(rule.id, f"value must be below {self.MAX_AMOUNT:,.0f}, got: {rule.value}")

        if rule.formula == RuleFormula.RATE and rule.base is None:
            raise ConfigurationError(rule.id, "rate formula requires a base")

    @staticmethod
    def _require_finite(value: Decimal, field: str) -> None:
        if not isinstance(value, Decimal):
            raise ValidationError(field, f"expected a Decimal, got: {type(value).__name__}")
        if not value.is_finite():
            raise ValidationError(field, f"amount must be finite, got: {value}")
        if abs(value) >= InputValidator.MAX_AMOUNT:
            raise ValidationError(
                field, f"amount must be below {InputValidator.MAX_AMOUNT:,.0f}, got: {value}"
            )
