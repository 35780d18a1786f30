"""
Domain Models for the Deal Totals Engine

These dataclasses provide type-safe representations of deal line items,
tax presets and computed totals. All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

from .errors import ConfigurationError, ValidationError


# =============================================================================
# ENUMS
# =============================================================================


class FeeKind(str, Enum):
    """Closed set of fee row kinds attached to a deal."""

    TAX = "tax"
    TEMP_PLATE = "temp_plate"
    TRANSPORT = "transport"
    DOC = "doc"
    DISCOUNT = "discount"
    OTHER = "other"


class RuleKind(str, Enum):
    TAX = "tax"
    FEE = "fee"


class RuleFormula(str, Enum):
    FLAT = "flat"
    RATE = "rate"
    OVERRIDE = "override"


class RuleBase(str, Enum):
    UNITS_SUBTOTAL = "units_subtotal"
    TAXABLE_FEES = "taxable_fees"


class PresetType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class CommissionBasis(str, Enum):
    """Which amount a sales rep's commission is calculated on."""

    TOTAL_DUE = "total_due"
    SUBTOTAL_PLUS_FEES = "subtotal_plus_fees"


# =============================================================================
# PARSING HELPERS
# =============================================================================


def parse_decimal(value, field_name: str) -> Decimal:
    """Convert a JSON number (or numeric string) to Decimal."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValidationError(field_name, f"expected a number, got: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(field_name, f"expected a number, got: {value!r}") from None


def parse_decimal_list(values, field_name: str) -> list[Decimal]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError(field_name, f"expected a list, got: {type(values).__name__}")
    return [parse_decimal(v, f"{field_name}[{i}]") for i, v in enumerate(values)]


def _pick(data: dict, *keys, default=None):
    """Return the first key present in data (camelCase or snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _parse_enum(enum_cls, value, error):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise error(f"unsupported value {value!r}, must be one of: {allowed}") from None


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass
class Fee:
    """A non-unit charge or discount line attached to a deal."""

    kind: FeeKind
    amount: Decimal
    label: str = ""
    taxable: bool = False
    sort_order: int = 0
    id: str | None = None

    @property
    def is_discount(self) -> bool:
        return self.kind == FeeKind.DISCOUNT

    @property
    def is_add_on(self) -> bool:
        """True for charges that count toward fees_total (not tax, not discount)."""
        return self.kind not in (FeeKind.TAX, FeeKind.DISCOUNT)

    @classmethod
    def from_dict(cls, data: dict, index: int = 0) -> "Fee":
        prefix = f"fees[{index}]"
        if not isinstance(data, dict):
            raise ValidationError(prefix, f"expected an object, got: {type(data).__name__}")
        kind = _parse_enum(
            FeeKind, data.get("kind"), lambda msg: ValidationError(f"{prefix}.kind", msg)
        )
        if "amount" not in data:
            raise ValidationError(f"{prefix}.amount", "is required")
        taxable = data.get("taxable", False)
        if not isinstance(taxable, bool):
            raise ValidationError(f"{prefix}.taxable", f"expected true or false, got: {taxable!r}")
        sort_order = data.get("sort_order", 0)
        if isinstance(sort_order, bool):
            raise ValidationError(f"{prefix}.sort_order", f"expected an integer, got: {sort_order!r}")
        try:
            sort_order = int(sort_order or 0)
        except (TypeError, ValueError):
            raise ValidationError(f"{prefix}.sort_order", f"expected an integer, got: {sort_order!r}") from None
        return cls(
            kind=kind,
            amount=parse_decimal(data["amount"], f"{prefix}.amount"),
            label=data.get("label") or "",
            taxable=taxable,
            sort_order=sort_order,
            id=data.get("id"),
        )


@dataclass
class TaxPresetRule:
    """A switch-driven rule deriving a tax or fee amount from deal bases."""

    id: str | None
    kind: RuleKind
    label: str
    formula: RuleFormula
    value: Decimal | None  # None when the stored value is missing or not numeric
    enabled_by: frozenset[str] = frozenset()
    base: RuleBase | None = None

    def is_enabled(self, active_switches: frozenset[str]) -> bool:
        return bool(self.enabled_by & active_switches)

    @classmethod
    def from_dict(cls, data: dict) -> "TaxPresetRule":
        rule_id = data.get("id")

        def config_error(msg):
            return ConfigurationError(rule_id, msg)

        base = data.get("base")
        raw_value = data.get("value")
        # A bad value only matters once a switch enables the rule
        try:
            value = None if raw_value is None or isinstance(raw_value, bool) else Decimal(str(raw_value))
        except InvalidOperation:
            value = None

        enabled_by = _pick(data, "enabledBy", "enabled_by", default=None) or []
        if isinstance(enabled_by, str):
            enabled_by = [enabled_by]
        if not isinstance(enabled_by, (list, tuple, set, frozenset)):
            raise ConfigurationError(rule_id, "enabledBy must be a list of switch names")

        return cls(
            id=rule_id,
            kind=_parse_enum(RuleKind, data.get("kind"), config_error),
            label=data.get("label") or "",
            formula=_parse_enum(RuleFormula, data.get("formula"), config_error),
            value=value,
            enabled_by=frozenset(enabled_by),
            base=_parse_enum(RuleBase, base, config_error) if base is not None else None,
        )


@dataclass
class TaxPreset:
    """An admin-managed preset row: either a flat percent/fixed tax or a rule set."""

    id: str | None
    name: str
    type: PresetType
    rate: Decimal
    apply_scope: str = "deal"
    is_default: bool = False
    is_active: bool = True
    rules: list[TaxPresetRule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "TaxPreset":
        preset_id = data.get("id")
        raw_rules = data.get("rules") or []
        # Stored presets nest their rule lines as {"lines": [...]}
        if isinstance(raw_rules, dict):
            raw_rules = raw_rules.get("lines", [])
        return cls(
            id=preset_id,
            name=data.get("name") or "",
            type=_parse_enum(
                PresetType,
                data.get("type", "percent"),
                lambda msg: ConfigurationError(preset_id, msg),
            ),
            rate=parse_decimal(data.get("rate", 0), f"presets[{preset_id}].rate"),
            apply_scope=data.get("apply_scope", "deal"),
            is_default=data.get("is_default", False),
            is_active=data.get("is_active", True),
            rules=[TaxPresetRule.from_dict(r) for r in raw_rules],
        )


def _parse_commission_basis(data: dict) -> CommissionBasis:
    raw = _pick(data, "commissionBasis", "commission_basis", default=CommissionBasis.TOTAL_DUE.value)
    return _parse_enum(
        CommissionBasis, raw, lambda msg: ValidationError("commission_basis", msg)
    )


def _parse_fees(data: dict) -> list[Fee]:
    raw_fees = data.get("fees") or []
    if not isinstance(raw_fees, list):
        raise ValidationError("fees", f"expected a list, got: {type(raw_fees).__name__}")
    return [Fee.from_dict(f, i) for i, f in enumerate(raw_fees)]


def normalize_switches(switches) -> frozenset[str]:
    """Accept either a collection of switch names or a {name: bool} map."""
    if switches is None:
        return frozenset()
    if isinstance(switches, dict):
        return frozenset(name for name, on in switches.items() if on)
    if isinstance(switches, str):
        return frozenset([switches])
    return frozenset(switches)


@dataclass
class DealTotalsInput:
    """Input for the flat percent/fixed preset evaluation."""

    unit_prices: list[Decimal]
    fees: list[Fee] = field(default_factory=list)
    tax_percent_presets: list[Decimal] = field(default_factory=list)
    tax_fixed_presets: list[Decimal] = field(default_factory=list)
    commission_basis: CommissionBasis = CommissionBasis.TOTAL_DUE

    @classmethod
    def from_dict(cls, data: dict) -> "DealTotalsInput":
        return cls(
            unit_prices=parse_decimal_list(
                _pick(data, "unitPrices", "unit_prices", default=[]), "unit_prices"
            ),
            fees=_parse_fees(data),
            tax_percent_presets=parse_decimal_list(
                _pick(data, "taxPercentPresets", "tax_percent_presets", default=[]),
                "tax_percent_presets",
            ),
            tax_fixed_presets=parse_decimal_list(
                _pick(data, "taxFixedPresets", "tax_fixed_presets", default=[]),
                "tax_fixed_presets",
            ),
            commission_basis=_parse_commission_basis(data),
        )


@dataclass
class RuleBasedInput:
    """Input for the switch-driven rule evaluation."""

    unit_prices: list[Decimal]
    fees: list[Fee] = field(default_factory=list)
    rules: list[TaxPresetRule] = field(default_factory=list)
    active_switches: frozenset[str] = frozenset()
    commission_basis: CommissionBasis = CommissionBasis.TOTAL_DUE

    @classmethod
    def from_dict(cls, data: dict) -> "RuleBasedInput":
        rules = [TaxPresetRule.from_dict(r) for r in data.get("rules") or []]
        for preset_data in data.get("presets") or []:
            preset = TaxPreset.from_dict(preset_data)
            if preset.is_active:
                rules.extend(preset.rules)
        return cls(
            unit_prices=parse_decimal_list(
                _pick(data, "unitPrices", "unit_prices", default=[]), "unit_prices"
            ),
            fees=_parse_fees(data),
            rules=rules,
            active_switches=normalize_switches(data.get("switches")),
            commission_basis=_parse_commission_basis(data),
        )


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass
class FeeAggregation:
    """Results of aggregating a deal's fee rows."""

    discounts_total: Decimal = Decimal("0")
    fees_total: Decimal = Decimal("0")
    taxable_fees_sum: Decimal = Decimal("0")
    explicit_tax: Decimal = Decimal("0")


@dataclass
class TaxCalculation:
    """Results of the tax step."""

    tax_base: Decimal = Decimal("0")
    percent_tax: Decimal = Decimal("0")
    fixed_tax: Decimal = Decimal("0")
    explicit_tax: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")


@dataclass
class TotalsLine:
    """An itemised tax, fee or discount line produced by rule evaluation."""

    label: str
    kind: str
    amount: Decimal
    source: str = "preset"  # 'preset' or 'deal_fee'
    rule_id: str | None = None


@dataclass
class RuleEvaluation:
    """Results of evaluating switch-driven preset rules."""

    taxes: list[TotalsLine] = field(default_factory=list)
    fees: list[TotalsLine] = field(default_factory=list)
    discounts: list[TotalsLine] = field(default_factory=list)
    discounts_total: Decimal = Decimal("0")
    fees_total: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")


@dataclass
class ProcessingContext:
    """
    Holds all intermediate state during a totals computation.
    This is the "bag" that flows through the pipeline.
    """

    # Input (immutable during processing)
    unit_prices: list[Decimal]
    fees: list[Fee]
    commission_basis: CommissionBasis = CommissionBasis.TOTAL_DUE

    # Step results (populated as we go)
    subtotal: Decimal = Decimal("0")
    fee_aggregation: FeeAggregation = field(default_factory=FeeAggregation)
    tax: TaxCalculation = field(default_factory=TaxCalculation)
    rules: RuleEvaluation | None = None

    # Aggregates used by the final step, filled by whichever evaluation ran
    discounts_total: Decimal = Decimal("0")
    fees_total: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")

    # Final outputs
    total_due: Decimal = Decimal("0")
    commission_base: Decimal = Decimal("0")


@dataclass(frozen=True)
class DealTotals:
    """Canonical totals breakdown for a deal. Always regenerated, never edited."""

    subtotal: Decimal
    discounts_total: Decimal
    fees_total: Decimal
    tax_total: Decimal
    total_due: Decimal
    commission_base: Decimal


@dataclass(frozen=True)
class RuleBasedTotals:
    """Totals from the rule evaluation together with the itemised lines."""

    totals: DealTotals
    taxes: list[TotalsLine]
    fees: list[TotalsLine]
    discounts: list[TotalsLine]
