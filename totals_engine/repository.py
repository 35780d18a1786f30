"""
Deal Repository

Data-store boundary for the totals engine: supplies units, fee rows and tax
presets for a deal and accepts computed totals snapshots.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from .errors import DealNotFoundError, StaleTotalsError
from .models import DealTotals, Fee, TaxPreset


@dataclass(frozen=True)
class TotalsSnapshot:
    """A persisted copy of computed totals. Stale once any input changes."""

    deal_id: str
    totals: DealTotals
    version: int
    computed_at: datetime


class DealRepository(ABC):
    """Interface the totals service needs from the data store."""

    @abstractmethod
    def fetch_unit_prices(self, deal_id: str) -> list[Decimal]:
        ...

    @abstractmethod
    def fetch_fees(self, deal_id: str) -> list[Fee]:
        """Fee rows for the deal, ordered by sort_order."""

    @abstractmethod
    def fetch_tax_presets(self) -> list[TaxPreset]:
        """Active tax presets only."""

    @abstractmethod
    def save_totals(
        self, deal_id: str, totals: DealTotals, expected_version: int | None = None
    ) -> TotalsSnapshot:
        """
        Upsert the totals snapshot for a deal.

        When expected_version is given and does not match the stored version
        StaleTotalsError is raised; otherwise last writer wins.
        """

    @abstractmethod
    def get_snapshot(self, deal_id: str) -> TotalsSnapshot | None:
        ...


@dataclass
class _DealRecord:
    unit_prices: list[Decimal] = field(default_factory=list)
    fees: list[Fee] = field(default_factory=list)
    snapshot: TotalsSnapshot | None = None


class InMemoryDealRepository(DealRepository):
    """
    Dictionary-backed repository.

    Construct one per session or request; nothing is shared between instances.
    """

    def __init__(self, presets: list[TaxPreset] | None = None):
        self._deals: dict[str, _DealRecord] = {}
        self._presets: list[TaxPreset] = list(presets or [])

    # -- seeding -----------------------------------------------------------

    def add_deal(self, deal_id: str, unit_prices=None, fees=None) -> None:
        self._deals[deal_id] = _DealRecord(
            unit_prices=[Decimal(str(p)) for p in unit_prices or []],
            fees=list(fees or []),
        )

    def add_unit(self, deal_id: str, price) -> None:
        self._record(deal_id).unit_prices.append(Decimal(str(price)))

    def add_fee(self, deal_id: str, fee: Fee) -> None:
        self._record(deal_id).fees.append(fee)

    def remove_fee(self, deal_id: str, fee_id: str) -> None:
        record = self._record(deal_id)
        record.fees = [f for f in record.fees if f.id != fee_id]

    def add_preset(self, preset: TaxPreset) -> None:
        self._presets.append(preset)

    # -- DealRepository ----------------------------------------------------

    def fetch_unit_prices(self, deal_id: str) -> list[Decimal]:
        return list(self._record(deal_id).unit_prices)

    def fetch_fees(self, deal_id: str) -> list[Fee]:
        return sorted(self._record(deal_id).fees, key=lambda f: f.sort_order)

    def fetch_tax_presets(self) -> list[TaxPreset]:
        # Defaults first, then by name
        active = [p for p in self._presets if p.is_active]
        return sorted(active, key=lambda p: (not p.is_default, p.name))

    def save_totals(
        self, deal_id: str, totals: DealTotals, expected_version: int | None = None
    ) -> TotalsSnapshot:
        record = self._record(deal_id)
        current_version = record.snapshot.version if record.snapshot else 0

        if expected_version is not None and expected_version != current_version:
            raise StaleTotalsError(deal_id, expected_version, current_version)

        record.snapshot = TotalsSnapshot(
            deal_id=deal_id,
            totals=totals,
            version=current_version + 1,
            computed_at=datetime.now(timezone.utc),
        )
        return record.snapshot

    def get_snapshot(self, deal_id: str) -> TotalsSnapshot | None:
        return self._record(deal_id).snapshot

    def _record(self, deal_id: str) -> _DealRecord:
        try:
            return self._deals[deal_id]
        except KeyError:
            raise DealNotFoundError(f"Deal not found: {deal_id}") from None
