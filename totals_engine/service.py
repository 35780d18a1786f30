"""
Totals Service

Fetches a deal's inputs from the repository, runs the totals engine and
persists the resulting snapshot. Nothing is written when computation fails.
"""

import logging

from .models import (
    DealTotalsInput,
    PresetType,
    RuleBasedInput,
    normalize_switches,
)
from .processor import TotalsProcessor
from .repository import DealRepository, TotalsSnapshot

logger = logging.getLogger(__name__)


class TotalsService:
    """Recomputes and stores totals for deals held in a DealRepository."""

    def __init__(self, repository: DealRepository, processor: TotalsProcessor | None = None):
        self.repository = repository
        self.processor = processor or TotalsProcessor()

    def recompute(self, deal_id: str, expected_version: int | None = None) -> TotalsSnapshot:
        """Recompute using the active percent and fixed presets."""
        presets = self.repository.fetch_tax_presets()
        input_data = DealTotalsInput(
            unit_prices=self.repository.fetch_unit_prices(deal_id),
            fees=self.repository.fetch_fees(deal_id),
            tax_percent_presets=[p.rate for p in presets if p.type == PresetType.PERCENT],
            tax_fixed_presets=[p.rate for p in presets if p.type == PresetType.FIXED],
        )

        totals = self.processor.process(input_data)
        snapshot = self.repository.save_totals(deal_id, totals, expected_version)
        logger.info(f"Totals saved for deal {deal_id}: total_due={totals.total_due} (v{snapshot.version})")
        return snapshot

    def recompute_with_rules(
        self, deal_id: str, switches, expected_version: int | None = None
    ) -> TotalsSnapshot:
        """Recompute using every rule carried by the active presets."""
        rules = [rule for preset in self.repository.fetch_tax_presets() for rule in preset.rules]
        input_data = RuleBasedInput(
            unit_prices=self.repository.fetch_unit_prices(deal_id),
            fees=self.repository.fetch_fees(deal_id),
            rules=rules,
            active_switches=normalize_switches(switches),
        )

        result = self.processor.process_rules(input_data)
        snapshot = self.repository.save_totals(deal_id, result.totals, expected_version)
        logger.info(
            f"Rule-based totals saved for deal {deal_id}: total_due={result.totals.total_due} "
            f"(v{snapshot.version}, {len(result.taxes)} tax line(s))"
        )
        return snapshot
