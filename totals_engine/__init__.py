"""
DEAL TOTALS ENGINE
Subtotal, discount, fee, tax and commission-base computation for dealership deals
"""

from .errors import ConfigurationError, ValidationError
from .models import DealTotals, DealTotalsInput, Fee, FeeKind, RuleBasedInput, TaxPresetRule
from .processor import TotalsProcessor, compute_totals, compute_totals_from_rules

__all__ = [
    'TotalsProcessor',
    'DealTotalsInput',
    'RuleBasedInput',
    'DealTotals',
    'Fee',
    'FeeKind',
    'TaxPresetRule',
    'ValidationError',
    'ConfigurationError',
    'compute_totals',
    'compute_totals_from_rules',
]
