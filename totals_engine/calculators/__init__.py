"""
Calculators Package

Provides all calculation components for deal totals.
"""

from .fees import FeeAggregator
from .rules import PresetRuleEvaluator
from .subtotal import SubtotalCalculator
from .tax import TaxCalculator
from .total import TotalDueCalculator

__all__ = [
    "SubtotalCalculator",
    "FeeAggregator",
    "TaxCalculator",
    "PresetRuleEvaluator",
    "TotalDueCalculator",
]
