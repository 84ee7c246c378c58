# src/lease_projection/capex/__init__.py
"""
CapEx Module

Purchases, automatic reinvestment and straight-line depreciation.
"""

from .depreciation import CapExVirtualAsset, HistoricalDepreciationState
from .capex_calculator import CapExCalculator, CapExYearResult

__all__ = [
    'CapExVirtualAsset',
    'HistoricalDepreciationState',
    'CapExCalculator',
    'CapExYearResult',
]
