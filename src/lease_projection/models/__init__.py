# src/lease_projection/models/__init__.py
"""
Financial Models Module
"""

from .working_capital import WorkingCapitalBalances, WorkingCapitalModel
from .financial_model import FinancialModel, calculate_financial_projections

__all__ = [
    'WorkingCapitalBalances',
    'WorkingCapitalModel',
    'FinancialModel',
    'calculate_financial_projections',
]
