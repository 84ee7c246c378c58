# src/lease_projection/core/__init__.py
"""
Core Components

Decimal arithmetic, domain types, error taxonomy, summary metrics and
serialization shared by every other module.
"""

from .exceptions import (
    CalculationTimeoutError,
    ConfigurationError,
    ConvergenceWarning,
    ValidationFailure,
)
from .decimal_utils import calculation_context, to_decimal
from .valuation import (
    MetricsCalculator,
    calculate_annualization_factor,
    calculate_irr,
    calculate_npv,
    calculate_payback_period,
)

__all__ = [
    'ConfigurationError',
    'ConvergenceWarning',
    'ValidationFailure',
    'CalculationTimeoutError',
    'calculation_context',
    'to_decimal',
    'MetricsCalculator',
    'calculate_npv',
    'calculate_irr',
    'calculate_payback_period',
    'calculate_annualization_factor',
]
