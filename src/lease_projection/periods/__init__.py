# src/lease_projection/periods/__init__.py
"""
Period Calculators

Pre-financing operating figures for historical, transition and dynamic years.
"""

from .rent_models import calculate_rent, parse_rent_model, validate_rent_params
from .transition import TransitionPeriodCalculator
from .dynamic import DynamicPeriodCalculator

__all__ = [
    'calculate_rent',
    'parse_rent_model',
    'validate_rent_params',
    'TransitionPeriodCalculator',
    'DynamicPeriodCalculator',
]
