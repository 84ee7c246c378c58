# src/lease_projection/core/constants.py
"""
Engine-wide constants and defaults.

Rates are expressed as fractions (0.05 = 5%). Amounts are in the proposal's
base currency.
"""

from decimal import Decimal

ZERO = Decimal("0")
ONE = Decimal("1")
MONTHS_PER_YEAR = Decimal("12")

# Decimal context used for every calculation run
DECIMAL_PRECISION = 28

# ============================================
# SYSTEM CONFIGURATION DEFAULTS
# ============================================

DEFAULT_ZAKAT_RATE = Decimal("0.025")
DEFAULT_DEBT_INTEREST_RATE = Decimal("0.05")
DEFAULT_DEPOSIT_INTEREST_RATE = Decimal("0.02")
DEFAULT_MIN_CASH_BALANCE = Decimal("1000000")
DEFAULT_DISCOUNT_RATE = Decimal("0.08")

# ============================================
# CIRCULAR SOLVER DEFAULTS
# ============================================

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_CONVERGENCE_TOLERANCE = Decimal("0.01")
DEFAULT_RELAXATION_FACTOR = Decimal("0.5")

# ============================================
# VALIDATION TOLERANCES
# ============================================

BALANCE_TOLERANCE = Decimal("0.01")
CASH_RECONCILIATION_TOLERANCE = Decimal("0.01")

# ============================================
# PERIODS
# ============================================

TRANSITION_YEAR_COUNT = 3
SUPPORTED_CONTRACT_PERIODS = (25, 30)
DEFAULT_CONTRACT_PERIOD_YEARS = 30

# ============================================
# CAPEX
# ============================================

MIN_REINVEST_FREQUENCY = 1
MAX_REINVEST_FREQUENCY = 30

# Default useful lives per spending category (years)
DEFAULT_USEFUL_LIVES = {
    "IT_EQUIPMENT": 5,
    "FURNITURE": 10,
    "EDUCATIONAL_EQUIPMENT": 7,
    "BUILDING": 40,
}

# Run-level timeout for isolated worker execution (seconds)
DEFAULT_CALCULATION_TIMEOUT = 30.0
