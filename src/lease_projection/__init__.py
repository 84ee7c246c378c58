"""
Lease Projection Engine

Multi-year financial projections for a school operating under a long-term
lease: historical actuals, a short transition bridge and a 25 or 30 year
contract period, with balanced statements in every year.

Main Components:
- Period calculators (Historical, Transition, Dynamic)
- Rent models (Fixed Escalation, Revenue Share, Partner Investment)
- CapEx and depreciation (historical stream plus purchased assets)
- Circular solver (interest <-> cash <-> debt)
- Financial statements (P&L, Balance Sheet, Cash Flow)
- Summary metrics (NPV, IRR, payback, annualized comparison)
"""

__version__ = "1.0.0"

from lease_projection.models.financial_model import (
    FinancialModel,
    calculate_financial_projections,
    validate_inputs,
)
from lease_projection.core.exceptions import (
    CalculationTimeoutError,
    ConfigurationError,
    ConvergenceWarning,
    ValidationFailure,
)
from lease_projection.core.types import ProjectionInputs, ProjectionOutput, RentModel
from lease_projection.config import inputs_from_dict, inputs_to_dict, load_inputs
from lease_projection.worker import run_projection_in_worker

__all__ = [
    # Main model
    'FinancialModel',
    'calculate_financial_projections',
    'validate_inputs',
    'run_projection_in_worker',

    # Inputs and outputs
    'ProjectionInputs',
    'ProjectionOutput',
    'RentModel',
    'load_inputs',
    'inputs_from_dict',
    'inputs_to_dict',

    # Errors
    'ConfigurationError',
    'ConvergenceWarning',
    'ValidationFailure',
    'CalculationTimeoutError',
]
