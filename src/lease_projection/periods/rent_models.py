# src/lease_projection/periods/rent_models.py
"""
Rent Models

Three mutually exclusive ways to set annual rent:

- Fixed Escalation: base rent compounding every N years
      rent = base_rent * (1 + g) ** floor((year - base_year) / N)
- Revenue Share: flat share of total revenue, never escalated
      rent = revenue_share_percent * total_revenue
- Partner Investment: yield on the partner's land + construction outlay
      investment = land_size * land_price + bua_size * construction_cost
      rent = investment * yield_rate * (1 + g) ** floor((year - base_year) / N)

All rates are fractions (0.09 = 9%).
"""

from decimal import Decimal
from typing import Optional

from ..core.constants import ONE, ZERO
from ..core.decimal_utils import compound, escalation_steps
from ..core.exceptions import ConfigurationError
from ..core.types import (
    FixedEscalationParams,
    PartnerInvestmentParams,
    RENT_PARAM_TYPES,
    RentModel,
    RentParams,
    RevenueShareParams,
)

_REQUIRED_FIELDS = {
    RentModel.FIXED_ESCALATION: ('base_rent', 'growth_rate', 'frequency_years'),
    RentModel.REVENUE_SHARE: ('revenue_share_percent',),
    RentModel.PARTNER_INVESTMENT: (
        'land_size', 'land_price_per_sqm', 'bua_size',
        'construction_cost_per_sqm', 'yield_rate', 'growth_rate',
        'frequency_years',
    ),
}


def parse_rent_model(value) -> RentModel:
    """Accept a RentModel or its name; anything else is a configuration error."""
    if isinstance(value, RentModel):
        return value
    try:
        return RentModel(str(value).upper())
    except ValueError:
        valid = ', '.join(m.value for m in RentModel)
        raise ConfigurationError(
            f"Unknown rent model {value!r}; expected one of {valid}",
            field='rent_model') from None


def _require_fraction(value: Decimal, name: str, upper: Decimal = ONE) -> None:
    if not ZERO <= value <= upper:
        raise ConfigurationError(
            f"{name} must be a fraction between 0 and {upper}, got {value}",
            field=name)


def validate_rent_params(rent_model: RentModel, params: Optional[RentParams]) -> None:
    """
    Check that the parameters match the selected model and are complete.

    Raises:
        ConfigurationError: Naming the first missing or invalid field
    """
    if params is None:
        raise ConfigurationError(
            f"Rent model {rent_model.value} requires rent_params", field='rent_params')

    expected = RENT_PARAM_TYPES[rent_model]
    if not isinstance(params, expected):
        raise ConfigurationError(
            f"Rent model {rent_model.value} requires {expected.__name__}, "
            f"got {type(params).__name__}", field='rent_params')

    for name in _REQUIRED_FIELDS[rent_model]:
        if getattr(params, name) is None:
            raise ConfigurationError(
                f"Missing required field '{name}' for rent model {rent_model.value}",
                field=name)

    if rent_model is RentModel.REVENUE_SHARE:
        _require_fraction(params.revenue_share_percent, 'revenue_share_percent')
        return

    if params.frequency_years < 1:
        raise ConfigurationError(
            f"frequency_years must be at least 1, got {params.frequency_years}",
            field='frequency_years')
    if params.growth_rate < ZERO:
        raise ConfigurationError(
            f"growth_rate must not be negative, got {params.growth_rate}",
            field='growth_rate')

    if rent_model is RentModel.FIXED_ESCALATION:
        if params.base_rent < ZERO:
            raise ConfigurationError(
                f"base_rent must not be negative, got {params.base_rent}",
                field='base_rent')
        return

    for name in ('land_size', 'land_price_per_sqm', 'bua_size', 'construction_cost_per_sqm'):
        if getattr(params, name) < ZERO:
            raise ConfigurationError(f"{name} must not be negative", field=name)
    # Whole-number percentages (9 for 9%) are translated before reaching the engine
    _require_fraction(params.yield_rate, 'yield_rate')


def calculate_fixed_escalation_rent(params: FixedEscalationParams, year: int,
                                    base_year: int) -> Decimal:
    """
    Fixed escalation rent for ``year``.

    Examples:
        base 10,000,000 at 3% every year: base_year + 1 -> 10,300,000,
        base_year + 2 -> 10,609,000
    """
    steps = escalation_steps(year, base_year, params.frequency_years)
    return compound(params.base_rent, params.growth_rate, steps)


def calculate_revenue_share_rent(params: RevenueShareParams,
                                 total_revenue: Decimal) -> Decimal:
    return params.revenue_share_percent * total_revenue


def calculate_partner_base_rent(params: PartnerInvestmentParams) -> Decimal:
    """Rent before any growth: total investment * yield."""
    return params.total_investment * params.yield_rate


def calculate_partner_investment_rent(params: PartnerInvestmentParams, year: int,
                                      base_year: int) -> Decimal:
    steps = escalation_steps(year, base_year, params.frequency_years)
    return compound(calculate_partner_base_rent(params), params.growth_rate, steps)


def calculate_rent(rent_model: RentModel, params: RentParams, year: int,
                   base_year: int, total_revenue: Decimal) -> Decimal:
    """
    Dispatch to the active rent model.

    Args:
        rent_model: Active model
        params: Parameters for that model
        year: Year being calculated
        base_year: Year in which base rent applies unescalated
        total_revenue: Year's total revenue (revenue share only)

    Returns:
        Annual rent
    """
    if rent_model is RentModel.FIXED_ESCALATION:
        return calculate_fixed_escalation_rent(params, year, base_year)
    if rent_model is RentModel.REVENUE_SHARE:
        return calculate_revenue_share_rent(params, total_revenue)
    if rent_model is RentModel.PARTNER_INVESTMENT:
        return calculate_partner_investment_rent(params, year, base_year)
    raise ConfigurationError(f"Unsupported rent model {rent_model!r}", field='rent_model')


def escalate_prior_rent(rent_model: RentModel, params: RentParams, prior_rent: Decimal,
                        year: int, reference_year: int, total_revenue: Decimal) -> Decimal:
    """
    Apply the active model to the prior year's rent.

    Escalating models grow prior rent by their growth rate on years where
    (year - reference_year) is a multiple of the frequency; revenue share
    is recomputed from the year's revenue.
    """
    if rent_model is RentModel.REVENUE_SHARE:
        return calculate_revenue_share_rent(params, total_revenue)
    elapsed = year - reference_year
    if elapsed > 0 and elapsed % params.frequency_years == 0:
        return prior_rent * (ONE + params.growth_rate)
    return prior_rent
