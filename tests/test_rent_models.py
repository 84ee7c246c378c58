"""
tests/test_rent_models.py
=========================
Rent model formulas, parameter validation and transition escalation.
"""
from decimal import Decimal as D

import pytest

from lease_projection.core.exceptions import ConfigurationError
from lease_projection.core.types import (
    FixedEscalationParams,
    PartnerInvestmentParams,
    RentModel,
    RevenueShareParams,
)
from lease_projection.periods.rent_models import (
    calculate_fixed_escalation_rent,
    calculate_partner_base_rent,
    calculate_partner_investment_rent,
    calculate_rent,
    escalate_prior_rent,
    parse_rent_model,
    validate_rent_params,
)


@pytest.fixture
def fixed_params():
    return FixedEscalationParams(base_rent=D('10000000'), growth_rate=D('0.03'),
                                 frequency_years=1)


@pytest.fixture
def partner_params():
    return PartnerInvestmentParams(
        land_size=D('10000'), land_price_per_sqm=D('5000'),
        bua_size=D('20000'), construction_cost_per_sqm=D('2500'),
        yield_rate=D('0.09'), growth_rate=D('0.02'), frequency_years=3,
    )


class TestFixedEscalation:
    def test_base_year_is_unescalated(self, fixed_params):
        assert calculate_fixed_escalation_rent(fixed_params, 2027, 2027) == D('10000000')

    def test_first_escalation(self, fixed_params):
        assert calculate_fixed_escalation_rent(fixed_params, 2028, 2027) == D('10300000')

    def test_second_escalation(self, fixed_params):
        assert calculate_fixed_escalation_rent(fixed_params, 2029, 2027) == D('10609000')

    def test_stepwise_with_frequency(self):
        params = FixedEscalationParams(base_rent=D('10000000'), growth_rate=D('0.03'),
                                       frequency_years=2)
        assert calculate_fixed_escalation_rent(params, 2028, 2027) == D('10000000')
        assert calculate_fixed_escalation_rent(params, 2029, 2027) == D('10300000')
        assert calculate_fixed_escalation_rent(params, 2030, 2027) == D('10300000')


class TestRevenueShare:
    def test_share_of_revenue(self):
        params = RevenueShareParams(revenue_share_percent=D('0.10'))
        rent = calculate_rent(RentModel.REVENUE_SHARE, params, 2030, 2027, D('75000000'))
        assert rent == D('7500000')

    def test_zero_revenue_gives_zero_rent(self):
        params = RevenueShareParams(revenue_share_percent=D('0.10'))
        assert calculate_rent(RentModel.REVENUE_SHARE, params, 2030, 2027, D('0')) == D('0')


class TestPartnerInvestment:
    def test_total_investment(self, partner_params):
        assert partner_params.total_investment == D('100000000')

    def test_base_rent_is_investment_times_yield(self, partner_params):
        assert calculate_partner_base_rent(partner_params) == D('9000000')

    def test_escalates_every_frequency_years(self, partner_params):
        assert calculate_partner_investment_rent(partner_params, 2029, 2027) == D('9000000')
        assert calculate_partner_investment_rent(partner_params, 2030, 2027) == D('9180000')


class TestValidation:
    def test_parse_by_name(self):
        assert parse_rent_model('revenue_share') is RentModel.REVENUE_SHARE
        assert parse_rent_model(RentModel.FIXED_ESCALATION) is RentModel.FIXED_ESCALATION

    def test_unknown_model(self):
        with pytest.raises(ConfigurationError) as exc:
            parse_rent_model('GROUND_LEASE')
        assert exc.value.field == 'rent_model'

    def test_missing_field_is_named(self):
        params = FixedEscalationParams(base_rent=D('10000000'), growth_rate=D('0.03'))
        with pytest.raises(ConfigurationError) as exc:
            validate_rent_params(RentModel.FIXED_ESCALATION, params)
        assert exc.value.field == 'frequency_years'
        assert 'frequency_years' in str(exc.value)

    def test_missing_params(self):
        with pytest.raises(ConfigurationError):
            validate_rent_params(RentModel.REVENUE_SHARE, None)

    def test_params_must_match_model(self, fixed_params):
        with pytest.raises(ConfigurationError):
            validate_rent_params(RentModel.REVENUE_SHARE, fixed_params)

    def test_whole_number_yield_rejected(self, partner_params):
        from dataclasses import replace
        params = replace(partner_params, yield_rate=D('9'))
        with pytest.raises(ConfigurationError) as exc:
            validate_rent_params(RentModel.PARTNER_INVESTMENT, params)
        assert exc.value.field == 'yield_rate'

    def test_share_above_one_rejected(self):
        with pytest.raises(ConfigurationError):
            validate_rent_params(RentModel.REVENUE_SHARE,
                                 RevenueShareParams(revenue_share_percent=D('15')))

    def test_zero_frequency_rejected(self):
        params = FixedEscalationParams(base_rent=D('1'), growth_rate=D('0.03'),
                                       frequency_years=0)
        with pytest.raises(ConfigurationError):
            validate_rent_params(RentModel.FIXED_ESCALATION, params)

    def test_valid_params_pass(self, fixed_params, partner_params):
        validate_rent_params(RentModel.FIXED_ESCALATION, fixed_params)
        validate_rent_params(RentModel.PARTNER_INVESTMENT, partner_params)


class TestPriorRentEscalation:
    def test_fixed_escalates_prior_rent(self, fixed_params):
        rent = escalate_prior_rent(RentModel.FIXED_ESCALATION, fixed_params, D('10000000'),
                                   2024, 2023, D('0'))
        assert rent == D('10300000')

    def test_off_cycle_year_keeps_prior_rent(self, partner_params):
        rent = escalate_prior_rent(RentModel.PARTNER_INVESTMENT, partner_params, D('9000000'),
                                   2025, 2023, D('0'))
        assert rent == D('9000000')

    def test_revenue_share_recomputes(self):
        params = RevenueShareParams(revenue_share_percent=D('0.10'))
        rent = escalate_prior_rent(RentModel.REVENUE_SHARE, params, D('9000000'),
                                   2024, 2023, D('60000000'))
        assert rent == D('6000000')
