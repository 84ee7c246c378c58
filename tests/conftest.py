"""
tests/conftest.py
=================
Shared pytest fixtures for the lease projection test suite.
"""
import os
import sys
from decimal import Decimal as D
from pathlib import Path

# Add src/ to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

import pytest

from lease_projection.core.types import (
    CapExCategory,
    CapExCategoryConfig,
    CapExEntry,
    CurriculumConfig,
    CurriculumTrack,
    DynamicPeriodConfig,
    EnrollmentConfig,
    FixedEscalationParams,
    HistoricalYearRecord,
    ProjectionInputs,
    RentModel,
    StaffConfig,
    SystemConfiguration,
    TransitionYearInput,
)

SAMPLE_SCENARIO = Path(__file__).resolve().parent.parent / 'src' / 'lease_projection' / 'data' / 'sample_scenario.yaml'


def make_historical_years():
    """Two balanced historical years (assets = liabilities + equity)."""
    return [
        HistoricalYearRecord(
            year=2022,
            tuition_revenue=D('46000000'), other_revenue=D('1800000'),
            rent_expense=D('10000000'), staff_costs=D('18500000'), other_opex=D('7500000'),
            depreciation=D('1500000'), interest_expense=D('300000'), zakat_expense=D('250000'),
            cash=D('4000000'), accounts_receivable=D('1800000'), prepaid_expenses=D('450000'),
            gross_ppe=D('28000000'), accumulated_depreciation=D('10500000'),
            accounts_payable=D('1400000'), accrued_expenses=D('900000'),
            deferred_revenue=D('2800000'), debt_balance=D('6000000'),
            total_equity=D('12650000'),
        ),
        HistoricalYearRecord(
            year=2023,
            tuition_revenue=D('50000000'), other_revenue=D('2000000'),
            rent_expense=D('10000000'), staff_costs=D('20000000'), other_opex=D('8000000'),
            depreciation=D('1500000'), interest_expense=D('250000'), zakat_expense=D('300000'),
            cash=D('5000000'), accounts_receivable=D('2000000'), prepaid_expenses=D('500000'),
            gross_ppe=D('30000000'), accumulated_depreciation=D('12000000'),
            accounts_payable=D('1500000'), accrued_expenses=D('1000000'),
            deferred_revenue=D('3000000'), debt_balance=D('5000000'),
            total_equity=D('15000000'),
        ),
    ]


def make_transition_years():
    return [
        TransitionYearInput(year=2024, revenue_growth_rate=D('0.05')),
        TransitionYearInput(year=2025, number_of_students=1300,
                            average_tuition_per_student=D('42000'),
                            staff_costs_ratio=D('0.38')),
        TransitionYearInput(year=2026, prefill_from_prior_year=True,
                            prefill_growth_rate=D('0.03')),
    ]


def make_dynamic_config(steady_state_students=1500):
    return DynamicPeriodConfig(
        enrollment=EnrollmentConfig(steady_state_students=steady_state_students),
        curriculum=CurriculumConfig(
            primary=CurriculumTrack(base_tuition=D('42000'), growth_rate=D('0.03'),
                                    frequency_years=2),
        ),
        staff=StaffConfig(staff_cost_ratio=D('0.40')),
        other_opex=D('9000000'),
    )


def make_capex_categories():
    return [
        CapExCategoryConfig(CapExCategory.IT_EQUIPMENT, 5, auto_reinvest_enabled=True,
                            reinvest_frequency_years=5, reinvest_amount=D('2000000')),
        CapExCategoryConfig(CapExCategory.FURNITURE, 10),
        CapExCategoryConfig(CapExCategory.EDUCATIONAL_EQUIPMENT, 7, auto_reinvest_enabled=True,
                            reinvest_frequency_years=7, reinvest_amount=D('1500000')),
        CapExCategoryConfig(CapExCategory.BUILDING, 40),
    ]


@pytest.fixture
def historical_years():
    return make_historical_years()


@pytest.fixture
def sample_inputs():
    """Complete 25-year fixed escalation scenario (2022-2051)."""
    return ProjectionInputs(
        historical_years=make_historical_years(),
        transition_years=make_transition_years(),
        dynamic_config=make_dynamic_config(),
        rent_model=RentModel.FIXED_ESCALATION,
        rent_params=FixedEscalationParams(base_rent=D('11000000'), growth_rate=D('0.03'),
                                          frequency_years=1),
        system_config=SystemConfiguration(),
        contract_period_years=25,
        capex_categories=make_capex_categories(),
        transition_capex=[CapExEntry(2025, CapExCategory.FURNITURE, D('1500000'))],
        dynamic_capex=[CapExEntry(2030, CapExCategory.BUILDING, D('10000000'))],
    )


@pytest.fixture
def sample_scenario_path():
    return SAMPLE_SCENARIO
