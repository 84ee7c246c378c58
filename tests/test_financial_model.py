"""
tests/test_financial_model.py
=============================
End-to-end projections: statement integrity in every year, determinism,
solver convergence, rent models and run-level output.
"""
import random
import warnings
from dataclasses import replace
from decimal import Decimal as D

import pytest

from conftest import make_dynamic_config
from lease_projection.core.exceptions import (
    ConfigurationError,
    ConvergenceWarning,
    ValidationFailure,
)
from lease_projection.core.serialization import output_to_dict
from lease_projection.core.types import (
    CapExCategory,
    CapExEntry,
    EnrollmentConfig,
    PartnerInvestmentParams,
    PeriodType,
    RentModel,
    RevenueShareParams,
    SolverSettings,
    SystemConfiguration,
)
from lease_projection.financial_statements.statement_builder import OpeningBalances
from lease_projection.financial_statements.validators import validate_period_linkage
from lease_projection.models.financial_model import (
    FinancialModel,
    calculate_financial_projections,
    validate_inputs,
)

TOLERANCE = D('0.01')
# Solver passes allowed per year at realistic rates
REALISTIC_ITERATION_BOUND = 20


def _assert_statements_hold(output):
    for period in output.periods:
        bs = period.balance_sheet
        cf = period.cash_flow
        assert abs(bs.total_assets - (bs.total_liabilities + bs.total_equity)) < TOLERANCE, period.year
        assert abs(cf.ending_cash - bs.cash) < TOLERANCE, period.year
        assert bs.debt_balance >= D('0'), period.year
        assert period.profit_loss.net_income == cf.net_income


@pytest.fixture
def output(sample_inputs):
    return calculate_financial_projections(sample_inputs)


class TestLayout:
    def test_years(self, sample_inputs):
        layout = validate_inputs(sample_inputs)
        assert layout.historical_years == [2022, 2023]
        assert layout.transition_years == [2024, 2025, 2026]
        assert layout.dynamic_years == list(range(2027, 2052))
        assert layout.first_dynamic_year == 2027

    def test_period_types(self, output):
        types = [p.period_type for p in output.periods]
        assert types[:2] == [PeriodType.HISTORICAL] * 2
        assert types[2:5] == [PeriodType.TRANSITION] * 3
        assert types[5:] == [PeriodType.DYNAMIC] * 25
        assert [p.year for p in output.periods] == list(range(2022, 2052))


class TestStatementIntegrity:
    def test_every_year_balances_and_reconciles(self, output):
        _assert_statements_hold(output)
        assert output.validation.is_valid
        assert output.validation.all_periods_balanced
        assert output.validation.all_cash_flows_reconciled
        assert output.validation.max_balance_difference < TOLERANCE
        output.raise_for_validation()

    def test_equity_rolls_forward(self, output):
        for prior, current in zip(output.periods[1:], output.periods[2:]):
            expected = prior.balance_sheet.total_equity + current.profit_loss.net_income
            assert abs(current.balance_sheet.total_equity - expected) < TOLERANCE

    def test_cash_rolls_forward(self, output):
        for prior, current in zip(output.periods, output.periods[1:]):
            assert current.cash_flow.beginning_cash == prior.balance_sheet.cash

    def test_minimum_cash_respected(self, output):
        for period in output.periods[2:]:
            assert period.balance_sheet.cash >= D('1000000')


class TestPeriodLinkage:
    def test_projected_years_are_linked(self, output):
        assert output.validation.all_periods_linked
        for prior, current in zip(output.periods[1:], output.periods[2:]):
            assert current.linked_to_prior
            assert validate_period_linkage(prior, current) == []

    def test_broken_cash_continuity(self, output):
        prior, current = output.periods[5], output.periods[6]
        cf = current.cash_flow
        broken = replace(current, cash_flow=replace(cf, beginning_cash=cf.beginning_cash + D('500')))
        errors = validate_period_linkage(prior, broken)
        assert len(errors) == 1
        assert 'beginning cash' in errors[0]

    def test_broken_equity_continuity(self, output):
        prior, current = output.periods[5], output.periods[6]
        bs = current.balance_sheet
        broken = replace(current, balance_sheet=replace(
            bs, retained_earnings=bs.retained_earnings - D('1000')))
        errors = validate_period_linkage(prior, broken)
        assert len(errors) == 1
        assert 'retained earnings' in errors[0]

    def test_year_gap(self, output):
        prior, current = output.periods[5], output.periods[7]
        errors = validate_period_linkage(prior, current)
        assert any('does not follow' in e for e in errors)

    def test_broken_opening_state_is_recorded(self, sample_inputs, monkeypatch):
        carry_forward = OpeningBalances.from_period

        def skewed(cls, period):
            opening = carry_forward(period)
            return replace(opening, cash=opening.cash + D('1000'))

        monkeypatch.setattr(OpeningBalances, 'from_period', classmethod(skewed))
        output = calculate_financial_projections(sample_inputs)

        assert not output.validation.all_periods_linked
        assert not output.validation.is_valid
        projected = [p for p in output.periods if p.period_type is not PeriodType.HISTORICAL]
        assert all(not p.linked_to_prior for p in projected)
        assert any('beginning cash' in issue for issue in output.validation.issues[2024])
        with pytest.raises(ValidationFailure):
            output.raise_for_validation()


class TestDeterminism:
    def test_identical_runs(self, sample_inputs):
        first = output_to_dict(calculate_financial_projections(sample_inputs))
        second = output_to_dict(calculate_financial_projections(sample_inputs))
        first.pop('performance')
        second.pop('performance')
        assert first == second

    def test_rebuild_same_model(self, sample_inputs):
        model = FinancialModel(sample_inputs)
        assert model.build_model().periods == model.build_model().periods


class TestConvergence:
    def test_all_years_converge(self, output, sample_inputs):
        max_iterations = sample_inputs.solver_settings.max_iterations
        assert output.converged
        assert output.validation.non_converged_years == []
        for period in output.periods[2:]:
            assert 1 <= period.iterations_required <= max_iterations
            assert period.iterations_required <= REALISTIC_ITERATION_BOUND

    def test_randomized_rates(self, sample_inputs):
        rng = random.Random(20240601)
        for _ in range(5):
            config = SystemConfiguration(
                zakat_rate=D(str(round(rng.uniform(0, 0.05), 4))),
                debt_interest_rate=D(str(round(rng.uniform(0.02, 0.10), 4))),
                deposit_interest_rate=D(str(round(rng.uniform(0, 0.05), 4))),
                min_cash_balance=D(str(rng.randrange(0, 5000000, 100000))),
                discount_rate=D(str(round(rng.uniform(0.03, 0.12), 4))),
            )
            output = calculate_financial_projections(replace(sample_inputs, system_config=config))
            assert output.converged
            assert all(p.iterations_required <= REALISTIC_ITERATION_BOUND
                       for p in output.periods)
            _assert_statements_hold(output)

    def test_iteration_limit_flags_years(self, sample_inputs):
        inputs = replace(sample_inputs, solver_settings=SolverSettings(max_iterations=1))
        with pytest.warns(ConvergenceWarning):
            output = calculate_financial_projections(inputs)
        assert not output.converged
        assert output.validation.non_converged_years == list(range(2024, 2052))
        # Last-iteration values are still internally consistent
        assert output.validation.is_valid

    def test_performance_summary(self, output):
        performance = output.performance
        assert performance.total_iterations == sum(p.iterations_required for p in output.periods)
        assert performance.average_iterations_per_year == D(performance.total_iterations) / D('28')
        assert performance.elapsed_seconds >= 0


class TestRentInProjection:
    def test_fixed_escalation_from_first_dynamic_year(self, output):
        assert output.period(2027).profit_loss.rent_expense == D('11000000')
        assert output.period(2028).profit_loss.rent_expense == D('11330000')

    def test_transition_escalates_historical_rent(self, output):
        assert output.period(2024).profit_loss.rent_expense == D('10300000')
        assert output.period(2025).profit_loss.rent_expense == D('10609000')

    def test_revenue_share(self, sample_inputs):
        inputs = replace(sample_inputs, rent_model=RentModel.REVENUE_SHARE,
                         rent_params=RevenueShareParams(revenue_share_percent=D('0.15')))
        output = calculate_financial_projections(inputs)
        for period in output.periods[2:]:
            pl = period.profit_loss
            assert abs(pl.rent_expense - D('0.15') * pl.total_revenue) < TOLERANCE
        _assert_statements_hold(output)

    def test_partner_investment(self, sample_inputs):
        params = PartnerInvestmentParams(
            land_size=D('10000'), land_price_per_sqm=D('5000'),
            bua_size=D('20000'), construction_cost_per_sqm=D('2500'),
            yield_rate=D('0.09'), growth_rate=D('0.02'), frequency_years=3,
        )
        inputs = replace(sample_inputs, rent_model=RentModel.PARTNER_INVESTMENT,
                         rent_params=params)
        output = calculate_financial_projections(inputs)
        assert output.period(2027).profit_loss.rent_expense == D('9000000')
        assert output.period(2030).profit_loss.rent_expense == D('9180000')
        _assert_statements_hold(output)

    def test_rent_model_by_name(self, sample_inputs):
        inputs = replace(sample_inputs, rent_model='fixed_escalation')
        output = calculate_financial_projections(inputs)
        assert output.period(2027).profit_loss.rent_expense == D('11000000')


class TestEdgeCases:
    def test_zero_enrollment(self, sample_inputs):
        inputs = replace(sample_inputs, dynamic_config=make_dynamic_config(0))
        with warnings.catch_warnings():
            warnings.simplefilter('error', ConvergenceWarning)
            output = calculate_financial_projections(inputs)

        for period in output.periods[5:]:
            assert period.profit_loss.total_revenue == D('0')
            assert period.profit_loss.zakat_expense == D('0')
        _assert_statements_hold(output)
        assert output.converged
        assert output.metrics.peak_debt == output.periods[-1].balance_sheet.debt_balance
        assert output.periods[-1].balance_sheet.cash == D('1000000')

    def test_thirty_year_contract(self, sample_inputs):
        output = calculate_financial_projections(replace(sample_inputs, contract_period_years=30))
        assert output.periods[-1].year == 2056
        _assert_statements_hold(output)

    def test_supplied_working_capital_ratios(self, sample_inputs):
        from lease_projection.core.types import WorkingCapitalRatios
        ratios = WorkingCapitalRatios(ar_percent=D('0.05'), ap_percent=D('0.10'))
        output = calculate_financial_projections(replace(sample_inputs,
                                                         working_capital_ratios=ratios))
        period = output.period(2030)
        expected_ar = D('0.05') * period.profit_loss.total_revenue
        assert abs(period.balance_sheet.accounts_receivable - expected_ar) < TOLERANCE
        assert period.profit_loss.other_revenue == D('0')
        _assert_statements_hold(output)


class TestInputValidation:
    def test_unsupported_contract_period(self, sample_inputs):
        with pytest.raises(ConfigurationError):
            FinancialModel(replace(sample_inputs, contract_period_years=20))

    def test_missing_rent_field(self, sample_inputs):
        inputs = replace(sample_inputs, rent_model=RentModel.REVENUE_SHARE,
                         rent_params=RevenueShareParams())
        with pytest.raises(ConfigurationError) as exc:
            calculate_financial_projections(inputs)
        assert exc.value.field == 'revenue_share_percent'

    def test_unknown_rent_model(self, sample_inputs):
        with pytest.raises(ConfigurationError):
            FinancialModel(replace(sample_inputs, rent_model='GROUND_LEASE'))

    def test_ramp_plan_length_mismatch(self, sample_inputs):
        config = replace(sample_inputs.dynamic_config, enrollment=EnrollmentConfig(
            steady_state_students=1500, ramp_up_enabled=True, ramp_up_end_year=2030,
            ramp_plan_percentages=[D('0.5'), D('1.0')]))
        with pytest.raises(ConfigurationError):
            FinancialModel(replace(sample_inputs, dynamic_config=config))

    def test_transition_capex_outside_window(self, sample_inputs):
        inputs = replace(sample_inputs, transition_capex=[
            CapExEntry(2028, CapExCategory.FURNITURE, D('100000'))])
        with pytest.raises(ConfigurationError) as exc:
            FinancialModel(inputs)
        assert exc.value.field == 'transition_capex'

    def test_dynamic_capex_outside_contract(self, sample_inputs):
        inputs = replace(sample_inputs, dynamic_capex=[
            CapExEntry(2060, CapExCategory.BUILDING, D('100000'))])
        with pytest.raises(ConfigurationError):
            FinancialModel(inputs)

    def test_negative_rate(self, sample_inputs):
        inputs = replace(sample_inputs,
                         system_config=SystemConfiguration(debt_interest_rate=D('-0.01')))
        with pytest.raises(ConfigurationError) as exc:
            FinancialModel(inputs)
        assert exc.value.field == 'debt_interest_rate'


class TestOutput:
    def test_metrics(self, output):
        m = output.metrics
        contract = [p for p in output.periods if p.period_type is PeriodType.DYNAMIC]
        total_rent = sum((p.profit_loss.rent_expense for p in contract), D('0'))
        assert abs(m.contract_total_rent - total_rent) < TOLERANCE
        total_ebitda = sum((p.profit_loss.ebitda for p in output.periods), D('0'))
        assert abs(m.total_ebitda - total_ebitda) < TOLERANCE
        surplus = m.contract_annualized_ebitda - m.contract_annualized_rent
        assert abs(m.net_tenant_surplus - surplus) < TOLERANCE
        assert m.final_cash == output.periods[-1].balance_sheet.cash
        assert m.contract_final_cash == m.final_cash

    def test_contract_net_surplus(self, output):
        m = output.metrics
        assert m.contract_rent_npv > D('0')
        expected = m.contract_ebitda_npv - m.contract_rent_npv
        assert abs(m.contract_net_tenant_surplus - expected) < TOLERANCE
        # Same sign as the annualized surplus; the factor is positive
        assert (m.contract_net_tenant_surplus > 0) == (m.net_tenant_surplus > 0)

    def test_dataframe(self, output):
        df = output.to_dataframe()
        assert len(df) == 30
        assert df.index[0] == 2022
        assert 'cf_net_change_in_cash' in df.columns
        assert df.loc[2027, 'period_type'] == 'DYNAMIC'

    def test_period_lookup(self, output):
        assert output.period(2030).year == 2030
        with pytest.raises(KeyError):
            output.period(1999)

    def test_verbose_prints_progress(self, sample_inputs, capsys):
        calculate_financial_projections(sample_inputs, verbose=True)
        captured = capsys.readouterr().out
        assert 'LEASE PROJECTION' in captured
        assert 'Building dynamic period 2051' in captured
