"""
tests/test_solver.py
====================
Circular interest / zakat / debt / cash solver.
"""
import random
from decimal import Decimal as D

import pytest

from lease_projection.core.exceptions import ConfigurationError, ConvergenceWarning
from lease_projection.core.types import SolverSettings, SystemConfiguration
from lease_projection.financial_statements.income_statement import calculate_zakat
from lease_projection.solvers.circular import CircularSolver, CircularSolverInput


@pytest.fixture
def config():
    return SystemConfiguration(zakat_rate=D('0.025'), debt_interest_rate=D('0.05'),
                               deposit_interest_rate=D('0.02'), min_cash_balance=D('1000000'))


def _inputs(**overrides):
    values = dict(year=2027, ebitda=D('10000000'), depreciation=D('1000000'),
                  opening_cash=D('2000000'), opening_debt=D('0'),
                  working_capital_change=D('0'), capex=D('0'))
    values.update(overrides)
    return CircularSolverInput(**values)


class TestZakat:
    def test_positive_ebt(self):
        assert calculate_zakat(D('1000000'), D('0.025')) == D('25000')

    def test_negative_ebt_pays_nothing(self):
        assert calculate_zakat(D('-1000000'), D('0.025')) == D('0')


class TestCircularSolver:
    def test_surplus_earns_interest(self, config):
        result = CircularSolver(config).solve(_inputs())
        assert result.converged
        assert result.debt_balance == D('0')
        assert result.interest_expense == D('0')
        expected_income = (result.cash - D('1000000')) * D('0.02')
        assert abs(result.interest_income - expected_income) < D('0.05')

    def test_shortfall_issues_debt(self, config):
        result = CircularSolver(config).solve(
            _inputs(ebitda=D('-5000000'), opening_cash=D('0')))
        assert result.converged
        assert result.cash == D('1000000')
        assert result.debt_issuance > D('0')
        assert result.debt_balance == result.debt_issuance
        assert result.zakat_expense == D('0')
        assert abs(result.interest_expense - result.debt_balance * D('0.05')) < D('0.05')

    def test_surplus_repays_debt_first(self, config):
        result = CircularSolver(config).solve(
            _inputs(opening_debt=D('3000000'), opening_cash=D('1000000')))
        assert result.converged
        assert result.debt_repayment == D('3000000')
        assert result.debt_balance == D('0')
        assert result.cash > D('1000000')

    def test_partial_repayment_holds_min_cash(self, config):
        result = CircularSolver(config).solve(
            _inputs(opening_debt=D('50000000'), opening_cash=D('1000000')))
        assert result.converged
        assert result.cash == D('1000000')
        assert D('0') < result.debt_repayment < D('50000000')
        assert result.debt_balance == D('50000000') - result.debt_repayment

    def test_net_income_uses_reported_interest(self, config):
        result = CircularSolver(config).solve(
            _inputs(ebitda=D('-5000000'), opening_cash=D('0')))
        expected_ebt = (D('-5000000') - D('1000000') - result.interest_expense
                        + result.interest_income)
        assert result.ebt == expected_ebt
        assert result.net_income == result.ebt - result.zakat_expense

    def test_iteration_limit_warns(self, config):
        solver = CircularSolver(config, SolverSettings(max_iterations=1))
        with pytest.warns(ConvergenceWarning):
            result = solver.solve(_inputs(ebitda=D('-5000000'), opening_cash=D('0')))
        assert not result.converged
        assert result.iterations == 1

    def test_invalid_relaxation(self, config):
        with pytest.raises(ConfigurationError):
            CircularSolver(config, SolverSettings(relaxation_factor=D('0')))

    def test_invalid_iterations(self, config):
        with pytest.raises(ConfigurationError):
            CircularSolver(config, SolverSettings(max_iterations=0))


class TestConvergenceBound:
    """Realistic rates: debt <= 10%, deposits <= 5%, zakat 2.5%."""

    def _random_config(self, rng):
        return SystemConfiguration(
            zakat_rate=D('0.025'),
            debt_interest_rate=D(str(round(rng.uniform(0, 0.10), 4))),
            deposit_interest_rate=D(str(round(rng.uniform(0, 0.05), 4))),
            min_cash_balance=D(str(rng.randrange(0, 5000000, 50000))),
        )

    def _random_inputs(self, rng):
        return _inputs(
            ebitda=D(str(rng.randrange(-20000000, 40000000, 1000))),
            depreciation=D(str(rng.randrange(0, 5000000, 1000))),
            opening_cash=D(str(rng.randrange(0, 25000000, 1000))),
            opening_debt=D(str(rng.randrange(0, 80000000, 1000))),
            working_capital_change=D(str(rng.randrange(-3000000, 3000000, 1000))),
            capex=D(str(rng.randrange(0, 15000000, 1000))),
        )

    def test_randomized_combinations(self):
        rng = random.Random(7)
        for _ in range(300):
            config = self._random_config(rng)
            inputs = self._random_inputs(rng)
            result = CircularSolver(config).solve(inputs)
            assert result.converged, (config, inputs)
            assert result.iterations <= 20, (config, inputs, result.iterations)
            assert result.debt_balance >= D('0')
            assert result.cash >= config.min_cash_balance

    def test_steady_debt_converges_quickly(self, config):
        # Opening debt carried unchanged: the seeded estimate is already the answer
        result = CircularSolver(config).solve(_inputs(
            ebitda=D('2000000'), depreciation=D('2000000'), opening_cash=D('1000000'),
            opening_debt=D('40000000')))
        assert result.converged
        assert result.iterations <= 10

    def test_large_debt_issue(self, config):
        result = CircularSolver(config).solve(_inputs(
            ebitda=D('-30000000'), opening_cash=D('0'), opening_debt=D('60000000'),
            capex=D('10000000')))
        assert result.converged
        assert result.iterations <= 20
        assert abs(result.interest_expense - result.debt_balance * D('0.05')) < D('0.05')
