# src/lease_projection/solvers/circular.py
"""
Circular Dependency Solver

Within one year, interest expense depends on debt, debt absorbs the cash
shortfall, the shortfall depends on net income, and net income depends on
interest and zakat. The solver resolves this loop by damped fixed-point
iteration:

    EBT        = EBITDA - depreciation - interest expense + interest income
    zakat      = max(0, EBT) * zakat rate
    net income = EBT - zakat
    cash before financing = opening cash + operating cash flow - CapEx

    shortfall below min cash -> issue debt
    surplus above min cash   -> repay debt first (never below zero),
                                keep the rest as cash

    interest expense' = debt * debt rate
    interest income'  = max(0, cash - min cash) * deposit rate
    next = old + relaxation * (new - old)

Estimates start from the opening balances (opening debt at the debt rate,
opening excess cash at the deposit rate). Within one financing branch the
map is linear, so every third damped estimate is replaced by its Aitken
delta-squared extrapolation when the last two steps shrink in the same
direction.

Iteration stops when ending cash and ending debt both move by less than
the tolerance between successive iterations. The minimum-cash floor and
the issue/repay branches make the relationship piecewise, so there is no
closed form to fall back on.
"""

import warnings
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from ..core.constants import ONE, ZERO
from ..core.exceptions import ConfigurationError, ConvergenceWarning
from ..core.types import SolverSettings, SystemConfiguration
from ..financial_statements.income_statement import calculate_zakat


@dataclass(frozen=True)
class CircularSolverInput:
    """Pre-financing figures for one year."""
    year: int
    ebitda: Decimal
    depreciation: Decimal
    opening_cash: Decimal
    opening_debt: Decimal
    # Cash released (+) or absorbed (-) by working capital movements
    working_capital_change: Decimal
    capex: Decimal


@dataclass(frozen=True)
class CircularSolverResult:
    """Resolved financing figures for one year."""
    converged: bool
    iterations: int
    final_difference: Decimal
    interest_expense: Decimal
    interest_income: Decimal
    net_interest: Decimal
    zakat_expense: Decimal
    debt_balance: Decimal
    debt_issuance: Decimal
    debt_repayment: Decimal
    ebt: Decimal
    net_income: Decimal
    operating_cash_flow: Decimal
    cash: Decimal


def _extrapolate(estimates: List[Decimal]) -> Decimal:
    """
    Aitken delta-squared step over three successive damped estimates.

    Returns the last estimate unchanged unless both steps point the same
    way and the second is smaller than the first.
    """
    x0, x1, x2 = estimates
    step1, step2 = x1 - x0, x2 - x1
    if step1 == ZERO or step2 == ZERO:
        return x2
    if (step1 > ZERO) != (step2 > ZERO) or abs(step2) >= abs(step1):
        return x2
    return max(ZERO, x2 - step2 * step2 / (step2 - step1))


class CircularSolver:
    """
    Damped fixed-point solver for interest, zakat, debt and cash.

    The loop is explicit and bounded by ``max_iterations``; a year that
    does not converge keeps its last iteration's values and is flagged.
    """

    def __init__(
        self,
        system_config: SystemConfiguration,
        settings: Optional[SolverSettings] = None,
        verbose: bool = False
    ):
        """
        Initialize the solver.

        Args:
            system_config: Rates and minimum cash balance
            settings: Iteration limit, tolerance and relaxation factor
            verbose: Print per-year convergence details
        """
        self.config = system_config
        self.settings = settings or SolverSettings()
        self.verbose = verbose

        s = self.settings
        if s.max_iterations < 1:
            raise ConfigurationError(
                f"max_iterations must be at least 1, got {s.max_iterations}",
                field='max_iterations')
        if s.convergence_tolerance <= ZERO:
            raise ConfigurationError(
                f"convergence_tolerance must be positive, got {s.convergence_tolerance}",
                field='convergence_tolerance')
        if not ZERO < s.relaxation_factor <= ONE:
            raise ConfigurationError(
                f"relaxation_factor must be in (0, 1], got {s.relaxation_factor}",
                field='relaxation_factor')

    def _apply_financing(self, cash_before_financing: Decimal,
                         opening_debt: Decimal) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
        """
        Resolve the minimum-cash floor against debt.

        Returns:
            Tuple of (ending cash, ending debt, issuance, repayment)
        """
        min_cash = self.config.min_cash_balance
        if cash_before_financing < min_cash:
            shortfall = min_cash - cash_before_financing
            return min_cash, opening_debt + shortfall, shortfall, ZERO

        surplus = cash_before_financing - min_cash
        repayment = min(surplus, opening_debt)
        return cash_before_financing - repayment, opening_debt - repayment, ZERO, repayment

    def solve(self, inputs: CircularSolverInput) -> CircularSolverResult:
        """
        Solve one year.

        Args:
            inputs: Pre-financing figures and opening balances

        Returns:
            CircularSolverResult; ``converged`` is False if the iteration
            limit was reached, in which case a ConvergenceWarning is issued
        """
        cfg = self.config
        tolerance = self.settings.convergence_tolerance
        relax = self.settings.relaxation_factor

        interest_expense = inputs.opening_debt * cfg.debt_interest_rate
        interest_income = (max(ZERO, inputs.opening_cash - cfg.min_cash_balance)
                           * cfg.deposit_interest_rate)
        expense_history = [interest_expense]
        income_history = [interest_income]
        previous_cash: Optional[Decimal] = None
        previous_debt: Optional[Decimal] = None
        difference = ZERO
        converged = False

        for iteration in range(1, self.settings.max_iterations + 1):
            used_expense, used_income = interest_expense, interest_income
            ebt = inputs.ebitda - inputs.depreciation - used_expense + used_income
            zakat = calculate_zakat(ebt, cfg.zakat_rate)
            net_income = ebt - zakat

            operating_cash_flow = net_income + inputs.depreciation + inputs.working_capital_change
            cash_before_financing = inputs.opening_cash + operating_cash_flow - inputs.capex
            cash, debt, issuance, repayment = self._apply_financing(
                cash_before_financing, inputs.opening_debt)

            if previous_cash is not None:
                difference = max(abs(cash - previous_cash), abs(debt - previous_debt))
                if difference < tolerance:
                    converged = True
                    break
            previous_cash, previous_debt = cash, debt

            new_interest_expense = debt * cfg.debt_interest_rate
            new_interest_income = max(ZERO, cash - cfg.min_cash_balance) * cfg.deposit_interest_rate
            interest_expense += relax * (new_interest_expense - interest_expense)
            interest_income += relax * (new_interest_income - interest_income)

            expense_history.append(interest_expense)
            income_history.append(interest_income)
            if len(expense_history) == 3:
                interest_expense = _extrapolate(expense_history)
                interest_income = _extrapolate(income_history)
                expense_history = [interest_expense]
                income_history = [interest_income]

        if self.verbose:
            status = "converged" if converged else "NOT converged"
            print(f"  Solver {inputs.year}: {status} after {iteration} iterations "
                  f"(difference {difference:.6f})")

        if not converged:
            warnings.warn(
                f"Circular solver did not converge for {inputs.year} within "
                f"{self.settings.max_iterations} iterations "
                f"(last difference {difference}); using last iteration values",
                ConvergenceWarning,
                stacklevel=2,
            )

        return CircularSolverResult(
            converged=converged,
            iterations=iteration,
            final_difference=difference,
            interest_expense=used_expense,
            interest_income=used_income,
            net_interest=used_income - used_expense,
            zakat_expense=zakat,
            debt_balance=debt,
            debt_issuance=issuance,
            debt_repayment=repayment,
            ebt=ebt,
            net_income=net_income,
            operating_cash_flow=operating_cash_flow,
            cash=cash,
        )
