# src/lease_projection/financial_statements/validators.py
"""
Cross-statement checks for a finished period.

Errors indicate an internal inconsistency between the statements;
warnings flag figures that are valid but worth a second look.
"""

from decimal import Decimal
from typing import List, Tuple

from ..core.constants import BALANCE_TOLERANCE, ZERO
from ..core.types import FinancialPeriod


def _statement_errors(period: FinancialPeriod, tolerance: Decimal) -> List[str]:
    bs = period.balance_sheet
    cf = period.cash_flow
    errors = []

    if abs(bs.balance_difference) >= tolerance:
        errors.append(f"{period.year}: balance sheet imbalance {bs.balance_difference}")

    if abs(cf.ending_cash - bs.cash) >= tolerance:
        errors.append(
            f"{period.year}: cash flow ending cash {cf.ending_cash} does not match "
            f"balance sheet cash {bs.cash}")

    if bs.debt_balance < ZERO:
        errors.append(f"{period.year}: negative debt balance {bs.debt_balance}")

    return errors


def validate_financial_period(
    period: FinancialPeriod,
    tolerance: Decimal = BALANCE_TOLERANCE,
    statement_checks: bool = True
) -> Tuple[List[str], List[str]]:
    """
    Check that the three statements of one year agree with each other.

    Args:
        period: Completed period
        tolerance: Maximum absolute difference
        statement_checks: Also repeat the balance, reconciliation and debt
            checks each statement performs on itself

    Returns:
        Tuple of (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []
    pl = period.profit_loss
    bs = period.balance_sheet
    cf = period.cash_flow

    if abs(pl.net_income - bs.net_income_current_year) >= tolerance:
        errors.append(
            f"{period.year}: net income differs between P&L ({pl.net_income}) "
            f"and balance sheet ({bs.net_income_current_year})")

    if abs(pl.net_income - cf.net_income) >= tolerance:
        errors.append(
            f"{period.year}: net income differs between P&L ({pl.net_income}) "
            f"and cash flow ({cf.net_income})")

    if abs(pl.depreciation - cf.depreciation) >= tolerance:
        errors.append(f"{period.year}: depreciation differs between P&L and cash flow")

    if statement_checks:
        errors.extend(_statement_errors(period, tolerance))

    if not period.converged:
        warnings.append(
            f"{period.year}: circular solver did not converge "
            f"after {period.iterations_required} iterations")

    if bs.cash < ZERO:
        warnings.append(f"{period.year}: negative cash balance {bs.cash}")

    if bs.total_equity < ZERO:
        warnings.append(f"{period.year}: negative equity {bs.total_equity}")

    if pl.total_revenue == ZERO:
        warnings.append(f"{period.year}: zero revenue")

    return errors, warnings


def validate_period_linkage(
    prior: FinancialPeriod,
    current: FinancialPeriod,
    tolerance: Decimal = BALANCE_TOLERANCE
) -> List[str]:
    """
    Check that a projected year opens where the prior year closed.

    Checks consecutive years, cash, equity brought forward, debt and PP&E
    roll-forwards.

    Args:
        prior: Previous period
        current: Period built from the prior period's closing balances
        tolerance: Maximum absolute difference

    Returns:
        List of errors (empty if linked)
    """
    errors: List[str] = []
    year = current.year
    prior_bs = prior.balance_sheet
    bs = current.balance_sheet
    cf = current.cash_flow

    if year != prior.year + 1:
        errors.append(f"{year}: does not follow {prior.year}")

    if abs(prior_bs.cash - cf.beginning_cash) >= tolerance:
        errors.append(
            f"{year}: beginning cash {cf.beginning_cash} differs from "
            f"{prior.year} closing cash {prior_bs.cash}")

    if abs(prior_bs.total_equity - bs.retained_earnings) >= tolerance:
        errors.append(
            f"{year}: retained earnings {bs.retained_earnings} differ from "
            f"{prior.year} closing equity {prior_bs.total_equity}")

    expected_debt = prior_bs.debt_balance + cf.debt_issuance - cf.debt_repayment
    if abs(expected_debt - bs.debt_balance) >= tolerance:
        errors.append(
            f"{year}: debt {bs.debt_balance} does not roll forward from "
            f"{prior.year} ({expected_debt})")

    if abs(prior_bs.gross_ppe + cf.capex - bs.gross_ppe) >= tolerance:
        errors.append(f"{year}: gross PP&E does not roll forward from {prior.year}")

    expected_accumulated = prior_bs.accumulated_depreciation + current.profit_loss.depreciation
    if abs(expected_accumulated - bs.accumulated_depreciation) >= tolerance:
        errors.append(
            f"{year}: accumulated depreciation does not roll forward from {prior.year}")

    return errors
