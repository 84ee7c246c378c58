# src/lease_projection/financial_statements/balance_sheet.py
"""
Balance Sheet Construction

Debt is the balancing item. The solver computes it; the assembler only
checks that the debt implied by the accounting identity

    debt = total assets - non-debt liabilities - total equity

agrees with the solver's figure. A disagreement means the solver and the
assemblers have diverged and is reported, never absorbed.
"""

from dataclasses import asdict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pandas as pd

from ..core.constants import BALANCE_TOLERANCE, ZERO
from ..core.decimal_utils import divide_safe
from ..core.types import BalanceSheetStatement
from ..models.working_capital import WorkingCapitalBalances


class BalanceSheet:
    """Balance sheet assembler with debt as the solved plug."""

    def __init__(self):
        self.data: Optional[BalanceSheetStatement] = None
        self.history: List[BalanceSheetStatement] = []

    def construct(
        self,
        cash: Decimal,
        working_capital: WorkingCapitalBalances,
        gross_ppe: Decimal,
        accumulated_depreciation: Decimal,
        debt_balance: Decimal,
        retained_earnings: Decimal,
        net_income: Decimal
    ) -> BalanceSheetStatement:
        """
        Construct the balance sheet for one year.

        Args:
            cash: Ending cash from the solver
            working_capital: AR, prepaid, AP, accrued and deferred balances
            gross_ppe: Gross PP&E from the CapEx engine
            accumulated_depreciation: Both depreciation streams
            debt_balance: Ending debt from the solver
            retained_earnings: Equity brought forward
            net_income: Current-year net income

        Returns:
            Completed BalanceSheetStatement
        """
        wc = working_capital
        total_current_assets = cash + wc.accounts_receivable + wc.prepaid_expenses
        net_ppe = gross_ppe - accumulated_depreciation
        total_assets = total_current_assets + net_ppe

        total_current_liabilities = (
            wc.accounts_payable + wc.accrued_expenses + wc.deferred_revenue
        )
        total_liabilities = total_current_liabilities + debt_balance
        total_equity = retained_earnings + net_income

        self.data = BalanceSheetStatement(
            cash=cash,
            accounts_receivable=wc.accounts_receivable,
            prepaid_expenses=wc.prepaid_expenses,
            total_current_assets=total_current_assets,
            gross_ppe=gross_ppe,
            accumulated_depreciation=accumulated_depreciation,
            net_ppe=net_ppe,
            total_assets=total_assets,
            accounts_payable=wc.accounts_payable,
            accrued_expenses=wc.accrued_expenses,
            deferred_revenue=wc.deferred_revenue,
            total_current_liabilities=total_current_liabilities,
            debt_balance=debt_balance,
            total_liabilities=total_liabilities,
            retained_earnings=retained_earnings,
            net_income_current_year=net_income,
            total_equity=total_equity,
            balance_difference=total_assets - (total_liabilities + total_equity),
        )
        self.history.append(self.data)
        return self.data

    def implied_debt(self) -> Decimal:
        """Debt that would make the identity hold exactly."""
        d = self.data
        return d.total_assets - d.total_current_liabilities - d.total_equity

    def to_dict(self) -> Dict[str, Decimal]:
        if self.data is None:
            return {}
        result = asdict(self.data)
        result['working_capital'] = (
            self.data.total_current_assets - self.data.total_current_liabilities
        )
        result['debt_to_equity'] = divide_safe(self.data.debt_balance, self.data.total_equity)
        return result

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([self.to_dict()])

    def validate(
        self,
        solver_debt: Optional[Decimal] = None,
        tolerance: Decimal = BALANCE_TOLERANCE
    ) -> Tuple[bool, List[str]]:
        """
        Check the accounting identity and the debt plug.

        Args:
            solver_debt: Debt computed by the solver, when the year was solved
            tolerance: Maximum absolute difference

        Returns:
            Tuple of (is_balanced, list of error messages)
        """
        errors = []
        d = self.data
        if d is None:
            return False, ["Balance sheet has not been constructed"]

        if abs(d.balance_difference) >= tolerance:
            errors.append(
                f"Balance sheet does not balance. Imbalance: {d.balance_difference}"
            )

        if solver_debt is not None:
            implied = self.implied_debt()
            if abs(implied - solver_debt) >= tolerance:
                errors.append(
                    f"Implied debt {implied} differs from solver debt {solver_debt}"
                )

        if d.debt_balance < ZERO:
            errors.append(f"Debt balance is negative: {d.debt_balance}")

        return len(errors) == 0, errors
