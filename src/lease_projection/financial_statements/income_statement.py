# src/lease_projection/financial_statements/income_statement.py
"""
Profit & Loss Construction

Composes the P&L from a year's pre-financing draft plus the financing
items resolved by the circular solver:

    EBITDA     = total revenue - total opex
    EBIT       = EBITDA - depreciation
    EBT        = EBIT - interest expense + interest income
    Net income = EBT - zakat
"""

from dataclasses import asdict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pandas as pd

from ..core.constants import BALANCE_TOLERANCE, ZERO
from ..core.decimal_utils import divide_safe
from ..core.types import PeriodDraft, ProfitLossStatement


def calculate_zakat(ebt: Decimal, zakat_rate: Decimal) -> Decimal:
    """Zakat is levied on positive pre-tax income only."""
    return max(ZERO, ebt) * zakat_rate


class IncomeStatement:
    """
    Profit & Loss assembler.

    Zakat is taken as given (from the solver or from historical actuals);
    it is not recomputed here so a solver defect cannot be masked.
    """

    def __init__(self):
        self.data: Optional[ProfitLossStatement] = None
        self.history: List[ProfitLossStatement] = []

    def construct(
        self,
        draft: PeriodDraft,
        depreciation: Decimal,
        interest_expense: Decimal,
        interest_income: Decimal,
        zakat_expense: Decimal
    ) -> ProfitLossStatement:
        """
        Construct the P&L for one year.

        Args:
            draft: Revenue and operating costs for the year
            depreciation: Total depreciation (both streams)
            interest_expense: Interest on debt
            interest_income: Interest on excess cash
            zakat_expense: Zakat for the year

        Returns:
            Completed ProfitLossStatement
        """
        total_revenue = draft.total_revenue
        total_opex = draft.total_opex
        ebitda = total_revenue - total_opex
        ebit = ebitda - depreciation
        net_interest = interest_income - interest_expense
        ebt = ebit + net_interest
        net_income = ebt - zakat_expense

        self.data = ProfitLossStatement(
            tuition_revenue=draft.tuition_revenue,
            other_revenue=draft.other_revenue,
            total_revenue=total_revenue,
            rent_expense=draft.rent_expense,
            staff_costs=draft.staff_costs,
            other_opex=draft.other_opex,
            total_opex=total_opex,
            ebitda=ebitda,
            depreciation=depreciation,
            ebit=ebit,
            interest_expense=interest_expense,
            interest_income=interest_income,
            net_interest=net_interest,
            ebt=ebt,
            zakat_expense=zakat_expense,
            net_income=net_income,
        )
        self.history.append(self.data)
        return self.data

    def to_dict(self) -> Dict[str, Decimal]:
        """
        Convert the current P&L to a dictionary with margin ratios.

        Returns:
            Dictionary with all P&L items
        """
        if self.data is None:
            return {}
        result = asdict(self.data)
        revenue = self.data.total_revenue
        result['ebitda_margin'] = divide_safe(self.data.ebitda, revenue)
        result['rent_to_revenue'] = divide_safe(self.data.rent_expense, revenue)
        result['net_margin'] = divide_safe(self.data.net_income, revenue)
        return result

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([self.to_dict()])

    def validate(self, tolerance: Decimal = BALANCE_TOLERANCE) -> Tuple[bool, List[str]]:
        """
        Validate the P&L formula chain.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []
        d = self.data
        if d is None:
            return False, ["Income statement has not been constructed"]

        if d.total_revenue < ZERO:
            errors.append("Total revenue is negative")

        if abs(d.total_revenue - d.total_opex - d.ebitda) >= tolerance:
            errors.append("EBITDA does not equal total revenue less total opex")

        if abs(d.ebitda - d.depreciation - d.ebit) >= tolerance:
            errors.append("EBIT calculation error")

        expected_ebt = d.ebit - d.interest_expense + d.interest_income
        if abs(expected_ebt - d.ebt) >= tolerance:
            errors.append("EBT calculation error")

        if d.zakat_expense < ZERO:
            errors.append("Zakat expense is negative")

        if abs(d.ebt - d.zakat_expense - d.net_income) >= tolerance:
            errors.append("Net income does not equal EBT less zakat")

        return len(errors) == 0, errors
