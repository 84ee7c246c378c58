# src/lease_projection/financial_statements/cash_flow_statement.py
"""
Cash Flow Statement (indirect method)

Operating  = net income + depreciation + working capital changes
Investing  = -CapEx
Financing  = debt issuance - debt repayment (+ historical adjustments)

Ending cash is beginning cash plus the net change, and is reconciled
against the balance sheet cash line. Differences are reported, not
corrected.
"""

from dataclasses import asdict
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pandas as pd

from ..core.constants import CASH_RECONCILIATION_TOLERANCE, ZERO
from ..core.decimal_utils import decimal_sum
from ..core.types import CashFlowStatement


WORKING_CAPITAL_LINES = (
    'change_in_receivables',
    'change_in_prepaid',
    'change_in_payables',
    'change_in_accrued',
    'change_in_deferred_revenue',
)


class CashFlowStatementBuilder:
    """Cash flow assembler and reconciliation check."""

    def __init__(self):
        self.data: Optional[CashFlowStatement] = None
        self.history: List[CashFlowStatement] = []

    def construct(
        self,
        net_income: Decimal,
        depreciation: Decimal,
        working_capital_changes: Dict[str, Decimal],
        capex: Decimal,
        debt_issuance: Decimal,
        debt_repayment: Decimal,
        beginning_cash: Decimal,
        balance_sheet_cash: Decimal,
        other_financing_adjustments: Decimal = ZERO
    ) -> CashFlowStatement:
        """
        Construct the cash flow statement for one year.

        Args:
            net_income: Net income from the P&L
            depreciation: Non-cash depreciation add-back
            working_capital_changes: Cash effect per working capital line
            capex: CapEx spend (positive amount)
            debt_issuance: New borrowing
            debt_repayment: Principal repaid (positive amount)
            beginning_cash: Prior year's closing cash
            balance_sheet_cash: Cash line of this year's balance sheet
            other_financing_adjustments: Untracked equity movements
                (historical years only)

        Returns:
            Completed CashFlowStatement
        """
        wc = {line: working_capital_changes.get(line, ZERO) for line in WORKING_CAPITAL_LINES}
        operating = net_income + depreciation + decimal_sum(wc.values())
        investing = -capex
        financing = debt_issuance - debt_repayment + other_financing_adjustments
        net_change = operating + investing + financing
        ending_cash = beginning_cash + net_change

        self.data = CashFlowStatement(
            net_income=net_income,
            depreciation=depreciation,
            operating_cash_flow=operating,
            capex=capex,
            investing_cash_flow=investing,
            debt_issuance=debt_issuance,
            debt_repayment=debt_repayment,
            other_financing_adjustments=other_financing_adjustments,
            financing_cash_flow=financing,
            net_change_in_cash=net_change,
            beginning_cash=beginning_cash,
            ending_cash=ending_cash,
            cash_reconciliation_difference=ending_cash - balance_sheet_cash,
            **wc,
        )
        self.history.append(self.data)
        return self.data

    def to_dict(self) -> Dict[str, Decimal]:
        if self.data is None:
            return {}
        result = asdict(self.data)
        result['free_cash_flow'] = self.data.operating_cash_flow + self.data.investing_cash_flow
        return result

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([self.to_dict()])

    def validate(
        self,
        tolerance: Decimal = CASH_RECONCILIATION_TOLERANCE
    ) -> Tuple[bool, List[str]]:
        """
        Check the cash roll-forward and reconciliation to the balance sheet.

        Returns:
            Tuple of (is_reconciled, list of error messages)
        """
        errors = []
        d = self.data
        if d is None:
            return False, ["Cash flow statement has not been constructed"]

        if abs(d.beginning_cash + d.net_change_in_cash - d.ending_cash) >= tolerance:
            errors.append("Ending cash does not equal beginning cash plus net change")

        if abs(d.cash_reconciliation_difference) >= tolerance:
            errors.append(
                f"Cash flow does not reconcile to balance sheet cash. "
                f"Difference: {d.cash_reconciliation_difference}"
            )

        if d.debt_issuance < ZERO or d.debt_repayment < ZERO:
            errors.append("Debt issuance and repayment must be non-negative")

        return len(errors) == 0, errors
