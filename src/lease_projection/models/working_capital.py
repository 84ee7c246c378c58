# src/lease_projection/models/working_capital.py
"""
Working Capital Model

Converts revenue and operating costs into working capital balances using
ratios that are derived once from the final historical year and then
locked for the rest of the run:

    AR       = ar_percent       * total revenue
    Deferred = deferred_percent * total revenue
    Prepaid  = prepaid_percent  * total opex
    AP       = ap_percent       * total opex
    Accrued  = accrued_percent  * total opex
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Optional

from ..core.constants import ZERO
from ..core.decimal_utils import divide_safe
from ..core.types import HistoricalYearRecord, WorkingCapitalRatios


@dataclass(frozen=True)
class WorkingCapitalBalances:
    """Closing working capital balances for one year."""
    accounts_receivable: Decimal = ZERO
    prepaid_expenses: Decimal = ZERO
    accounts_payable: Decimal = ZERO
    accrued_expenses: Decimal = ZERO
    deferred_revenue: Decimal = ZERO

    @classmethod
    def from_historical(cls, record: HistoricalYearRecord) -> 'WorkingCapitalBalances':
        return cls(
            accounts_receivable=record.accounts_receivable,
            prepaid_expenses=record.prepaid_expenses,
            accounts_payable=record.accounts_payable,
            accrued_expenses=record.accrued_expenses,
            deferred_revenue=record.deferred_revenue,
        )

    @property
    def net_working_capital(self) -> Decimal:
        """Operating current assets less operating current liabilities."""
        assets = self.accounts_receivable + self.prepaid_expenses
        liabilities = self.accounts_payable + self.accrued_expenses + self.deferred_revenue
        return assets - liabilities

    def changes_from(self, prior: 'WorkingCapitalBalances') -> Dict[str, Decimal]:
        """
        Cash effect of each balance change versus the prior year.

        Asset increases consume cash (negative), liability increases
        release cash (positive).

        Returns:
            Dictionary keyed by cash flow line name
        """
        return {
            'change_in_receivables': prior.accounts_receivable - self.accounts_receivable,
            'change_in_prepaid': prior.prepaid_expenses - self.prepaid_expenses,
            'change_in_payables': self.accounts_payable - prior.accounts_payable,
            'change_in_accrued': self.accrued_expenses - prior.accrued_expenses,
            'change_in_deferred_revenue': self.deferred_revenue - prior.deferred_revenue,
        }

    def cash_effect_from(self, prior: 'WorkingCapitalBalances') -> Decimal:
        """Total cash released (positive) or absorbed by working capital."""
        return prior.net_working_capital - self.net_working_capital


def derive_working_capital_ratios(record: HistoricalYearRecord) -> WorkingCapitalRatios:
    """
    Compute locked ratios from the final historical year.

    Zero revenue or opex yields zero ratios rather than a division error.

    Args:
        record: Final historical year actuals

    Returns:
        Locked WorkingCapitalRatios
    """
    revenue = record.total_revenue
    opex = record.total_opex
    return WorkingCapitalRatios(
        ar_percent=divide_safe(record.accounts_receivable, revenue),
        prepaid_percent=divide_safe(record.prepaid_expenses, opex),
        ap_percent=divide_safe(record.accounts_payable, opex),
        accrued_percent=divide_safe(record.accrued_expenses, opex),
        deferred_revenue_percent=divide_safe(record.deferred_revenue, revenue),
        other_revenue_ratio=divide_safe(record.other_revenue, record.tuition_revenue),
        locked=True,
    )


def resolve_working_capital_ratios(
    final_historical: HistoricalYearRecord,
    supplied: Optional[WorkingCapitalRatios] = None
) -> WorkingCapitalRatios:
    """Use supplied ratios when given, otherwise derive them; always locked."""
    if supplied is None:
        return derive_working_capital_ratios(final_historical)
    if supplied.locked:
        return supplied
    return replace(supplied, locked=True)


class WorkingCapitalModel:
    """Applies a locked set of ratios to each year's revenue and opex."""

    def __init__(self, ratios: WorkingCapitalRatios):
        if not ratios.locked:
            raise ValueError("Working capital ratios must be locked before use")
        self.ratios = ratios

    def calculate_balances(self, total_revenue: Decimal,
                           total_opex: Decimal) -> WorkingCapitalBalances:
        r = self.ratios
        return WorkingCapitalBalances(
            accounts_receivable=r.ar_percent * total_revenue,
            prepaid_expenses=r.prepaid_percent * total_opex,
            accounts_payable=r.ap_percent * total_opex,
            accrued_expenses=r.accrued_percent * total_opex,
            deferred_revenue=r.deferred_revenue_percent * total_revenue,
        )

    def other_revenue(self, tuition_revenue: Decimal) -> Decimal:
        """Other revenue implied by the locked other/tuition ratio."""
        return self.ratios.other_revenue_ratio * tuition_revenue
