# src/lease_projection/financial_statements/statement_builder.py
"""
Statement Builder

Assembles the three statements for one year, in order:

1. P&L from the draft plus the solver's interest and zakat
2. Balance sheet with the solver's debt as the plug
3. Cash flow (indirect method), reconciled to balance sheet cash

and produces the year's closing balances for the next year.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Optional

import pandas as pd

from ..capex.capex_calculator import CapExYearResult
from ..core.types import (
    BalanceSheetStatement,
    CashFlowStatement,
    FinancialPeriod,
    HistoricalYearRecord,
    PeriodDraft,
    PeriodType,
    ProfitLossStatement,
)
from ..models.working_capital import WorkingCapitalBalances
from ..periods.historical import build_historical_draft, historical_cash_flow_components
from ..solvers.circular import CircularSolverResult
from .balance_sheet import BalanceSheet
from .cash_flow_statement import CashFlowStatementBuilder
from .income_statement import IncomeStatement
from .validators import validate_financial_period


@dataclass(frozen=True)
class OpeningBalances:
    """Closing position of one year, carried into the next."""
    cash: Decimal
    debt_balance: Decimal
    total_equity: Decimal
    working_capital: WorkingCapitalBalances

    @classmethod
    def from_period(cls, period: FinancialPeriod) -> 'OpeningBalances':
        bs = period.balance_sheet
        return cls(
            cash=bs.cash,
            debt_balance=bs.debt_balance,
            total_equity=bs.total_equity,
            working_capital=WorkingCapitalBalances(
                accounts_receivable=bs.accounts_receivable,
                prepaid_expenses=bs.prepaid_expenses,
                accounts_payable=bs.accounts_payable,
                accrued_expenses=bs.accrued_expenses,
                deferred_revenue=bs.deferred_revenue,
            ),
        )


class StatementBuilder:
    """
    Build all three statements for each year.

    Validation failures are recorded on the period, not raised; the
    orchestrator aggregates them.
    """

    def __init__(self):
        self.income_statement = IncomeStatement()
        self.balance_sheet = BalanceSheet()
        self.cash_flow = CashFlowStatementBuilder()
        self.history: List[FinancialPeriod] = []

    def build_historical(
        self,
        record: HistoricalYearRecord,
        prior: Optional[HistoricalYearRecord] = None
    ) -> FinancialPeriod:
        """
        Statements for a confirmed historical year, taken verbatim.

        Args:
            record: Historical actuals
            prior: Previous historical year, if any

        Returns:
            FinancialPeriod for the year
        """
        draft = build_historical_draft(record)
        pl = self.income_statement.construct(
            draft,
            depreciation=record.depreciation,
            interest_expense=record.interest_expense,
            interest_income=record.interest_income,
            zakat_expense=record.zakat_expense,
        )
        bs = self.balance_sheet.construct(
            cash=record.cash,
            working_capital=WorkingCapitalBalances.from_historical(record),
            gross_ppe=record.gross_ppe,
            accumulated_depreciation=record.accumulated_depreciation,
            debt_balance=record.debt_balance,
            retained_earnings=record.total_equity - pl.net_income,
            net_income=pl.net_income,
        )
        movements = historical_cash_flow_components(record, prior)
        cf = self.cash_flow.construct(
            net_income=pl.net_income,
            depreciation=record.depreciation,
            working_capital_changes=movements.working_capital_changes,
            capex=movements.capex,
            debt_issuance=movements.debt_issuance,
            debt_repayment=movements.debt_repayment,
            beginning_cash=movements.beginning_cash,
            balance_sheet_cash=bs.cash,
            other_financing_adjustments=movements.other_financing_adjustments,
        )
        return self._finalize(record.year, PeriodType.HISTORICAL, pl, bs, cf,
                              converged=True, iterations=0, solver_debt=None)

    def build_projected(
        self,
        draft: PeriodDraft,
        capex: CapExYearResult,
        working_capital: WorkingCapitalBalances,
        opening: OpeningBalances,
        solution: CircularSolverResult
    ) -> FinancialPeriod:
        """
        Statements for a transition or dynamic year.

        Args:
            draft: Pre-financing operating figures
            capex: CapEx spend, depreciation and PP&E for the year
            working_capital: Closing working capital balances
            opening: Prior year's closing balances
            solution: Solver output for the year

        Returns:
            FinancialPeriod for the year
        """
        pl = self.income_statement.construct(
            draft,
            depreciation=capex.depreciation,
            interest_expense=solution.interest_expense,
            interest_income=solution.interest_income,
            zakat_expense=solution.zakat_expense,
        )
        bs = self.balance_sheet.construct(
            cash=solution.cash,
            working_capital=working_capital,
            gross_ppe=capex.gross_ppe,
            accumulated_depreciation=capex.accumulated_depreciation,
            debt_balance=solution.debt_balance,
            retained_earnings=opening.total_equity,
            net_income=pl.net_income,
        )
        cf = self.cash_flow.construct(
            net_income=pl.net_income,
            depreciation=capex.depreciation,
            working_capital_changes=working_capital.changes_from(opening.working_capital),
            capex=capex.capex,
            debt_issuance=solution.debt_issuance,
            debt_repayment=solution.debt_repayment,
            beginning_cash=opening.cash,
            balance_sheet_cash=bs.cash,
        )
        return self._finalize(draft.year, draft.period_type, pl, bs, cf,
                              converged=solution.converged,
                              iterations=solution.iterations,
                              solver_debt=solution.debt_balance)

    def _finalize(
        self,
        year: int,
        period_type: PeriodType,
        pl: ProfitLossStatement,
        bs: BalanceSheetStatement,
        cf: CashFlowStatement,
        converged: bool,
        iterations: int,
        solver_debt: Optional[Decimal]
    ) -> FinancialPeriod:
        _, pl_errors = self.income_statement.validate()
        bs_ok, bs_errors = self.balance_sheet.validate(solver_debt=solver_debt)
        cf_ok, cf_errors = self.cash_flow.validate()

        period = FinancialPeriod(
            year=year,
            period_type=period_type,
            profit_loss=pl,
            balance_sheet=bs,
            cash_flow=cf,
            converged=converged,
            iterations_required=iterations,
            balance_sheet_balanced=bs_ok,
            cash_flow_reconciled=cf_ok,
        )
        cross_errors, _ = validate_financial_period(period, statement_checks=False)
        issues = [f"{year}: {e}" for e in pl_errors + bs_errors + cf_errors] + cross_errors
        if issues:
            period = replace(period, validation_issues=issues)
        self.history.append(period)
        return period

    def get_historical_statements(self) -> pd.DataFrame:
        """
        All periods built so far as a DataFrame, one row per year.

        Returns:
            DataFrame indexed by year
        """
        if not self.history:
            return pd.DataFrame()
        return pd.DataFrame([p.to_row() for p in self.history]).set_index('year')

    def validate_all_statements(self) -> Dict[int, List[str]]:
        """
        Issues per year for every period built so far.

        Returns:
            Dictionary of year -> messages (only years with issues)
        """
        return {p.year: list(p.validation_issues) for p in self.history if p.validation_issues}
