# src/lease_projection/financial_statements/__init__.py
"""
Financial Statements Module

This module builds the P&L, balance sheet and cash flow statement for
each year and checks that they agree.
"""

from .income_statement import IncomeStatement
from .balance_sheet import BalanceSheet
from .cash_flow_statement import CashFlowStatementBuilder
from .statement_builder import StatementBuilder

__all__ = [
    'IncomeStatement',
    'BalanceSheet',
    'CashFlowStatementBuilder',
    'StatementBuilder'
]
