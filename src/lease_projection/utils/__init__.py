# src/lease_projection/utils/__init__.py
from .statement_printer import fmt_currency, print_projection_report

__all__ = ['fmt_currency', 'print_projection_report']
