# src/lease_projection/utils/statement_printer.py
"""
statement_printer.py

Console report for a finished projection.
"""

from decimal import Decimal
from typing import Optional

from ..core.types import ProjectionOutput, SummaryMetrics


def fmt_currency(val: Optional[Decimal]) -> str:
    """Format currency value."""
    if val is None:
        return "N/A"
    val = float(val)
    if abs(val) >= 1e9:
        return f"{val/1e9:,.2f}B"
    elif abs(val) >= 1e6:
        return f"{val/1e6:,.2f}M"
    elif abs(val) >= 1e3:
        return f"{val/1e3:,.1f}K"
    else:
        return f"{val:,.0f}"


def fmt_percent(val: Optional[Decimal]) -> str:
    if val is None:
        return "N/A"
    return f"{float(val):.2%}"


def print_yearly_table(output: ProjectionOutput):
    """One line per year: revenue, rent, EBITDA, net income, cash, debt."""
    print(f"\n{'─'*100}")
    print(f"  {'Year':<6} {'Type':<11} {'Revenue':>11} {'Rent':>11} {'EBITDA':>11} "
          f"{'Net Income':>11} {'Cash':>11} {'Debt':>11} {'Iter':>5} {'OK':>3}")
    print(f"{'─'*100}")
    for p in output.periods:
        pl = p.profit_loss
        bs = p.balance_sheet
        ok = (p.balance_sheet_balanced and p.cash_flow_reconciled and p.linked_to_prior
              and p.converged)
        print(f"  {p.year:<6} {p.period_type.value:<11} {fmt_currency(pl.total_revenue):>11} "
              f"{fmt_currency(pl.rent_expense):>11} {fmt_currency(pl.ebitda):>11} "
              f"{fmt_currency(pl.net_income):>11} {fmt_currency(bs.cash):>11} "
              f"{fmt_currency(bs.debt_balance):>11} {p.iterations_required:>5} "
              f"{'✓' if ok else '✗':>3}")


def print_metrics(metrics: SummaryMetrics):
    print(f"\n{'─'*70}")
    print("  SUMMARY METRICS")
    print(f"{'─'*70}")
    rows = [
        ('Total EBITDA', fmt_currency(metrics.total_ebitda)),
        ('Total Net Income', fmt_currency(metrics.total_net_income)),
        ('Total Rent', fmt_currency(metrics.total_rent)),
        ('Average ROE', fmt_percent(metrics.average_roe)),
        ('Peak Debt', fmt_currency(metrics.peak_debt)),
        ('Final Cash', fmt_currency(metrics.final_cash)),
        ('NPV (net cash change)', fmt_currency(metrics.npv)),
        ('IRR', fmt_percent(metrics.irr)),
        ('Payback (years)', "N/A" if metrics.payback_period is None
         else f"{metrics.payback_period:.2f}"),
        ('Contract Rent NPV', fmt_currency(metrics.contract_rent_npv)),
        ('Contract EBITDA NPV', fmt_currency(metrics.contract_ebitda_npv)),
        ('Contract Net Surplus', fmt_currency(metrics.contract_net_tenant_surplus)),
        ('Annualized EBITDA', fmt_currency(metrics.contract_annualized_ebitda)),
        ('Annualized Rent', fmt_currency(metrics.contract_annualized_rent)),
        ('Net Tenant Surplus', fmt_currency(metrics.net_tenant_surplus)),
    ]
    for name, value in rows:
        print(f"  {name + ':':<25} {value:>14}")


def print_projection_report(output: ProjectionOutput):
    """Print the yearly table, metrics and validation status."""
    print_yearly_table(output)
    print_metrics(output.metrics)

    validation = output.validation
    print(f"\n{'─'*70}")
    print("  VALIDATION")
    print(f"{'─'*70}")
    print(f"  {'Balanced:':<25} {'✓' if validation.all_periods_balanced else '✗'}")
    print(f"  {'Cash reconciled:':<25} {'✓' if validation.all_cash_flows_reconciled else '✗'}")
    print(f"  {'Years linked:':<25} {'✓' if validation.all_periods_linked else '✗'}")
    print(f"  {'Converged:':<25} {'✓' if validation.all_periods_converged else '✗'}")
    if validation.non_converged_years:
        print(f"  {'Non-converged years:':<25} {validation.non_converged_years}")
    for year, messages in sorted(validation.issues.items()):
        for message in messages:
            print(f"  ⚠ {message}")
    print("\n" + "=" * 70)
