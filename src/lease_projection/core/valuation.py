# src/lease_projection/core/valuation.py
"""
Summary Metrics

Run-level figures computed after every year has been produced:

1. Full-horizon totals: EBITDA, net income, rent, peak debt, final cash
2. Contract-period (dynamic years) totals and NPVs of rent and EBITDA
3. Equivalent annual values via the annualization factor
       r / (1 - (1 + r) ** -n)
   and the headline comparison across rent models:
       net tenant surplus = annualized EBITDA - annualized rent
4. NPV, IRR and payback on the yearly net change in cash

IRR and payback are ``None`` when the cash flows give them no defined
value; no sentinel numbers are used.
"""

from decimal import Decimal
from typing import List, Optional, Sequence

import numpy as np
from scipy.optimize import brentq

from .constants import ONE, ZERO
from .decimal_utils import decimal_sum, divide_safe
from .types import FinancialPeriod, PeriodType, SummaryMetrics

# Rates tried when bracketing the IRR root
IRR_BRACKETS = (-0.99, -0.9, -0.5, -0.2, 0.0, 0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0, 10.0)
PAYBACK_PLACES = Decimal("0.0001")


def calculate_npv(cash_flows: Sequence[Decimal], discount_rate: Decimal) -> Decimal:
    """
    Net present value; the first flow is undiscounted.

    Formula: NPV = sum(CF_t / (1 + r) ** t), t = 0..n-1
    """
    factor = ONE + discount_rate
    return decimal_sum(cf / factor ** t for t, cf in enumerate(cash_flows))


def _npv_float(rate: float, flows: np.ndarray) -> float:
    periods = np.arange(len(flows))
    return float(np.sum(flows / (1.0 + rate) ** periods))


def calculate_irr(cash_flows: Sequence[Decimal]) -> Optional[Decimal]:
    """
    Internal rate of return, or None if it is not defined.

    Requires at least one sign change in the flows; the root is found by
    bracketing over IRR_BRACKETS and refining with Brent's method.

    Returns:
        IRR as a Decimal rounded to 10 places, or None
    """
    flows = np.array([float(cf) for cf in cash_flows])
    if len(flows) < 2 or not (np.any(flows > 0) and np.any(flows < 0)):
        return None

    values = [_npv_float(rate, flows) for rate in IRR_BRACKETS]
    for (low, high), (f_low, f_high) in zip(
            zip(IRR_BRACKETS, IRR_BRACKETS[1:]), zip(values, values[1:])):
        if f_low == 0.0:
            return Decimal(str(low))
        if np.isfinite(f_low) and np.isfinite(f_high) and f_low * f_high < 0:
            root = brentq(_npv_float, low, high, args=(flows,), xtol=1e-12, maxiter=200)
            return Decimal(str(round(root, 10)))
    return None


def calculate_payback_period(cash_flows: Sequence[Decimal]) -> Optional[Decimal]:
    """
    Years until cumulative cash flow turns non-negative.

    Interpolates linearly within the crossing year. None if cumulative
    flow never recovers within the horizon.
    """
    cumulative = ZERO
    for index, flow in enumerate(cash_flows):
        prior_cumulative = cumulative
        cumulative += flow
        if cumulative >= ZERO:
            if flow == ZERO:
                return Decimal(index)
            fraction = (abs(prior_cumulative) / abs(flow)).quantize(PAYBACK_PLACES)
            return Decimal(index) + fraction
    return None


def calculate_annualization_factor(discount_rate: Decimal, years: int) -> Decimal:
    """
    Capital recovery factor converting a present value to an equal annual amount.

    Formula: r / (1 - (1 + r) ** -n); 1 / n when r is zero.
    """
    if years <= 0:
        return ZERO
    if discount_rate == ZERO:
        return ONE / Decimal(years)
    return discount_rate / (ONE - (ONE + discount_rate) ** -years)


class MetricsCalculator:
    """Aggregates a finished run into SummaryMetrics."""

    def __init__(self, periods: List[FinancialPeriod], discount_rate: Decimal,
                 contract_period_years: int):
        """
        Args:
            periods: Every period of the run, in year order
            discount_rate: Rate for NPV and annualization
            contract_period_years: Length of the contract (dynamic) period
        """
        if not periods:
            raise ValueError("Cannot calculate metrics: no periods provided")
        self.periods = periods
        self.discount_rate = discount_rate
        self.contract_period_years = contract_period_years

    @property
    def contract_periods(self) -> List[FinancialPeriod]:
        return [p for p in self.periods if p.period_type is PeriodType.DYNAMIC]

    def calculate(self) -> SummaryMetrics:
        periods = self.periods
        rate = self.discount_rate

        ebitdas = [p.profit_loss.ebitda for p in periods]
        net_incomes = [p.profit_loss.net_income for p in periods]
        total_ebitda = decimal_sum(ebitdas)
        total_net_income = decimal_sum(net_incomes)
        total_equity = decimal_sum(p.balance_sheet.total_equity for p in periods)
        average_roe = divide_safe(total_net_income, total_equity) if total_equity > ZERO else ZERO

        contract = self.contract_periods
        contract_rents = [p.profit_loss.rent_expense for p in contract]
        contract_ebitdas = [p.profit_loss.ebitda for p in contract]
        contract_rent_npv = calculate_npv(contract_rents, rate)
        contract_ebitda_npv = calculate_npv(contract_ebitdas, rate)

        factor = calculate_annualization_factor(rate, self.contract_period_years)
        annualized_ebitda = contract_ebitda_npv * factor
        annualized_rent = contract_rent_npv * factor

        cash_flows = [p.cash_flow.net_change_in_cash for p in periods]

        return SummaryMetrics(
            total_net_income=total_net_income,
            total_rent=decimal_sum(p.profit_loss.rent_expense for p in periods),
            total_ebitda=total_ebitda,
            average_ebitda=total_ebitda / Decimal(len(periods)),
            average_roe=average_roe,
            peak_debt=max(p.balance_sheet.debt_balance for p in periods),
            final_cash=periods[-1].balance_sheet.cash,
            npv=calculate_npv(cash_flows, rate),
            irr=calculate_irr(cash_flows),
            payback_period=calculate_payback_period(cash_flows),
            contract_total_rent=decimal_sum(contract_rents),
            contract_total_ebitda=decimal_sum(contract_ebitdas),
            contract_final_cash=contract[-1].balance_sheet.cash if contract else ZERO,
            contract_rent_npv=contract_rent_npv,
            contract_ebitda_npv=contract_ebitda_npv,
            contract_net_tenant_surplus=contract_ebitda_npv - abs(contract_rent_npv),
            annualization_factor=factor,
            contract_annualized_ebitda=annualized_ebitda,
            contract_annualized_rent=annualized_rent,
            net_tenant_surplus=annualized_ebitda - annualized_rent,
        )
