# src/lease_projection/periods/historical.py
"""
Historical Period

Confirmed actuals are used verbatim; the only work here is checking that
required fields are present and deriving the cash flow statement from
year-over-year balance sheet movements.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Dict, Optional, Sequence

from ..core.constants import ZERO
from ..core.exceptions import ConfigurationError
from ..core.types import HistoricalYearRecord, PeriodDraft, PeriodType
from ..models.working_capital import WorkingCapitalBalances

REQUIRED_HISTORICAL_FIELDS = (
    'tuition_revenue', 'rent_expense', 'staff_costs', 'other_opex', 'depreciation',
    'cash', 'gross_ppe', 'accumulated_depreciation', 'debt_balance', 'total_equity',
)


@dataclass(frozen=True)
class HistoricalCashFlowComponents:
    """Movements feeding a historical year's cash flow statement."""
    working_capital_changes: Dict[str, Decimal] = field(default_factory=dict)
    capex: Decimal = ZERO
    debt_issuance: Decimal = ZERO
    debt_repayment: Decimal = ZERO
    beginning_cash: Decimal = ZERO
    other_financing_adjustments: Decimal = ZERO


def validate_historical_records(records: Sequence[HistoricalYearRecord]) -> None:
    """
    Check presence, types and contiguity of historical years.

    Raises:
        ConfigurationError: If no records are given, years are not
            consecutive, a record is not immutable, or a required field is
            missing or not a Decimal
    """
    if not records:
        raise ConfigurationError("At least one historical year is required",
                                 field='historical_years')

    for previous, current in zip(records, records[1:]):
        if current.year != previous.year + 1:
            raise ConfigurationError(
                f"Historical years must be consecutive: {previous.year} then {current.year}",
                field='historical_years')

    decimal_fields = [f.name for f in fields(HistoricalYearRecord)
                      if f.name not in ('year', 'immutable')]
    for record in records:
        if not record.immutable:
            raise ConfigurationError(
                f"Historical year {record.year} is not marked immutable; only confirmed "
                f"actuals can seed a projection", field='immutable')
        for name in REQUIRED_HISTORICAL_FIELDS:
            if getattr(record, name) is None:
                raise ConfigurationError(
                    f"Historical year {record.year} is missing required field '{name}'",
                    field=name)
        for name in decimal_fields:
            if not isinstance(getattr(record, name), Decimal):
                raise ConfigurationError(
                    f"Historical year {record.year} field '{name}' must be a Decimal",
                    field=name)


def build_historical_draft(record: HistoricalYearRecord) -> PeriodDraft:
    """Operating figures copied from the record."""
    return PeriodDraft(
        year=record.year,
        period_type=PeriodType.HISTORICAL,
        tuition_revenue=record.tuition_revenue,
        other_revenue=record.other_revenue,
        rent_expense=record.rent_expense,
        staff_costs=record.staff_costs,
        other_opex=record.other_opex,
    )


def historical_net_income(record: HistoricalYearRecord) -> Decimal:
    ebitda = record.total_revenue - record.total_opex
    ebt = ebitda - record.depreciation - record.interest_expense + record.interest_income
    return ebt - record.zakat_expense


def historical_cash_flow_components(
    record: HistoricalYearRecord,
    prior: Optional[HistoricalYearRecord] = None
) -> HistoricalCashFlowComponents:
    """
    Derive cash flow movements from consecutive balance sheets.

    CapEx is the change in gross PP&E and debt flows are the change in
    the debt balance. Cash movement not explained by operations,
    investing and debt (equity contributions, distributions) is reported
    as ``other_financing_adjustments``.

    The first historical year has no comparative balance sheet: movements
    are zero and beginning cash is ending cash less operating cash flow.
    """
    net_income = historical_net_income(record)
    current_wc = WorkingCapitalBalances.from_historical(record)

    if prior is None:
        operating = net_income + record.depreciation
        return HistoricalCashFlowComponents(
            working_capital_changes=current_wc.changes_from(current_wc),
            beginning_cash=record.cash - operating,
        )

    wc_changes = current_wc.changes_from(WorkingCapitalBalances.from_historical(prior))
    operating = net_income + record.depreciation + sum(wc_changes.values(), ZERO)
    capex = record.gross_ppe - prior.gross_ppe
    debt_change = record.debt_balance - prior.debt_balance
    issuance = max(ZERO, debt_change)
    repayment = max(ZERO, -debt_change)

    explained = operating - capex + issuance - repayment
    adjustment = (record.cash - prior.cash) - explained

    return HistoricalCashFlowComponents(
        working_capital_changes=wc_changes,
        capex=capex,
        debt_issuance=issuance,
        debt_repayment=repayment,
        beginning_cash=prior.cash,
        other_financing_adjustments=adjustment,
    )
