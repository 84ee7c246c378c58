# src/lease_projection/capex/capex_calculator.py
"""
CapEx & Depreciation Engine

Tracks capital spending and depreciation year by year:

1. Historical stream depreciates at its fixed annual amount until the
   inherited book value is exhausted.
2. Every virtual asset depreciates straight-line from the year after
   purchase.
3. Enabled categories auto-reinvest every K years from their start year
   (dynamic period only).
4. Gross PP&E = historical baseline + all purchases to date;
   accumulated depreciation sums both streams.

Asset generation is deterministic: within a year, manual entries come
first in input order, then reinvestments in catalog order.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.constants import MAX_REINVEST_FREQUENCY, MIN_REINVEST_FREQUENCY, ZERO
from ..core.decimal_utils import decimal_sum
from ..core.exceptions import ConfigurationError
from ..core.types import CapExCategory, CapExCategoryConfig, CapExEntry, PeriodType
from .depreciation import CapExVirtualAsset, HistoricalDepreciationState


@dataclass(frozen=True)
class CapExYearResult:
    """CapEx spend, depreciation and PP&E position for one year."""
    year: int
    capex: Decimal
    historical_depreciation: Decimal
    virtual_depreciation: Decimal
    gross_ppe: Decimal
    accumulated_depreciation: Decimal
    new_assets: Tuple[CapExVirtualAsset, ...] = field(default_factory=tuple)

    @property
    def depreciation(self) -> Decimal:
        return self.historical_depreciation + self.virtual_depreciation


def validate_capex_config(
    categories: Sequence[CapExCategoryConfig],
    entries: Iterable[CapExEntry] = ()
) -> None:
    """
    Check a CapEx catalog and manual entries.

    Raises:
        ConfigurationError: On a non-positive useful life, a reinvestment
            frequency outside 1-30 years, a non-positive amount, a
            duplicated category, or an entry for an unknown category
    """
    seen = set()
    for config in categories:
        name = config.category.value
        if config.category in seen:
            raise ConfigurationError(f"Duplicate CapEx category {name}",
                                     field='capex_categories')
        seen.add(config.category)

        if config.useful_life_years is None or config.useful_life_years <= 0:
            raise ConfigurationError(
                f"Useful life for {name} must be positive, got {config.useful_life_years}",
                field='useful_life_years')

        if not config.auto_reinvest_enabled:
            continue
        freq = config.reinvest_frequency_years
        if freq is None:
            raise ConfigurationError(
                f"Auto-reinvestment for {name} requires reinvest_frequency_years",
                field='reinvest_frequency_years')
        if not MIN_REINVEST_FREQUENCY <= freq <= MAX_REINVEST_FREQUENCY:
            raise ConfigurationError(
                f"Reinvestment frequency for {name} must be between "
                f"{MIN_REINVEST_FREQUENCY} and {MAX_REINVEST_FREQUENCY}, got {freq}",
                field='reinvest_frequency_years')
        if config.reinvest_amount is None:
            raise ConfigurationError(
                f"Auto-reinvestment for {name} requires reinvest_amount",
                field='reinvest_amount')
        if config.reinvest_amount <= ZERO:
            raise ConfigurationError(
                f"Reinvestment amount for {name} must be positive, got {config.reinvest_amount}",
                field='reinvest_amount')

    for entry in entries:
        if entry.category not in seen:
            raise ConfigurationError(
                f"CapEx entry for {entry.year} uses unconfigured category {entry.category.value}",
                field='category')
        if entry.amount <= ZERO:
            raise ConfigurationError(
                f"CapEx amount for {entry.category.value} in {entry.year} must be positive",
                field='amount')


def is_reinvestment_due(config: CapExCategoryConfig, year: int,
                        default_start_year: int) -> bool:
    """
    Whether a category reinvests in ``year``.

    Fires every ``reinvest_frequency_years`` after the start year; the
    start year itself never fires.
    """
    if not config.auto_reinvest_enabled or not config.reinvest_frequency_years:
        return False
    start = config.reinvest_start_year or default_start_year
    years_since_start = year - start
    if years_since_start <= 0:
        return False
    return years_since_start % config.reinvest_frequency_years == 0


class CapExCalculator:
    """
    Stateful per-run CapEx engine.

    Years must be processed in order; each call advances the historical
    stream and extends the virtual asset list.
    """

    def __init__(
        self,
        historical_state: HistoricalDepreciationState,
        categories: Sequence[CapExCategoryConfig],
        first_dynamic_year: int,
        manual_entries: Iterable[CapExEntry] = ()
    ):
        """
        Initialize the engine from the last historical year.

        Args:
            historical_state: PP&E position carried from the last historical year
            categories: CapEx catalog, in catalog order
            first_dynamic_year: Default start year for auto-reinvestment
            manual_entries: Planned purchases (transition and dynamic)
        """
        self.categories = list(categories)
        self._by_category: Dict[CapExCategory, CapExCategoryConfig] = {
            c.category: c for c in self.categories
        }
        self.first_dynamic_year = first_dynamic_year

        self._baseline_gross_ppe = historical_state.gross_ppe
        self._historical_state = historical_state
        self._manual: Dict[int, List[CapExEntry]] = {}
        for entry in manual_entries:
            self._manual.setdefault(entry.year, []).append(entry)

        self.assets: List[CapExVirtualAsset] = []
        self._last_year: Optional[int] = None

    @property
    def historical_state(self) -> HistoricalDepreciationState:
        return self._historical_state

    def _new_asset(self, category: CapExCategory, year: int, amount: Decimal,
                   sequence: int, source: str) -> CapExVirtualAsset:
        config = self._by_category[category]
        return CapExVirtualAsset(
            asset_id=f"{category.value}-{year}-{sequence:03d}",
            category=category,
            purchase_year=year,
            amount=amount,
            useful_life_years=config.useful_life_years,
            source=source,
        )

    def _purchases_for_year(self, year: int,
                            period_type: PeriodType) -> List[CapExVirtualAsset]:
        purchases = []
        for entry in self._manual.get(year, []):
            purchases.append(self._new_asset(
                entry.category, year, entry.amount, len(purchases) + 1, 'manual'))

        if period_type is PeriodType.DYNAMIC:
            for config in self.categories:
                if is_reinvestment_due(config, year, self.first_dynamic_year):
                    purchases.append(self._new_asset(
                        config.category, year, config.reinvest_amount,
                        len(purchases) + 1, 'reinvestment'))
        return purchases

    def calculate_year(self, year: int, period_type: PeriodType) -> CapExYearResult:
        """
        Process one projected year.

        Args:
            year: Calendar year, strictly after the previous call
            period_type: TRANSITION or DYNAMIC

        Returns:
            CapExYearResult for the year
        """
        if self._last_year is not None and year <= self._last_year:
            raise ValueError(
                f"CapEx years must be processed in order: {year} after {self._last_year}"
            )
        self._last_year = year

        historical_dep, self._historical_state = self._historical_state.advance()

        new_assets = self._purchases_for_year(year, period_type)
        self.assets.extend(new_assets)

        virtual_dep = decimal_sum(a.depreciation_for_year(year) for a in self.assets)
        virtual_accumulated = decimal_sum(
            a.accumulated_depreciation_through(year) for a in self.assets
        )
        gross_ppe = self._baseline_gross_ppe + decimal_sum(a.amount for a in self.assets)
        accumulated = self._historical_state.accumulated_depreciation + virtual_accumulated

        return CapExYearResult(
            year=year,
            capex=decimal_sum(a.amount for a in new_assets),
            historical_depreciation=historical_dep,
            virtual_depreciation=virtual_dep,
            gross_ppe=gross_ppe,
            accumulated_depreciation=accumulated,
            new_assets=tuple(new_assets),
        )
