# src/lease_projection/capex/depreciation.py
"""
Depreciation Streams

Two independent streams are kept and only summed at reporting time:

1. Historical stream: the fixed annual amount carried from the last
   historical year, continuing until the inherited net book value is
   exhausted. No per-asset useful life is re-derived for legacy assets.
2. Virtual assets: one record per purchase, straight-line over its useful
   life starting the year after purchase.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Tuple

from ..core.constants import ZERO
from ..core.types import CapExCategory, HistoricalYearRecord


@dataclass(frozen=True)
class HistoricalDepreciationState:
    """Inherited PP&E position and its fixed annual depreciation."""
    gross_ppe: Decimal
    accumulated_depreciation: Decimal
    annual_depreciation: Decimal

    @classmethod
    def from_historical(cls, record: HistoricalYearRecord) -> 'HistoricalDepreciationState':
        return cls(
            gross_ppe=record.gross_ppe,
            accumulated_depreciation=record.accumulated_depreciation,
            annual_depreciation=record.depreciation,
        )

    @property
    def remaining_book_value(self) -> Decimal:
        return max(ZERO, self.gross_ppe - self.accumulated_depreciation)

    @property
    def exhausted(self) -> bool:
        return self.remaining_book_value == ZERO or self.annual_depreciation <= ZERO

    def advance(self) -> Tuple[Decimal, 'HistoricalDepreciationState']:
        """
        Depreciate one more year.

        The final year takes only what is left of the book value; every
        later year is zero.

        Returns:
            Tuple of (depreciation for the year, updated state)
        """
        if self.exhausted:
            return ZERO, self
        amount = min(self.annual_depreciation, self.remaining_book_value)
        updated = replace(
            self,
            accumulated_depreciation=self.accumulated_depreciation + amount,
        )
        return amount, updated


@dataclass(frozen=True)
class CapExVirtualAsset:
    """A purchase created by a manual entry or by auto-reinvestment."""
    asset_id: str
    category: CapExCategory
    purchase_year: int
    amount: Decimal
    useful_life_years: int
    source: str = 'manual'

    @property
    def annual_depreciation(self) -> Decimal:
        return self.amount / self.useful_life_years

    @property
    def first_depreciation_year(self) -> int:
        return self.purchase_year + 1

    @property
    def last_depreciation_year(self) -> int:
        return self.purchase_year + self.useful_life_years

    def depreciation_for_year(self, year: int) -> Decimal:
        """
        Straight-line charge for ``year``.

        The last year absorbs any rounding residue so the total charge
        equals the purchase amount exactly.
        """
        if year < self.first_depreciation_year or year > self.last_depreciation_year:
            return ZERO
        if year == self.last_depreciation_year:
            return self.amount - self.annual_depreciation * (self.useful_life_years - 1)
        return self.annual_depreciation

    def accumulated_depreciation_through(self, year: int) -> Decimal:
        if year < self.first_depreciation_year:
            return ZERO
        if year >= self.last_depreciation_year:
            return self.amount
        years_elapsed = year - self.purchase_year
        return self.annual_depreciation * years_elapsed
