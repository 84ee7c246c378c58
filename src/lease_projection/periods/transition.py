# src/lease_projection/periods/transition.py
"""
Transition Period

Short bridge between the last historical year and the contract period.
Figures come from explicit assumptions where given and otherwise from the
prior year.

Revenue precedence:
1. number_of_students * average_tuition_per_student
2. prior tuition * (1 + revenue_growth_rate)
3. pre-fill: prior tuition * (1 + prefill_growth_rate)

Rent precedence:
1. rent_amount
2. prior rent * (1 + rent_growth_percent)
3. the active rent model applied to prior rent
"""

from decimal import Decimal
from typing import Sequence

from ..core.constants import ONE, TRANSITION_YEAR_COUNT, ZERO
from ..core.decimal_utils import divide_safe
from ..core.exceptions import ConfigurationError
from ..core.types import PeriodDraft, PeriodType, RentModel, RentParams, TransitionYearInput
from ..models.working_capital import WorkingCapitalModel
from .rent_models import escalate_prior_rent


def _has_direct_revenue(assumptions: TransitionYearInput) -> bool:
    return (assumptions.number_of_students is not None
            and assumptions.average_tuition_per_student is not None)


def validate_transition_inputs(transition_years: Sequence[TransitionYearInput],
                               last_historical_year: int) -> None:
    """
    Check the transition window before any year is computed.

    Raises:
        ConfigurationError: Wrong number of years, a gap after the last
            historical year, or a year whose revenue cannot be derived
    """
    if len(transition_years) != TRANSITION_YEAR_COUNT:
        raise ConfigurationError(
            f"Expected {TRANSITION_YEAR_COUNT} transition years, got {len(transition_years)}",
            field='transition_years')

    expected_year = last_historical_year + 1
    for assumptions in transition_years:
        if assumptions.year != expected_year:
            raise ConfigurationError(
                f"Transition year {assumptions.year} out of sequence; expected {expected_year}",
                field='transition_years')
        expected_year += 1

        if (not _has_direct_revenue(assumptions)
                and assumptions.revenue_growth_rate is None
                and not assumptions.prefill_from_prior_year):
            raise ConfigurationError(
                f"Transition year {assumptions.year} needs number_of_students and "
                f"average_tuition_per_student, revenue_growth_rate, or pre-fill",
                field='average_tuition_per_student')

        if assumptions.number_of_students is not None and assumptions.number_of_students < 0:
            raise ConfigurationError(
                f"number_of_students must not be negative in {assumptions.year}",
                field='number_of_students')
        for name in ('average_tuition_per_student', 'rent_amount', 'other_opex',
                     'staff_costs_ratio'):
            value = getattr(assumptions, name)
            if value is not None and value < ZERO:
                raise ConfigurationError(
                    f"{name} must not be negative in {assumptions.year}", field=name)


class TransitionPeriodCalculator:
    """Produces pre-financing drafts for transition years."""

    def __init__(
        self,
        rent_model: RentModel,
        rent_params: RentParams,
        working_capital: WorkingCapitalModel,
        reference_year: int
    ):
        """
        Args:
            rent_model: Active rent model
            rent_params: Parameters for the active model
            working_capital: Locked ratios (for other revenue)
            reference_year: Last historical year; escalation cadence counts from it
        """
        self.rent_model = rent_model
        self.rent_params = rent_params
        self.working_capital = working_capital
        self.reference_year = reference_year

    def _tuition_revenue(self, a: TransitionYearInput, prior: PeriodDraft) -> Decimal:
        if _has_direct_revenue(a):
            return Decimal(a.number_of_students) * a.average_tuition_per_student
        if a.revenue_growth_rate is not None:
            return prior.tuition_revenue * (ONE + a.revenue_growth_rate)
        if a.prefill_from_prior_year:
            return prior.tuition_revenue * (ONE + a.prefill_growth_rate)
        raise ConfigurationError(
            f"Cannot derive tuition revenue for transition year {a.year}",
            field='average_tuition_per_student')

    def _rent(self, a: TransitionYearInput, prior: PeriodDraft,
              total_revenue: Decimal) -> Decimal:
        if a.rent_amount is not None:
            return a.rent_amount
        if a.rent_growth_percent is not None:
            return prior.rent_expense * (ONE + a.rent_growth_percent)
        return escalate_prior_rent(self.rent_model, self.rent_params, prior.rent_expense,
                                   a.year, self.reference_year, total_revenue)

    def _other_opex(self, a: TransitionYearInput, prior: PeriodDraft) -> Decimal:
        if a.other_opex is not None:
            return a.other_opex
        if a.prefill_from_prior_year:
            return prior.other_opex * (ONE + a.prefill_growth_rate)
        return prior.other_opex

    def calculate(self, assumptions: TransitionYearInput, prior: PeriodDraft) -> PeriodDraft:
        """
        Build the draft for one transition year.

        Args:
            assumptions: The year's assumptions
            prior: Previous year's draft (historical or transition)

        Returns:
            PeriodDraft for the year
        """
        tuition = self._tuition_revenue(assumptions, prior)
        other_revenue = self.working_capital.other_revenue(tuition)
        total_revenue = tuition + other_revenue

        staff_ratio = assumptions.staff_costs_ratio
        if staff_ratio is None:
            staff_ratio = divide_safe(prior.staff_costs, prior.total_revenue)

        return PeriodDraft(
            year=assumptions.year,
            period_type=PeriodType.TRANSITION,
            tuition_revenue=tuition,
            other_revenue=other_revenue,
            rent_expense=self._rent(assumptions, prior, total_revenue),
            staff_costs=staff_ratio * total_revenue,
            other_opex=self._other_opex(assumptions, prior),
            students=assumptions.number_of_students,
        )
