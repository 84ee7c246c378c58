# src/lease_projection/periods/dynamic.py
"""
Dynamic Period

Formula-driven contract years:

- Enrollment ramps toward a target (explicit yearly percentages or a
  linear ramp), capped at the steady-state headcount.
- Tuition splits across a primary curriculum and an optional secondary
  curriculum; each escalates stepwise every N years.
- Staff costs are a share of revenue or derived from headcount ratios and
  monthly salaries escalated by CPI.
- Rent follows the active rent model.
"""

from decimal import Decimal
from typing import Dict, Tuple

from ..core.constants import MONTHS_PER_YEAR, ONE, ZERO
from ..core.decimal_utils import (
    ceil_int,
    compound,
    escalation_steps,
    round_half_up_int,
)
from ..core.exceptions import ConfigurationError
from ..core.types import (
    CurriculumConfig,
    CurriculumTrack,
    DynamicPeriodConfig,
    EnrollmentConfig,
    PeriodDraft,
    PeriodType,
    RentModel,
    RentParams,
    StaffConfig,
    StaffCostMethod,
)
from ..models.working_capital import WorkingCapitalModel
from .rent_models import calculate_rent


# ============================================
# ENROLLMENT
# ============================================

def ramp_window(enrollment: EnrollmentConfig, first_dynamic_year: int) -> Tuple[int, int]:
    """Inclusive (start, end) years of the ramp-up."""
    start = enrollment.ramp_up_start_year or first_dynamic_year
    if enrollment.ramp_up_end_year is not None:
        return start, enrollment.ramp_up_end_year
    if enrollment.ramp_plan_percentages:
        return start, start + len(enrollment.ramp_plan_percentages) - 1
    raise ConfigurationError("Ramp-up requires ramp_up_end_year or ramp_plan_percentages",
                             field='ramp_up_end_year')


def validate_enrollment(enrollment: EnrollmentConfig, first_dynamic_year: int) -> None:
    """
    Raises:
        ConfigurationError: Negative headcounts, an inverted ramp window,
            or a percentage plan whose length differs from the window
    """
    if enrollment.steady_state_students is None or enrollment.steady_state_students < 0:
        raise ConfigurationError("steady_state_students must be zero or more",
                                 field='steady_state_students')
    if not enrollment.ramp_up_enabled:
        return

    target = enrollment.ramp_up_target_students
    if target is not None and target < 0:
        raise ConfigurationError("ramp_up_target_students must be zero or more",
                                 field='ramp_up_target_students')

    start, end = ramp_window(enrollment, first_dynamic_year)
    if end < start:
        raise ConfigurationError(
            f"Ramp-up end year {end} is before start year {start}",
            field='ramp_up_end_year')

    plan = enrollment.ramp_plan_percentages
    if plan is None:
        return
    expected = end - start + 1
    if len(plan) != expected:
        raise ConfigurationError(
            f"ramp_plan_percentages has {len(plan)} entries; the ramp from "
            f"{start} to {end} needs exactly {expected}",
            field='ramp_plan_percentages')
    for pct in plan:
        if not ZERO <= pct <= ONE:
            raise ConfigurationError(
                f"Ramp percentages must be fractions between 0 and 1, got {pct}",
                field='ramp_plan_percentages')


def calculate_enrollment(enrollment: EnrollmentConfig, year: int,
                         first_dynamic_year: int) -> int:
    """
    Student headcount for ``year``.

    Before the ramp starts there are no students; after it ends the
    steady state applies. Results are whole students, rounded half up,
    never above the steady state.
    """
    steady = enrollment.steady_state_students
    if not enrollment.ramp_up_enabled:
        return steady

    start, end = ramp_window(enrollment, first_dynamic_year)
    target = enrollment.ramp_up_target_students
    if target is None:
        target = steady

    offset = year - start
    if offset < 0:
        return 0
    if year > end:
        return steady

    if enrollment.ramp_plan_percentages is not None:
        students = round_half_up_int(enrollment.ramp_plan_percentages[offset] * target)
    else:
        progress = Decimal(offset + 1) / Decimal(end - start + 1)
        students = round_half_up_int(progress * target)
    return min(students, steady)


# ============================================
# CURRICULUM
# ============================================

def tuition_per_student(track: CurriculumTrack, year: int, base_year: int) -> Decimal:
    """Stepwise escalation: flat within each frequency interval."""
    steps = escalation_steps(year, base_year, track.frequency_years)
    return compound(track.base_tuition, track.growth_rate, steps)


def secondary_active(curriculum: CurriculumConfig, year: int, base_year: int) -> bool:
    if not curriculum.secondary_enabled or curriculum.secondary is None:
        return False
    start = curriculum.secondary.start_year or base_year
    return year >= start


def calculate_tuition_revenue(curriculum: CurriculumConfig, students: int, year: int,
                              base_year: int) -> Dict[str, Decimal]:
    """
    Split students across curricula and price them.

    Returns:
        Dictionary with primary/secondary students and revenue plus the total
    """
    secondary_students = 0
    secondary_revenue = ZERO
    if secondary_active(curriculum, year, base_year):
        track = curriculum.secondary
        secondary_students = round_half_up_int(Decimal(students) * track.student_share)
        secondary_revenue = Decimal(secondary_students) * tuition_per_student(track, year, base_year)

    primary_students = students - secondary_students
    primary_revenue = Decimal(primary_students) * tuition_per_student(
        curriculum.primary, year, base_year)

    return {
        'primary_students': Decimal(primary_students),
        'primary_revenue': primary_revenue,
        'secondary_students': Decimal(secondary_students),
        'secondary_revenue': secondary_revenue,
        'tuition_revenue': primary_revenue + secondary_revenue,
    }


def validate_curriculum(curriculum: CurriculumConfig) -> None:
    tracks = [('primary', curriculum.primary)]
    if curriculum.secondary_enabled:
        if curriculum.secondary is None:
            raise ConfigurationError("Secondary curriculum is enabled but not configured",
                                     field='secondary')
        tracks.append(('secondary', curriculum.secondary))
        if not ZERO <= curriculum.secondary.student_share <= ONE:
            raise ConfigurationError("Secondary student_share must be between 0 and 1",
                                     field='student_share')

    for name, track in tracks:
        if track.base_tuition is None or track.base_tuition < ZERO:
            raise ConfigurationError(f"{name} base_tuition must be zero or more",
                                     field='base_tuition')
        if track.frequency_years < 1:
            raise ConfigurationError(f"{name} frequency_years must be at least 1",
                                     field='frequency_years')


# ============================================
# STAFF
# ============================================

_HEADCOUNT_FIELDS = (
    'students_per_teacher', 'students_per_non_teacher',
    'avg_teacher_monthly_salary', 'avg_non_teacher_monthly_salary',
)


def validate_staff(staff: StaffConfig) -> None:
    if staff.method is StaffCostMethod.REVENUE_RATIO:
        if staff.staff_cost_ratio is None:
            raise ConfigurationError("Staff method REVENUE_RATIO requires staff_cost_ratio",
                                     field='staff_cost_ratio')
        if staff.staff_cost_ratio < ZERO:
            raise ConfigurationError("staff_cost_ratio must not be negative",
                                     field='staff_cost_ratio')
        return

    for name in _HEADCOUNT_FIELDS:
        value = getattr(staff, name)
        if value is None:
            raise ConfigurationError(f"Staff method HEADCOUNT requires {name}", field=name)
        if value <= ZERO:
            raise ConfigurationError(f"{name} must be positive", field=name)
    if staff.cpi_frequency_years < 1:
        raise ConfigurationError("cpi_frequency_years must be at least 1",
                                 field='cpi_frequency_years')


def calculate_staff_costs(staff: StaffConfig, students: int, total_revenue: Decimal,
                          year: int, base_year: int) -> Decimal:
    """
    Annual staff cost.

    HEADCOUNT: (teachers * teacher salary + non-teachers * non-teacher
    salary) * 12, escalated by CPI every ``cpi_frequency_years``.
    """
    if staff.method is StaffCostMethod.REVENUE_RATIO:
        return staff.staff_cost_ratio * total_revenue

    head = Decimal(students)
    teachers = ceil_int(head / staff.students_per_teacher)
    non_teachers = ceil_int(head / staff.students_per_non_teacher)
    monthly = (Decimal(teachers) * staff.avg_teacher_monthly_salary
               + Decimal(non_teachers) * staff.avg_non_teacher_monthly_salary)
    steps = escalation_steps(year, base_year, staff.cpi_frequency_years)
    return compound(monthly * MONTHS_PER_YEAR, staff.cpi_rate, steps)


# ============================================
# CALCULATOR
# ============================================

def validate_dynamic_config(config: DynamicPeriodConfig, first_dynamic_year: int) -> None:
    """Run every dynamic-period check; raises ConfigurationError."""
    validate_enrollment(config.enrollment, first_dynamic_year)
    validate_curriculum(config.curriculum)
    validate_staff(config.staff)
    if config.other_opex_percent is not None and config.other_opex_percent < ZERO:
        raise ConfigurationError("other_opex_percent must not be negative",
                                 field='other_opex_percent')
    if config.other_opex is None or config.other_opex < ZERO:
        raise ConfigurationError("other_opex must be zero or more", field='other_opex')


class DynamicPeriodCalculator:
    """Produces pre-financing drafts for contract years."""

    def __init__(
        self,
        config: DynamicPeriodConfig,
        rent_model: RentModel,
        rent_params: RentParams,
        working_capital: WorkingCapitalModel,
        first_dynamic_year: int
    ):
        self.config = config
        self.rent_model = rent_model
        self.rent_params = rent_params
        self.working_capital = working_capital
        self.first_dynamic_year = first_dynamic_year

    def calculate(self, year: int) -> PeriodDraft:
        """
        Build the draft for one dynamic year.

        Args:
            year: Calendar year within the contract period

        Returns:
            PeriodDraft for the year
        """
        cfg = self.config
        base_year = self.first_dynamic_year

        students = calculate_enrollment(cfg.enrollment, year, base_year)
        tuition = calculate_tuition_revenue(cfg.curriculum, students, year, base_year)
        tuition_revenue = tuition['tuition_revenue']
        other_revenue = self.working_capital.other_revenue(tuition_revenue)
        total_revenue = tuition_revenue + other_revenue

        if cfg.other_opex_percent is not None:
            other_opex = cfg.other_opex_percent * total_revenue
        else:
            other_opex = cfg.other_opex

        return PeriodDraft(
            year=year,
            period_type=PeriodType.DYNAMIC,
            tuition_revenue=tuition_revenue,
            other_revenue=other_revenue,
            rent_expense=calculate_rent(self.rent_model, self.rent_params, year,
                                        base_year, total_revenue),
            staff_costs=calculate_staff_costs(cfg.staff, students, total_revenue,
                                              year, base_year),
            other_opex=other_opex,
            students=students,
        )
