# src/lease_projection/core/types.py
"""
Domain Types

Input snapshots, per-year statements and run output for the lease
projection engine. Every monetary field is a ``Decimal``.
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Union

import pandas as pd

from .constants import (
    DEFAULT_CONTRACT_PERIOD_YEARS,
    DEFAULT_CONVERGENCE_TOLERANCE,
    DEFAULT_DEBT_INTEREST_RATE,
    DEFAULT_DEPOSIT_INTEREST_RATE,
    DEFAULT_DISCOUNT_RATE,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MIN_CASH_BALANCE,
    DEFAULT_RELAXATION_FACTOR,
    DEFAULT_USEFUL_LIVES,
    DEFAULT_ZAKAT_RATE,
    ZERO,
)


class PeriodType(Enum):
    """Period regimes, in processing order."""
    HISTORICAL = "HISTORICAL"
    TRANSITION = "TRANSITION"
    DYNAMIC = "DYNAMIC"


class RentModel(Enum):
    """Rent model selector for transition and dynamic years."""
    FIXED_ESCALATION = "FIXED_ESCALATION"
    REVENUE_SHARE = "REVENUE_SHARE"
    PARTNER_INVESTMENT = "PARTNER_INVESTMENT"


class StaffCostMethod(Enum):
    """How dynamic-period staff costs are derived."""
    REVENUE_RATIO = "REVENUE_RATIO"
    HEADCOUNT = "HEADCOUNT"


class CapExCategory(Enum):
    """Spending categories, in catalog order."""
    IT_EQUIPMENT = "IT_EQUIPMENT"
    FURNITURE = "FURNITURE"
    EDUCATIONAL_EQUIPMENT = "EDUCATIONAL_EQUIPMENT"
    BUILDING = "BUILDING"


# ============================================
# CONFIGURATION
# ============================================

@dataclass(frozen=True)
class SystemConfiguration:
    """Run-wide rates and floors. Never mutated by the engine."""
    zakat_rate: Decimal = DEFAULT_ZAKAT_RATE
    debt_interest_rate: Decimal = DEFAULT_DEBT_INTEREST_RATE
    deposit_interest_rate: Decimal = DEFAULT_DEPOSIT_INTEREST_RATE
    min_cash_balance: Decimal = DEFAULT_MIN_CASH_BALANCE
    discount_rate: Decimal = DEFAULT_DISCOUNT_RATE


@dataclass(frozen=True)
class SolverSettings:
    """Tuning for the circular dependency solver."""
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    convergence_tolerance: Decimal = DEFAULT_CONVERGENCE_TOLERANCE
    relaxation_factor: Decimal = DEFAULT_RELAXATION_FACTOR


@dataclass(frozen=True)
class WorkingCapitalRatios:
    """
    Working capital ratios, frozen once per run.

    Revenue-driven: accounts receivable, deferred revenue.
    Opex-driven: prepaid expenses, accounts payable, accrued expenses.
    ``other_revenue_ratio`` is other revenue as a share of tuition.
    """
    ar_percent: Decimal = ZERO
    prepaid_percent: Decimal = ZERO
    ap_percent: Decimal = ZERO
    accrued_percent: Decimal = ZERO
    deferred_revenue_percent: Decimal = ZERO
    other_revenue_ratio: Decimal = ZERO
    locked: bool = True


# ============================================
# HISTORICAL AND TRANSITION INPUTS
# ============================================

@dataclass(frozen=True)
class HistoricalYearRecord:
    """Confirmed actuals for one historical year, already normalized."""

    # ============================================
    # REQUIRED FIELDS
    # ============================================
    year: int

    # Profit & Loss
    tuition_revenue: Decimal
    rent_expense: Decimal
    staff_costs: Decimal
    other_opex: Decimal
    depreciation: Decimal

    # Balance Sheet
    cash: Decimal
    gross_ppe: Decimal
    accumulated_depreciation: Decimal
    debt_balance: Decimal
    total_equity: Decimal

    # ============================================
    # OPTIONAL FIELDS
    # ============================================
    other_revenue: Decimal = ZERO
    interest_expense: Decimal = ZERO
    interest_income: Decimal = ZERO
    zakat_expense: Decimal = ZERO

    accounts_receivable: Decimal = ZERO
    prepaid_expenses: Decimal = ZERO
    accounts_payable: Decimal = ZERO
    accrued_expenses: Decimal = ZERO
    deferred_revenue: Decimal = ZERO

    immutable: bool = True

    @property
    def total_revenue(self) -> Decimal:
        return self.tuition_revenue + self.other_revenue

    @property
    def total_opex(self) -> Decimal:
        return self.rent_expense + self.staff_costs + self.other_opex


@dataclass(frozen=True)
class TransitionYearInput:
    """
    Assumptions for one transition year.

    Any field left as None falls back to the prior year (see
    ``periods.transition``).
    """
    year: int

    # Pre-fill copies prior-year figures forward at a flat growth rate
    prefill_from_prior_year: bool = False
    prefill_growth_rate: Decimal = ZERO

    # Revenue
    number_of_students: Optional[int] = None
    average_tuition_per_student: Optional[Decimal] = None
    revenue_growth_rate: Optional[Decimal] = None

    # Operating costs
    rent_amount: Optional[Decimal] = None
    rent_growth_percent: Optional[Decimal] = None
    staff_costs_ratio: Optional[Decimal] = None
    other_opex: Optional[Decimal] = None


# ============================================
# DYNAMIC PERIOD INPUTS
# ============================================

@dataclass(frozen=True)
class EnrollmentConfig:
    """Student headcount ramp-up toward a steady state."""
    steady_state_students: int
    ramp_up_enabled: bool = False
    ramp_up_start_year: Optional[int] = None
    ramp_up_end_year: Optional[int] = None
    ramp_up_target_students: Optional[int] = None
    # One fraction of the target per ramp year, start to end inclusive
    ramp_plan_percentages: Optional[List[Decimal]] = None


@dataclass(frozen=True)
class CurriculumTrack:
    """Tuition level and stepwise escalation for one curriculum."""
    base_tuition: Decimal
    growth_rate: Decimal = ZERO
    frequency_years: int = 1
    # Secondary curriculum only
    student_share: Decimal = ZERO
    start_year: Optional[int] = None


@dataclass(frozen=True)
class CurriculumConfig:
    primary: CurriculumTrack
    secondary: Optional[CurriculumTrack] = None
    secondary_enabled: bool = False


@dataclass(frozen=True)
class StaffConfig:
    method: StaffCostMethod = StaffCostMethod.REVENUE_RATIO

    # REVENUE_RATIO
    staff_cost_ratio: Optional[Decimal] = None

    # HEADCOUNT
    students_per_teacher: Optional[Decimal] = None
    students_per_non_teacher: Optional[Decimal] = None
    avg_teacher_monthly_salary: Optional[Decimal] = None
    avg_non_teacher_monthly_salary: Optional[Decimal] = None
    cpi_rate: Decimal = ZERO
    cpi_frequency_years: int = 1


@dataclass(frozen=True)
class DynamicPeriodConfig:
    enrollment: EnrollmentConfig
    curriculum: CurriculumConfig
    staff: StaffConfig = field(default_factory=StaffConfig)
    other_opex: Decimal = ZERO
    # When set, other opex is this share of total revenue instead
    other_opex_percent: Optional[Decimal] = None


# ============================================
# RENT MODEL PARAMETERS
# ============================================

@dataclass(frozen=True)
class FixedEscalationParams:
    base_rent: Optional[Decimal] = None
    growth_rate: Optional[Decimal] = None
    frequency_years: Optional[int] = None


@dataclass(frozen=True)
class RevenueShareParams:
    revenue_share_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class PartnerInvestmentParams:
    """Rent as a yield on the partner's land and construction outlay."""
    land_size: Optional[Decimal] = None
    land_price_per_sqm: Optional[Decimal] = None
    bua_size: Optional[Decimal] = None
    construction_cost_per_sqm: Optional[Decimal] = None
    yield_rate: Optional[Decimal] = None
    growth_rate: Optional[Decimal] = None
    frequency_years: Optional[int] = None

    @property
    def total_investment(self) -> Decimal:
        land = self.land_size * self.land_price_per_sqm
        construction = self.bua_size * self.construction_cost_per_sqm
        return land + construction


RentParams = Union[FixedEscalationParams, RevenueShareParams, PartnerInvestmentParams]

RENT_PARAM_TYPES = {
    RentModel.FIXED_ESCALATION: FixedEscalationParams,
    RentModel.REVENUE_SHARE: RevenueShareParams,
    RentModel.PARTNER_INVESTMENT: PartnerInvestmentParams,
}


# ============================================
# CAPEX INPUTS
# ============================================

@dataclass(frozen=True)
class CapExCategoryConfig:
    """Catalog entry for one spending category."""
    category: CapExCategory
    useful_life_years: int
    auto_reinvest_enabled: bool = False
    reinvest_frequency_years: Optional[int] = None
    reinvest_amount: Optional[Decimal] = None
    # Defaults to the first dynamic year
    reinvest_start_year: Optional[int] = None


@dataclass(frozen=True)
class CapExEntry:
    """Manually planned purchase."""
    year: int
    category: CapExCategory
    amount: Decimal


def default_capex_categories() -> List[CapExCategoryConfig]:
    """Standard catalog with auto-reinvestment switched off."""
    return [
        CapExCategoryConfig(category=category,
                            useful_life_years=DEFAULT_USEFUL_LIVES[category.value])
        for category in CapExCategory
    ]


# ============================================
# ENGINE INPUT
# ============================================

@dataclass(frozen=True)
class ProjectionInputs:
    """Immutable input snapshot for one calculation run."""

    # ============================================
    # REQUIRED FIELDS
    # ============================================
    historical_years: List[HistoricalYearRecord]
    transition_years: List[TransitionYearInput]
    dynamic_config: DynamicPeriodConfig
    rent_model: RentModel
    rent_params: Optional[RentParams]

    # ============================================
    # OPTIONAL FIELDS
    # ============================================
    system_config: SystemConfiguration = field(default_factory=SystemConfiguration)
    contract_period_years: int = DEFAULT_CONTRACT_PERIOD_YEARS
    capex_categories: List[CapExCategoryConfig] = field(default_factory=default_capex_categories)
    transition_capex: List[CapExEntry] = field(default_factory=list)
    dynamic_capex: List[CapExEntry] = field(default_factory=list)
    # Derived from the final historical year when omitted
    working_capital_ratios: Optional[WorkingCapitalRatios] = None
    solver_settings: SolverSettings = field(default_factory=SolverSettings)


# ============================================
# PER-YEAR STATEMENTS
# ============================================

@dataclass(frozen=True)
class PeriodDraft:
    """Pre-financing operating figures for one year."""
    year: int
    period_type: PeriodType
    tuition_revenue: Decimal
    other_revenue: Decimal
    rent_expense: Decimal
    staff_costs: Decimal
    other_opex: Decimal
    students: Optional[int] = None

    @property
    def total_revenue(self) -> Decimal:
        return self.tuition_revenue + self.other_revenue

    @property
    def total_opex(self) -> Decimal:
        return self.rent_expense + self.staff_costs + self.other_opex

    @property
    def ebitda(self) -> Decimal:
        return self.total_revenue - self.total_opex


@dataclass(frozen=True)
class ProfitLossStatement:
    tuition_revenue: Decimal
    other_revenue: Decimal
    total_revenue: Decimal
    rent_expense: Decimal
    staff_costs: Decimal
    other_opex: Decimal
    total_opex: Decimal
    ebitda: Decimal
    depreciation: Decimal
    ebit: Decimal
    interest_expense: Decimal
    interest_income: Decimal
    net_interest: Decimal
    ebt: Decimal
    zakat_expense: Decimal
    net_income: Decimal


@dataclass(frozen=True)
class BalanceSheetStatement:
    # Current assets
    cash: Decimal
    accounts_receivable: Decimal
    prepaid_expenses: Decimal
    total_current_assets: Decimal

    # Non-current assets
    gross_ppe: Decimal
    accumulated_depreciation: Decimal
    net_ppe: Decimal
    total_assets: Decimal

    # Liabilities
    accounts_payable: Decimal
    accrued_expenses: Decimal
    deferred_revenue: Decimal
    total_current_liabilities: Decimal
    debt_balance: Decimal
    total_liabilities: Decimal

    # Equity
    retained_earnings: Decimal
    net_income_current_year: Decimal
    total_equity: Decimal

    # total_assets - (total_liabilities + total_equity)
    balance_difference: Decimal


@dataclass(frozen=True)
class CashFlowStatement:
    # Operating
    net_income: Decimal
    depreciation: Decimal
    change_in_receivables: Decimal
    change_in_prepaid: Decimal
    change_in_payables: Decimal
    change_in_accrued: Decimal
    change_in_deferred_revenue: Decimal
    operating_cash_flow: Decimal

    # Investing
    capex: Decimal
    investing_cash_flow: Decimal

    # Financing
    debt_issuance: Decimal
    debt_repayment: Decimal
    other_financing_adjustments: Decimal
    financing_cash_flow: Decimal

    # Reconciliation
    net_change_in_cash: Decimal
    beginning_cash: Decimal
    ending_cash: Decimal
    cash_reconciliation_difference: Decimal


@dataclass(frozen=True)
class FinancialPeriod:
    """One year's complete output."""
    year: int
    period_type: PeriodType
    profit_loss: ProfitLossStatement
    balance_sheet: BalanceSheetStatement
    cash_flow: CashFlowStatement
    converged: bool
    iterations_required: int
    balance_sheet_balanced: bool
    cash_flow_reconciled: bool
    # Opening position matches the prior period's close
    linked_to_prior: bool = True
    validation_issues: List[str] = field(default_factory=list)

    def to_row(self) -> Dict[str, object]:
        """Flatten the three statements into one record."""
        row: Dict[str, object] = {
            'year': self.year,
            'period_type': self.period_type.value,
        }
        row.update(asdict(self.profit_loss))
        row.update(asdict(self.balance_sheet))
        row.update({f'cf_{k}': v for k, v in asdict(self.cash_flow).items()})
        row.update({
            'converged': self.converged,
            'iterations_required': self.iterations_required,
            'balance_sheet_balanced': self.balance_sheet_balanced,
            'cash_flow_reconciled': self.cash_flow_reconciled,
            'linked_to_prior': self.linked_to_prior,
        })
        return row


# ============================================
# ENGINE OUTPUT
# ============================================

@dataclass(frozen=True)
class SummaryMetrics:
    """Run-level metrics. ``None`` marks a metric with no defined value."""

    # Full horizon
    total_net_income: Decimal
    total_rent: Decimal
    total_ebitda: Decimal
    average_ebitda: Decimal
    average_roe: Decimal
    peak_debt: Decimal
    final_cash: Decimal
    npv: Decimal
    irr: Optional[Decimal]
    payback_period: Optional[Decimal]

    # Contract period (dynamic years)
    contract_total_rent: Decimal
    contract_total_ebitda: Decimal
    contract_final_cash: Decimal
    contract_rent_npv: Decimal
    contract_ebitda_npv: Decimal
    # Contract EBITDA NPV less the absolute contract rent NPV
    contract_net_tenant_surplus: Decimal
    annualization_factor: Decimal
    contract_annualized_ebitda: Decimal
    contract_annualized_rent: Decimal
    net_tenant_surplus: Decimal


@dataclass(frozen=True)
class ValidationSummary:
    all_periods_balanced: bool
    all_cash_flows_reconciled: bool
    all_periods_converged: bool
    max_balance_difference: Decimal
    max_cash_difference: Decimal
    all_periods_linked: bool = True
    non_converged_years: List[int] = field(default_factory=list)
    issues: Dict[int, List[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return (self.all_periods_balanced and self.all_cash_flows_reconciled
                and self.all_periods_linked)


@dataclass(frozen=True)
class PerformanceSummary:
    elapsed_seconds: float
    total_iterations: int
    average_iterations_per_year: Decimal


@dataclass(frozen=True)
class ProjectionOutput:
    """Result of one calculation run."""
    periods: List[FinancialPeriod]
    metrics: SummaryMetrics
    validation: ValidationSummary
    performance: PerformanceSummary

    @property
    def converged(self) -> bool:
        return self.validation.all_periods_converged

    def period(self, year: int) -> FinancialPeriod:
        for period in self.periods:
            if period.year == year:
                return period
        raise KeyError(f"No period for year {year}")

    def to_dataframe(self) -> pd.DataFrame:
        """
        One row per year, indexed by year.

        Returns:
            DataFrame with P&L, balance sheet and cash flow columns
        """
        df = pd.DataFrame([p.to_row() for p in self.periods])
        return df.set_index('year')

    def raise_for_validation(self) -> None:
        """
        Raise ValidationFailure if any year failed to balance or reconcile.

        Non-convergence alone is not a validation failure; check
        ``converged`` for that.
        """
        from .exceptions import ValidationFailure

        if self.validation.is_valid:
            return
        failing = sorted(self.validation.issues)
        raise ValidationFailure(
            f"Statements failed validation for years {failing}: "
            f"max balance difference {self.validation.max_balance_difference}, "
            f"max cash difference {self.validation.max_cash_difference}",
            issues=self.validation.issues,
        )


__all__ = [
    'PeriodType', 'RentModel', 'StaffCostMethod', 'CapExCategory',
    'SystemConfiguration', 'SolverSettings', 'WorkingCapitalRatios',
    'HistoricalYearRecord', 'TransitionYearInput',
    'EnrollmentConfig', 'CurriculumTrack', 'CurriculumConfig', 'StaffConfig',
    'DynamicPeriodConfig',
    'FixedEscalationParams', 'RevenueShareParams', 'PartnerInvestmentParams',
    'RentParams', 'RENT_PARAM_TYPES',
    'CapExCategoryConfig', 'CapExEntry', 'default_capex_categories',
    'ProjectionInputs', 'PeriodDraft',
    'ProfitLossStatement', 'BalanceSheetStatement', 'CashFlowStatement',
    'FinancialPeriod', 'SummaryMetrics', 'ValidationSummary',
    'PerformanceSummary', 'ProjectionOutput',
]
