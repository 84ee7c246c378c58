# src/lease_projection/models/financial_model.py
"""
Financial Model - Period Orchestrator

Runs one projection end to end:

1. Validate every input; configuration errors abort before any year runs
2. Historical years: statements taken verbatim
3. Lock working capital ratios from the final historical year
4. Transition and dynamic years, each:
   draft -> CapEx -> working capital -> circular solver -> statements
5. Summary metrics, validation and performance blocks

Each year's closing balance sheet is the next year's opening state, so
years are processed strictly in order.
"""

import time
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import List, Optional

from ..capex.capex_calculator import CapExCalculator, validate_capex_config
from ..capex.depreciation import HistoricalDepreciationState
from ..core.constants import SUPPORTED_CONTRACT_PERIODS, ZERO
from ..core.decimal_utils import calculation_context
from ..core.exceptions import ConfigurationError
from ..core.types import (
    FinancialPeriod,
    PerformanceSummary,
    PeriodDraft,
    PeriodType,
    ProjectionInputs,
    ProjectionOutput,
    RentModel,
    ValidationSummary,
    WorkingCapitalRatios,
)
from ..core.valuation import MetricsCalculator
from ..financial_statements.statement_builder import OpeningBalances, StatementBuilder
from ..financial_statements.validators import validate_financial_period, validate_period_linkage
from ..periods.dynamic import DynamicPeriodCalculator, validate_dynamic_config
from ..periods.historical import validate_historical_records
from ..periods.rent_models import parse_rent_model, validate_rent_params
from ..periods.transition import TransitionPeriodCalculator, validate_transition_inputs
from ..solvers.circular import CircularSolver, CircularSolverInput
from .working_capital import WorkingCapitalModel, resolve_working_capital_ratios


@dataclass(frozen=True)
class PeriodLayout:
    """Calendar years of each regime."""
    historical_years: List[int]
    transition_years: List[int]
    dynamic_years: List[int]

    @property
    def first_dynamic_year(self) -> int:
        return self.dynamic_years[0]

    @property
    def all_years(self) -> List[int]:
        return self.historical_years + self.transition_years + self.dynamic_years


def _validate_system_config(inputs: ProjectionInputs) -> None:
    cfg = inputs.system_config
    for name in ('zakat_rate', 'debt_interest_rate', 'deposit_interest_rate',
                 'min_cash_balance', 'discount_rate'):
        value = getattr(cfg, name)
        if value is None:
            raise ConfigurationError(f"System configuration is missing '{name}'", field=name)
        if value < ZERO:
            raise ConfigurationError(f"{name} must not be negative, got {value}", field=name)


def _validate_working_capital_ratios(ratios: Optional[WorkingCapitalRatios]) -> None:
    if ratios is None:
        return
    for name in ('ar_percent', 'prepaid_percent', 'ap_percent', 'accrued_percent',
                 'deferred_revenue_percent', 'other_revenue_ratio'):
        if getattr(ratios, name) < ZERO:
            raise ConfigurationError(f"Working capital ratio {name} must not be negative",
                                     field=name)


def validate_inputs(inputs: ProjectionInputs) -> PeriodLayout:
    """
    Validate a complete input snapshot and derive the year layout.

    Transition years follow the last historical year; the dynamic period
    starts the year after the last transition year and runs for the
    contract length.

    Args:
        inputs: Input snapshot

    Returns:
        PeriodLayout for the run

    Raises:
        ConfigurationError: On the first invalid or missing input
    """
    if inputs.contract_period_years not in SUPPORTED_CONTRACT_PERIODS:
        raise ConfigurationError(
            f"contract_period_years must be one of {SUPPORTED_CONTRACT_PERIODS}, "
            f"got {inputs.contract_period_years}", field='contract_period_years')

    _validate_system_config(inputs)

    historical = list(inputs.historical_years)
    validate_historical_records(historical)
    last_historical = historical[-1].year

    validate_transition_inputs(inputs.transition_years, last_historical)
    transition_years = [t.year for t in inputs.transition_years]

    first_dynamic = transition_years[-1] + 1
    dynamic_years = list(range(first_dynamic, first_dynamic + inputs.contract_period_years))

    rent_model = parse_rent_model(inputs.rent_model)
    validate_rent_params(rent_model, inputs.rent_params)
    validate_dynamic_config(inputs.dynamic_config, first_dynamic)

    validate_capex_config(inputs.capex_categories,
                          list(inputs.transition_capex) + list(inputs.dynamic_capex))
    for entry in inputs.transition_capex:
        if entry.year not in transition_years:
            raise ConfigurationError(
                f"Transition CapEx entry year {entry.year} is outside the transition "
                f"period {transition_years[0]}-{transition_years[-1]}", field='transition_capex')
    for entry in inputs.dynamic_capex:
        if not first_dynamic <= entry.year <= dynamic_years[-1]:
            raise ConfigurationError(
                f"Dynamic CapEx entry year {entry.year} is outside the contract period "
                f"{first_dynamic}-{dynamic_years[-1]}", field='dynamic_capex')

    _validate_working_capital_ratios(inputs.working_capital_ratios)

    return PeriodLayout(
        historical_years=[r.year for r in historical],
        transition_years=transition_years,
        dynamic_years=dynamic_years,
    )


class FinancialModel:
    """
    Complete lease projection over historical, transition and dynamic years.

    One instance performs one run; build_model() may be called again and
    reproduces the same output.
    """

    def __init__(self, inputs: ProjectionInputs, verbose: bool = False):
        """
        Initialize and validate the model.

        Args:
            inputs: Immutable input snapshot
            verbose: Print progress while building

        Raises:
            ConfigurationError: If any input is invalid
        """
        self.inputs = inputs
        self.verbose = verbose
        self.layout = validate_inputs(inputs)
        self.rent_model: RentModel = parse_rent_model(inputs.rent_model)

        # Built per run in build_model()
        self.periods: List[FinancialPeriod] = []
        self.working_capital_ratios: Optional[WorkingCapitalRatios] = None

    # ============================================
    # RUN
    # ============================================

    def build_model(self) -> ProjectionOutput:
        """
        Build every period and the run summary.

        Returns:
            ProjectionOutput with periods, metrics, validation and performance
        """
        started = time.perf_counter()
        with calculation_context():
            periods = self._build_periods()
            metrics = MetricsCalculator(
                periods,
                discount_rate=self.inputs.system_config.discount_rate,
                contract_period_years=self.inputs.contract_period_years,
            ).calculate()
            validation = self._build_validation_summary(periods)
            performance = self._build_performance_summary(periods, time.perf_counter() - started)

        self.periods = periods
        if self.verbose:
            self._print_summary(validation, performance)

        return ProjectionOutput(
            periods=periods,
            metrics=metrics,
            validation=validation,
            performance=performance,
        )

    def _build_periods(self) -> List[FinancialPeriod]:
        inputs = self.inputs
        layout = self.layout
        statements = StatementBuilder()
        periods: List[FinancialPeriod] = []

        if self.verbose:
            print("=" * 70)
            print(f"LEASE PROJECTION: {layout.all_years[0]}-{layout.all_years[-1]} "
                  f"({self.rent_model.value})")
            print("=" * 70)

        # Historical
        prior_record = None
        for record in inputs.historical_years:
            if self.verbose:
                print(f"Building historical period {record.year}...")
            periods.append(statements.build_historical(record, prior_record))
            prior_record = record

        final_record = inputs.historical_years[-1]
        ratios = resolve_working_capital_ratios(final_record, inputs.working_capital_ratios)
        self.working_capital_ratios = ratios
        working_capital = WorkingCapitalModel(ratios)

        capex = CapExCalculator(
            historical_state=HistoricalDepreciationState.from_historical(final_record),
            categories=inputs.capex_categories,
            first_dynamic_year=layout.first_dynamic_year,
            manual_entries=list(inputs.transition_capex) + list(inputs.dynamic_capex),
        )
        solver = CircularSolver(inputs.system_config, inputs.solver_settings)

        prior_draft = _draft_from_period(periods[-1])

        # Transition
        transition = TransitionPeriodCalculator(
            self.rent_model, inputs.rent_params, working_capital,
            reference_year=final_record.year)
        for assumptions in inputs.transition_years:
            draft = transition.calculate(assumptions, prior_draft)
            periods.append(self._project_year(draft, capex, working_capital, solver,
                                              statements, periods[-1]))
            prior_draft = draft

        # Dynamic
        dynamic = DynamicPeriodCalculator(
            inputs.dynamic_config, self.rent_model, inputs.rent_params,
            working_capital, layout.first_dynamic_year)
        for year in layout.dynamic_years:
            draft = dynamic.calculate(year)
            periods.append(self._project_year(draft, capex, working_capital, solver,
                                              statements, periods[-1]))

        return periods

    def _project_year(
        self,
        draft: PeriodDraft,
        capex: CapExCalculator,
        working_capital: WorkingCapitalModel,
        solver: CircularSolver,
        statements: StatementBuilder,
        prior: FinancialPeriod
    ) -> FinancialPeriod:
        """
        Run one transition or dynamic year through the full pipeline.

        The year opens on the prior period's closing balance sheet; any break
        in that linkage is recorded on the period.
        """
        opening = OpeningBalances.from_period(prior)
        if self.verbose:
            print(f"Building {draft.period_type.value.lower()} period {draft.year}...")

        capex_result = capex.calculate_year(draft.year, draft.period_type)
        balances = working_capital.calculate_balances(draft.total_revenue, draft.total_opex)

        solution = solver.solve(CircularSolverInput(
            year=draft.year,
            ebitda=draft.ebitda,
            depreciation=capex_result.depreciation,
            opening_cash=opening.cash,
            opening_debt=opening.debt_balance,
            working_capital_change=balances.cash_effect_from(opening.working_capital),
            capex=capex_result.capex,
        ))

        period = statements.build_projected(draft, capex_result, balances, opening, solution)
        linkage_errors = validate_period_linkage(prior, period)
        if linkage_errors:
            period = replace(period, linked_to_prior=False,
                             validation_issues=period.validation_issues + linkage_errors)

        if self.verbose:
            _, warnings = validate_financial_period(period, statement_checks=False)
            for message in period.validation_issues + warnings:
                print(f"  ! {message}")
        return period

    # ============================================
    # SUMMARY BLOCKS
    # ============================================

    @staticmethod
    def _build_validation_summary(periods: List[FinancialPeriod]) -> ValidationSummary:
        return ValidationSummary(
            all_periods_balanced=all(p.balance_sheet_balanced for p in periods),
            all_cash_flows_reconciled=all(p.cash_flow_reconciled for p in periods),
            all_periods_converged=all(p.converged for p in periods),
            max_balance_difference=max(abs(p.balance_sheet.balance_difference) for p in periods),
            max_cash_difference=max(
                abs(p.cash_flow.cash_reconciliation_difference) for p in periods),
            all_periods_linked=all(p.linked_to_prior for p in periods),
            non_converged_years=[p.year for p in periods if not p.converged],
            issues={p.year: list(p.validation_issues) for p in periods if p.validation_issues},
        )

    @staticmethod
    def _build_performance_summary(periods: List[FinancialPeriod],
                                   elapsed: float) -> PerformanceSummary:
        solved = [p for p in periods if p.period_type is not PeriodType.HISTORICAL]
        total_iterations = sum(p.iterations_required for p in solved)
        average = Decimal(total_iterations) / Decimal(len(solved)) if solved else ZERO
        return PerformanceSummary(
            elapsed_seconds=elapsed,
            total_iterations=total_iterations,
            average_iterations_per_year=average,
        )

    def _print_summary(self, validation: ValidationSummary,
                       performance: PerformanceSummary) -> None:
        print("=" * 70)
        print(f"Periods built:          {len(self.periods)}")
        print(f"All balanced:           {validation.all_periods_balanced}")
        print(f"All reconciled:         {validation.all_cash_flows_reconciled}")
        print(f"All converged:          {validation.all_periods_converged}")
        print(f"Solver iterations:      {performance.total_iterations} "
              f"(avg {performance.average_iterations_per_year:.2f}/year)")
        print(f"Elapsed:                {performance.elapsed_seconds:.3f}s")
        print("=" * 70)


def _draft_from_period(period: FinancialPeriod) -> PeriodDraft:
    """Operating figures of a finished period, as the next year's prior."""
    pl = period.profit_loss
    return PeriodDraft(
        year=period.year,
        period_type=period.period_type,
        tuition_revenue=pl.tuition_revenue,
        other_revenue=pl.other_revenue,
        rent_expense=pl.rent_expense,
        staff_costs=pl.staff_costs,
        other_opex=pl.other_opex,
    )


def calculate_financial_projections(inputs: ProjectionInputs,
                                    verbose: bool = False) -> ProjectionOutput:
    """
    Run a complete projection.

    Args:
        inputs: Immutable input snapshot
        verbose: Print progress

    Returns:
        ProjectionOutput

    Raises:
        ConfigurationError: Before any computation, on invalid input
    """
    return FinancialModel(inputs, verbose=verbose).build_model()
