# src/lease_projection/core/serialization.py
"""
JSON serialization that preserves Decimal values.

Every Decimal is written as a tagged object

    {"__type__": "Decimal", "value": "10300000.00"}

and restored exactly, so money never passes through a binary float.
Enums are written as their values.
"""

import json
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict

from .types import (
    BalanceSheetStatement,
    CashFlowStatement,
    FinancialPeriod,
    PerformanceSummary,
    PeriodType,
    ProfitLossStatement,
    ProjectionOutput,
    SummaryMetrics,
    ValidationSummary,
)

DECIMAL_TAG = "Decimal"


def serialize_decimals(obj: Any) -> Any:
    """Recursively replace Decimals with tagged objects and Enums with values."""
    if isinstance(obj, Decimal):
        return {"__type__": DECIMAL_TAG, "value": str(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return serialize_decimals(asdict(obj))
    if isinstance(obj, dict):
        return {key: serialize_decimals(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [serialize_decimals(value) for value in obj]
    return obj


def deserialize_decimals(obj: Any) -> Any:
    """Inverse of serialize_decimals for the Decimal tags."""
    if isinstance(obj, dict):
        if obj.get("__type__") == DECIMAL_TAG:
            return Decimal(obj["value"])
        return {key: deserialize_decimals(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [deserialize_decimals(value) for value in obj]
    return obj


def dumps(obj: Any, indent: int = None) -> str:
    return json.dumps(serialize_decimals(obj), indent=indent)


def loads(text: str) -> Any:
    return deserialize_decimals(json.loads(text))


# ============================================
# PROJECTION OUTPUT
# ============================================

def output_to_dict(output: ProjectionOutput) -> Dict[str, Any]:
    """
    Plain nested mapping of a run's output; Decimals kept as Decimals.

    Args:
        output: Finished projection

    Returns:
        Dictionary with periods, metrics, validation and performance
    """
    return {
        'periods': [asdict(period) for period in output.periods],
        'metrics': asdict(output.metrics),
        'validation': asdict(output.validation),
        'performance': asdict(output.performance),
    }


def _period_from_dict(data: Dict[str, Any]) -> FinancialPeriod:
    return FinancialPeriod(
        year=int(data['year']),
        period_type=PeriodType(data['period_type']),
        profit_loss=ProfitLossStatement(**data['profit_loss']),
        balance_sheet=BalanceSheetStatement(**data['balance_sheet']),
        cash_flow=CashFlowStatement(**data['cash_flow']),
        converged=data['converged'],
        iterations_required=data['iterations_required'],
        balance_sheet_balanced=data['balance_sheet_balanced'],
        cash_flow_reconciled=data['cash_flow_reconciled'],
        linked_to_prior=data.get('linked_to_prior', True),
        validation_issues=list(data.get('validation_issues', [])),
    )


def output_from_dict(data: Dict[str, Any]) -> ProjectionOutput:
    """
    Rebuild a ProjectionOutput from output_to_dict's mapping.

    Accepts the mapping after a JSON round trip, where integer keys of
    the per-year issues have become strings.
    """
    validation = dict(data['validation'])
    validation['issues'] = {int(year): list(messages)
                            for year, messages in validation.get('issues', {}).items()}
    return ProjectionOutput(
        periods=[_period_from_dict(p) for p in data['periods']],
        metrics=SummaryMetrics(**data['metrics']),
        validation=ValidationSummary(**validation),
        performance=PerformanceSummary(**data['performance']),
    )


def output_to_json(output: ProjectionOutput, indent: int = None) -> str:
    return dumps(output_to_dict(output), indent=indent)


def output_from_json(text: str) -> ProjectionOutput:
    return output_from_dict(loads(text))
