# src/lease_projection/core/exceptions.py
"""
Error taxonomy for the projection engine.

- ConfigurationError: invalid or missing input, raised before any year runs
- ConvergenceWarning: the circular solver hit its iteration limit
- ValidationFailure: statements do not balance or reconcile
- CalculationTimeoutError: an isolated run exceeded its time budget
"""

from typing import Dict, List, Optional


class ConfigurationError(ValueError):
    """Missing or invalid input for the selected configuration."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ConvergenceWarning(UserWarning):
    """Circular solver did not reach tolerance within max iterations."""


class ValidationFailure(Exception):
    """Balance sheet or cash flow reconciliation failed beyond tolerance."""

    def __init__(self, message: str, issues: Optional[Dict[int, List[str]]] = None):
        super().__init__(message)
        self.issues = issues or {}


class CalculationTimeoutError(TimeoutError):
    """Projection run exceeded its time limit."""

    def __init__(self, timeout: float):
        super().__init__(f"Calculation exceeded {timeout:g}s timeout")
        self.timeout = timeout
