# src/lease_projection/worker.py
"""
Isolated Calculation Worker

Runs one projection in a separate process with a hard time limit. Inputs
and output cross the process boundary as JSON with tagged Decimals, so
no value is ever rounded through a float on the way.
"""

import multiprocessing

from .config import inputs_from_dict, inputs_to_dict
from .core.constants import DEFAULT_CALCULATION_TIMEOUT
from .core.exceptions import CalculationTimeoutError
from .core.serialization import dumps, loads, output_from_json, output_to_json
from .core.types import ProjectionInputs, ProjectionOutput
from .models.financial_model import calculate_financial_projections, validate_inputs


def _run_serialized(payload: str) -> str:
    """Child-process entry point: JSON inputs in, JSON output out."""
    inputs = inputs_from_dict(loads(payload))
    return output_to_json(calculate_financial_projections(inputs))


def run_projection_in_worker(inputs: ProjectionInputs,
                             timeout: float = DEFAULT_CALCULATION_TIMEOUT) -> ProjectionOutput:
    """
    Run a projection in a spawned child process.

    Inputs are validated in the calling process first, so configuration
    errors surface without starting a child.

    Args:
        inputs: Input snapshot
        timeout: Seconds to wait for the result

    Returns:
        ProjectionOutput, identical to an in-process run

    Raises:
        ConfigurationError: On invalid input
        CalculationTimeoutError: If the run exceeds ``timeout``; the child
            is terminated
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    validate_inputs(inputs)
    payload = dumps(inputs_to_dict(inputs))

    ctx = multiprocessing.get_context("spawn")
    pool = ctx.Pool(processes=1)
    try:
        pending = pool.apply_async(_run_serialized, (payload,))
        try:
            result = pending.get(timeout)
        except multiprocessing.TimeoutError:
            raise CalculationTimeoutError(timeout) from None
    finally:
        pool.terminate()
        pool.join()

    return output_from_json(result)
