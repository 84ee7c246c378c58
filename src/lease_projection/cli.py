# src/lease_projection/cli.py
"""
Command line entry point.

    lease-projection scenario.yaml
    lease-projection scenario.yaml --json out.json --csv out.csv
    lease-projection scenario.yaml --worker --timeout 10 --strict
"""

import argparse
import sys
from pathlib import Path

from .config import load_inputs
from .core.constants import DEFAULT_CALCULATION_TIMEOUT
from .core.exceptions import CalculationTimeoutError, ConfigurationError, ValidationFailure
from .core.serialization import output_to_json
from .models.financial_model import calculate_financial_projections
from .utils.statement_printer import print_projection_report
from .worker import run_projection_in_worker

EXIT_OK = 0
EXIT_VALIDATION_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_TIMEOUT = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lease-projection',
        description='Project P&L, balance sheet and cash flow for a school lease',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lease-projection scenario.yaml                    # Print summary report
  lease-projection scenario.yaml --json out.json    # Also write full output
  lease-projection scenario.yaml --csv years.csv    # Yearly table as CSV
  lease-projection scenario.yaml --worker           # Run in isolated process
  lease-projection scenario.yaml --strict           # Exit 1 if unbalanced
        """
    )
    parser.add_argument('config', type=str, help='YAML or JSON input file')
    parser.add_argument('--json', dest='json_path', type=str, help='Write output as JSON')
    parser.add_argument('--csv', dest='csv_path', type=str, help='Write yearly table as CSV')
    parser.add_argument('--worker', action='store_true',
                        help='Run the calculation in a separate process')
    parser.add_argument('--timeout', type=float, default=DEFAULT_CALCULATION_TIMEOUT,
                        help='Worker time limit in seconds')
    parser.add_argument('--strict', action='store_true',
                        help='Exit with status 1 if any year fails validation')
    parser.add_argument('--verbose', '-v', action='store_true', help='Print progress')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        inputs = load_inputs(args.config)
        if args.worker:
            output = run_projection_in_worker(inputs, timeout=args.timeout)
        else:
            output = calculate_financial_projections(inputs, verbose=args.verbose)
    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except CalculationTimeoutError as e:
        print(f"\n❌ {e}", file=sys.stderr)
        return EXIT_TIMEOUT

    print_projection_report(output)

    if args.json_path:
        Path(args.json_path).write_text(output_to_json(output, indent=2), encoding='utf-8')
        print(f"  ✓ Saved output to: {args.json_path}")
    if args.csv_path:
        output.to_dataframe().to_csv(args.csv_path)
        print(f"  ✓ Saved yearly table to: {args.csv_path}")

    if args.strict:
        try:
            output.raise_for_validation()
        except ValidationFailure as e:
            print(f"\n❌ {e}", file=sys.stderr)
            return EXIT_VALIDATION_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
