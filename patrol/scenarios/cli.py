"""patrol/scenarios/cli — CLI entry point for running scenarios.

Usage::

    python -m patrol.scenarios.cli scenarios/crosswalk_patrol.yaml
    python -m patrol.scenarios.cli --all
    python -m patrol.scenarios.cli --all -o results/run_001.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from patrol.scenarios.loader import load_scenarios
from patrol.scenarios.output import print_outcome, print_summary, save_results
from patrol.scenarios.runner import run_scenario


def main(argv: list[str] | None = None) -> None:
    """Run scenarios from the command line."""
    parser = argparse.ArgumentParser(description="Run patrol scenarios")
    parser.add_argument(
        "scenarios", nargs="*", help="Scenario YAML files",
    )
    parser.add_argument(
        "--all", action="store_true", help="Run all scenarios in scenarios/",
    )
    parser.add_argument(
        "--output", "-o", help="Output file path for results JSON",
    )
    parser.add_argument(
        "--trajectory", action="store_true",
        help="Include per-frame trajectory in JSON output",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="List every failed expectation and enable debug logging",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Must specify scenarios or --all
    if not args.scenarios and not args.all:
        parser.print_usage()
        sys.exit(2)

    paths = [Path(s) for s in args.scenarios] if args.scenarios else None
    scenario_defs = load_scenarios(paths=paths, run_all=args.all)

    results = []
    for scenario_def in scenario_defs:
        outcome = run_scenario(scenario_def)
        results.append(outcome)
        print_outcome(outcome, verbose=args.verbose)

    print_summary(results)

    if args.output:
        save_results(results, args.output, include_trajectory=args.trajectory)

    if all(r.success for r in results):
        sys.exit(0)
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
