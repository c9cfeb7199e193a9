"""patrol/scenarios — Scripted scenario definition, loading, checks, and runner."""

from patrol.scenarios.conditions import (
    VALID_METRICS,
    Expectation,
    InterruptSpec,
    PlayerWaypoint,
    check_expectations,
)
from patrol.scenarios.loader import ScenarioDef, load_scenario, load_scenarios
from patrol.scenarios.runner import FrameRecord, ScenarioOutcome, run_scenario
from patrol.scenarios.output import print_outcome, print_summary, save_results

__all__ = [
    "VALID_METRICS",
    "Expectation",
    "InterruptSpec",
    "PlayerWaypoint",
    "check_expectations",
    "ScenarioDef",
    "load_scenario",
    "load_scenarios",
    "FrameRecord",
    "ScenarioOutcome",
    "run_scenario",
    "print_outcome",
    "print_summary",
    "save_results",
]
