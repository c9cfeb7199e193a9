"""patrol/scenarios/loader — ScenarioDef and YAML loading functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from patrol.scenarios.conditions import (
    VALID_METRICS,
    Expectation,
    InterruptSpec,
    PlayerWaypoint,
)


@dataclass
class ScenarioDef:
    name: str
    description: str
    level: str
    max_frames: int
    ai: bool = False
    player: list[PlayerWaypoint] = field(default_factory=list)
    interrupts: list[InterruptSpec] = field(default_factory=list)
    expect: list[Expectation] = field(default_factory=list)
    metrics: list[str] = field(default_factory=list)


def _parse_player(data: dict | list | None) -> list[PlayerWaypoint]:
    """Parse either a single ``{x, y}`` position or a list of waypoints."""
    if data is None:
        return []
    if isinstance(data, dict):
        data = [{"frame": 0, **data}]
    return sorted(
        (
            PlayerWaypoint(frame=int(w["frame"]), x=float(w["x"]), y=float(w["y"]))
            for w in data
        ),
        key=lambda w: w.frame,
    )


def _parse_interrupt(data: dict) -> InterruptSpec:
    """Parse an interrupt dict into an InterruptSpec."""
    steps = data["steps"]
    if not isinstance(steps, list) or not steps:
        raise ValueError(f"Interrupt for {data.get('actor')!r} needs a list of steps")
    return InterruptSpec(
        frame=int(data["frame"]),
        actor=data["actor"],
        steps=steps,
        from_beginning=bool(data.get("from_beginning", True)),
    )


def _parse_expectation(data: dict) -> Expectation:
    """Parse an expectation dict into an Expectation."""
    exp = Expectation(
        actor=data["actor"],
        frame=int(data["frame"]),
        kind=data.get("kind"),
        empty=data.get("empty"),
        state=data.get("state"),
    )
    if exp.kind is None and exp.empty is None and exp.state is None:
        raise ValueError(
            f"Expectation for {exp.actor!r} at frame {exp.frame} checks nothing"
        )
    return exp


def _parse_scenario(data: dict) -> ScenarioDef:
    """Parse a raw YAML dict into a ScenarioDef."""
    metrics = data.get("metrics", [])
    for name in metrics:
        if name not in VALID_METRICS:
            raise ValueError(f"Unknown metric: {name!r}")
    return ScenarioDef(
        name=data["name"],
        description=data.get("description", ""),
        level=str(data["level"]),
        max_frames=int(data["max_frames"]),
        ai=bool(data.get("ai", False)),
        player=_parse_player(data.get("player")),
        interrupts=[_parse_interrupt(i) for i in data.get("interrupts", [])],
        expect=[_parse_expectation(e) for e in data.get("expect", [])],
        metrics=metrics,
    )


def load_scenario(path: Path) -> ScenarioDef:
    """Load a single scenario from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return _parse_scenario(data)


def load_scenarios(
    paths: list[Path] | None = None,
    run_all: bool = False,
    base: Path = Path("scenarios"),
) -> list[ScenarioDef]:
    """Load multiple scenarios.

    Args:
        paths: Explicit list of YAML file paths to load.
        run_all: If True, glob all ``*.yaml`` files under *base*.
        base: Directory to search when *run_all* is True.

    Returns:
        List of parsed ScenarioDef objects.
    """
    if paths is None:
        paths = []
    if run_all:
        paths = sorted(base.glob("*.yaml"))
    return [load_scenario(p) for p in paths]
