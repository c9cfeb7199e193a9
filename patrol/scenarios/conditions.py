"""patrol/scenarios/conditions — Scenario directives and expectation checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from patrol.simulation import SimState

VALID_METRICS: frozenset[str] = frozenset(
    {
        "step_changes",
        "interrupts",
        "finished_actors",
        "distance_travelled",
        "pool_live_steps",
    }
)


@dataclass
class PlayerWaypoint:
    """Player position from ``frame`` onwards."""
    frame: int
    x: float
    y: float


@dataclass
class InterruptSpec:
    """A scripted force() on one actor at one frame."""
    frame: int
    actor: str
    steps: list[dict[str, Any]]
    from_beginning: bool = True


@dataclass
class Expectation:
    """What an actor should be doing right after a given frame.

    Every field that is set is checked: ``kind`` against the step the actor
    ran that frame (by its level-file name), ``empty`` and ``state`` against
    its timeline afterwards.
    """
    actor: str
    frame: int
    kind: Optional[str] = None
    empty: Optional[bool] = None
    state: Optional[str] = None


# ---------------------------------------------------------------------------
# Runtime checking
# ---------------------------------------------------------------------------


def _kind_name(kind: Any) -> Optional[str]:
    if kind is None:
        return None
    return getattr(kind, "value", str(kind))


def check_expectation(exp: Expectation, sim: SimState) -> Optional[str]:
    """Return a failure message, or None if *exp* holds for *sim* now."""
    actor = sim.actor(exp.actor)
    if exp.kind is not None:
        current = actor.current.kind if actor.current is not None else None
        if _kind_name(current) != exp.kind:
            return (
                f"frame {exp.frame}: {exp.actor} ran {_kind_name(current)!r}, "
                f"expected {exp.kind!r}"
            )
    if exp.empty is not None and actor.timeline.is_empty() != exp.empty:
        word = "empty" if exp.empty else "non-empty"
        return f"frame {exp.frame}: {exp.actor} timeline should be {word}"
    if exp.state is not None and actor.timeline.state.value != exp.state:
        return (
            f"frame {exp.frame}: {exp.actor} timeline is "
            f"{actor.timeline.state.value!r}, expected {exp.state!r}"
        )
    return None


def check_expectations(
    expectations: list[Expectation], sim: SimState, frame: int,
) -> list[str]:
    """Check every expectation scheduled for *frame*."""
    failures: list[str] = []
    for exp in expectations:
        if exp.frame != frame:
            continue
        failure = check_expectation(exp, sim)
        if failure is not None:
            failures.append(failure)
    return failures
