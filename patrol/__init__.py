"""patrol — Step timelines and the actors they drive.

Layers, bottom up: steps (Step, StepPool), timeline (Timeline), actors and
driver (per-type behaviours), level (JSON level files), ai, simulation, and
scenarios (scripted YAML runs).
"""

from patrol.steps import InvalidStep, StaleStepRef, Step, StepPool, StepRef
from patrol.timeline import (
    EmptyTimelineAccess,
    MalformedCycle,
    ResolvedStep,
    Timeline,
    TimelineError,
    TimelineState,
)

__all__ = [
    "InvalidStep",
    "StaleStepRef",
    "Step",
    "StepPool",
    "StepRef",
    "EmptyTimelineAccess",
    "MalformedCycle",
    "ResolvedStep",
    "Timeline",
    "TimelineError",
    "TimelineState",
]
