"""patrol/level.py — Level loading and timeline construction from level files.

Level files are JSON. Each moving actor carries an ordered list of step
records; the records before the first ``"cyclic": true`` record play once,
the rest form the actor's repeating pattern. Every actor's records are built
into a *template* timeline in the level's StepPool; simulations clone the
templates so the level data itself never advances.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from patrol.actions import CAR, CASTER, PEDESTRIAN, resolve_kind
from patrol.constants import (
    DEFAULT_CASTER_BEARING,
    DEFAULT_CYCLING,
    DEFAULT_STEP_PARAM,
)
from patrol.steps import Step, StepPool
from patrol.timeline import Timeline

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LevelLoadError(ValueError):
    """A level file is missing a field or holds an invalid value."""

    def __init__(
        self,
        message: str,
        *,
        actor_type: Optional[str] = None,
        actor_index: Optional[int] = None,
        field: Optional[str] = None,
    ) -> None:
        where = ""
        if actor_type is not None:
            where = f"{actor_type} {actor_index}"
            if field is not None:
                where += f" field {field!r}"
            where += ": "
        elif field is not None:
            where = f"field {field!r}: "
        super().__init__(where + message)
        self.actor_type = actor_type
        self.actor_index = actor_index
        self.field = field


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class ActorSpec:
    """Placement and template timeline for one actor in a level."""

    actor_type: str
    index: int
    x: float
    y: float
    heading: float
    timeline: Timeline

    @property
    def name(self) -> str:
        if self.actor_type == CASTER:
            return CASTER
        return f"{self.actor_type}_{self.index}"


@dataclass
class LevelData:
    """Everything a simulation needs from one level file."""

    index: int
    width: float
    height: float
    player_start: tuple[float, float]
    caster: ActorSpec
    pedestrians: list[ActorSpec]
    cars: list[ActorSpec]
    pool: StepPool = field(repr=False)
    background: Optional[str] = None

    @property
    def actors(self) -> list[ActorSpec]:
        """Caster first, then pedestrians, then cars."""
        return [self.caster, *self.pedestrians, *self.cars]


# ---------------------------------------------------------------------------
# Level directory lookup
# ---------------------------------------------------------------------------

_LEVELS_DIR = Path(__file__).parent / "levels"


def available_levels() -> list[str]:
    """Names of the levels shipped with the package."""
    return sorted(p.stem for p in _LEVELS_DIR.glob("*.json"))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_level(source: str | Path) -> LevelData:
    """Load a level by shipped name (e.g. ``"crosswalk"``) or JSON file path.

    Raises:
        FileNotFoundError: If neither a shipped level nor a file matches.
        LevelLoadError: If the file content is invalid.
    """
    path = _LEVELS_DIR / f"{source}.json"
    if not path.is_file():
        path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"Unknown level: {str(source)!r}")
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise LevelLoadError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_level(data)


def parse_level(data: Any) -> LevelData:
    """Validate parsed level JSON and build every actor's template timeline."""
    if not isinstance(data, dict):
        raise LevelLoadError("Level must be a JSON object")

    index = _number(data, "index", int)
    if index < 0:
        raise LevelLoadError("Level index must be non-negative", field="index")

    size = _object(data, "size")
    width = _number(size, "width", float, path="size.width")
    height = _number(size, "height", float, path="size.height")
    if width <= 0:
        raise LevelLoadError("Level width must be positive", field="size.width")
    if height <= 0:
        raise LevelLoadError("Level height must be positive", field="size.height")

    site = _object(data, "playerSite")
    px = _coordinate(site, "x", width, path="playerSite.x")
    py = _coordinate(site, "y", height, path="playerSite.y")

    pool = StepPool()
    caster = _parse_actor(
        _object(data, "casterSite"), CASTER, 0, width, height, pool,
        default_heading=DEFAULT_CASTER_BEARING,
    )
    pedestrians = [
        _parse_actor(raw, PEDESTRIAN, i, width, height, pool)
        for i, raw in enumerate(_array(data, "pedestrians"))
    ]
    cars = [
        _parse_actor(raw, CAR, i, width, height, pool)
        for i, raw in enumerate(_array(data, "cars"))
    ]

    background = data.get("background")
    return LevelData(
        index=index,
        width=width,
        height=height,
        player_start=(px, py),
        caster=caster,
        pedestrians=pedestrians,
        cars=cars,
        pool=pool,
        background=str(background) if background is not None else None,
    )


def build_timeline(
    records: list[Any],
    actor_type: str,
    pool: StepPool | None = None,
    *,
    actor_index: Optional[int] = None,
    cyclic: Optional[bool] = None,
) -> Timeline:
    """Build a timeline from step records.

    Records before the first one marked ``cyclic`` form a one-shot prefix;
    that record and everything after it repeat forever. The timeline starts
    at the prefix, and its default pattern is the repeating suffix. An
    actor-level *cyclic* flag of True with no marked record makes the whole
    list repeat; None falls back to DEFAULT_CYCLING.

    All records are validated before any step enters *pool*.

    Raises:
        LevelLoadError: On a malformed record, tagged with the actor and field.
    """
    if not isinstance(records, list):
        raise LevelLoadError(
            "Actions must be a list",
            actor_type=actor_type, actor_index=actor_index, field="actions",
        )
    steps: list[Step] = []
    split: Optional[int] = None
    for i, raw in enumerate(records):
        step, marked = _parse_record(raw, actor_type, actor_index, i)
        if marked and split is None:
            split = i
        steps.append(step)

    if split is not None and cyclic is False:
        raise LevelLoadError(
            "Actor is marked non-cyclic but has a cyclic action",
            actor_type=actor_type, actor_index=actor_index, field="cyclic",
        )
    if split is None:
        if cyclic is None:
            cyclic = DEFAULT_CYCLING
            logger.debug(
                "No cyclic field for %s %s, setting to %s",
                actor_type, actor_index, "cyclic" if cyclic else "non-cyclic",
            )
        if cyclic and steps:
            split = 0

    timeline = Timeline(pool, steps[:split] if split is not None else steps)
    if split is not None:
        suffix = Timeline.from_steps(steps[split:], cyclic=True, pool=timeline.pool)
        timeline.concat(suffix)
    return timeline


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _parse_actor(
    raw: Any,
    actor_type: str,
    index: int,
    width: float,
    height: float,
    pool: StepPool,
    default_heading: Optional[float] = None,
) -> ActorSpec:
    where = {"actor_type": actor_type, "actor_index": index}
    if not isinstance(raw, dict):
        raise LevelLoadError("Actor must be an object", **where)

    x = _coordinate(raw, "x", width, **where)
    y = _coordinate(raw, "y", height, **where)
    if "bearing" in raw or default_heading is None:
        heading = _number(raw, "bearing", float, **where)
    else:
        heading = default_heading
    if not 0.0 <= heading < 360.0:
        raise LevelLoadError("Bearing must be in [0, 360)", field="bearing", **where)

    cyclic = raw.get("cyclic")
    if cyclic is not None and not isinstance(cyclic, bool):
        raise LevelLoadError("Must be true or false", field="cyclic", **where)

    if "actions" in raw:
        records = raw["actions"]
    elif actor_type == CASTER:
        records = []  # the AI layer feeds the caster
    else:
        raise LevelLoadError("Missing field", field="actions", **where)

    timeline = build_timeline(
        records, actor_type, pool, actor_index=index, cyclic=cyclic,
    )
    return ActorSpec(
        actor_type=actor_type, index=index, x=x, y=y, heading=heading,
        timeline=timeline,
    )


def _parse_record(
    raw: Any, actor_type: str, actor_index: Optional[int], i: int,
) -> tuple[Step, bool]:
    where = {"actor_type": actor_type, "actor_index": actor_index}
    prefix = f"actions[{i}]"
    if not isinstance(raw, dict):
        raise LevelLoadError("Action must be an object", field=prefix, **where)

    name = raw.get("kind")
    if not isinstance(name, str):
        raise LevelLoadError("Missing or non-string kind", field=f"{prefix}.kind", **where)
    try:
        kind = resolve_kind(actor_type, name)
    except KeyError as exc:
        raise LevelLoadError(str(exc.args[0]), field=f"{prefix}.kind", **where) from None

    length = _number(raw, "length", int, path=f"{prefix}.length", **where)
    if length <= 0:
        raise LevelLoadError("Length must be positive", field=f"{prefix}.length", **where)

    counter = length
    if "counter" in raw:
        counter = _number(raw, "counter", int, path=f"{prefix}.counter", **where)
        if not 1 <= counter <= length:
            raise LevelLoadError(
                f"Counter must be in [1, {length}]", field=f"{prefix}.counter", **where,
            )

    param = DEFAULT_STEP_PARAM
    if "param" in raw:
        param = _number(raw, "param", float, path=f"{prefix}.param", **where)

    marked = raw.get("cyclic", False)
    if not isinstance(marked, bool):
        raise LevelLoadError("Must be true or false", field=f"{prefix}.cyclic", **where)

    return Step(kind=kind, length=length, counter=counter, param=param), marked


def _number(
    data: dict, key: str, kind: type, *, path: Optional[str] = None, **where: Any,
) -> Any:
    """Read a required number, rejecting bools and (for ints) fractions."""
    path = path or key
    if key not in data:
        raise LevelLoadError("Missing field", field=path, **where)
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise LevelLoadError(f"Expected a number, got {value!r}", field=path, **where)
    if isinstance(value, float) and not math.isfinite(value):
        raise LevelLoadError(f"Expected a finite number, got {value!r}", field=path, **where)
    if kind is int:
        if value != int(value):
            raise LevelLoadError(f"Expected an integer, got {value!r}", field=path, **where)
        return int(value)
    return float(value)


def _coordinate(
    data: dict, key: str, limit: float, *, path: Optional[str] = None, **where: Any,
) -> float:
    value = _number(data, key, float, path=path, **where)
    if not 0.0 <= value <= limit:
        raise LevelLoadError(
            f"Coordinate {value} outside [0, {limit}]", field=path or key, **where,
        )
    return value


def _object(data: dict, key: str) -> dict:
    value = data.get(key)
    if not isinstance(value, dict):
        raise LevelLoadError("Missing or non-object field", field=key)
    return value


def _array(data: dict, key: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise LevelLoadError("Missing or non-list field", field=key)
    return value
