"""Tests for patrol/level.py — level parsing and timeline construction."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

import pytest

from patrol.actions import CAR, PEDESTRIAN, CarAction, PedestrianAction
from patrol.level import (
    LevelData,
    LevelLoadError,
    available_levels,
    build_timeline,
    load_level,
    parse_level,
)
from patrol.steps import StepPool
from patrol.timeline import TimelineState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_BASE = {
    "index": 0,
    "size": {"width": 100, "height": 50},
    "playerSite": {"x": 1, "y": 1},
    "casterSite": {"x": 50, "y": 25},
    "pedestrians": [],
    "cars": [],
}


def _level(**overrides) -> dict:
    data = copy.deepcopy(_BASE)
    data.update(overrides)
    return data


def _walker(*actions: dict, **fields) -> dict:
    return {"x": 10, "y": 10, "bearing": 0, "actions": list(actions), **fields}


def _kinds(timeline, frames: int) -> list:
    return [timeline.advance().kind.value for _ in range(frames)]


# ---------------------------------------------------------------------------
# build_timeline
# ---------------------------------------------------------------------------

class TestBuildTimeline:
    def test_prefix_then_cyclic_suffix(self):
        records = [
            {"kind": "stop", "length": 1},
            {"kind": "go", "length": 2, "cyclic": True},
            {"kind": "turn left", "length": 1},
        ]
        t = build_timeline(records, CAR, actor_index=0)
        assert t.state is TimelineState.INTERRUPTED
        assert _kinds(t, 7) == ["stop", "go", "go", "turn left", "go", "go", "turn left"]

    def test_marker_on_first_record_loops_everything(self):
        records = [
            {"kind": "go", "length": 1, "cyclic": True},
            {"kind": "stop", "length": 1},
        ]
        t = build_timeline(records, CAR)
        assert t.state is TimelineState.CYCLIC
        assert _kinds(t, 4) == ["go", "stop", "go", "stop"]

    def test_actor_level_cyclic(self):
        records = [{"kind": "stand", "length": 1}, {"kind": "walk slow", "length": 1}]
        t = build_timeline(records, PEDESTRIAN, cyclic=True)
        assert t.is_cyclic()
        assert _kinds(t, 3) == ["stand", "walk slow", "stand"]

    def test_no_marker_defaults_to_finite_and_logs(self, caplog):
        caplog.set_level(logging.DEBUG, logger="patrol.level")
        t = build_timeline([{"kind": "go", "length": 2}], CAR, actor_index=3)
        assert t.state is TimelineState.FINITE
        assert "No cyclic field for car 3" in caplog.text
        assert _kinds(t, 2) == ["go", "go"]
        assert t.is_empty()

    def test_explicit_non_cyclic_does_not_log(self, caplog):
        caplog.set_level(logging.DEBUG, logger="patrol.level")
        build_timeline([{"kind": "go", "length": 1}], CAR, cyclic=False)
        assert "No cyclic field" not in caplog.text

    def test_record_fields(self):
        records = [{"kind": "walk fast", "length": 4, "counter": 2, "param": 90}]
        step = build_timeline(records, PEDESTRIAN).steps()[0]
        assert step.kind is PedestrianAction.WALK_FAST
        assert (step.length, step.counter, step.param) == (4, 2, 90.0)

    def test_empty_records(self):
        assert build_timeline([], CAR, cyclic=True).is_empty()

    def test_uses_given_pool(self):
        pool = StepPool()
        build_timeline([{"kind": "go", "length": 1}], CAR, pool, cyclic=True)
        assert len(pool) == 1

    @pytest.mark.parametrize("record, field", [
        ({"kind": "go", "length": 0}, "actions[1].length"),
        ({"kind": "go", "length": 1.5}, "actions[1].length"),
        ({"kind": "go", "length": True}, "actions[1].length"),
        ({"kind": "go"}, "actions[1].length"),
        ({"kind": "fly", "length": 1}, "actions[1].kind"),
        ({"length": 1}, "actions[1].kind"),
        ({"kind": "go", "length": 3, "counter": 4}, "actions[1].counter"),
        ({"kind": "go", "length": 3, "counter": 0}, "actions[1].counter"),
        ({"kind": "go", "length": float("inf")}, "actions[1].length"),
        ({"kind": "go", "length": float("nan")}, "actions[1].length"),
        ({"kind": "go", "length": 2, "counter": float("-inf")}, "actions[1].counter"),
        ({"kind": "go", "length": 1, "param": float("nan")}, "actions[1].param"),
        ({"kind": "go", "length": 1, "param": "north"}, "actions[1].param"),
        ({"kind": "go", "length": 1, "cyclic": "yes"}, "actions[1].cyclic"),
        ("go", "actions[1]"),
    ])
    def test_invalid_record(self, record, field):
        pool = StepPool()
        records = [{"kind": "stop", "length": 1}, record]
        with pytest.raises(LevelLoadError) as excinfo:
            build_timeline(records, CAR, pool, actor_index=2)
        assert excinfo.value.field == field
        assert excinfo.value.actor_index == 2
        assert excinfo.value.actor_type == CAR
        assert len(pool) == 0

    def test_non_cyclic_actor_with_marker(self):
        records = [{"kind": "go", "length": 1, "cyclic": True}]
        with pytest.raises(LevelLoadError) as excinfo:
            build_timeline(records, CAR, actor_index=0, cyclic=False)
        assert excinfo.value.field == "cyclic"
        assert str(excinfo.value).startswith("car 0 field 'cyclic': ")

    def test_actions_not_a_list(self):
        with pytest.raises(LevelLoadError, match="must be a list"):
            build_timeline({"kind": "go"}, CAR)

    def test_level_load_error_is_value_error(self):
        assert issubclass(LevelLoadError, ValueError)


# ---------------------------------------------------------------------------
# parse_level
# ---------------------------------------------------------------------------

class TestParseLevel:
    def test_minimal_level(self):
        level = parse_level(_level())
        assert isinstance(level, LevelData)
        assert (level.width, level.height) == (100.0, 50.0)
        assert level.player_start == (1.0, 1.0)
        assert level.caster.heading == 270.0
        assert level.caster.timeline.is_empty()
        assert level.actors == [level.caster]
        assert level.background is None

    def test_actor_names_and_order(self):
        walker = _walker({"kind": "stand", "length": 1})
        car = {"x": 1, "y": 1, "bearing": 90, "actions": [{"kind": "go", "length": 1}]}
        level = parse_level(_level(pedestrians=[walker, walker], cars=[car]))
        assert [a.name for a in level.actors] == [
            "caster", "pedestrian_0", "pedestrian_1", "car_0",
        ]
        assert level.cars[0].heading == 90.0

    def test_templates_share_level_pool(self):
        walker = _walker({"kind": "stand", "length": 2}, cyclic=True)
        level = parse_level(_level(pedestrians=[walker, walker]))
        assert len(level.pool) == 2
        assert all(p.timeline.pool is level.pool for p in level.pedestrians)

    def test_caster_actions(self):
        caster = {"x": 5, "y": 5, "bearing": 0, "actions": [{"kind": "left", "length": 1}]}
        level = parse_level(_level(casterSite=caster))
        assert not level.caster.timeline.is_empty()

    @pytest.mark.parametrize("field, value", [
        ("x", 101),
        ("y", -1),
        ("bearing", 360),
        ("bearing", "north"),
        ("cyclic", "yes"),
    ])
    def test_invalid_actor_field(self, field, value):
        walker = _walker({"kind": "stand", "length": 1})
        walker[field] = value
        with pytest.raises(LevelLoadError) as excinfo:
            parse_level(_level(pedestrians=[walker]))
        assert excinfo.value.field == field
        assert excinfo.value.actor_type == PEDESTRIAN
        assert excinfo.value.actor_index == 0

    def test_missing_actions(self):
        walker = _walker()
        del walker["actions"]
        with pytest.raises(LevelLoadError) as excinfo:
            parse_level(_level(pedestrians=[walker]))
        assert excinfo.value.field == "actions"

    def test_error_names_the_failing_actor(self):
        good = _walker({"kind": "stand", "length": 1})
        bad = _walker({"kind": "stand", "length": -1})
        with pytest.raises(LevelLoadError) as excinfo:
            parse_level(_level(pedestrians=[good, bad]))
        assert excinfo.value.actor_index == 1
        assert "pedestrian 1" in str(excinfo.value)

    @pytest.mark.parametrize("overrides, field", [
        ({"index": -1}, "index"),
        ({"size": {"width": 0, "height": 5}}, "size.width"),
        ({"size": {"width": 5}}, "size.height"),
        ({"playerSite": {"x": 1, "y": 99}}, "playerSite.y"),
        ({"pedestrians": {}}, "pedestrians"),
        ({"casterSite": None}, "casterSite"),
    ])
    def test_invalid_level_field(self, overrides, field):
        with pytest.raises(LevelLoadError) as excinfo:
            parse_level(_level(**overrides))
        assert excinfo.value.field == field

    def test_not_an_object(self):
        with pytest.raises(LevelLoadError):
            parse_level([])


# ---------------------------------------------------------------------------
# load_level
# ---------------------------------------------------------------------------

class TestLoadLevel:
    def test_shipped_levels(self):
        assert "crosswalk" in available_levels()

    def test_crosswalk(self):
        level = load_level("crosswalk")
        assert len(level.pedestrians) == 2
        assert len(level.cars) == 2
        assert level.background == "crosswalk.png"
        assert level.caster.timeline.is_empty()
        assert level.pedestrians[0].timeline.state is TimelineState.INTERRUPTED
        assert level.pedestrians[1].timeline.state is TimelineState.CYCLIC
        assert level.cars[0].timeline.state is TimelineState.CYCLIC
        assert level.cars[1].timeline.state is TimelineState.FINITE
        assert level.cars[0].timeline.kinds()[:2] == [CarAction.GO, CarAction.TURN_RIGHT]

    def test_load_from_path(self, tmp_path: Path):
        path = tmp_path / "tiny.json"
        path.write_text(json.dumps(_level(index=7)))
        assert load_level(path).index == 7

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(LevelLoadError, match="Invalid JSON"):
            load_level(path)

    def test_missing_level(self):
        with pytest.raises(FileNotFoundError):
            load_level("no_such_level")
