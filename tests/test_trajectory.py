"""Tests for trajectory loading, agent interpolation, and the driver."""

import json

import pytest

from stirflow.core.errors import FatalInitError
from stirflow.params import ForceParams, TrajectoryParams
from stirflow.trajectory import (
    Agent,
    Keyframe,
    TrajectoryCollection,
    TrajectoryDriver,
    load_trajectories,
)

WORLD = TrajectoryParams(x_min=0.0, x_max=100.0, y_min=-50.0, y_max=50.0)


def straight_line() -> TrajectoryCollection:
    return TrajectoryCollection(
        {"a": (Keyframe(0.0, 0.0, 0.0), Keyframe(10.0, 100.0, 0.0))}, sample_dt=1.0
    )


class TestAgentInterpolation:
    """Linear interpolation between keyframes."""

    def test_midpoint(self):
        agent = Agent("a", straight_line().tracks["a"])
        assert agent.sample(5.0) == pytest.approx((50.0, 0.0))

    @pytest.mark.parametrize("t,expected", [(-1.0, (0.0, 0.0)), (20.0, (100.0, 0.0))])
    def test_clamps_outside_span(self, t, expected):
        agent = Agent("a", straight_line().tracks["a"])
        assert agent.sample(t) == pytest.approx(expected)

    def test_covers(self):
        agent = Agent("a", straight_line().tracks["a"])
        assert agent.covers(0.0) and agent.covers(10.0)
        assert not agent.covers(10.5)

    def test_piecewise(self):
        agent = Agent(
            "a",
            (Keyframe(0.0, 0.0, 0.0), Keyframe(1.0, 10.0, 0.0), Keyframe(3.0, 10.0, 20.0)),
        )
        assert agent.sample(2.0) == pytest.approx((10.0, 10.0))

    def test_no_keyframes(self):
        agent = Agent("empty", ())
        assert not agent.covers(0.0)
        with pytest.raises(ValueError):
            agent.sample(0.0)


class TestTrajectoryCollection:
    """Construction, normalisation and JSON parsing."""

    def test_sorted_and_deduplicated(self):
        collection = TrajectoryCollection(
            {
                "a": (
                    Keyframe(2.0, 2.0, 0.0),
                    Keyframe(0.0, 0.0, 0.0),
                    Keyframe(2.0, 9.0, 0.0),
                )
            }
        )
        track = collection.tracks["a"]
        assert [k.t for k in track] == [0.0, 2.0]
        assert track[-1].x == 9.0

    def test_default_duration_is_last_keyframe(self):
        assert straight_line().duration == 10.0

    def test_read_only(self):
        collection = straight_line()
        with pytest.raises(TypeError):
            collection.tracks["b"] = ()

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="non-finite"):
            TrajectoryCollection({"a": (Keyframe(0.0, float("nan"), 0.0),)})

    def test_from_dict_both_forms(self):
        collection = TrajectoryCollection.from_dict(
            {
                "sample_dt": 0.5,
                "agents": [
                    {"id": "k", "keyframes": [{"t": 0, "x": 1, "y": 2}, {"t": 1, "x": 3, "y": 4}]},
                    {"id": 7, "start": 2, "positions": [[0, 0], [1, 1], [2, 2]]},
                ],
            }
        )
        assert collection.agent_ids == ["k", "7"]
        assert [k.t for k in collection.tracks["7"]] == [1.0, 1.5, 2.0]
        assert collection.duration == 2.0
        assert collection.sample_dt == 0.5

    def test_from_dict_explicit_duration(self):
        collection = TrajectoryCollection.from_dict(
            {"duration": 30, "agents": [{"id": "a", "positions": [[0, 0]]}]}
        )
        assert collection.duration == 30.0

    def test_from_dict_rejects_bad_agents(self):
        with pytest.raises(ValueError, match="agents"):
            TrajectoryCollection.from_dict({"sample_dt": 1.0})
        with pytest.raises(ValueError, match="neither"):
            TrajectoryCollection.from_dict({"agents": [{"id": "a"}]})
        with pytest.raises(ValueError, match="Duplicate"):
            TrajectoryCollection.from_dict(
                {"agents": [{"id": "a", "positions": []}, {"id": "a", "positions": []}]}
            )


class TestLoadTrajectories:
    def test_load(self, tmp_path):
        path = tmp_path / "walk.json"
        path.write_text(
            json.dumps({"agents": [{"id": "a", "keyframes": [{"t": 0, "x": 0, "y": 0}]}]})
        )
        assert len(load_trajectories(path)) == 1

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(FatalInitError):
            load_trajectories(tmp_path / "none.json")

    def test_malformed_json_is_fatal(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(FatalInitError):
            load_trajectories(path)

    def test_missing_field_is_fatal(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"agents": [{"id": "a", "keyframes": [{"t": 0}]}]}))
        with pytest.raises(FatalInitError):
            load_trajectories(path)


class TestTrajectoryDriver:
    """Agent state machine and force generation."""

    def test_world_to_ndc(self):
        driver = TrajectoryDriver(straight_line(), WORLD)
        assert driver.world_to_ndc(0.0, -50.0) == pytest.approx((-1.0, -1.0))
        assert driver.world_to_ndc(50.0, 0.0) == pytest.approx((0.0, 0.0))
        assert driver.world_to_ndc(100.0, 50.0) == pytest.approx((1.0, 1.0))

    def test_activation_gives_zero_force(self):
        driver = TrajectoryDriver(straight_line(), WORLD)
        sources = driver.update(2.0)
        agent = driver.agents[0]
        assert agent.active
        assert len(sources) == 1 and sources[0].is_zero
        assert agent.prev_pos == agent.pos

    def test_motion_produces_force(self):
        driver = TrajectoryDriver(straight_line(), WORLD, ForceParams(mouse_force=10.0))
        driver.update(2.0)
        sources = driver.update(3.0)
        # 10 world units = 0.2 NDC, force = 0.2 / 2 * 10
        assert sources[0].force == pytest.approx((1.0, 0.0))
        assert driver.agents[0].pos == pytest.approx((-0.4, 0.0))
        assert driver.agents[0].prev_pos == pytest.approx((-0.6, 0.0))

    def test_out_of_bounds_deactivates(self):
        collection = TrajectoryCollection(
            {"a": (Keyframe(0.0, 50.0, 0.0), Keyframe(10.0, 150.0, 0.0))}
        )
        driver = TrajectoryDriver(collection, WORLD)
        driver.update(2.0)
        assert driver.agents[0].active
        sources = driver.update(8.0)
        agent = driver.agents[0]
        assert not agent.active
        assert sources == []
        assert agent.prev_pos == agent.pos

    def test_gap_deactivates(self):
        collection = TrajectoryCollection(
            {
                "early": (Keyframe(0.0, 10.0, 0.0), Keyframe(4.0, 20.0, 0.0)),
                "late": (Keyframe(6.0, 10.0, 0.0), Keyframe(10.0, 20.0, 0.0)),
            }
        )
        driver = TrajectoryDriver(collection, WORLD)
        driver.update(5.0)
        assert driver.active_count == 0
        driver.update(7.0)
        assert [a.active for a in driver.agents] == [False, True]

    def test_loop_wraps_without_impulse(self):
        driver = TrajectoryDriver(straight_line(), WORLD)
        driver.update(9.0)
        sources = driver.update(11.0)  # wraps to t = 1
        assert driver.agents[0].pos == pytest.approx((-0.8, 0.0))
        assert sources[0].is_zero

    def test_time_scale(self):
        params = TrajectoryParams(x_min=0.0, x_max=100.0, y_min=-50.0, y_max=50.0, time_scale=2.0)
        driver = TrajectoryDriver(straight_line(), params)
        assert driver.loop_time(2.5) == pytest.approx(5.0)
        assert driver.loop_time(6.0) == pytest.approx(2.0)

    def test_rebuild_resets_agents(self):
        driver = TrajectoryDriver(straight_line(), WORLD)
        driver.update(2.0)
        other = TrajectoryCollection(
            {"b": (Keyframe(0.0, 0.0, 0.0),), "c": (Keyframe(0.0, 1.0, 1.0),)}
        )
        driver.rebuild(other)
        assert [a.id for a in driver.agents] == ["b", "c"]
        assert driver.active_count == 0
