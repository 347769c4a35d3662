"""
Recorded multi-agent trajectories and the Trajectory Agent Driver.

File format (JSON):

    {
      "sample_dt": 0.5,
      "duration": 30.0,                       # optional, default: last keyframe
      "agents": [
        {"id": "a", "keyframes": [{"t": 0, "x": 1.0, "y": 2.0}, ...]},
        {"id": "b", "start": 4, "positions": [[x, y], [x, y], ...]}
      ]
    }

The interval form places position k at time (start + k) * sample_dt.
Positions are in world units; TrajectoryParams gives the world bounds that
map onto the grid.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np

from stirflow.core.dtypes import EPSILON
from stirflow.core.errors import FatalInitError
from stirflow.forces import ForceSource, source_from_motion
from stirflow.params.schema import ForceParams, TrajectoryParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keyframe:
    """Position (x, y) in world units at time t."""

    t: float
    x: float
    y: float


def _normalise(raw: list[Keyframe], agent_id: str) -> tuple[Keyframe, ...]:
    """Sort by time; of several keyframes at one time the last one wins."""
    by_time: dict[float, Keyframe] = {}
    for kf in sorted(raw, key=lambda k: k.t):
        if not all(math.isfinite(v) for v in (kf.t, kf.x, kf.y)):
            raise ValueError(f"Agent '{agent_id}' has a non-finite keyframe: {kf}")
        by_time[kf.t] = kf
    return tuple(by_time.values())


class TrajectoryCollection:
    """Immutable set of per-agent keyframe tracks plus timing metadata.

    Attributes:
        tracks: Agent id -> keyframes, strictly increasing in time
        sample_dt: Time between recorded samples
        duration: Loop length of the animation
    """

    def __init__(
        self,
        tracks: Mapping[str, tuple[Keyframe, ...]],
        sample_dt: float = 1.0,
        duration: float | None = None,
    ):
        if sample_dt <= 0:
            raise ValueError(f"sample_dt must be positive, got {sample_dt}")
        self._tracks = MappingProxyType(
            {agent_id: _normalise(list(kfs), agent_id) for agent_id, kfs in tracks.items()}
        )
        self._sample_dt = float(sample_dt)
        if duration is None:
            duration = max((kfs[-1].t for kfs in self._tracks.values() if kfs), default=0.0)
        if duration < 0:
            raise ValueError(f"duration must be non-negative, got {duration}")
        self._duration = float(duration)

    @property
    def tracks(self) -> Mapping[str, tuple[Keyframe, ...]]:
        return self._tracks

    @property
    def sample_dt(self) -> float:
        return self._sample_dt

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def agent_ids(self) -> list[str]:
        return list(self._tracks.keys())

    def __len__(self) -> int:
        return len(self._tracks)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrajectoryCollection":
        """Build from the parsed JSON structure (see module docstring).

        Raises:
            ValueError: On a malformed or inconsistent structure
        """
        sample_dt = float(data.get("sample_dt", 1.0))
        agents = data.get("agents")
        if not isinstance(agents, list):
            raise ValueError("Trajectory data needs an 'agents' list")

        tracks: dict[str, tuple[Keyframe, ...]] = {}
        for entry in agents:
            agent_id = str(entry["id"])
            if agent_id in tracks:
                raise ValueError(f"Duplicate agent id '{agent_id}'")
            if "keyframes" in entry:
                raw = [
                    Keyframe(float(k["t"]), float(k["x"]), float(k["y"]))
                    for k in entry["keyframes"]
                ]
            elif "positions" in entry:
                start = float(entry.get("start", 0))
                raw = [
                    Keyframe((start + k) * sample_dt, float(p[0]), float(p[1]))
                    for k, p in enumerate(entry["positions"])
                ]
            else:
                raise ValueError(f"Agent '{agent_id}' has neither keyframes nor positions")
            tracks[agent_id] = tuple(raw)

        duration = data.get("duration")
        return cls(tracks, sample_dt, None if duration is None else float(duration))


def load_trajectories(path: str | Path) -> TrajectoryCollection:
    """Load a trajectory collection from a JSON file.

    Raises:
        FatalInitError: If the file is missing, unreadable, or malformed
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
        collection = TrajectoryCollection.from_dict(data)
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, IndexError) as e:
        raise FatalInitError(f"Cannot load trajectories from {path}: {e}") from e

    logger.info(
        "Loaded %d agents from %s (duration %.2f)", len(collection), path, collection.duration
    )
    return collection


class Agent:
    """One tracked agent: keyframes plus per-frame state.

    Attributes:
        id: Agent identifier
        keyframes: Ordered keyframes (read-only)
        active: Whether the agent produced a sample this frame
        pos: Current position in NDC
        prev_pos: Position at the previous frame in NDC
    """

    def __init__(self, agent_id: str, keyframes: tuple[Keyframe, ...]):
        self.id = agent_id
        self.keyframes = keyframes
        self._t = np.array([k.t for k in keyframes], dtype=np.float64)
        self._x = np.array([k.x for k in keyframes], dtype=np.float64)
        self._y = np.array([k.y for k in keyframes], dtype=np.float64)
        self.active = False
        self.pos = (0.0, 0.0)
        self.prev_pos = (0.0, 0.0)

    def covers(self, t: float) -> bool:
        """Whether some keyframe pair brackets t."""
        return len(self._t) > 0 and self._t[0] <= t <= self._t[-1]

    def sample(self, t: float) -> tuple[float, float]:
        """Linearly interpolated world position, clamped to the end keyframes."""
        if len(self._t) == 0:
            raise ValueError(f"Agent '{self.id}' has no keyframes")
        return (float(np.interp(t, self._t, self._x)), float(np.interp(t, self._t, self._y)))


class TrajectoryDriver:
    """Maps a trajectory collection to per-frame force sources.

    Each update() advances every agent's state machine:
    inactive <-> active. An agent is active when a keyframe pair covers the
    loop time and the interpolated position is inside the world bounds.

    Example:
        driver = TrajectoryDriver(load_trajectories("walk.json"),
                                  config.trajectory, config.forces)
        sources = driver.update(elapsed_seconds)
    """

    def __init__(
        self,
        collection: TrajectoryCollection,
        params: TrajectoryParams | None = None,
        forces: ForceParams | None = None,
    ):
        self.params = params if params is not None else TrajectoryParams()
        self.forces = forces if forces is not None else ForceParams()
        self.rebuild(collection)

    def rebuild(self, collection: TrajectoryCollection) -> None:
        """Replace all agents with fresh ones built from collection."""
        self.collection = collection
        self.agents = [Agent(agent_id, kfs) for agent_id, kfs in collection.tracks.items()]
        self._last_t: float | None = None

    @property
    def active_count(self) -> int:
        return sum(agent.active for agent in self.agents)

    def loop_time(self, elapsed: float) -> float:
        """Animation time for elapsed seconds, wrapped to the loop duration."""
        t = elapsed * self.params.time_scale
        if self.collection.duration > EPSILON:
            t = t % self.collection.duration
        return t

    def in_bounds(self, x: float, y: float) -> bool:
        p = self.params
        return p.x_min <= x <= p.x_max and p.y_min <= y <= p.y_max

    def world_to_ndc(self, x: float, y: float) -> tuple[float, float]:
        p = self.params
        span_x = max(p.x_max - p.x_min, EPSILON)
        span_y = max(p.y_max - p.y_min, EPSILON)
        return (2.0 * (x - p.x_min) / span_x - 1.0, 2.0 * (y - p.y_min) / span_y - 1.0)

    def update(self, elapsed: float) -> list[ForceSource]:
        """Advance all agents to elapsed seconds and collect force sources.

        Returns:
            One ForceSource per active agent (force from its position change)
        """
        t = self.loop_time(elapsed)
        wrapped = self._last_t is not None and t < self._last_t
        self._last_t = t

        sources = []
        for agent in self.agents:
            if not agent.covers(t):
                self._deactivate(agent, t)
                continue
            x, y = agent.sample(t)
            if not self.in_bounds(x, y):
                self._deactivate(agent, t)
                continue

            pos = self.world_to_ndc(x, y)
            if not agent.active:
                logger.debug("Agent %s active at t=%.3f", agent.id, t)
                agent.prev_pos = pos
            elif wrapped:
                agent.prev_pos = pos
            else:
                agent.prev_pos = agent.pos
            agent.pos = pos
            agent.active = True

            delta = (pos[0] - agent.prev_pos[0], pos[1] - agent.prev_pos[1])
            sources.append(source_from_motion(pos, delta, self.forces))
        return sources

    def _deactivate(self, agent: Agent, t: float) -> None:
        if agent.active:
            logger.debug("Agent %s inactive at t=%.3f", agent.id, t)
        agent.active = False
        agent.prev_pos = agent.pos
