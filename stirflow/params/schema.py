"""Parameter schema with validation. Units: grid cells, seconds, NDC."""

import math
import warnings
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any

from stirflow.core.errors import ConfigWarning

BOUNDARY_MODES = ("bounded", "free")


class ValidationError(ValueError):
    """Parameter validation failed."""
    pass


def _finite(value: float, name: str) -> None:
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite, got {value}")


def _positive(value: float, name: str) -> None:
    _finite(value, name)
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def _non_negative(value: float, name: str) -> None:
    _finite(value, name)
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")


def _at_least_one(value: int, name: str) -> None:
    _finite(value, name)
    if int(value) != value or value < 1:
        raise ValidationError(f"{name} must be an integer >= 1, got {value}")


@dataclass(frozen=True)
class GridParams:
    """Grid: viewport size [px], resolution (cells per px)."""
    viewport_width: int = 512
    viewport_height: int = 512
    resolution: float = 0.5

    def __post_init__(self) -> None:
        _at_least_one(self.viewport_width, "viewport_width")
        _at_least_one(self.viewport_height, "viewport_height")
        if not 0 < self.resolution <= 1:
            raise ValidationError(f"resolution must be in (0, 1], got {self.resolution}")


@dataclass(frozen=True)
class SolverParams:
    """Solver: dt [s], Jacobi iteration counts, viscosity, BFECC, boundary mode."""
    dt: float = 0.014
    iterations_viscous: int = 32
    iterations_poisson: int = 32
    viscosity: float = 30.0
    is_viscous: bool = False
    bfecc: bool = True
    bfecc_clamp: float = 1.0
    boundary: str = "free"

    def __post_init__(self) -> None:
        _positive(self.dt, "dt")
        _at_least_one(self.iterations_viscous, "iterations_viscous")
        _at_least_one(self.iterations_poisson, "iterations_poisson")
        _non_negative(self.viscosity, "viscosity")
        _positive(self.bfecc_clamp, "bfecc_clamp")
        if self.boundary not in BOUNDARY_MODES:
            raise ValidationError(
                f"boundary must be one of {BOUNDARY_MODES}, got {self.boundary!r}"
            )

    @property
    def is_bounded(self) -> bool:
        return self.boundary == "bounded"


@dataclass(frozen=True)
class ForceParams:
    """Forces: mouse_force gain, cursor_size [cells], boundary_margin [cells], idle_timeout [s]."""
    mouse_force: float = 20.0
    cursor_size: float = 100.0
    boundary_margin: float = 2.0
    idle_timeout: float = 0.1

    def __post_init__(self) -> None:
        _non_negative(self.mouse_force, "mouse_force")
        _positive(self.cursor_size, "cursor_size")
        _non_negative(self.boundary_margin, "boundary_margin")
        _positive(self.idle_timeout, "idle_timeout")


@dataclass(frozen=True)
class TrajectoryParams:
    """Trajectory playback: world bounds, time_scale, frame_rate [Hz]."""
    x_min: float = 0.0
    x_max: float = 100.0
    y_min: float = 0.0
    y_max: float = 100.0
    time_scale: float = 1.0
    frame_rate: float = 60.0

    def __post_init__(self) -> None:
        for name in ("x_min", "x_max", "y_min", "y_max"):
            _finite(getattr(self, name), name)
        if self.x_min >= self.x_max:
            raise ValidationError(f"x_min must be < x_max, got {self.x_min} >= {self.x_max}")
        if self.y_min >= self.y_max:
            raise ValidationError(f"y_min must be < y_max, got {self.y_min} >= {self.y_max}")
        _positive(self.time_scale, "time_scale")
        _positive(self.frame_rate, "frame_rate")


PARAM_GROUPS: dict[str, type] = {
    "grid": GridParams,
    "solver": SolverParams,
    "forces": ForceParams,
    "trajectory": TrajectoryParams,
}


def build_group(name: str, values: dict[str, Any], base: Any = None) -> Any:
    """Build one parameter group, warning about and dropping unknown keys.

    Raises:
        ValidationError: If a known value is out of range
    """
    cls = PARAM_GROUPS[name]
    known = {f.name for f in fields(cls)}
    accepted = {}
    for key, value in values.items():
        if key not in known:
            warnings.warn(
                f"Unknown parameter '{name}.{key}', ignored", ConfigWarning, stacklevel=3
            )
            continue
        accepted[key] = value
    if base is None:
        return cls(**accepted)
    return replace(base, **accepted)


@dataclass(frozen=True)
class SimulationConfig:
    """Complete simulation configuration."""

    grid: GridParams = field(default_factory=GridParams)
    solver: SolverParams = field(default_factory=SolverParams)
    forces: ForceParams = field(default_factory=ForceParams)
    trajectory: TrajectoryParams = field(default_factory=TrajectoryParams)

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dictionary."""
        return {name: asdict(getattr(self, name)) for name in PARAM_GROUPS}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimulationConfig":
        """Create from nested dictionary; unknown groups and keys warn."""
        kwargs = {}
        for key, values in data.items():
            if key not in PARAM_GROUPS:
                warnings.warn(
                    f"Unknown parameter group '{key}', ignored", ConfigWarning, stacklevel=2
                )
                continue
            kwargs[key] = build_group(key, values or {})
        return cls(**kwargs)

    def with_updates(self, **kwargs: Any) -> "SimulationConfig":
        """Create new config with updates."""
        current = self.to_dict()
        for key, value in kwargs.items():
            if key not in current:
                raise ValidationError(f"Unknown parameter group: {key}")
            if isinstance(value, dict):
                current[key].update(value)
            else:
                current[key] = asdict(value)
        return self.from_dict(current)

    # Convenience accessors
    @property
    def dt(self) -> float:
        return self.solver.dt

    @property
    def is_bounded(self) -> bool:
        return self.solver.is_bounded
