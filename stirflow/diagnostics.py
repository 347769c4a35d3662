"""Flow diagnostics on host arrays.

Simple functions for checking incompressibility and energy, computed on
NumPy copies of the velocity field (shape (w, h, 2)).
"""

from dataclasses import dataclass

import numpy as np

from stirflow.kernels import reference


@dataclass
class FrameStats:
    """Summary of one frame's velocity field."""

    frame: int = 0
    time: float = 0.0  # elapsed animation time [s]
    mean_abs_divergence: float = 0.0  # [1 / s] with dt = 1
    kinetic_energy: float = 0.0  # 0.5 * mean |v|^2
    max_speed: float = 0.0
    sources: int = 0  # force sources injected this frame


def divergence(velocity: np.ndarray, bounded: bool = False) -> np.ndarray:
    """Central-difference divergence with the solver's edge policy."""
    out = np.zeros(velocity.shape[:2], dtype=np.float32)
    reference.divergence(velocity, out, 1.0, bounded)
    return out


def mean_abs_divergence(velocity: np.ndarray, bounded: bool = False) -> float:
    return float(np.mean(np.abs(divergence(velocity, bounded))))


def kinetic_energy(velocity: np.ndarray) -> float:
    """Mean kinetic energy per cell."""
    return float(0.5 * np.mean(np.sum(velocity.astype(np.float64) ** 2, axis=-1)))


def max_speed(velocity: np.ndarray) -> float:
    return float(np.max(np.linalg.norm(velocity, axis=-1)))


def compute_stats(
    velocity: np.ndarray,
    frame: int = 0,
    time: float = 0.0,
    bounded: bool = False,
    sources: int = 0,
) -> FrameStats:
    """Collect all diagnostics for one velocity field."""
    return FrameStats(
        frame=frame,
        time=time,
        mean_abs_divergence=mean_abs_divergence(velocity, bounded),
        kinetic_energy=kinetic_energy(velocity),
        max_speed=max_speed(velocity),
        sources=sources,
    )
