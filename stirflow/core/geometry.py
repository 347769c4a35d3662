"""Grid geometry and coordinate conversion for Stir-Flow.

This module centralizes all spatial conventions:
- GridGeometry: Immutable dataclass holding grid width/height
- Cell scale: reciprocal resolution, converts grid-normalized (uv) to cells
- Coordinate helpers: NDC <-> uv <-> cell conversions

Axis layout:
    Index i runs along x (width), j along y (height).
    Cell (i, j) has its centre at (i + 0.5, j + 0.5) in cell units.
    uv = cell / (width, height), both in [0, 1].
    NDC = 2 * uv - 1, both in [-1, 1], y pointing up.
"""

import math
from dataclasses import dataclass

from stirflow.core.errors import FatalInitError


@dataclass(frozen=True)
class GridGeometry:
    """Immutable grid geometry specification.

    Attributes:
        width: Number of cells along x
        height: Number of cells along y

    Properties:
        n_cells: Total number of cells (width * height)
        cell_scale: (1/width, 1/height)
        aspect: width / height
        max_dim: Longest side in cells, the velocity length unit
    """

    width: int
    height: int

    def __post_init__(self):
        """Validate grid dimensions."""
        if self.width <= 0:
            raise FatalInitError(f"width must be > 0, got {self.width}")
        if self.height <= 0:
            raise FatalInitError(f"height must be > 0, got {self.height}")

    @classmethod
    def from_viewport(
        cls, viewport_width: int, viewport_height: int, resolution: float = 0.5
    ) -> "GridGeometry":
        """Derive the simulation grid from a viewport size and a scale factor.

        Args:
            viewport_width: Viewport width [px]
            viewport_height: Viewport height [px]
            resolution: Grid cells per viewport pixel

        Returns:
            GridGeometry with floor(viewport * resolution) cells, at least 1

        Raises:
            FatalInitError: If the viewport or resolution is non-positive
        """
        if viewport_width <= 0 or viewport_height <= 0:
            raise FatalInitError(
                f"viewport must be positive, got {viewport_width}x{viewport_height}"
            )
        if resolution <= 0:
            raise FatalInitError(f"resolution must be > 0, got {resolution}")
        width = max(1, math.floor(viewport_width * resolution))
        height = max(1, math.floor(viewport_height * resolution))
        return cls(width, height)

    @property
    def n_cells(self) -> int:
        """Total number of cells."""
        return self.width * self.height

    @property
    def shape(self) -> tuple[int, int]:
        """Grid shape as (width, height) tuple."""
        return (self.width, self.height)

    @property
    def cell_scale(self) -> tuple[float, float]:
        """Size of one cell in grid-normalized units."""
        return (1.0 / self.width, 1.0 / self.height)

    @property
    def aspect(self) -> float:
        return self.width / self.height

    @property
    def max_dim(self) -> int:
        return max(self.width, self.height)

    def uv_to_cell(self, u: float, v: float) -> tuple[float, float]:
        """Convert grid-normalized coordinates to cell units."""
        return (u * self.width, v * self.height)

    def distance_to_edge(self, u: float, v: float) -> float:
        """Distance in cells from a uv point to the nearest domain edge.

        Points outside the domain report a negative distance.
        """
        x, y = self.uv_to_cell(u, v)
        return min(x, self.width - x, y, self.height - y)


def ndc_to_uv(x: float, y: float) -> tuple[float, float]:
    """Map normalized device coordinates [-1, 1] to uv [0, 1]."""
    return ((x + 1.0) * 0.5, (y + 1.0) * 0.5)


def uv_to_ndc(u: float, v: float) -> tuple[float, float]:
    """Map uv [0, 1] to normalized device coordinates [-1, 1]."""
    return (u * 2.0 - 1.0, v * 2.0 - 1.0)
