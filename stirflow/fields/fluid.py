"""Fluid field specifications and the GridBufferSet.

Fields:
- velocity: Vector-2, double-buffered, carried between frames
- viscous: Vector-2, double-buffered, viscous estimate (rebuilt each frame)
- pressure: Scalar, double-buffered, warm-starts the next frame's solve
- divergence: Scalar, written once per frame

All fields share the grid size. Resizing releases every field and
allocates the whole set again at the new size, zero-filled.
"""

import logging
from typing import Any

from stirflow.core.geometry import GridGeometry
from stirflow.fields.base import (
    FieldContainer,
    FieldPair,
    FieldRole,
    FieldSpec,
    ResourceProvider,
)

logger = logging.getLogger(__name__)

PAIR_NAMES = ("velocity", "viscous", "pressure")


def create_fluid_specs() -> list[FieldSpec]:
    """Create specifications for every field the solver touches.

    Returns:
        List of FieldSpec for the fluid grid
    """
    return [
        FieldSpec(
            name="velocity",
            components=2,
            role=FieldRole.STATE,
            double_buffer=True,
            description="Velocity [longest side / s]",
        ),
        FieldSpec(
            name="viscous",
            components=2,
            role=FieldRole.SCRATCH,
            double_buffer=True,
            description="Viscous velocity estimate [longest side / s]",
        ),
        FieldSpec(
            name="pressure",
            components=1,
            role=FieldRole.STATE,
            double_buffer=True,
            description="Pressure (projection potential)",
        ),
        FieldSpec(
            name="divergence",
            components=1,
            role=FieldRole.SCRATCH,
            description="Velocity divergence [1 / s]",
        ),
    ]


class GridBufferSet:
    """Owns every grid field of the simulation.

    Example:
        buffers = GridBufferSet(dispatcher)
        buffers.allocate(128, 96)
        buffers.velocity.read   # current velocity
        buffers.swap("velocity")
        buffers.release()
    """

    def __init__(self, provider: ResourceProvider):
        """Initialize with a resource provider; nothing is allocated yet.

        Args:
            provider: Backend supplying field storage
        """
        self._provider = provider
        self._container: FieldContainer | None = None

    @property
    def allocated(self) -> bool:
        return self._container is not None and self._container.allocated

    @property
    def geometry(self) -> GridGeometry:
        return self._require().geometry

    @property
    def container(self) -> FieldContainer:
        return self._require()

    def _require(self) -> FieldContainer:
        if self._container is None:
            raise RuntimeError("Grid buffers not allocated")
        return self._container

    def allocate(self, width: int, height: int) -> None:
        """Create (or recreate) every field at width x height, zero-filled.

        Raises:
            FatalInitError: If width or height is not positive
        """
        geometry = GridGeometry(width, height)
        self.release()
        container = FieldContainer(geometry, self._provider)
        container.register_many(create_fluid_specs())
        container.allocate()
        self._container = container
        logger.info("Grid buffers allocated at %dx%d", width, height)

    def release(self) -> None:
        """Free every field. Safe to call when nothing is allocated."""
        if self._container is not None:
            self._container.release()
            self._container = None

    def swap(self, pair_name: str) -> None:
        """Flip read/write identity of one field pair."""
        self._require().swap(pair_name)

    def pair(self, name: str) -> FieldPair:
        return self._require().pair(name)

    @property
    def velocity(self) -> FieldPair:
        """Velocity pair."""
        return self.pair("velocity")

    @property
    def viscous(self) -> FieldPair:
        """Viscous estimate pair."""
        return self.pair("viscous")

    @property
    def pressure(self) -> FieldPair:
        """Pressure pair."""
        return self.pair("pressure")

    @property
    def divergence(self) -> Any:
        """Divergence field."""
        return self._require()["divergence"]
