"""
Point force sources for the External Force Injector.

A ForceSource is a centre in uv coordinates, a force vector (velocity
units) and an influence radius in grid cells. Sources come from pointer
motion or trajectory agents; both build them with source_from_motion().
"""

from dataclasses import dataclass

from stirflow.core.geometry import GridGeometry, ndc_to_uv
from stirflow.params.schema import ForceParams


@dataclass(frozen=True)
class ForceSource:
    """One point force.

    Attributes:
        center: (u, v) in [0, 1]
        force: Force vector added at the centre
        radius: Influence radius [cells]
    """

    center: tuple[float, float]
    force: tuple[float, float]
    radius: float

    @property
    def is_zero(self) -> bool:
        return self.force[0] == 0.0 and self.force[1] == 0.0


def source_from_motion(
    position: tuple[float, float],
    delta: tuple[float, float],
    forces: ForceParams,
) -> ForceSource:
    """Build a force source from a position and its per-frame displacement.

    Args:
        position: Current position in NDC
        delta: Position change since the previous frame in NDC
        forces: Gain and radius

    Returns:
        ForceSource with force = delta / 2 * mouse_force
    """
    return ForceSource(
        center=ndc_to_uv(*position),
        force=(delta[0] * 0.5 * forces.mouse_force, delta[1] * 0.5 * forces.mouse_force),
        radius=forces.cursor_size,
    )


def is_suppressed(
    source: ForceSource, geometry: GridGeometry, margin: float, bounded: bool
) -> bool:
    """Whether a source is too close to a wall to be injected.

    Only bounded domains suppress: a source whose centre lies within
    radius + margin cells of any edge (or outside the domain) is dropped.
    """
    if not bounded:
        return False
    return geometry.distance_to_edge(*source.center) <= source.radius + margin


def active_sources(
    sources: list[ForceSource],
    geometry: GridGeometry,
    margin: float,
    bounded: bool,
) -> list[ForceSource]:
    """Sources to inject this frame: non-zero and not suppressed."""
    return [
        s
        for s in sources
        if not s.is_zero and not is_suppressed(s, geometry, margin, bounded)
    ]
