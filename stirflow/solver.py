"""
Solver stages, written once against the KernelDispatcher interface.

Each stage reads the current ("read") buffer of a pair, writes the other
buffer, then swaps, so no pass reads storage it is writing. Stages run
strictly in sequence; the dispatcher returns only once a pass's writes are
visible to the next pass.

Frame order (see run_frame):
    advect -> inject_forces -> diffuse (optional) -> compute_divergence
    -> solve_pressure -> project
"""

from typing import Any, Sequence

from stirflow.core.geometry import GridGeometry
from stirflow.fields.fluid import GridBufferSet
from stirflow.forces import ForceSource
from stirflow.kernels.protocol import KernelDispatcher
from stirflow.params.schema import SolverParams

SOLVER_PASSES = ("advect", "external_force", "viscous", "divergence", "poisson", "pressure", "copy")


def advect(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    solver: SolverParams,
    geometry: GridGeometry,
) -> None:
    """Self-advect velocity; the pair swaps so read holds the result."""
    velocity = buffers.velocity
    dispatcher.dispatch(
        "advect",
        [velocity.read],
        velocity.write,
        {
            "dt": solver.dt,
            "cell_scale": geometry.cell_scale,
            "bfecc": solver.bfecc,
            "bfecc_clamp": solver.bfecc_clamp,
            "bounded": solver.is_bounded,
        },
    )
    velocity.swap()


def inject_forces(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    sources: Sequence[ForceSource],
    geometry: GridGeometry,
) -> int:
    """Add each source to velocity, one pass per source.

    Sources should already be filtered (see forces.active_sources).

    Returns:
        Number of sources injected
    """
    velocity = buffers.velocity
    for source in sources:
        dispatcher.dispatch(
            "external_force",
            [velocity.read],
            velocity.write,
            {
                "center": source.center,
                "force": source.force,
                "radius": source.radius,
                "cell_scale": geometry.cell_scale,
            },
        )
        velocity.swap()
    return len(sources)


def diffuse(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    solver: SolverParams,
) -> Any:
    """Run iterations_viscous Jacobi sweeps of implicit diffusion.

    velocity.read is the fixed source term. The viscous estimate is seeded
    from it, then each sweep reads viscous.read, writes viscous.write and
    swaps.

    Returns:
        The field holding the diffused velocity (viscous.read)
    """
    velocity = buffers.velocity
    viscous = buffers.viscous
    dispatcher.dispatch("copy", [velocity.read], viscous.read)

    params = {"viscosity": solver.viscosity, "dt": solver.dt}
    for _ in range(solver.iterations_viscous):
        dispatcher.dispatch("viscous", [viscous.read, velocity.read], viscous.write, params)
        viscous.swap()
    return viscous.read


def compute_divergence(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    source: Any,
    solver: SolverParams,
) -> None:
    """Write the divergence of source into the divergence field."""
    dispatcher.dispatch(
        "divergence",
        [source],
        buffers.divergence,
        {"dt": solver.dt, "bounded": solver.is_bounded},
    )


def solve_pressure(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    solver: SolverParams,
) -> None:
    """Run iterations_poisson Jacobi sweeps, warm-started from last frame."""
    pressure = buffers.pressure
    params = {"bounded": solver.is_bounded}
    for _ in range(solver.iterations_poisson):
        dispatcher.dispatch(
            "poisson", [pressure.read, buffers.divergence], pressure.write, params
        )
        pressure.swap()


def project(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    source: Any,
    solver: SolverParams,
) -> None:
    """Subtract the pressure gradient from source into the next velocity.

    source may be velocity.read itself; the result always goes to
    velocity.write, which then becomes read.
    """
    velocity = buffers.velocity
    dispatcher.dispatch(
        "pressure",
        [source, buffers.pressure.read],
        velocity.write,
        {"dt": solver.dt, "bounded": solver.is_bounded},
    )
    velocity.swap()


def run_frame(
    dispatcher: KernelDispatcher,
    buffers: GridBufferSet,
    solver: SolverParams,
    sources: Sequence[ForceSource] = (),
) -> None:
    """Run one full solver step on the allocated buffers."""
    geometry = buffers.geometry

    advect(dispatcher, buffers, solver, geometry)
    inject_forces(dispatcher, buffers, sources, geometry)

    if solver.is_viscous:
        source = diffuse(dispatcher, buffers, solver)
    else:
        source = buffers.velocity.read

    compute_divergence(dispatcher, buffers, source, solver)
    solve_pressure(dispatcher, buffers, solver)
    project(dispatcher, buffers, source, solver)
