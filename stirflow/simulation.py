"""Frame orchestrator: owns buffers and parameters, runs one tick per frame.

Per tick, in order:
1. Apply queued configuration changes (ConfigChannel snapshot)
2. Apply a pending resize (deferred from request_resize)
3. Collect force sources from the pointer and the trajectory driver
4. Run the solver stages (advect, forces, viscosity, divergence,
   pressure, projection)

Nothing in a tick is ever interrupted: resizes and parameter changes
requested while a tick runs wait for the next one.
"""

import logging

import numpy as np

from stirflow.core.geometry import GridGeometry
from stirflow.diagnostics import FrameStats, compute_stats
from stirflow.fields.fluid import GridBufferSet
from stirflow.forces import ForceSource, active_sources
from stirflow.kernels import Backend, get_registry
from stirflow.kernels.protocol import KernelDispatcher
from stirflow.params import ConfigChannel, SimulationConfig
from stirflow.pointer import PointerForce
from stirflow.solver import SOLVER_PASSES, run_frame
from stirflow.trajectory import TrajectoryCollection, TrajectoryDriver

logger = logging.getLogger(__name__)


class Simulation:
    """Stable-fluids simulation orchestrator.

    Example:
        sim = Simulation(SimulationConfig(), Backend.NUMPY)
        sim.pointer.move(0.0, 0.0)
        sim.tick()
        v = sim.velocity_numpy()
        sim.close()
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        dispatcher: KernelDispatcher | Backend | None = None,
        trajectory: TrajectoryCollection | None = None,
        pointer: PointerForce | None = None,
    ):
        """Allocate grid buffers and wire up force producers.

        Args:
            config: Initial parameters (defaults if None)
            dispatcher: Dispatcher instance, or a Backend to get one from
                the default registry (Taichi if None)
            trajectory: Optional recorded agents driving forces
            pointer: Pointer-force provider (a new one if None)

        Raises:
            FatalInitError: If the backend lacks a solver pass or the grid
                size is not positive
        """
        self.channel = ConfigChannel(config)
        config = self.channel.current

        if dispatcher is None:
            dispatcher = Backend.TAICHI
        if isinstance(dispatcher, Backend):
            dispatcher = get_registry().get(dispatcher)
        dispatcher.require(SOLVER_PASSES)
        self.dispatcher = dispatcher

        self.viewport = (config.grid.viewport_width, config.grid.viewport_height)
        self.buffers = GridBufferSet(dispatcher)
        geometry = GridGeometry.from_viewport(*self.viewport, config.grid.resolution)
        self.buffers.allocate(geometry.width, geometry.height)

        self.pointer = pointer if pointer is not None else PointerForce(config.forces)
        self.driver = (
            TrajectoryDriver(trajectory, config.trajectory, config.forces)
            if trajectory is not None
            else None
        )

        self.frame = 0
        self.time = 0.0
        self._pending_resize: GridGeometry | None = None
        self._last_sources = 0
        self.channel.subscribe(self._on_config_change)

    @property
    def config(self) -> SimulationConfig:
        """Parameters in effect for the current frame."""
        return self.channel.current

    @property
    def geometry(self) -> GridGeometry:
        return self.buffers.geometry

    def load_trajectory(self, collection: TrajectoryCollection) -> None:
        """Replace the recorded agents (full rebuild)."""
        config = self.config
        if self.driver is None:
            self.driver = TrajectoryDriver(collection, config.trajectory, config.forces)
        else:
            self.driver.rebuild(collection)

    def request_resize(self, viewport_width: int, viewport_height: int) -> None:
        """Ask for a new viewport size; applied at the start of the next tick.

        Several requests before a tick collapse into the last one.

        Raises:
            FatalInitError: If the resulting grid would be empty
        """
        self._pending_resize = GridGeometry.from_viewport(
            viewport_width, viewport_height, self.config.grid.resolution
        )
        self.viewport = (viewport_width, viewport_height)

    def _apply_resize(self) -> None:
        geometry, self._pending_resize = self._pending_resize, None
        if geometry is None or geometry == self.buffers.geometry:
            return
        self.buffers.allocate(geometry.width, geometry.height)
        logger.info("Resized grid to %dx%d", geometry.width, geometry.height)

    def _on_config_change(self, old: SimulationConfig, new: SimulationConfig) -> None:
        if new.grid != old.grid:
            if (new.grid.viewport_width, new.grid.viewport_height) != (
                old.grid.viewport_width,
                old.grid.viewport_height,
            ):
                self.viewport = (new.grid.viewport_width, new.grid.viewport_height)
            self._pending_resize = GridGeometry.from_viewport(
                *self.viewport, new.grid.resolution
            )
        self.pointer.forces = new.forces
        if self.driver is not None:
            self.driver.params = new.trajectory
            self.driver.forces = new.forces

    def collect_sources(self, elapsed: float) -> list[ForceSource]:
        """Force sources for this frame, boundary suppression applied."""
        sources = []
        pointer_source = self.pointer.sample()
        if pointer_source is not None:
            sources.append(pointer_source)
        if self.driver is not None:
            sources.extend(self.driver.update(elapsed))

        config = self.config
        return active_sources(
            sources,
            self.buffers.geometry,
            config.forces.boundary_margin,
            config.solver.is_bounded,
        )

    def tick(self, elapsed: float | None = None) -> None:
        """Advance the simulation by one frame.

        Args:
            elapsed: Animation time [s] for the trajectory driver
                (frame / frame_rate if None)
        """
        config = self.channel.apply_pending()
        self._apply_resize()

        if elapsed is None:
            elapsed = self.frame / config.trajectory.frame_rate
        self.time = elapsed

        sources = self.collect_sources(elapsed)
        run_frame(self.dispatcher, self.buffers, config.solver, sources)
        self._last_sources = len(sources)
        self.frame += 1

    def velocity_numpy(self) -> np.ndarray:
        """Copy of the current velocity, shape (width, height, 2)."""
        return self.dispatcher.to_numpy(self.buffers.velocity.read)

    def set_velocity(self, velocity: np.ndarray) -> None:
        """Overwrite the current velocity from a host array."""
        self.dispatcher.from_numpy(self.buffers.velocity.read, velocity)

    def stats(self) -> FrameStats:
        """Diagnostics of the current velocity field."""
        return compute_stats(
            self.velocity_numpy(),
            frame=self.frame,
            time=self.time,
            bounded=self.config.solver.is_bounded,
            sources=self._last_sources,
        )

    def close(self) -> None:
        """Release all grid storage."""
        self.buffers.release()
