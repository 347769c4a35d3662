"""CLI entry point for Stir-Flow.

Runs the fluid solver headless for a number of frames, or interactively in
a window with --gui.
"""

import argparse
import logging
import time

from stirflow.config import init_taichi
from stirflow.kernels import Backend
from stirflow.params import load_config_with_overrides
from stirflow.scheduler import FrameScheduler
from stirflow.simulation import Simulation
from stirflow.trajectory import load_trajectories


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stir-Flow fluid simulation")
    parser.add_argument("--config", type=str, help="Path to YAML configuration file")
    parser.add_argument(
        "--backend",
        choices=["taichi", "numpy"],
        default="taichi",
        help="Kernel backend (default: taichi)",
    )
    parser.add_argument(
        "--arch",
        choices=["auto", "cuda", "vulkan", "metal", "cpu"],
        default=None,
        help="Taichi architecture (default: STIRFLOW_BACKEND or auto-detect)",
    )
    parser.add_argument(
        "--viewport", type=int, nargs=2, metavar=("W", "H"), help="Viewport size [px]"
    )
    parser.add_argument("--frames", type=int, default=600, help="Frames to run headless")
    parser.add_argument("--trajectory", type=str, help="Trajectory JSON driving agent forces")
    parser.add_argument("--bounded", action="store_true", help="Use solid walls")
    parser.add_argument("--gui", action="store_true", help="Open a window")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    overrides: dict = {}
    if args.viewport:
        overrides["grid"] = {
            "viewport_width": args.viewport[0],
            "viewport_height": args.viewport[1],
        }
    if args.bounded:
        overrides["solver"] = {"boundary": "bounded"}
    config = load_config_with_overrides(args.config, overrides)
    if args.config:
        print(f"Loaded config from {args.config}")

    arch = None if args.arch in (None, "auto") else args.arch
    arch = init_taichi(backend=arch)
    print(f"Taichi initialized on {arch}")

    trajectory = load_trajectories(args.trajectory) if args.trajectory else None
    backend = Backend.NUMPY if args.backend == "numpy" else Backend.TAICHI
    sim = Simulation(config, backend, trajectory=trajectory)
    geometry = sim.geometry
    print(f"Grid {geometry.width}x{geometry.height} on {backend.name}")

    start_time = time.time()
    try:
        if args.gui:
            run_gui(sim)
        else:
            run_headless(sim, args.frames)
    except KeyboardInterrupt:
        print("\nSimulation stopped by user.")
    finally:
        stats = sim.stats()
        sim.close()

    duration = time.time() - start_time
    print(f"Ran {sim.frame} frames in {duration:.2f}s ({sim.frame / max(duration, 1e-9):.1f} fps)")
    print(
        f"Final: |div| = {stats.mean_abs_divergence:.3e}, "
        f"energy = {stats.kinetic_energy:.3e}, max speed = {stats.max_speed:.3e}"
    )
    return 0


def run_headless(sim: Simulation, frames: int) -> None:
    """Tick as fast as possible, printing a status line every 100 frames."""

    def tick(elapsed: float) -> None:
        sim.tick(elapsed)
        if sim.frame % 100 == 0:
            s = sim.stats()
            print(
                f"Frame {s.frame}: |div| = {s.mean_abs_divergence:.3e}, "
                f"energy = {s.kinetic_energy:.3e}, sources = {s.sources}"
            )

    scheduler = FrameScheduler(
        tick, frame_rate=sim.config.trajectory.frame_rate, sleep=lambda _: None
    )
    scheduler.run(max_frames=frames)


def run_gui(sim: Simulation) -> None:
    """Interactive loop: window events, tick, draw."""
    from stirflow.gui import VelocityView

    view = VelocityView(window_size=sim.viewport)

    def tick(elapsed: float) -> None:
        if not view.running:
            scheduler.stop()
            return
        view.poll(sim)
        sim.tick(elapsed)
        view.update(sim.velocity_numpy())
        view.render()

    scheduler = FrameScheduler(tick, sim.config.trajectory.frame_rate)
    scheduler.run()


if __name__ == "__main__":
    raise SystemExit(main())
