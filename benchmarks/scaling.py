import gc
import time
from dataclasses import dataclass

import taichi as ti

from benchmarks.harness import Benchmark
from stirflow.kernels import Backend
from stirflow.params import SimulationConfig
from stirflow.simulation import Simulation


@dataclass
class ScalingMetrics:
    backend: str
    width: int
    height: int
    frames: int
    wall_time_s: float

    @property
    def n_cells(self) -> int:
        return self.width * self.height

    @property
    def fps(self) -> float:
        return self.frames / self.wall_time_s

    @property
    def megacells_per_second(self) -> float:
        return self.n_cells * self.frames / self.wall_time_s / 1e6


class ScalingBenchmark(Benchmark):
    """Full frames (viscous + pressure loops) across grid sizes and backends."""

    viewports = [(256, 256), (512, 512), (1024, 1024), (2048, 2048)]
    frames = 100

    def run(self) -> list[ScalingMetrics]:
        results = []
        self.print_header("SCALING BENCHMARK")

        for backend in (Backend.TAICHI, Backend.NUMPY):
            for viewport in self.viewports:
                # The reference backend is far slower; keep its run short
                if backend is Backend.NUMPY and viewport[0] > 512:
                    continue
                results.append(self._run_single(backend, viewport))

        self._print_report(results)
        self.teardown()
        return results

    def _run_single(self, backend: Backend, viewport: tuple[int, int]) -> ScalingMetrics:
        config = SimulationConfig().with_updates(
            grid={"viewport_width": viewport[0], "viewport_height": viewport[1]},
            solver={"is_viscous": True},
        )
        gc.collect()
        sim = Simulation(config, backend)
        g = sim.geometry
        print(f"\nBenchmarking {backend.name} {g.width}x{g.height}...")

        # Warmup (JIT)
        sim.pointer.move(0.0, 0.0)
        for _ in range(5):
            sim.tick()
        ti.sync()

        start_time = time.perf_counter()
        for _ in range(self.frames):
            sim.tick()
        sim.velocity_numpy()
        ti.sync()
        elapsed = time.perf_counter() - start_time
        sim.close()

        return ScalingMetrics(backend.name, g.width, g.height, self.frames, elapsed)

    def _print_report(self, results: list[ScalingMetrics]):
        self.print_header("RESULTS SUMMARY")
        print(f"{'Backend':<10} {'Grid':<12} {'Time (s)':<12} {'FPS':<12} {'Throughput (MC/s)':<18}")
        print("-" * 80)

        for r in results:
            print(
                f"{r.backend:<10} "
                f"{f'{r.width}x{r.height}':<12} "
                f"{r.wall_time_s:>8.2f}    "
                f"{r.fps:>8.1f}    "
                f"{r.megacells_per_second:>10.2f}"
            )
        self.print_footer()
