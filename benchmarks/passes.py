import time

import numpy as np
import taichi as ti

from benchmarks.harness import Benchmark
from stirflow.fields import GridBufferSet
from stirflow.kernels import Backend, get_registry
from stirflow.params import SolverParams
from stirflow import solver


class PassBenchmark(Benchmark):
    """Time each solver stage on one grid."""

    width = 1024
    height = 1024
    repeats = 50

    def run(self) -> dict[str, float]:
        self.print_header(f"PER-STAGE TIMING ({self.width}x{self.height})")

        dispatcher = get_registry().get(Backend.TAICHI)
        buffers = GridBufferSet(dispatcher)
        buffers.allocate(self.width, self.height)
        rng = np.random.default_rng(42)
        dispatcher.from_numpy(
            buffers.velocity.read,
            rng.normal(0.0, 0.1, (self.width, self.height, 2)),
        )

        params = SolverParams(is_viscous=True)
        geometry = buffers.geometry
        stages = {
            "advect": lambda: solver.advect(dispatcher, buffers, params, geometry),
            "diffuse": lambda: solver.diffuse(dispatcher, buffers, params),
            "divergence": lambda: solver.compute_divergence(
                dispatcher, buffers, buffers.velocity.read, params
            ),
            "pressure": lambda: solver.solve_pressure(dispatcher, buffers, params),
            "project": lambda: solver.project(
                dispatcher, buffers, buffers.velocity.read, params
            ),
        }

        timings = {}
        for name, stage in stages.items():
            stage()  # JIT
            ti.sync()
            start = time.perf_counter()
            for _ in range(self.repeats):
                stage()
            ti.sync()
            timings[name] = (time.perf_counter() - start) / self.repeats * 1e3
            print(f"{name:<12} {timings[name]:>8.3f} ms")

        buffers.release()
        self.print_footer()
        self.teardown()
        return timings
