"""
Base benchmark harness for Stir-Flow.
"""
import abc

import taichi as ti
from typing import Any

from stirflow.config import init_taichi


class Benchmark(abc.ABC):
    """Abstract base class for all benchmarks."""

    def __init__(self, profile: bool = False):
        self.profile = profile
        self.init_taichi()

    def init_taichi(self):
        """Initialize Taichi backend (auto-detected, see STIRFLOW_BACKEND)."""
        print(f"Initializing Taichi (Profile: {self.profile})...")
        arch = init_taichi(debug=False, kernel_profiler=self.profile)
        print(f"Using {arch}")

    @abc.abstractmethod
    def run(self) -> Any:
        """Run the benchmark logic. Returns results."""
        pass

    def teardown(self):
        """Print and clear profiler output when profiling."""
        if self.profile:
            print("\nProfiler Output:")
            ti.profiler.print_kernel_profiler_info()
            ti.profiler.clear_kernel_profiler_info()

    def print_header(self, title: str):
        print("\n" + "=" * 80)
        print(f"{title:^80}")
        print("=" * 80)

    def print_footer(self):
        print("=" * 80)
