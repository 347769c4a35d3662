import argparse
import traceback

from benchmarks.passes import PassBenchmark
from benchmarks.scaling import ScalingBenchmark

# Registry of available benchmarks
BENCHMARKS = {
    "scaling": ScalingBenchmark,
    "passes": PassBenchmark,
}


def main():
    parser = argparse.ArgumentParser(description="Stir-Flow Benchmark Harness")
    parser.add_argument(
        "benchmark",
        nargs="?",
        choices=list(BENCHMARKS.keys()) + ["all"],
        default="all",
        help="Benchmark to run (default: all)",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable Taichi kernel profiler",
    )

    args = parser.parse_args()

    if args.benchmark == "all":
        to_run = list(BENCHMARKS.values())
    else:
        to_run = [BENCHMARKS[args.benchmark]]

    for bench_cls in to_run:
        print(f"\nRunning {bench_cls.__name__}...")
        try:
            # Taichi init is global; each harness re-initializes it
            b = bench_cls(profile=args.profile)
            b.run()
        except Exception as e:
            print(f"Error running benchmark: {e}")
            traceback.print_exc()


if __name__ == "__main__":
    main()
