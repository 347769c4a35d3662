"""
Taichi configuration and initialization.

Environment variables:
    STIRFLOW_BACKEND: 'cuda', 'vulkan', 'metal', 'cpu', or 'auto' (default)
    STIRFLOW_DEBUG: '1' to enable debug mode (bounds-checked field access)

Falls back to CPU if no GPU is detected.
"""

import os
import subprocess
import sys

import taichi as ti

from stirflow.core.dtypes import DTYPE

ARCHS = {"cuda": ti.cuda, "vulkan": ti.vulkan, "metal": ti.metal, "cpu": ti.cpu}


def get_backend() -> str:
    """Determine Taichi backend: check env var, then auto-detect."""
    env = os.environ.get("STIRFLOW_BACKEND", "auto").lower()

    if env in ARCHS:
        return env
    if env != "auto":
        raise ValueError(f"Invalid STIRFLOW_BACKEND: {env}")

    if sys.platform == "darwin":
        return "metal"

    # Auto-detect CUDA
    try:
        result = subprocess.run(
            ["nvidia-smi", "-L"], capture_output=True, text=True, timeout=5
        )
        if result.returncode == 0 and "GPU" in result.stdout:
            return "cuda"
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass

    return "cpu"


def init_taichi(
    backend: str | None = None,
    debug: bool | None = None,
    kernel_profiler: bool = False,
) -> str:
    """Initialize Taichi with specified or auto-detected backend."""
    if backend is None:
        backend = get_backend()
    if debug is None:
        debug = os.environ.get("STIRFLOW_DEBUG", "0") == "1"

    arch = ARCHS.get(backend)
    if arch is None:
        raise ValueError(f"Unknown backend: {backend}")

    ti.init(
        arch=arch,
        default_fp=DTYPE,
        debug=debug,
        offline_cache=True,
        random_seed=42,
        kernel_profiler=kernel_profiler,
    )
    return backend
