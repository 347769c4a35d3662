"""Pytest fixtures and test utilities for Stir-Flow."""

import numpy as np
import pytest

from stirflow.config import init_taichi
from stirflow.fields import GridBufferSet
from stirflow.kernels import Backend, get_registry
from stirflow.params import SimulationConfig


@pytest.fixture(scope="session", autouse=True)
def taichi_init():
    """Initialize Taichi once per test session with CPU backend."""
    init_taichi(backend="cpu", debug=True)
    yield


@pytest.fixture(params=[Backend.TAICHI, Backend.NUMPY], ids=["taichi", "numpy"])
def dispatcher(request):
    """A fresh dispatcher for each backend."""
    return get_registry().get(request.param)


@pytest.fixture
def numpy_dispatcher():
    return get_registry().get(Backend.NUMPY)


@pytest.fixture
def taichi_dispatcher():
    return get_registry().get(Backend.TAICHI)


@pytest.fixture
def buffer_factory():
    """Factory for allocated GridBufferSets, released after the test."""
    created = []

    def make(dispatcher, width: int = 16, height: int = 16) -> GridBufferSet:
        buffers = GridBufferSet(dispatcher)
        buffers.allocate(width, height)
        created.append(buffers)
        return buffers

    yield make
    for buffers in created:
        buffers.release()


@pytest.fixture
def small_config():
    """64x64 grid config (viewport 128x128 at resolution 0.5)."""
    return make_config(128, 128)


def make_config(viewport_width: int, viewport_height: int, **solver) -> SimulationConfig:
    """Config for a given viewport with solver overrides."""
    return SimulationConfig().with_updates(
        grid={"viewport_width": viewport_width, "viewport_height": viewport_height},
        solver=solver,
    )


def swirl_velocity(width: int, height: int, strength: float = 0.2) -> np.ndarray:
    """Smooth rotational velocity field centred in the grid."""
    i, j = np.meshgrid(np.arange(width), np.arange(height), indexing="ij")
    x = (i + 0.5) / width - 0.5
    y = (j + 0.5) / height - 0.5
    envelope = np.exp(-(x**2 + y**2) / 0.05)
    v = np.stack([-y * envelope, x * envelope], axis=-1) * strength
    return v.astype(np.float32)


def source_velocity(width: int, height: int, strength: float = 0.1) -> np.ndarray:
    """Radially outward velocity from the grid centre: strongly divergent."""
    i, j = np.meshgrid(np.arange(width), np.arange(height), indexing="ij")
    x = (i + 0.5) / width - 0.5
    y = (j + 0.5) / height - 0.5
    envelope = np.exp(-(x**2 + y**2) / 0.02)
    v = np.stack([x * envelope, y * envelope], axis=-1) * strength
    return v.astype(np.float32)


@pytest.fixture
def config_factory():
    """Build a SimulationConfig for a viewport with solver overrides."""
    return make_config


@pytest.fixture
def swirl():
    """Generate a smooth rotational velocity field."""
    return swirl_velocity


@pytest.fixture
def divergent_source():
    """Generate a radially outward (divergent) velocity field."""
    return source_velocity
