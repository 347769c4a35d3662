"""
Kernel protocol definitions for swappable backends.

A backend runs named full-grid passes ("dispatch") and supplies the field
storage those passes operate on. The solver is written once against the
KernelDispatcher protocol; each backend registers its own implementation.

Each pass has:
- a fixed number of input fields, bound in order
- one output field, never one of the inputs
- a parameter bag {name -> scalar | 2-tuple} with declared defaults
"""

import warnings
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np

from stirflow.core.errors import ConfigWarning

ParamValue = float | int | bool | tuple[float, float]


class Backend(Enum):
    """Available kernel backends."""

    TAICHI = auto()  # Data-parallel Taichi kernels (CPU or GPU)
    NUMPY = auto()  # Vectorised reference implementation


@dataclass(frozen=True)
class PassSpec:
    """Declares a pass: its input count and parameters with defaults.

    Attributes:
        name: Pass identifier
        n_inputs: Number of input fields bound in order
        params: Parameter name -> default (None = required)
        description: What the pass computes
    """

    name: str
    n_inputs: int
    params: Mapping[str, Any] = field(default_factory=dict)
    description: str = ""


PASS_SPECS: dict[str, PassSpec] = {
    spec.name: spec
    for spec in (
        PassSpec(
            "advect",
            1,
            {"dt": None, "cell_scale": None, "bfecc": True, "bfecc_clamp": 1.0, "bounded": False},
            "Semi-Lagrangian self-advection of velocity, optional BFECC",
        ),
        PassSpec(
            "external_force",
            1,
            {"center": None, "force": None, "radius": None, "cell_scale": None},
            "velocity + force * (1 - min(r / radius, 1))^2",
        ),
        PassSpec(
            "viscous",
            2,
            {"viscosity": None, "dt": None},
            "One Jacobi sweep of implicit diffusion (estimate, source)",
        ),
        PassSpec(
            "divergence",
            1,
            {"dt": None, "bounded": False},
            "Central-difference divergence divided by dt",
        ),
        PassSpec(
            "poisson",
            2,
            {"bounded": False},
            "One Jacobi sweep of the pressure Poisson equation (pressure, divergence)",
        ),
        PassSpec(
            "pressure",
            2,
            {"dt": None, "bounded": False},
            "Subtract the pressure gradient from velocity (velocity, pressure)",
        ),
        PassSpec("copy", 1, {}, "Copy input to output"),
    )
}


def resolve_params(spec: PassSpec, params: Mapping[str, ParamValue]) -> dict[str, Any]:
    """Bind a parameter bag to a pass's declared parameters.

    Unknown names emit ConfigWarning and are dropped; missing names take
    their default.

    Raises:
        ValueError: If a required parameter is missing
    """
    resolved: dict[str, Any] = {}
    for name, value in params.items():
        if name not in spec.params:
            warnings.warn(
                f"Pass '{spec.name}' has no parameter '{name}', ignored",
                ConfigWarning,
                stacklevel=3,
            )
            continue
        resolved[name] = value

    for name, default in spec.params.items():
        if name in resolved:
            continue
        if default is None:
            raise ValueError(f"Pass '{spec.name}' requires parameter '{name}'")
        resolved[name] = default
    return resolved


@runtime_checkable
class KernelDispatcher(Protocol):
    """Protocol for kernel backends: pass execution plus field storage."""

    backend: Backend

    def dispatch(
        self,
        name: str,
        inputs: Sequence[Any],
        output: Any,
        params: Mapping[str, ParamValue] | None = None,
    ) -> None:
        """Run one pass over every cell of output.

        Args:
            name: Pass identifier (see PASS_SPECS)
            inputs: Input fields bound to slots 0..n-1
            output: Field receiving the result
            params: Parameter bag

        Raises:
            FatalInitError: If the pass is unavailable
            BufferAliasError: If output is also an input
        """
        ...

    def has_pass(self, name: str) -> bool:
        """Whether this backend implements the named pass."""
        ...

    def require(self, names: Iterable[str]) -> None:
        """Raise FatalInitError unless every named pass is available."""
        ...

    def allocate(
        self, layout: Sequence[tuple[str, int]], shape: tuple[int, int]
    ) -> tuple[dict[str, Any], Any]:
        """Allocate zero-filled fields: layout is [(name, components), ...]."""
        ...

    def release(self, handle: Any) -> None:
        """Free storage returned by allocate()."""
        ...

    def to_numpy(self, field: Any) -> np.ndarray:
        """Copy a field to a host array of shape (w, h) or (w, h, 2)."""
        ...

    def from_numpy(self, field: Any, array: np.ndarray) -> None:
        """Overwrite a field from a host array."""
        ...

    def fill(self, field: Any, value: float) -> None:
        """Set every element of a field to value."""
        ...
