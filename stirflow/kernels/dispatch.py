"""
Kernel dispatchers: run named passes and own grid storage.

BaseDispatcher implements the checks every backend shares (pass lookup,
input count, output aliasing, parameter binding). Subclasses supply the
pass table and the storage primitives.
"""

import logging
from typing import Any, Callable, Iterable, Mapping, Sequence

import numpy as np
import taichi as ti

from stirflow.core.dtypes import DTYPE
from stirflow.core.errors import BufferAliasError, FatalInitError
from stirflow.kernels import fluid, reference
from stirflow.kernels.protocol import (
    PASS_SPECS,
    Backend,
    ParamValue,
    resolve_params,
)

logger = logging.getLogger(__name__)


class BaseDispatcher:
    """Shared dispatch logic over a table of pass callables.

    Pass callables take ``(*inputs, output, **params)``.

    Attributes:
        dispatch_count: Number of passes executed
    """

    backend: Backend

    def __init__(self, passes: Mapping[str, Callable[..., None]]):
        self._passes = dict(passes)
        self.dispatch_count = 0

    def has_pass(self, name: str) -> bool:
        return name in self._passes and name in PASS_SPECS

    def require(self, names: Iterable[str]) -> None:
        """Check that every named pass is available.

        Raises:
            FatalInitError: Listing the missing passes
        """
        missing = [name for name in names if not self.has_pass(name)]
        if missing:
            raise FatalInitError(
                f"{self.backend.name} backend is missing passes: {missing}. "
                f"Available: {sorted(self._passes)}"
            )

    def dispatch(
        self,
        name: str,
        inputs: Sequence[Any],
        output: Any,
        params: Mapping[str, ParamValue] | None = None,
    ) -> None:
        """Run one pass over every cell of output.

        Raises:
            FatalInitError: If the pass is unavailable
            ValueError: If the input count is wrong or a required parameter
                is missing
            BufferAliasError: If output is also an input
        """
        if not self.has_pass(name):
            raise FatalInitError(f"Pass '{name}' is not available on {self.backend.name}")
        spec = PASS_SPECS[name]
        if len(inputs) != spec.n_inputs:
            raise ValueError(
                f"Pass '{name}' takes {spec.n_inputs} inputs, got {len(inputs)}"
            )
        if any(output is field for field in inputs):
            raise BufferAliasError(f"Pass '{name}' output is bound as an input")

        resolved = resolve_params(spec, params or {})
        self._passes[name](*inputs, output, **resolved)
        self.dispatch_count += 1


class TaichiDispatcher(BaseDispatcher):
    """Runs passes as Taichi kernels on Taichi fields.

    Requires ti.init() to have been called (see stirflow.config.init_taichi).
    Each allocate() call builds its own SNode tree so a whole field set can
    be destroyed on resize.
    """

    backend = Backend.TAICHI

    def __init__(self, passes: Mapping[str, Callable[..., None]] | None = None):
        super().__init__(fluid.PASSES if passes is None else passes)

    def allocate(
        self, layout: Sequence[tuple[str, int]], shape: tuple[int, int]
    ) -> tuple[dict[str, Any], Any]:
        fb = ti.FieldsBuilder()
        fields: dict[str, Any] = {}
        for name, components in layout:
            if components == 1:
                f = ti.field(dtype=DTYPE)
            else:
                f = ti.Vector.field(components, dtype=DTYPE)
            fb.dense(ti.ij, shape).place(f)
            fields[name] = f
        tree = fb.finalize()

        for f in fields.values():
            f.fill(0.0)
        logger.debug("Taichi tree with %d fields at %s", len(fields), shape)
        return fields, tree

    def release(self, handle: Any) -> None:
        handle.destroy()

    def to_numpy(self, field: Any) -> np.ndarray:
        return field.to_numpy()

    def from_numpy(self, field: Any, array: np.ndarray) -> None:
        field.from_numpy(np.ascontiguousarray(array, dtype=np.float32))

    def fill(self, field: Any, value: float) -> None:
        field.fill(value)


class NumpyDispatcher(BaseDispatcher):
    """Runs passes as vectorised NumPy on float32 arrays."""

    backend = Backend.NUMPY

    def __init__(self, passes: Mapping[str, Callable[..., None]] | None = None):
        super().__init__(reference.PASSES if passes is None else passes)

    def allocate(
        self, layout: Sequence[tuple[str, int]], shape: tuple[int, int]
    ) -> tuple[dict[str, Any], Any]:
        fields = {}
        for name, components in layout:
            extra = () if components == 1 else (components,)
            fields[name] = np.zeros(tuple(shape) + extra, dtype=np.float32)
        return fields, list(fields)

    def release(self, handle: Any) -> None:
        # Arrays are garbage collected with their container
        pass

    def to_numpy(self, field: Any) -> np.ndarray:
        return field.copy()

    def from_numpy(self, field: Any, array: np.ndarray) -> None:
        field[...] = array

    def fill(self, field: Any, value: float) -> None:
        field.fill(value)
