"""Base field container and specification classes.

This module provides the foundation for declarative field management:
- FieldSpec: Describes a field's name, component count, and role
- FieldRole: Enum categorizing field usage patterns
- FieldPair: Two storage slots with a toggled read/write role
- FieldContainer: Manages field lifecycle, allocation, and release

Storage itself comes from a resource provider (a kernel backend), so the
same container works for Taichi fields and NumPy arrays.

Usage:
    container = FieldContainer(geometry, dispatcher)
    container.register(FieldSpec("velocity", 2, FieldRole.STATE, double_buffer=True))
    container.allocate()
    pair = container.pair("velocity")
    dispatcher.dispatch("advect", [pair.read], pair.write, params)
    pair.swap()
    container.release()
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Protocol, Sequence

from stirflow.core.errors import BufferAliasError
from stirflow.core.geometry import GridGeometry

logger = logging.getLogger(__name__)


class FieldRole(Enum):
    """Categorizes field usage patterns for documentation and validation.

    STATE: Carried from frame to frame (velocity, pressure) - double-buffered
    SCRATCH: Rebuilt every frame (viscous estimate, divergence)
    """

    STATE = auto()
    SCRATCH = auto()


@dataclass(frozen=True)
class FieldSpec:
    """Immutable specification for a grid field.

    Attributes:
        name: Field identifier (snake_case)
        components: 1 for scalar fields, 2 for vector-2 fields
        role: Field usage category
        double_buffer: If True, allocate two slots (``name_0``/``name_1``)
        description: Human-readable description with units
    """

    name: str
    components: int
    role: FieldRole
    double_buffer: bool = False
    description: str = ""

    def __post_init__(self):
        """Validate field specification."""
        if not self.name:
            raise ValueError("Field name cannot be empty")
        if not self.name.islower() or not self.name.replace("_", "").isalnum():
            raise ValueError(f"Field name must be snake_case, got: {self.name}")
        if self.components not in (1, 2):
            raise ValueError(
                f"Field '{self.name}' must have 1 or 2 components, got {self.components}"
            )

    def slot_names(self) -> tuple[str, ...]:
        """Storage names backing this field."""
        if self.double_buffer:
            return (f"{self.name}_0", f"{self.name}_1")
        return (self.name,)


class ResourceProvider(Protocol):
    """Allocates and frees grid storage (implemented by kernel backends)."""

    def allocate(
        self, layout: Sequence[tuple[str, int]], shape: tuple[int, int]
    ) -> tuple[dict[str, Any], Any]:
        """Allocate zero-filled storage; return (fields by name, release handle)."""
        ...

    def release(self, handle: Any) -> None:
        """Free storage previously returned by allocate()."""
        ...


class FieldPair:
    """Double-buffered field: two slots plus a toggled read/write role.

    ``read`` is the current field; ``write`` is where the next pass puts
    its result. The two roles never refer to the same storage.

    Attributes:
        name: Field name
        swap_count: Number of swaps since allocation
    """

    def __init__(self, name: str, first: Any, second: Any):
        if first is second:
            raise BufferAliasError(f"Field pair '{name}' needs two distinct buffers")
        self.name = name
        self._slots = (first, second)
        self._read = 0
        self.swap_count = 0

    @property
    def read(self) -> Any:
        """Buffer holding the current value."""
        return self._slots[self._read]

    @property
    def write(self) -> Any:
        """Buffer the next pass writes into."""
        return self._slots[1 - self._read]

    @property
    def read_index(self) -> int:
        """Slot index (0 or 1) currently playing the read role."""
        return self._read

    @property
    def slots(self) -> tuple[Any, Any]:
        return self._slots

    def swap(self) -> None:
        """Flip read/write roles. O(1), no data is copied."""
        self._read = 1 - self._read
        self.swap_count += 1


class FieldContainer:
    """Manages grid field lifecycle with declarative specifications.

    Fields are registered via FieldSpec, then allocated together from a
    resource provider. Double-buffered fields are exposed as FieldPair;
    single fields are returned directly.

    Attributes:
        geometry: Grid dimensions
        allocated: Whether fields have been allocated
    """

    def __init__(self, geometry: GridGeometry, provider: ResourceProvider):
        """Initialize container with grid geometry.

        Args:
            geometry: Grid dimensions
            provider: Backend that owns the storage
        """
        self._geometry = geometry
        self._provider = provider
        self._specs: dict[str, FieldSpec] = {}
        self._fields: dict[str, Any] = {}
        self._pairs: dict[str, FieldPair] = {}
        self._handle: Any = None
        self._allocated = False

    @property
    def geometry(self) -> GridGeometry:
        """Get the grid geometry."""
        return self._geometry

    @property
    def allocated(self) -> bool:
        """Check if fields have been allocated."""
        return self._allocated

    @property
    def field_names(self) -> list[str]:
        """Get list of registered field names."""
        return list(self._specs.keys())

    def register(self, spec: FieldSpec) -> None:
        """Register a field specification.

        Raises:
            ValueError: If name already registered
            RuntimeError: If fields already allocated
        """
        if self._allocated:
            raise RuntimeError("Cannot register fields after allocation")
        if spec.name in self._specs:
            raise ValueError(f"Field '{spec.name}' already registered")
        self._specs[spec.name] = spec

    def register_many(self, specs: list[FieldSpec]) -> None:
        """Register multiple field specifications."""
        for spec in specs:
            self.register(spec)

    def allocate(self) -> None:
        """Allocate all registered fields, zero-filled.

        Raises:
            RuntimeError: If already allocated or no fields registered
        """
        if self._allocated:
            raise RuntimeError("Fields already allocated")
        if not self._specs:
            raise RuntimeError("No fields registered")

        layout = [
            (slot, spec.components)
            for spec in self._specs.values()
            for slot in spec.slot_names()
        ]
        storage, self._handle = self._provider.allocate(layout, self._geometry.shape)

        for name, spec in self._specs.items():
            if spec.double_buffer:
                first, second = (storage[slot] for slot in spec.slot_names())
                self._pairs[name] = FieldPair(name, first, second)
            else:
                self._fields[name] = storage[name]

        self._allocated = True
        logger.debug(
            "Allocated %d fields at %dx%d",
            len(layout),
            self._geometry.width,
            self._geometry.height,
        )

    def release(self) -> None:
        """Free all storage. Registered specs are kept, so allocate() may be called again."""
        if not self._allocated:
            return
        self._provider.release(self._handle)
        self._handle = None
        self._fields.clear()
        self._pairs.clear()
        self._allocated = False

    def _check_allocated(self) -> None:
        if not self._allocated:
            raise RuntimeError("Fields not yet allocated")

    def get(self, name: str) -> Any:
        """Get a single-buffered field by name.

        Raises:
            KeyError: If field not found
            ValueError: If the field is double-buffered (use pair())
        """
        self._check_allocated()
        if name in self._pairs:
            raise ValueError(f"Field '{name}' is double-buffered, use pair()")
        if name not in self._fields:
            raise KeyError(f"Field '{name}' not found")
        return self._fields[name]

    def __getitem__(self, name: str) -> Any:
        """Get a single-buffered field by name using bracket notation."""
        return self.get(name)

    def pair(self, name: str) -> FieldPair:
        """Get the FieldPair of a double-buffered field.

        Raises:
            KeyError: If field not registered
            ValueError: If field is not double-buffered
        """
        self._check_allocated()
        if name not in self._specs:
            raise KeyError(f"Field '{name}' not registered")
        if not self._specs[name].double_buffer:
            raise ValueError(f"Field '{name}' is not double-buffered")
        return self._pairs[name]

    def swap(self, name: str) -> None:
        """Swap read/write roles of a double-buffered field."""
        self.pair(name).swap()

    def fields_by_role(self, role: FieldRole) -> list[str]:
        """Get field names filtered by role."""
        return [name for name, spec in self._specs.items() if spec.role == role]

    @property
    def memory_bytes(self) -> int:
        """Estimate total memory usage in bytes (f32 storage)."""
        if not self._allocated:
            return 0
        total = 0
        for spec in self._specs.values():
            total += self._geometry.n_cells * spec.components * 4 * len(spec.slot_names())
        return total

    def __contains__(self, name: str) -> bool:
        """Check if a field is registered."""
        return name in self._specs

    def __len__(self) -> int:
        """Number of registered fields (pairs count once)."""
        return len(self._specs)
