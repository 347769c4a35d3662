"""
Kernel backends for the fluid solver.

This module provides the pass protocol and a registry for selecting
between the Taichi backend and the NumPy reference backend.

Usage:
    from stirflow.kernels import Backend, get_registry

    dispatcher = get_registry().get(Backend.TAICHI)
    dispatcher.dispatch("advect", [velocity.read], velocity.write, params)

Submodules:
- protocol: Pass table, parameter binding, dispatcher protocol
- fluid: Taichi kernels
- reference: NumPy reference kernels
- dispatch: Dispatcher implementations
"""

from typing import Type

from stirflow.kernels.dispatch import BaseDispatcher, NumpyDispatcher, TaichiDispatcher
from stirflow.kernels.protocol import (
    PASS_SPECS,
    Backend,
    KernelDispatcher,
    PassSpec,
    resolve_params,
)


class KernelRegistry:
    """Registry for dispatcher implementations with backend selection.

    Example:
        registry = KernelRegistry()
        taichi = registry.get(Backend.TAICHI)
        reference = registry.get(Backend.NUMPY)

        # Register a custom implementation
        registry.register(Backend.TAICHI, MyFusedDispatcher)
    """

    def __init__(self):
        self._dispatchers: dict[Backend, Type[BaseDispatcher]] = {
            Backend.TAICHI: TaichiDispatcher,
            Backend.NUMPY: NumpyDispatcher,
        }

    def get(self, backend: Backend = Backend.TAICHI) -> BaseDispatcher:
        """Get a new dispatcher instance.

        Args:
            backend: Implementation backend (default: TAICHI)

        Raises:
            KeyError: If backend not registered
        """
        if backend not in self._dispatchers:
            raise KeyError(
                f"No dispatcher registered for backend {backend}. "
                f"Available: {list(self._dispatchers.keys())}"
            )
        return self._dispatchers[backend]()

    def register(self, backend: Backend, dispatcher_cls: Type[BaseDispatcher]) -> None:
        """Register a dispatcher implementation."""
        self._dispatchers[backend] = dispatcher_cls

    def available_backends(self) -> list[Backend]:
        return list(self._dispatchers.keys())


# Default registry instance for convenience
_default_registry = KernelRegistry()


def get_registry() -> KernelRegistry:
    """Get the default kernel registry."""
    return _default_registry


__all__ = [
    "KernelRegistry",
    "get_registry",
    "Backend",
    "KernelDispatcher",
    "PassSpec",
    "PASS_SPECS",
    "resolve_params",
    "BaseDispatcher",
    "TaichiDispatcher",
    "NumpyDispatcher",
]
