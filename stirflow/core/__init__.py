"""Core infrastructure: types, geometry, and errors."""

from stirflow.core.dtypes import DTYPE, EPSILON
from stirflow.core.errors import BufferAliasError, ConfigWarning, FatalInitError
from stirflow.core.geometry import GridGeometry, ndc_to_uv, uv_to_ndc

__all__ = [
    "DTYPE",
    "EPSILON",
    "GridGeometry",
    "ndc_to_uv",
    "uv_to_ndc",
    "BufferAliasError",
    "ConfigWarning",
    "FatalInitError",
]
