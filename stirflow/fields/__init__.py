"""Field management for Stir-Flow.

Main classes:
- FieldSpec: Declarative field specification
- FieldRole: Field categorization (STATE, SCRATCH)
- FieldPair: Double buffer with toggled read/write roles
- FieldContainer: Manages field lifecycle on a resource provider
- GridBufferSet: All fluid fields with allocate/release/swap
"""

from stirflow.fields.base import (
    FieldContainer,
    FieldPair,
    FieldRole,
    FieldSpec,
    ResourceProvider,
)
from stirflow.fields.fluid import PAIR_NAMES, GridBufferSet, create_fluid_specs

__all__ = [
    "FieldContainer",
    "FieldPair",
    "FieldRole",
    "FieldSpec",
    "ResourceProvider",
    "GridBufferSet",
    "PAIR_NAMES",
    "create_fluid_specs",
]
