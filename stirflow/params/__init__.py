"""
Parameter management for Stir-Flow.

This module provides:
- Validated, immutable parameter containers (schema.py)
- YAML loading utilities (loader.py)
- Tick-boundary configuration updates (channel.py)
"""

from stirflow.params.channel import ConfigChannel
from stirflow.params.loader import (
    load_config,
    load_config_with_overrides,
    merge_configs,
    save_config,
)
from stirflow.params.schema import (
    ForceParams,
    GridParams,
    SimulationConfig,
    SolverParams,
    TrajectoryParams,
    ValidationError,
)

__all__ = [
    # Schema classes
    "GridParams",
    "SolverParams",
    "ForceParams",
    "TrajectoryParams",
    "SimulationConfig",
    "ValidationError",
    # Loader functions
    "load_config",
    "save_config",
    "load_config_with_overrides",
    "merge_configs",
    # Live updates
    "ConfigChannel",
]
