"""
Live configuration channel.

Changes are queued with submit() at any time and applied as one snapshot
by apply_pending(), which the orchestrator calls at the start of a tick.
A frame therefore never sees a half-applied update.
"""

import logging
import warnings
from dataclasses import fields
from typing import Any, Callable

from stirflow.core.errors import ConfigWarning
from stirflow.params.schema import PARAM_GROUPS, SimulationConfig

logger = logging.getLogger(__name__)

Subscriber = Callable[[SimulationConfig, SimulationConfig], None]


class ConfigChannel:
    """Queue of parameter changes applied at tick boundaries.

    Example:
        channel = ConfigChannel(SimulationConfig())
        channel.submit("solver", is_viscous=True, viscosity=5.0)
        config = channel.apply_pending()
    """

    def __init__(self, config: SimulationConfig | None = None):
        self._current = config if config is not None else SimulationConfig()
        self._pending: list[tuple[str, str, Any]] = []
        self._subscribers: list[Subscriber] = []

    @property
    def current(self) -> SimulationConfig:
        """Snapshot in effect for the current frame."""
        return self._current

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def submit(self, group: str, **values: Any) -> None:
        """Queue changes to one parameter group."""
        for key, value in values.items():
            self._pending.append((group, key, value))

    def subscribe(self, callback: Subscriber) -> None:
        """Call callback(old, new) whenever a snapshot changes."""
        self._subscribers.append(callback)

    def apply_pending(self) -> SimulationConfig:
        """Apply queued changes and return the new snapshot.

        Each change is applied on its own: an unknown name or an
        out-of-range value emits ConfigWarning and keeps the previous value.
        """
        if not self._pending:
            return self._current

        pending, self._pending = self._pending, []
        old = self._current
        config = old
        for group, key, value in pending:
            config = self._apply_one(config, group, key, value)

        if config != old:
            self._current = config
            logger.debug("Configuration updated: %s", _diff(old, config))
            for callback in self._subscribers:
                callback(old, config)
        return self._current

    def _apply_one(
        self, config: SimulationConfig, group: str, key: str, value: Any
    ) -> SimulationConfig:
        if group not in PARAM_GROUPS:
            warnings.warn(f"Unknown parameter group '{group}', ignored", ConfigWarning)
            return config
        if key not in {f.name for f in fields(PARAM_GROUPS[group])}:
            warnings.warn(f"Unknown parameter '{group}.{key}', ignored", ConfigWarning)
            return config
        try:
            return config.with_updates(**{group: {key: value}})
        except (ValueError, TypeError) as e:
            warnings.warn(
                f"Rejected {group}.{key}={value!r}, keeping previous value: {e}",
                ConfigWarning,
            )
            return config


def _diff(old: SimulationConfig, new: SimulationConfig) -> dict[str, Any]:
    before = old.to_dict()
    after = new.to_dict()
    return {
        f"{group}.{key}": value
        for group, values in after.items()
        for key, value in values.items()
        if before[group][key] != value
    }
