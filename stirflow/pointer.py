"""
Pointer-force provider.

Turns a stream of cursor positions (NDC) into at most one force source per
frame by differencing consecutive samples. After idle_timeout seconds
without movement the force decays to nothing.
"""

import time
from typing import Callable

from stirflow.forces import ForceSource, source_from_motion
from stirflow.params.schema import ForceParams


class PointerForce:
    """Cursor motion to ForceSource.

    Example:
        pointer = PointerForce(config.forces)
        pointer.move(0.1, -0.2)      # from the window event loop
        source = pointer.sample()    # once per frame
    """

    def __init__(
        self,
        forces: ForceParams | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.forces = forces if forces is not None else ForceParams()
        self._clock = clock
        self._pos: tuple[float, float] | None = None
        self._prev: tuple[float, float] | None = None
        self._last_move = float("-inf")

    @property
    def position(self) -> tuple[float, float] | None:
        return self._pos

    def move(self, x: float, y: float) -> None:
        """Record a cursor position in NDC."""
        if self._pos is None:
            self._prev = (x, y)
        self._pos = (x, y)
        self._last_move = self._clock()

    def leave(self) -> None:
        """Cursor left the window: forget the position."""
        self._pos = None
        self._prev = None

    def sample(self, now: float | None = None) -> ForceSource | None:
        """Force for this frame, or None when idle.

        Consumes the displacement: a second sample without an intervening
        move() has zero force.
        """
        if self._pos is None:
            return None
        if now is None:
            now = self._clock()
        if now - self._last_move > self.forces.idle_timeout:
            self._prev = self._pos
            return None

        prev = self._prev if self._prev is not None else self._pos
        delta = (self._pos[0] - prev[0], self._pos[1] - prev[1])
        self._prev = self._pos
        return source_from_motion(self._pos, delta, self.forces)
