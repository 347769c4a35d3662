"""
Frame scheduler: calls a tick function once per frame period.

Replaces a self-rescheduling draw callback with a plain loop. Ticks never
overlap; stop() ends the loop after the tick in progress.
"""

import time
from typing import Any, Callable


class FrameScheduler:
    """Fixed-rate frame loop with injectable clock and sleep.

    Example:
        scheduler = FrameScheduler(sim.tick, frame_rate=60.0)
        scheduler.run(max_frames=600)
    """

    def __init__(
        self,
        tick: Callable[[float], Any],
        frame_rate: float = 60.0,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        if frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {frame_rate}")
        self._tick = tick
        self.period = 1.0 / frame_rate
        self._clock = clock
        self._sleep = sleep
        self._running = False
        self.frames = 0

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Stop scheduling further ticks."""
        self._running = False

    def run(self, max_frames: int | None = None) -> int:
        """Tick until stop() or max_frames.

        tick receives the elapsed time since run() started. When a tick
        overruns its period the schedule restarts from now instead of
        trying to catch up.

        Returns:
            Number of frames run
        """
        self._running = True
        self.frames = 0
        start = self._clock()
        next_time = start

        while self._running and (max_frames is None or self.frames < max_frames):
            now = self._clock()
            if now < next_time:
                self._sleep(next_time - now)
                now = next_time
            self._tick(now - start)
            self.frames += 1

            next_time += self.period
            if self._clock() - next_time > self.period:
                next_time = self._clock()

        self._running = False
        return self.frames
