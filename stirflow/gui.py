"""Real-time display of the velocity field using Taichi UI.

Colour encodes direction (hue) and speed (brightness). Cursor motion in the
window is forwarded to the simulation's pointer-force provider, and window
size changes become resize requests.
"""

import math

import numpy as np
import taichi as ti

from stirflow.simulation import Simulation


@ti.data_oriented
class VelocityView:
    """Window showing the simulation's velocity field.

    Display fields are sized to the grid and rebuilt when it changes.
    """

    def __init__(
        self,
        window_size: tuple[int, int] = (512, 512),
        window_title: str = "Stir-Flow",
        gain: float = 4.0,
        headless: bool = False,
    ):
        """Initialize the view.

        Args:
            window_size: Window size [px]
            window_title: Title of the window
            gain: Speed that maps to full brightness is 1 / gain
            headless: If True, do not create a window (for testing)
        """
        self.gain = gain
        self.headless = headless
        self.window_size = window_size
        self._shape: tuple[int, int] | None = None
        self.velocity = None
        self.image = None
        self._last_cursor: tuple[float, float] | None = None

        if not self.headless:
            self.window = ti.ui.Window(window_title, window_size, vsync=True)
            self.canvas = self.window.get_canvas()
        else:
            self.window = None
            self.canvas = None

    @property
    def running(self) -> bool:
        return self.headless or self.window.running

    def _ensure_shape(self, shape: tuple[int, int]) -> None:
        if self._shape == shape:
            return
        self.velocity = ti.Vector.field(2, dtype=ti.f32, shape=shape)
        self.image = ti.Vector.field(3, dtype=ti.f32, shape=shape)
        self._shape = shape

    @ti.kernel
    def colourize(self, velocity: ti.template(), image: ti.template(), gain: ti.f32):
        """Hue from velocity direction, brightness from speed."""
        third = 2.0 * math.pi / 3.0
        for i, j in image:
            v = velocity[i, j]
            magnitude = ti.min(v.norm() * gain, 1.0)
            angle = ti.atan2(v.y, v.x)
            hue = ti.Vector(
                [ti.cos(angle), ti.cos(angle - third), ti.cos(angle + third)]
            )
            image[i, j] = (0.5 + 0.5 * hue) * magnitude

    def update(self, velocity: np.ndarray) -> None:
        """Load a host velocity array (w, h, 2) and recolour."""
        self._ensure_shape(velocity.shape[:2])
        self.velocity.from_numpy(velocity.astype(np.float32))
        self.colourize(self.velocity, self.image, self.gain)

    def image_numpy(self) -> np.ndarray:
        return self.image.to_numpy()

    def poll(self, sim: Simulation) -> None:
        """Forward window input to the simulation."""
        if self.headless:
            return
        if self.window.is_pressed(ti.ui.ESCAPE):
            self.window.running = False
            return

        x, y = self.window.get_cursor_pos()
        cursor = (2.0 * x - 1.0, 2.0 * y - 1.0)
        if cursor != self._last_cursor:
            sim.pointer.move(*cursor)
            self._last_cursor = cursor

        size = tuple(self.window.get_window_shape())
        if size != self.window_size:
            self.window_size = size
            sim.request_resize(*size)

    def render(self) -> None:
        """Draw the current image."""
        if self.headless:
            return
        self.canvas.set_image(self.image)
        self.window.show()
