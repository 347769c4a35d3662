"""Tests for the velocity view (headless) and diagnostics."""

import numpy as np
import pytest

from stirflow.diagnostics import compute_stats, divergence, kinetic_energy, max_speed
from stirflow.gui import VelocityView


class TestVelocityView:
    """Colour mapping without a window."""

    def test_zero_velocity_is_black(self):
        view = VelocityView(headless=True)
        view.update(np.zeros((8, 4, 2), np.float32))
        image = view.image_numpy()
        assert image.shape == (8, 4, 3)
        assert np.all(image == 0.0)

    def test_brightness_saturates(self):
        view = VelocityView(gain=4.0, headless=True)
        v = np.zeros((4, 4, 2), np.float32)
        v[0, 0] = (0.1, 0.0)   # 0.4 of full brightness
        v[1, 1] = (10.0, 0.0)  # saturated
        view.update(v)
        image = view.image_numpy()
        # Angle 0: hue (1, 0.25, 0.25)
        np.testing.assert_allclose(image[1, 1], [1.0, 0.25, 0.25], atol=1e-5)
        np.testing.assert_allclose(image[0, 0], 0.4 * image[1, 1], atol=1e-5)

    def test_direction_changes_hue(self):
        view = VelocityView(headless=True)
        v = np.zeros((2, 1, 2), np.float32)
        v[0, 0] = (1.0, 0.0)
        v[1, 0] = (-1.0, 0.0)
        view.update(v)
        image = view.image_numpy()
        assert not np.allclose(image[0, 0], image[1, 0])

    def test_resizes_with_grid(self):
        view = VelocityView(headless=True)
        view.update(np.zeros((8, 8, 2), np.float32))
        view.update(np.zeros((16, 4, 2), np.float32))
        assert view.image_numpy().shape == (16, 4, 3)

    def test_headless_render_is_noop(self):
        view = VelocityView(headless=True)
        assert view.running
        view.render()


class TestDiagnostics:
    def test_divergence_of_linear_field(self):
        v = np.zeros((8, 8, 2), np.float32)
        v[..., 1] = np.arange(8, dtype=np.float32)[None, :]
        div = divergence(v)
        np.testing.assert_allclose(div[:, 1:-1], 1.0)

    def test_energy_and_speed(self):
        v = np.zeros((2, 2, 2), np.float32)
        v[0, 0] = (3.0, 4.0)
        assert max_speed(v) == pytest.approx(5.0)
        assert kinetic_energy(v) == pytest.approx(0.5 * 25.0 / 4)

    def test_compute_stats(self):
        stats = compute_stats(np.zeros((4, 4, 2), np.float32), frame=3, time=0.5, sources=2)
        assert stats.frame == 3
        assert stats.sources == 2
        assert stats.mean_abs_divergence == 0.0
