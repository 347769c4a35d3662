"""
NumPy reference implementation of the stable-fluids passes.

Same arithmetic as the Taichi kernels in stirflow.kernels.fluid, expressed
as whole-array operations on float32 arrays of shape (w, h) or (w, h, 2).
Used for equivalence testing and for hosts without a Taichi runtime.
"""

import numpy as np

from stirflow.core.dtypes import EPSILON


def _cell_centres(shape: tuple[int, int]) -> np.ndarray:
    i, j = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing="ij")
    return np.stack([i + 0.5, j + 0.5], axis=-1).astype(np.float32)


def _clamp_position(p: np.ndarray, nx: int, ny: int) -> np.ndarray:
    return np.stack(
        [np.clip(p[..., 0], 0.5, nx - 0.5), np.clip(p[..., 1], 0.5, ny - 0.5)],
        axis=-1,
    )


def _corners(f: np.ndarray, p: np.ndarray):
    """Four clamped texels around each position, plus the lerp fractions."""
    nx, ny = f.shape[:2]
    s = p[..., 0] - 0.5
    t = p[..., 1] - 0.5
    iu = np.floor(s).astype(np.int64)
    iv = np.floor(t).astype(np.int64)
    fu = (s - iu)[..., None]
    fv = (t - iv)[..., None]

    i0 = np.clip(iu, 0, nx - 1)
    i1 = np.clip(iu + 1, 0, nx - 1)
    j0 = np.clip(iv, 0, ny - 1)
    j1 = np.clip(iv + 1, 0, ny - 1)
    return f[i0, j0], f[i1, j0], f[i0, j1], f[i1, j1], fu, fv


def _bilerp(f: np.ndarray, p: np.ndarray) -> np.ndarray:
    a, b, c, d, fu, fv = _corners(f, p)
    lower = a + fu * (b - a)
    upper = c + fu * (d - c)
    return lower + fv * (upper - lower)


def _neighbours(f: np.ndarray, mode: str):
    """(left, right, bottom, top) neighbour arrays with np.pad edge policy."""
    pad = [(1, 1), (1, 1)] + [(0, 0)] * (f.ndim - 2)
    padded = np.pad(f, pad, mode=mode)
    return padded[:-2, 1:-1], padded[2:, 1:-1], padded[1:-1, :-2], padded[1:-1, 2:]


def advect(velocity, out, dt, cell_scale, bfecc, bfecc_clamp, bounded):
    """Semi-Lagrangian self-advection with optional BFECC and limiter."""
    nx, ny = out.shape[:2]
    step = dt * max(1.0 / cell_scale[0], 1.0 / cell_scale[1])
    p = _cell_centres((nx, ny))

    back = _clamp_position(p - step * velocity, nx, ny)
    v = _bilerp(velocity, back)

    if bfecc:
        correction = 0.5 * (back + step * v - p)
        length = np.linalg.norm(correction, axis=-1, keepdims=True)
        factor = np.where(
            length > bfecc_clamp, bfecc_clamp / np.maximum(length, EPSILON), 1.0
        )
        corrected = _clamp_position(p - correction * factor, nx, ny)
        back2 = _clamp_position(corrected - step * _bilerp(velocity, corrected), nx, ny)
        a, b, c, d, _, _ = _corners(velocity, back)
        lo = np.minimum(np.minimum(a, b), np.minimum(c, d))
        hi = np.maximum(np.maximum(a, b), np.maximum(c, d))
        v = np.minimum(np.maximum(_bilerp(velocity, back2), lo), hi)

    if bounded:
        v[0, :] = 0.0
        v[-1, :] = 0.0
        v[:, 0] = 0.0
        v[:, -1] = 0.0

    out[...] = v


def external_force(velocity, out, center, force, radius, cell_scale):
    """Add one point force with quadratic falloff."""
    p = _cell_centres(out.shape[:2])
    c = np.array([center[0] / cell_scale[0], center[1] / cell_scale[1]], np.float32)
    d = np.linalg.norm(p - c, axis=-1) / max(radius, EPSILON)
    falloff = (1.0 - np.minimum(d, 1.0)) ** 2
    out[...] = velocity + np.asarray(force, np.float32) * falloff[..., None]


def viscous(estimate, source, out, viscosity, dt):
    """One Jacobi sweep of implicit diffusion."""
    gamma = 1.0 / max(viscosity * dt, EPSILON)
    left, right, bottom, top = _neighbours(estimate, "edge")
    out[...] = (left + right + bottom + top + gamma * source) / (4.0 + gamma)


def divergence(velocity, out, dt, bounded):
    """Central-difference divergence divided by dt."""
    padded = np.pad(velocity, [(1, 1), (1, 1), (0, 0)], mode="edge")
    if bounded:
        # Reflect the normal component at the walls
        padded[0, :, 0] *= -1.0
        padded[-1, :, 0] *= -1.0
        padded[:, 0, 1] *= -1.0
        padded[:, -1, 1] *= -1.0

    left = padded[:-2, 1:-1, 0]
    right = padded[2:, 1:-1, 0]
    bottom = padded[1:-1, :-2, 1]
    top = padded[1:-1, 2:, 1]
    out[...] = 0.5 * (right - left + top - bottom) / max(dt, EPSILON)


def poisson(pressure, div, out, bounded):
    """One Jacobi sweep of the pressure Poisson equation."""
    left, right, bottom, top = _neighbours(pressure, "edge" if bounded else "constant")
    out[...] = (left + right + bottom + top - div) * 0.25


def subtract_gradient(velocity, pressure, out, dt, bounded):
    """Projection: subtract the pressure gradient from velocity."""
    left, right, bottom, top = _neighbours(pressure, "edge" if bounded else "constant")
    gradient = 0.5 * np.stack([right - left, top - bottom], axis=-1)
    out[...] = velocity - gradient * dt


def copy(src, out):
    out[...] = src


PASSES = {
    "advect": advect,
    "external_force": external_force,
    "viscous": viscous,
    "divergence": divergence,
    "poisson": poisson,
    "pressure": subtract_gradient,
    "copy": copy,
}
