"""
Taichi kernels for the stable-fluids passes.

Every kernel maps over all cells of its output field and only reads its
input fields, so cells never depend on siblings written in the same pass.
Cell (i, j) has its centre at (i + 0.5, j + 0.5) in cell units.
"""

import taichi as ti

from stirflow.core.dtypes import DTYPE, EPSILON


@ti.func
def _clamped(f: ti.template(), i, j):
    """Sample f at (i, j), clamping the index to the nearest edge cell."""
    ii = ti.max(0, ti.min(f.shape[0] - 1, i))
    jj = ti.max(0, ti.min(f.shape[1] - 1, j))
    return f[ii, jj]


@ti.func
def _neighbour_or(f: ti.template(), i, j, fallback):
    """Sample f at (i, j), or return fallback when outside the grid."""
    value = fallback
    if 0 <= i < f.shape[0] and 0 <= j < f.shape[1]:
        value = f[i, j]
    return value


@ti.func
def _lerp(a, b, frac):
    return a + frac * (b - a)


@ti.func
def _clamp_position(p, nx, ny):
    """Keep a cell-space position between the outermost cell centres."""
    return ti.Vector(
        [ti.min(ti.max(p.x, 0.5), nx - 0.5), ti.min(ti.max(p.y, 0.5), ny - 0.5)]
    )


@ti.func
def _bilerp(f: ti.template(), p):
    """Bilinear sample at a cell-space position."""
    s = p.x - 0.5
    t = p.y - 0.5
    iu = ti.cast(ti.floor(s), ti.i32)
    iv = ti.cast(ti.floor(t), ti.i32)
    fu = s - iu
    fv = t - iv
    a = _clamped(f, iu, iv)
    b = _clamped(f, iu + 1, iv)
    c = _clamped(f, iu, iv + 1)
    d = _clamped(f, iu + 1, iv + 1)
    return _lerp(_lerp(a, b, fu), _lerp(c, d, fu), fv)


@ti.func
def _corner_range(f: ti.template(), p):
    """Component-wise min and max of the four texels around p."""
    iu = ti.cast(ti.floor(p.x - 0.5), ti.i32)
    iv = ti.cast(ti.floor(p.y - 0.5), ti.i32)
    a = _clamped(f, iu, iv)
    b = _clamped(f, iu + 1, iv)
    c = _clamped(f, iu, iv + 1)
    d = _clamped(f, iu + 1, iv + 1)
    return ti.min(ti.min(a, b), ti.min(c, d)), ti.max(ti.max(a, b), ti.max(c, d))


@ti.kernel
def advect(
    velocity: ti.template(),
    out: ti.template(),
    dt: DTYPE,
    scale_x: DTYPE,
    scale_y: DTYPE,
    bfecc: ti.i32,
    bfecc_clamp: DTYPE,
    bounded: ti.i32,
):
    """
    Semi-Lagrangian self-advection of velocity.

    Back-trace by dt * velocity (velocity is in longest-side units, so the
    displacement in cells is velocity * dt * max(nx, ny)) and sample
    bilinearly. With BFECC the back-traced point is traced forward again,
    half the round-trip error is removed (length clamped to bfecc_clamp
    cells), and the re-traced sample is limited to the texel range of the
    plain back-trace.
    """
    nx = out.shape[0]
    ny = out.shape[1]
    step = dt * ti.max(1.0 / scale_x, 1.0 / scale_y)

    for i, j in out:
        p = ti.Vector([i + 0.5, j + 0.5])
        back = _clamp_position(p - step * velocity[i, j], nx, ny)
        v = _bilerp(velocity, back)

        if bfecc != 0:
            forward = back + step * v
            correction = 0.5 * (forward - p)
            length = correction.norm()
            if length > bfecc_clamp:
                correction *= bfecc_clamp / ti.max(length, EPSILON)
            corrected = _clamp_position(p - correction, nx, ny)
            back2 = _clamp_position(
                corrected - step * _bilerp(velocity, corrected), nx, ny
            )
            lo, hi = _corner_range(velocity, back)
            v = ti.min(ti.max(_bilerp(velocity, back2), lo), hi)

        # No-slip walls
        if bounded != 0:
            if i == 0 or j == 0 or i == nx - 1 or j == ny - 1:
                v = ti.Vector([0.0, 0.0])

        out[i, j] = v


@ti.kernel
def external_force(
    velocity: ti.template(),
    out: ti.template(),
    cx: DTYPE,
    cy: DTYPE,
    fx: DTYPE,
    fy: DTYPE,
    radius: DTYPE,
    scale_x: DTYPE,
    scale_y: DTYPE,
):
    """
    Add one point force with falloff (1 - min(r / radius, 1))^2.

    Center is in uv, radius in cells.
    """
    center = ti.Vector([cx / scale_x, cy / scale_y])
    force = ti.Vector([fx, fy])
    r = ti.max(radius, EPSILON)

    for i, j in out:
        d = (ti.Vector([i + 0.5, j + 0.5]) - center).norm() / r
        falloff = 1.0 - ti.min(d, 1.0)
        out[i, j] = velocity[i, j] + force * falloff * falloff


@ti.kernel
def viscous_jacobi(
    estimate: ti.template(),
    source: ti.template(),
    out: ti.template(),
    viscosity: DTYPE,
    dt: DTYPE,
):
    """
    One Jacobi sweep of (I - viscosity * dt * laplacian) u = source.

    u_new = (sum of 4 neighbours + gamma * source) / (4 + gamma),
    gamma = 1 / (viscosity * dt). Neighbours clamp at the edges.
    """
    gamma = 1.0 / ti.max(viscosity * dt, EPSILON)
    beta = 1.0 / (4.0 + gamma)

    for i, j in out:
        neighbours = (
            _clamped(estimate, i - 1, j)
            + _clamped(estimate, i + 1, j)
            + _clamped(estimate, i, j - 1)
            + _clamped(estimate, i, j + 1)
        )
        out[i, j] = (neighbours + gamma * source[i, j]) * beta


@ti.kernel
def divergence(velocity: ti.template(), out: ti.template(), dt: DTYPE, bounded: ti.i32):
    """
    Central-difference divergence, divided by dt.

    Bounded walls reflect the normal velocity component; free edges repeat
    the edge cell.
    """
    inv_dt = 1.0 / ti.max(dt, EPSILON)

    for i, j in out:
        vc = velocity[i, j]
        wall = vc
        if bounded != 0:
            wall = -vc

        left = _neighbour_or(velocity, i - 1, j, wall).x
        right = _neighbour_or(velocity, i + 1, j, wall).x
        bottom = _neighbour_or(velocity, i, j - 1, wall).y
        top = _neighbour_or(velocity, i, j + 1, wall).y
        out[i, j] = 0.5 * (right - left + top - bottom) * inv_dt


@ti.kernel
def poisson_jacobi(
    pressure: ti.template(),
    div: ti.template(),
    out: ti.template(),
    bounded: ti.i32,
):
    """
    One Jacobi sweep of laplacian(p) = div.

    Outside neighbours equal the centre (bounded: zero normal gradient) or
    zero (free: open boundary).
    """
    for i, j in out:
        pc = pressure[i, j]
        wall = 0.0
        if bounded != 0:
            wall = pc

        total = (
            _neighbour_or(pressure, i - 1, j, wall)
            + _neighbour_or(pressure, i + 1, j, wall)
            + _neighbour_or(pressure, i, j - 1, wall)
            + _neighbour_or(pressure, i, j + 1, wall)
        )
        out[i, j] = (total - div[i, j]) * 0.25


@ti.kernel
def subtract_gradient(
    velocity: ti.template(),
    pressure: ti.template(),
    out: ti.template(),
    dt: DTYPE,
    bounded: ti.i32,
):
    """Projection: v - 0.5 * (pr - pl, pt - pb) * dt."""
    for i, j in out:
        pc = pressure[i, j]
        wall = 0.0
        if bounded != 0:
            wall = pc

        left = _neighbour_or(pressure, i - 1, j, wall)
        right = _neighbour_or(pressure, i + 1, j, wall)
        bottom = _neighbour_or(pressure, i, j - 1, wall)
        top = _neighbour_or(pressure, i, j + 1, wall)
        gradient = 0.5 * ti.Vector([right - left, top - bottom])
        out[i, j] = velocity[i, j] - gradient * dt


@ti.kernel
def copy_field(src: ti.template(), dst: ti.template()):
    """Copy src to dst."""
    for I in ti.grouped(src):
        dst[I] = src[I]


# Pass adapters: unpack the parameter bag into kernel scalars


def run_advect(velocity, out, dt, cell_scale, bfecc, bfecc_clamp, bounded):
    advect(
        velocity, out, dt, cell_scale[0], cell_scale[1],
        int(bfecc), bfecc_clamp, int(bounded),
    )


def run_external_force(velocity, out, center, force, radius, cell_scale):
    external_force(
        velocity, out, center[0], center[1], force[0], force[1],
        radius, cell_scale[0], cell_scale[1],
    )


def run_viscous(estimate, source, out, viscosity, dt):
    viscous_jacobi(estimate, source, out, viscosity, dt)


def run_divergence(velocity, out, dt, bounded):
    divergence(velocity, out, dt, int(bounded))


def run_poisson(pressure, div, out, bounded):
    poisson_jacobi(pressure, div, out, int(bounded))


def run_pressure(velocity, pressure, out, dt, bounded):
    subtract_gradient(velocity, pressure, out, dt, int(bounded))


def run_copy(src, out):
    copy_field(src, out)


PASSES = {
    "advect": run_advect,
    "external_force": run_external_force,
    "viscous": run_viscous,
    "divergence": run_divergence,
    "poisson": run_poisson,
    "pressure": run_pressure,
    "copy": run_copy,
}
