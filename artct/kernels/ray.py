"""Target-agnostic ray traversal and ART sweep routines.

Every function here is a plain Python function registered with
``numba.extending.register_jitable``. They run unchanged from the
interpreter (the reference ray model reuses the clipping helpers), from
``numba.njit`` host kernels and from ``numba.cuda`` kernels, so all backends
share one copy of the geometry.

Coordinate system: unit-sized cells, the grid spans ``[-nx/2, nx/2]`` along
x and ``[-ny/2, ny/2]`` along y, rotation axis at the origin. The ray for
angle ``theta`` at lateral offset ``s`` travels along
``(cos theta, sin theta)`` through ``s * (-sin theta, cos theta)``.
"""

import math

from numba.extending import register_jitable

from ..constants import _EPSILON, _INF


# ============================================================================
# Ray Geometry Helpers
# ============================================================================

@register_jitable
def _clip_ray(pnt_x, pnt_y, dir_x, dir_y, cx, cy):
    """Clip a ray against the grid bounding box (slab method).

    Parameters
    ----------
    pnt_x, pnt_y : float
        A point on the ray.
    dir_x, dir_y : float
        Unit ray direction.
    cx, cy : float
        Half extents of the grid, in cells.

    Returns
    -------
    t_min, t_max : float
        Ray parameter interval inside the box. ``t_min >= t_max`` means the
        ray misses the grid.
    """
    t_min, t_max = -_INF, _INF

    if abs(dir_x) > _EPSILON:
        tx1, tx2 = (-cx - pnt_x) / dir_x, (cx - pnt_x) / dir_x
        t_min, t_max = max(t_min, min(tx1, tx2)), min(t_max, max(tx1, tx2))
    elif pnt_x < -cx or pnt_x > cx:
        return 0.0, 0.0

    if abs(dir_y) > _EPSILON:
        ty1, ty2 = (-cy - pnt_y) / dir_y, (cy - pnt_y) / dir_y
        t_min, t_max = max(t_min, min(ty1, ty2)), min(t_max, max(ty1, ty2))
    elif pnt_y < -cy or pnt_y > cy:
        return 0.0, 0.0

    return t_min, t_max


@register_jitable
def _axis_component(value):
    """Direction component with rounding residue (e.g. ``cos(pi / 2)``) snapped to 0."""
    if abs(value) <= _EPSILON:
        return 0.0
    return value


@register_jitable
def _first_crossing(pnt, direction, t_start, half):
    """Return the first grid-line crossing after ``t_start`` and the line spacing.

    Both values are in ray-parameter units along one axis; an axis the ray
    runs parallel to never crosses a line and reports infinity.
    """
    if abs(direction) <= _EPSILON:
        return _INF, _INF
    pos = pnt + t_start * direction + half
    if direction > 0:
        line = math.floor(pos) + 1.0
    else:
        line = math.ceil(pos) - 1.0
    return (line - half - pnt) / direction, abs(1.0 / direction)


@register_jitable
def _cell_index(pos, n):
    """Map a coordinate measured from the grid edge to a clamped cell index."""
    i = int(math.floor(pos))
    if i < 0:
        return 0
    if i > n - 1:
        return n - 1
    return i


# ============================================================================
# Ray Walk (forward sum and correction in one traversal)
# ============================================================================

@register_jitable
def _ray_walk(grid, pnt_x, pnt_y, dir_x, dir_y, t_min, t_max, scale):
    """Walk one ray through ``grid`` using fast voxel traversal.

    Each crossed cell is sampled at the midpoint of its chord so that rays
    entering exactly on a boundary or running along a grid line still land
    in a valid cell.

    Parameters
    ----------
    grid : 2D array
        Slice grid of shape ``(nx, ny)``.
    pnt_x, pnt_y, dir_x, dir_y : float
        Ray point and unit direction.
    t_min, t_max : float
        Clipped ray interval from ``_clip_ray``.
    scale : float
        When non-zero, ``scale * length`` is added to every crossed cell.

    Returns
    -------
    predicted : float
        Sum of ``length * grid[cell]`` over crossed cells (values read before
        each cell is corrected).
    norm : float
        Sum of squared path lengths.
    """
    nx, ny = grid.shape
    cx, cy = nx * 0.5, ny * 0.5

    tx, dt_x = _first_crossing(pnt_x, dir_x, t_min, cx)
    ty, dt_y = _first_crossing(pnt_y, dir_y, t_min, cy)

    predicted = 0.0
    norm = 0.0
    t = t_min
    while t < t_max:
        t_next = min(tx, ty, t_max)
        seg_len = t_next - t
        if seg_len > _EPSILON:
            t_mid = t + seg_len * 0.5
            ix = _cell_index(pnt_x + t_mid * dir_x + cx, nx)
            iy = _cell_index(pnt_y + t_mid * dir_y + cy, ny)
            predicted += grid[ix, iy] * seg_len
            norm += seg_len * seg_len
            if scale != 0.0:
                grid[ix, iy] += scale * seg_len

        if tx <= ty:
            tx += dt_x
        else:
            ty += dt_y
        t = t_next

    return predicted, norm


# ============================================================================
# Per-slice Drivers
# ============================================================================

@register_jitable
def _art_sweep(data, cos_t, sin_t, center, grid, num_iter, eps):
    """Run ``num_iter`` ART sweeps of one slice in place.

    Rays are visited in (angle, detector pixel) order and each update is
    applied before the next ray is traced.

    Returns
    -------
    int
        Number of ray visits that left the grid untouched because the ray
        missed the grid or its normalization did not exceed ``eps``.
    """
    n_ang, n_det = data.shape
    nx, ny = grid.shape
    cx, cy = nx * 0.5, ny * 0.5

    skipped = 0
    for _ in range(num_iter):
        for p in range(n_ang):
            cos_a = cos_t[p]
            sin_a = sin_t[p]
            for d in range(n_det):
                s = d - center
                pnt_x, pnt_y = -s * sin_a, s * cos_a
                t_min, t_max = _clip_ray(pnt_x, pnt_y, cos_a, sin_a, cx, cy)
                if t_min >= t_max:
                    skipped += 1
                    continue
                predicted, norm = _ray_walk(
                    grid, pnt_x, pnt_y, cos_a, sin_a, t_min, t_max, 0.0
                )
                if norm > eps:
                    upd = (data[p, d] - predicted) / norm
                    _ray_walk(grid, pnt_x, pnt_y, cos_a, sin_a, t_min, t_max, upd)
                else:
                    skipped += 1
    return skipped


@register_jitable
def _project_slice(grid, cos_t, sin_t, center, sino):
    """Forward project one slice grid into ``sino`` of shape ``(n_ang, n_det)``."""
    n_ang, n_det = sino.shape
    nx, ny = grid.shape
    cx, cy = nx * 0.5, ny * 0.5

    for p in range(n_ang):
        cos_a = cos_t[p]
        sin_a = sin_t[p]
        for d in range(n_det):
            s = d - center
            pnt_x, pnt_y = -s * sin_a, s * cos_a
            t_min, t_max = _clip_ray(pnt_x, pnt_y, cos_a, sin_a, cx, cy)
            if t_min >= t_max:
                sino[p, d] = 0.0
                continue
            predicted, _ = _ray_walk(
                grid, pnt_x, pnt_y, cos_a, sin_a, t_min, t_max, 0.0
            )
            sino[p, d] = predicted
