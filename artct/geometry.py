"""Ray model for 2D parallel-beam ART.

Provides the reference ray tracer used by the pure-Python backend and by the
tests. The clipping and crossing arithmetic is shared with the compiled
kernels (see :mod:`artct.kernels.ray`), so every backend sees the same rays.
"""

import math
from typing import Iterator, NamedTuple, Tuple

from .constants import _EPSILON
from .errors import ConfigurationError
from .kernels.ray import _axis_component, _cell_index, _clip_ray, _first_crossing


class RaySegment(NamedTuple):
    """One grid cell crossed by a ray and the chord length inside it."""

    cell: Tuple[int, int]
    length: float


def check_grid_shape(grid_shape) -> Tuple[int, int]:
    """Validate ``(ngridx, ngridy)`` and return it as a tuple of ints.

    Raises
    ------
    ConfigurationError
        If the shape does not have two entries or either entry is not positive.
    """
    try:
        nx, ny = (int(n) for n in grid_shape)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"grid_shape must be a pair of integers, got {grid_shape!r}"
        ) from None
    if nx <= 0 or ny <= 0:
        raise ConfigurationError(f"grid dimensions must be positive, got ({nx}, {ny})")
    return nx, ny


def ray_parameters(angle, detector_offset, center):
    """Return ``(pnt_x, pnt_y, dir_x, dir_y)`` for one parallel-beam ray.

    Parameters
    ----------
    angle : float
        Projection angle in radians.
    detector_offset : float
        Detector pixel coordinate of the ray.
    center : float
        Detector pixel coordinate of the rotation axis.
    """
    cos_a = _axis_component(math.cos(angle))
    sin_a = _axis_component(math.sin(angle))
    s = detector_offset - center
    return -s * sin_a, s * cos_a, cos_a, sin_a


def chord_length(angle, detector_offset, center, grid_shape) -> float:
    """Length of the ray inside the grid bounding box (0.0 for a miss)."""
    nx, ny = check_grid_shape(grid_shape)
    pnt_x, pnt_y, dir_x, dir_y = ray_parameters(angle, detector_offset, center)
    t_min, t_max = _clip_ray(pnt_x, pnt_y, dir_x, dir_y, nx * 0.5, ny * 0.5)
    return max(t_max - t_min, 0.0)


def trace(angle, detector_offset, center, grid_shape) -> Iterator[RaySegment]:
    """Trace one ray through the reconstruction grid.

    Parameters
    ----------
    angle : float
        Projection angle in radians.
    detector_offset : float
        Detector pixel coordinate of the ray; the ray passes the rotation
        axis at lateral distance ``detector_offset - center``.
    center : float
        Detector pixel coordinate of the rotation axis.
    grid_shape : tuple of int
        ``(ngridx, ngridy)``.

    Returns
    -------
    iterator of RaySegment
        Crossed cells and chord lengths in travel order. The iterator is lazy,
        finite and single-use; rays that miss the grid yield nothing.

    Raises
    ------
    ConfigurationError
        If ``grid_shape`` is not a pair of positive integers. Raised by this
        call, before iteration starts.

    Examples
    --------
    >>> [tuple(seg) for seg in trace(0.0, 0.0, 0.5, (2, 2))]
    [((0, 0), 1.0), ((1, 0), 1.0)]
    """
    nx, ny = check_grid_shape(grid_shape)
    return _walk(*ray_parameters(angle, detector_offset, center), nx, ny)


def _walk(pnt_x, pnt_y, dir_x, dir_y, nx, ny):
    cx, cy = nx * 0.5, ny * 0.5
    t_min, t_max = _clip_ray(pnt_x, pnt_y, dir_x, dir_y, cx, cy)
    if t_min >= t_max:
        return

    tx, dt_x = _first_crossing(pnt_x, dir_x, t_min, cx)
    ty, dt_y = _first_crossing(pnt_y, dir_y, t_min, cy)

    t = t_min
    while t < t_max:
        t_next = min(tx, ty, t_max)
        seg_len = t_next - t
        if seg_len > _EPSILON:
            t_mid = t + seg_len * 0.5
            ix = _cell_index(pnt_x + t_mid * dir_x + cx, nx)
            iy = _cell_index(pnt_y + t_mid * dir_y + cy, ny)
            yield RaySegment((ix, iy), seg_len)

        if tx <= ty:
            tx += dt_x
        else:
            ty += dt_y
        t = t_next
