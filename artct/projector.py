"""Reference forward projector and ART update rule for a single ray.

These operate on one slice grid of shape ``(ngridx, ngridy)`` and on a ray
trace produced by :func:`artct.geometry.trace`.
"""

from .constants import _EPSILON


def project(grid, ray_trace):
    """Predicted projection value of one ray.

    Parameters
    ----------
    grid : numpy.ndarray
        Slice grid of shape ``(ngridx, ngridy)``.
    ray_trace : iterable of (cell, length)
        Crossed cells and path lengths, e.g. from :func:`artct.geometry.trace`.

    Returns
    -------
    float
        ``sum(length * grid[cell])``; 0.0 for an empty trace.
    """
    predicted = 0.0
    for cell, length in ray_trace:
        predicted += length * float(grid[cell])
    return predicted


def update(grid, ray_trace, measured_value, predicted_value, eps=_EPSILON):
    """Apply the ART correction of one ray to ``grid`` in place.

    The residual ``measured_value - predicted_value`` is spread over the
    crossed cells proportionally to their path lengths and normalised by the
    sum of squared path lengths. Rays whose normalization does not exceed
    ``eps`` (empty traces, grazing rays) leave the grid untouched.

    Parameters
    ----------
    grid : numpy.ndarray
        Slice grid of shape ``(ngridx, ngridy)``, modified in place.
    ray_trace : iterable of (cell, length)
        Crossed cells and path lengths. Consumed once.
    measured_value : float
        Measured projection value of the ray.
    predicted_value : float
        Value predicted by :func:`project` on the current grid.
    eps : float, optional
        Normalization threshold (default: ``_EPSILON``).

    Returns
    -------
    bool
        True if the grid was updated, False if the ray was skipped.
    """
    segments = list(ray_trace)
    norm = sum(length * length for _, length in segments)
    if norm <= eps:
        return False
    upd = (measured_value - predicted_value) / norm
    for cell, length in segments:
        grid[cell] += length * upd
    return True
