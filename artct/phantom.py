"""Test phantoms and their analytic projections.

Phantoms use the same grid convention as the reconstruction: unit cells,
grid centred on the rotation axis, arrays of shape ``(dy, ngridx, ngridy)``
indexed ``[slice, ix, iy]``.
"""

import numpy as np

from .constants import _DTYPE
from .errors import ConfigurationError
from .utils import _to_numpy


def _cell_centers(ngridx, ngridy):
    if ngridx < 1 or ngridy < 1:
        raise ConfigurationError(f"grid dimensions must be positive, got ({ngridx}, {ngridy})")
    x = np.arange(ngridx) + 0.5 - ngridx * 0.5
    y = np.arange(ngridy) + 0.5 - ngridy * 0.5
    return np.meshgrid(x, y, indexing="ij")


def disc_phantom(ngridx, ngridy=None, radius=None, density=1.0, dy=1):
    """Uniform disc centred on the rotation axis.

    Parameters
    ----------
    ngridx : int
        Grid size along x.
    ngridy : int, optional
        Grid size along y (default: ``ngridx``).
    radius : float, optional
        Disc radius in cells (default: a quarter of the smaller grid size).
    density : float, optional
        Value inside the disc (default: 1.0).
    dy : int, optional
        Number of identical slices (default: 1).

    Returns
    -------
    numpy.ndarray
        Phantom of shape ``(dy, ngridx, ngridy)``. A cell belongs to the disc
        when its center lies inside it.
    """
    ngridy = ngridx if ngridy is None else ngridy
    if radius is None:
        radius = 0.25 * min(ngridx, ngridy)
    xx, yy = _cell_centers(ngridx, ngridy)
    disc = np.where(xx * xx + yy * yy <= radius * radius, density, 0.0).astype(_DTYPE)
    return np.repeat(disc[np.newaxis], dy, axis=0)


def disc_projections(theta, ndet, radius, density=1.0, center=None, dy=1):
    """Analytic, noise-free projections of :func:`disc_phantom`.

    The disc is rotationally symmetric, so every angle sees the same profile:
    ``2 * density * sqrt(radius**2 - s**2)`` at lateral offset ``s`` from the
    axis and zero outside the disc.

    Parameters
    ----------
    theta : array-like
        Projection angles in radians, shape ``(dt,)``.
    ndet : int
        Number of detector pixels.
    radius : float
        Disc radius in cells.
    density : float, optional
        Disc density (default: 1.0).
    center : float, optional
        Detector pixel coordinate of the rotation axis
        (default: ``(ndet - 1) / 2``).
    dy : int, optional
        Number of identical slices (default: 1).

    Returns
    -------
    numpy.ndarray
        Projections of shape ``(dy, dt, ndet)``.
    """
    theta_np = _to_numpy(theta, dtype=np.float64).ravel()
    if center is None:
        center = (ndet - 1) * 0.5
    s = np.arange(ndet) - float(center)
    profile = 2.0 * density * np.sqrt(np.clip(radius * radius - s * s, 0.0, None))
    sino = np.broadcast_to(profile, (dy, theta_np.shape[0], ndet))
    return np.ascontiguousarray(sino, dtype=_DTYPE)


# (x0, y0, a, b, angle in degrees, amplitude), in units of the half grid size
_SHEPP_LOGAN = (
    (0.0, 0.0, 0.69, 0.92, 0.0, 1.0),
    (0.0, -0.0184, 0.6624, 0.8740, 0.0, -0.8),
    (0.22, 0.0, 0.11, 0.31, -18.0, -0.2),
    (-0.22, 0.0, 0.16, 0.41, 18.0, -0.2),
    (0.0, 0.35, 0.21, 0.25, 0.0, 0.1),
    (0.0, 0.1, 0.046, 0.046, 0.0, 0.1),
    (0.0, -0.1, 0.046, 0.046, 0.0, 0.1),
    (-0.08, -0.605, 0.046, 0.023, 0.0, 0.1),
    (0.0, -0.605, 0.023, 0.023, 0.0, 0.1),
    (0.06, -0.605, 0.023, 0.046, 0.0, 0.1),
)


def shepp_logan_2d(ngridx, ngridy=None):
    """Modified Shepp-Logan head phantom of shape ``(ngridx, ngridy)``, clipped to [0, 1]."""
    ngridy = ngridx if ngridy is None else ngridy
    xx, yy = _cell_centers(ngridx, ngridy)
    xnorm = xx / (ngridx * 0.5)
    ynorm = yy / (ngridy * 0.5)
    phantom = np.zeros((ngridx, ngridy), dtype=np.float64)
    for x0, y0, a, b, angdeg, ampl in _SHEPP_LOGAN:
        th = np.deg2rad(angdeg)
        xprime = (xnorm - x0) * np.cos(th) + (ynorm - y0) * np.sin(th)
        yprime = -(xnorm - x0) * np.sin(th) + (ynorm - y0) * np.cos(th)
        phantom[xprime * xprime / (a * a) + yprime * yprime / (b * b) <= 1.0] += ampl
    return np.clip(phantom, 0.0, 1.0).astype(_DTYPE)
