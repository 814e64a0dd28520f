"""ART reconstruction driver and forward projection entry points."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import torch

from .backends import Backend, get_backend
from .constants import _DTYPE, _EPSILON
from .context import ReconContext
from .errors import ArtError, ConfigurationError, ErrorKind
from .utils import DeviceManager, _empty_grid, _like_input, _to_numpy


logger = logging.getLogger(__name__)


# ============================================================================
# Input Validation
# ============================================================================

def _shape_of(array, name, ndim):
    shape = tuple(int(n) for n in getattr(array, "shape", np.shape(array)))
    if len(shape) != ndim:
        raise ConfigurationError(f"{name} must be {ndim}D, got shape {shape}")
    return shape


def _check_count(value, name, minimum):
    if isinstance(value, (bool, np.bool_)):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if count != value or count < minimum:
        raise ConfigurationError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return count


def _check_angles(theta, n_ang):
    theta_np = _to_numpy(theta, dtype=np.float64).ravel()
    if theta_np.shape[0] != n_ang:
        raise ConfigurationError(
            f"theta has {theta_np.shape[0]} angles but data has {n_ang} projections"
        )
    if not np.all(np.isfinite(theta_np)):
        raise ConfigurationError("theta must contain only finite values")
    return theta_np


def _check_center(center, n_slices, n_det):
    if center is None:
        return np.full(n_slices, (n_det - 1) * 0.5, dtype=np.float64)
    center_np = _to_numpy(center, dtype=np.float64).ravel()
    if center_np.shape[0] == 1:
        center_np = np.full(n_slices, center_np[0], dtype=np.float64)
    elif center_np.shape[0] != n_slices:
        raise ConfigurationError(
            f"center must have 1 or {n_slices} entries, got {center_np.shape[0]}"
        )
    if not np.all(np.isfinite(center_np)):
        raise ConfigurationError("center must contain only finite values")
    return center_np


def _check_grid(ngridx, ngridy, n_det):
    ngridx = _check_count(n_det if ngridx is None else ngridx, "ngridx", 1)
    ngridy = _check_count(ngridx if ngridy is None else ngridy, "ngridy", 1)
    return ngridx, ngridy


# ============================================================================
# Reconstruction
# ============================================================================

def art(
    data,
    theta,
    center=None,
    ngridx=None,
    ngridy=None,
    num_iter=1,
    backend=Backend.CPU,
    num_threads=None,
    init_recon=None,
    context=None,
):
    """Reconstruct slices with the Algebraic Reconstruction Technique.

    Every slice is reconstructed independently. One sweep visits every
    projection angle and, for each angle, every detector pixel; the residual
    of each ray is distributed back into the crossed grid cells before the
    next ray is traced. Exactly ``num_iter`` sweeps are run, with no
    convergence check.

    Parameters
    ----------
    data : numpy.ndarray or torch.Tensor
        Measured projections, shape ``(dy, dt, dx)`` (slice, angle, pixel).
        Never modified.
    theta : array-like
        Projection angles in radians, shape ``(dt,)``.
    center : float or array-like, optional
        Detector pixel coordinate of the rotation axis, one per slice or a
        scalar for all slices (default: ``(dx - 1) / 2``).
    ngridx, ngridy : int, optional
        Grid size (default: ``ngridx = dx``, ``ngridy = ngridx``).
    num_iter : int, optional
        Number of sweeps, ``>= 0`` (default: 1).
    backend : str, Backend or ArtBackend, optional
        Implementation strategy (default: ``"cpu"``).
    num_threads : int, optional
        Worker thread budget for slice-parallel backends. Ignored when
        ``context`` is given.
    init_recon : array-like, optional
        Initial grids of shape ``(dy, ngridx, ngridy)``; copied, never
        modified. Zeros when omitted.
    context : ReconContext, optional
        Occupancy counter and timing sink. Share one context between
        concurrent calls to get combined occupancy reports.

    Returns
    -------
    numpy.ndarray or torch.Tensor
        Reconstruction of shape ``(dy, ngridx, ngridy)``, float32. A tensor
        on the device of ``data`` when ``data`` is a tensor.

    Raises
    ------
    ConfigurationError
        For malformed inputs, before any grid is allocated.
    UnimplementedBackendError
        If the selected backend has no implementation (or, as
        :class:`BackendUnavailableError`, no device to run on).

    Examples
    --------
    >>> theta = np.linspace(0, np.pi, 90, endpoint=False)
    >>> data = disc_projections(theta, 64, radius=20.0)
    >>> recon = art(data, theta, num_iter=10)
    >>> recon.shape
    (1, 64, 64)
    """
    impl = get_backend(backend)
    n_slices, n_ang, n_det = _shape_of(data, "data", 3)
    theta_np = _check_angles(theta, n_ang)
    center_np = _check_center(center, n_slices, n_det)
    ngridx, ngridy = _check_grid(ngridx, ngridy, n_det)
    num_iter = _check_count(num_iter, "num_iter", 0)
    grid_shape = (n_slices, ngridx, ngridy)
    if init_recon is not None:
        init_shape = _shape_of(init_recon, "init_recon", 3)
        if init_shape != grid_shape:
            raise ConfigurationError(
                f"init_recon has shape {init_shape}, expected {grid_shape}"
            )
    if context is None:
        if num_threads is not None:
            num_threads = _check_count(num_threads, "num_threads", 1)
        context = ReconContext(num_threads=num_threads)

    on_device = impl.accepts_device_tensors and DeviceManager.is_cuda(data)
    if on_device:
        data_arr = data.detach().to(torch.float32).contiguous()
    else:
        data_arr = np.ascontiguousarray(_to_numpy(data), dtype=_DTYPE)

    recon = _empty_grid(grid_shape, like=data_arr)
    if init_recon is not None:
        if on_device:
            recon.copy_(torch.as_tensor(init_recon, dtype=torch.float32))
        else:
            recon[...] = _to_numpy(init_recon, dtype=_DTYPE)

    with context.track(
        "art", impl.name,
        nitr=num_iter, dy=n_slices, dt=n_ang, dx=n_det, nx=ngridx, ny=ngridy,
    ):
        skipped = impl.reconstruct(
            data_arr, theta_np, center_np, recon, num_iter, _EPSILON, context
        )
        logger.debug(
            "%d of %d ray visits over %d sweep(s) left the grid untouched",
            skipped, n_slices * n_ang * n_det * num_iter, num_iter,
        )

    if on_device:
        return recon
    return _like_input(recon, data)


@dataclass
class ArtResult:
    """Outcome of :func:`try_art`.

    Attributes
    ----------
    recon : array or None
        Reconstruction, or None when the call failed.
    error_kind : ErrorKind
        ``ErrorKind.NONE`` on success, otherwise the failure category.
    error : ArtError or None
        The exception describing the failure.
    elapsed : float
        Wall-clock duration of the call in seconds.
    backend : str
        Name of the backend the call was made with.
    """

    recon: Any
    error_kind: ErrorKind
    error: Optional[ArtError]
    elapsed: float
    backend: str

    @property
    def ok(self):
        return self.error_kind is ErrorKind.NONE

    def unwrap(self):
        """Return the reconstruction or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.recon


def try_art(data, theta, backend=Backend.CPU, **kwargs):
    """Run :func:`art` and report failures as an :class:`ArtResult`.

    Configuration errors and backend failures are returned with their
    :class:`ErrorKind` so callers can tell "never computed" apart from a
    computed grid without handling exceptions. Any other exception
    propagates.
    """
    start = time.perf_counter()
    name = str(getattr(backend, "value", backend))
    try:
        impl = get_backend(backend)
        name = impl.name
        recon = art(data, theta, backend=impl, **kwargs)
    except ArtError as exc:
        kind = ErrorKind.of(exc)
        if kind is None:
            raise
        logger.warning("ART call on backend %r failed (%s): %s", name, kind.value, exc)
        return ArtResult(None, kind, exc, time.perf_counter() - start, name)
    return ArtResult(recon, ErrorKind.NONE, None, time.perf_counter() - start, name)


# ============================================================================
# Forward Projection
# ============================================================================

def forward_project(recon, theta, center=None, ndet=None, backend=Backend.CPU, num_threads=None):
    """Compute parallel-beam projections of reconstruction grids.

    Uses the same rays as :func:`art`, so ``forward_project`` of a grid
    yields data that ``art`` can reconstruct consistently.

    Parameters
    ----------
    recon : numpy.ndarray or torch.Tensor
        Grids of shape ``(dy, ngridx, ngridy)``, or a single 2D grid.
    theta : array-like
        Projection angles in radians, shape ``(dt,)``.
    center : float or array-like, optional
        Rotation-axis pixel coordinate per slice (default: ``(ndet - 1) / 2``).
    ndet : int, optional
        Number of detector pixels (default: ``ngridx``).
    backend : str, Backend or ArtBackend, optional
        Implementation strategy (default: ``"cpu"``).
    num_threads : int, optional
        Worker thread budget for slice-parallel backends.

    Returns
    -------
    numpy.ndarray or torch.Tensor
        Projections of shape ``(dy, dt, ndet)``, float32; 2D input gives
        ``(dt, ndet)``.
    """
    impl = get_backend(backend)
    squeeze = len(getattr(recon, "shape", np.shape(recon))) == 2
    recon_np = np.ascontiguousarray(_to_numpy(recon), dtype=_DTYPE)
    if squeeze:
        recon_np = recon_np[np.newaxis]
    n_slices, ngridx, _ = _shape_of(recon_np, "recon", 3)
    if min(recon_np.shape) < 1:
        raise ConfigurationError(f"recon must not be empty, got shape {recon_np.shape}")
    theta_np = _to_numpy(theta, dtype=np.float64).ravel()
    theta_np = _check_angles(theta_np, theta_np.shape[0])
    ndet = ngridx if ndet is None else _check_count(ndet, "ndet", 1)
    center_np = _check_center(center, n_slices, ndet)

    if num_threads is not None:
        num_threads = _check_count(num_threads, "num_threads", 1)

    sino = np.zeros((n_slices, theta_np.shape[0], ndet), dtype=_DTYPE)
    impl.forward(recon_np, theta_np, center_np, sino, ReconContext(num_threads=num_threads))
    if squeeze:
        sino = sino[0]
    return _like_input(sino, recon)
