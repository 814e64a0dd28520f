"""Interchangeable implementations of the ART slice sweep.

A backend is a strategy object chosen by the caller and handed to the
reconstruction driver. All backends visit rays in the same order and
produce numerically equivalent grids up to floating-point tolerance:

- ``reference``: pure Python, built on :func:`artct.geometry.trace`,
  :func:`artct.projector.project` and :func:`artct.projector.update`.
- ``cpu``: numba-compiled host kernels, slices spread over a thread pool.
- ``cuda``: numba CUDA kernels, one GPU thread per slice.
"""

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import numpy as np
from numba import cuda

from .errors import BackendUnavailableError, ConfigurationError, UnimplementedBackendError
from .geometry import trace
from .kernels import (
    _art_cuda_kernel,
    _art_slice_cpu,
    _forward_cuda_kernel,
    _forward_slice_cpu,
)
from .projector import project, update
from .utils import (
    DeviceManager,
    TorchCUDABridge,
    _get_numba_external_stream_for,
    _grid_1d,
    _trig_tables,
)


logger = logging.getLogger(__name__)


class Backend(str, enum.Enum):
    """Names of the built-in backends."""

    REFERENCE = "reference"
    CPU = "cpu"
    CUDA = "cuda"


class AngleTable(NamedTuple):
    """Projection angles with their precomputed cosines and sines."""

    theta: np.ndarray
    cos: np.ndarray
    sin: np.ndarray

    @classmethod
    def from_angles(cls, theta):
        theta = np.ascontiguousarray(theta, dtype=np.float64)
        cos_t, sin_t = _trig_tables(theta)
        return cls(theta, cos_t, sin_t)


# ============================================================================
# Strategy Interface
# ============================================================================

class ArtBackend:
    """Base class of all ART backends.

    Subclasses override :meth:`reconstruct` and :meth:`forward`. The base
    implementations raise :class:`UnimplementedBackendError` at once, so a
    backend that lacks an implementation can never return an untouched grid
    as if it had been computed.
    """

    name = "unimplemented"
    accepts_device_tensors = False

    def reconstruct(self, data, theta, center, recon, num_iter, eps, context):
        """Run ``num_iter`` ART sweeps over every slice of ``recon`` in place.

        Parameters
        ----------
        data : array
            Projections, float32, shape ``(dy, dt, dx)``.
        theta : numpy.ndarray
            Projection angles in radians, shape ``(dt,)``.
        center : numpy.ndarray
            Rotation-axis position per slice, shape ``(dy,)``.
        recon : array
            Grids, float32, shape ``(dy, ngridx, ngridy)``. Updated in place.
        num_iter : int
            Number of full sweeps.
        eps : float
            Normalization threshold below which a ray update is skipped.
        context : artct.context.ReconContext
            Thread budget for the call.

        Returns
        -------
        int
            Number of ray visits that left the grid untouched.
        """
        raise UnimplementedBackendError(
            f"ART algorithm has not been implemented for the '{self.name}' backend"
        )

    def forward(self, recon, theta, center, sino, context):
        """Forward project every slice of ``recon`` into ``sino`` of shape ``(dy, dt, ndet)``."""
        raise UnimplementedBackendError(
            f"Forward projection has not been implemented for the '{self.name}' backend"
        )

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"


class SliceParallelBackend(ArtBackend):
    """Backend that sweeps independent slices on a thread pool.

    Subclasses implement :meth:`sweep_slice` and :meth:`project_slice` for a
    single 2D slice. Each worker owns the grid of the slice it processes, and
    rays within a slice are applied in order, so results do not depend on
    the number of workers.
    """

    def sweep_slice(self, data, angles, center, grid, num_iter, eps):
        raise UnimplementedBackendError(
            f"ART algorithm has not been implemented for the '{self.name}' backend"
        )

    def project_slice(self, grid, angles, center, sino):
        raise UnimplementedBackendError(
            f"Forward projection has not been implemented for the '{self.name}' backend"
        )

    def reconstruct(self, data, theta, center, recon, num_iter, eps, context):
        if type(self).sweep_slice is SliceParallelBackend.sweep_slice:
            return super().reconstruct(data, theta, center, recon, num_iter, eps, context)
        angles = AngleTable.from_angles(theta)

        def run(s):
            return self.sweep_slice(data[s], angles, float(center[s]), recon[s], num_iter, eps)

        return int(sum(self._map(run, recon.shape[0], context)))

    def forward(self, recon, theta, center, sino, context):
        if type(self).project_slice is SliceParallelBackend.project_slice:
            return super().forward(recon, theta, center, sino, context)
        angles = AngleTable.from_angles(theta)

        def run(s):
            self.project_slice(recon[s], angles, float(center[s]), sino[s])

        self._map(run, recon.shape[0], context)

    @staticmethod
    def _map(fn, n_slices, context):
        workers = context.workers_for(n_slices)
        logger.debug("Sweeping %d slice(s) on %d worker(s)", n_slices, workers)
        if workers == 1:
            return [fn(s) for s in range(n_slices)]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="artct") as pool:
            return list(pool.map(fn, range(n_slices)))


# ============================================================================
# Built-in Backends
# ============================================================================

class ReferenceBackend(SliceParallelBackend):
    """Pure-Python backend: trace, project and update one ray at a time."""

    name = Backend.REFERENCE.value

    def sweep_slice(self, data, angles, center, grid, num_iter, eps):
        n_det = data.shape[1]
        skipped = 0
        for _ in range(num_iter):
            for p, angle in enumerate(angles.theta):
                for d in range(n_det):
                    segments = list(trace(angle, d, center, grid.shape))
                    predicted = project(grid, segments)
                    if not update(grid, segments, float(data[p, d]), predicted, eps):
                        skipped += 1
        return skipped

    def project_slice(self, grid, angles, center, sino):
        for p, angle in enumerate(angles.theta):
            for d in range(sino.shape[1]):
                sino[p, d] = project(grid, trace(angle, d, center, grid.shape))


class CpuBackend(SliceParallelBackend):
    """Numba host backend; compiled sweeps release the GIL."""

    name = Backend.CPU.value

    def sweep_slice(self, data, angles, center, grid, num_iter, eps):
        return _art_slice_cpu(data, angles.cos, angles.sin, center, grid, num_iter, eps)

    def project_slice(self, grid, angles, center, sino):
        _forward_slice_cpu(grid, angles.cos, angles.sin, center, sino)


class CudaBackend(ArtBackend):
    """Numba CUDA backend, one GPU thread per slice.

    Accepts NumPy arrays (copied to and from the device) or PyTorch CUDA
    tensors (shared zero-copy and run on the current PyTorch stream).
    """

    name = Backend.CUDA.value
    accepts_device_tensors = True

    @staticmethod
    def check_available():
        if not cuda.is_available():
            raise BackendUnavailableError(
                "CUDA backend requested but no CUDA device is available"
            )

    @staticmethod
    def _stream_for(array):
        if DeviceManager.is_cuda(array):
            return _get_numba_external_stream_for()
        return cuda.stream()

    @staticmethod
    def _to_device(array, stream):
        if DeviceManager.is_cuda(array):
            return TorchCUDABridge.tensor_to_cuda_array(array)
        return cuda.to_device(array, stream=stream)

    def reconstruct(self, data, theta, center, recon, num_iter, eps, context):
        self.check_available()
        angles = AngleTable.from_angles(theta)
        stream = self._stream_for(recon)

        d_data = self._to_device(data, stream)
        d_recon = self._to_device(recon, stream)
        d_cos = cuda.to_device(angles.cos, stream=stream)
        d_sin = cuda.to_device(angles.sin, stream=stream)
        d_center = cuda.to_device(np.ascontiguousarray(center, dtype=np.float64), stream=stream)
        d_skipped = cuda.device_array(recon.shape[0], dtype=np.int64, stream=stream)

        grid, tpb = _grid_1d(recon.shape[0])
        _art_cuda_kernel[grid, tpb, stream](
            d_data, d_cos, d_sin, d_center, d_recon, num_iter, eps, d_skipped
        )

        if not DeviceManager.is_cuda(recon):
            d_recon.copy_to_host(recon, stream=stream)
        skipped = d_skipped.copy_to_host(stream=stream)
        stream.synchronize()
        return int(skipped.sum())

    def forward(self, recon, theta, center, sino, context):
        self.check_available()
        angles = AngleTable.from_angles(theta)
        stream = self._stream_for(sino)

        d_recon = self._to_device(recon, stream)
        d_sino = self._to_device(sino, stream)
        d_cos = cuda.to_device(angles.cos, stream=stream)
        d_sin = cuda.to_device(angles.sin, stream=stream)
        d_center = cuda.to_device(np.ascontiguousarray(center, dtype=np.float64), stream=stream)

        grid, tpb = _grid_1d(recon.shape[0])
        _forward_cuda_kernel[grid, tpb, stream](d_recon, d_cos, d_sin, d_center, d_sino)

        if not DeviceManager.is_cuda(sino):
            d_sino.copy_to_host(sino, stream=stream)
        stream.synchronize()


_BUILTIN = {
    Backend.REFERENCE: ReferenceBackend,
    Backend.CPU: CpuBackend,
    Backend.CUDA: CudaBackend,
}


def get_backend(backend):
    """Resolve a backend name, :class:`Backend` member or instance.

    Raises
    ------
    ConfigurationError
        If ``backend`` is neither a known name nor an :class:`ArtBackend`.
    """
    if isinstance(backend, ArtBackend):
        return backend
    if isinstance(backend, type) and issubclass(backend, ArtBackend):
        return backend()
    try:
        key = Backend(str(getattr(backend, "value", backend)).lower())
    except ValueError:
        names = ", ".join(b.value for b in Backend)
        raise ConfigurationError(
            f"Unknown backend {backend!r}; expected one of: {names}"
        ) from None
    return _BUILTIN[key]()
