"""CUDA kernels for ART reconstruction and forward projection.

ART applies each ray's correction before tracing the next one, so the
kernels parallelise over slices: one CUDA thread runs the complete
sequential sweep of one slice. This keeps the GPU result numerically
equivalent to the host backends up to float32 rounding, and no two threads
ever write to the same grid.
"""

from numba import cuda

from ..constants import _FASTMATH_DECORATOR
from .ray import _art_sweep, _project_slice


# ============================================================================
# ART Sweep Kernel
# ============================================================================

@_FASTMATH_DECORATOR
def _art_cuda_kernel(d_data, d_cos, d_sin, d_center, d_recon, num_iter, eps, d_skipped):
    """Run ``num_iter`` ART sweeps, one thread per slice.

    Parameters
    ----------
    d_data : numba.cuda.cudadrv.devicearray.DeviceNDArray
        Measured projections, shape ``(dy, dt, dx)``.
    d_cos, d_sin : numba.cuda.cudadrv.devicearray.DeviceNDArray
        Precomputed cosine and sine of the projection angles, shape ``(dt,)``.
    d_center : numba.cuda.cudadrv.devicearray.DeviceNDArray
        Rotation-axis position per slice, shape ``(dy,)``.
    d_recon : numba.cuda.cudadrv.devicearray.DeviceNDArray
        Reconstruction grids updated in place, shape ``(dy, nx, ny)``.
    num_iter : int
        Number of full sweeps.
    eps : float
        Normalization threshold below which a ray update is skipped.
    d_skipped : numba.cuda.cudadrv.devicearray.DeviceNDArray
        Per-slice count of ray visits that left the grid untouched.
    """
    s = cuda.grid(1)
    if s >= d_recon.shape[0]:
        return
    d_skipped[s] = _art_sweep(
        d_data[s], d_cos, d_sin, d_center[s], d_recon[s], num_iter, eps
    )


# ============================================================================
# Forward Projection Kernel
# ============================================================================

@_FASTMATH_DECORATOR
def _forward_cuda_kernel(d_recon, d_cos, d_sin, d_center, d_sino):
    """Forward project every slice of ``d_recon`` into ``d_sino``, one thread per slice."""
    s = cuda.grid(1)
    if s >= d_recon.shape[0]:
        return
    _project_slice(d_recon[s], d_cos, d_sin, d_center[s], d_sino[s])
