"""Numba host kernels for ART reconstruction and forward projection.

The per-slice routines from :mod:`artct.kernels.ray` compiled with
``numba.njit``. Kernels release the GIL so independent slices can be swept
concurrently from a thread pool.
"""

from ..constants import _NJIT_DECORATOR
from .ray import _art_sweep, _project_slice


_art_slice_cpu = _NJIT_DECORATOR(_art_sweep)
"""Compiled ``_art_sweep(data, cos_t, sin_t, center, grid, num_iter, eps) -> skipped``."""

_forward_slice_cpu = _NJIT_DECORATOR(_project_slice)
"""Compiled ``_project_slice(grid, cos_t, sin_t, center, sino)``."""
