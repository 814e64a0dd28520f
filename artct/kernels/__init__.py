"""Compiled kernels for ART.

This subpackage contains the target-agnostic ray traversal routines and
their numba host and CUDA compilations.
"""

from .art_cpu import (
    _art_slice_cpu,
    _forward_slice_cpu,
)

from .art_cuda import (
    _art_cuda_kernel,
    _forward_cuda_kernel,
)

__all__ = [
    '_art_slice_cpu',
    '_forward_slice_cpu',
    '_art_cuda_kernel',
    '_forward_cuda_kernel',
]
