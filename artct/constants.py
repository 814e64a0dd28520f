"""Global constants and configuration for the artct package.

This module defines core constants used throughout artct, including data
types, CUDA thread block configurations, numerical precision parameters and
the shared numba JIT decorators.
"""

import numpy as np
from numba import cuda, njit

# ---------------------------------------------------------------------------
# Data Types and Numerical Constants
# ---------------------------------------------------------------------------

_DTYPE = np.float32
"""Default data type for grids and projection data (numpy.float32)."""

_INF = np.inf
"""Floating-point infinity used for unbounded ray parameters."""

_EPSILON = 1e-6
"""Small epsilon for ray-parallel tests, segment cut-off and ART normalization."""

# ---------------------------------------------------------------------------
# CUDA Thread Block Configuration
# ---------------------------------------------------------------------------

# One thread sweeps one whole slice, so slices map onto a 1D launch grid
_TPB_1D = 32
"""CUDA threads-per-block for per-slice kernels."""

# ---------------------------------------------------------------------------
# JIT Decorators
# ---------------------------------------------------------------------------

# nogil lets ThreadPoolExecutor workers run compiled sweeps in parallel
_NJIT_DECORATOR = njit(cache=True, nogil=True)
"""Numba CPU JIT decorator for host kernels."""

_FASTMATH_DECORATOR = cuda.jit(fastmath=True)
"""Numba CUDA JIT decorator with fastmath enabled for GPU kernels."""
