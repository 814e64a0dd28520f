"""Utility classes and helper functions for the artct package.

This module provides device management, PyTorch-CUDA bridging, stream
caching, trigonometric table generation, host array conversion and CUDA
grid computation.
"""

import math
import numpy as np
import torch
from numba import cuda

from .constants import _DTYPE, _EPSILON, _TPB_1D


# ============================================================================
# Device Management Utilities
# ============================================================================

class DeviceManager:
    """Utilities for managing PyTorch tensor devices."""

    @staticmethod
    def is_tensor(obj):
        """Return True if ``obj`` is a PyTorch tensor."""
        return isinstance(obj, torch.Tensor)

    @staticmethod
    def is_cuda(obj):
        """Return True if ``obj`` is a PyTorch tensor resident on a CUDA device."""
        return isinstance(obj, torch.Tensor) and obj.is_cuda


# ============================================================================
# PyTorch-CUDA Bridge
# ============================================================================

class TorchCUDABridge:
    """Bridge between PyTorch tensors and Numba CUDA arrays."""

    @staticmethod
    def tensor_to_cuda_array(tensor):
        """Convert a PyTorch CUDA tensor to a Numba CUDA DeviceNDArray.

        Provides a zero-copy view of a detached PyTorch tensor as a Numba CUDA
        array. Writes through the returned array are visible in ``tensor``.

        Parameters
        ----------
        tensor : torch.Tensor
            PyTorch tensor on a CUDA device.

        Returns
        -------
        numba.cuda.cudadrv.devicearray.DeviceNDArray
            Numba CUDA array view sharing memory with `tensor`.

        Raises
        ------
        ValueError
            If `tensor` is not on a CUDA device.
        """
        if not tensor.is_cuda:
            raise ValueError("Tensor must be on CUDA device")
        return cuda.as_cuda_array(tensor.detach())


# ============================================================================
# Stream Management (cached external Numba stream)
# ============================================================================

_cached_stream_ptr = None
_cached_numba_stream = None


def _get_numba_external_stream_for(pt_stream=None):
    """Return a cached numba.cuda.external_stream for the current PyTorch CUDA stream.

    Caches by the underlying CUDA stream pointer to avoid repeated construction.

    Parameters
    ----------
    pt_stream : torch.cuda.Stream, optional
        PyTorch CUDA stream. If None, uses current stream.

    Returns
    -------
    numba.cuda.cudadrv.driver.Stream
        Numba external stream wrapper around PyTorch CUDA stream.
    """
    global _cached_stream_ptr, _cached_numba_stream
    if pt_stream is None:
        pt_stream = torch.cuda.current_stream()
    ptr = int(pt_stream.cuda_stream)
    if _cached_stream_ptr == ptr and _cached_numba_stream is not None:
        return _cached_numba_stream
    numba_stream = cuda.external_stream(pt_stream.cuda_stream)
    _cached_stream_ptr = ptr
    _cached_numba_stream = numba_stream
    return numba_stream


# ============================================================================
# Host Array Conversion
# ============================================================================

def _to_numpy(x, dtype=None):
    """Return ``x`` as a NumPy array, copying tensors to host memory.

    Parameters
    ----------
    x : array-like or torch.Tensor
        Input values.
    dtype : numpy.dtype, optional
        Desired data type. If None, the input dtype is kept.

    Returns
    -------
    numpy.ndarray
        Host array. Shares memory with `x` when no copy is needed.
    """
    if DeviceManager.is_tensor(x):
        x = x.detach().cpu().numpy()
    return np.asarray(x, dtype=dtype)


def _like_input(result, reference):
    """Return a host ``result`` in the container type of ``reference``.

    NumPy results are converted to a tensor on the reference device when
    ``reference`` is a tensor; anything else is returned unchanged.
    """
    if DeviceManager.is_tensor(reference) and not DeviceManager.is_tensor(result):
        return torch.from_numpy(result).to(reference.device)
    return result


# ============================================================================
# Trigonometric Table Generation
# ============================================================================

def _trig_tables(angles, dtype=np.float64):
    """Compute cosine and sine tables for input angles.

    Parameters
    ----------
    angles : array-like or torch.Tensor
        Projection angles in radians.
    dtype : numpy.dtype, optional
        Data type of the tables. Ray geometry is evaluated in double
        precision by default; grids and data stay in `_DTYPE`.

    Returns
    -------
    cos : numpy.ndarray
        Cosine values of `angles`.
    sin : numpy.ndarray
        Sine values of `angles`. Components within `_EPSILON` of zero are
        stored as exactly 0.0.

    Examples
    --------
    >>> cos, sin = _trig_tables([0.0, np.pi / 2])
    >>> cos.shape
    (2,)
    """
    angles_np = _to_numpy(angles, dtype=np.float64).ravel()
    cos_np, sin_np = np.cos(angles_np), np.sin(angles_np)
    # rays along a grid axis must not pick a side from rounding residue
    cos_np[np.abs(cos_np) <= _EPSILON] = 0.0
    sin_np[np.abs(sin_np) <= _EPSILON] = 0.0
    return (
        np.ascontiguousarray(cos_np, dtype=dtype),
        np.ascontiguousarray(sin_np, dtype=dtype),
    )


# ============================================================================
# CUDA Grid Computation
# ============================================================================

def _grid_1d(n, tpb=_TPB_1D):
    """Compute 1D CUDA grid and block dimensions.

    Parameters
    ----------
    n : int
        Number of work items (e.g., slices).
    tpb : int, optional
        Threads per block (default is `_TPB_1D`).

    Returns
    -------
    grid : int
        Number of blocks.
    tpb : int
        Threads per block.

    Examples
    --------
    >>> _grid_1d(100)
    (4, 32)
    """
    return max(1, math.ceil(n / tpb)), tpb


def _empty_grid(shape, like=None):
    """Allocate a zeroed `_DTYPE` grid, as a CUDA tensor when ``like`` is one."""
    if DeviceManager.is_cuda(like):
        return torch.zeros(shape, dtype=torch.float32, device=like.device)
    return np.zeros(shape, dtype=_DTYPE)
