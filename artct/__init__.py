# artct/__init__.py
"""artct - Algebraic Reconstruction Technique for parallel-beam CT.

Iterative ray-by-ray tomographic reconstruction with interchangeable
pure-Python, Numba CPU and Numba CUDA backends.
"""

from .errors import (
    ArtError,
    ConfigurationError,
    UnimplementedBackendError,
    BackendUnavailableError,
    ErrorKind,
)

from .geometry import (
    RaySegment,
    trace,
    chord_length,
)

from .projector import (
    project,
    update,
)

from .backends import (
    Backend,
    ArtBackend,
    ReferenceBackend,
    CpuBackend,
    CudaBackend,
    get_backend,
)

from .context import ReconContext

from .reconstruct import (
    art,
    try_art,
    ArtResult,
    forward_project,
)

from .phantom import (
    disc_phantom,
    disc_projections,
    shepp_logan_2d,
)

__version__ = '0.3.0'

__all__ = [
    'ArtError',
    'ConfigurationError',
    'UnimplementedBackendError',
    'BackendUnavailableError',
    'ErrorKind',
    'RaySegment',
    'trace',
    'chord_length',
    'project',
    'update',
    'Backend',
    'ArtBackend',
    'ReferenceBackend',
    'CpuBackend',
    'CudaBackend',
    'get_backend',
    'ReconContext',
    'art',
    'try_art',
    'ArtResult',
    'forward_project',
    'disc_phantom',
    'disc_projections',
    'shepp_logan_2d',
]
