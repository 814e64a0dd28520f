"""Per-call run context: thread budget, occupancy and timing reports.

A :class:`ReconContext` replaces a process-wide counter of active
reconstructions. Callers that run several reconstructions concurrently
(for example one per chunk of slices) share one context between them; each
call registers itself on entry and the last call to finish reports the
runtime environment.
"""

import logging
import os
import threading
import time
from contextlib import contextmanager

import numba
import numpy as np
from numba import cuda

from .errors import ConfigurationError
from .logging_utils import format_duration


_LOG = logging.getLogger(__name__)


def default_num_threads():
    """Number of worker threads used when none is requested."""
    return os.cpu_count() or 1


class ReconContext:
    """Occupancy counter and timing sink for reconstruction calls.

    Parameters
    ----------
    num_threads : int, optional
        Worker thread budget for slice-parallel backends. Defaults to
        :func:`default_num_threads`.
    logger : logging.Logger, optional
        Destination of the timing and occupancy reports.

    Notes
    -----
    Reports are write-only diagnostics; nothing in the reconstruction reads
    them back.
    """

    def __init__(self, num_threads=None, logger=None):
        if num_threads is None:
            num_threads = default_num_threads()
        if int(num_threads) < 1:
            raise ConfigurationError(f"num_threads must be >= 1, got {num_threads}")
        self.num_threads = int(num_threads)
        self.logger = logger if logger is not None else _LOG
        self.last_elapsed = None
        self._active = 0
        self._lock = threading.Lock()

    @property
    def active(self):
        """Number of calls currently registered with this context."""
        with self._lock:
            return self._active

    def workers_for(self, n_items):
        """Worker count for ``n_items`` independent work items."""
        return max(1, min(self.num_threads, int(n_items)))

    @contextmanager
    def track(self, name, backend, **params):
        """Register one call for the duration of the ``with`` block.

        Yields the number of calls that were already active when this one
        started. On exit the call duration is logged together with that
        occupancy; the last call to leave logs the environment report.
        """
        with self._lock:
            count = self._active
            self._active += 1

        thread_id = threading.get_ident()
        details = ", ".join(f"{key} = {value}" for key, value in params.items())
        self.logger.info("[%d]> %s [%s] : %s", thread_id, name, backend, details)

        start = time.perf_counter()
        try:
            yield count
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                self._active -= 1
                remain = self._active
            self.last_elapsed = elapsed
            self.logger.info(
                "[%d] %s : %s (occupancy %d/%d)",
                thread_id, name, format_duration(elapsed), count, self.num_threads,
            )
            if remain == 0:
                self.logger.info(
                    "[%d] Reporting environment...\n%s",
                    thread_id, self.environment_report(backend),
                )
            else:
                self.logger.info("[%d] Threads remaining: %d...", thread_id, remain)

    def environment_report(self, backend):
        """Multi-line summary of the runtime environment."""
        lines = [
            ("backend", backend),
            ("num_threads", self.num_threads),
            ("cpu_count", os.cpu_count()),
            ("numpy", np.__version__),
            ("numba", numba.__version__),
            ("cuda_available", cuda.is_available()),
        ]
        return "\n".join(f"    {key:<16} : {value}" for key, value in lines)
