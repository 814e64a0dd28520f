"""Exception types and error kinds raised by artct."""

import enum


class ArtError(Exception):
    """Base class for all artct errors."""


class ConfigurationError(ArtError, ValueError):
    """Malformed reconstruction inputs, detected before any computation."""


class UnimplementedBackendError(ArtError, NotImplementedError):
    """A backend was asked to run but has no implementation for this call."""


class BackendUnavailableError(UnimplementedBackendError):
    """A backend exists but its hardware or runtime is missing."""


class ErrorKind(enum.Enum):
    """Failure category reported by :func:`artct.try_art`."""

    NONE = "none"
    CONFIGURATION = "configuration"
    UNIMPLEMENTED_BACKEND = "unimplemented_backend"

    @classmethod
    def of(cls, exc):
        """Map an exception instance to its error kind.

        Errors that are neither configuration nor backend failures are not
        categorised and yield ``None``; callers should re-raise those.
        """
        if exc is None:
            return cls.NONE
        if isinstance(exc, ConfigurationError):
            return cls.CONFIGURATION
        if isinstance(exc, UnimplementedBackendError):
            return cls.UNIMPLEMENTED_BACKEND
        return None
