"""Reconstruction settings and config-file loading."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .errors import ConfigurationError


@dataclass
class ArtConfig:
    """Settings of one reconstruction run.

    ``None`` leaves the corresponding default of :func:`artct.art` in place.
    """

    num_iter: int = 1
    backend: str = "cpu"
    num_threads: Optional[int] = None
    ngridx: Optional[int] = None
    ngridy: Optional[int] = None
    center: Optional[float] = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ArtConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**values)

    def art_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for :func:`artct.art`."""
        return {
            "num_iter": self.num_iter,
            "backend": self.backend,
            "num_threads": self.num_threads,
            "ngridx": self.ngridx,
            "ngridy": self.ngridy,
            "center": self.center,
        }


def load_config(path: str) -> Dict[str, Any]:
    """Load a JSON or YAML config file into a dict. YAML optional.

    If PyYAML is not installed, only JSON is supported.
    """
    if path.endswith(('.yaml', '.yml')):
        try:
            import yaml  # type: ignore
        except ImportError:
            raise ConfigurationError("YAML config requested but PyYAML not installed") from None
        with open(path, 'r') as f:
            values = yaml.safe_load(f) or {}
    else:
        with open(path, 'r') as f:
            values = json.load(f)
    if not isinstance(values, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return values


def dump_config(cfg: ArtConfig) -> Dict[str, Any]:
    """Convert an :class:`ArtConfig` to a plain dict for logging/serialization."""
    return asdict(cfg)
