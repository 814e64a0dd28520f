from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

import numpy as np

from .backends import Backend
from .config import ArtConfig, dump_config, load_config
from .errors import ConfigurationError, UnimplementedBackendError
from .logging_utils import setup_logging
from .reconstruct import art


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="ART reconstruction of parallel-beam projections")
    p.add_argument("--data", required=True, help="Input .npy, shape (dy, dt, dx) or (dt, dx)")
    th = p.add_mutually_exclusive_group(required=True)
    th.add_argument("--theta", help="Projection angles in radians (.npy)")
    th.add_argument(
        "--theta-range", type=float, nargs=2, metavar=("START", "STOP"),
        help="Evenly spaced angles in degrees, STOP excluded",
    )
    p.add_argument("--out", required=True, help="Output .npy for the reconstruction")
    p.add_argument("--config", default=None, help="JSON or YAML file with ArtConfig fields")
    p.add_argument("--iters", type=int, default=None, help="Number of ART sweeps")
    p.add_argument("--backend", choices=[b.value for b in Backend], default=None)
    p.add_argument("--threads", type=int, default=None, help="Worker threads for slice-parallel backends")
    p.add_argument("--center", type=float, default=None, help="Rotation axis, detector pixel coordinate")
    p.add_argument("--grid", type=int, nargs=2, metavar=("NX", "NY"), default=None)
    p.add_argument("--log-level", default=None, help="DEBUG|INFO|WARNING")
    return p


def resolve_config(args: argparse.Namespace) -> ArtConfig:
    values = load_config(args.config) if args.config else {}
    cfg = ArtConfig.from_dict(values)
    overrides = {
        "num_iter": args.iters,
        "backend": args.backend,
        "num_threads": args.threads,
        "center": args.center,
        "log_level": args.log_level,
    }
    if args.grid is not None:
        overrides["ngridx"], overrides["ngridy"] = args.grid
    return dataclasses.replace(cfg, **{k: v for k, v in overrides.items() if v is not None})


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = resolve_config(args)
        setup_logging(cfg.log_level)
        logging.info("Config: %s", dump_config(cfg))

        data = np.load(args.data)
        if data.ndim == 2:
            data = data[np.newaxis]
        if args.theta is not None:
            theta = np.load(args.theta)
        else:
            start, stop = args.theta_range
            theta = np.deg2rad(np.linspace(start, stop, data.shape[1], endpoint=False))

        recon = art(data, theta, **cfg.art_kwargs())
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 2
    except UnimplementedBackendError as exc:
        logging.error("%s", exc)
        return 3

    np.save(args.out, recon)
    logging.info("Saved reconstruction %s to %s", recon.shape, args.out)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
