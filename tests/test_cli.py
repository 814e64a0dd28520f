import json
import math

import numpy as np
import pytest
from numba import cuda

from artct import ArtBackend, Backend, backends, disc_projections
from artct.cli import build_parser, main, resolve_config
from artct.config import ArtConfig, dump_config, load_config


@pytest.fixture
def dataset(tmp_path):
    theta = np.linspace(0, math.pi, 10, endpoint=False)
    data = disc_projections(theta, 8, radius=2.0, dy=2)
    data_path = tmp_path / "data.npy"
    theta_path = tmp_path / "theta.npy"
    np.save(data_path, data)
    np.save(theta_path, theta)
    return data_path, theta_path


def test_main_writes_reconstruction(dataset, tmp_path):
    data_path, theta_path = dataset
    out = tmp_path / "recon.npy"
    code = main([
        "--data", str(data_path), "--theta", str(theta_path), "--out", str(out),
        "--iters", "2", "--backend", "reference", "--threads", "1",
    ])
    assert code == 0
    recon = np.load(out)
    assert recon.shape == (2, 8, 8)
    assert recon.dtype == np.float32


def test_main_theta_range_and_grid(dataset, tmp_path):
    data_path, _ = dataset
    out = tmp_path / "recon.npy"
    code = main([
        "--data", str(data_path), "--theta-range", "0", "180", "--out", str(out),
        "--grid", "6", "10",
    ])
    assert code == 0
    assert np.load(out).shape == (2, 6, 10)


def test_main_accepts_single_sinogram(tmp_path):
    theta = np.linspace(0, math.pi, 6, endpoint=False)
    np.save(tmp_path / "sino.npy", disc_projections(theta, 5, radius=1.5)[0])
    code = main([
        "--data", str(tmp_path / "sino.npy"), "--theta-range", "0", "180",
        "--out", str(tmp_path / "recon.npy"),
    ])
    assert code == 0
    assert np.load(tmp_path / "recon.npy").shape == (1, 5, 5)


def test_main_rejects_unknown_config_key(dataset, tmp_path):
    data_path, theta_path = dataset
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"num_iter": 2, "relaxation": 0.5}))
    code = main([
        "--data", str(data_path), "--theta", str(theta_path),
        "--out", str(tmp_path / "recon.npy"), "--config", str(cfg),
    ])
    assert code == 2
    assert not (tmp_path / "recon.npy").exists()


def test_main_rejects_unknown_backend_in_config(dataset, tmp_path):
    data_path, theta_path = dataset
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"backend": "opencl"}))
    code = main([
        "--data", str(data_path), "--theta", str(theta_path),
        "--out", str(tmp_path / "recon.npy"), "--config", str(cfg),
    ])
    assert code == 2


def test_main_rejects_mismatched_angles(dataset, tmp_path):
    data_path, _ = dataset
    theta_path = tmp_path / "short.npy"
    np.save(theta_path, np.zeros(3))
    code = main([
        "--data", str(data_path), "--theta", str(theta_path),
        "--out", str(tmp_path / "recon.npy"),
    ])
    assert code == 2


def test_command_line_overrides_config(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"num_iter": 5, "backend": "reference", "center": 3.0}))
    args = build_parser().parse_args([
        "--data", "d.npy", "--theta", "t.npy", "--out", "o.npy",
        "--config", str(cfg), "--iters", "7",
    ])
    resolved = resolve_config(args)
    assert resolved == ArtConfig(num_iter=7, backend="reference", center=3.0)


def test_load_config_json(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"num_iter": 3}))
    assert load_config(str(path)) == {"num_iter": 3}
    assert ArtConfig.from_dict(load_config(str(path))).art_kwargs()["num_iter"] == 3


def test_load_config_yaml(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "cfg.yaml"
    path.write_text("num_iter: 4\nbackend: reference\n")
    assert load_config(str(path)) == {"num_iter": 4, "backend": "reference"}


@pytest.mark.skipif(cuda.is_available(), reason="a CUDA device is present")
def test_main_reports_unavailable_cuda_backend(dataset, tmp_path):
    data_path, theta_path = dataset
    out = tmp_path / "recon.npy"
    code = main([
        "--data", str(data_path), "--theta", str(theta_path), "--out", str(out),
        "--backend", "cuda",
    ])
    assert code == 3
    assert not out.exists()


def test_main_reports_unimplemented_backend(dataset, tmp_path, monkeypatch):
    class NoAlgorithmBackend(ArtBackend):
        name = "cpu"

    monkeypatch.setitem(backends._BUILTIN, Backend.CPU, NoAlgorithmBackend)
    data_path, theta_path = dataset
    out = tmp_path / "recon.npy"
    code = main([
        "--data", str(data_path), "--theta", str(theta_path), "--out", str(out),
        "--backend", "cpu",
    ])
    assert code == 3
    assert not out.exists()


def test_dump_config_is_plain_dict():
    cfg = ArtConfig(num_iter=3, backend="reference")
    dumped = dump_config(cfg)
    assert dumped["num_iter"] == 3
    assert dumped["backend"] == "reference"
    assert ArtConfig.from_dict(dumped) == cfg
