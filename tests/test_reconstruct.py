import logging
import math

import numpy as np
import pytest
import torch

from artct import (
    ConfigurationError,
    art,
    disc_phantom,
    disc_projections,
    forward_project,
    shepp_logan_2d,
)


def make_2x2_case():
    truth = np.array([[[1.0, 2.0], [3.0, 4.0]]], dtype=np.float32)
    theta = np.array([0.0, math.pi / 2])
    data = forward_project(truth, theta, backend="reference")
    return truth, theta, data


def make_shepp_case(n=12, n_views=8, dy=1):
    theta = np.linspace(0, math.pi, n_views, endpoint=False)
    phantom = np.stack([shepp_logan_2d(n) * (1.0 + 0.5 * s) for s in range(dy)])
    data = forward_project(phantom, theta)
    return phantom, theta, data


def total_squared_residual(recon, theta, data, backend="reference"):
    sino = forward_project(recon, theta, center=0.5, ndet=data.shape[-1], backend=backend)
    return float(np.sum((sino.astype(np.float64) - data) ** 2))


def test_2x2_projections_of_orthogonal_rays():
    _, _, data = make_2x2_case()
    np.testing.assert_allclose(data[0], [[4.0, 6.0], [7.0, 3.0]])


@pytest.mark.parametrize("backend", ["reference", "cpu"])
def test_2x2_residual_is_non_increasing(backend):
    truth, theta, data = make_2x2_case()
    residuals = [
        total_squared_residual(art(data, theta, num_iter=k, backend=backend), theta, data)
        for k in range(5)
    ]
    assert residuals[0] > 0.0
    for before, after in zip(residuals, residuals[1:]):
        assert after <= before + 1e-9
    np.testing.assert_allclose(art(data, theta, num_iter=1, backend=backend), truth, atol=1e-5)


def test_disc_phantom_round_trip():
    n, radius, density = 32, 10.0, 2.0
    theta = np.linspace(0, math.pi, 45, endpoint=False)
    data = disc_projections(theta, n, radius=radius, density=density)
    recon = art(data, theta, num_iter=20, backend="cpu")[0]

    x = np.arange(n) + 0.5 - n * 0.5
    rr = np.hypot(*np.meshgrid(x, x, indexing="ij"))
    interior = recon[rr < radius - 2.0]
    exterior = recon[(rr > radius + 2.0) & (rr < n * 0.5 - 1.0)]
    assert abs(interior.mean() - density) < 0.08 * density
    assert np.abs(exterior).mean() < 0.1 * density


def test_reference_and_cpu_backends_agree():
    _, theta, data = make_shepp_case(n=10, n_views=6, dy=2)
    ref = art(data, theta, num_iter=3, backend="reference")
    cpu = art(data, theta, num_iter=3, backend="cpu")
    np.testing.assert_allclose(cpu, ref, rtol=1e-4, atol=1e-4)


def test_forward_project_backends_agree_and_2d_input():
    phantom = shepp_logan_2d(16)
    theta = np.linspace(0, math.pi, 7, endpoint=False)
    ref = forward_project(phantom, theta, center=7.0, backend="reference")
    cpu = forward_project(phantom, theta, center=7.0, backend="cpu")
    assert ref.shape == (7, 16)
    np.testing.assert_allclose(cpu, ref, rtol=1e-5, atol=1e-5)


@pytest.mark.parametrize("backend", ["reference", "cpu"])
def test_opposite_views_agree_with_axis_on_grid_line(backend):
    rng = np.random.default_rng(7)
    phantom = rng.random((8, 8)).astype(np.float32)
    theta = np.array([0.0, math.pi / 2, math.pi, 3 * math.pi / 2])
    sino = forward_project(phantom, theta, center=4.0, ndet=9, backend=backend)
    # pixel d at angle theta + pi sees the same line as pixel 2 * center - d at theta
    np.testing.assert_allclose(sino[2][::-1], sino[0], rtol=1e-5, atol=1e-6)
    np.testing.assert_allclose(sino[3][::-1], sino[1], rtol=1e-5, atol=1e-6)


def test_skipped_rays_are_logged_once_per_call(caplog):
    theta = np.linspace(0, math.pi, 4, endpoint=False)
    data = np.ones((1, 4, 6), dtype=np.float32)
    with caplog.at_level(logging.DEBUG, logger="artct.reconstruct"):
        recon = art(data, theta, center=100.0, num_iter=2, backend="reference")
    assert np.all(recon == 0.0)
    messages = [r.getMessage() for r in caplog.records if r.name == "artct.reconstruct"]
    assert messages == ["48 of 48 ray visits over 2 sweep(s) left the grid untouched"]


def test_thread_count_does_not_change_result():
    theta = np.linspace(0, math.pi, 24, endpoint=False)
    data = np.concatenate([
        disc_projections(theta, 20, radius=4.0 + s, density=1.0 + s) for s in range(5)
    ])
    center = np.array([9.5, 9.0, 10.0, 9.5, 9.25])
    one = art(data, theta, center=center, num_iter=4, num_threads=1)
    many = art(data, theta, center=center, num_iter=4, num_threads=4)
    np.testing.assert_array_equal(one, many)


def test_slices_are_independent():
    _, theta, data = make_shepp_case(n=12, n_views=8, dy=3)
    stacked = art(data, theta, num_iter=2)
    for s in range(data.shape[0]):
        alone = art(data[s:s + 1], theta, num_iter=2)
        np.testing.assert_array_equal(stacked[s], alone[0])


def test_zero_iterations_returns_initial_grid():
    _, theta, data = make_shepp_case()
    recon = art(data, theta, num_iter=0)
    assert recon.shape == (1, 12, 12)
    assert recon.dtype == np.float32
    assert np.all(recon == 0.0)

    init = np.full((1, 12, 12), 0.25, dtype=np.float32)
    np.testing.assert_array_equal(art(data, theta, num_iter=0, init_recon=init), init)


def test_init_recon_continues_iteration_and_is_not_modified():
    _, theta, data = make_shepp_case()
    data_before = data.copy()
    first = art(data, theta, num_iter=1)
    first_before = first.copy()
    resumed = art(data, theta, num_iter=1, init_recon=first)
    np.testing.assert_allclose(resumed, art(data, theta, num_iter=2), rtol=1e-6, atol=1e-6)
    np.testing.assert_array_equal(first, first_before)
    np.testing.assert_array_equal(data, data_before)


def test_custom_grid_size_and_scalar_center():
    theta = np.linspace(0, math.pi, 16, endpoint=False)
    data = disc_projections(theta, 12, radius=3.0, dy=2)
    recon = art(data, theta, center=5.5, ngridx=10, ngridy=14, num_iter=2)
    assert recon.shape == (2, 10, 14)
    np.testing.assert_array_equal(recon[0], recon[1])


def test_torch_input_returns_tensor():
    _, theta, data = make_shepp_case()
    expected = art(data, theta, num_iter=2)
    result = art(torch.from_numpy(data), torch.from_numpy(theta), num_iter=2)
    assert isinstance(result, torch.Tensor)
    assert result.device.type == "cpu"
    np.testing.assert_array_equal(result.numpy(), expected)


def test_disc_phantom_matches_grid_convention():
    phantom = disc_phantom(8, radius=2.0, dy=2)
    assert phantom.shape == (2, 8, 8)
    assert phantom[0, 3, 3] == 1.0 and phantom[0, 0, 0] == 0.0
    np.testing.assert_array_equal(phantom[0], phantom[0].T)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(data=np.zeros((4, 5))),
        dict(theta=np.zeros(3)),
        dict(theta=np.array([0.0, np.nan, 1.0, 2.0])),
        dict(center=np.zeros(3)),
        dict(center=np.inf),
        dict(ngridx=0),
        dict(ngridy=-2),
        dict(ngridx=2.5),
        dict(num_iter=-1),
        dict(num_iter=True),
        dict(ngridx=np.bool_(True)),
        dict(num_threads=False),
        dict(num_threads=0),
        dict(init_recon=np.zeros((2, 6, 5))),
        dict(backend="gpu"),
    ],
)
def test_invalid_inputs_raise_configuration_error(kwargs):
    args = dict(data=np.zeros((2, 4, 6), dtype=np.float32), theta=np.zeros(4))
    args.update(kwargs)
    with pytest.raises(ConfigurationError):
        art(args.pop("data"), args.pop("theta"), **args)


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        art(np.zeros((1, 2, 3)), np.zeros(5))
