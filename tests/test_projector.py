import math

import numpy as np
import pytest

from artct import project, trace, update


def test_project_empty_trace_is_zero():
    grid = np.ones((3, 3), dtype=np.float32)
    assert project(grid, []) == 0.0
    assert project(grid, trace(0.0, 10.0, 1.0, grid.shape)) == 0.0


def test_project_weights_by_path_length():
    grid = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32)
    assert project(grid, trace(0.0, 0.0, 0.5, grid.shape)) == pytest.approx(4.0)
    assert project(grid, [((0, 1), 0.5), ((1, 1), 2.0)]) == pytest.approx(9.0)


def test_single_cell_exact_recovery():
    grid = np.zeros((1, 1), dtype=np.float32)
    segments = list(trace(math.pi / 4, 0.0, 0.0, grid.shape))
    assert len(segments) == 1
    length = segments[0].length
    assert length == pytest.approx(math.sqrt(2.0))

    measured = 3.0
    assert update(grid, segments, measured, project(grid, segments))
    assert grid[0, 0] == pytest.approx(measured / length, rel=1e-6)


def test_update_matches_measurement_after_one_ray():
    grid = np.zeros((6, 6), dtype=np.float32)
    segments = list(trace(0.9, 2.2, 2.5, grid.shape))
    update(grid, segments, 5.0, project(grid, segments))
    assert project(grid, segments) == pytest.approx(5.0, rel=1e-5)


def test_update_outside_ray_is_noop():
    grid = np.arange(16, dtype=np.float32).reshape(4, 4)
    before = grid.copy()
    assert not update(grid, trace(0.2, 20.0, 1.5, grid.shape), 7.0, 0.0)
    np.testing.assert_array_equal(grid, before)


def test_update_skips_degenerate_normalization():
    grid = np.zeros((2, 2), dtype=np.float32)
    assert not update(grid, [((0, 0), 1e-4)], 100.0, 0.0)
    assert np.all(grid == 0.0)


def test_update_accepts_generator():
    grid = np.zeros((3, 3), dtype=np.float32)
    assert update(grid, trace(0.0, 1.0, 1.0, grid.shape), 3.0, 0.0)
    np.testing.assert_allclose(grid[:, 1], [1.0, 1.0, 1.0], rtol=1e-6)
