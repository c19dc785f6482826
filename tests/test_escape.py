import math

import numpy as np
import pytest

from spiralzoom.renderer import escape_measure, evaluate_grid


@pytest.mark.parametrize("max_iterations", [1, 3, 100, 3000])
def test_origin_never_escapes(max_iterations):
    assert escape_measure(0j, max_iterations) == math.log(max_iterations)


@pytest.mark.parametrize("c", [2 + 0j, 3 + 0j, -2.5 + 0j, 2j, 1.5 + 1.5j])
def test_far_points_escape_on_first_iteration(c):
    assert escape_measure(c, 3000) == math.log(1)


def test_interior_points_reach_the_cap():
    # c = -1 cycles between 0 and -1; c = -0.1+0.1j converges to a fixed point.
    assert escape_measure(-1 + 0j, 500) == math.log(500)
    assert escape_measure(-0.1 + 0.1j, 500) == math.log(500)


def test_escape_iteration_is_counted_from_one():
    # z1 = 1, z2 = 2 -> escapes on the second iteration.
    assert escape_measure(1 + 0j, 100) == pytest.approx(math.log(2))
    # z1 = 0.5, z2 = 0.75, z3 = 1.0625, z4 = 1.62890625, z5 = 3.15...
    assert escape_measure(0.5 + 0j, 100) == pytest.approx(math.log(5))


def test_values_stay_within_bounds():
    max_iterations = 200
    for c in (0.3 + 0.5j, -0.75 + 0.1j, 0.26 + 0j, -1.8 + 0.01j):
        value = escape_measure(c, max_iterations)
        assert 0.0 <= value <= math.log(max_iterations)


def test_grid_matches_pointwise_evaluation():
    max_iterations = 60
    real = np.array([-1.0, -0.1, 0.5, 1.0])
    imag = np.array([1.5, 0.1, 0.0])
    grid = evaluate_grid(real, imag, max_iterations)

    assert grid.shape == (len(imag), len(real))
    for row, y in enumerate(imag):
        for col, x in enumerate(real):
            expected = escape_measure(complex(x, y), max_iterations)
            assert grid[row, col] == pytest.approx(expected, rel=1e-12, abs=1e-12)


def test_grid_interior_value_is_log_of_cap():
    grid = evaluate_grid(np.array([0.0, -1.0]), np.array([0.0]), 250)
    np.testing.assert_allclose(grid, [[math.log(250), math.log(250)]])


def test_grid_handles_empty_axes():
    assert evaluate_grid(np.array([]), np.array([0.0, 1.0]), 10).shape == (2, 0)
