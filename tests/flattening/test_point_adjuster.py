"""Unit tests for the point adjuster."""

import math

import numpy as np
import pytest

from src.flattening.geometry import BoundingBox
from src.flattening.grid import SpatialGrid
from src.flattening.point_adjuster import PointAdjuster, adjust


def make_grid(bbox, section_len=20.0):
    grid = SpatialGrid(section_len=section_len)
    grid.compute_dimensions(bbox)
    return grid


class TestAdjust:
    """Test suite for the per-point adjustment transform."""

    def test_flat_ground_point_goes_to_zero(self):
        """Point on flat ground ends at z = 0 without moving in XY."""
        points = np.array([[3.0, 4.0, 2.5, 7.0]])

        adjust(points, 2.5, 2.5, 2.5, 2.5, 0.3, 0.6, 20.0)

        assert points[0, 2] == pytest.approx(0.0, abs=1e-12)
        assert points[0, 0] == 3.0
        assert points[0, 1] == 4.0
        assert points[0, 3] == 7.0

    def test_height_above_flat_ground(self):
        points = np.array([[0.0, 0.0, 15.0, 0.0]])

        adjust(points, 5.0, 5.0, 5.0, 5.0, 0.5, 0.5, 20.0)

        assert points[0, 2] == pytest.approx(10.0)

    def test_sign_is_discarded(self):
        """A point below the floor keeps its distance, not its sign."""
        points = np.array([[0.0, 0.0, 1.0, 0.0]])

        adjust(points, 3.0, 3.0, 3.0, 3.0, 0.5, 0.5, 20.0)

        assert points[0, 2] == pytest.approx(2.0)

    def test_tilt_along_x(self):
        """On a 45 degree slope the point is rotated back over X."""
        points = np.array([[50.0, 60.0, 20.0, 0.0]])

        adjust(points, 0.0, 20.0, 0.0, 20.0, 0.5, 0.5, 20.0)

        # floor 10, residual height 10, dx = -10
        assert points[0, 2] == pytest.approx(math.sqrt(200.0))
        assert points[0, 0] == pytest.approx(60.0)
        assert points[0, 1] == pytest.approx(60.0)

    def test_rotations_are_sequential(self):
        """The Y rotation uses the height already changed by the X rotation."""
        points = np.array([[0.0, 0.0, 21.0, 0.0]])

        adjust(points, 0.0, 20.0, 20.0, 40.0, 0.5, 0.5, 20.0)

        # floor 20 -> z 1; X: dx = -1, z = sqrt(2); Y: dy = -sqrt(2), z = 2
        assert points[0, 0] == pytest.approx(1.0)
        assert points[0, 1] == pytest.approx(math.sqrt(2.0))
        assert points[0, 2] == pytest.approx(2.0)

    def test_vectorised(self):
        """Per-point corner heights and ratios are supported."""
        points = np.array([
            [0.0, 0.0, 5.0, 0.0],
            [0.0, 0.0, 9.0, 0.0],
        ])
        corners = np.array([5.0, 4.0])

        adjust(points, corners, corners, corners, corners,
               np.array([0.1, 0.9]), np.array([0.2, 0.8]), 20.0)

        np.testing.assert_allclose(points[:, 2], [0.0, 5.0], atol=1e-12)


class TestPointAdjuster:
    """Test suite for PointAdjuster class."""

    def test_neighbour_indices_rebase(self):
        """Points below/left of their cell centre use the previous block."""
        grid = make_grid(BoundingBox(0.0, 0.0, 40.0, 40.0))
        points = np.array([
            [5.0, 5.0, 0.0, 0.0],
            [25.0, 35.0, 0.0, 0.0],
        ])

        bottom, top, left, right, x_ratio, y_ratio = PointAdjuster().neighbour_indices(points, grid)

        np.testing.assert_array_equal(bottom, [0, 1])
        np.testing.assert_array_equal(top, [0, 1])
        np.testing.assert_array_equal(left, [0, 0])
        np.testing.assert_array_equal(right, [0, 1])
        np.testing.assert_allclose(x_ratio, [0.75, 0.75])
        np.testing.assert_allclose(y_ratio, [0.75, 0.25])

    def test_ratios_in_unit_interval(self):
        rng = np.random.default_rng(1)
        points = np.column_stack([
            rng.uniform(-30, 70, 1000),
            rng.uniform(-10, 90, 1000),
            np.zeros(1000),
        ])
        grid = make_grid(BoundingBox.from_points(points))

        *_, x_ratio, y_ratio = PointAdjuster().neighbour_indices(points, grid)

        assert np.all((x_ratio >= 0) & (x_ratio <= 1))
        assert np.all((y_ratio >= 0) & (y_ratio <= 1))

    def test_interior_point_interpolates_floor(self):
        """Between two cell centres the floor is interpolated linearly."""
        grid = make_grid(BoundingBox(0.0, 0.0, 40.0, 20.0))
        floors = np.array([[0.0, 4.0]])
        # Halfway between the centres at x = 10 and x = 30
        points = np.array([[20.0, 10.0, 2.0, 0.0]])

        PointAdjuster().adjust_points(points, grid, floors)

        # Floor is 2 under the point, the residual height is zero
        assert points[0, 2] == pytest.approx(0.0, abs=1e-12)
        assert points[0, 0] == pytest.approx(20.0)

    def test_flat_grid_keeps_xy(self):
        grid = make_grid(BoundingBox(0.0, 0.0, 60.0, 60.0))
        floors = np.full(grid.shape, 1.5)
        rng = np.random.default_rng(2)
        points = np.column_stack([
            rng.uniform(0, 60, 200),
            rng.uniform(0, 60, 200),
            rng.uniform(1.5, 10, 200),
        ])
        original = points.copy()

        PointAdjuster().adjust_points(points, grid, floors)

        np.testing.assert_allclose(points[:, :2], original[:, :2])
        np.testing.assert_allclose(points[:, 2], original[:, 2] - 1.5, atol=1e-9)

    def test_shape_mismatch(self):
        grid = make_grid(BoundingBox(0.0, 0.0, 40.0, 40.0))
        points = np.array([[1.0, 1.0, 1.0, 0.0]])

        with pytest.raises(ValueError):
            PointAdjuster().adjust_points(points, grid, np.zeros((1, 1)))

    def test_empty_points(self):
        grid = make_grid(BoundingBox())
        points = np.empty((0, 4))

        result = PointAdjuster().adjust_points(points, grid, np.zeros(grid.shape))

        assert len(result) == 0
