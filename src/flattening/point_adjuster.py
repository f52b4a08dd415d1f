"""Remove the estimated ground offset and tilt from every point.

For each point the four cell centres surrounding it are located, the
floor height and local inclination are interpolated bilinearly from
their floor heights, and the point is shifted and rotated so the
interpolated ground becomes the z = 0 plane.

The two rotations are applied one after the other (X first, then Y
using the already updated Z).  This is an approximation of a composed
3-D rotation and the order is part of the expected output.
"""

from dataclasses import dataclass

import numpy as np

from .geometry import bilinear_interpolate, clamp, interpolate_tilt_angles
from .grid import SpatialGrid


def adjust(points: np.ndarray, bl, br, tl, tr, x_ratio, y_ratio, scale: float) -> np.ndarray:
    """Shift and de-rotate points in place given their surrounding floor heights.

    Parameters
    ----------
    points : numpy.ndarray
        Array of shape (N, M) with XYZ in columns 0–2.  Modified in place.
    bl, br, tl, tr : float or numpy.ndarray
        Floor heights of the bottom-left, bottom-right, top-left and
        top-right neighbouring cells, per point.
    x_ratio, y_ratio : float or numpy.ndarray
        Position of each point inside its 2×2 block, in [0, 1).
    scale : float
        Grid cell side length.

    Returns
    -------
    numpy.ndarray
        The same `points` array.
    """
    floor_z = bilinear_interpolate(bl, br, tl, tr, x_ratio, y_ratio)
    points[:, 2] -= floor_z

    x_theta, y_theta = interpolate_tilt_angles(bl, br, tl, tr, x_ratio, y_ratio, scale)

    # The magnitude is kept, the sign of z is not
    dx = -points[:, 2] * np.tan(x_theta)
    points[:, 2] = np.sqrt(points[:, 2] ** 2 + dx ** 2)
    points[:, 0] -= dx

    dy = -points[:, 2] * np.tan(y_theta)
    points[:, 2] = np.sqrt(points[:, 2] ** 2 + dy ** 2)
    points[:, 1] -= dy
    return points


@dataclass
class PointAdjuster:
    """Apply the ground correction of a floor height grid to a point cloud."""

    def neighbour_indices(self, points: np.ndarray, grid: SpatialGrid):
        """Locate the 2×2 block of cell centres bracketing each point.

        Returns
        -------
        tuple
            `(bottom, top, left, right, x_ratio, y_ratio)`; the four index
            arrays are clamped into the grid, so points near the border
            reuse the border cells.
        """
        row, col = grid.to_cell_index(points[:, 0], points[:, 1])
        center_x, center_y = grid.cell_center(row, col)
        x_ratio = (points[:, 0] - center_x) / grid.section_len
        y_ratio = (points[:, 1] - center_y) / grid.section_len

        # A point left of / below its cell centre belongs to the block
        # starting one cell earlier
        below = y_ratio < 0
        row = np.where(below, row - 1, row)
        y_ratio = np.where(below, y_ratio + 1.0, y_ratio)
        left_of = x_ratio < 0
        col = np.where(left_of, col - 1, col)
        x_ratio = np.where(left_of, x_ratio + 1.0, x_ratio)

        bottom = clamp(row, 0, grid.height - 1)
        top = clamp(row + 1, 0, grid.height - 1)
        left = clamp(col, 0, grid.width - 1)
        right = clamp(col + 1, 0, grid.width - 1)
        return bottom, top, left, right, x_ratio, y_ratio

    def adjust_points(self, points: np.ndarray, grid: SpatialGrid, floor_heights: np.ndarray) -> np.ndarray:
        """Flatten `points` in place against `floor_heights`.

        Parameters
        ----------
        points : numpy.ndarray
            Array of shape (N, M) with XYZ in columns 0–2.
        grid : SpatialGrid
            Grid the floor heights were estimated on.
        floor_heights : numpy.ndarray
            Array of shape `grid.shape`.

        Returns
        -------
        numpy.ndarray
            The same `points` array.
        """
        if len(points) == 0:
            return points
        if floor_heights.shape != grid.shape:
            raise ValueError(
                f"floor_heights shape {floor_heights.shape} does not match grid {grid.shape}"
            )
        bottom, top, left, right, x_ratio, y_ratio = self.neighbour_indices(points, grid)
        bl = floor_heights[bottom, left]
        br = floor_heights[bottom, right]
        tl = floor_heights[top, left]
        tr = floor_heights[top, right]
        return adjust(points, bl, br, tl, tr, x_ratio, y_ratio, grid.section_len)
