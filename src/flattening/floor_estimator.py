"""Per-cell ground height estimation.

Every point is binned into the grid cell below it, and the floor height
of a cell is a low percentile of the Z values observed there.  Taking a
low percentile instead of the minimum rejects stray returns below the
real surface (multipath, noise) while still following the ground
rather than vegetation or objects standing on it.

Cells with too few points are not trusted and get a floor height of 0.
"""

from dataclasses import dataclass
from typing import List

import numpy as np

from .geometry import clamp
from .grid import SpatialGrid


@dataclass
class FloorEstimator:
    """Estimate one floor height per grid cell."""

    min_points_per_block: int = 100
    """Cells need strictly more points than this to get a floor height."""

    percentile_divisor: int = 20
    """The floor is the value at rank `count // percentile_divisor` of the
    sorted Z values (20 gives roughly the 5th percentile)."""

    def __post_init__(self):
        if self.percentile_divisor < 1:
            raise ValueError("percentile_divisor must be at least 1")
        if self.min_points_per_block < 0:
            raise ValueError("min_points_per_block must be non-negative")

    def bin_points(self, points: np.ndarray, grid: SpatialGrid) -> List[List[np.ndarray]]:
        """Collect the Z values of all points per grid cell.

        Indices are clamped into the grid so that points lying exactly on
        the upper edge of the bounding box end up in the last row or
        column.

        Parameters
        ----------
        points : numpy.ndarray
            Array of shape (N, M) with XYZ in columns 0–2.
        grid : SpatialGrid
            Grid sized from the bounding box of the same points.

        Returns
        -------
        list of list of numpy.ndarray
            `bins[row][col]` holds the Z values of that cell in input order.
        """
        height, width = grid.shape
        bins = [[np.empty(0) for _ in range(width)] for _ in range(height)]
        if len(points) == 0:
            return bins

        row, col = grid.to_cell_index(points[:, 0], points[:, 1])
        row = clamp(row, 0, height - 1)
        col = clamp(col, 0, width - 1)
        flat = row * width + col

        # Stable sort keeps the input order inside each cell
        order = np.argsort(flat, kind="stable")
        cells, starts = np.unique(flat[order], return_index=True)
        groups = np.split(points[order, 2], starts[1:])
        for cell, z_values in zip(cells, groups):
            r, c = divmod(int(cell), width)
            bins[r][c] = z_values
        return bins

    def floor_height(self, z_values: np.ndarray) -> float:
        """Return the floor height for the Z values of one cell."""
        if len(z_values) <= self.min_points_per_block:
            return 0.0
        k = len(z_values) // self.percentile_divisor
        return float(np.sort(z_values)[k])

    def estimate(self, points: np.ndarray, grid: SpatialGrid) -> np.ndarray:
        """Estimate the floor height of every grid cell.

        Returns
        -------
        numpy.ndarray
            Array of shape `grid.shape`; 0 for cells that were skipped.
        """
        bins = self.bin_points(points, grid)
        return self.estimate_from_bins(bins, grid)

    def estimate_from_bins(self, bins: List[List[np.ndarray]], grid: SpatialGrid) -> np.ndarray:
        floor_heights = np.zeros(grid.shape, dtype=float)
        for r, row_bins in enumerate(bins):
            for c, z_values in enumerate(row_bins):
                floor_heights[r, c] = self.floor_height(z_values)
        return floor_heights
