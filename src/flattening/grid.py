"""Uniform square grid over the XY plane.

A `SpatialGrid` is sized from a `BoundingBox`: its origin is the lower
left corner of the box and it holds enough square cells of side
`section_len` to cover the box.  Row indices grow with Y and column
indices grow with X.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from .geometry import BoundingBox, ceiling_divide


@dataclass
class SpatialGrid:
    """Map XY coordinates to cell indices and back."""

    section_len: float = 20.0
    """Side length of one square grid cell."""

    height: int = field(default=0, init=False)
    width: int = field(default=0, init=False)
    base_x: Optional[float] = field(default=None, init=False)
    base_y: Optional[float] = field(default=None, init=False)

    def __post_init__(self):
        if self.section_len <= 0:
            raise ValueError("section_len must be positive")

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    def compute_dimensions(self, bbox: BoundingBox) -> Tuple[int, int]:
        """Size the grid to cover `bbox` and anchor it at its lower left corner.

        An axis with zero extent still gets one cell, so that a
        degenerate box has somewhere to put its points.

        Parameters
        ----------
        bbox : BoundingBox
            Box covering all points of the cloud.

        Returns
        -------
        (int, int)
            Number of rows and columns.
        """
        self.height = max(1, ceiling_divide(bbox.maxy - bbox.miny, self.section_len))
        self.width = max(1, ceiling_divide(bbox.maxx - bbox.minx, self.section_len))
        self.base_x = bbox.minx
        self.base_y = bbox.miny
        return self.height, self.width

    def _check_sized(self) -> None:
        if self.base_x is None or self.base_y is None:
            raise RuntimeError("compute_dimensions must be called before using the grid")

    def to_cell_index(self, x, y):
        """Return `(row, col)` of the cell containing `(x, y)`.

        No clamping is done here; points outside the bounding box give
        indices outside `[0, height) × [0, width)`.  Accepts scalars or
        arrays.
        """
        self._check_sized()
        row = np.floor((y - self.base_y) / self.section_len)
        col = np.floor((x - self.base_x) / self.section_len)
        if np.ndim(row) == 0:
            return int(row), int(col)
        return row.astype(int), col.astype(int)

    def cell_center(self, row, col):
        """Return the `(x, y)` coordinates of a cell centre."""
        self._check_sized()
        x = self.base_x + self.section_len * (col + 0.5)
        y = self.base_y + self.section_len * (row + 0.5)
        return x, y
