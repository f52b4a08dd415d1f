"""Flatten a point cloud against its estimated ground surface.

The `Flattener` wires the ground flattening steps together for one
in-memory point cloud:

    compute bbox -> build grid -> bin points -> estimate floors -> adjust points

Each step works on the whole cloud and must complete before the next
one starts, because a cell's floor height depends on every point in
it.  The point array is modified in place; intensity and any extra
columns are left untouched.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..utils.logging import get_logger
from .floor_estimator import FloorEstimator
from .geometry import BoundingBox
from .grid import SpatialGrid
from .point_adjuster import PointAdjuster

logger = get_logger(__name__)


def _convert_option(name: str, value: Any):
    """Convert a configuration value to the type of its field.

    Booleans are refused for every option.  Integer options accept whole
    numbers only, so `5`, `5.0` and `"5"` are fine but `2.7` is not.
    """
    invalid = ValueError(f"Invalid value for {name}: {value!r}")
    if isinstance(value, (bool, np.bool_)):
        raise invalid
    try:
        if name == "section_len":
            return float(value)
        if isinstance(value, float) and not value.is_integer():
            raise invalid
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise invalid from None


@dataclass
class FlattenConfig:
    """Tunable parameters of the flatten operation."""

    section_len: float = 20.0
    """Grid cell side length, in the units of the point coordinates."""

    min_points_per_block: int = 100
    """Noise rejection: cells with this many points or fewer are skipped."""

    percentile_divisor: int = 20
    """Floor aggressiveness: the floor is the value at rank
    `count // percentile_divisor` of the sorted Z values of a cell."""

    def __post_init__(self):
        if self.section_len <= 0:
            raise ValueError("section_len must be positive")
        if self.min_points_per_block < 0:
            raise ValueError("min_points_per_block must be non-negative")
        if self.percentile_divisor < 1:
            raise ValueError("percentile_divisor must be at least 1")

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "FlattenConfig":
        """Build a configuration from a mapping such as a parsed YAML file.

        Missing keys keep their defaults; unknown keys raise `ValueError`.
        """
        values = dict(values or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown flatten options: {', '.join(unknown)}")
        converted = {}
        for name, value in values.items():
            converted[name] = _convert_option(name, value)
        return cls(**converted)

    def override(self, **values: Any) -> "FlattenConfig":
        """Return a copy with the given non-None values replaced."""
        merged = asdict(self)
        merged.update({k: v for k, v in values.items() if v is not None})
        return FlattenConfig.from_dict(merged)


@dataclass
class FlattenSummary:
    """Outcome of one flatten operation."""

    point_count: int
    bbox: BoundingBox
    grid_shape: Tuple[int, int]
    estimated_cells: int
    """Number of cells that had enough points for a floor estimate."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Flattener:
    """Estimate the ground surface of a point cloud and flatten it.

    Intermediate results of the last run are kept on the instance
    (`bbox`, `grid`, `bins`, `floor_heights`) for inspection; they are
    recomputed by every call to `flatten`.
    """

    def __init__(self, config: Optional[FlattenConfig] = None):
        self.config = config or FlattenConfig()
        self.estimator = FloorEstimator(
            min_points_per_block=self.config.min_points_per_block,
            percentile_divisor=self.config.percentile_divisor,
        )
        self.adjuster = PointAdjuster()

        self.bbox: Optional[BoundingBox] = None
        self.grid: Optional[SpatialGrid] = None
        self.bins: Optional[List[List[np.ndarray]]] = None
        self.floor_heights: Optional[np.ndarray] = None

    def step_1_compute_bbox(self, points: np.ndarray) -> BoundingBox:
        self.bbox = BoundingBox.from_points(points)
        logger.debug("Full point cloud bbox: %s", self.bbox)
        return self.bbox

    def step_2_build_grid(self, bbox: BoundingBox) -> SpatialGrid:
        self.grid = SpatialGrid(section_len=self.config.section_len)
        height, width = self.grid.compute_dimensions(bbox)
        logger.debug("Grid of %d x %d cells, side %g", height, width, self.grid.section_len)
        return self.grid

    def step_3_bin_points(self, points: np.ndarray, grid: SpatialGrid) -> List[List[np.ndarray]]:
        self.bins = self.estimator.bin_points(points, grid)
        logger.debug(
            "Grid blocks' sizes:\n%s",
            _format_rows([[len(z) for z in row] for row in self.bins], "{:8d}"),
        )
        return self.bins

    def step_4_estimate_floors(self, bins: List[List[np.ndarray]], grid: SpatialGrid) -> np.ndarray:
        self.floor_heights = self.estimator.estimate_from_bins(bins, grid)
        logger.debug("Ground zs:\n%s", _format_rows(self.floor_heights.tolist(), "{:7.4g}"))
        return self.floor_heights

    def step_5_adjust_points(
        self,
        points: np.ndarray,
        grid: SpatialGrid,
        floor_heights: np.ndarray
    ) -> np.ndarray:
        return self.adjuster.adjust_points(points, grid, floor_heights)

    def flatten(self, points: np.ndarray) -> FlattenSummary:
        """Flatten a point cloud in place.

        Parameters
        ----------
        points : numpy.ndarray
            Float array of shape (N, M), M >= 3, with XYZ in columns 0–2.
            Modified in place.

        Returns
        -------
        FlattenSummary
            Bounding box, grid shape and number of estimated cells.
        """
        if points.ndim != 2 or points.shape[1] < 3:
            raise ValueError("points must be an (N, M) array with at least three columns (x,y,z)")
        if not np.issubdtype(points.dtype, np.floating):
            raise ValueError("points must be a floating point array to be modified in place")

        bbox = self.step_1_compute_bbox(points)
        grid = self.step_2_build_grid(bbox)
        bins = self.step_3_bin_points(points, grid)
        floor_heights = self.step_4_estimate_floors(bins, grid)
        self.step_5_adjust_points(points, grid, floor_heights)

        estimated = sum(
            1 for row in bins for z in row if len(z) > self.estimator.min_points_per_block
        )
        return FlattenSummary(
            point_count=len(points),
            bbox=bbox,
            grid_shape=grid.shape,
            estimated_cells=estimated,
        )


def flatten_points(points: np.ndarray, config: Optional[FlattenConfig] = None) -> FlattenSummary:
    """Convenience wrapper running one flatten operation with `config`."""
    return Flattener(config).flatten(points)


def _format_rows(rows: List[List[Any]], fmt: str) -> str:
    return "\n".join(" ".join(fmt.format(v) for v in row) for row in rows)
