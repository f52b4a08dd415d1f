"""Ground flattening package.

This package estimates the ground surface of a LiDAR point cloud on a
regular grid and transforms the points so that the ground becomes the
z = 0 plane without local tilt.  It contains the geometry helpers, the
spatial grid, the per-cell floor estimator, the point adjuster, the
`Flattener` that chains them, and a batch driver for directories of
point cloud files.
"""

from .geometry import (
    BoundingBox,
    bilinear_interpolate,
    ceiling_divide,
    clamp,
    interpolate_tilt_angles,
    lerp,
)
from .grid import SpatialGrid
from .floor_estimator import FloorEstimator
from .point_adjuster import PointAdjuster, adjust
from .flattener import FlattenConfig, FlattenSummary, Flattener, flatten_points

__all__ = [
    "BoundingBox",
    "bilinear_interpolate",
    "ceiling_divide",
    "clamp",
    "interpolate_tilt_angles",
    "lerp",
    "SpatialGrid",
    "FloorEstimator",
    "PointAdjuster",
    "adjust",
    "FlattenConfig",
    "FlattenSummary",
    "Flattener",
    "flatten_points",
]
