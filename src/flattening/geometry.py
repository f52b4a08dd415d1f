"""Geometry primitives used by the ground flattening routines.

The interpolation helpers work on plain floats as well as NumPy arrays,
so the same functions serve single points and whole point clouds.
Ratios are expressed in grid-cell units: `x_ratio = 0` is the left
column of a 2×2 block of cell centres, `x_ratio = 1` the right one.
"""

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class BoundingBox:
    """Axis-aligned bounding box in the XY plane."""

    minx: float = 0.0
    miny: float = 0.0
    maxx: float = 0.0
    maxy: float = 0.0

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        """Compute the XY bounding box of a point cloud.

        The extremes are accumulated starting from zero rather than from
        the first point, so the box always contains the origin.  Grid
        cell boundaries depend on this, so it must not be changed
        without re-validating the estimated floor heights.

        Parameters
        ----------
        points : numpy.ndarray
            Array of shape (N, M) with XY in columns 0–1.

        Returns
        -------
        BoundingBox
            Box covering every point and the origin.
        """
        if len(points) == 0:
            return cls()
        x = points[:, 0]
        y = points[:, 1]
        return cls(
            minx=float(min(0.0, x.min())),
            miny=float(min(0.0, y.min())),
            maxx=float(max(0.0, x.max())),
            maxy=float(max(0.0, y.max())),
        )

    @property
    def width(self) -> float:
        return self.maxx - self.minx

    @property
    def height(self) -> float:
        return self.maxy - self.miny

    def contains(self, x: float, y: float) -> bool:
        return self.minx <= x <= self.maxx and self.miny <= y <= self.maxy

    def __str__(self) -> str:
        return f"[ ({self.minx:g}, {self.miny:g}), ({self.maxx:g}, {self.maxy:g}) ]"


def lerp(a, b, r):
    """Linear interpolation between `a` and `b`; extrapolates outside [0, 1]."""
    return a * (1 - r) + b * r


def bilinear_interpolate(bottom_left, bottom_right, top_left, top_right, x_ratio, y_ratio):
    """Interpolate a value inside a 2×2 block of samples.

    The bottom and top edges are interpolated horizontally first and
    the two results are then interpolated vertically.  Keep this order:
    reference outputs were produced with it.
    """
    bottom = lerp(bottom_left, bottom_right, x_ratio)
    top = lerp(top_left, top_right, x_ratio)
    return lerp(bottom, top, y_ratio)


def interpolate_tilt_angles(bl, br, tl, tr, x_ratio, y_ratio, scale):
    """Estimate the local ground inclination along X and Y.

    Parameters
    ----------
    bl, br, tl, tr : float or numpy.ndarray
        Floor heights at the bottom-left, bottom-right, top-left and
        top-right cell centres.
    x_ratio, y_ratio : float or numpy.ndarray
        Position of the target point inside the block.
    scale : float
        Distance between neighbouring cell centres (the cell side
        length).

    Returns
    -------
    (float, float) or (numpy.ndarray, numpy.ndarray)
        `(x_theta, y_theta)` in radians.
    """
    left_z = lerp(bl, tl, y_ratio)
    right_z = lerp(br, tr, y_ratio)
    x_theta = np.arctan((right_z - left_z) / scale)

    bot_z = lerp(bl, br, x_ratio)
    top_z = lerp(tl, tr, x_ratio)
    y_theta = np.arctan((top_z - bot_z) / scale)
    return x_theta, y_theta


def ceiling_divide(a: float, b: float) -> int:
    """Integer ceiling of `a / b` for non-negative `a` and positive `b`."""
    fraction, whole = math.modf(a / b)
    return int(whole) + (1 if fraction > 0 else 0)


def clamp(val, low, high):
    """Clamp an integer index into `[low, high]`; elementwise on arrays."""
    return np.clip(val, low, high)
