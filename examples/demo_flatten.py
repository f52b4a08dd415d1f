"""Demo script for ground flattening with synthetic data.

This script creates a point cloud of gently rolling terrain with a few
objects standing on it, writes it as an ASCII PCD file, flattens it
with the batch driver and reports how far the ground points ended up
from z = 0.

Usage:
    python examples/demo_flatten.py
"""

import sys
from pathlib import Path
import numpy as np

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.common.lidar_io import PointCloudFile, read_pcd, write_pcd
from src.flattening.batch import flatten_directory
from src.flattening.flattener import FlattenConfig


def terrain_height(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Smooth synthetic ground surface: a slope plus a long wave."""
    return 0.05 * x + 0.02 * y + 1.5 * np.sin(x / 40.0)


def create_synthetic_scan(
    n_points: int = 60000,
    area_size: float = 120.0,
    seed: int = 0
) -> np.ndarray:
    """Create a synthetic scan with columns [X, Y, Z, intensity].

    Creates a point cloud with:
    - Sloped, undulating ground with small noise (80%)
    - Box-shaped objects 1-4 m above the ground (15%)
    - A few low outliers below the ground (5%)

    The ground points come first in the returned array.
    """
    rng = np.random.default_rng(seed)
    print("Creating synthetic scan...")

    n_ground = int(n_points * 0.8)
    n_objects = int(n_points * 0.15)
    n_outliers = n_points - n_ground - n_objects
    print(f"  - Ground points: {n_ground:,}")
    print(f"  - Object points: {n_objects:,}")
    print(f"  - Low outliers: {n_outliers:,}")

    x_ground = rng.uniform(0, area_size, n_ground)
    y_ground = rng.uniform(0, area_size, n_ground)
    z_ground = terrain_height(x_ground, y_ground) + rng.normal(0, 0.02, n_ground)

    centres = rng.uniform(10, area_size - 10, (6, 2))
    idx = rng.integers(0, len(centres), n_objects)
    x_objects = centres[idx, 0] + rng.uniform(-2, 2, n_objects)
    y_objects = centres[idx, 1] + rng.uniform(-2, 2, n_objects)
    z_objects = terrain_height(x_objects, y_objects) + rng.uniform(1, 4, n_objects)

    x_outliers = rng.uniform(0, area_size, n_outliers)
    y_outliers = rng.uniform(0, area_size, n_outliers)
    z_outliers = terrain_height(x_outliers, y_outliers) - rng.uniform(0.5, 2, n_outliers)

    x = np.concatenate([x_ground, x_objects, x_outliers])
    y = np.concatenate([y_ground, y_objects, y_outliers])
    z = np.concatenate([z_ground, z_objects, z_outliers])
    intensity = rng.integers(0, 256, n_points).astype(float)

    points = np.column_stack([x, y, z, intensity])
    print(f"✓ Created {len(points):,} points")
    print(f"  Height range: [{z.min():.2f}, {z.max():.2f}]")
    return points


def pcd_header(n_points: int) -> list:
    return [
        "# .PCD v0.7 - Point Cloud Data file format",
        "VERSION 0.7",
        "FIELDS x y z intensity",
        "SIZE 4 4 4 4",
        "TYPE F F F I",
        "COUNT 1 1 1 1",
        f"WIDTH {n_points}",
        "HEIGHT 1",
        "VIEWPOINT 0 0 0 1 0 0 0",
        f"POINTS {n_points}",
        "DATA ascii",
    ]


def main():
    """Run the flattening demo."""
    print("=" * 70)
    print("Ground Flattening - Demo")
    print("=" * 70)
    print()

    input_dir = Path("output/demo_flatten")
    input_dir.mkdir(parents=True, exist_ok=True)

    points = create_synthetic_scan()
    n_ground = int(len(points) * 0.8)
    write_pcd(input_dir / "synthetic.pcd", PointCloudFile(points=points, headers=pcd_header(len(points))))
    print()

    config = FlattenConfig(section_len=20.0, min_points_per_block=100, percentile_divisor=20)
    written = flatten_directory(input_dir, config)

    flat = read_pcd(written[0]).points
    ground_z = flat[:n_ground, 2]
    print()
    print("=" * 70)
    print("Demo Complete!")
    print("=" * 70)
    print(f"Output file: {written[0]}")
    print(f"Ground height before: mean {points[:n_ground, 2].mean():.2f}, std {points[:n_ground, 2].std():.2f}")
    print(f"Ground height after:  mean {ground_z.mean():.2f}, std {ground_z.std():.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
