"""Shared point cloud I/O."""

from .lidar_io import (
    PointCloudFile,
    load_point_cloud,
    read_las,
    read_pcd,
    save_point_cloud,
    write_las,
    write_pcd,
)

__all__ = [
    "PointCloudFile",
    "load_point_cloud",
    "read_las",
    "read_pcd",
    "save_point_cloud",
    "write_las",
    "write_pcd",
]
