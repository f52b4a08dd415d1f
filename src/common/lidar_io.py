"""Point cloud file I/O.

Clouds are read into a `PointCloudFile`: a float array with columns
`x, y, z, intensity` plus whatever the format needs to be written back
unchanged (PCD header lines, the laspy header and extra dimensions).
Writers only replace the coordinates; intensity stays as it was read,
and PCD point count fields follow the number of records written.

Supported formats are ASCII PCD and LAS/LAZ (through laspy).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import laspy
import numpy as np

from ..utils.formatting import format_number
from ..utils.logging import get_logger

logger = get_logger(__name__)

PCD_PROGRESS_INTERVAL = 10000
"""Number of lines between progress messages while reading PCD files."""


@dataclass
class PointCloudFile:
    """In-memory point cloud together with the metadata needed to save it."""

    points: np.ndarray
    """Array of shape (N, 4) with columns x, y, z, intensity."""

    headers: List[str] = field(default_factory=list)
    """PCD header lines, kept verbatim."""

    las: Optional[laspy.LasData] = None
    """Original LAS data when read from a LAS/LAZ file."""

    def __len__(self) -> int:
        return len(self.points)


def _is_data_line(line: str) -> bool:
    return bool(line) and (line[0].isdigit() or line[0] == '-')


def _data_format(line: str) -> Optional[str]:
    """Return the storage format named by a `DATA` header line, else None."""
    parts = line.split()
    if parts and parts[0].upper() == "DATA":
        return parts[1].lower() if len(parts) > 1 else ""
    return None


def read_pcd(path) -> PointCloudFile:
    """Read an ASCII PCD file.

    The header ends at the `DATA` line, or at the first line starting
    with a digit or a minus sign when the file has no `DATA` line.
    Header lines are kept verbatim.  Every following line is a point
    record `x y z intensity`; records that cannot be parsed are logged
    and skipped.

    Parameters
    ----------
    path : str or Path
        Path to the PCD file.

    Returns
    -------
    PointCloudFile
        Points and header lines.

    Raises
    ------
    ValueError
        If the `DATA` line names anything other than `ascii`.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Point cloud not found: {path}")

    headers: List[str] = []
    rows: List[List[float]] = []
    in_header = True
    skipped = 0
    # Binary mode so a non-ASCII payload is never decoded before DATA is checked
    with open(path, 'rb') as f:
        for line_number, raw in enumerate(f, start=1):
            if in_header:
                line = raw.decode('utf-8').rstrip("\r\n")
                data_format = _data_format(line)
                if data_format is not None:
                    if data_format != "ascii":
                        raise ValueError(
                            f"Only ASCII PCD files are supported, {path} uses DATA {data_format or '?'}"
                        )
                    headers.append(line)
                    in_header = False
                    continue
                if not _is_data_line(line):
                    headers.append(line)
                    continue
                in_header = False
            else:
                line = raw.decode('utf-8', errors='replace').rstrip("\r\n")

            if line_number % PCD_PROGRESS_INTERVAL == 0:
                logger.debug("Loaded %s lines", format_number(line_number))
            if not line.strip():
                continue
            tokens = line.split()
            try:
                x, y, z = (float(t) for t in tokens[:3])
                intensity = int(float(tokens[3]))
            except (ValueError, IndexError):
                logger.warning("Error parsing line %d of %s, skipped", line_number, path.name)
                skipped += 1
                continue
            rows.append([x, y, z, intensity])

    points = np.array(rows, dtype=float).reshape(-1, 4)
    logger.info("Loaded %s points from %s", format_number(len(points)), path)
    if skipped:
        logger.warning("Skipped %d malformed records in %s", skipped, path.name)
    return PointCloudFile(points=points, headers=headers)


def _count_headers(headers: List[str], n_points: int) -> List[str]:
    """Rewrite WIDTH/HEIGHT/POINTS when they no longer match `n_points`.

    Headers that already declare `n_points` points are returned
    unchanged, so organised clouds keep their WIDTH × HEIGHT layout.
    """
    declared = None
    for line in headers:
        parts = line.split()
        if len(parts) > 1 and parts[0].upper() == "POINTS":
            declared = parts[1]
    if declared == str(n_points):
        return list(headers)

    result = []
    for line in headers:
        key = line.split()[0].upper() if line.split() else ""
        if key == "WIDTH":
            result.append(f"WIDTH {n_points}")
        elif key == "HEIGHT":
            result.append("HEIGHT 1")
        elif key == "POINTS":
            result.append(f"POINTS {n_points}")
        else:
            result.append(line)
    return result


def write_pcd(path, cloud: PointCloudFile) -> None:
    """Write a point cloud as ASCII PCD using its original header lines.

    The point count fields of the header are updated when records were
    dropped while reading.
    """
    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        for line in _count_headers(cloud.headers, len(cloud.points)):
            f.write(f"{line}\n")
        for x, y, z, intensity in cloud.points[:, :4]:
            f.write(f"{x:.9g} {y:.9g} {z:.9g} {int(intensity)}\n")


def read_las(path) -> PointCloudFile:
    """Read a LAS or LAZ file with laspy."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Point cloud not found: {path}")
    las = laspy.read(path)

    intensity = getattr(las, "intensity", None)
    if intensity is None:
        intensity = np.zeros(len(las.points))

    points = np.column_stack([
        np.asarray(las.x, dtype=float),
        np.asarray(las.y, dtype=float),
        np.asarray(las.z, dtype=float),
        np.asarray(intensity, dtype=float),
    ])
    logger.info("Loaded %s points from %s", format_number(len(points)), path)
    return PointCloudFile(points=points, las=las)


def write_las(path, cloud: PointCloudFile) -> None:
    """Write the coordinates of `cloud` back into its LAS data and save it."""
    if cloud.las is None:
        raise ValueError("Point cloud was not read from a LAS/LAZ file")
    if len(cloud.points) != len(cloud.las.points):
        raise ValueError("Point count changed since the LAS file was read")
    las = cloud.las
    las.x = cloud.points[:, 0]
    las.y = cloud.points[:, 1]
    las.z = cloud.points[:, 2]
    las.write(str(path))


_READERS = {".pcd": read_pcd, ".las": read_las, ".laz": read_las}
_WRITERS = {".pcd": write_pcd, ".las": write_las, ".laz": write_las}


def load_point_cloud(path) -> PointCloudFile:
    """Load a point cloud, choosing the reader from the file suffix."""
    path = Path(path)
    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported point cloud format: {path.suffix}")
    return reader(path)


def save_point_cloud(path, cloud: PointCloudFile) -> None:
    """Save a point cloud, choosing the writer from the file suffix."""
    path = Path(path)
    writer = _WRITERS.get(path.suffix.lower())
    if writer is None:
        raise ValueError(f"Unsupported point cloud format: {path.suffix}")
    writer(path, cloud)
