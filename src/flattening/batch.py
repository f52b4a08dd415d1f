"""Flatten every point cloud in a directory.

Input files are discovered recursively by extension and written to an
output directory (by default `flat_output/` inside the input directory)
with `_flat` appended to the file stem.  A file that cannot be read or
written is reported and skipped; the rest of the batch continues.

Usage:
    python -m src.flattening.batch scans/ --ext .pcd --section-len 20
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from ..common.lidar_io import load_point_cloud, save_point_cloud
from ..utils.config import load_config
from ..utils.formatting import format_number
from ..utils.logging import get_logger, set_verbosity
from .flattener import FlattenConfig, Flattener

logger = get_logger(__name__)

OUTPUT_DIR_NAME = "flat_output"
OUTPUT_SUFFIX = "_flat"


def find_point_cloud_files(root, ext: str = ".pcd") -> List[Path]:
    """Return all files below `root` with extension `ext`, sorted.

    A missing or non-directory root gives an empty list.
    """
    root = Path(root)
    if not root.is_dir():
        return []
    if not ext.startswith("."):
        ext = f".{ext}"
    return sorted(p for p in root.rglob(f"*{ext}") if p.is_file() and p.suffix == ext)


def output_name(path, suffix: str = OUTPUT_SUFFIX) -> str:
    """Insert `suffix` before the first dot of the file name.

    `scan.pcd` becomes `scan_flat.pcd`; `scan.part1.pcd` becomes
    `scan_flat.part1.pcd`.
    """
    name = Path(path).name
    base, dot, extension = name.partition(".")
    return f"{base}{suffix}{dot}{extension}"


def flatten_file(input_path, output_path, config: Optional[FlattenConfig] = None) -> Path:
    """Load one point cloud, flatten it and save the result.

    Parameters
    ----------
    input_path : str or Path
        Source point cloud.
    output_path : str or Path
        Destination; its suffix selects the writer.
    config : FlattenConfig, optional
        Flatten parameters, defaults if omitted.

    Returns
    -------
    Path
        The written output path.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    logger.info("Now flattening %s...", input_path)

    cloud = load_point_cloud(input_path)
    summary = Flattener(config).flatten(cloud.points)
    logger.info(
        "Flattened %s points, bbox %s, grid %d x %d, %d cells with a floor estimate",
        format_number(summary.point_count),
        summary.bbox,
        summary.grid_shape[0],
        summary.grid_shape[1],
        summary.estimated_cells,
    )

    logger.info("Computations finished, writing output to %s...", output_path)
    save_point_cloud(output_path, cloud)
    return output_path


def flatten_directory(
    input_dir,
    config: Optional[FlattenConfig] = None,
    output_dir=None,
    ext: str = ".pcd"
) -> List[Path]:
    """Flatten all point clouds with extension `ext` below `input_dir`.

    Returns
    -------
    list of Path
        Output files that were written successfully.
    """
    input_dir = Path(input_dir)
    out_dir = Path(output_dir) if output_dir is not None else input_dir / OUTPUT_DIR_NAME
    out_dir.mkdir(parents=True, exist_ok=True)

    files = [p for p in find_point_cloud_files(input_dir, ext) if out_dir not in p.parents]
    if not files:
        logger.warning("No %s files found in %s", ext, input_dir)
        return []
    logger.info("Found %d %s files in %s", len(files), ext, input_dir)

    written: List[Path] = []
    for path in tqdm(files, desc="Flatten batch"):
        try:
            written.append(flatten_file(path, out_dir / output_name(path), config))
        except (OSError, ValueError) as e:
            logger.error("Failed to flatten %s: %s", path.name, e)
    return written


def build_config(args: argparse.Namespace) -> FlattenConfig:
    """Merge defaults, the optional YAML file and command-line overrides."""
    config = FlattenConfig()
    if args.config:
        if not Path(args.config).is_file():
            raise FileNotFoundError(f"Configuration file not found: {args.config}")
        values = load_config(args.config)
        config = FlattenConfig.from_dict(values.get("flatten", values))
    return config.override(
        section_len=args.section_len,
        min_points_per_block=args.min_points,
        percentile_divisor=args.percentile_divisor,
    )


def main(argv=None):
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Remove ground offset and tilt from every point cloud in a directory"
    )
    parser.add_argument(
        "input_dir",
        type=str,
        help="Directory searched recursively for point clouds"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help=f"Output directory (default: <input_dir>/{OUTPUT_DIR_NAME})"
    )
    parser.add_argument(
        "--ext",
        type=str,
        default=".pcd",
        help="File extension to process: .pcd, .las or .laz (default: .pcd)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file with a 'flatten' section"
    )
    parser.add_argument(
        "--section-len",
        type=float,
        default=None,
        help="Grid cell side length (default: 20)"
    )
    parser.add_argument(
        "--min-points",
        type=int,
        default=None,
        help="Cells need more points than this for a floor estimate (default: 100)"
    )
    parser.add_argument(
        "--percentile-divisor",
        type=int,
        default=None,
        help="Floor rank is count // divisor (default: 20, about the 5th percentile)"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log grid block sizes and floor heights"
    )

    args = parser.parse_args(argv)
    set_verbosity(args.verbose)

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    input_dir = Path(args.input_dir)
    if not input_dir.is_dir():
        logger.error("Input directory not found: %s", input_dir)
        return 1

    written = flatten_directory(input_dir, config, args.output_dir, args.ext)
    logger.info("Done, %d file(s) written", len(written))
    return 0


if __name__ == "__main__":
    sys.exit(main())
