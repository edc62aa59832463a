"""Voxel downsampling - Bound point cloud size before meshing."""

import numpy as np
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .errors import DegradationReason
from .geometry import finite_points

if TYPE_CHECKING:
    from .config import PipelineConfig


@dataclass
class DownsampleResult:
    """Outcome of the graduated downsampling policy."""

    points: np.ndarray
    voxel_size: float
    tier: str                      # 'base', 'large' or 'extreme'
    input_count: int
    degradation: Optional[DegradationReason] = None

    @property
    def count(self) -> int:
        return int(len(self.points))


def downsample(points: np.ndarray, voxel_size: float) -> np.ndarray:
    """
    Replace every occupied voxel's points with their mean.

    Space is cut into cubes of edge voxel_size; a point belongs to voxel
    floor(coord / voxel_size) on each axis. Output is ordered by voxel key,
    and downsampling the output again with the same size returns it
    unchanged.

    Args:
        points: (N, 3) point cloud in mm
        voxel_size: Voxel edge in mm (> 0)

    Returns:
        (M, 3) array with M <= N
    """
    if voxel_size <= 0:
        raise ValueError(f"voxel_size must be positive, got {voxel_size}")

    cloud = finite_points(points)
    if len(cloud) == 0:
        return cloud

    keys = np.floor(cloud / voxel_size).astype(np.int64)
    _, inverse, counts = np.unique(keys, axis=0, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)

    sums = np.zeros((len(counts), 3), dtype=np.float64)
    np.add.at(sums, inverse, cloud)
    return sums / counts[:, None]


def downsample_with_ceiling(
    points: np.ndarray,
    config: 'PipelineConfig',
) -> DownsampleResult:
    """
    Downsample, escalating the voxel size while the cloud is too large.

    Tries the configured voxel size, then the 'large' and 'extreme' tiers,
    stopping at the first result within config.max_points. Only the voxel
    size changes between attempts. If even the extreme tier is over the
    ceiling its result is returned anyway, flagged as degraded, so the run
    still terminates.
    """
    input_count = int(len(points))
    result = None

    for tier, voxel_size in config.voxel_tiers:
        reduced = downsample(points, voxel_size)
        print(f"Downsampled ({tier}, {voxel_size:.1f} mm voxels): {input_count:,} -> {len(reduced):,} points")

        result = DownsampleResult(
            points=reduced,
            voxel_size=voxel_size,
            tier=tier,
            input_count=input_count,
        )
        if len(reduced) <= config.max_points:
            break
        print(f"  Over ceiling of {config.max_points:,} points, escalating voxel size")

    if result.tier != 'base':
        result.degradation = DegradationReason.POINTS_REDUCED
    if result.count > config.max_points:
        result.degradation = DegradationReason.POINT_CEILING_EXCEEDED
        print(f"  WARNING: still {result.count:,} points after extreme tier")

    return result
