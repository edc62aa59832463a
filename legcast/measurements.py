"""Leg measurements - Circumferences and length from height bands of the cloud."""

import math

import numpy as np
from dataclasses import dataclass, asdict
from typing import Dict

from .geometry import finite_points


# Bands as fractions of the points ordered from the floor upward
ANKLE_BAND = (0.0, 0.1)
CALF_BAND = (0.4, 0.6)


@dataclass(frozen=True)
class Measurements:
    """Clinical leg measurements in millimeters."""

    ankle_circumference_mm: float
    calf_circumference_mm: float
    total_length_mm: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def estimate_circumference(points: np.ndarray) -> float:
    """
    Circumference of a band as 2*pi times its mean radius.

    Radius is measured in the horizontal XZ plane from the band centroid.
    Returns 0 for an empty band.
    """
    if len(points) == 0:
        return 0.0
    center_x = points[:, 0].mean()
    center_z = points[:, 2].mean()
    radius = np.hypot(points[:, 0] - center_x, points[:, 2] - center_z).mean()
    return float(2 * math.pi * radius)


def height_band(points_by_height: np.ndarray, band) -> np.ndarray:
    """Slice of height-ordered points between two fractions of the count."""
    n = len(points_by_height)
    start, stop = int(n * band[0]), int(n * band[1])
    return points_by_height[start:stop]


def estimate_measurements(points: np.ndarray) -> Measurements:
    """
    Estimate ankle and calf circumference and total length.

    Image rows grow downward, so larger Y is closer to the floor. Points
    are ordered floor-first: the ankle band is the first 10% of them and
    the calf band the 40-60% slice. Length is the full Y extent.

    Ordering by ascending Y instead would take the ankle band from the top
    of the frame (the knee end). Ankle values from tools that do that are
    not comparable with these.

    Args:
        points: (N, 3) point cloud, typically after downsampling

    Returns:
        Measurements (all zeros for an empty cloud)
    """
    cloud = finite_points(points)
    if len(cloud) == 0:
        print("Measurements: empty point cloud")
        return Measurements(0.0, 0.0, 0.0)

    floor_first = cloud[np.argsort(-cloud[:, 1], kind='stable')]

    ankle = estimate_circumference(height_band(floor_first, ANKLE_BAND))
    calf = estimate_circumference(height_band(floor_first, CALF_BAND))
    length = float(cloud[:, 1].max() - cloud[:, 1].min())

    print(f"Measurements - Ankle: {ankle:.1f}mm, Calf: {calf:.1f}mm, Length: {length:.1f}mm")

    return Measurements(
        ankle_circumference_mm=ankle,
        calf_circumference_mm=calf,
        total_length_mm=length,
    )
