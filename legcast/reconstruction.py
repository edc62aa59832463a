"""Point cloud reconstruction - Lift 2D leg silhouettes into 3D.

The camera is assumed to orbit the leg at a uniform rate around a vertical
axis, so frame i of n was taken at angle i/n * total_rotation. Each
silhouette point is placed at its horizontal offset from the frame center,
rotated by that angle. This is exact only for a perfectly axially symmetric
leg and is the dominant source of measurement error.
"""

import numpy as np
import trimesh
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .geometry import as_cloud
from .silhouette import contour_stats, extract_leg_silhouette


@dataclass
class PointCloudBuild:
    """Result of lifting a frame sequence into a point cloud."""

    points: np.ndarray        # (N, 3) mm
    frames_used: int
    frames_skipped: int
    angles: np.ndarray        # degrees, one per input frame

    @property
    def frame_count(self) -> int:
        return self.frames_used + self.frames_skipped


def assign_rotation_angles(frame_count: int, total_rotation_degrees: float = 360.0) -> np.ndarray:
    """Rotation angle of each frame under the uniform-rotation assumption."""
    if frame_count <= 0:
        return np.zeros(0)
    return np.arange(frame_count, dtype=np.float64) / frame_count * total_rotation_degrees


def lift_contour(
    contour: np.ndarray,
    width: int,
    height: int,
    mm_per_pixel: float,
    angle_deg: float,
) -> np.ndarray:
    """
    Map 2D contour pixels to 3D points for one rotation angle.

    x2d, y2d are the offsets from the frame center in mm. Height (Y) is
    rotation-invariant; the horizontal offset is swung around the vertical
    axis:  x = x2d*cos(a), y = y2d, z = x2d*sin(a).

    Returns:
        (K, 3) float64 array
    """
    pts = np.asarray(contour, dtype=np.float64).reshape(-1, 2)
    angle = np.radians(angle_deg)

    x2d = (pts[:, 0] - width / 2.0) * mm_per_pixel
    y2d = (pts[:, 1] - height / 2.0) * mm_per_pixel

    return np.column_stack([
        x2d * np.cos(angle),
        y2d,
        x2d * np.sin(angle),
    ])


def build_point_cloud(
    frames: Sequence[np.ndarray],
    mm_per_pixel: float,
    total_rotation_degrees: float = 360.0,
    workers: int = 1,
) -> PointCloudBuild:
    """
    Build a 3D point cloud from an ordered frame sequence.

    Angles are assigned from frame index before any work is dispatched, so
    extracting silhouettes on several threads does not change the result.
    Frames with no silhouette are skipped without error.

    Args:
        frames: BGR frames in capture order
        mm_per_pixel: Scale from ruler calibration
        total_rotation_degrees: Rotation covered by the whole sequence
        workers: Threads used for silhouette extraction

    Returns:
        PointCloudBuild with the cloud and per-frame bookkeeping
    """
    n = len(frames)
    angles = assign_rotation_angles(n, total_rotation_degrees)
    print(f"Building point cloud from {n} frames ({total_rotation_degrees:.0f} deg sweep)")

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            contours = list(executor.map(extract_leg_silhouette, frames))
    else:
        contours = [extract_leg_silhouette(f) for f in frames]

    chunks: List[np.ndarray] = []
    skipped = 0
    for index, (frame, contour, angle) in enumerate(zip(frames, contours, angles)):
        if contour is None:
            skipped += 1
            continue
        h, w = frame.shape[:2]
        chunks.append(lift_contour(contour, w, h, mm_per_pixel, angle))

        if index % 10 == 0:
            stats = contour_stats(contour)
            print(f"  Processed frame {index}/{n}, angle: {angle:.1f} deg, "
                  f"silhouette {stats['points']} pts, area {stats['area']:.0f} px")

    points = np.vstack(chunks) if chunks else np.zeros((0, 3))
    print(f"  Generated {len(points):,} 3D points ({skipped} frames without silhouette)")

    return PointCloudBuild(
        points=points,
        frames_used=n - skipped,
        frames_skipped=skipped,
        angles=angles,
    )


def point_cloud_stats(points: np.ndarray, stage: str = '') -> Dict:
    """
    Summary statistics of a point cloud.

    Returns:
        {
            'total': int,
            'invalid': int,          # points with NaN/inf coordinates
            'bounds': (min, max) lists, or None,
            'height_range': float,
            'density': float,        # points per mm^3 of bounding box
            'warnings': [str, ...],
        }
    """
    cloud = as_cloud(points)
    finite = np.isfinite(cloud).all(axis=1)
    valid = cloud[finite]
    warnings = []

    stats = {
        'stage': stage,
        'total': int(len(cloud)),
        'invalid': int((~finite).sum()),
        'bounds': None,
        'height_range': 0.0,
        'density': 0.0,
        'warnings': warnings,
    }

    if len(cloud) == 0:
        warnings.append("Point cloud is empty")
        return stats
    if stats['invalid']:
        warnings.append(f"{stats['invalid']} points have invalid coordinates")
    if len(valid) == 0:
        warnings.append("No valid points after filtering")
        return stats

    lo, hi = valid.min(axis=0), valid.max(axis=0)
    extent = hi - lo
    volume = float(np.prod(extent))

    stats['bounds'] = (lo.tolist(), hi.tolist())
    stats['height_range'] = float(extent[1])
    stats['density'] = len(valid) / volume if volume > 0 else 0.0

    if extent[1] < 10:
        warnings.append(
            f"Very small height range ({extent[1]:.1f} mm) - mesh slicing may fail"
        )

    return stats


def export_point_cloud_ply(points: np.ndarray, path) -> Optional[Path]:
    """
    Write a point cloud to a PLY file for external inspection.

    Returns:
        Path written, or None if the cloud has no finite points
    """
    cloud = as_cloud(points)
    cloud = cloud[np.isfinite(cloud).all(axis=1)]
    if len(cloud) == 0:
        print("Point cloud is empty, skipping PLY export")
        return None

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    trimesh.PointCloud(cloud).export(str(path), file_type='ply')
    print(f"Exported point cloud: {path} ({len(cloud):,} points)")
    return path
