"""Surface meshing - Slice a point cloud into rings and stitch them together.

Points are grouped into horizontal bands, each band is ordered by angle
around its own centroid, and consecutive rings are joined by a triangle
strip. The mesh is indexed: faces refer to rows of the (height-sorted)
cloud, so a point shared by two overlapping bands is one vertex.
"""

import math

import numpy as np
import trimesh
from typing import List

from .errors import (
    DegenerateHeight,
    EmptyInput,
    InsufficientPoints,
    NoTrianglesProduced,
)
from .geometry import as_cloud, cloud_bounds, finite_points, indexed_mesh


TARGET_SLICES = 12
MIN_SLICE_HEIGHT = 2.0        # mm
SLICE_OVERLAP = 0.1           # fraction of slice height added on both sides
MIN_RING_POINTS = 3
MIN_TRIANGLE_EDGE = 0.1       # mm - reject slivers with closer vertices
MIN_MESH_POINTS = 4


def sort_by_angle(vertices: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Order a band's vertex indices by polar angle around the band centroid.

    Angle is atan2(z - cz, x - cx), so rings wind the same way at every
    height.
    """
    indices = np.asarray(indices, dtype=np.int64)
    pts = vertices[indices]
    center = pts.mean(axis=0)
    angles = np.arctan2(pts[:, 2] - center[2], pts[:, 0] - center[0])
    return indices[np.argsort(angles, kind='stable')]


def _distinct(vertices: np.ndarray, a: int, b: int, c: int, min_distance: float) -> bool:
    pa, pb, pc = vertices[a], vertices[b], vertices[c]
    return (
        np.linalg.norm(pa - pb) > min_distance
        and np.linalg.norm(pb - pc) > min_distance
        and np.linalg.norm(pa - pc) > min_distance
    )


def connect_rings(
    vertices: np.ndarray,
    ring1: np.ndarray,
    ring2: np.ndarray,
    min_distance: float = MIN_TRIANGLE_EDGE,
) -> np.ndarray:
    """
    Stitch two angularly sorted rings with a triangle strip.

    Two cursors walk the rings together. At each step the quad
    (ring1[i1], ring1[i1+1], ring2[i2], ring2[i2+1]) is split along its
    shorter diagonal and the cursor that is behind in fractional progress
    advances. Triangles with any two vertices within min_distance are
    dropped. For rings of n1 and n2 points with nothing dropped this emits
    2 * (n1 + n2 - 1) triangles.

    Args:
        vertices: (V, 3) vertex positions
        ring1, ring2: Vertex indices of each ring, angularly sorted
        min_distance: Minimum pairwise vertex spacing (mm)

    Returns:
        (F, 3) int64 face array indexing into vertices
    """
    n1, n2 = len(ring1), len(ring2)
    faces: List[tuple] = []
    if n1 < MIN_RING_POINTS or n2 < MIN_RING_POINTS:
        return np.zeros((0, 3), dtype=np.int64)

    i1 = i2 = 0
    iterations = 0
    max_iterations = 2 * (n1 + n2)

    while i1 < n1 and i2 < n2 and iterations < max_iterations:
        p1 = ring1[i1]
        p2 = ring1[(i1 + 1) % n1]
        p3 = ring2[i2]
        p4 = ring2[(i2 + 1) % n2]

        d14 = np.linalg.norm(vertices[p1] - vertices[p4])
        d23 = np.linalg.norm(vertices[p2] - vertices[p3])
        if d14 < d23:
            candidates = ((p1, p3, p4), (p1, p4, p2))
        else:
            candidates = ((p1, p3, p2), (p2, p3, p4))

        for tri in candidates:
            if _distinct(vertices, *tri, min_distance):
                faces.append(tri)

        if (i1 + 1) / n1 < (i2 + 1) / n2:
            i1 += 1
        else:
            i2 += 1
        iterations += 1

    if iterations >= max_iterations:
        print(f"  WARNING: ring connection stopped at iteration limit ({max_iterations})")

    return np.asarray(faces, dtype=np.int64).reshape(-1, 3)


def build_mesh(
    points: np.ndarray,
    target_slices: int = TARGET_SLICES,
    min_slice_height: float = MIN_SLICE_HEIGHT,
) -> trimesh.Trimesh:
    """
    Build a triangulated open surface from a point cloud.

    Slice height is range / target_slices but never below min_slice_height;
    each band takes the points within its slice plus a 10% margin either
    side. Bands with fewer than 3 points are skipped and counted as empty;
    the remaining rings are stitched in height order.

    Slicing statistics are stored in mesh.metadata: 'height_range',
    'slice_height', 'num_slices', 'empty_slices', 'sparse_slices' (more
    than half the bands empty) and 'cloud_bounds'.

    Raises:
        EmptyInput: Cloud has no points
        InsufficientPoints: Fewer than 4 finite points
        DegenerateHeight: All points at the same height
        NoTrianglesProduced: No band pair yielded a triangle
    """
    cloud = as_cloud(points)
    if len(cloud) == 0:
        raise EmptyInput("Cannot create mesh from an empty point cloud")
    if len(cloud) < MIN_MESH_POINTS:
        raise InsufficientPoints(f"Need at least {MIN_MESH_POINTS} points, got {len(cloud)}")

    valid = finite_points(cloud)
    if len(valid) < len(cloud):
        print(f"  Filtered out {len(cloud) - len(valid)} invalid points")
    if len(valid) < MIN_MESH_POINTS:
        raise InsufficientPoints(
            f"Too few valid points after filtering invalid coordinates ({len(valid)})"
        )

    vertices = valid[np.argsort(valid[:, 1], kind='stable')]
    heights = vertices[:, 1]
    min_y, max_y = float(heights[0]), float(heights[-1])
    height_range = max_y - min_y
    if height_range <= 0:
        raise DegenerateHeight("Point cloud has no height variation")

    slice_height = max(height_range / target_slices, min_slice_height)
    num_slices = max(2, int(round(height_range / slice_height)))
    margin = slice_height * SLICE_OVERLAP

    print(f"Creating mesh from {len(vertices):,} points")
    print(f"  {num_slices} slices of {slice_height:.2f} mm (height range {height_range:.1f} mm)")

    rings = []
    empty_slices = 0
    for i in range(num_slices):
        lo = min_y + i * slice_height - margin
        hi = min_y + (i + 1) * slice_height + margin
        if i == num_slices - 1:
            hi = max(hi, max_y)

        start = np.searchsorted(heights, lo, side='left')
        stop = np.searchsorted(heights, hi, side='right')
        if stop - start < MIN_RING_POINTS:
            empty_slices += 1
            continue
        rings.append(sort_by_angle(vertices, np.arange(start, stop)))

    face_blocks = [
        connect_rings(vertices, lower, upper)
        for lower, upper in zip(rings[:-1], rings[1:])
    ]
    faces = np.vstack(face_blocks) if face_blocks else np.zeros((0, 3), dtype=np.int64)

    sparse = empty_slices > num_slices / 2
    if sparse:
        print(f"  WARNING: {empty_slices}/{num_slices} slices were empty or had insufficient points")

    if len(faces) == 0:
        raise NoTrianglesProduced(
            "Mesh generation failed: unable to create any triangles from point cloud"
        )

    print(f"  Generated {len(faces):,} triangles from {len(rings)} rings")

    return indexed_mesh(vertices, faces, metadata={
        'height_range': height_range,
        'slice_height': slice_height,
        'num_slices': num_slices,
        'empty_slices': empty_slices,
        'sparse_slices': sparse,
        'cloud_bounds': tuple(b.tolist() for b in cloud_bounds(vertices)),
        'fallback': False,
    })


def fallback_cylinder_mesh(
    points: np.ndarray,
    sides: int = 8,
    layers: int = 10,
    taper: float = 0.7,
) -> trimesh.Trimesh:
    """
    Coarse tapered cylinder fitted to the cloud's bounding box.

    Used when slicing cannot produce a surface. The radius shrinks linearly
    from half the widest horizontal extent at the bottom of the box to
    taper times that at the top. Flat or point-like clouds are padded to
    1 mm so the result is never degenerate.

    Raises:
        EmptyInput: Cloud has no finite points
    """
    cloud = finite_points(points)
    if len(cloud) == 0:
        raise EmptyInput("Cannot synthesize a fallback mesh from an empty point cloud")

    lo, hi = cloud_bounds(cloud)
    center_x = (lo[0] + hi[0]) / 2
    center_z = (lo[2] + hi[2]) / 2
    radius = max((hi[0] - lo[0]) / 2, (hi[2] - lo[2]) / 2, 1.0)
    height = max(hi[1] - lo[1], 1.0)

    print(f"Synthesizing fallback cylinder: r={radius:.1f} mm, h={height:.1f} mm, "
          f"{sides} sides x {layers} layers")

    theta = np.linspace(0.0, 2 * math.pi, sides, endpoint=False)
    vertices = []
    for k in range(layers):
        t = k / (layers - 1)
        r = radius * (1.0 - (1.0 - taper) * t)
        y = lo[1] + height * t
        vertices.append(np.column_stack([
            center_x + r * np.cos(theta),
            np.full(sides, y),
            center_z + r * np.sin(theta),
        ]))
    vertices = np.vstack(vertices)

    faces = []
    for k in range(layers - 1):
        for j in range(sides):
            a = k * sides + j
            b = k * sides + (j + 1) % sides
            c = (k + 1) * sides + j
            d = (k + 1) * sides + (j + 1) % sides
            faces.append((a, c, d))
            faces.append((a, d, b))

    return indexed_mesh(vertices, faces, metadata={
        'height_range': float(hi[1] - lo[1]),
        'slice_height': height / (layers - 1),
        'num_slices': layers,
        'empty_slices': 0,
        'sparse_slices': False,
        'cloud_bounds': (lo.tolist(), hi.tolist()),
        'fallback': True,
    })
