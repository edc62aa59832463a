"""Geometry helpers - Point clouds, bounds and triangle normals.

Point clouds are (N, 3) float64 arrays in millimeters. Y is the vertical
(height) axis; X and Z span the horizontal cross-section plane.
"""

import numpy as np
import trimesh
from typing import Tuple


DEFAULT_NORMAL = np.array([0.0, 1.0, 0.0])


def as_cloud(points) -> np.ndarray:
    """Coerce any point sequence to an (N, 3) float64 array."""
    cloud = np.asarray(points, dtype=np.float64)
    if cloud.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    return cloud.reshape(-1, 3)


def finite_points(cloud: np.ndarray) -> np.ndarray:
    """Drop points with any NaN or infinite coordinate."""
    cloud = as_cloud(cloud)
    return cloud[np.isfinite(cloud).all(axis=1)]


def cloud_bounds(cloud: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Axis-aligned bounding box of a point cloud.

    Returns:
        (min_point, max_point), each shape (3,)
    """
    cloud = as_cloud(cloud)
    if len(cloud) == 0:
        raise ValueError("Cannot compute bounds of an empty point cloud")
    return cloud.min(axis=0), cloud.max(axis=0)


def triangle_normals(triangles: np.ndarray) -> np.ndarray:
    """
    Unit face normals for an (F, 3, 3) array of triangles.

    Normal is cross(v2 - v1, v3 - v1), normalized. Zero-length normals
    (degenerate triangles) default to +Y. Triangles with non-finite
    vertices yield non-finite normals so callers can skip them.
    """
    triangles = np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3)
    u = triangles[:, 1] - triangles[:, 0]
    v = triangles[:, 2] - triangles[:, 0]
    normals = np.cross(u, v)

    with np.errstate(invalid='ignore'):
        length = np.linalg.norm(normals, axis=1)
        degenerate = length == 0
        safe = np.where(degenerate, 1.0, length)
        normals = normals / safe[:, None]

    normals[degenerate] = DEFAULT_NORMAL
    return normals


def finite_normal_mask(normals: np.ndarray) -> np.ndarray:
    """True for rows whose three components are all finite."""
    return np.isfinite(normals).all(axis=1)


def mesh_from_triangles(triangles: np.ndarray, metadata: dict = None) -> trimesh.Trimesh:
    """
    Build an unindexed (triangle soup) mesh from (F, 3, 3) triangles.

    Vertices are kept exactly as given, in face order; nothing is merged.
    """
    triangles = np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3)
    vertices = triangles.reshape(-1, 3)
    faces = np.arange(len(vertices), dtype=np.int64).reshape(-1, 3)
    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False, validate=False)
    if metadata:
        mesh.metadata.update(metadata)
    return mesh


def indexed_mesh(vertices: np.ndarray, faces, metadata: dict = None) -> trimesh.Trimesh:
    """
    Build an indexed mesh, preserving vertex and face order.

    Faces index into vertices; vertices not referenced by any face are kept
    so indices stay stable.
    """
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    mesh = trimesh.Trimesh(
        vertices=as_cloud(vertices),
        faces=faces,
        process=False,
        validate=False,
    )
    if metadata:
        mesh.metadata.update(metadata)
    return mesh
