"""Mesh smoothing module - Reduce triangulation noise before printing."""

import numpy as np
import trimesh


SMOOTH_FACTOR = 0.5


def neighbor_means(mesh: trimesh.Trimesh):
    """
    Mean neighbor position of every vertex.

    Two vertices are neighbors when they share a triangle edge. Adjacency
    is by vertex index, never by coordinate equality.

    Returns:
        (means, counts): (V, 3) neighbor means and (V,) neighbor counts.
        Rows with count 0 are zeros.
    """
    n = len(mesh.vertices)
    edges = mesh.edges_unique
    vertices = np.asarray(mesh.vertices)

    counts = np.bincount(edges.ravel(), minlength=n)
    sums = np.zeros((n, 3), dtype=np.float64)
    np.add.at(sums, edges[:, 0], vertices[edges[:, 1]])
    np.add.at(sums, edges[:, 1], vertices[edges[:, 0]])

    means = np.zeros_like(sums)
    has = counts > 0
    means[has] = sums[has] / counts[has, None]
    return means, counts


def smooth_mesh(mesh: trimesh.Trimesh, iterations: int = 3) -> trimesh.Trimesh:
    """
    Apply Laplacian smoothing.

    Each pass moves every vertex halfway toward the mean of its neighbors
    (new = 0.5 * old + 0.5 * mean); all vertices update from the previous
    pass's positions. Vertices with no neighbors stay put. Connectivity
    and face order are unchanged.

    Args:
        mesh: Input mesh
        iterations: Number of smoothing iterations

    Returns:
        Smoothed copy of mesh
    """
    print(f"Applying Laplacian smoothing ({iterations} iterations)")

    smoothed = mesh.copy()
    if len(smoothed.faces) == 0 or iterations <= 0:
        return smoothed

    for _ in range(iterations):
        means, counts = neighbor_means(smoothed)
        vertices = np.array(smoothed.vertices, dtype=np.float64)
        has = counts > 0
        vertices[has] = (1 - SMOOTH_FACTOR) * vertices[has] + SMOOTH_FACTOR * means[has]
        smoothed.vertices = vertices

    print(f"  Output: {len(smoothed.vertices):,} vertices, {len(smoothed.faces):,} faces")
    return smoothed
