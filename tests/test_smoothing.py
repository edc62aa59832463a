"""Tests for Laplacian mesh smoothing."""

import numpy as np
import pytest

from legcast.geometry import indexed_mesh
from legcast.meshing import fallback_cylinder_mesh
from legcast.smoothing import neighbor_means, smooth_mesh

from conftest import ring_points


@pytest.fixture
def triangle():
    vertices = np.array([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [0.0, 0.0, 3.0], [9.0, 9.0, 9.0]])
    # Vertex 3 belongs to no face
    return indexed_mesh(vertices, [[0, 1, 2]])


class TestNeighborMeans:
    def test_triangle(self, triangle):
        means, counts = neighbor_means(triangle)
        assert list(counts) == [2, 2, 2, 0]
        np.testing.assert_allclose(means[0], [1.5, 0.0, 1.5])
        np.testing.assert_allclose(means[3], [0.0, 0.0, 0.0])


class TestSmoothMesh:
    def test_one_iteration(self, triangle):
        out = smooth_mesh(triangle, iterations=1)
        # 0.5 * (0,0,0) + 0.5 * mean((3,0,0), (0,0,3))
        np.testing.assert_allclose(out.vertices[0], [0.75, 0.0, 0.75])
        np.testing.assert_allclose(out.vertices[1], [0.5 * 3 + 0.5 * 0.0, 0.0, 0.5 * 1.5])

    def test_isolated_vertex_unchanged(self, triangle):
        out = smooth_mesh(triangle, iterations=3)
        np.testing.assert_array_equal(out.vertices[3], [9.0, 9.0, 9.0])

    def test_input_not_modified(self, triangle):
        before = np.array(triangle.vertices)
        smooth_mesh(triangle, iterations=2)
        np.testing.assert_array_equal(triangle.vertices, before)

    def test_topology_preserved(self):
        mesh = fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(30, 200, 16)]))
        out = smooth_mesh(mesh, iterations=3)
        np.testing.assert_array_equal(out.faces, mesh.faces)
        assert len(out.vertices) == len(mesh.vertices)

    def test_reduces_noise(self):
        rng = np.random.default_rng(3)
        mesh = fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(40, 200, 16)]))
        noisy = indexed_mesh(mesh.vertices + rng.normal(0, 2.0, mesh.vertices.shape), mesh.faces)
        out = smooth_mesh(noisy, iterations=3)

        def roughness(m):
            means, _ = neighbor_means(m)
            return np.linalg.norm(np.asarray(m.vertices) - means, axis=1).mean()

        assert roughness(out) < roughness(noisy)

    def test_zero_iterations(self, triangle):
        out = smooth_mesh(triangle, iterations=0)
        np.testing.assert_array_equal(out.vertices, triangle.vertices)
