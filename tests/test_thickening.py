"""Tests for shell thickening, its fallback, and shell topology checks."""

import numpy as np
import pytest

from legcast.errors import DegradationReason
from legcast.geometry import indexed_mesh, mesh_from_triangles, triangle_normals
from legcast.meshing import fallback_cylinder_mesh
from legcast.thickening import check_shell, thicken_mesh, thicken_with_fallback

from conftest import ring_points


# Normal of this winding is +Y
FLAT = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]])


class TestTriangleNormals:
    def test_unit_normal(self):
        np.testing.assert_allclose(triangle_normals(FLAT[None]), [[0.0, 1.0, 0.0]])

    def test_degenerate_defaults_up(self):
        tri = np.array([[[1.0, 1.0, 1.0]] * 3])
        np.testing.assert_allclose(triangle_normals(tri), [[0.0, 1.0, 0.0]])

    def test_nan_stays_non_finite(self):
        tri = FLAT.copy()
        tri[0, 0] = np.nan
        assert not np.isfinite(triangle_normals(tri[None])).all()


class TestThickenMesh:
    def test_offset_along_normal(self):
        out = thicken_mesh(mesh_from_triangles(FLAT[None]), thickness=3.0)
        np.testing.assert_allclose(out.triangles[0], FLAT + [0.0, 3.0, 0.0])
        assert out.metadata['thickness'] == 3.0

    def test_triangle_count_and_order_preserved(self):
        mesh = fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(30, 200, 16)]))
        out = thicken_mesh(mesh, 2.0)
        assert len(out.faces) == len(mesh.faces)
        normals = triangle_normals(mesh.triangles)
        np.testing.assert_allclose(out.triangles, mesh.triangles + 2.0 * normals[:, None, :])

    def test_shared_vertices_separate(self):
        # Two triangles sharing edge (0,0,0)-(1,0,0) with different normals
        vertices = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0]])
        mesh = indexed_mesh(vertices, [[0, 2, 1], [0, 1, 3]])
        out = thicken_mesh(mesh, 1.0)
        assert len(out.vertices) == 6
        first, second = out.triangles
        assert not np.allclose(first[0], second[0])

    def test_invalid_triangle_passed_through(self):
        bad = FLAT.copy()
        bad[1, 2] = np.nan
        out = thicken_mesh(mesh_from_triangles(np.stack([FLAT, bad])), 3.0)
        np.testing.assert_allclose(out.triangles[0], FLAT + [0.0, 3.0, 0.0])
        np.testing.assert_array_equal(out.triangles[1], bad)

    def test_input_not_modified(self):
        mesh = mesh_from_triangles(FLAT[None])
        thicken_mesh(mesh, 3.0)
        np.testing.assert_array_equal(mesh.triangles[0], FLAT)


class TestThickenWithFallback:
    def test_within_limit(self):
        result = thicken_with_fallback(mesh_from_triangles(FLAT[None]), 3.0, max_triangles=10)
        assert not result.degraded
        assert result.mesh.metadata['thickness'] == 3.0

    def test_over_limit_returns_input(self):
        mesh = fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(30, 200, 16)]))
        result = thicken_with_fallback(mesh, 3.0, max_triangles=100)
        assert result.degraded
        assert result.degradation == DegradationReason.THICKENING_SKIPPED
        assert result.mesh is mesh
        assert "144" in result.message


class TestCheckShell:
    def test_open_tube(self):
        mesh = fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(30, 200, 16)]))
        report = check_shell(mesh)
        assert report['triangles'] == 144
        assert report['watertight'] is False
        # Bottom and top rims, 8 edges each
        assert report['boundary_edges'] == 16
        assert report['non_manifold_edges'] == 0

    def test_thickened_soup_is_all_boundary(self):
        mesh = fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(30, 200, 16)]))
        report = check_shell(thicken_mesh(mesh, 3.0))
        assert report['boundary_edges'] == 3 * 144

    def test_empty(self):
        report = check_shell(mesh_from_triangles(np.zeros((0, 3, 3))))
        assert report['triangles'] == 0
