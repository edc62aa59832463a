"""Tests for lifting silhouettes into a 3D point cloud.

The lifting model swings each silhouette's horizontal offset around a
vertical axis. It is exact only for an axially symmetric leg and is the
main source of measurement inaccuracy; these tests check the model, not
how well it matches a real leg.
"""

import numpy as np
import pytest

from legcast.reconstruction import (
    assign_rotation_angles,
    build_point_cloud,
    export_point_cloud_ply,
    lift_contour,
    point_cloud_stats,
)

from conftest import LEG_AXES, blank_frame


class TestRotationAngles:
    def test_uniform(self):
        np.testing.assert_allclose(assign_rotation_angles(4), [0, 90, 180, 270])

    def test_partial_sweep(self):
        np.testing.assert_allclose(assign_rotation_angles(3, 180), [0, 60, 120])

    def test_empty(self):
        assert len(assign_rotation_angles(0)) == 0


class TestLiftContour:
    def test_zero_angle_keeps_offset_in_x(self):
        pts = lift_contour(np.array([[300, 100]]), 400, 200, 0.5, 0.0)
        np.testing.assert_allclose(pts, [[50.0, 0.0, 0.0]], atol=1e-12)

    def test_quarter_turn_moves_offset_to_z(self):
        pts = lift_contour(np.array([[300, 150]]), 400, 200, 0.5, 90.0)
        np.testing.assert_allclose(pts, [[0.0, 25.0, 50.0]], atol=1e-12)

    def test_height_is_rotation_invariant(self):
        contour = np.array([[10, 20], [390, 180]])
        a = lift_contour(contour, 400, 200, 1.0, 0.0)
        b = lift_contour(contour, 400, 200, 1.0, 137.0)
        np.testing.assert_allclose(a[:, 1], b[:, 1])

    def test_radius_preserved(self):
        contour = np.array([[350, 100]])
        for angle in (0, 45, 200):
            p = lift_contour(contour, 400, 200, 2.0, angle)[0]
            assert np.hypot(p[0], p[2]) == pytest.approx(300.0)


class TestBuildPointCloud:
    def test_frames_without_silhouette_skipped(self, leg_frame):
        result = build_point_cloud([leg_frame, blank_frame(), leg_frame], mm_per_pixel=1.0)
        assert result.frames_used == 2
        assert result.frames_skipped == 1
        assert result.frame_count == 3
        assert len(result.points) > 0
        np.testing.assert_allclose(result.angles, [0, 120, 240])

    def test_cloud_extent_matches_silhouette(self, leg_frame):
        result = build_point_cloud([leg_frame] * 8, mm_per_pixel=0.5)
        pts = result.points
        assert pts.shape[1] == 3
        assert np.isfinite(pts).all()
        height = pts[:, 1].max() - pts[:, 1].min()
        assert height == pytest.approx(2 * LEG_AXES[1] * 0.5, abs=2.0)
        radius = np.hypot(pts[:, 0], pts[:, 2]).max()
        assert radius == pytest.approx(LEG_AXES[0] * 0.5, abs=2.0)

    def test_progress_reports_silhouette(self, leg_frame, capsys):
        build_point_cloud([leg_frame], mm_per_pixel=1.0)
        line = next(l for l in capsys.readouterr().out.splitlines() if "Processed frame 0/1" in l)
        area = float(line.split("area ")[1].split()[0])
        # ellipse with 60 x 90 px semi-axes
        assert area == pytest.approx(np.pi * LEG_AXES[0] * LEG_AXES[1], rel=0.05)

    def test_parallel_matches_sequential(self, leg_frame):
        frames = [leg_frame, blank_frame(), leg_frame, leg_frame]
        a = build_point_cloud(frames, 1.0, workers=1)
        b = build_point_cloud(frames, 1.0, workers=4)
        np.testing.assert_array_equal(a.points, b.points)
        assert a.frames_skipped == b.frames_skipped

    def test_no_frames(self):
        result = build_point_cloud([], 1.0)
        assert result.points.shape == (0, 3)
        assert result.frame_count == 0


class TestPointCloudStats:
    def test_empty(self):
        stats = point_cloud_stats(np.zeros((0, 3)))
        assert stats['total'] == 0
        assert "Point cloud is empty" in stats['warnings']

    def test_invalid_points_counted(self):
        pts = np.array([[0, 0, 0], [np.nan, 1, 1], [10, 50, 10]], dtype=float)
        stats = point_cloud_stats(pts)
        assert stats['invalid'] == 1
        assert stats['height_range'] == 50.0
        assert stats['bounds'] == ([0.0, 0.0, 0.0], [10.0, 50.0, 10.0])

    def test_small_height_warning(self):
        pts = np.array([[0, 0, 0], [10, 5, 10]], dtype=float)
        stats = point_cloud_stats(pts)
        assert any("height range" in w for w in stats['warnings'])


class TestExportPly:
    def test_writes_file(self, tmp_path):
        pts = np.random.default_rng(0).uniform(0, 10, (50, 3))
        path = export_point_cloud_ply(pts, tmp_path / "cloud.ply")
        assert path.exists()
        assert path.stat().st_size > 0

    def test_empty_skipped(self, tmp_path):
        assert export_point_cloud_ply(np.zeros((0, 3)), tmp_path / "cloud.ply") is None
