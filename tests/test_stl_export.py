"""Tests for binary and ASCII STL output."""

import io
import struct

import numpy as np
import pytest
import trimesh

from legcast.errors import MeshTooLargeError
from legcast.geometry import mesh_from_triangles
from legcast.meshing import fallback_cylinder_mesh
from legcast.stl_export import (
    HEADER_TEXT,
    STL_RECORD,
    binary_stl_bytes,
    export_stl,
    save_stl_bytes,
    write_ascii_stl,
    write_binary_stl,
)

from conftest import ring_points


def load_stl(source):
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    return trimesh.load_mesh(source, file_type='stl', process=False)


FLAT = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]])


@pytest.fixture
def tube():
    return fallback_cylinder_mesh(np.vstack([ring_points(40, 0, 16), ring_points(30, 200, 16)]))


class TestBinaryStl:
    def test_record_size(self):
        assert STL_RECORD.itemsize == 50

    def test_layout(self, tube):
        data = binary_stl_bytes(tube)
        assert len(data) == 80 + 4 + 50 * 144
        assert data[:len(HEADER_TEXT)] == HEADER_TEXT
        assert struct.unpack('<I', data[80:84])[0] == 144

    def test_readable_by_trimesh(self, tube):
        loaded = load_stl(binary_stl_bytes(tube))
        assert len(loaded.faces) == 144
        np.testing.assert_allclose(loaded.triangles, np.asarray(tube.triangles, dtype=np.float32), atol=1e-4)
        np.testing.assert_allclose(np.linalg.norm(loaded.face_normals, axis=1), 1.0, rtol=1e-6)
        assert loaded.metadata['header'].startswith(HEADER_TEXT.decode())

    def test_invalid_triangles_skipped(self):
        bad = FLAT.copy()
        bad[2, 0] = np.inf
        mesh = mesh_from_triangles(np.stack([FLAT, bad, FLAT + 1.0]))

        sink = io.BytesIO()
        written = write_binary_stl(mesh, sink)
        data = sink.getvalue()

        assert written == 2
        assert struct.unpack('<I', data[80:84])[0] == 2
        assert len(data) == 84 + 2 * 50
        np.testing.assert_allclose(load_stl(data).triangles[1], FLAT + 1.0)

    def test_attribute_bytes_zero(self, tube):
        data = binary_stl_bytes(tube)
        records = np.frombuffer(data, dtype=STL_RECORD, offset=84)
        assert (records['attributes'] == 0).all()

    def test_degenerate_triangle_written_with_default_normal(self):
        point = np.array([[[2.0, 2.0, 2.0]] * 3])
        records = np.frombuffer(binary_stl_bytes(mesh_from_triangles(point)), dtype=STL_RECORD, offset=84)
        np.testing.assert_allclose(records['normal'], [[0.0, 1.0, 0.0]])


class TestAsciiStl:
    def test_format(self):
        text = write_ascii_stl(mesh_from_triangles(FLAT[None]), name='test')
        lines = text.splitlines()
        assert lines == [
            "solid test",
            "  facet normal 0.000000 1.000000 0.000000",
            "    outer loop",
            "      vertex 0.000000 0.000000 0.000000",
            "      vertex 0.000000 0.000000 1.000000",
            "      vertex 1.000000 0.000000 0.000000",
            "    endloop",
            "  endfacet",
            "endsolid test",
        ]

    def test_facet_count(self, tube):
        text = write_ascii_stl(tube)
        assert text.startswith("solid leg_cast")
        assert text.count("endfacet") == 144
        assert text.rstrip().endswith("endsolid leg_cast")


class TestExportStl:
    def test_writes_file(self, tube, tmp_path):
        path = export_stl(tube, tmp_path / "out" / "cast.stl")
        assert path.exists()
        assert path.stat().st_size == 84 + 50 * 144
        assert len(load_stl(path).faces) == 144

    def test_save_encoded_bytes(self, tube, tmp_path, capsys):
        data = binary_stl_bytes(tube)
        path = save_stl_bytes(data, tmp_path / "nested" / "cast.stl")
        assert path.read_bytes() == data
        assert "144 triangles" in capsys.readouterr().out

    def test_too_large(self, tube, tmp_path):
        with pytest.raises(MeshTooLargeError, match="too large"):
            export_stl(tube, tmp_path / "cast.stl", max_triangles=100)
        assert not (tmp_path / "cast.stl").exists()

    def test_too_large_is_memory_error(self):
        assert issubclass(MeshTooLargeError, MemoryError)
