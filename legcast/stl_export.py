"""Export module - Save meshes to binary and ASCII STL."""

import io
import struct

import numpy as np
import trimesh
from pathlib import Path
from typing import BinaryIO, Tuple

# trimesh's own STL exporter recomputes normals and writes every face; the
# records below keep +Y for degenerate faces and drop non-finite ones.

from .errors import MeshTooLargeError
from .geometry import finite_normal_mask, triangle_normals


HEADER_TEXT = b"Binary STL - LegCast"
HEADER_SIZE = 80

# 50 bytes per record: normal, three vertices, attribute byte count
STL_RECORD = np.dtype([
    ('normal', '<f4', (3,)),
    ('vertices', '<f4', (3, 3)),
    ('attributes', '<u2'),
])


def _exportable(mesh: trimesh.Trimesh) -> Tuple[np.ndarray, np.ndarray]:
    """Triangles and normals of every triangle whose normal is finite."""
    triangles = np.asarray(mesh.triangles, dtype=np.float64).reshape(-1, 3, 3)
    normals = triangle_normals(triangles)
    keep = finite_normal_mask(normals)
    skipped = int((~keep).sum())
    if skipped:
        print(f"  Skipping {skipped} triangles with invalid normals")
    return triangles[keep], normals[keep]


def write_binary_stl(mesh: trimesh.Trimesh, sink: BinaryIO, header: bytes = HEADER_TEXT) -> int:
    """
    Write a mesh as binary STL to a writable binary stream.

    Layout: 80-byte header, little-endian uint32 triangle count, then one
    50-byte record per triangle. Triangles with non-finite normals are
    left out, and the count is taken after filtering so the header always
    matches the records.

    Returns:
        Number of triangles written
    """
    triangles, normals = _exportable(mesh)

    records = np.zeros(len(triangles), dtype=STL_RECORD)
    records['normal'] = normals
    records['vertices'] = triangles

    sink.write(header[:HEADER_SIZE].ljust(HEADER_SIZE, b'\0'))
    sink.write(struct.pack('<I', len(records)))
    sink.write(records.tobytes())
    return len(records)


def binary_stl_bytes(mesh: trimesh.Trimesh) -> bytes:
    """Binary STL encoding of a mesh as bytes."""
    buffer = io.BytesIO()
    write_binary_stl(mesh, buffer)
    return buffer.getvalue()


def write_ascii_stl(mesh: trimesh.Trimesh, name: str = 'leg_cast') -> str:
    """
    ASCII STL text for a mesh (debugging and legacy viewers).

    Binary output is much smaller; prefer write_binary_stl for real exports.
    """
    triangles, normals = _exportable(mesh)

    lines = [f"solid {name}"]
    for tri, n in zip(triangles, normals):
        lines.append(f"  facet normal {n[0]:.6f} {n[1]:.6f} {n[2]:.6f}")
        lines.append("    outer loop")
        for v in tri:
            lines.append(f"      vertex {v[0]:.6f} {v[1]:.6f} {v[2]:.6f}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines) + "\n"


def save_stl_bytes(data: bytes, path: str | Path) -> Path:
    """Write already-encoded binary STL to a file, creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)

    (count,) = struct.unpack('<I', data[HEADER_SIZE:HEADER_SIZE + 4])
    print(f"Exported STL: {path} ({count:,} triangles, {len(data) / 1024:.1f} KB)")
    return path


def export_stl(
    mesh: trimesh.Trimesh,
    path: str | Path,
    max_triangles: int = None,
) -> Path:
    """
    Export mesh to a binary STL file.

    Args:
        mesh: Mesh to export
        path: Output file path (.stl)
        max_triangles: Refuse meshes larger than this

    Raises:
        MeshTooLargeError: Mesh exceeds max_triangles
    """
    count = len(mesh.faces)
    if max_triangles is not None and count > max_triangles:
        raise MeshTooLargeError(
            f"Mesh too large to export: {count:,} triangles (limit {max_triangles:,}). "
            "Use a coarser resolution preset."
        )

    return save_stl_bytes(binary_stl_bytes(mesh), path)
