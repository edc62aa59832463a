"""Shell thickening module - Give the leg surface a printable wall thickness."""

import numpy as np
import trimesh

from .errors import DegradationReason, MeshResult
from .geometry import finite_normal_mask, mesh_from_triangles, triangle_normals


def thicken_mesh(mesh: trimesh.Trimesh, thickness: float = 3.0) -> trimesh.Trimesh:
    """
    Offset every triangle along its own face normal.

    Each triangle moves independently, so vertices shared by neighboring
    triangles separate after thickening. The result is a triangle soup
    approximating the cast shell, not a watertight offset surface.
    Triangles whose normal is not finite are passed through unchanged.

    Args:
        mesh: Input surface
        thickness: Offset distance in mm

    Returns:
        Unindexed mesh with the same number of triangles, in the same order
    """
    triangles = np.array(mesh.triangles, dtype=np.float64)
    print(f"Applying thickness: {thickness} mm to {len(triangles):,} triangles")

    normals = triangle_normals(triangles)
    ok = finite_normal_mask(normals)
    if not ok.all():
        print(f"  WARNING: {(~ok).sum()} triangles with invalid normals left unmodified")

    triangles[ok] += normals[ok][:, None, :] * thickness

    metadata = dict(mesh.metadata)
    metadata['thickness'] = thickness
    return mesh_from_triangles(triangles, metadata)


def thicken_with_fallback(
    mesh: trimesh.Trimesh,
    thickness: float,
    max_triangles: int,
) -> MeshResult:
    """
    Thicken, or return the input mesh if it is too large to thicken.

    Thickening is never required to produce output. Meshes above
    max_triangles, and runs that hit MemoryError, fall back to the
    unthickened surface with a DegradationReason.
    """
    count = len(mesh.faces)
    if count > max_triangles:
        message = (f"Mesh has {count:,} triangles (limit {max_triangles:,}) - "
                   "exporting without cast thickness")
        print(f"  WARNING: {message}")
        return MeshResult(mesh, DegradationReason.THICKENING_SKIPPED, message)

    try:
        return MeshResult(thicken_mesh(mesh, thickness))
    except MemoryError:
        message = "Out of memory while applying thickness - exporting without cast thickness"
        print(f"  WARNING: {message}")
        return MeshResult(mesh, DegradationReason.THICKENING_SKIPPED, message)


def check_shell(mesh: trimesh.Trimesh) -> dict:
    """
    Report the shell's edge topology.

    Returns:
        Dictionary with issue counts:
        {
            'triangles': int,
            'watertight': bool,
            'boundary_edges': int,
            'non_manifold_edges': int,
        }
    """
    if len(mesh.faces) == 0:
        return {'triangles': 0, 'watertight': False, 'boundary_edges': 0, 'non_manifold_edges': 0}

    edge_face_count = np.bincount(
        mesh.edges_unique_inverse,
        minlength=len(mesh.edges_unique)
    )

    return {
        'triangles': int(len(mesh.faces)),
        'watertight': bool(mesh.is_watertight),
        'boundary_edges': int((edge_face_count == 1).sum()),
        'non_manifold_edges': int((edge_face_count > 2).sum()),
    }
