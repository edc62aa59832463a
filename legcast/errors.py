"""Error types and degradation reasons for the reconstruction pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import trimesh


class LegCastError(Exception):
    """Base class for all pipeline errors."""


class InputError(LegCastError, ValueError):
    """Caller-correctable input problem - retake the video or adjust the capture."""


class RulerNotDetected(InputError):
    """No frame produced a ruler detection above the confidence floor."""


class EmptyInput(InputError):
    """The point cloud has no points at all."""


class InsufficientPoints(InputError):
    """Too few finite points remain to build a surface."""


class DegenerateHeight(InputError):
    """Every point lies at the same height, so there is nothing to slice."""


class ReconstructionError(LegCastError, RuntimeError):
    """Structural failure - no usable mesh could be produced."""


class NoTrianglesProduced(ReconstructionError):
    """Slicing finished without emitting a single triangle."""


class MeshTooLargeError(LegCastError, MemoryError):
    """Mesh exceeds the configured resource ceiling for an operation."""


class DegradationReason(str, Enum):
    """Why a stage returned a lower-fidelity result instead of failing."""

    POINTS_REDUCED = 'points_reduced'              # escalated voxel tier
    POINT_CEILING_EXCEEDED = 'point_ceiling_exceeded'  # still over after extreme tier
    FALLBACK_MESH = 'fallback_mesh'                # cylinder approximation used
    THICKENING_SKIPPED = 'thickening_skipped'      # exported the unthickened mesh
    EXPORT_UNTHICKENED = 'export_unthickened'      # thickened mesh too large to export


@dataclass
class MeshResult:
    """A mesh plus the reason it is degraded, if it is."""

    mesh: trimesh.Trimesh
    degradation: Optional[DegradationReason] = None
    message: str = ''

    @property
    def degraded(self) -> bool:
        return self.degradation is not None
