"""LegCast - Reconstruct a printable leg cast shell from rotating-camera video."""

from .config import PipelineConfig, DEFAULT_CONFIG
from .errors import (
    LegCastError,
    InputError,
    RulerNotDetected,
    EmptyInput,
    InsufficientPoints,
    DegenerateHeight,
    ReconstructionError,
    NoTrianglesProduced,
    MeshTooLargeError,
    DegradationReason,
    MeshResult,
)
from .vision import Frame, ensure_initialized
from .frames import load_frames
from .ruler import RulerCalibrator, RulerDetection, detect_ruler, detect_ruler_multi_frame
from .silhouette import extract_leg_silhouette
from .reconstruction import build_point_cloud, point_cloud_stats, export_point_cloud_ply
from .downsampling import downsample, downsample_with_ceiling
from .meshing import build_mesh, fallback_cylinder_mesh
from .smoothing import smooth_mesh
from .thickening import thicken_mesh, thicken_with_fallback, check_shell
from .stl_export import write_binary_stl, write_ascii_stl, save_stl_bytes, export_stl
from .measurements import Measurements, estimate_measurements
from .validation import ValidationLevel, ValidationResult, validate_complete

# Progress reporting
from .progress import ProgressListener, ProcessingLog, ConsoleListener, MultiListener

# Orchestration
from .orchestrator import ProcessingPipeline, ProcessingResult

__all__ = [
    # Configuration
    'PipelineConfig',
    'DEFAULT_CONFIG',

    # Errors
    'LegCastError',
    'InputError',
    'RulerNotDetected',
    'EmptyInput',
    'InsufficientPoints',
    'DegenerateHeight',
    'ReconstructionError',
    'NoTrianglesProduced',
    'MeshTooLargeError',
    'DegradationReason',
    'MeshResult',

    # Core pipeline
    'Frame',
    'ensure_initialized',
    'load_frames',
    'RulerCalibrator',
    'RulerDetection',
    'detect_ruler',
    'detect_ruler_multi_frame',
    'extract_leg_silhouette',
    'build_point_cloud',
    'point_cloud_stats',
    'export_point_cloud_ply',
    'downsample',
    'downsample_with_ceiling',
    'build_mesh',
    'fallback_cylinder_mesh',
    'smooth_mesh',
    'thicken_mesh',
    'thicken_with_fallback',
    'check_shell',
    'write_binary_stl',
    'write_ascii_stl',
    'save_stl_bytes',
    'export_stl',
    'Measurements',
    'estimate_measurements',
    'ValidationLevel',
    'ValidationResult',
    'validate_complete',

    # Progress
    'ProgressListener',
    'ProcessingLog',
    'ConsoleListener',
    'MultiListener',

    # Orchestration
    'ProcessingPipeline',
    'ProcessingResult',
]
