"""Processing pipeline - Run every stage from frames to STL and report.

Stages run in a fixed order and the listener hears about each one as it
finishes. Each resource-heavy stage has a fallback so a run either
produces an STL plus a validation report, or raises with an actionable
message.
"""

import io
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import trimesh

from .config import PipelineConfig, DEFAULT_CONFIG
from .downsampling import downsample_with_ceiling
from .errors import (
    DegradationReason,
    EmptyInput,
    InputError,
    MeshTooLargeError,
    NoTrianglesProduced,
    ReconstructionError,
)
from .measurements import Measurements, estimate_measurements
from .meshing import build_mesh, fallback_cylinder_mesh
from .progress import MultiListener, ProcessingLog, ProgressListener
from .reconstruction import build_point_cloud, point_cloud_stats
from .report import RunFiles, measurement_document, write_measurements, write_processing_log
from .ruler import RulerCalibrator, RulerDetection
from .smoothing import smooth_mesh
from .stl_export import save_stl_bytes, write_binary_stl
from .thickening import check_shell, thicken_with_fallback
from .validation import ValidationResult, validate_complete
from .vision import Frame, as_bgr, ensure_initialized


STEPS = (
    'frames_extracted',
    'ruler_detected',
    'point_cloud_built',
    'downsampled',
    'mesh_built',
    'smoothed',
    'thickened',
    'exported',
    'measurements_computed',
    'validated',
)


@dataclass
class ProcessingResult:
    """Everything a caller needs after a run."""

    stl_bytes: bytes
    mesh: trimesh.Trimesh                 # the mesh that was exported
    points: np.ndarray                    # downsampled cloud
    measurements: Measurements
    validation: ValidationResult
    mm_per_pixel: float
    ruler: Optional[RulerDetection]
    frame_count: int
    frames_skipped: int
    raw_point_count: int
    point_count: int
    triangle_count: int
    processing_time_ms: int
    files: RunFiles
    log_text: str
    degradations: List[DegradationReason] = field(default_factory=list)
    stl_path: Optional[Path] = None
    measurements_path: Optional[Path] = None
    log_path: Optional[Path] = None

    @property
    def degraded(self) -> bool:
        return bool(self.degradations)


class ProcessingPipeline:
    """
    Frames in, printable cast shell out.

    Example:
        pipeline = ProcessingPipeline(PipelineConfig.standard(), ConsoleListener())
        result = pipeline.run(frames, output_dir='output/')
    """

    def __init__(self, config: PipelineConfig = None, listener: ProgressListener = None):
        self.config = config or DEFAULT_CONFIG
        self.listener = listener or ProgressListener()

    def run(
        self,
        frames: Sequence,
        video_count: int = 1,
        output_dir: str | Path = None,
    ) -> ProcessingResult:
        """
        Process one capture.

        Args:
            frames: BGR frames (or Frame objects) in capture order, all clips
                    concatenated
            video_count: Number of clips the frames came from (reporting only)
            output_dir: If given, the STL, measurement JSON and processing
                        log are written here

        Raises:
            EmptyInput: No frames were given
            ReconstructionError: No usable mesh could be produced
            MeshTooLargeError: Even the unthickened mesh exceeds the export limit
        """
        config = self.config
        started = time.monotonic()
        files = RunFiles.now()
        log = ProcessingLog()
        events = MultiListener(log, self.listener)
        degradations: List[DegradationReason] = []

        ensure_initialized()

        # Step 1: Frames
        events.on_progress(5, "Extracting frames...")
        images = [as_bgr(f.pixels if isinstance(f, Frame) else f) for f in frames]
        if not images:
            raise EmptyInput("No frames to process - record at least one video")
        events.on_step_complete('frames_extracted', {
            'frame_count': len(images),
            'video_count': video_count,
        })

        # Step 2: Ruler calibration
        events.on_progress(15, "Detecting ruler...")
        calibrator = RulerCalibrator(config.ruler_length_mm, config.workers)
        mm_per_pixel, ruler = calibrator.calibrate(images, config.default_mm_per_pixel)
        events.on_step_complete('ruler_detected', {
            'detected': ruler is not None,
            'mm_per_pixel': mm_per_pixel,
            'confidence': ruler.confidence if ruler else 0.0,
        })

        # Step 3: Point cloud
        events.on_progress(30, "Building 3D point cloud...")
        cloud = build_point_cloud(images, mm_per_pixel, config.total_rotation_degrees, config.workers)
        if len(cloud.points) == 0:
            raise ReconstructionError(
                f"No leg silhouette found in any of {len(images)} frames - "
                "check lighting and that the leg fills the frame"
            )
        stats = point_cloud_stats(cloud.points, 'raw')
        for warning in stats['warnings']:
            print(f"  WARNING: {warning}")
        events.on_step_complete('point_cloud_built', {
            'point_count': len(cloud.points),
            'frames_used': cloud.frames_used,
            'frames_skipped': cloud.frames_skipped,
        })

        # Step 4: Downsampling with point ceiling
        events.on_progress(45, "Downsampling point cloud...")
        reduced = downsample_with_ceiling(cloud.points, config)
        if reduced.degradation is not None:
            degradations.append(reduced.degradation)
        points = reduced.points
        events.on_step_complete('downsampled', {
            'point_count': reduced.count,
            'voxel_size': reduced.voxel_size,
            'tier': reduced.tier,
        })

        # Step 5: Mesh
        events.on_progress(55, "Generating mesh...")
        mesh = self._build_mesh(points, degradations)
        events.on_step_complete('mesh_built', {
            'triangle_count': len(mesh.faces),
            'fallback': bool(mesh.metadata.get('fallback', False)),
            'sparse_slices': bool(mesh.metadata.get('sparse_slices', False)),
        })

        # Step 6: Smoothing
        events.on_progress(65, "Smoothing mesh...")
        if config.enable_smoothing:
            mesh = smooth_mesh(mesh, config.smoothing_iterations)
        events.on_step_complete('smoothed', {
            'applied': config.enable_smoothing,
            'iterations': config.smoothing_iterations if config.enable_smoothing else 0,
        })

        # Step 7: Thickening
        events.on_progress(75, "Applying cast thickness...")
        shell = thicken_with_fallback(mesh, config.cast_thickness, config.max_thicken_triangles)
        if shell.degraded:
            degradations.append(shell.degradation)
        events.on_step_complete('thickened', {
            'applied': not shell.degraded,
            'thickness': config.cast_thickness,
            'triangle_count': len(shell.mesh.faces),
        })

        # Step 8: Export
        events.on_progress(85, "Exporting STL...")
        exported, stl_bytes, written = self._encode(shell.mesh, mesh, degradations)
        stl_path = None
        if output_dir is not None:
            stl_path = save_stl_bytes(stl_bytes, Path(output_dir) / files.stl)
        events.on_step_complete('exported', {
            'triangle_count': written,
            'bytes': len(stl_bytes),
            'boundary_edges': check_shell(exported)['boundary_edges'],
        })

        # Step 9: Measurements
        events.on_progress(90, "Computing measurements...")
        measurements = estimate_measurements(points)
        events.on_step_complete('measurements_computed', measurements.as_dict())

        # Step 10: Validation
        events.on_progress(95, "Validating quality...")
        validation = validate_complete(
            ruler_detected=ruler is not None,
            ruler_confidence=ruler.confidence if ruler else None,
            frame_count=len(images),
            ankle_circumference=measurements.ankle_circumference_mm,
            calf_circumference=measurements.calf_circumference_mm,
            leg_length=measurements.total_length_mm,
            point_count=reduced.count,
            triangle_count=written,
            sparse_slices=bool(mesh.metadata.get('sparse_slices', False)),
            fallback_mesh=bool(mesh.metadata.get('fallback', False)),
            degradations=[d.value for d in degradations],
        )
        events.on_step_complete('validated', {'level': validation.level.name})

        processing_time_ms = int((time.monotonic() - started) * 1000)
        events.on_progress(100, f"Complete in {processing_time_ms / 1000:.1f}s")

        log_text = log.render(summary_lines=validation.messages)

        result = ProcessingResult(
            stl_bytes=stl_bytes,
            mesh=exported,
            points=points,
            measurements=measurements,
            validation=validation,
            mm_per_pixel=mm_per_pixel,
            ruler=ruler,
            frame_count=len(images),
            frames_skipped=cloud.frames_skipped,
            raw_point_count=len(cloud.points),
            point_count=reduced.count,
            triangle_count=written,
            processing_time_ms=processing_time_ms,
            files=files,
            log_text=log_text,
            degradations=degradations,
            stl_path=stl_path,
        )

        if output_dir is not None:
            output_dir = Path(output_dir)
            document = measurement_document(
                files, measurements, reduced.count, written, video_count, processing_time_ms
            )
            result.measurements_path = write_measurements(document, output_dir / files.measurements)
            result.log_path = write_processing_log(log_text, output_dir / files.log)

        return result

    def _build_mesh(self, points: np.ndarray, degradations: List[DegradationReason]) -> trimesh.Trimesh:
        """Slice-and-stitch mesh, or the fallback cylinder if slicing fails."""
        try:
            return build_mesh(points, self.config.target_slices, self.config.min_slice_height)
        except (InputError, NoTrianglesProduced) as e:
            print(f"  WARNING: mesh generation failed ({e}), using fallback cylinder")

        try:
            mesh = fallback_cylinder_mesh(points)
        except EmptyInput as e:
            raise ReconstructionError(f"Could not build any mesh: {e}") from e
        degradations.append(DegradationReason.FALLBACK_MESH)
        return mesh

    def _encode(
        self,
        shell: trimesh.Trimesh,
        surface: trimesh.Trimesh,
        degradations: List[DegradationReason],
    ):
        """
        Binary STL of the shell, or of the bare surface if the shell is too large.

        Returns:
            (mesh encoded, STL bytes, triangles written)
        """
        limit = self.config.max_export_triangles
        candidates = [(shell, None)]
        if shell is not surface:
            candidates.append((surface, DegradationReason.EXPORT_UNTHICKENED))

        for mesh, degradation in candidates:
            if len(mesh.faces) > limit:
                print(f"  WARNING: {len(mesh.faces):,} triangles exceeds export limit of {limit:,}")
                continue
            buffer = io.BytesIO()
            try:
                written = write_binary_stl(mesh, buffer)
            except MemoryError:
                print("  WARNING: out of memory while encoding STL")
                continue
            if written == 0:
                raise ReconstructionError("Mesh has no exportable triangles - every normal was invalid")
            if degradation is not None:
                print("  Exported without cast thickness")
                degradations.append(degradation)
            return mesh, buffer.getvalue(), written

        raise MeshTooLargeError(
            f"Mesh too large to export: {len(surface.faces):,} triangles (limit {limit:,}). "
            "Use the preview resolution or a larger voxel size."
        )
