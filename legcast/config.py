"""Pipeline configuration module - Centralized calibration, meshing and resource controls."""

from dataclasses import dataclass
from typing import Literal, Tuple


MM_PER_UNIT = {
    'mm': 1.0,
    'cm': 10.0,
    'in': 25.4,
}


@dataclass
class PipelineConfig:
    """
    Configuration for the leg cast reconstruction pipeline.

    Resolution parameters trade geometric fidelity against processing
    time and memory; the resource ceilings bound the work done on
    constrained machines.

    Attributes:
        cast_thickness: Wall thickness of the printed cast shell (mm).
        ruler_length: Physical length of the reference ruler, in ruler_unit.
        ruler_unit: Unit of ruler_length ('mm', 'cm' or 'in').

        voxel_size: Edge of the downsampling voxel (mm).
                    Smaller = more detail, more points.
        max_points: Safety ceiling on the downsampled cloud. Above this the
                    cloud is downsampled again with larger voxels.
        voxel_escalation: Voxel size multipliers for the 'large' and
                          'extreme' retry tiers.

        target_slices: Number of horizontal bands the mesh is built from.
        min_slice_height: Bands are never thinner than this (mm).
        enable_smoothing: Apply Laplacian smoothing after meshing.
        smoothing_iterations: Number of smoothing passes when enabled.
    """

    # Cast settings
    cast_thickness: float = 3.0        # mm - wall thickness of the shell

    # Ruler calibration
    ruler_length: float = 300.0        # in ruler_unit
    ruler_unit: Literal['mm', 'cm', 'in'] = 'mm'
    default_mm_per_pixel: float = 0.5  # used when no ruler is found

    # Capture assumptions
    total_rotation_degrees: float = 360.0
    frame_interval_ms: int = 100       # video sampling interval (10 fps)
    max_frame_width: int = 800         # px - wider frames are resized

    # Resolution controls
    voxel_size: float = 2.0            # mm - downsampling voxel edge
    max_points: int = 10000            # safety ceiling after downsampling
    voxel_escalation: Tuple[float, float] = (2.5, 5.0)
    target_slices: int = 12
    min_slice_height: float = 2.0      # mm

    # Surface quality
    enable_smoothing: bool = False
    smoothing_iterations: int = 3

    # Resource ceilings (triangles)
    max_thicken_triangles: int = 200000
    max_export_triangles: int = 1000000

    # Execution
    workers: int = 1                   # threads for per-frame vision work

    # Display
    measurement_unit: Literal['mm', 'cm', 'in'] = 'mm'

    def __post_init__(self):
        """Validate configuration values."""
        if self.cast_thickness < 0:
            raise ValueError(f"cast_thickness cannot be negative: {self.cast_thickness}")
        if self.ruler_length <= 0:
            raise ValueError(f"ruler_length must be positive, got {self.ruler_length}")
        if self.ruler_unit not in MM_PER_UNIT:
            raise ValueError(f"Unknown ruler_unit: {self.ruler_unit}")
        if self.measurement_unit not in MM_PER_UNIT:
            raise ValueError(f"Unknown measurement_unit: {self.measurement_unit}")
        if self.default_mm_per_pixel <= 0:
            raise ValueError(f"default_mm_per_pixel must be positive, got {self.default_mm_per_pixel}")
        if self.voxel_size <= 0:
            raise ValueError(f"voxel_size must be positive, got {self.voxel_size}")
        if self.max_points < 4:
            raise ValueError(f"max_points too low: {self.max_points}")
        if len(self.voxel_escalation) != 2 or any(m <= 1.0 for m in self.voxel_escalation):
            raise ValueError(f"voxel_escalation needs two multipliers > 1, got {self.voxel_escalation}")
        if self.target_slices < 2:
            raise ValueError(f"target_slices too low: {self.target_slices}")
        if self.min_slice_height <= 0:
            raise ValueError(f"min_slice_height must be positive, got {self.min_slice_height}")
        if self.smoothing_iterations < 0:
            raise ValueError(f"smoothing_iterations cannot be negative: {self.smoothing_iterations}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        self.voxel_escalation = tuple(self.voxel_escalation)

    @property
    def ruler_length_mm(self) -> float:
        """Ruler length converted to millimeters."""
        return self.ruler_length * MM_PER_UNIT[self.ruler_unit]

    @property
    def voxel_tiers(self) -> Tuple[Tuple[str, float], ...]:
        """Named voxel sizes tried in order by the downsampling retry policy."""
        large, extreme = self.voxel_escalation
        return (
            ('base', self.voxel_size),
            ('large', self.voxel_size * large),
            ('extreme', self.voxel_size * extreme),
        )

    @classmethod
    def preview(cls) -> 'PipelineConfig':
        """
        Fast preview quality - low mesh detail.

        Coarse voxels and few slices. Good for checking that the
        capture produced a sensible silhouette before a full run.
        """
        return cls(
            voxel_size=4.0,           # Coarse voxels
            max_points=5000,
            target_slices=6,          # Few bands
            enable_smoothing=False,
        )

    @classmethod
    def standard(cls) -> 'PipelineConfig':
        """
        Standard quality - medium mesh detail.

        Matches the defaults used for printed casts.
        """
        return cls(
            voxel_size=2.0,
            max_points=10000,
            target_slices=12,
            enable_smoothing=False,
        )

    @classmethod
    def production(cls) -> 'PipelineConfig':
        """
        Production quality - high mesh detail.

        Finer voxels, twice the bands and smoothing enabled.
        Slower and heavier on memory.
        """
        return cls(
            voxel_size=1.0,           # Fine voxels
            max_points=20000,
            target_slices=24,
            enable_smoothing=True,
            smoothing_iterations=3,
        )

    @classmethod
    def from_preset(cls, preset: str) -> 'PipelineConfig':
        """Create config from named preset."""
        presets = {
            'preview': cls.preview,
            'standard': cls.standard,
            'production': cls.production,
        }
        if preset not in presets:
            raise ValueError(f"Unknown preset: {preset}. Choose from: {list(presets.keys())}")
        return presets[preset]()

    def with_overrides(self, **kwargs) -> 'PipelineConfig':
        """
        Create a new config with specific values overridden.

        Example:
            config = PipelineConfig.standard().with_overrides(cast_thickness=4.0)
        """
        from dataclasses import asdict
        current = asdict(self)
        current.update(kwargs)
        return PipelineConfig(**current)

    def format_measurement(self, value_mm: float) -> str:
        """Format a millimeter value in the configured display unit."""
        value = value_mm / MM_PER_UNIT[self.measurement_unit]
        return f"{value:.1f} {self.measurement_unit}"

    def describe(self) -> str:
        """Human-readable description of current settings."""
        lines = [
            "Pipeline Configuration:",
            f"  Cast:",
            f"    Thickness:     {self.cast_thickness} mm",
            f"  Calibration:",
            f"    Ruler length:  {self.ruler_length} {self.ruler_unit} ({self.ruler_length_mm:.1f} mm)",
            f"    Fallback scale: {self.default_mm_per_pixel} mm/px",
            f"  Resolution:",
            f"    Voxel size:    {self.voxel_size} mm",
            f"    Max points:    {self.max_points:,}",
            f"    Target slices: {self.target_slices}",
            f"  Smoothing:       {self.smoothing_iterations if self.enable_smoothing else 'off'}",
            f"  Workers:         {self.workers}",
        ]
        return "\n".join(lines)


# Default configuration instance
DEFAULT_CONFIG = PipelineConfig.standard()
