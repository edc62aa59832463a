"""Quality validation - Check that a reconstruction is safe to print.

Every check returns a ValidationResult; validate_complete merges them and
takes the worst level.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional


# Plausible leg dimensions (mm)
MIN_ANKLE_CIRCUMFERENCE = 180.0
MAX_ANKLE_CIRCUMFERENCE = 350.0
MIN_CALF_CIRCUMFERENCE = 250.0
MAX_CALF_CIRCUMFERENCE = 500.0
MIN_LEG_LENGTH = 200.0
MAX_LEG_LENGTH = 500.0

# Processing quality thresholds
MIN_RULER_CONFIDENCE = 0.3
RECOMMENDED_RULER_CONFIDENCE = 0.5
MIN_FRAME_COUNT = 50
RECOMMENDED_FRAME_COUNT = 100
MIN_POINT_COUNT = 1000
RECOMMENDED_POINT_COUNT = 5000
MIN_TRIANGLE_COUNT = 500


class ValidationLevel(IntEnum):
    """Severity, ordered so max() picks the worst."""

    OK = 0
    WARNING = 1
    ERROR = 2


@dataclass
class ValidationResult:
    level: ValidationLevel
    messages: List[str]
    details: Dict[str, Any] = field(default_factory=dict)

    def has_errors(self) -> bool:
        return self.level == ValidationLevel.ERROR

    def has_warnings(self) -> bool:
        return self.level == ValidationLevel.WARNING

    def is_ok(self) -> bool:
        return self.level == ValidationLevel.OK

    def report(self) -> str:
        return "\n".join(self.messages)


def worst_level(results: Iterable[ValidationResult]) -> ValidationLevel:
    return max((r.level for r in results), default=ValidationLevel.OK)


def validate_ruler_detection(
    ruler_detected: bool,
    confidence: Optional[float],
    frame_count: int,
) -> ValidationResult:
    """Check that the scale came from a confident ruler detection."""
    messages = []

    if not ruler_detected or confidence is None:
        level = ValidationLevel.ERROR
        messages += [
            "✗ Ruler not detected in any frame",
            "  - Ensure the ruler is clearly visible",
            "  - Place the ruler vertically next to the leg",
            "  - Ensure good lighting conditions",
        ]
    elif confidence < MIN_RULER_CONFIDENCE:
        level = ValidationLevel.ERROR
        messages += [
            f"✗ Ruler detection confidence too low: {confidence:.0%}",
            f"  - Minimum required: {MIN_RULER_CONFIDENCE:.0%}",
            "  - Retake videos with better ruler visibility",
        ]
    elif confidence < RECOMMENDED_RULER_CONFIDENCE:
        level = ValidationLevel.WARNING
        messages += [
            f"⚠ Ruler detection confidence below recommended: {confidence:.0%}",
            f"  - Recommended: {RECOMMENDED_RULER_CONFIDENCE:.0%}",
            "  - Measurements may be less accurate",
        ]
    else:
        level = ValidationLevel.OK
        messages.append(f"✓ Ruler detected: {confidence:.0%} confidence")

    return ValidationResult(level, messages, {
        'ruler_detected': ruler_detected,
        'confidence': confidence or 0.0,
        'frame_count': frame_count,
    })


def validate_frame_count(frame_count: int) -> ValidationResult:
    """Check that enough frames were captured."""
    if frame_count < MIN_FRAME_COUNT:
        level = ValidationLevel.ERROR
        messages = [
            f"✗ Insufficient frames: {frame_count}",
            f"  - Minimum required: {MIN_FRAME_COUNT} frames",
            "  - Record longer videos or more angles",
        ]
    elif frame_count < RECOMMENDED_FRAME_COUNT:
        level = ValidationLevel.WARNING
        messages = [
            f"⚠ Frame count below recommended: {frame_count}",
            f"  - Recommended: {RECOMMENDED_FRAME_COUNT}+ frames",
        ]
    else:
        level = ValidationLevel.OK
        messages = [f"✓ Frame count adequate: {frame_count} frames"]

    return ValidationResult(level, messages, {'frame_count': frame_count})


def _range_check(label: str, value: float, lo: float, hi: float) -> ValidationResult:
    if lo <= value <= hi:
        return ValidationResult(ValidationLevel.OK, [f"✓ {label}: {value:.0f}mm (within normal range)"])
    return ValidationResult(ValidationLevel.ERROR, [
        f"✗ {label} out of range: {value:.0f}mm",
        f"  - Expected range: {lo:.0f}-{hi:.0f}mm",
    ])


def validate_measurements(
    ankle_circumference: float,
    calf_circumference: float,
    leg_length: float,
) -> ValidationResult:
    """Check that measurements fall in anatomically plausible ranges."""
    checks = [
        _range_check("Ankle circumference", ankle_circumference,
                     MIN_ANKLE_CIRCUMFERENCE, MAX_ANKLE_CIRCUMFERENCE),
        _range_check("Calf circumference", calf_circumference,
                     MIN_CALF_CIRCUMFERENCE, MAX_CALF_CIRCUMFERENCE),
        _range_check("Leg length", leg_length, MIN_LEG_LENGTH, MAX_LEG_LENGTH),
    ]
    if calf_circumference < ankle_circumference:
        checks.append(ValidationResult(ValidationLevel.WARNING, [
            "⚠ Calf smaller than ankle - unusual proportions",
            "  - This may indicate measurement errors",
        ]))

    messages = [m for c in checks for m in c.messages]
    if checks[0].has_errors():
        messages.append("  - Check ruler calibration and retake videos")

    return ValidationResult(worst_level(checks), messages, {
        'ankle': ankle_circumference,
        'calf': calf_circumference,
        'length': leg_length,
    })


def validate_reconstruction(
    point_count: int,
    triangle_count: int,
    sparse_slices: bool = False,
    fallback_mesh: bool = False,
    degradations: Iterable[str] = (),
) -> ValidationResult:
    """Check point and triangle density and any degraded stages."""
    results = []

    if point_count < MIN_POINT_COUNT:
        results.append(ValidationResult(ValidationLevel.ERROR, [
            f"✗ Insufficient 3D points: {point_count}",
            f"  - Minimum required: {MIN_POINT_COUNT} points",
            "  - Retake videos with better coverage",
        ]))
    elif point_count < RECOMMENDED_POINT_COUNT:
        results.append(ValidationResult(ValidationLevel.WARNING, [
            f"⚠ Low point count: {point_count}",
            f"  - Recommended: {RECOMMENDED_POINT_COUNT}+ points",
        ]))
    else:
        results.append(ValidationResult(ValidationLevel.OK, [
            f"✓ Point cloud quality good: {point_count} points",
        ]))

    if triangle_count < MIN_TRIANGLE_COUNT:
        results.append(ValidationResult(ValidationLevel.ERROR, [
            f"✗ Insufficient mesh triangles: {triangle_count}",
            f"  - Minimum required: {MIN_TRIANGLE_COUNT} triangles",
        ]))
    else:
        results.append(ValidationResult(ValidationLevel.OK, [
            f"✓ Mesh quality adequate: {triangle_count} triangles",
        ]))

    if sparse_slices:
        results.append(ValidationResult(ValidationLevel.WARNING, [
            "⚠ More than half of the height slices had too few points",
        ]))
    if fallback_mesh:
        results.append(ValidationResult(ValidationLevel.WARNING, [
            "⚠ Surface could not be reconstructed - coarse cylinder approximation used",
        ]))
    for reason in degradations:
        results.append(ValidationResult(ValidationLevel.WARNING, [
            f"⚠ Reduced quality: {reason}",
        ]))

    return ValidationResult(worst_level(results), [m for r in results for m in r.messages], {
        'point_count': point_count,
        'triangle_count': triangle_count,
        'sparse_slices': sparse_slices,
        'fallback_mesh': fallback_mesh,
        'degradations': list(degradations),
    })


SUMMARY = {
    ValidationLevel.OK: ["✓ ALL CHECKS PASSED", "Model is ready for 3D printing"],
    ValidationLevel.WARNING: ["⚠ WARNINGS DETECTED", "Review warnings before proceeding"],
    ValidationLevel.ERROR: ["✗ CRITICAL ERRORS DETECTED", "DO NOT USE THIS MODEL",
                            "Please retake videos and process again"],
}


def validate_complete(
    ruler_detected: bool,
    ruler_confidence: Optional[float],
    frame_count: int,
    ankle_circumference: float,
    calf_circumference: float,
    leg_length: float,
    point_count: int,
    triangle_count: int,
    sparse_slices: bool = False,
    fallback_mesh: bool = False,
    degradations: Iterable[str] = (),
) -> ValidationResult:
    """Run every check and merge them into one report."""
    degradations = list(degradations)
    sections = [
        ("RULER CALIBRATION:", validate_ruler_detection(ruler_detected, ruler_confidence, frame_count)),
        ("VIDEO QUALITY:", validate_frame_count(frame_count)),
        ("MEASUREMENTS:", validate_measurements(ankle_circumference, calf_circumference, leg_length)),
        ("3D RECONSTRUCTION:", validate_reconstruction(
            point_count, triangle_count, sparse_slices, fallback_mesh, degradations)),
    ]

    messages = ["=== QUALITY VALIDATION REPORT ===", ""]
    for title, result in sections:
        messages.append(title)
        messages.extend(result.messages)
        messages.append("")

    level = worst_level(r for _, r in sections)
    messages.extend(SUMMARY[level])

    print(f"Validation: {level.name}")

    return ValidationResult(level, messages, {
        'ruler_confidence': ruler_confidence or 0.0,
        'frame_count': frame_count,
        'measurements': {
            'ankle': ankle_circumference,
            'calf': calf_circumference,
            'length': leg_length,
        },
        'reconstruction': {
            'points': point_count,
            'triangles': triangle_count,
        },
        'sections': {title.rstrip(':').lower(): r.level.name for title, r in sections},
    })
