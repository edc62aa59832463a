"""Ruler calibration - Derive millimeters-per-pixel from a visible reference ruler.

The ruler is assumed to stand vertically in frame, so its bounding box is
tall and thin and its pixel height spans the full physical length.
"""

import numpy as np
import cv2
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import RulerNotDetected
from .vision import ensure_initialized


RULER_LENGTH_MM = 300.0   # standard 30 cm ruler

CANNY_LOW = 50
CANNY_HIGH = 150
MIN_ASPECT_RATIO = 3.0
MAX_ASPECT_RATIO = 15.0
IDEAL_ASPECT_RATIO = 10.0
MIN_CONFIDENCE = 0.3
IDEAL_AREA_FRACTION = (0.05, 0.30)
TOP_DETECTIONS = 3


@dataclass(frozen=True)
class RulerDetection:
    """Scale derived from one (or several) ruler sightings."""

    mm_per_pixel: float
    bounding_box: Tuple[int, int, int, int]   # x, y, width, height in px
    confidence: float

    @property
    def pixel_length(self) -> int:
        return self.bounding_box[3]


def ruler_confidence(aspect_ratio: float, box_area: float, frame_area: float) -> float:
    """
    Confidence that a bounding box is the reference ruler.

    Blends closeness to the ideal 10:1 aspect ratio (weight 0.7) with
    whether the box covers 5-30% of the frame (weight 0.3).
    """
    aspect_score = 1.0 - min(1.0, abs(aspect_ratio - IDEAL_ASPECT_RATIO) / IDEAL_ASPECT_RATIO)

    area_fraction = box_area / frame_area if frame_area > 0 else 0.0
    lo, hi = IDEAL_AREA_FRACTION
    area_score = 1.0 if lo <= area_fraction <= hi else 0.5

    return aspect_score * 0.7 + area_score * 0.3


def detect_ruler(
    frame: np.ndarray,
    ruler_length_mm: float = RULER_LENGTH_MM,
) -> Optional[RulerDetection]:
    """
    Detect the ruler in a single BGR frame.

    Among tall, thin edge contours (3 < height/width < 15) the one with the
    largest bounding box wins, provided its confidence clears 0.3.

    Args:
        frame: (H, W, 3) uint8 BGR image
        ruler_length_mm: Physical length of the ruler

    Returns:
        RulerDetection, or None if no candidate qualifies
    """
    ensure_initialized()

    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
    edges = cv2.Canny(gray, CANNY_LOW, CANNY_HIGH)
    contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    frame_area = float(gray.shape[0] * gray.shape[1])
    best = None
    max_area = 0.0

    for contour in contours:
        x, y, w, h = cv2.boundingRect(contour)
        if w == 0 or h == 0:
            continue
        area = float(w * h)
        aspect_ratio = h / w

        if MIN_ASPECT_RATIO < aspect_ratio < MAX_ASPECT_RATIO and area > max_area:
            confidence = ruler_confidence(aspect_ratio, area, frame_area)
            if confidence > MIN_CONFIDENCE:
                best = RulerDetection(
                    mm_per_pixel=ruler_length_mm / h,
                    bounding_box=(int(x), int(y), int(w), int(h)),
                    confidence=confidence,
                )
                max_area = area

    return best


def detect_ruler_multi_frame(
    frames: Sequence[np.ndarray],
    ruler_length_mm: float = RULER_LENGTH_MM,
    workers: int = 1,
) -> RulerDetection:
    """
    Robust scale estimate over many frames.

    Runs single-frame detection everywhere, keeps the three most confident
    detections and averages their scale. The bounding box and confidence
    reported are those of the single best detection.

    Raises:
        RulerNotDetected: If no frame yields a detection
    """
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda f: detect_ruler(f, ruler_length_mm), frames))
    else:
        results = [detect_ruler(f, ruler_length_mm) for f in frames]

    detections = [d for d in results if d is not None]
    print(f"Ruler detected in {len(detections)}/{len(frames)} frames")

    if not detections:
        raise RulerNotDetected(
            f"No ruler detected in any of {len(frames)} frames - "
            "place the ruler vertically next to the leg in good light"
        )

    ranked = sorted(detections, key=lambda d: d.confidence, reverse=True)
    top = ranked[:TOP_DETECTIONS]
    avg_ratio = float(np.mean([d.mm_per_pixel for d in top]))
    best = ranked[0]

    print(f"  Best: {best.pixel_length}px tall, confidence={best.confidence:.2f}")
    print(f"  Scale: {avg_ratio:.4f} mm/px (mean of top {len(top)})")

    return RulerDetection(
        mm_per_pixel=avg_ratio,
        bounding_box=best.bounding_box,
        confidence=best.confidence,
    )


class RulerCalibrator:
    """Ruler detection bound to a physical ruler length."""

    def __init__(self, ruler_length_mm: float = RULER_LENGTH_MM, workers: int = 1):
        if ruler_length_mm <= 0:
            raise ValueError(f"ruler_length_mm must be positive, got {ruler_length_mm}")
        self.ruler_length_mm = ruler_length_mm
        self.workers = workers

    def detect(self, frame: np.ndarray) -> Optional[RulerDetection]:
        return detect_ruler(frame, self.ruler_length_mm)

    def detect_multi_frame(self, frames: Sequence[np.ndarray]) -> RulerDetection:
        return detect_ruler_multi_frame(frames, self.ruler_length_mm, self.workers)

    def calibrate(self, frames: Sequence[np.ndarray], default_mm_per_pixel: float = 0.5) -> Tuple[float, Optional[RulerDetection]]:
        """
        Scale for a capture, falling back to a fixed default.

        Returns:
            (mm_per_pixel, detection or None if the fallback was used)
        """
        try:
            detection = self.detect_multi_frame(frames)
        except RulerNotDetected as e:
            print(f"  WARNING: {e}")
            print(f"  Using default scale {default_mm_per_pixel} mm/px")
            return default_mm_per_pixel, None
        return detection.mm_per_pixel, detection
