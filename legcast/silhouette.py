"""Silhouette extraction - Segment skin-colored pixels and trace the leg outline."""

import numpy as np
import cv2
from typing import Dict, Optional

from .vision import ensure_initialized


# Skin range in OpenCV HSV (H: 0-180, S/V: 0-255). Tuned for typical indoor
# lighting; dark or very pale skin and colored light fall outside it.
LOWER_SKIN = np.array([0, 20, 70], dtype=np.uint8)
UPPER_SKIN = np.array([20, 255, 255], dtype=np.uint8)

KERNEL_SIZE = (5, 5)


def silhouette_mask(frame: np.ndarray) -> np.ndarray:
    """
    Binary skin mask of a BGR frame.

    Closing fills small gaps inside the leg, opening then removes
    isolated speckles.

    Returns:
        (H, W) uint8 mask with values {0, 255}
    """
    ensure_initialized()

    hsv = cv2.cvtColor(frame, cv2.COLOR_BGR2HSV)
    mask = cv2.inRange(hsv, LOWER_SKIN, UPPER_SKIN)

    kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, KERNEL_SIZE)
    mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel)
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)
    return mask


def extract_leg_silhouette(frame: np.ndarray) -> Optional[np.ndarray]:
    """
    Outline of the largest skin-colored region in a frame.

    Args:
        frame: (H, W, 3) uint8 BGR image

    Returns:
        (K, 2) int array of (x, y) pixel points in contour order,
        or None if no skin region is found
    """
    mask = silhouette_mask(frame)
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        return None

    # max() keeps the first contour on ties
    largest = max(contours, key=cv2.contourArea)
    return largest[:, 0, :].astype(np.int64)


def contour_stats(contour: Optional[np.ndarray]) -> Dict:
    """Area and bounding box of a contour, for logging."""
    if contour is None or len(contour) == 0:
        return {'points': 0, 'area': 0.0, 'bbox': None}

    pts = np.asarray(contour, dtype=np.int32).reshape(-1, 1, 2)
    x, y, w, h = cv2.boundingRect(pts)
    return {
        'points': int(len(contour)),
        'area': float(cv2.contourArea(pts)),
        'bbox': (int(x), int(y), int(w), int(h)),
    }
