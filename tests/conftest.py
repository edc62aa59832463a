"""
Shared fixtures for the legcast test suite.

Frames are drawn with OpenCV primitives: a skin-colored ellipse stands in
for the leg and a white bar for the ruler, both on a black background.
"""

import cv2
import numpy as np
import pytest


FRAME_W = 400
FRAME_H = 600

# BGR (80, 120, 200) is HSV (10, 153, 200), well inside the skin range
SKIN_BGR = (80, 120, 200)
RULER_BGR = (255, 255, 255)

LEG_CENTER = (200, 300)
LEG_AXES = (60, 90)        # half-width, half-height in px
RULER_RECT = (30, 150, 20, 200)  # x, y, w, h


def blank_frame(width: int = FRAME_W, height: int = FRAME_H) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)


def draw_leg(frame: np.ndarray, center=LEG_CENTER, axes=LEG_AXES) -> np.ndarray:
    cv2.ellipse(frame, center, axes, 0, 0, 360, SKIN_BGR, -1)
    return frame


def draw_ruler(frame: np.ndarray, rect=RULER_RECT) -> np.ndarray:
    x, y, w, h = rect
    cv2.rectangle(frame, (x, y), (x + w - 1, y + h - 1), RULER_BGR, -1)
    return frame


def ring_points(radius: float, y: float, count: int, center=(0.0, 0.0)) -> np.ndarray:
    theta = np.linspace(0.0, 2 * np.pi, count, endpoint=False)
    return np.column_stack([
        center[0] + radius * np.cos(theta),
        np.full(count, y),
        center[1] + radius * np.sin(theta),
    ])


@pytest.fixture
def leg_frame():
    return draw_leg(blank_frame())


@pytest.fixture
def ruler_frame():
    return draw_ruler(blank_frame())


@pytest.fixture
def capture_frames():
    """A short capture: leg plus ruler in every frame."""
    return [draw_ruler(draw_leg(blank_frame())) for _ in range(12)]


@pytest.fixture
def cylinder_cloud():
    """Tapered cylinder: 300 levels, 36 points each, radius 50 at y=0 down to 30 at y=299."""
    levels = np.arange(300, dtype=np.float64)
    return np.vstack([ring_points(50.0 - 20.0 * y / 299.0, y, 36) for y in levels])
