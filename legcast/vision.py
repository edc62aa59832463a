"""Vision backend state and frame containers."""

import threading
from dataclasses import dataclass

import cv2
import numpy as np


_init_lock = threading.Lock()
_backend_version = None


def ensure_initialized() -> str:
    """
    Initialize the OpenCV backend once per process.

    Safe to call from any thread and any number of times; only the first
    call does work.

    Returns:
        OpenCV version string
    """
    global _backend_version

    with _init_lock:
        if _backend_version is None:
            cv2.setUseOptimized(True)
            _backend_version = cv2.__version__
            print(f"OpenCV {_backend_version} initialized (optimized={cv2.useOptimized()})")
    return _backend_version


@dataclass(frozen=True)
class Frame:
    """A decoded color frame and the rotation angle it was captured at."""

    pixels: np.ndarray               # (H, W, 3) uint8, BGR
    rotation_angle_deg: float = 0.0

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


def as_bgr(image: np.ndarray) -> np.ndarray:
    """Return a 3-channel BGR uint8 view of a grayscale, BGR or BGRA image."""
    image = np.asarray(image)
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def downsample_frame(image: np.ndarray, max_width: int = 800) -> np.ndarray:
    """Shrink a frame to max_width pixels wide, keeping aspect ratio."""
    scale = max_width / image.shape[1]
    if scale >= 1.0:
        return image
    new_size = (max_width, int(round(image.shape[0] * scale)))
    return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)
