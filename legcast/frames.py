"""Frame import module - Load capture frames from image folders or video clips."""

import cv2
import numpy as np
from pathlib import Path
from typing import List

from .vision import as_bgr, downsample_frame, ensure_initialized


IMAGE_SUFFIXES = {'.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff'}


def load_image_dir(path: str | Path, max_width: int = 800) -> List[np.ndarray]:
    """
    Load every image in a directory, ordered by file name.

    Raises:
        ValueError: If the directory has no readable images
    """
    path = Path(path)
    files = sorted(p for p in path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)

    frames = []
    for file in files:
        image = cv2.imread(str(file), cv2.IMREAD_COLOR)
        if image is None:
            print(f"  WARNING: could not read {file.name}, skipping")
            continue
        frames.append(downsample_frame(as_bgr(image), max_width))

    if not frames:
        raise ValueError(f"No readable images found in {path}")

    print(f"Loaded {len(frames)} frames from {path.name}/")
    return frames


def load_video(path: str | Path, interval_ms: int = 100, max_width: int = 800) -> List[np.ndarray]:
    """
    Sample a video clip every interval_ms.

    Frames are read sequentially and kept whenever the clip position has
    reached the next sampling time, so no seeking is needed.

    Raises:
        ValueError: If the clip cannot be opened or yields no frames
    """
    path = Path(path)
    capture = cv2.VideoCapture(str(path))
    if not capture.isOpened():
        raise ValueError(f"Could not open video: {path}")

    fps = capture.get(cv2.CAP_PROP_FPS) or 30.0
    frames = []
    next_ms = 0.0
    index = 0
    try:
        while True:
            ok, image = capture.read()
            if not ok:
                break
            position_ms = index * 1000.0 / fps
            if position_ms >= next_ms:
                frames.append(downsample_frame(as_bgr(image), max_width))
                next_ms += interval_ms
            index += 1
    finally:
        capture.release()

    if not frames:
        raise ValueError(f"No frames decoded from {path}")

    print(f"Extracted {len(frames)} frames from {path.name} ({index} decoded, every {interval_ms}ms)")
    return frames


def load_frames(path: str | Path, interval_ms: int = 100, max_width: int = 800) -> List[np.ndarray]:
    """
    Load frames from a directory of images or a single video clip.

    Args:
        path: Image directory or video file
        interval_ms: Video sampling interval
        max_width: Frames wider than this are resized

    Returns:
        List of (H, W, 3) uint8 BGR frames in capture order

    Raises:
        FileNotFoundError: If path does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Capture not found: {path}")

    ensure_initialized()

    if path.is_dir():
        return load_image_dir(path, max_width)
    return load_video(path, interval_ms, max_width)
