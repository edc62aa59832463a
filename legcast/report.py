"""Output files - STL, measurement JSON and processing log for one run.

All three files share the run timestamp so they can be matched up later.
"""

import json
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict

from .measurements import Measurements


@dataclass(frozen=True)
class RunFiles:
    """File names for one run, all keyed on the same timestamp."""

    timestamp_ms: int

    @classmethod
    def now(cls) -> 'RunFiles':
        return cls(int(time.time() * 1000))

    @property
    def stl(self) -> str:
        return f"leg_cast_{self.timestamp_ms}.stl"

    @property
    def measurements(self) -> str:
        return f"measurements_{self.timestamp_ms}.json"

    @property
    def log(self) -> str:
        return f"processing_log_{self.timestamp_ms}.txt"

    @property
    def date(self) -> str:
        return datetime.fromtimestamp(self.timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def measurement_document(
    files: RunFiles,
    measurements: Measurements,
    point_count: int,
    triangle_count: int,
    video_count: int,
    processing_time_ms: int,
) -> Dict:
    """The measurement JSON document for a run."""
    return {
        'timestamp': files.timestamp_ms,
        'date': files.date,
        'measurements': {
            'ankleCircumference_mm': measurements.ankle_circumference_mm,
            'calfCircumference_mm': measurements.calf_circumference_mm,
            'totalLength_mm': measurements.total_length_mm,
        },
        'model': {
            'pointCount': point_count,
            'triangleCount': triangle_count,
        },
        'processing': {
            'videoCount': video_count,
            'processingTime_ms': processing_time_ms,
            'processingTime_seconds': processing_time_ms / 1000.0,
        },
        'files': {
            'stl': files.stl,
            'measurements': files.measurements,
            'log': files.log,
        },
    }


def write_measurements(document: Dict, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(document, f, indent=2)
    print(f"Wrote measurements to {path}")
    return path


def write_processing_log(text: str, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    print(f"Wrote processing log to {path}")
    return path
