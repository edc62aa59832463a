"""Progress reporting - Listeners that receive pipeline milestones.

The pipeline calls its listener synchronously, in milestone order, from
the thread that runs it.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence


class ProgressListener:
    """Base listener; both callbacks default to doing nothing."""

    def on_progress(self, percent: int, message: str) -> None:
        pass

    def on_step_complete(self, step: str, details: Dict[str, Any]) -> None:
        pass


@dataclass
class LogEntry:
    offset_ms: int
    kind: str                 # 'progress' or 'step'
    text: str
    percent: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class ProcessingLog(ProgressListener):
    """
    Records every event with its offset from the start of the run.

    render() produces the human-readable processing log written next to
    the STL.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._start = clock()
        self.entries: List[LogEntry] = []

    def _offset_ms(self) -> int:
        return int((self._clock() - self._start) * 1000)

    def on_progress(self, percent: int, message: str) -> None:
        self.entries.append(LogEntry(self._offset_ms(), 'progress', message, percent=percent))

    def on_step_complete(self, step: str, details: Dict[str, Any]) -> None:
        self.entries.append(LogEntry(self._offset_ms(), 'step', step, details=dict(details)))

    @property
    def steps(self) -> List[str]:
        return [e.text for e in self.entries if e.kind == 'step']

    def step_details(self, step: str) -> Dict[str, Any]:
        """Details of the last completion of step, or {} if it never completed."""
        for entry in reversed(self.entries):
            if entry.kind == 'step' and entry.text == step:
                return entry.details
        return {}

    def render(self, title: str = "LEG CAST PROCESSING LOG", summary_lines: Sequence[str] = ()) -> str:
        frames = self.step_details('frames_extracted')
        ruler = self.step_details('ruler_detected')
        cloud = self.step_details('point_cloud_built')
        reduced = self.step_details('downsampled')
        mesh = self.step_details('mesh_built')
        export = self.step_details('exported')

        lines = ["=" * 60, title, "=" * 60, ""]

        lines.append("INPUT:")
        lines.append(f"  Videos: {frames.get('video_count', 'n/a')}")
        lines.append(f"  Frames: {frames.get('frame_count', 'n/a')}")
        lines.append("")

        lines.append("CALIBRATION:")
        if ruler.get('detected'):
            lines.append(f"  Ruler detected (confidence {ruler.get('confidence', 0.0):.2f})")
        else:
            lines.append("  Ruler not detected - default scale used")
        lines.append(f"  Scale: {ruler.get('mm_per_pixel', 0.0):.4f} mm/px")
        lines.append("")

        lines.append("RECONSTRUCTION:")
        lines.append(f"  Raw points: {cloud.get('point_count', 0):,}")
        lines.append(f"  Downsampled points: {reduced.get('point_count', 0):,} "
                     f"({reduced.get('tier', 'n/a')} tier, {reduced.get('voxel_size', 0.0)} mm voxels)")
        lines.append(f"  Mesh triangles: {mesh.get('triangle_count', 0):,}"
                     + (" (fallback cylinder)" if mesh.get('fallback') else ""))
        lines.append(f"  Exported triangles: {export.get('triangle_count', 0):,}")
        lines.append("")

        for line in summary_lines:
            lines.append(line)
        if summary_lines:
            lines.append("")

        lines.append("DETAILED LOG:")
        for entry in self.entries:
            if entry.kind == 'progress':
                lines.append(f"  [{entry.offset_ms:>7} ms] {entry.percent:>3}% {entry.text}")
            else:
                lines.append(f"  [{entry.offset_ms:>7} ms] done: {entry.text}")

        return "\n".join(lines) + "\n"


class ConsoleListener(ProgressListener):
    """Prints progress the way the CLI reports its stages."""

    def on_progress(self, percent: int, message: str) -> None:
        print(f"\n[{percent:>3}%] {message}")

    def on_step_complete(self, step: str, details: Dict[str, Any]) -> None:
        summary = ", ".join(f"{k}={v}" for k, v in details.items() if not isinstance(v, (list, dict)))
        print(f"  ✓ {step}" + (f" ({summary})" if summary else ""))


class MultiListener(ProgressListener):
    """Forwards each event to several listeners, in the order given."""

    def __init__(self, *listeners: ProgressListener):
        self.listeners = [l for l in listeners if l is not None]

    def on_progress(self, percent: int, message: str) -> None:
        for listener in self.listeners:
            listener.on_progress(percent, message)

    def on_step_complete(self, step: str, details: Dict[str, Any]) -> None:
        for listener in self.listeners:
            listener.on_step_complete(step, details)
