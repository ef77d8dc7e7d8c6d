"""Chapter markers - contiguous chapter ranges and their ffmetadata rendering."""

import math
from pathlib import Path

from narratore.models import ChapterMarker, ChapterNarration


def calculate_chapter_markers(narrations: list[ChapterNarration]) -> list[ChapterMarker]:
    """Lay chapters end to end using their measured durations.

    The first marker starts at 0 and each marker starts where the previous
    one ends.
    """
    markers = []
    start_time = 0.0
    for narration in sorted(narrations, key=lambda cn: cn.number):
        end_time = start_time + narration.duration
        title = narration.title or f"Chapter {narration.number}"
        markers.append(ChapterMarker(title=title, start_time=start_time, end_time=end_time))
        start_time = end_time
    return markers


def to_milliseconds(seconds: float) -> int:
    """Floor seconds to integer milliseconds."""
    return math.floor(seconds * 1000)


def render_ffmetadata(markers: list[ChapterMarker]) -> str:
    """Generate an ffmetadata chapter file.

    ffmetadata needs an explicit END for every chapter; the last one ends at
    the measured end of the timeline.
    """
    blocks = [";FFMETADATA1"]
    for marker in markers:
        blocks.append("\n".join([
            "[CHAPTER]",
            "TIMEBASE=1/1000",
            f"START={to_milliseconds(marker.start_time)}",
            f"END={to_milliseconds(marker.end_time)}",
            f"title={_escape(marker.title)}",
        ]))
    return "\n\n".join(blocks) + "\n"


def write_chapter_file(markers: list[ChapterMarker], path: Path) -> Path:
    path.write_text(render_ffmetadata(markers), encoding="utf-8")
    return path


def _escape(value: str) -> str:
    """Escape special characters for ffmetadata format."""
    # Must escape backslash first to avoid double-escaping
    value = value.replace("\\", "\\\\")
    for char in ("=", ";", "#", "\n"):
        value = value.replace(char, f"\\{char}")
    return value
