"""Audiobook builder - encodes the merged narration to AAC with chapters and metadata."""

import logging
from pathlib import Path
from typing import Optional

from narratore.audio.audio_utils import get_ffmpeg
from narratore.audio.markers import calculate_chapter_markers, write_chapter_file
from narratore.command import run_command
from narratore.models import BookNarration, ChapterMarker

logger = logging.getLogger(__name__)


def build_m4b(
    narration: BookNarration,
    merged_audio: Path,
    output_path: Path,
    temp_dir: Path,
    bitrate: str = "128k",
    comment: str = "Generated with narratore",
    timeout: Optional[float] = None,
) -> list[ChapterMarker]:
    """Tag the merged book audio with chapter markers and metadata.

    The uncompressed intermediate is encoded to AAC while the ffmetadata
    chapter file and the scalar tags are muxed in.

    Returns:
        The chapter markers written to the output.
    """
    markers = calculate_chapter_markers(narration.chapter_narrations)
    chapter_file = write_chapter_file(markers, temp_dir / "chapters.txt")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Codifica audio in AAC (%s) con %d capitoli...", bitrate, len(markers))
    run_command(
        [
            get_ffmpeg(),
            "-i", str(merged_audio),
            "-i", str(chapter_file),
            "-map", "0",
            "-map_chapters", "1",
            "-c:a", "aac", "-b:a", bitrate,
            "-metadata", f"title={narration.title}",
            "-metadata", f"artist={narration.author}",
            "-metadata", f"album={narration.title}",
            "-metadata", f"comment={comment}",
            "-y", str(output_path),
        ],
        timeout=timeout,
        desc="tag audiobook",
    )
    logger.info("Audiobook creato: %s", output_path)
    return markers
