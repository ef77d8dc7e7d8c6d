"""Timeline assembler - interleaves silence and merges audio per chapter and per book.

Durations stored on merged assets always come from ffprobe on the merged
file, never from summing the parts.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from narratore.audio.audio_utils import concat_audio, probe_duration
from narratore.events import ChapterMerged, ChapterMergeStarted, EventEmitter
from narratore.models import AudioAsset, AudioFormat, Chapter, ChapterNarration

logger = logging.getLogger(__name__)


def interleave_silence(
    assets: list[AudioAsset],
    short_silence: AudioAsset,
    long_silence: AudioAsset,
    trailing: bool = True,
    title_pause: bool = False,
) -> list[AudioAsset]:
    """Build the ordered concat entries of one chapter.

    Every line but the last is followed by the short silence, the last line by
    the long silence (omitted when ``trailing`` is False). With
    ``title_pause`` the first line of a multi-line chapter gets the long
    silence instead of the short one.
    """
    entries: list[AudioAsset] = []
    last = len(assets) - 1
    for index, asset in enumerate(assets):
        entries.append(asset)
        if index == last:
            if trailing:
                entries.append(long_silence)
        elif index == 0 and title_pause:
            entries.append(long_silence)
        else:
            entries.append(short_silence)
    return entries


def render_concat_list(entries: list[AudioAsset], list_path: Path) -> str:
    """Render an ffmpeg concat list with paths relative to the list's directory."""
    base = list_path.parent.resolve()
    lines = []
    for entry in entries:
        relative = os.path.relpath(entry.path.resolve(), base)
        safe_path = relative.replace("'", "'\\''")
        lines.append(f"file '{safe_path}'")
    return "\n".join(lines) + "\n"


def write_concat_list(entries: list[AudioAsset], list_path: Path) -> None:
    list_path.write_text(render_concat_list(entries, list_path), encoding="utf-8")


def chapter_audio_path(work_dir: Path, chapter_number: int) -> Path:
    return work_dir / f"chapter_{chapter_number:04d}.wav"


class TimelineAssembler:
    """Merges per-line assets into chapter files and chapter files into the book."""

    def __init__(
        self,
        work_dir: Path,
        audio_format: AudioFormat,
        events: EventEmitter,
        timeout: Optional[float] = None,
    ):
        self.work_dir = work_dir
        self.audio_format = audio_format
        self.events = events
        self.timeout = timeout

    def merge_chapter(
        self,
        chapter: Chapter,
        assets: list[AudioAsset],
        short_silence: AudioAsset,
        long_silence: AudioAsset,
        trailing: bool = True,
        title_pause: bool = False,
        reuse_existing: bool = False,
    ) -> ChapterNarration:
        """Merge a chapter's line assets (in line order) with silence padding.

        Args:
            reuse_existing: Accept an already merged chapter file from a
                previous run instead of merging again. The file is only
                reused when its concat list matches the current layout.

        Raises:
            CommandError: If ffmpeg fails. The partial output is discarded.
            ValueError: If ``assets`` is empty.
        """
        if not assets:
            raise ValueError(f"Nessun audio da unire per il capitolo {chapter.number}")

        output = chapter_audio_path(self.work_dir, chapter.number)
        concat_list = self.work_dir / f"chapter_{chapter.number:04d}_concat.txt"
        entries = interleave_silence(
            assets, short_silence, long_silence, trailing=trailing, title_pause=title_pause
        )
        listing = render_concat_list(entries, concat_list)

        if reuse_existing and self._is_merged(output, concat_list, listing):
            logger.info("Riutilizzo capitolo già unito: %s", output.name)
            duration = probe_duration(output)
            self.events.emit(ChapterMerged(
                chapter_number=chapter.number,
                title=chapter.title,
                duration=duration,
                audio_file=output,
                resumed=True,
            ))
            return ChapterNarration(chapter=chapter, audio_file=output, duration=duration)

        self.events.emit(ChapterMergeStarted(
            chapter_number=chapter.number, total_files=len(entries)
        ))

        # A stale chapter file must never sit next to the new list
        output.unlink(missing_ok=True)
        concat_list.write_text(listing, encoding="utf-8")
        self._concat(concat_list, output)

        duration = probe_duration(output)
        logger.info("Capitolo %d unito: %.1fs", chapter.number, duration)
        self.events.emit(ChapterMerged(
            chapter_number=chapter.number,
            title=chapter.title,
            duration=duration,
            audio_file=output,
        ))
        return ChapterNarration(chapter=chapter, audio_file=output, duration=duration)

    def merge_book(self, narrations: list[ChapterNarration], output: Path) -> AudioAsset:
        """Concatenate the merged chapter files (never line files) into ``output``."""
        if not narrations:
            raise ValueError("Nessun capitolo da unire")

        ordered = sorted(narrations, key=lambda cn: cn.number)
        entries = [AudioAsset(path=cn.audio_file, duration=cn.duration) for cn in ordered]

        concat_list = self.work_dir / "book_concat.txt"
        write_concat_list(entries, concat_list)
        self._concat(concat_list, output)

        return AudioAsset(path=output, duration=probe_duration(output))

    @staticmethod
    def _is_merged(output: Path, concat_list: Path, listing: str) -> bool:
        """True if ``output`` was merged from exactly ``listing``."""
        if not (output.exists() and output.stat().st_size > 0 and concat_list.exists()):
            return False
        return concat_list.read_text(encoding="utf-8") == listing

    def _concat(self, concat_list: Path, output: Path) -> None:
        """Run the concat into a ``.part`` file and move it into place on success."""
        partial = output.with_name(f"{output.stem}.part{output.suffix}")
        try:
            concat_audio(concat_list, partial, self.audio_format, timeout=self.timeout)
            partial.replace(output)
        finally:
            partial.unlink(missing_ok=True)
