"""Converter - orchestrates the full Book → TTS → chaptered audiobook pipeline."""

import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from narratore.audio.audio_utils import probe_stream_info
from narratore.audio.m4b_builder import build_m4b
from narratore.audio.silence import SilenceProvider
from narratore.audio.timeline import TimelineAssembler
from narratore.epub_parser import EpubParser
from narratore.events import (
    AssemblyCompleted,
    AssemblyStarted,
    EventEmitter,
    LineParsed,
    ProcessingCompleted,
    SpeechStarted,
)
from narratore.models import (
    AudioAsset,
    AudioFormat,
    Book,
    BookNarration,
    ChapterNarration,
    NarrationConfig,
)
from narratore.scheduler import SynthesisScheduler
from narratore.segmenter import estimate_reading_time, segment_chapter, validate_book
from narratore.tts.base import TTSEngine

logger = logging.getLogger(__name__)


class Converter:
    """Orchestrates the full conversion pipeline.

    Chapters are processed one after another; the lines of each chapter are
    synthesized on a worker pool shared by the whole run.
    """

    def __init__(
        self,
        engine: TTSEngine,
        config: Optional[NarrationConfig] = None,
        events: Optional[EventEmitter] = None,
    ):
        self.engine = engine
        self.config = config or NarrationConfig()
        self.events = events or EventEmitter()
        self.synthesized_count = 0

    def convert(
        self,
        epub_path: str,
        output_path: str,
        work_dir: Optional[str] = None,
    ) -> BookNarration:
        """Full pipeline: EPUB → chapters → TTS → tagged audiobook."""
        logger.info("Parsing EPUB: %s", epub_path)
        book = EpubParser(epub_path).parse()
        logger.info(
            "Libro: '%s' di %s — %d capitoli",
            book.title, book.author, len(book.chapters),
        )
        return self.narrate(book, output_path, work_dir=work_dir)

    def narrate(
        self,
        book: Book,
        output_path: str,
        work_dir: Optional[str] = None,
    ) -> BookNarration:
        """Narrate an already parsed book into ``output_path``.

        Args:
            book: The book to narrate.
            output_path: Path of the final tagged audio file.
            work_dir: Directory for intermediate files (enables resume). If
                None, a temporary directory is used and removed afterwards.

        Raises:
            BookStructureError: If the book has nothing to narrate.
            SynthesisError: If a line cannot be synthesized.
            CommandError: If ffmpeg fails.
        """
        validate_book(book)

        cleanup_work_dir = work_dir is None
        work_path = Path(work_dir) if work_dir else Path(tempfile.mkdtemp(prefix="narratore_"))
        work_path.mkdir(parents=True, exist_ok=True)
        logger.info("Directory di lavoro: %s", work_path)

        try:
            with ThreadPoolExecutor(
                max_workers=self.config.concurrency, thread_name_prefix="tts"
            ) as executor:
                scheduler = SynthesisScheduler(
                    self.engine,
                    executor,
                    work_path,
                    self.events,
                    timeout=self.config.synthesis_timeout,
                )
                narration, assembler = self._narrate_chapters(book, scheduler, work_path)
                self.synthesized_count = scheduler.synthesized_count

            self._assemble(narration, assembler, work_path, Path(output_path))
            return narration
        finally:
            if cleanup_work_dir:
                shutil.rmtree(work_path, ignore_errors=True)

    def _narrate_chapters(
        self, book: Book, scheduler: SynthesisScheduler, work_path: Path
    ) -> tuple[BookNarration, TimelineAssembler]:
        chapter_units = []
        for chapter in book.chapters:
            units = segment_chapter(chapter)
            for unit in units:
                self.events.emit(LineParsed(
                    chapter_number=unit.chapter_number,
                    line_index=unit.line_index,
                    text=unit.text,
                ))
            chapter_units.append((chapter, units))

        total_lines = sum(len(units) for _, units in chapter_units)
        estimated = sum(estimate_reading_time(u.text) for _, units in chapter_units for u in units)
        logger.info(
            "%d righe da sintetizzare, durata stimata ~%d minuti",
            total_lines, round(estimated / 60),
        )
        self.events.emit(SpeechStarted(
            total_lines=total_lines,
            total_chapters=len(book.chapters),
            concurrency=self.config.concurrency,
            estimated_seconds=estimated,
        ))

        silences = SilenceProvider(work_path)
        assembler: Optional[TimelineAssembler] = None
        short_silence = long_silence = None
        narrations: list[ChapterNarration] = []
        last_number = book.chapters[-1].number

        for chapter, units in chapter_units:
            logger.info(
                "Sintesi capitolo %d/%d: %s",
                chapter.number, len(book.chapters), chapter.title,
            )
            before = scheduler.synthesized_count
            assets = scheduler.schedule(units)

            if assembler is None:
                # The audio format is fixed for the whole run by the first line
                audio_format = probe_stream_info(assets[0].path)
                logger.debug("Formato audio: %d Hz, %d canali", audio_format.sample_rate, audio_format.channels)
                short_silence, long_silence = self._provision_silences(silences, audio_format)
                assembler = TimelineAssembler(
                    work_path, audio_format, self.events, timeout=self.config.concat_timeout
                )

            trailing = self.config.book_end_silence or chapter.number != last_number
            narrations.append(assembler.merge_chapter(
                chapter,
                assets,
                short_silence,
                long_silence,
                trailing=trailing,
                title_pause=self.config.title_pause,
                reuse_existing=scheduler.synthesized_count == before,
            ))

        return BookNarration(book=book, chapter_narrations=narrations), assembler

    def _provision_silences(
        self, silences: SilenceProvider, audio_format: AudioFormat
    ) -> tuple[AudioAsset, AudioAsset]:
        short = silences.provision(
            self.config.short_silence, audio_format.sample_rate, audio_format.channels
        )
        long = silences.provision(
            self.config.long_silence, audio_format.sample_rate, audio_format.channels
        )
        return short, long

    def _assemble(
        self,
        narration: BookNarration,
        assembler: TimelineAssembler,
        work_path: Path,
        output_path: Path,
    ) -> None:
        """Merge chapter files, then encode and tag the final audiobook."""
        self.events.emit(AssemblyStarted(total_chapters=len(narration.chapter_narrations)))
        logger.info("Assemblaggio audiobook da %d capitoli...", len(narration.chapter_narrations))

        merged = work_path / "audiobook.wav"
        try:
            book_audio = assembler.merge_book(narration.chapter_narrations, merged)
            build_m4b(
                narration,
                book_audio.path,
                output_path,
                work_path,
                bitrate=self.config.bitrate,
                comment=self.config.comment,
                timeout=self.config.concat_timeout,
            )
        finally:
            _remove_quietly(merged)
            _remove_quietly(work_path / "chapters.txt")

        total_duration = book_audio.duration
        self.events.emit(AssemblyCompleted(output_path=output_path, total_duration=total_duration))
        self.events.emit(ProcessingCompleted(
            output_path=output_path,
            total_lines=sum(len(segment_chapter(cn.chapter)) for cn in narration.chapter_narrations),
            total_chapters=len(narration.chapter_narrations),
            total_duration=total_duration,
        ))


def _remove_quietly(path: Path) -> None:
    """Best-effort removal of an intermediate file."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Impossibile rimuovere %s: %s", path, e)
