"""Progress tracking and reporting for the conversion pipeline.

Both classes are pure event listeners: they are subscribed to an
EventEmitter and never influence the pipeline.
"""

import threading
from enum import IntEnum
from typing import Optional

from tqdm import tqdm

from narratore.events import (
    AssemblyCompleted,
    AssemblyStarted,
    ChapterMerged,
    LineParsed,
    LineSynthesized,
    ProcessingCompleted,
    ProgressEvent,
    SpeechStarted,
)


class ProgressState(IntEnum):
    """Lifecycle of a line. Values are ordered, states only move forward."""
    PENDING = 0
    PARSED = 1
    SYNTHESIZED = 2
    CHAPTER_MERGED = 3
    BOOK_MERGED = 4


class ProgressTracker:
    """Thread-safe state machine over every (chapter, line) of the book."""

    def __init__(self):
        self._states: dict[tuple[int, int], ProgressState] = {}
        self._lock = threading.Lock()

    def __call__(self, event: ProgressEvent) -> None:
        self.handle(event)

    def register(self, chapter_number: int, line_index: int) -> None:
        with self._lock:
            self._states.setdefault((chapter_number, line_index), ProgressState.PENDING)

    def handle(self, event: ProgressEvent) -> None:
        if isinstance(event, LineParsed):
            self._advance_line(event.chapter_number, event.line_index, ProgressState.PARSED)
        elif isinstance(event, LineSynthesized):
            self._advance_line(event.chapter_number, event.line_index, ProgressState.SYNTHESIZED)
        elif isinstance(event, ChapterMerged):
            self._advance_chapter(event.chapter_number, ProgressState.CHAPTER_MERGED)
        elif isinstance(event, AssemblyCompleted):
            self._advance_all(ProgressState.BOOK_MERGED)

    def state_of(self, chapter_number: int, line_index: int) -> Optional[ProgressState]:
        with self._lock:
            return self._states.get((chapter_number, line_index))

    def chapter_state(self, chapter_number: int) -> Optional[ProgressState]:
        """The least advanced state among the chapter's lines."""
        with self._lock:
            states = [s for (ch, _), s in self._states.items() if ch == chapter_number]
        return min(states) if states else None

    def stats(self) -> dict[str, int]:
        with self._lock:
            states = list(self._states.values())
            chapters = {ch for ch, _ in self._states}
        return {
            "total": len(states),
            "parsed": sum(1 for s in states if s >= ProgressState.PARSED),
            "tts": sum(1 for s in states if s >= ProgressState.SYNTHESIZED),
            "chapter": sum(1 for s in states if s >= ProgressState.CHAPTER_MERGED),
            "complete": sum(1 for s in states if s == ProgressState.BOOK_MERGED),
            "chapters": len(chapters),
        }

    def _advance_line(self, chapter_number: int, line_index: int, state: ProgressState) -> None:
        key = (chapter_number, line_index)
        with self._lock:
            current = self._states.get(key, ProgressState.PENDING)
            if state > current:
                self._states[key] = state

    def _advance_chapter(self, chapter_number: int, state: ProgressState) -> None:
        with self._lock:
            for key, current in self._states.items():
                if key[0] == chapter_number and state > current:
                    self._states[key] = state

    def _advance_all(self, state: ProgressState) -> None:
        with self._lock:
            for key in self._states:
                self._states[key] = max(self._states[key], state)


class ProgressReporter:
    """Wraps tqdm for line-level progress reporting."""

    def __init__(self):
        self._bar: Optional[tqdm] = None

    def __call__(self, event: ProgressEvent) -> None:
        if isinstance(event, SpeechStarted):
            self.close()
            self._bar = tqdm(
                total=event.total_lines,
                desc="Sintesi",
                unit="righe",
                bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} righe [{elapsed}<{remaining}]",
            )
        elif isinstance(event, LineSynthesized) and self._bar is not None:
            self._bar.update(1)
        elif isinstance(event, ChapterMerged) and self._bar is not None:
            self._bar.set_postfix_str(f"cap. {event.chapter_number}: {event.title}", refresh=False)
        elif isinstance(event, AssemblyStarted):
            self.close()
        elif isinstance(event, ProcessingCompleted):
            self.close()
            tqdm.write(
                f"{event.total_chapters} capitoli, {event.total_lines} righe, "
                f"durata {format_duration(event.total_duration)}"
            )

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def format_duration(seconds: float) -> str:
    """Format seconds as '1h 2m 3s', omitting leading zero units."""
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
