"""Pipeline events and the emitter that delivers them to subscribers.

Events are one-directional: pipeline stages emit them, listeners (progress
bars, trackers, loggers) observe them. A failing listener never affects the
pipeline.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineParsed:
    chapter_number: int
    line_index: int
    text: str


@dataclass(frozen=True)
class SpeechStarted:
    total_lines: int
    total_chapters: int
    concurrency: int
    estimated_seconds: float


@dataclass(frozen=True)
class LineSynthesisStarted:
    chapter_number: int
    line_index: int


@dataclass(frozen=True)
class LineSynthesized:
    chapter_number: int
    line_index: int
    audio_file: Path
    duration: float
    resumed: bool = False


@dataclass(frozen=True)
class ChapterMergeStarted:
    chapter_number: int
    total_files: int


@dataclass(frozen=True)
class ChapterMerged:
    chapter_number: int
    title: str
    duration: float
    audio_file: Path
    resumed: bool = False


@dataclass(frozen=True)
class AssemblyStarted:
    total_chapters: int


@dataclass(frozen=True)
class AssemblyCompleted:
    output_path: Path
    total_duration: float


@dataclass(frozen=True)
class ProcessingCompleted:
    output_path: Path
    total_lines: int
    total_chapters: int
    total_duration: float


ProgressEvent = Union[
    LineParsed,
    SpeechStarted,
    LineSynthesisStarted,
    LineSynthesized,
    ChapterMergeStarted,
    ChapterMerged,
    AssemblyStarted,
    AssemblyCompleted,
    ProcessingCompleted,
]

EventListener = Callable[[ProgressEvent], None]


class EventEmitter:
    """Delivers events to subscribers, synchronously and in subscription order.

    Safe to call ``emit`` from worker threads.
    """

    def __init__(self):
        self._listeners: list[EventListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: ProgressEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.warning("Errore nel listener %r per %s", listener, type(event).__name__, exc_info=True)
