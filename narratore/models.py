"""Data models for the narratore pipeline."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class Chapter:
    """A single chapter as produced by the EPUB parser."""
    number: int
    title: str
    lines: list[str]


@dataclass(frozen=True)
class Book:
    """A parsed book: metadata plus chapters in reading order."""
    title: str
    author: str
    chapters: list[Chapter]


@dataclass(frozen=True)
class TextUnit:
    """One line of chapter text scheduled for synthesis."""
    chapter_number: int
    line_index: int
    text: str


@dataclass(frozen=True)
class AudioAsset:
    """An audio file on disk with its duration in seconds."""
    path: Path
    duration: float


@dataclass(frozen=True)
class AudioFormat:
    """Sample rate and channel count used for silence and concatenation."""
    sample_rate: int
    channels: int

    @property
    def channel_layout(self) -> str:
        if self.channels == 1:
            return "mono"
        if self.channels == 2:
            return "stereo"
        return f"{self.channels}c"


DEFAULT_AUDIO_FORMAT = AudioFormat(sample_rate=24000, channels=1)


@dataclass
class ChapterNarration:
    """A chapter merged into a single audio file with its measured duration."""
    chapter: Chapter
    audio_file: Path
    duration: float

    @property
    def number(self) -> int:
        return self.chapter.number

    @property
    def title(self) -> str:
        return self.chapter.title

    @property
    def lines(self) -> list[str]:
        return self.chapter.lines


@dataclass
class BookNarration:
    """A book whose chapters have all been narrated, ordered by chapter number."""
    book: Book
    chapter_narrations: list[ChapterNarration] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.book.title

    @property
    def author(self) -> str:
        return self.book.author

    @property
    def total_duration(self) -> float:
        return sum(cn.duration for cn in self.chapter_narrations)


@dataclass(frozen=True)
class ChapterMarker:
    """A named time range (seconds) used for chapter navigation."""
    title: str
    start_time: float
    end_time: float


@dataclass
class PiperOptions:
    """Options for the Piper engine."""
    model: str
    sentence_silence: float = 0.5
    speaker: Optional[int] = None


@dataclass
class EspeakOptions:
    """Options for the espeak-ng engine."""
    voice: str = "en"
    speed: int = 175


EngineOptions = Union[PiperOptions, EspeakOptions]


@dataclass
class NarrationConfig:
    """Configuration for a narration run."""
    concurrency: int = 6
    synthesis_timeout: Optional[float] = None
    concat_timeout: Optional[float] = None
    short_silence: float = 0.8
    long_silence: float = 1.5
    bitrate: str = "128k"
    # Long silence after the last line of the last chapter too
    book_end_silence: bool = True
    # Long silence after the first line of multi-line chapters (title pause)
    title_pause: bool = False
    comment: str = "Generated with narratore"

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError(f"La concorrenza deve essere >= 1 (ricevuto {self.concurrency})")
        if self.short_silence <= 0 or self.long_silence <= 0:
            raise ValueError("Le durate dei silenzi devono essere positive")
        for name in ("synthesis_timeout", "concat_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} deve essere positivo (ricevuto {value})")
