"""Line segmenter - turns chapters into ordered synthesis work units."""

import logging

from narratore.errors import BookStructureError
from narratore.models import Book, Chapter, TextUnit

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200


def segment_chapter(chapter: Chapter) -> list[TextUnit]:
    """Return the chapter's non-blank lines as TextUnits.

    ``line_index`` is the position of the line in ``chapter.lines``, so it
    stays stable even when blank lines are skipped.
    """
    units = []
    for index, line in enumerate(chapter.lines):
        text = line.strip()
        if not text:
            continue
        units.append(TextUnit(chapter_number=chapter.number, line_index=index, text=text))
    return units


def segment_book(book: Book) -> list[TextUnit]:
    """Return all units of the book in chapter and line order."""
    units = []
    for chapter in book.chapters:
        units.extend(segment_chapter(chapter))
    return units


def validate_book(book: Book) -> None:
    """Reject books that cannot be narrated.

    Raises:
        BookStructureError: No chapters, non contiguous 1-based numbering,
            or a chapter without any non-blank line.
    """
    if not book.chapters:
        raise BookStructureError(f"Il libro '{book.title}' non contiene capitoli")

    for expected, chapter in enumerate(book.chapters, start=1):
        if chapter.number != expected:
            raise BookStructureError(
                f"Numerazione capitoli non valida: atteso {expected}, trovato {chapter.number}"
            )
        if not segment_chapter(chapter):
            raise BookStructureError(
                f"Il capitolo {chapter.number} ('{chapter.title}') non contiene testo"
            )


def estimate_reading_time(text: str) -> float:
    """Rough narration time in seconds, for progress projections only."""
    words = len(text.split())
    return words / WORDS_PER_MINUTE * 60
