"""Exceptions raised by the narration pipeline."""

from typing import Optional


class NarrationError(Exception):
    """Base class for all narratore errors."""


class CommandError(NarrationError, RuntimeError):
    """An external process failed, timed out, or could not be started."""

    def __init__(
        self,
        message: str,
        command: Optional[list[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr
        if stderr:
            message = f"{message}\nstderr: {stderr[-2000:]}"
        super().__init__(message)


class ProbeError(NarrationError, ValueError):
    """ffprobe returned something that is not a usable value."""


class BookStructureError(NarrationError, ValueError):
    """The input book cannot be narrated (no chapters, empty chapters, bad numbering)."""


class SynthesisError(NarrationError):
    """Speech synthesis failed for a specific line of a chapter."""

    def __init__(self, chapter_number: int, line_index: int, reason: str):
        self.chapter_number = chapter_number
        self.line_index = line_index
        super().__init__(
            f"Sintesi fallita per capitolo {chapter_number}, riga {line_index}: {reason}"
        )
