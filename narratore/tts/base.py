"""Abstract base class for TTS engines."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class TTSEngine(ABC):
    """Abstract base class that all TTS engines must implement.

    Engines are called concurrently from worker threads, so ``synthesize``
    must not keep per-call state on the instance.
    """

    # Dataclass holding the engine-specific options (see narratore.models)
    options_class: type = object

    @abstractmethod
    def initialize(self) -> None:
        """Check that the engine can be used (executable on PATH, model present).

        Raises:
            RuntimeError: If the engine cannot be used.
        """
        ...

    @abstractmethod
    def synthesize(self, text: str, output_path: Path, timeout: Optional[float] = None) -> None:
        """Synthesize text to an audio file.

        Args:
            text: Normalized text to synthesize.
            output_path: Where to write the audio file.
            timeout: Seconds before the engine process is killed.

        Raises:
            CommandError: If synthesis fails or times out.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name."""
        ...

    @property
    @abstractmethod
    def output_format(self) -> str:
        """Audio format produced natively, e.g. 'wav'."""
        ...
