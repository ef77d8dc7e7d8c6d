"""Piper TTS engine - fast, local neural TTS driven through the piper executable."""

import logging
import shutil
from pathlib import Path
from typing import Optional

from narratore.command import run_command
from narratore.models import PiperOptions
from narratore.tts import register_engine
from narratore.tts.base import TTSEngine

logger = logging.getLogger(__name__)

PIPER_EXECUTABLE = "piper"


@register_engine("piper")
class PiperTTSEngine(TTSEngine):
    """TTS engine using the Piper command line tool.

    Text is written to piper's stdin, the WAV goes straight to ``--output-file``.
    """

    options_class = PiperOptions

    def __init__(self, options: PiperOptions):
        self.options = options

    def initialize(self) -> None:
        if shutil.which(PIPER_EXECUTABLE) is None:
            raise RuntimeError(
                "piper non trovato nel PATH. Installa con:\n"
                "  pip install piper-tts"
            )
        model = Path(self.options.model)
        if model.suffix == ".onnx" and not model.exists():
            raise RuntimeError(f"Modello Piper non trovato: {model}")

    def synthesize(self, text: str, output_path: Path, timeout: Optional[float] = None) -> None:
        cmd = [
            PIPER_EXECUTABLE,
            "--model", self.options.model,
            "--sentence-silence", str(self.options.sentence_silence),
            "--output-file", str(output_path),
        ]
        if self.options.speaker is not None:
            cmd += ["--speaker", str(self.options.speaker)]

        run_command(cmd, input=text, timeout=timeout, desc="piper")

    @property
    def name(self) -> str:
        return "Piper TTS"

    @property
    def output_format(self) -> str:
        return "wav"
