"""espeak-ng engine - robotic but dependency-free offline speech."""

import shutil
from pathlib import Path
from typing import Optional

from narratore.command import run_command
from narratore.models import EspeakOptions
from narratore.tts import register_engine
from narratore.tts.base import TTSEngine

ESPEAK_EXECUTABLES = ("espeak-ng", "espeak")


@register_engine("espeak")
class EspeakTTSEngine(TTSEngine):
    """TTS engine using espeak-ng, reading text from stdin."""

    options_class = EspeakOptions

    def __init__(self, options: EspeakOptions):
        self.options = options
        self._executable = ESPEAK_EXECUTABLES[0]

    def initialize(self) -> None:
        for candidate in ESPEAK_EXECUTABLES:
            if shutil.which(candidate):
                self._executable = candidate
                return
        raise RuntimeError("espeak-ng non trovato nel PATH")

    def synthesize(self, text: str, output_path: Path, timeout: Optional[float] = None) -> None:
        run_command(
            [
                self._executable,
                "-v", self.options.voice,
                "-s", str(self.options.speed),
                "-w", str(output_path),
                "--stdin",
            ],
            input=text,
            timeout=timeout,
            desc="espeak",
        )

    @property
    def name(self) -> str:
        return "eSpeak NG"

    @property
    def output_format(self) -> str:
        return "wav"
