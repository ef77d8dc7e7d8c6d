"""Silence assets used to pad the narration timeline."""

import logging
from pathlib import Path

from narratore.audio.audio_utils import generate_silence
from narratore.models import AudioAsset, AudioFormat

logger = logging.getLogger(__name__)


class SilenceProvider:
    """Generates fixed-duration silence files once and hands out the same asset afterwards."""

    def __init__(self, work_dir: Path):
        self.work_dir = work_dir
        self._cache: dict[tuple[float, int, int], AudioAsset] = {}

    def provision(self, duration: float, sample_rate: int, channels: int) -> AudioAsset:
        """Return a silence asset of ``duration`` seconds in the given format.

        Raises:
            CommandError: If ffmpeg cannot generate the file. Fatal for the run.
        """
        key = (duration, sample_rate, channels)
        if key in self._cache:
            return self._cache[key]

        audio_format = AudioFormat(sample_rate=sample_rate, channels=channels)
        path = self.work_dir / f"silence_{duration}s_{sample_rate}_{audio_format.channel_layout}.wav"
        logger.debug("Generazione silenzio %.1fs (%d Hz, %s)", duration, sample_rate, audio_format.channel_layout)
        generate_silence(duration, path, audio_format)

        asset = AudioAsset(path=path, duration=duration)
        self._cache[key] = asset
        return asset
