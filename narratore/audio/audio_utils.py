"""Audio utility functions - ffmpeg paths, probing, silence and concatenation."""

import logging
from pathlib import Path
from typing import Optional

import static_ffmpeg

from narratore.command import run_command
from narratore.errors import CommandError, ProbeError
from narratore.models import AudioFormat, DEFAULT_AUDIO_FORMAT

logger = logging.getLogger(__name__)

PCM_CODEC = "pcm_s16le"


def get_ffmpeg_paths() -> tuple[str, str]:
    """Return (ffmpeg_path, ffprobe_path) using the bundled static-ffmpeg binaries.

    Downloads binaries on first use if not already present.
    """
    ffmpeg_path, ffprobe_path = static_ffmpeg.run.get_or_fetch_platform_executables_else_raise()
    return ffmpeg_path, ffprobe_path


def get_ffmpeg() -> str:
    """Return the path to the ffmpeg executable."""
    ffmpeg, _ = get_ffmpeg_paths()
    return ffmpeg


def get_ffprobe() -> str:
    """Return the path to the ffprobe executable."""
    _, ffprobe = get_ffmpeg_paths()
    return ffprobe


def check_ffmpeg() -> None:
    """Verify that ffmpeg and ffprobe are available (downloads if needed)."""
    try:
        get_ffmpeg_paths()
    except Exception as e:
        raise RuntimeError(
            f"Impossibile ottenere ffmpeg: {e}\n"
            f"Prova a reinstallare: pip install --force-reinstall static-ffmpeg"
        ) from e


def probe_duration(audio_path: Path) -> float:
    """Return the true duration of an audio file in seconds.

    Raises:
        CommandError: If ffprobe fails.
        ProbeError: If ffprobe output is not a number.
    """
    result = run_command(
        [
            get_ffprobe(), "-v", "quiet",
            "-show_entries", "format=duration",
            "-of", "csv=p=0",
            str(audio_path),
        ],
        desc="durata audio",
    )
    out = result.stdout.strip()
    try:
        return float(out)
    except ValueError:
        raise ProbeError(f"Durata non valida per {audio_path}: {out!r}") from None


def probe_stream_info(audio_path: Path) -> AudioFormat:
    """Return sample rate and channel count of the first audio stream.

    Falls back to DEFAULT_AUDIO_FORMAT when ffprobe fails or returns garbage.
    """
    try:
        result = run_command(
            [
                get_ffprobe(), "-v", "error",
                "-select_streams", "a:0",
                "-show_entries", "stream=sample_rate,channels",
                "-of", "csv=p=0",
                str(audio_path),
            ],
            desc="formato audio",
        )
    except CommandError as e:
        logger.warning("Formato audio non rilevabile (%s), uso il default", e)
        return DEFAULT_AUDIO_FORMAT

    parts = result.stdout.strip().split(",")
    try:
        sample_rate = int(parts[0])
        channels = int(parts[1])
    except (IndexError, ValueError):
        logger.warning("Output ffprobe inatteso: %r, uso il default", result.stdout)
        return DEFAULT_AUDIO_FORMAT

    return AudioFormat(
        sample_rate=sample_rate or DEFAULT_AUDIO_FORMAT.sample_rate,
        channels=channels or DEFAULT_AUDIO_FORMAT.channels,
    )


def generate_silence(
    duration: float, output_path: Path, audio_format: AudioFormat
) -> None:
    """Write a PCM WAV file of silence with the given duration and format."""
    run_command(
        [
            get_ffmpeg(),
            "-f", "lavfi",
            "-i", f"anullsrc=r={audio_format.sample_rate}:cl={audio_format.channel_layout}",
            "-t", str(duration),
            "-ar", str(audio_format.sample_rate),
            "-ac", str(audio_format.channels),
            "-c:a", PCM_CODEC,
            "-y", str(output_path),
        ],
        desc=f"silenzio {duration}s",
    )


def concat_audio(
    concat_list: Path,
    output_path: Path,
    audio_format: AudioFormat,
    timeout: Optional[float] = None,
) -> None:
    """Concatenate the files listed in an ffmpeg concat list into PCM WAV."""
    run_command(
        [
            get_ffmpeg(),
            "-f", "concat", "-safe", "0",
            "-i", str(concat_list),
            "-ar", str(audio_format.sample_rate),
            "-ac", str(audio_format.channels),
            "-c:a", PCM_CODEC,
            "-y", str(output_path),
        ],
        timeout=timeout,
        desc="concatenazione audio",
    )
