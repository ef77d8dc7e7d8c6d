"""Shared fixtures: a fake ffmpeg/ffprobe and a fake TTS engine.

Fake audio files contain ``duration=<seconds>`` so that ffprobe can be
simulated by reading the file back.
"""

import re
import subprocess
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from narratore.errors import CommandError
from narratore.models import EspeakOptions
from narratore.tts.base import TTSEngine

LINE_NAME = re.compile(r"chapter_(\d+)_line_(\d+)")


def read_duration(path: Path) -> float:
    return float(path.read_text().split("=", 1)[1])


def write_audio(path: Path, duration: float) -> None:
    path.write_text(f"duration={duration}")


class FakeFFmpeg:
    """Stands in for run_command when the command is ffmpeg or ffprobe."""

    def __init__(self, stream_info: str = "22050,1"):
        self.stream_info = stream_info
        self.calls: list[list[str]] = []
        self.fail_on: str | None = None
        self.chapter_metadata = ""

    def __call__(self, cmd, input=None, timeout=None, desc=""):
        self.calls.append(list(cmd))
        if self.fail_on and self.fail_on in cmd:
            raise CommandError("ffmpeg fallito", command=cmd, returncode=1, stderr="boom")

        if cmd[0] == "ffprobe":
            if "stream=sample_rate,channels" in cmd:
                return subprocess.CompletedProcess(cmd, 0, stdout=f"{self.stream_info}\n", stderr="")
            duration = read_duration(Path(cmd[-1]))
            return subprocess.CompletedProcess(cmd, 0, stdout=f"{duration}\n", stderr="")

        output = Path(cmd[-1])
        if "lavfi" in cmd:
            duration = float(cmd[cmd.index("-t") + 1])
        elif "concat" in cmd:
            list_path = Path(cmd[cmd.index("-i") + 1])
            duration = sum(
                read_duration(list_path.parent / name)
                for name in _concat_paths(list_path)
            )
        else:
            duration = read_duration(Path(cmd[cmd.index("-i") + 1]))
            if "-map_chapters" in cmd:
                inputs = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]
                self.chapter_metadata = Path(inputs[1]).read_text()
        write_audio(output, round(duration, 6))
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    def commands(self, marker: str) -> list[list[str]]:
        return [c for c in self.calls if marker in c]


def _concat_paths(list_path: Path) -> list[str]:
    paths = []
    for line in list_path.read_text().splitlines():
        match = re.fullmatch(r"file '(.*)'", line)
        paths.append(match.group(1))
    return paths


@pytest.fixture
def concat_entries():
    """Return a reader giving the file names referenced by a concat list, in order."""
    def read(list_path: Path) -> list[str]:
        return [Path(p).name for p in _concat_paths(list_path)]
    return read


@pytest.fixture
def fake_ffmpeg():
    fake = FakeFFmpeg()
    with (
        patch("narratore.audio.audio_utils.get_ffmpeg_paths", return_value=("ffmpeg", "ffprobe")),
        patch("narratore.audio.audio_utils.run_command", side_effect=fake),
        patch("narratore.audio.m4b_builder.run_command", side_effect=fake),
    ):
        yield fake


class FakeEngine(TTSEngine):
    """Writes fake audio; can fail or be delayed for specific (chapter, line) pairs."""

    options_class = EspeakOptions

    def __init__(self, duration: float = 1.0, fail_on=(), delays=None):
        self.duration = duration
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.calls: list[tuple[str, Path]] = []
        self.completed: list[tuple[int, int]] = []
        self._lock = threading.Lock()

    def initialize(self) -> None:
        pass

    def synthesize(self, text, output_path, timeout=None):
        match = LINE_NAME.search(output_path.name)
        key = (int(match.group(1)), int(match.group(2)))
        with self._lock:
            self.calls.append((text, output_path))
        time.sleep(self.delays.get(key, 0))
        if key in self.fail_on:
            raise CommandError("piper fallito", returncode=1, stderr="model error")
        write_audio(output_path, self.duration)
        with self._lock:
            self.completed.append(key)

    @property
    def name(self) -> str:
        return "Fake TTS"

    @property
    def output_format(self) -> str:
        return "wav"


@pytest.fixture
def make_engine():
    return FakeEngine
