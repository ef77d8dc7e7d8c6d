"""Synthesis scheduler - runs TTS for every line on a bounded worker pool.

Units are submitted in line order and may finish in any order; each result
lands in the slot matching its position, so the returned assets are always
in line order regardless of completion order.
"""

import logging
import threading
from concurrent.futures import Executor, Future, wait
from pathlib import Path
from typing import Optional

from narratore.audio.audio_utils import probe_duration
from narratore.errors import SynthesisError
from narratore.events import EventEmitter, LineSynthesisStarted, LineSynthesized
from narratore.models import AudioAsset, TextUnit
from narratore.text import normalize_for_tts
from narratore.tts.base import TTSEngine

logger = logging.getLogger(__name__)


def line_audio_path(work_dir: Path, unit: TextUnit, ext: str) -> Path:
    """Deterministic output path of a unit; its presence is the resume signal."""
    return work_dir / f"chapter_{unit.chapter_number:04d}_line_{unit.line_index:05d}.{ext}"


def is_complete(path: Path) -> bool:
    return path.exists() and path.stat().st_size > 0


class SynthesisScheduler:
    """Synthesizes TextUnits through a shared executor.

    The executor is owned by the caller and shared across chapters, so the
    number of concurrent engine processes is capped for the whole book.
    """

    def __init__(
        self,
        engine: TTSEngine,
        executor: Executor,
        work_dir: Path,
        events: EventEmitter,
        timeout: Optional[float] = None,
    ):
        self.engine = engine
        self.executor = executor
        self.work_dir = work_dir
        self.events = events
        self.timeout = timeout
        self.synthesized_count = 0
        self._count_lock = threading.Lock()

    def schedule(self, units: list[TextUnit]) -> list[AudioAsset]:
        """Synthesize all units and return one asset per unit, in line order.

        Every dispatched unit is allowed to finish before an error is raised.

        Raises:
            SynthesisError: For the lowest failing line index.
        """
        ordered = sorted(units, key=lambda u: (u.chapter_number, u.line_index))
        slots: list[Optional[AudioAsset]] = [None] * len(ordered)

        futures: list[Future] = [
            self.executor.submit(self._synthesize_unit, unit) for unit in ordered
        ]
        wait(futures)

        failure: Optional[SynthesisError] = None
        for position, (unit, future) in enumerate(zip(ordered, futures)):
            error = future.exception()
            if error is None:
                slots[position] = future.result()
                continue
            if failure is not None:
                logger.debug("Ulteriore errore di sintesi: %s", error)
                continue
            if isinstance(error, SynthesisError):
                failure = error
            else:
                failure = SynthesisError(unit.chapter_number, unit.line_index, str(error))
                failure.__cause__ = error

        if failure is not None:
            raise failure

        return [asset for asset in slots if asset is not None]

    def _synthesize_unit(self, unit: TextUnit) -> AudioAsset:
        target = line_audio_path(self.work_dir, unit, self.engine.output_format)

        if is_complete(target):
            logger.debug("Riutilizzo audio esistente: %s", target.name)
            duration = probe_duration(target)
            self.events.emit(LineSynthesized(
                chapter_number=unit.chapter_number,
                line_index=unit.line_index,
                audio_file=target,
                duration=duration,
                resumed=True,
            ))
            return AudioAsset(path=target, duration=duration)

        text = normalize_for_tts(unit.text)
        if not text:
            raise SynthesisError(
                unit.chapter_number, unit.line_index, "testo vuoto dopo la normalizzazione"
            )

        self.events.emit(LineSynthesisStarted(
            chapter_number=unit.chapter_number, line_index=unit.line_index
        ))

        partial = target.with_name(f"{target.stem}.part{target.suffix}")
        try:
            self.engine.synthesize(text, partial, timeout=self.timeout)
            if not is_complete(partial):
                raise SynthesisError(
                    unit.chapter_number, unit.line_index, "l'engine non ha prodotto audio"
                )
            partial.replace(target)
        finally:
            partial.unlink(missing_ok=True)

        with self._count_lock:
            self.synthesized_count += 1
        duration = probe_duration(target)
        self.events.emit(LineSynthesized(
            chapter_number=unit.chapter_number,
            line_index=unit.line_index,
            audio_file=target,
            duration=duration,
        ))
        return AudioAsset(path=target, duration=duration)
