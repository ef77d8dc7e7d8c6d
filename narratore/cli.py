"""Command-line interface for narratore."""

import argparse
import logging
import sys
from pathlib import Path

from narratore import __version__
from narratore.audio.audio_utils import check_ffmpeg
from narratore.models import EspeakOptions, NarrationConfig, PiperOptions


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="narratore",
        description="Converti libri EPUB in audiolibri con capitoli",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "input_file",
        help="File EPUB da convertire",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="File audio di output (default: stesso nome dell'input con .m4a)",
    )

    parser.add_argument(
        "-e", "--engine",
        default="piper",
        choices=["piper", "espeak"],
        help="Motore TTS da usare (default: piper)",
    )
    parser.add_argument(
        "-v", "--voice",
        default=None,
        help="Modello Piper o voce espeak (default: en_US-ljspeech-high / en)",
    )
    parser.add_argument(
        "--sentence-silence",
        type=float,
        default=0.5,
        help="Pausa tra le frasi per Piper, in secondi (default: 0.5)",
    )
    parser.add_argument(
        "--speed",
        type=int,
        default=175,
        help="Parole al minuto per espeak (default: 175)",
    )
    parser.add_argument(
        "-c", "--concurrency",
        type=int,
        default=6,
        help="Numero massimo di sintesi in parallelo (default: 6)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Timeout in secondi per ogni chiamata TTS e ffmpeg",
    )
    parser.add_argument(
        "-b", "--bitrate",
        default="128k",
        help="Bitrate AAC per l'output (default: 128k)",
    )
    parser.add_argument(
        "-w", "--work-dir",
        default=None,
        help="Directory per file intermedi (abilita il resume)",
    )
    parser.add_argument(
        "--no-book-end-silence",
        action="store_true",
        help="Non aggiungere il silenzio lungo dopo l'ultimo capitolo",
    )
    parser.add_argument(
        "--title-pause",
        action="store_true",
        help="Silenzio lungo dopo la prima riga (titolo) di ogni capitolo",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Abilita log dettagliati",
    )

    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    input_path = Path(args.input_file)
    if not input_path.exists():
        parser.error(f"File non trovato: {input_path}")
    if not input_path.suffix.lower() == ".epub":
        parser.error(f"Il file deve essere un EPUB: {input_path}")

    output_path = Path(args.output) if args.output else input_path.with_suffix(".m4a")

    try:
        config = NarrationConfig(
            concurrency=args.concurrency,
            synthesis_timeout=args.timeout,
            concat_timeout=args.timeout,
            bitrate=args.bitrate,
            book_end_silence=not args.no_book_end_silence,
            title_pause=args.title_pause,
        )
    except ValueError as e:
        parser.error(str(e))

    check_ffmpeg()

    _import_engines()

    from narratore.tts import get_engine

    if args.engine == "piper":
        options = PiperOptions(
            model=args.voice or "en_US-ljspeech-high",
            sentence_silence=args.sentence_silence,
        )
    else:
        options = EspeakOptions(voice=args.voice or "en", speed=args.speed)

    engine = get_engine(args.engine, options)
    try:
        engine.initialize()
    except RuntimeError as e:
        logging.error("Errore: %s", e)
        sys.exit(1)

    from narratore.converter import Converter
    from narratore.events import EventEmitter
    from narratore.progress import ProgressReporter, ProgressTracker

    events = EventEmitter()
    reporter = ProgressReporter()
    tracker = ProgressTracker()
    events.subscribe(tracker)
    events.subscribe(reporter)

    converter = Converter(engine, config, events=events)

    try:
        converter.convert(
            epub_path=str(input_path),
            output_path=str(output_path),
            work_dir=args.work_dir,
        )
    except KeyboardInterrupt:
        print("\n\nConversione interrotta.")
        if args.work_dir:
            print(f"Puoi riprendere con: narratore {input_path} -o {output_path} -w {args.work_dir}")
        sys.exit(1)
    except Exception as e:
        logging.error("Errore: %s", e)
        if args.verbose:
            logging.exception("Dettagli:")
        sys.exit(1)
    finally:
        reporter.close()

    stats = tracker.stats()
    logging.debug("Stato righe: %s", stats)
    print(f"\nAudiobook creato: {output_path}")
    print(f"  {stats['chapters']} capitoli, {stats['complete']}/{stats['total']} righe narrate")


def _import_engines() -> None:
    """Import all engine modules to trigger registration."""
    import narratore.tts.piper_engine  # noqa: F401
    import narratore.tts.espeak_engine  # noqa: F401


if __name__ == "__main__":
    main()
