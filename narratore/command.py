"""Subprocess helper shared by the TTS engines and the ffmpeg wrappers."""

import logging
import subprocess
from typing import Optional

from narratore.errors import CommandError

logger = logging.getLogger(__name__)


def run_command(
    cmd: list[str],
    input: Optional[str] = None,
    timeout: Optional[float] = None,
    desc: str = "",
) -> subprocess.CompletedProcess:
    """Run a command and return the completed process.

    Raises:
        CommandError: On non-zero exit, timeout (the child is killed), or if
            the executable cannot be started.
    """
    label = desc or cmd[0]
    logger.debug("Esecuzione (%s): %s", label, " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            input=input,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(
            f"Comando scaduto dopo {timeout}s ({label})", command=cmd
        ) from e
    except OSError as e:
        raise CommandError(f"Impossibile avviare {cmd[0]} ({label}): {e}", command=cmd) from e

    if result.returncode != 0:
        raise CommandError(
            f"Comando fallito ({label}) con codice {result.returncode}",
            command=cmd,
            returncode=result.returncode,
            stderr=result.stderr,
        )
    return result
