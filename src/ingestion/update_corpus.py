"""
Runs the external corpus update tool before ingestion.
Output from the tool is streamed line by line into the log while the command runs.
By default a failing command is only reported; ingestion then reads whatever corpus is on disk.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import IO, Sequence

from src.ingestion.errors import UpdateToolFailure

LOGGER = logging.getLogger("ingestion.update")

COMMAND_NOT_STARTED = 127


def _stream_output(pipe: IO[str], level: int, label: str) -> None:
    with pipe:
        for line in iter(pipe.readline, ""):
            LOGGER.log(level, "[%s] %s", label, line.rstrip())


def run_update_command(command: Sequence[str], *, workdir: Path) -> int:
    """Run one update command to completion and return its exit status."""

    LOGGER.info("running update command: %s (cwd=%s)", " ".join(command), workdir)
    try:
        process = subprocess.Popen(
            list(command),
            cwd=workdir,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
    except OSError as exc:
        LOGGER.error("update command could not be started: %s", exc)
        return COMMAND_NOT_STARTED

    readers = [
        threading.Thread(target=_stream_output, args=(process.stdout, logging.INFO, "stdout"), daemon=True),
        threading.Thread(target=_stream_output, args=(process.stderr, logging.WARNING, "stderr"), daemon=True),
    ]
    for reader in readers:
        reader.start()
    returncode = process.wait()
    for reader in readers:
        reader.join()
    return returncode


def run_update_tool(
    commands: Sequence[Sequence[str]],
    *,
    workdir: Path,
    fail_on_error: bool = False,
) -> list[int]:
    """Run every configured update command in order and collect exit statuses."""

    statuses: list[int] = []
    for command in commands:
        returncode = run_update_command(command, workdir=workdir)
        statuses.append(returncode)
        if returncode == 0:
            continue
        if fail_on_error:
            raise UpdateToolFailure(list(command), returncode)
        LOGGER.warning("update command exited with status %s; continuing with the corpus on disk", returncode)
    return statuses
