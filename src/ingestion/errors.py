"""Error kinds raised by the bill ingestion pipeline."""

from __future__ import annotations

from pathlib import Path


class IngestionError(RuntimeError):
    """Base class for every pipeline failure."""


class DirectoryUnavailable(IngestionError):
    """A category directory is missing or unreadable; the category is skipped."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class MalformedDocument(IngestionError):
    """A single document could not be opened or did not have the expected shape."""

    def __init__(self, path: Path | str | None, reason: str) -> None:
        location = str(path) if path is not None else "<unknown>"
        super().__init__(f"{location}: {reason}")
        self.path = Path(path) if path is not None else None
        self.reason = reason


class DerivationFailure(MalformedDocument):
    """A required derived field (such as `status_at`) could not be computed."""


class ParseTimeout(MalformedDocument):
    """A parse job did not finish before the per-job deadline."""


class StoreWriteFailure(IngestionError):
    """The bulk write for one batch failed. Always fatal to the run."""

    def __init__(self, generation: int, category: str, reason: str) -> None:
        super().__init__(f"write failed for generation={generation} category={category}: {reason}")
        self.generation = generation
        self.category = category
        self.reason = reason


class UpdateToolFailure(IngestionError):
    """The external corpus update tool exited non-zero and the run was configured to stop."""

    def __init__(self, command: list[str], returncode: int) -> None:
        super().__init__(f"update command {' '.join(command)!r} exited with status {returncode}")
        self.command = command
        self.returncode = returncode
