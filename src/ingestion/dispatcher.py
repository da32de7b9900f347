"""
Category dispatcher: discovers bill directories and fans format adapters out over them.
Each parse job owns one pre-allocated slot in the result list, so workers never share a
mutable aggregate. The dispatcher returns only after every job has finished (or, when a
per-job timeout is configured, has been abandoned).
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from src.ingestion.adapters import parse_item
from src.ingestion.categories import BillCategory
from src.ingestion.errors import DirectoryUnavailable, MalformedDocument, ParseTimeout
from src.ingestion.gate import ParseGate
from src.ingestion.records import BillRecord

LOGGER = logging.getLogger("ingestion")

ParseFn = Callable[..., BillRecord]

_TIMEOUT_POLL_SECONDS = 0.25


@dataclass(frozen=True)
class ParseOutcome:
    item_dir: Path
    record: BillRecord | None = None
    error: MalformedDocument | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class CategoryBatch:
    generation: int
    category: BillCategory
    outcomes: tuple[ParseOutcome, ...]
    directory_available: bool = True

    @property
    def candidate_count(self) -> int:
        return len(self.outcomes)

    @property
    def records(self) -> list[BillRecord]:
        return [outcome.record for outcome in self.outcomes if outcome.record is not None]

    @property
    def failures(self) -> list[ParseOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


def category_dir(corpus_root: Path, generation: int, category: BillCategory, subdir: str = "") -> Path:
    base = Path(corpus_root) / str(generation)
    if subdir:
        base = base / subdir
    return base / category.partition_key


def discover_candidates(directory: Path) -> list[Path]:
    """Immediate subdirectories of a category directory, in name order."""

    try:
        return sorted(entry for entry in directory.iterdir() if entry.is_dir())
    except OSError as exc:
        raise DirectoryUnavailable(directory, exc.strerror or str(exc)) from exc


def _check_identity(record: BillRecord, generation: int, category: BillCategory, item_dir: Path) -> None:
    if record.generation != generation or record.category is not category:
        raise MalformedDocument(
            item_dir,
            f"document identity does not match its directory: document says {record.bill_id}, "
            f"directory is generation={generation} category={category}",
        )


def _run_job(
    index: int,
    item_dir: Path,
    generation: int,
    category: BillCategory,
    gate: ParseGate,
    slots: list[ParseOutcome | None],
    started_at: list[float | None],
    parse: ParseFn,
    slot_timeout: float | None = None,
) -> None:
    if not gate.acquire(timeout=slot_timeout):
        error = ParseTimeout(item_dir, f"no parse slot free within {slot_timeout:g}s")
        slots[index] = ParseOutcome(item_dir, error=error)
        return
    try:
        started_at[index] = time.monotonic()
        try:
            record = parse(item_dir, generation=generation)
            _check_identity(record, generation, category, item_dir)
            outcome = ParseOutcome(item_dir, record=record)
        except MalformedDocument as exc:
            outcome = ParseOutcome(item_dir, error=exc)
        except Exception as exc:  # noqa: BLE001
            error = MalformedDocument(item_dir, f"unexpected {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            outcome = ParseOutcome(item_dir, error=error)
    finally:
        gate.release()
    slots[index] = outcome


def _wait_with_timeout(
    futures: list[Future[None]],
    started_at: list[float | None],
    job_timeout: float,
    max_workers: int,
) -> dict[int, str]:
    """Wait for all futures, abandoning jobs that exceed `job_timeout` once started.

    Returns the indices given up on, with the reason. If every worker thread is stuck
    on an expired job, jobs that never started are cancelled as well. Jobs still queued
    on the gate give up by themselves once `job_timeout` passes without a free slot.
    """

    index_of = {future: index for index, future in enumerate(futures)}
    pending = set(futures)
    abandoned: dict[int, str] = {}
    while pending:
        _, pending = wait(pending, timeout=_TIMEOUT_POLL_SECONDS, return_when=FIRST_COMPLETED)
        now = time.monotonic()
        for future in list(pending):
            index = index_of[future]
            started = started_at[index]
            if future.done():
                pending.discard(future)
            elif started is not None and now - started > job_timeout:
                abandoned[index] = f"parse exceeded {job_timeout:g}s"
                pending.discard(future)

        stuck = sum(1 for index in abandoned if not futures[index].done())
        if pending and stuck >= max_workers:
            for future in list(pending):
                if future.cancel():
                    abandoned[index_of[future]] = "no worker available; all workers stuck on expired jobs"
                    pending.discard(future)
    return abandoned


def dispatch_category(
    corpus_root: Path,
    generation: int,
    category: BillCategory,
    gate: ParseGate,
    *,
    subdir: str = "",
    job_timeout: float | None = None,
    parse: ParseFn = parse_item,
) -> CategoryBatch:
    """Parse every bill directory of one (generation, category) under the shared gate."""

    directory = category_dir(corpus_root, generation, category, subdir)
    try:
        candidates = discover_candidates(directory)
    except DirectoryUnavailable as exc:
        LOGGER.info("generation=%s category=%s skipped: %s", generation, category, exc.reason)
        return CategoryBatch(generation, category, (), directory_available=False)

    if not candidates:
        return CategoryBatch(generation, category, ())

    slots: list[ParseOutcome | None] = [None] * len(candidates)
    started_at: list[float | None] = [None] * len(candidates)
    max_workers = min(gate.capacity, len(candidates))
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"parse-{generation}-{category}")
    abandoned: dict[int, str] = {}
    try:
        futures = [
            executor.submit(
                _run_job, index, item_dir, generation, category, gate, slots, started_at, parse, job_timeout
            )
            for index, item_dir in enumerate(candidates)
        ]
        if job_timeout is None:
            wait(futures)
        else:
            abandoned = _wait_with_timeout(futures, started_at, job_timeout, max_workers)
    finally:
        executor.shutdown(wait=not abandoned, cancel_futures=bool(abandoned))

    outcomes: list[ParseOutcome] = []
    for index, item_dir in enumerate(candidates):
        if index in abandoned:
            outcomes.append(ParseOutcome(item_dir, error=ParseTimeout(item_dir, abandoned[index])))
            continue
        outcome = slots[index]
        if outcome is None:
            outcome = ParseOutcome(item_dir, error=MalformedDocument(item_dir, "parse job produced no result"))
        outcomes.append(outcome)

    batch = CategoryBatch(generation, category, tuple(outcomes))
    for failure in batch.failures:
        LOGGER.warning("excluding %s: %s", failure.item_dir, failure.error.reason if failure.error else "unknown")
    return batch
