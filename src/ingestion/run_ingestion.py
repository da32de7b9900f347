"""Full bill ingestion run: refresh the corpus, then parse and load every (congress, bill type)."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine

from src.common.db import get_engine
from src.common.logging import configure_logging
from src.ingestion.categories import ALL_CATEGORIES
from src.ingestion.ddl import apply_bills_ddl
from src.ingestion.dispatcher import CategoryBatch, dispatch_category
from src.ingestion.errors import StoreWriteFailure, UpdateToolFailure
from src.ingestion.gate import ParseGate
from src.ingestion.ingestion_config import FailurePolicy, IngestionConfig, load_ingestion_config
from src.ingestion.loader import write_batch
from src.ingestion.update_corpus import run_update_tool

LOGGER = logging.getLogger("ingestion")


@dataclass
class CategoryResult:
    generation: int
    category: str
    state: str
    candidates: int
    rows_written: int
    failed_files: int
    duration_sec: float


@dataclass
class IngestionSummary:
    status: str = "running"
    categories: list[CategoryResult] = field(default_factory=list)
    update_statuses: list[int] = field(default_factory=list)
    peak_parallel_jobs: int = 0

    @property
    def rows_written(self) -> int:
        return sum(result.rows_written for result in self.categories)

    @property
    def failed_files(self) -> int:
        return sum(result.failed_files for result in self.categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "rows_written": self.rows_written,
            "failed_files": self.failed_files,
            "peak_parallel_jobs": self.peak_parallel_jobs,
            "update_statuses": list(self.update_statuses),
            "categories": [asdict(result) for result in self.categories],
        }


class IngestionRunError(RuntimeError):
    """Raised when the run stops on a fatal error; carries the partial summary."""

    def __init__(self, message: str, payload: dict[str, Any]) -> None:
        super().__init__(message)
        self.payload = payload


def _category_state(batch: CategoryBatch, policy: FailurePolicy) -> str:
    if not batch.directory_available:
        return "missing"
    if batch.failures and policy is FailurePolicy.ABORT_BATCH:
        return "aborted"
    if not batch.records:
        return "empty"
    return "loaded"


def ingest_category(
    batch: CategoryBatch,
    *,
    engine: Engine,
    config: IngestionConfig,
) -> tuple[str, int]:
    state = _category_state(batch, config.failure_policy)
    if state == "aborted":
        LOGGER.error(
            "congress=%s type=%s aborted: %d of %d files failed",
            batch.generation,
            batch.category,
            len(batch.failures),
            batch.candidate_count,
        )
        return state, 0
    if state != "loaded":
        return state, 0

    rows = write_batch(
        engine,
        batch.records,
        generation=batch.generation,
        category=batch.category,
        table_name=config.table_name,
    )
    return state, rows


def run_ingestion(
    config: IngestionConfig,
    *,
    engine: Engine,
    gate: ParseGate | None = None,
) -> IngestionSummary:
    """Parse and load every category of every configured generation, one category at a time.

    `StoreWriteFailure` is never caught here; a failed batch write ends the run.
    """

    run_gate = gate or ParseGate(config.parse_concurrency)
    summary = IngestionSummary()

    for generation in config.generations:
        for category in ALL_CATEGORIES:
            started = time.perf_counter()
            batch = dispatch_category(
                config.corpus_root,
                generation,
                category,
                run_gate,
                subdir=config.corpus_subdir,
                job_timeout=config.job_timeout_seconds,
            )
            if batch.directory_available:
                LOGGER.info("congress=%s type=%s candidates=%d", generation, category, batch.candidate_count)

            state, rows = ingest_category(batch, engine=engine, config=config)
            summary.categories.append(
                CategoryResult(
                    generation=generation,
                    category=category.partition_key,
                    state=state,
                    candidates=batch.candidate_count,
                    rows_written=rows,
                    failed_files=len(batch.failures),
                    duration_sec=round(time.perf_counter() - started, 3),
                )
            )

    summary.peak_parallel_jobs = run_gate.peak
    summary.status = "succeeded_with_warnings" if summary.failed_files else "succeeded"
    LOGGER.info(
        "ingestion finished status=%s rows=%d failed_files=%d",
        summary.status,
        summary.rows_written,
        summary.failed_files,
    )
    return summary


def run(
    config: IngestionConfig,
    *,
    engine: Engine,
    skip_update: bool = False,
    apply_ddl: bool = False,
    ddl_dir: Path | None = None,
) -> IngestionSummary:
    """Update the corpus (optionally), bootstrap the schema (optionally), then ingest."""

    update_statuses: list[int] = []
    if config.update_enabled and not skip_update and config.update_commands:
        update_statuses = run_update_tool(
            config.update_commands,
            workdir=config.update_workdir,
            fail_on_error=config.update_fail_on_error,
        )

    if apply_ddl:
        apply_bills_ddl(engine, ddl_dir)

    try:
        summary = run_ingestion(config, engine=engine)
    except StoreWriteFailure as exc:
        raise IngestionRunError(
            str(exc),
            {
                "status": "failed",
                "reason_code": "store_write_failure",
                "failed_generation": exc.generation,
                "failed_category": exc.category,
                "error": exc.reason,
                "config": config.to_dict(),
            },
        ) from exc
    summary.update_statuses = update_statuses
    return summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse the bill corpus and bulk-load it into Postgres")
    parser.add_argument("--config", default="configs/ingestion.yaml")
    parser.add_argument("--first-generation", type=int)
    parser.add_argument("--last-generation", type=int)
    parser.add_argument("--concurrency", type=int, help="Maximum parse jobs running at once")
    parser.add_argument("--job-timeout-seconds", type=float)
    parser.add_argument("--failure-policy", choices=[policy.value for policy in FailurePolicy])
    parser.add_argument("--skip-update", action="store_true", help="Do not run the corpus update tool")
    parser.add_argument(
        "--apply-ddl",
        action="store_true",
        help="Drop and recreate the bills table first; deletes every existing row",
    )
    return parser.parse_args(argv)


def _apply_overrides(config: IngestionConfig, args: argparse.Namespace) -> IngestionConfig:
    overrides: dict[str, Any] = {}
    if args.first_generation is not None:
        overrides["first_generation"] = args.first_generation
    if args.last_generation is not None:
        overrides["last_generation"] = args.last_generation
    if args.concurrency is not None:
        overrides["parse_concurrency"] = args.concurrency
    if args.job_timeout_seconds is not None:
        overrides["job_timeout_seconds"] = args.job_timeout_seconds
    if args.failure_policy is not None:
        overrides["failure_policy"] = FailurePolicy(args.failure_policy)
    return replace(config, **overrides) if overrides else config


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging()

    config = _apply_overrides(load_ingestion_config(config_path=args.config), args)
    try:
        summary = run(config, engine=get_engine(), skip_update=args.skip_update, apply_ddl=args.apply_ddl)
        print(json.dumps(summary.to_dict(), indent=2))
    except IngestionRunError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        print(json.dumps(exc.payload, indent=2), file=sys.stderr)
        raise SystemExit(1) from None
    except UpdateToolFailure as exc:
        payload = {
            "status": "failed",
            "reason_code": "update_tool_failure",
            "command": exc.command,
            "returncode": exc.returncode,
        }
        print(f"ERROR: {exc}", file=sys.stderr)
        print(json.dumps(payload, indent=2), file=sys.stderr)
        raise SystemExit(1) from None


if __name__ == "__main__":
    main()
