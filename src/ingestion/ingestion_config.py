# This file defines runtime configuration for the bill ingestion run.
# YAML defaults from configs/ingestion.yaml are merged with INGEST_* environment overrides.
# The resulting IngestionConfig is frozen and validated before any corpus file is touched.

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from src.common.settings import get_settings


class FailurePolicy(str, Enum):
    SKIP_FILE = "skip_file"
    ABORT_BATCH = "abort_batch"


def _load_yaml(path: str) -> dict[str, Any]:
    if not Path(path).exists():
        return {}
    with open(path, encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config at {path} must be a mapping, got: {type(loaded).__name__}")
    return dict(loaded)


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value


def _env_int(name: str, default: int | None = None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_float(name: str, default: float | None = None) -> float | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _env_bool(name: str, default: bool | None = None) -> bool | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean value (true/false), got: {value!r}")


@dataclass(frozen=True)
class IngestionConfig:
    corpus_root: Path
    first_generation: int = 93
    last_generation: int = 117
    parse_concurrency: int = 64
    job_timeout_seconds: float | None = None
    failure_policy: FailurePolicy = FailurePolicy.SKIP_FILE
    corpus_subdir: str = ""
    table_name: str = "bills"
    update_enabled: bool = True
    update_fail_on_error: bool = False
    update_workdir: Path = Path("/congress")
    update_commands: tuple[tuple[str, ...], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.first_generation > self.last_generation:
            raise ValueError(
                f"first_generation ({self.first_generation}) must be <= last_generation ({self.last_generation})"
            )
        if self.parse_concurrency < 1:
            raise ValueError(f"parse_concurrency must be >= 1, got {self.parse_concurrency}")
        if self.job_timeout_seconds is not None and self.job_timeout_seconds <= 0:
            raise ValueError(f"job_timeout_seconds must be > 0, got {self.job_timeout_seconds}")

    @property
    def generations(self) -> range:
        return range(self.first_generation, self.last_generation + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "corpus_root": str(self.corpus_root),
            "first_generation": self.first_generation,
            "last_generation": self.last_generation,
            "parse_concurrency": self.parse_concurrency,
            "job_timeout_seconds": self.job_timeout_seconds,
            "failure_policy": self.failure_policy.value,
            "corpus_subdir": self.corpus_subdir,
            "table_name": self.table_name,
            "update_enabled": self.update_enabled,
            "update_fail_on_error": self.update_fail_on_error,
            "update_workdir": str(self.update_workdir),
            "update_commands": [list(command) for command in self.update_commands],
        }


def load_ingestion_config(*, config_path: str = "configs/ingestion.yaml") -> IngestionConfig:
    cfg = _load_yaml(config_path)
    update_cfg = dict(cfg.get("update", {}) or {})
    settings = get_settings()

    first_generation = int(_env_int("INGEST_FIRST_GENERATION", int(cfg.get("first_generation", 93))) or 93)
    last_generation = int(_env_int("INGEST_LAST_GENERATION", int(cfg.get("last_generation", 117))) or 117)
    parse_concurrency = int(_env_int("INGEST_PARSE_CONCURRENCY", int(cfg.get("parse_concurrency", 64))) or 64)

    raw_timeout = cfg.get("job_timeout_seconds")
    job_timeout_seconds = _env_float("INGEST_JOB_TIMEOUT_SECONDS", float(raw_timeout) if raw_timeout is not None else None)

    failure_policy_raw = str(_env_str("INGEST_FAILURE_POLICY", str(cfg.get("failure_policy", "skip_file"))))
    try:
        failure_policy = FailurePolicy(failure_policy_raw.strip().lower())
    except ValueError:
        valid = ", ".join(policy.value for policy in FailurePolicy)
        raise ValueError(f"failure_policy must be one of: {valid}; got {failure_policy_raw!r}") from None

    commands = tuple(
        tuple(str(part).format(last_generation=last_generation) for part in command)
        for command in update_cfg.get("commands", []) or []
    )

    return IngestionConfig(
        corpus_root=Path(settings.CORPUS_ROOT),
        first_generation=first_generation,
        last_generation=last_generation,
        parse_concurrency=parse_concurrency,
        job_timeout_seconds=job_timeout_seconds,
        failure_policy=failure_policy,
        corpus_subdir=str(_env_str("INGEST_CORPUS_SUBDIR", str(cfg.get("corpus_subdir", "") or "")) or ""),
        table_name=str(_env_str("INGEST_TABLE_NAME", str(cfg.get("table_name", "bills")))),
        update_enabled=bool(_env_bool("INGEST_UPDATE_ENABLED", bool(update_cfg.get("enabled", True)))),
        update_fail_on_error=bool(_env_bool("INGEST_UPDATE_FAIL_ON_ERROR", bool(update_cfg.get("fail_on_error", False)))),
        update_workdir=Path(settings.UPDATE_TOOL_DIR),
        update_commands=commands,
    )
