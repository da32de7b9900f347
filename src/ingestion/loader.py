# This module persists one (generation, category) batch of bill records into the `bills` table.
# The whole batch goes out as a single executemany INSERT inside one transaction.
# Any database error rolls the batch back and surfaces as StoreWriteFailure, which stops the run.
# Reruns over an unchanged corpus are rejected by the (congress, bill_type, number) primary key.

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from typing import Any, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.ingestion.categories import BillCategory
from src.ingestion.errors import StoreWriteFailure
from src.ingestion.records import BillRecord

LOGGER = logging.getLogger("ingestion")

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

BILL_COLUMNS: tuple[str, ...] = (
    "bill_id",
    "number",
    "bill_type",
    "introduced_at",
    "congress",
    "summary",
    "actions",
    "sponsors",
    "cosponsors",
    "status_at",
    "short_title",
    "official_title",
)

JSON_COLUMNS = frozenset({"summary", "actions", "sponsors", "cosponsors"})
DATE_COLUMNS = frozenset({"introduced_at", "status_at"})


def _safe_identifier(identifier: str) -> str:
    if not _IDENTIFIER_RE.match(identifier):
        raise ValueError(f"Unsafe SQL identifier: {identifier!r}")
    return identifier


def _placeholder(column: str, dialect_name: str) -> str:
    if dialect_name == "postgresql":
        if column in JSON_COLUMNS:
            return f"CAST(:{column} AS JSONB)"
        if column in DATE_COLUMNS:
            return f"CAST(:{column} AS DATE)"
    return f":{column}"


def build_insert_sql(table_name: str, dialect_name: str) -> str:
    table = _safe_identifier(table_name)
    columns = ",\n            ".join(BILL_COLUMNS)
    values = ",\n            ".join(_placeholder(column, dialect_name) for column in BILL_COLUMNS)
    return f"""
        INSERT INTO {table} (
            {columns}
        ) VALUES (
            {values}
        )
        """


def _row_params(record: BillRecord) -> dict[str, Any]:
    row = record.to_row()
    for column in JSON_COLUMNS:
        if row[column] is not None:
            row[column] = json.dumps(row[column])
    return row


def find_duplicate_identities(records: Sequence[BillRecord]) -> list[tuple[int, str, str]]:
    counts = Counter(record.identity for record in records)
    return sorted(identity for identity, count in counts.items() if count > 1)


def write_batch(
    engine: Engine,
    records: Sequence[BillRecord],
    *,
    generation: int,
    category: BillCategory,
    table_name: str = "bills",
) -> int:
    """Insert one batch in a single bulk statement and return the number of rows written."""

    if not records:
        return 0

    duplicates = find_duplicate_identities(records)
    if duplicates:
        shown = ", ".join("-".join(str(part) for part in identity) for identity in duplicates[:5])
        raise StoreWriteFailure(generation, category.partition_key, f"duplicate bill identities in batch: {shown}")

    statement = text(build_insert_sql(table_name, engine.dialect.name))
    payload = [_row_params(record) for record in records]
    try:
        with engine.begin() as connection:
            connection.execute(statement, payload)
    except SQLAlchemyError as exc:
        raise StoreWriteFailure(generation, category.partition_key, str(getattr(exc, "orig", None) or exc)) from exc

    LOGGER.info("congress=%s type=%s inserted %d rows", generation, category, len(payload))
    return len(payload)
