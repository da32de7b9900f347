# Shared helpers for ingestion tests.
# They write small bill documents into a temporary corpus tree and build SQLite stand-ins
# for the bills table, so the pipeline can be exercised without Postgres.

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

SQLITE_BILLS_DDL = """
CREATE TABLE bills (
    bill_id TEXT NOT NULL,
    number TEXT NOT NULL,
    bill_type TEXT NOT NULL,
    introduced_at TEXT,
    congress INTEGER NOT NULL,
    summary TEXT,
    actions TEXT,
    sponsors TEXT,
    cosponsors TEXT,
    status_at TEXT,
    short_title TEXT,
    official_title TEXT,
    PRIMARY KEY (congress, bill_type, number)
)
"""


def sqlite_bills_engine(tmp_path: Path) -> Engine:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'bills.db'}", future=True)
    with engine.begin() as connection:
        connection.execute(text(SQLITE_BILLS_DDL))
    return engine


def fetch_bills(engine: Engine) -> list[dict[str, Any]]:
    with engine.begin() as connection:
        rows = connection.execute(text("SELECT * FROM bills ORDER BY congress, bill_type, number")).mappings().all()
    return [dict(row) for row in rows]


def markup_document(
    *,
    congress: str = "93",
    bill_type: str = "HR",
    number: str = "2",
    title: str = "A bill to do a thing",
    introduced: str = "1973-01-03",
    actions: list[tuple[str, str, str]] | None = None,
    summaries: list[tuple[str, str]] | None = None,
    sponsors: list[tuple[str, str]] | None = None,
    cosponsors: list[tuple[str, str]] | None = None,
) -> str:
    action_items = "".join(
        f"<item><actionDate>{date}</actionDate><text>{body}</text><type>{kind}</type></item>"
        for date, body, kind in (actions or [])
    )
    summary_items = "".join(
        f"<item><lastSummaryUpdateDate>{date}</lastSummaryUpdateDate><text>{body}</text></item>"
        for date, body in (summaries or [])
    )
    sponsor_items = "".join(
        f"<item><fullName>{name}</fullName><state>{state}</state><party>D</party></item>"
        for name, state in (sponsors or [])
    )
    cosponsor_items = "".join(
        f"<item><fullName>{name}</fullName><state>{state}</state></item>" for name, state in (cosponsors or [])
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        "<billStatus><bill>"
        f"<billNumber>{number}</billNumber>"
        f"<billType>{bill_type}</billType>"
        f"<introducedDate>{introduced}</introducedDate>"
        f"<congress>{congress}</congress>"
        f"<summaries><billSummaries>{summary_items}</billSummaries></summaries>"
        f"<actions>{action_items}</actions>"
        f"<sponsors>{sponsor_items}</sponsors>"
        f"<cosponsors>{cosponsor_items}</cosponsors>"
        f"<title>{title}</title>"
        "</bill></billStatus>"
    )


def json_document(**overrides: Any) -> dict[str, Any]:
    document: dict[str, Any] = {
        "bill_type": "s",
        "number": "1",
        "congress": "93",
        "introduced_at": "1973-01-04",
        "summary": {"as": "Introduced", "date": "1973-01-04T12:00:00-05:00", "text": "Amends the act."},
        "actions": [
            {"acted_at": "1973-01-04", "text": "Referred to committee.", "type": "referral"},
        ],
        "sponsor": {"name": "Jane Doe", "state": "CA", "title": "Sen.", "party": "D"},
        "cosponsors": [],
        "status_at": "1973-01-04",
        "short_title": "Example Act",
        "official_title": "A bill to provide an example.",
    }
    document.update(overrides)
    return document


def write_markup_item(root: Path, generation: int, category: str, item: str, content: str) -> Path:
    item_dir = root / str(generation) / category / item
    item_dir.mkdir(parents=True, exist_ok=True)
    path = item_dir / "fdsys_billstatus.xml"
    path.write_text(content, encoding="utf-8")
    return path


def write_json_item(root: Path, generation: int, category: str, item: str, document: Any) -> Path:
    item_dir = root / str(generation) / category / item
    item_dir.mkdir(parents=True, exist_ok=True)
    path = item_dir / "data.json"
    payload = document if isinstance(document, str) else json.dumps(document)
    path.write_text(payload, encoding="utf-8")
    return path
