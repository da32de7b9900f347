"""DDL helpers for the bills table."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine

DDL_ORDER = [
    "bills.sql",
]


def apply_bills_ddl(engine: Engine, ddl_dir: Path | None = None) -> None:
    """Drop and recreate the partitioned bills table. Postgres only."""

    ddl_path = ddl_dir or Path("sql/ddl")
    with engine.begin() as connection:
        for ddl_file in DDL_ORDER:
            sql_text = (ddl_path / ddl_file).read_text(encoding="utf-8")
            connection.exec_driver_sql(sql_text)
