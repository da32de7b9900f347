"""
Tests for the `data.json` adapter.
It asserts expected behavior and guards against regressions in the corresponding component.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from src.ingestion.adapters import DocumentFormat, detect_format, parse_item, parse_json_document
from src.ingestion.errors import MalformedDocument
from tests.ingestion.support import json_document, write_json_item


def test_sponsor_display_name_with_title(tmp_path: Path) -> None:
    path = write_json_item(tmp_path, 93, "s", "1", json_document())

    record = parse_json_document(path)

    assert len(record.sponsors) == 1
    assert record.sponsors[0].name == "Sen. Jane Doe [CA]"
    assert record.sponsors[0].party == "D"
    assert record.sponsors[0].title == "Sen."


def test_sponsor_display_name_without_title(tmp_path: Path) -> None:
    path = write_json_item(
        tmp_path, 93, "s", "1", json_document(sponsor={"name": "Jane Doe", "state": "CA", "district": 4})
    )

    sponsor = parse_json_document(path).sponsors[0]

    assert sponsor.name == "Jane Doe [CA]"
    assert sponsor.district == "4"


def test_cosponsors_get_display_names(tmp_path: Path) -> None:
    path = write_json_item(
        tmp_path,
        93,
        "s",
        "1",
        json_document(
            cosponsors=[
                {"name": "John Roe", "state": "NY", "title": "Sen."},
                {"name": "Ann Poe", "state": "TX", "withdrawn_at": None},
            ]
        ),
    )

    names = [cosponsor.name for cosponsor in parse_json_document(path).cosponsors]

    assert names == ["Sen. John Roe [NY]", "Ann Poe [TX]"]


def test_status_at_is_taken_verbatim(tmp_path: Path) -> None:
    path = write_json_item(
        tmp_path, 93, "s", "1", json_document(actions=[], status_at="1974-06-30T00:00:00-04:00")
    )

    record = parse_json_document(path)

    assert record.actions == ()
    assert record.status_at == date(1974, 6, 30)


def test_category_is_lower_cased_and_numbers_accepted(tmp_path: Path) -> None:
    path = write_json_item(tmp_path, 93, "sjres", "7", json_document(bill_type="SJRES", number=7, congress=93))

    record = parse_json_document(path)

    assert record.bill_id == "93-sjres-7"
    assert record.to_row()["bill_type"] == "sjres"


def test_summary_date_is_normalized(tmp_path: Path) -> None:
    record = parse_json_document(write_json_item(tmp_path, 93, "s", "1", json_document()))

    assert record.summary is not None
    assert record.summary.date == date(1973, 1, 4)
    assert record.introduced_at == date(1973, 1, 4)
    assert record.official_title == "A bill to provide an example."


def test_missing_summary_is_allowed(tmp_path: Path) -> None:
    record = parse_json_document(write_json_item(tmp_path, 93, "s", "1", json_document(summary=None)))

    assert record.summary is None


def test_invalid_json_is_malformed(tmp_path: Path) -> None:
    path = write_json_item(tmp_path, 93, "s", "1", "{not json")

    with pytest.raises(MalformedDocument, match="invalid JSON"):
        parse_json_document(path)


def test_wrong_shape_is_malformed(tmp_path: Path) -> None:
    path = write_json_item(tmp_path, 93, "s", "1", json_document(actions="none"))

    with pytest.raises(MalformedDocument, match="unexpected document shape"):
        parse_json_document(path)


def test_missing_number_is_malformed(tmp_path: Path) -> None:
    path = write_json_item(tmp_path, 93, "s", "1", json_document(number=None))

    with pytest.raises(MalformedDocument, match="bill number is empty"):
        parse_json_document(path)


def test_item_without_any_document_is_malformed(tmp_path: Path) -> None:
    item_dir = tmp_path / "93" / "s" / "9"
    item_dir.mkdir(parents=True)

    document_format, _ = detect_format(item_dir)
    assert document_format is DocumentFormat.JSON
    with pytest.raises(MalformedDocument, match="cannot open document"):
        parse_item(item_dir, generation=93)


def test_non_utf8_document_is_malformed(tmp_path: Path) -> None:
    path = write_json_item(tmp_path, 93, "s", "1", json_document())
    path.write_bytes(b'{"bill_type": "s", "number": "1", "short_title": "\xff\xfe"}')

    with pytest.raises(MalformedDocument, match="not valid UTF-8") as excinfo:
        parse_json_document(path, generation=93)

    assert excinfo.value.path == path
