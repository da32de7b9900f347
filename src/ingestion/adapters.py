"""
Format adapters: one bill document on disk in, one `BillRecord` out.
Markup documents are bill-status XML files; JSON documents are the `data.json` files produced by
the corpus update tool. Both adapters are pure functions of one file, so the dispatcher can run
them on any worker thread.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.ingestion.errors import DerivationFailure, MalformedDocument
from src.ingestion.records import (
    Action,
    BillRecord,
    Sponsor,
    Summary,
    build_record,
    format_display_name,
    normalize_date,
)

MARKUP_FILENAME = "fdsys_billstatus.xml"
JSON_FILENAME = "data.json"


class DocumentFormat(str, Enum):
    MARKUP = "markup"
    JSON = "json"


def detect_format(item_dir: Path) -> tuple[DocumentFormat, Path]:
    """Pick the document for one item directory; the markup file takes precedence."""

    markup_path = item_dir / MARKUP_FILENAME
    if markup_path.is_file():
        return DocumentFormat.MARKUP, markup_path
    return DocumentFormat.JSON, item_dir / JSON_FILENAME


def parse_item(item_dir: Path, *, generation: int | None = None) -> BillRecord:
    document_format, path = detect_format(item_dir)
    if document_format is DocumentFormat.MARKUP:
        return parse_markup_document(path, generation=generation)
    return parse_json_document(path, generation=generation)


# Markup


def _text(node: ET.Element | None, *paths: str) -> str:
    if node is None:
        return ""
    for path in paths:
        value = node.findtext(path)
        if value is not None:
            return value.strip()
    return ""


def _markup_people(bill: ET.Element, section: str) -> list[Sponsor]:
    return [
        Sponsor(name=_text(item, "fullName"), state=_text(item, "state"))
        for item in bill.findall(f"{section}/item")
    ]


def _markup_summary(bill: ET.Element, path: Path) -> Summary | None:
    # Older files nest items under billSummaries; newer ones list summary elements directly.
    items = bill.findall("summaries/billSummaries/item") or bill.findall("summaries/summary")
    if not items:
        return None
    first = items[0]
    return Summary(
        date=normalize_date(
            _text(first, "lastSummaryUpdateDate", "updateDate"), field_name="summary date", path=path
        ),
        text=_text(first, "text"),
    )


def parse_markup_document(path: Path, *, generation: int | None = None) -> BillRecord:
    """Parse a bill-status XML document.

    Only the first summary is kept. `status_at` is the date of the first action in
    document order, so a document without actions raises `DerivationFailure`.
    """

    try:
        tree = ET.parse(path)
    except OSError as exc:
        raise MalformedDocument(path, f"cannot open document: {exc}") from exc
    except ET.ParseError as exc:
        raise MalformedDocument(path, f"invalid XML: {exc}") from exc

    bill = tree.getroot().find("bill")
    if bill is None:
        raise MalformedDocument(path, "document has no <bill> element")

    actions = [
        Action(
            acted_at=normalize_date(_text(item, "actionDate"), field_name="actionDate", path=path),
            text=_text(item, "text"),
            type=_text(item, "type"),
        )
        for item in bill.findall("actions/item")
    ]
    if not actions:
        raise DerivationFailure(path, "status_at cannot be derived: document has no actions")

    short_title = _text(bill, "title")
    return build_record(
        path=path,
        generation=_text(bill, "congress") or generation,
        category=_text(bill, "billType", "type"),
        number=_text(bill, "billNumber", "number"),
        introduced_at=normalize_date(_text(bill, "introducedDate"), field_name="introducedDate", path=path),
        summary=_markup_summary(bill, path),
        actions=actions,
        sponsors=_markup_people(bill, "sponsors"),
        cosponsors=_markup_people(bill, "cosponsors"),
        status_at=actions[0].acted_at,
        short_title=short_title,
        official_title=short_title,
    )


# JSON


class JsonSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str | None = None
    text: str | None = None


class JsonAction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    acted_at: str | None = None
    text: str | None = None
    type: str | None = None


class JsonSponsor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    state: str | None = None
    title: str | None = None
    district: str | int | None = None
    party: str | None = None

    def to_sponsor(self) -> Sponsor:
        name = self.name or ""
        state = self.state or ""
        return Sponsor(
            name=format_display_name(name, state, self.title),
            state=state,
            party=self.party,
            title=self.title,
            district=str(self.district) if self.district is not None else None,
        )


class JsonBillDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bill_type: str | None = None
    number: str | int | None = None
    congress: str | int | None = None
    introduced_at: str | None = None
    summary: JsonSummary | None = None
    actions: list[JsonAction] = Field(default_factory=list)
    sponsor: JsonSponsor | None = None
    cosponsors: list[JsonSponsor] = Field(default_factory=list)
    status_at: str | None = None
    short_title: str | None = None
    official_title: str | None = None


def parse_json_document(path: Path, *, generation: int | None = None) -> BillRecord:
    """Parse a `data.json` bill document.

    The single sponsor and every cosponsor get a formatted display name.
    `status_at` is copied from the document; no derivation is needed.
    """

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedDocument(path, f"cannot open document: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise MalformedDocument(path, f"document is not valid UTF-8: {exc}") from exc

    try:
        document = JsonBillDocument.model_validate(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise MalformedDocument(path, f"invalid JSON: {exc}") from exc
    except ValidationError as exc:
        raise MalformedDocument(path, f"unexpected document shape: {exc}") from exc

    summary = None
    if document.summary is not None:
        summary = Summary(
            date=normalize_date(document.summary.date, field_name="summary.date", path=path),
            text=document.summary.text or "",
        )

    return build_record(
        path=path,
        generation=document.congress or generation,
        category=document.bill_type,
        number=document.number,
        introduced_at=normalize_date(document.introduced_at, field_name="introduced_at", path=path),
        summary=summary,
        actions=[
            Action(
                acted_at=normalize_date(action.acted_at, field_name="acted_at", path=path),
                text=action.text or "",
                type=action.type or "",
            )
            for action in document.actions
        ],
        sponsors=[document.sponsor.to_sponsor()] if document.sponsor is not None else [],
        cosponsors=[cosponsor.to_sponsor() for cosponsor in document.cosponsors],
        status_at=normalize_date(document.status_at, field_name="status_at", path=path),
        short_title=document.short_title or "",
        official_title=document.official_title or "",
    )
