"""
Canonical bill record shared by every source format.
Both format adapters converge on `BillRecord`; the loader only serializes it via `to_row`.
Records are frozen dataclasses holding tuples, so a batch can be handed across threads safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable

from src.ingestion.categories import BillCategory
from src.ingestion.errors import MalformedDocument


@dataclass(frozen=True)
class Summary:
    date: date | None
    text: str


@dataclass(frozen=True)
class Action:
    acted_at: date | None
    text: str
    type: str = ""


@dataclass(frozen=True)
class Sponsor:
    name: str
    state: str
    party: str | None = None
    title: str | None = None
    district: str | None = None


@dataclass(frozen=True)
class BillRecord:
    generation: int
    category: BillCategory
    number: str
    introduced_at: date | None
    summary: Summary | None
    actions: tuple[Action, ...] = field(default_factory=tuple)
    sponsors: tuple[Sponsor, ...] = field(default_factory=tuple)
    cosponsors: tuple[Sponsor, ...] = field(default_factory=tuple)
    status_at: date | None = None
    short_title: str = ""
    official_title: str = ""

    @property
    def identity(self) -> tuple[int, str, str]:
        return (self.generation, self.category.partition_key, self.number)

    @property
    def bill_id(self) -> str:
        return f"{self.generation}-{self.category.partition_key}-{self.number}"

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the `bills` table; nested values become JSON-ready structures."""

        return {
            "bill_id": self.bill_id,
            "number": self.number,
            "bill_type": self.category.partition_key,
            "introduced_at": _iso(self.introduced_at),
            "congress": self.generation,
            "summary": (
                {"date": _iso(self.summary.date), "text": self.summary.text} if self.summary is not None else None
            ),
            "actions": [
                {"acted_at": _iso(action.acted_at), "text": action.text, "type": action.type}
                for action in self.actions
            ],
            "sponsors": [_sponsor_payload(sponsor) for sponsor in self.sponsors],
            "cosponsors": [_sponsor_payload(sponsor) for sponsor in self.cosponsors],
            "status_at": _iso(self.status_at),
            "short_title": self.short_title,
            "official_title": self.official_title,
        }


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _sponsor_payload(sponsor: Sponsor) -> dict[str, Any]:
    payload: dict[str, Any] = {"name": sponsor.name, "state": sponsor.state}
    for key in ("party", "title", "district"):
        value = getattr(sponsor, key)
        if value:
            payload[key] = value
    return payload


def format_display_name(name: str, state: str, title: str | None = None) -> str:
    """Display name used for JSON-sourced sponsors, e.g. `Sen. Jane Doe [CA]`."""

    if title:
        return f"{title} {name} [{state}]"
    return f"{name} [{state}]"


def normalize_date(value: object, *, field_name: str, path: Path | None = None) -> date | None:
    """Normalize a source date or ISO-8601 timestamp to a calendar date.

    Empty values map to None. Timestamps keep the calendar date as written in the
    source; no timezone conversion is applied.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        if len(raw) == 10:
            return date.fromisoformat(raw)
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise MalformedDocument(path, f"{field_name} is not an ISO date: {raw!r}") from None


def build_record(
    *,
    path: Path | None,
    generation: object,
    category: object,
    number: object,
    introduced_at: date | None,
    summary: Summary | None,
    actions: Iterable[Action],
    sponsors: Iterable[Sponsor],
    cosponsors: Iterable[Sponsor],
    status_at: date | None,
    short_title: str,
    official_title: str,
) -> BillRecord:
    """Validate the identity triple and freeze the record."""

    generation_text = str(generation if generation is not None else "").strip()
    if not generation_text:
        raise MalformedDocument(path, "generation is empty")
    try:
        generation_value = int(generation_text)
    except ValueError:
        raise MalformedDocument(path, f"generation is not an integer: {generation_text!r}") from None

    number_text = str(number if number is not None else "").strip()
    if not number_text:
        raise MalformedDocument(path, "bill number is empty")

    try:
        category_value = BillCategory.from_raw(category)
    except MalformedDocument as exc:
        raise MalformedDocument(path, exc.reason) from None

    return BillRecord(
        generation=generation_value,
        category=category_value,
        number=number_text,
        introduced_at=introduced_at,
        summary=summary,
        actions=tuple(actions),
        sponsors=tuple(sponsors),
        cosponsors=tuple(cosponsors),
        status_at=status_at,
        short_title=short_title or "",
        official_title=official_title or "",
    )
