"""
Closed set of bill categories.
Category strings are normalized here and nowhere else, so partition keys stay consistent.
"""

from __future__ import annotations

from enum import Enum

from src.ingestion.errors import MalformedDocument


class BillCategory(str, Enum):
    S = "s"
    HR = "hr"
    HCONRES = "hconres"
    HJRES = "hjres"
    HRES = "hres"
    SCONRES = "sconres"
    SJRES = "sjres"
    SRES = "sres"

    @classmethod
    def from_raw(cls, value: object) -> BillCategory:
        """Map a raw category string (any case, surrounding whitespace) onto the closed set."""

        if isinstance(value, BillCategory):
            return value
        key = str(value or "").strip().lower()
        if not key:
            raise MalformedDocument(None, "bill category is empty")
        try:
            return cls(key)
        except ValueError:
            raise MalformedDocument(None, f"unknown bill category {value!r}") from None

    @property
    def partition_key(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


def partition_key(value: object) -> str:
    """Storage partition key for a raw category value."""

    return BillCategory.from_raw(value).partition_key


ALL_CATEGORIES: tuple[BillCategory, ...] = tuple(BillCategory)
