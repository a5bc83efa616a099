from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ListingType(Enum):
    DEFAULT = "default"
    GRID = "grid"
    TABLE = "table"
    CUSTOM = "custom"

    @classmethod
    def from_value(cls, value: object) -> ListingType:
        """Normalize a raw metadata value; unknown or missing values become DEFAULT."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.DEFAULT


FEED_PARTIAL = "partial"
FEED_FULL = "full"


@dataclass(frozen=True)
class ListingFeedOptions:
    type: str = FEED_PARTIAL
    title: str = ""
    description: str = ""
    items: int | None = None
    categories: tuple[str, ...] = ()

    @classmethod
    def from_metadata(cls, value: object) -> ListingFeedOptions | None:
        if value is None or value is False:
            return None
        if not isinstance(value, dict):
            return cls()
        items = value.get("items")
        categories = value.get("categories") or ()
        if isinstance(categories, str):
            categories = (categories,)
        return cls(
            type=str(value.get("type") or FEED_PARTIAL),
            title=str(value.get("title") or ""),
            description=str(value.get("description") or ""),
            items=int(items) if items is not None else None,
            categories=tuple(str(cat) for cat in categories),
        )


@dataclass(frozen=True)
class Listing:
    id: str
    type: ListingType = ListingType.DEFAULT
    contents: tuple[str, ...] = ()
    template: Path | None = None
    fields: tuple[str, ...] = ("date", "title", "description", "categories")
    categories: bool = False
    sort: str = "date desc"
    max_items: int | None = None
    page_size: int = 20
    feed: ListingFeedOptions | None = None

    def client_options(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "fields": list(self.fields),
            "sort": self.sort,
            "pageSize": self.page_size,
            "categories": self.categories,
        }


@dataclass(frozen=True)
class ListingItem:
    title: str
    path: str
    href: str
    date: dt.datetime | None = None
    description: str = ""
    categories: tuple[str, ...] = ()
    fields: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def as_template_context(self) -> dict[str, Any]:
        context = dict(self.fields)
        context.update(
            {
                "title": self.title,
                "path": self.path,
                "href": self.href,
                "date": self.date.strftime("%Y-%m-%d") if self.date else "",
                "description": self.description,
                "categories": list(self.categories),
            }
        )
        return context


@dataclass(frozen=True)
class ListingDescriptor:
    listing: Listing
    items: tuple[ListingItem, ...]
    source: str


@dataclass(frozen=True)
class ListingSharedOptions:
    categories: bool = False
    feed: ListingFeedOptions | None = None
