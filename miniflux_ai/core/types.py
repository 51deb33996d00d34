"""
Core data types for the Miniflux AI filter.

This module defines the data structures passed between pipeline stages:
- Category: Miniflux category
- Feed: Miniflux feed with its owning category
- Entry: Miniflux entry with its owning feed
- CustomPrompt: Operator-supplied instructions for one category
- Decision: Oracle verdict for a single entry
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


IRRELEVANT_MARKER = "no"


@dataclass(frozen=True)
class Category:
    """Represents a Miniflux category.

    Attributes:
        id: Category identifier
        title: Display title, matched against prompt category names
        user_id: Owning user identifier
        hide_globally: Whether entries are hidden from the global unread list
    """
    id: int
    title: str
    user_id: int | None = None
    hide_globally: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            user_id=data.get("user_id"),
            hide_globally=bool(data.get("hide_globally", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Feed:
    """Represents a Miniflux feed and its owning category."""
    id: int
    category: Category
    title: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Feed":
        return cls(
            id=data["id"],
            category=Category.from_dict(data.get("category") or {"id": 0}),
            title=data.get("title") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Entry:
    """Represents a Miniflux entry (a single article).

    The category is reached through the owning feed, as Miniflux nests it.
    """
    id: int
    title: str
    content: str
    feed: Feed

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            content=data.get("content") or "",
            feed=Feed.from_dict(data.get("feed") or {"id": data.get("feed_id", 0)}),
        )

    @property
    def category_title(self) -> str:
        return self.feed.category.title

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CustomPrompt:
    """Instructions for the oracle, scoped to one category name."""
    category: str
    content: str

    def matches(self, title: str) -> bool:
        """Return True when the category name appears in ``title`` (case-insensitive)."""
        return self.category.lower() in title.lower()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Decision:
    """Free-text oracle verdict for one entry.

    Attributes:
        entry_id: Identifier of the evaluated entry
        entry_title: Title of the evaluated entry, kept for logging
        decision: Raw text returned by the oracle
        meta: Optional provider metadata (model, prompt category)
    """
    entry_id: int
    entry_title: str
    decision: str
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def irrelevant(self) -> bool:
        return IRRELEVANT_MARKER in self.decision.lower()

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["irrelevant"] = self.irrelevant
        return payload
