from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .identity import compute_item_id
from .time_utils import from_iso, to_iso


@dataclass(slots=True)
class Article:
    title: str
    link: str | None = None
    published: datetime | None = None
    summary: str | None = None


@dataclass(slots=True)
class CachedItem:
    id: str
    title: str
    cached_at: datetime
    link: str | None = None
    published: datetime | None = None
    summary: str | None = None
    read: bool = False

    @classmethod
    def from_article(cls, article: Article, cached_at: datetime) -> CachedItem:
        return cls(
            id=compute_item_id(article.link, article.title),
            title=article.title,
            link=article.link,
            published=article.published,
            summary=article.summary,
            read=False,
            cached_at=cached_at,
        )

    def to_dict(self) -> dict:
        payload: dict = {"id": self.id, "title": self.title}
        if self.link is not None:
            payload["link"] = self.link
        if self.published is not None:
            payload["published"] = to_iso(self.published)
        if self.summary is not None:
            payload["summary"] = self.summary
        payload["read"] = self.read
        payload["cached_at"] = to_iso(self.cached_at)
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> CachedItem:
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            link=payload.get("link"),
            published=from_iso(payload.get("published")),
            summary=payload.get("summary"),
            read=bool(payload.get("read", False)),
            cached_at=from_iso(payload["cached_at"]),
        )


@dataclass(slots=True)
class CachedFeed:
    url: str
    name: str
    items: list[CachedItem] = field(default_factory=list)
    last_fetched: datetime | None = None
    last_error: str | None = None

    def unread_count(self) -> int:
        return sum(1 for item in self.items if not item.read)

    def find_item(self, item_id: str) -> CachedItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict:
        payload: dict = {
            "url": self.url,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
            "last_fetched": to_iso(self.last_fetched),
        }
        if self.last_error is not None:
            payload["last_error"] = self.last_error
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> CachedFeed:
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise ValueError("items must be a list")
        return cls(
            url=str(payload["url"]),
            name=str(payload["name"]),
            items=[CachedItem.from_dict(item) for item in items],
            last_fetched=from_iso(payload.get("last_fetched")),
            last_error=payload.get("last_error"),
        )


@dataclass(slots=True)
class CacheStats:
    total_feeds: int
    total_items: int
    unread_items: int
    oldest_fetch: datetime | None


@dataclass(slots=True)
class SyncResult:
    feeds_imported: int = 0
    feeds_existing: int = 0
    items_marked_read: int = 0
    items_synced_to_server: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: SyncResult) -> None:
        self.feeds_imported += other.feeds_imported
        self.feeds_existing += other.feeds_existing
        self.items_marked_read += other.items_marked_read
        self.items_synced_to_server += other.items_synced_to_server
        self.errors.extend(other.errors)


@dataclass(slots=True)
class RefreshReport:
    success_count: int = 0
    fail_count: int = 0
    errors: list[str] = field(default_factory=list)
