"""Feed and folder configuration shared by the refresher and the sync engine."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path


class FeedListError(Exception):
    """Raised when the feed list file exists but cannot be parsed."""


@dataclass(slots=True)
class FeedConfig:
    name: str
    url: str
    sync_id: str | None = None

    def to_dict(self) -> dict:
        payload = {"name": self.name, "url": self.url}
        if self.sync_id is not None:
            payload["sync_id"] = self.sync_id
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> FeedConfig:
        return cls(
            name=str(payload["name"]),
            url=str(payload["url"]),
            sync_id=payload.get("sync_id"),
        )


@dataclass(slots=True)
class FolderConfig:
    name: str
    feeds: list[FeedConfig] = field(default_factory=list)
    icon: str | None = None
    expanded: bool = True

    def to_dict(self) -> dict:
        payload: dict = {"name": self.name}
        if self.icon is not None:
            payload["icon"] = self.icon
        payload["expanded"] = self.expanded
        payload["feeds"] = [feed.to_dict() for feed in self.feeds]
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> FolderConfig:
        return cls(
            name=str(payload["name"]),
            icon=payload.get("icon"),
            expanded=bool(payload.get("expanded", True)),
            feeds=[FeedConfig.from_dict(feed) for feed in payload.get("feeds") or []],
        )


@dataclass(slots=True)
class FeedList:
    folders: list[FolderConfig] = field(default_factory=list)
    feeds: list[FeedConfig] = field(default_factory=list)

    def iter_feeds(self):
        for folder in self.folders:
            yield from folder.feeds
        yield from self.feeds

    def all_feed_urls(self) -> list[str]:
        return [feed.url for feed in self.iter_feeds()]

    def total_feeds(self) -> int:
        return sum(len(folder.feeds) for folder in self.folders) + len(self.feeds)

    def find_feed(self, url: str) -> FeedConfig | None:
        for feed in self.iter_feeds():
            if feed.url == url:
                return feed
        return None

    def find_folder(self, name: str) -> FolderConfig | None:
        wanted = name.casefold()
        for folder in self.folders:
            if folder.name.casefold() == wanted:
                return folder
        return None

    def add_feed(self, url: str, name: str, folder: str | None = None, sync_id: str | None = None) -> FeedConfig:
        feed = FeedConfig(name=name, url=url, sync_id=sync_id)
        if folder is None:
            self.feeds.append(feed)
            return feed
        target = self.find_folder(folder)
        if target is None:
            target = FolderConfig(name=folder)
            self.folders.append(target)
        target.feeds.append(feed)
        return feed

    def remove_feed(self, url: str) -> bool:
        removed = False
        for folder in self.folders:
            kept = [feed for feed in folder.feeds if feed.url != url]
            if len(kept) != len(folder.feeds):
                folder.feeds = kept
                removed = True
        kept_root = [feed for feed in self.feeds if feed.url != url]
        if len(kept_root) != len(self.feeds):
            self.feeds = kept_root
            removed = True
        return removed

    def to_dict(self) -> dict:
        return {
            "folders": [folder.to_dict() for folder in self.folders],
            "feeds": [feed.to_dict() for feed in self.feeds],
        }

    @classmethod
    def from_dict(cls, payload: dict) -> FeedList:
        return cls(
            folders=[FolderConfig.from_dict(folder) for folder in payload.get("folders") or []],
            feeds=[FeedConfig.from_dict(feed) for feed in payload.get("feeds") or []],
        )

    @classmethod
    def load(cls, path: Path) -> FeedList:
        if not path.exists():
            return cls()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("feed list root must be an object")
            return cls.from_dict(payload)
        except (ValueError, KeyError, TypeError) as exc:
            raise FeedListError(f"Invalid feed list {path}: {exc}") from exc

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
