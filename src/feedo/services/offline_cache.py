"""Persistent per-feed article store that survives restarts.

The cache is a single JSON file mapping feed URL to ``CachedFeed``. Writes go
to a temporary file in the same directory which then replaces the target, so an
interrupted save loses the update but leaves the previous file intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from ..schemas import Article, CachedFeed, CachedItem, CacheStats
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Base class for offline cache failures."""


class CacheLoadError(CacheError):
    """Raised when the cache file exists but cannot be read or parsed."""


class CacheSaveError(CacheError):
    """Raised when the cache cannot be written to disk."""


class OfflineCache:
    def __init__(self, path: Path, feeds: dict[str, CachedFeed] | None = None) -> None:
        self.path = path
        self._feeds: dict[str, CachedFeed] = feeds or {}
        self.dirty = False

    @classmethod
    def load(cls, path: Path) -> OfflineCache:
        if not path.exists():
            logger.debug("No cache file at %s, starting fresh", path)
            return cls(path)

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheLoadError(f"Failed to read cache {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise CacheLoadError(f"Failed to read cache {path}: root must be an object")

        feeds: dict[str, CachedFeed] = {}
        for url, raw_feed in payload.items():
            try:
                feeds[str(url)] = CachedFeed.from_dict(raw_feed)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise CacheLoadError(f"Invalid cache entry for {url}: {exc}") from exc

        logger.debug("Loaded %d feeds from cache", len(feeds))
        return cls(path, feeds)

    def save(self) -> None:
        if not self.dirty:
            return

        content = json.dumps(
            {url: feed.to_dict() for url, feed in self._feeds.items()},
            ensure_ascii=False,
            indent=2,
        )
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".cache-", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise CacheSaveError(f"Failed to write cache {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        self.dirty = False
        logger.debug("Saved %d feeds to cache", len(self._feeds))

    def close(self) -> None:
        if not self.dirty:
            return
        try:
            self.save()
        except CacheSaveError as exc:
            logger.warning("Failed to save cache on close: %s", exc)

    def __enter__(self) -> OfflineCache:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __contains__(self, url: object) -> bool:
        return url in self._feeds

    def __len__(self) -> int:
        return len(self._feeds)

    def get(self, url: str) -> CachedFeed | None:
        return self._feeds.get(url)

    def feeds(self) -> Iterator[CachedFeed]:
        return iter(list(self._feeds.values()))

    def update_feed(self, url: str, name: str, items: list[CachedItem], error: str | None = None) -> None:
        cached = self._feeds.get(url)
        if cached is None:
            cached = CachedFeed(url=url, name=name)
            self._feeds[url] = cached

        cached.name = name
        self.dirty = True

        if error is not None:
            # Stale items stay available until a fetch succeeds again.
            cached.last_error = error
            return

        cached.last_error = None
        cached.last_fetched = utcnow()

        previous = {item.id: item for item in cached.items}
        merged: list[CachedItem] = []
        for item in items:
            old = previous.get(item.id)
            if old is not None:
                item.read = old.read
                item.cached_at = old.cached_at
            merged.append(item)
        cached.items = merged

    def update_feed_articles(self, url: str, name: str, articles: list[Article]) -> None:
        now = utcnow()
        items = [CachedItem.from_article(article, cached_at=now) for article in articles]
        self.update_feed(url, name, items)

    def set_item_read(self, feed_url: str, item_id: str, read: bool) -> bool:
        feed = self._feeds.get(feed_url)
        if feed is None:
            return False
        item = feed.find_item(item_id)
        if item is None or item.read == read:
            return False
        item.read = read
        self.dirty = True
        return True

    def mark_feed_read(self, feed_url: str) -> int:
        feed = self._feeds.get(feed_url)
        if feed is None:
            return 0
        changed = 0
        for item in feed.items:
            if not item.read:
                item.read = True
                changed += 1
        if changed:
            self.dirty = True
        return changed

    def remove_feed(self, url: str) -> bool:
        if self._feeds.pop(url, None) is None:
            return False
        self.dirty = True
        return True

    def prune(self, max_items_per_feed: int) -> int:
        """Cap every feed at ``max_items_per_feed`` items.

        Unread items sort ahead of read ones and newer ahead of older within
        each group. The cap is hard: when unread items alone exceed it, the
        oldest unread items are dropped too.
        """
        removed_total = 0
        for feed in self._feeds.values():
            if len(feed.items) <= max_items_per_feed:
                continue
            ordered = sorted(feed.items, key=lambda item: item.cached_at, reverse=True)
            ordered.sort(key=lambda item: item.read)
            removed = len(ordered) - max_items_per_feed
            feed.items = ordered[:max_items_per_feed]
            removed_total += removed
            logger.debug("Pruned %d items from %s", removed, feed.name)

        if removed_total:
            self.dirty = True
        return removed_total

    def stats(self) -> CacheStats:
        fetched = [feed.last_fetched for feed in self._feeds.values() if feed.last_fetched is not None]
        return CacheStats(
            total_feeds=len(self._feeds),
            total_items=sum(len(feed.items) for feed in self._feeds.values()),
            unread_items=sum(feed.unread_count() for feed in self._feeds.values()),
            oldest_fetch=min(fetched) if fetched else None,
        )
