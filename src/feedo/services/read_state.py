from __future__ import annotations

from ..schemas import CachedFeed, CachedItem
from .offline_cache import OfflineCache


class ReadStateService:
    def resolve(self, cache: OfflineCache, item_id: str, feed_url: str | None = None) -> tuple[CachedFeed, CachedItem]:
        """Find an item by full id or unique id prefix, optionally within one feed."""
        if feed_url is not None:
            feed = cache.get(feed_url)
            if feed is None:
                raise LookupError(f"Unknown feed: {feed_url}")
            candidates = [feed]
        else:
            candidates = list(cache.feeds())

        exact: list[tuple[CachedFeed, CachedItem]] = []
        prefixed: list[tuple[CachedFeed, CachedItem]] = []
        for feed in candidates:
            for item in feed.items:
                if item.id == item_id:
                    exact.append((feed, item))
                elif item.id.startswith(item_id):
                    prefixed.append((feed, item))

        matches = exact or prefixed
        if not matches:
            raise LookupError(f"Unknown item: {item_id}")
        if len(matches) > 1:
            raise LookupError(f"Ambiguous item id: {item_id}")
        return matches[0]

    def mark(self, cache: OfflineCache, item_id: str, is_read: bool, feed_url: str | None = None) -> bool:
        feed, item = self.resolve(cache, item_id, feed_url)
        return cache.set_item_read(feed.url, item.id, is_read)

    def toggle(self, cache: OfflineCache, item_id: str, feed_url: str | None = None) -> bool:
        feed, item = self.resolve(cache, item_id, feed_url)
        cache.set_item_read(feed.url, item.id, not item.read)
        return item.read

    def mark_feed(self, cache: OfflineCache, feed_url: str) -> int:
        if cache.get(feed_url) is None:
            raise LookupError(f"Unknown feed: {feed_url}")
        return cache.mark_feed_read(feed_url)
