from __future__ import annotations

import logging
from typing import Protocol

from ..feed_list import FeedList
from ..schemas import Article, RefreshReport
from .offline_cache import OfflineCache

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def fetch(self, url: str) -> list[Article]: ...


class FeedRefresher:
    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    def refresh_all(self, feed_list: FeedList, cache: OfflineCache) -> RefreshReport:
        report = RefreshReport()
        for feed in feed_list.iter_feeds():
            self.refresh_feed(url=feed.url, name=feed.name, cache=cache, report=report)
        return report

    def refresh_feed(
        self,
        url: str,
        name: str,
        cache: OfflineCache,
        report: RefreshReport | None = None,
    ) -> bool:
        logger.debug("Fetching feed: %s (%s)", name, url)
        try:
            articles = self.fetcher.fetch(url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to fetch %s: %s", name, exc)
            cache.update_feed(url, name, [], error=str(exc))
            if report is not None:
                report.fail_count += 1
                report.errors.append(f"{name}: {exc}")
            return False

        cache.update_feed_articles(url, name, articles)
        logger.debug("Fetched %d items from %s", len(articles), name)
        if report is not None:
            report.success_count += 1
        return True
