from __future__ import annotations

import httpx

from .feed_parser import parse_feed
from ..schemas import Article


class FeedFetcher:
    def __init__(
        self,
        timeout_seconds: int = 30,
        user_agent: str = "feedo",
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def fetch(self, url: str) -> list[Article]:
        response = self.client.get(url, headers={"Accept": "application/rss+xml,application/atom+xml,application/xml,*/*"})
        response.raise_for_status()
        return parse_feed(response.content)
