from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from feedo.providers.feed_fetcher import FeedFetcher
from feedo.providers.feed_parser import FeedParseError, parse_feed

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <link>https://example.com/</link>
    <item>
      <title>First post</title>
      <link>https://example.com/1</link>
      <pubDate>Thu, 01 Jan 2026 10:00:00 GMT</pubDate>
      <description>&lt;p&gt;Hello&lt;/p&gt;</description>
    </item>
    <item>
      <description>No title or link</description>
    </item>
  </channel>
</rss>
"""

ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom example</title>
  <id>urn:example</id>
  <updated>2026-01-02T00:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <link href="https://example.com/atom/1"/>
    <id>urn:example:1</id>
    <updated>2026-01-02T08:30:00Z</updated>
    <content type="html">&lt;b&gt;Body&lt;/b&gt;</content>
  </entry>
</feed>
"""


def test_parse_rss_entries():
    articles = parse_feed(RSS)

    assert len(articles) == 2
    first = articles[0]
    assert first.title == "First post"
    assert first.link == "https://example.com/1"
    assert first.published == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert "Hello" in first.summary
    assert articles[1].title == "Untitled"
    assert articles[1].link is None


def test_parse_atom_uses_updated_and_content():
    articles = parse_feed(ATOM)

    assert len(articles) == 1
    assert articles[0].link == "https://example.com/atom/1"
    assert articles[0].published == datetime(2026, 1, 2, 8, 30, tzinfo=timezone.utc)
    assert "Body" in articles[0].summary


def test_parse_rejects_non_feed_content():
    with pytest.raises(FeedParseError):
        parse_feed(b"this is not a feed at all")


def test_fetcher_downloads_and_parses():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=RSS, headers={"Content-Type": "application/rss+xml"})

    fetcher = FeedFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))
    articles = fetcher.fetch("https://example.com/rss")

    assert [article.title for article in articles] == ["First post", "Untitled"]
    assert "application/rss+xml" in seen[0].headers["Accept"]


def test_fetcher_raises_on_http_error():
    fetcher = FeedFetcher(client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404))))

    with pytest.raises(httpx.HTTPStatusError):
        fetcher.fetch("https://example.com/missing")
