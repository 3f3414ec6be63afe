from __future__ import annotations

import calendar
from datetime import datetime, timezone

import feedparser

from ..schemas import Article


DEFAULT_TITLE = "Untitled"


class FeedParseError(Exception):
    """Raised when a document cannot be parsed as RSS or Atom."""


def _to_utc_datetime(value) -> datetime | None:
    if value is None:
        return None
    try:
        timestamp = calendar.timegm(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _entry_published_at(entry) -> datetime | None:
    candidate = _to_utc_datetime(entry.get("published_parsed"))
    if candidate is not None:
        return candidate
    return _to_utc_datetime(entry.get("updated_parsed"))


def _entry_link(entry) -> str | None:
    link = str(entry.get("link") or "").strip()
    if link:
        return link
    for candidate in entry.get("links") or []:
        href = str(candidate.get("href") or "").strip()
        if href:
            return href
    return None


def _entry_summary(entry) -> str | None:
    summary = entry.get("summary")
    if isinstance(summary, str) and summary.strip():
        return summary

    content_items = entry.get("content") or []
    if content_items and isinstance(content_items, list):
        first = content_items[0]
        if isinstance(first, dict):
            value = first.get("value")
            if isinstance(value, str) and value.strip():
                return value
    return None


def parse_feed(content: str | bytes) -> list[Article]:
    parsed = feedparser.parse(content)
    if not parsed.entries and not parsed.feed and parsed.get("bozo"):
        raise FeedParseError(f"Not a valid RSS or Atom feed: {parsed.get('bozo_exception')}")

    results: list[Article] = []
    for entry in parsed.entries:
        title = str(entry.get("title") or DEFAULT_TITLE).strip() or DEFAULT_TITLE
        results.append(
            Article(
                title=title,
                link=_entry_link(entry),
                published=_entry_published_at(entry),
                summary=_entry_summary(entry),
            )
        )
    return results
