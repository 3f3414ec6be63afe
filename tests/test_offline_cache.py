from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from fakes import make_item
from feedo.schemas import Article, CachedItem
from feedo.services.offline_cache import CacheLoadError, CacheSaveError, OfflineCache

FEED = "https://a.example/rss"


def test_load_missing_file_returns_empty_clean_cache(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "missing" / "cache.json")

    assert len(cache) == 0
    assert cache.dirty is False
    assert cache.stats().total_feeds == 0


def test_load_malformed_file_raises(tmp_path: Path):
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CacheLoadError):
        OfflineCache.load(path)

    assert path.read_text(encoding="utf-8") == "{not json"


def test_load_wrong_shape_raises(tmp_path: Path):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({FEED: {"url": FEED}}), encoding="utf-8")

    with pytest.raises(CacheLoadError):
        OfflineCache.load(path)


def test_save_load_roundtrip_keeps_optional_fields(tmp_path: Path):
    path = tmp_path / "data" / "cache.json"
    cache = OfflineCache.load(path)
    published = datetime(2026, 2, 13, 10, 0, tzinfo=timezone.utc)
    full = CachedItem(
        id="00000000000000aa",
        title="Full",
        link="https://a.example/1",
        published=published,
        summary="<p>Body</p>",
        read=True,
        cached_at=datetime(2026, 2, 13, 11, 0, tzinfo=timezone.utc),
    )
    bare = CachedItem(id="00000000000000bb", title="Bare", cached_at=datetime(2026, 2, 13, 12, 0, tzinfo=timezone.utc))
    cache.update_feed(FEED, "A", [full, bare])
    cache.update_feed("https://b.example/rss", "B", [], error="timeout")
    cache.save()

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert "link" not in raw[FEED]["items"][1]
    assert "last_error" not in raw[FEED]
    assert raw["https://b.example/rss"]["last_error"] == "timeout"

    reloaded = OfflineCache.load(path)
    feed = reloaded.get(FEED)
    assert feed is not None
    assert feed.items == [full, bare]
    assert feed.last_fetched == cache.get(FEED).last_fetched
    failed = reloaded.get("https://b.example/rss")
    assert failed.last_fetched is None
    assert failed.last_error == "timeout"


def test_save_without_changes_does_not_write(tmp_path: Path):
    path = tmp_path / "cache.json"
    cache = OfflineCache.load(path)
    cache.update_feed(FEED, "A", [make_item("https://a.example/1")])
    cache.save()
    assert cache.dirty is False

    loaded = OfflineCache.load(path)
    path.unlink()
    loaded.save()

    assert not path.exists()


def test_save_after_mutation_writes_and_clears_dirty(tmp_path: Path):
    path = tmp_path / "cache.json"
    cache = OfflineCache.load(path)
    cache.update_feed(FEED, "A", [make_item("https://a.example/1")])
    cache.save()

    loaded = OfflineCache.load(path)
    item_id = loaded.get(FEED).items[0].id
    assert loaded.set_item_read(FEED, item_id, True) is True
    assert loaded.dirty is True
    loaded.save()

    assert loaded.dirty is False
    assert OfflineCache.load(path).get(FEED).items[0].read is True
    assert list(tmp_path.glob(".cache-*")) == []


def test_save_failure_keeps_dirty_and_previous_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "cache.json"
    cache = OfflineCache.load(path)
    cache.update_feed(FEED, "A", [make_item("https://a.example/1")])
    cache.save()
    previous = path.read_text(encoding="utf-8")

    cache.mark_feed_read(FEED)

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("feedo.services.offline_cache.os.replace", broken_replace)
    with pytest.raises(CacheSaveError):
        cache.save()

    assert cache.dirty is True
    assert cache.get(FEED).items[0].read is True
    assert path.read_text(encoding="utf-8") == previous
    assert list(tmp_path.glob(".cache-*")) == []


def test_close_flushes_dirty_cache(tmp_path: Path):
    path = tmp_path / "cache.json"
    with OfflineCache.load(path) as cache:
        cache.update_feed(FEED, "A", [make_item("https://a.example/1")])

    assert path.exists()
    assert cache.dirty is False


def test_close_logs_save_failure(tmp_path: Path, monkeypatch, caplog):
    cache = OfflineCache.load(tmp_path / "cache.json")
    cache.update_feed(FEED, "A", [])

    def broken_replace(src, dst):
        raise OSError("read-only")

    monkeypatch.setattr("feedo.services.offline_cache.os.replace", broken_replace)
    with caplog.at_level(logging.WARNING, logger="feedo.services.offline_cache"):
        cache.close()

    assert "Failed to save cache on close" in caplog.text
    assert cache.dirty is True


def test_merge_preserves_read_state_and_drops_stale_items(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    kept = make_item("https://a.example/1", title="Old title")
    stale = make_item("https://a.example/2")
    cache.update_feed(FEED, "A", [kept, stale])
    cache.set_item_read(FEED, kept.id, True)
    cache.set_item_read(FEED, stale.id, True)

    refreshed = make_item("https://a.example/1", title="New title")
    refreshed.summary = "updated summary"
    cache.update_feed(FEED, "A", [refreshed])

    items = cache.get(FEED).items
    assert [item.id for item in items] == [kept.id]
    assert items[0].read is True
    assert items[0].title == "New title"
    assert items[0].summary == "updated summary"


def test_update_with_error_keeps_items_and_last_fetched(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    cache.update_feed(FEED, "A", [make_item("https://a.example/1")])
    feed = cache.get(FEED)
    fetched_at = feed.last_fetched
    assert fetched_at is not None
    cache.save()

    cache.update_feed(FEED, "A", [], error="HTTP 503")

    assert cache.dirty is True
    assert feed.last_error == "HTTP 503"
    assert feed.last_fetched == fetched_at
    assert len(feed.items) == 1

    cache.update_feed(FEED, "A", [make_item("https://a.example/1")])
    assert feed.last_error is None


def test_failed_first_fetch_creates_entry_without_items(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")

    cache.update_feed(FEED, "A", [], error="DNS failure")

    feed = cache.get(FEED)
    assert feed is not None
    assert feed.items == []
    assert feed.last_fetched is None
    assert feed.last_error == "DNS failure"


def test_set_item_read_is_idempotent(tmp_path: Path):
    path = tmp_path / "cache.json"
    cache = OfflineCache.load(path)
    item = make_item("https://a.example/1")
    cache.update_feed(FEED, "A", [item])
    cache.save()

    assert cache.set_item_read(FEED, item.id, False) is False
    assert cache.set_item_read(FEED, "ffffffffffffffff", True) is False
    assert cache.set_item_read("https://unknown.example/rss", item.id, True) is False
    assert cache.dirty is False


def test_mark_feed_read_only_dirty_when_changed(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    cache.update_feed(FEED, "A", [make_item("https://a.example/1"), make_item("https://a.example/2", read=True)])
    cache.save()

    assert cache.mark_feed_read(FEED) == 1
    assert cache.dirty is True
    cache.save()

    assert cache.mark_feed_read(FEED) == 0
    assert cache.dirty is False


def test_remove_feed(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    cache.update_feed(FEED, "A", [])
    cache.save()

    assert cache.remove_feed("https://other.example/rss") is False
    assert cache.dirty is False
    assert cache.remove_feed(FEED) is True
    assert FEED not in cache
    assert cache.dirty is True


def test_prune_keeps_unread_first_then_newest(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    items = [
        make_item("https://a.example/read-new", read=True, age_minutes=1),
        make_item("https://a.example/unread-old", age_minutes=50),
        make_item("https://a.example/read-old", read=True, age_minutes=60),
        make_item("https://a.example/unread-new", age_minutes=5),
    ]
    cache.update_feed(FEED, "A", items)
    for item in items:
        cache.set_item_read(FEED, item.id, item.read)
    cache.save()

    removed = cache.prune(3)

    kept_links = [item.link for item in cache.get(FEED).items]
    assert removed == 1
    assert kept_links == [
        "https://a.example/unread-new",
        "https://a.example/unread-old",
        "https://a.example/read-new",
    ]
    assert cache.dirty is True


def test_prune_can_drop_unread_when_they_exceed_cap(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    items = [make_item(f"https://a.example/{index}", age_minutes=index) for index in range(5)]
    cache.update_feed(FEED, "A", items)

    cache.prune(2)

    assert [item.link for item in cache.get(FEED).items] == ["https://a.example/0", "https://a.example/1"]


def test_prune_under_limit_is_noop(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    cache.update_feed(FEED, "A", [make_item("https://a.example/1")])
    cache.save()

    assert cache.prune(10) == 0
    assert cache.dirty is False


def test_stats_counts_and_oldest_fetch(tmp_path: Path):
    cache = OfflineCache.load(tmp_path / "cache.json")
    cache.update_feed(FEED, "A", [make_item("https://a.example/1"), make_item("https://a.example/2")])
    cache.update_feed("https://b.example/rss", "B", [make_item("https://b.example/1", read=True)])
    cache.update_feed("https://c.example/rss", "C", [], error="boom")
    cache.save()

    stats = cache.stats()

    assert stats.total_feeds == 3
    assert stats.total_items == 3
    assert stats.unread_items == 2
    assert stats.oldest_fetch == cache.get(FEED).last_fetched
    assert cache.dirty is False


def test_end_to_end_refresh_scenario(tmp_path: Path):
    path = tmp_path / "cache.json"
    cache = OfflineCache.load(path)
    assert len(cache) == 0

    item1 = Article(title="Item 1", link="https://a.example/1")
    item2 = Article(title="Item 2", link="https://a.example/2")
    cache.update_feed_articles(FEED, "A", [item1, item2])
    first_id = cache.get(FEED).items[0].id
    cache.set_item_read(FEED, first_id, True)

    renamed = Article(title="Item 1 (updated)", link="https://a.example/1")
    item3 = Article(title="Item 3", link="https://a.example/3")
    cache.update_feed_articles(FEED, "A", [renamed, item2, item3])
    cache.save()

    feed = OfflineCache.load(path).get(FEED)
    states = {item.link: item.read for item in feed.items}
    assert len(feed.items) == 3
    assert states == {
        "https://a.example/1": True,
        "https://a.example/2": False,
        "https://a.example/3": False,
    }
    assert feed.items[0].title == "Item 1 (updated)"
