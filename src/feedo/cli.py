from __future__ import annotations

from enum import Enum

import typer

from .config import Settings, configure_logging, get_settings
from .feed_list import FeedList, FeedListError
from .providers.feed_fetcher import FeedFetcher
from .providers.greader_client import GReaderError
from .services.feed_refresher import FeedRefresher
from .services.offline_cache import CacheError, OfflineCache
from .services.read_state import ReadStateService
from .services.sync_engine import SyncEngine
from .views.table_renderer import render_feeds, render_refresh_report, render_stats, render_sync_result

app = typer.Typer(help="Offline feed reader with Google Reader API sync", no_args_is_help=True)
feed_app = typer.Typer(help="Feed list management")
read_app = typer.Typer(help="Read state management")
sync_app = typer.Typer(help="Sync with a Google Reader API server")
app.add_typer(feed_app, name="feed")
app.add_typer(read_app, name="read")
app.add_typer(sync_app, name="sync")


class ReadStateValue(str, Enum):
    read = "read"
    unread = "unread"


@app.callback()
def main() -> None:
    configure_logging(get_settings().log_level)


def _fail(message: str) -> typer.Exit:
    typer.echo(message, err=True)
    return typer.Exit(code=1)


def _load_cache(settings: Settings) -> OfflineCache:
    try:
        return OfflineCache.load(settings.cache_path)
    except CacheError as exc:
        raise _fail(str(exc)) from exc


def _save_cache(cache: OfflineCache) -> None:
    try:
        cache.save()
    except CacheError as exc:
        raise _fail(str(exc)) from exc


def _load_feed_list(settings: Settings) -> FeedList:
    try:
        return FeedList.load(settings.feed_list_path)
    except FeedListError as exc:
        raise _fail(str(exc)) from exc


def _connect(settings: Settings) -> SyncEngine:
    if not settings.sync_configured():
        raise _fail("Sync is not configured: set SYNC_SERVER, SYNC_USERNAME and SYNC_PASSWORD")
    try:
        return SyncEngine.connect(
            settings.sync_server or "",
            settings.sync_username or "",
            settings.sync_password or "",
            timeout_seconds=settings.http_timeout_seconds,
            user_agent=settings.user_agent,
            read_ids_page_size=settings.sync_read_ids_page_size,
            stream_page_size=settings.sync_stream_page_size,
        )
    except GReaderError as exc:
        raise _fail(str(exc)) from exc


@app.command("refresh")
def refresh_cmd() -> None:
    """Fetch every configured feed and merge the results into the offline cache."""
    settings = get_settings()
    feed_list = _load_feed_list(settings)

    fetcher = FeedFetcher(timeout_seconds=settings.http_timeout_seconds, user_agent=settings.user_agent)
    with _load_cache(settings) as cache:
        try:
            report = FeedRefresher(fetcher).refresh_all(feed_list, cache)
        finally:
            fetcher.close()

        cache.prune(settings.cache_max_items_per_feed)
        _save_cache(cache)
    typer.echo(render_refresh_report(report))


@app.command("list")
def list_cmd(
    feed: str | None = typer.Option(None, "--feed", help="Only show this feed URL"),
    unread: bool = typer.Option(False, "--unread", help="Only show unread items"),
) -> None:
    """Show cached articles."""
    settings = get_settings()
    cache = _load_cache(settings)
    if feed is not None:
        cached = cache.get(feed)
        if cached is None:
            raise _fail(f"Unknown feed: {feed}")
        feeds = [cached]
    else:
        feeds = sorted(cache.feeds(), key=lambda item: item.name.casefold())
    typer.echo(render_feeds(feeds, unread_only=unread))


@app.command("stats")
def stats_cmd() -> None:
    """Show offline cache statistics."""
    settings = get_settings()
    cache = _load_cache(settings)
    typer.echo(render_stats(cache.stats()))


@app.command("prune")
def prune_cmd(
    max_items: int | None = typer.Option(None, "--max", min=1, help="Items to keep per feed"),
) -> None:
    """Cap the number of cached items per feed."""
    settings = get_settings()
    with _load_cache(settings) as cache:
        removed = cache.prune(max_items or settings.cache_max_items_per_feed)
        _save_cache(cache)
    typer.echo(f"Pruned {removed} items")


@read_app.command("mark")
def read_mark_cmd(
    item_id: str = typer.Option(..., "--id", help="Item id or unique id prefix"),
    state: ReadStateValue = typer.Option(ReadStateValue.read, "--state"),
    feed: str | None = typer.Option(None, "--feed", help="Feed URL the item belongs to"),
) -> None:
    """Mark one cached item read or unread."""
    settings = get_settings()
    with _load_cache(settings) as cache:
        try:
            changed = ReadStateService().mark(cache, item_id, state == ReadStateValue.read, feed_url=feed)
        except LookupError as exc:
            raise _fail(str(exc)) from exc
        _save_cache(cache)
    if changed:
        typer.echo(f"Marked {item_id} as {state.value}")
    else:
        typer.echo(f"{item_id} was already {state.value}")


@read_app.command("feed")
def read_feed_cmd(feed: str = typer.Option(..., "--feed", help="Feed URL")) -> None:
    """Mark every cached item of a feed as read."""
    settings = get_settings()
    with _load_cache(settings) as cache:
        try:
            changed = ReadStateService().mark_feed(cache, feed)
        except LookupError as exc:
            raise _fail(str(exc)) from exc
        _save_cache(cache)
    typer.echo(f"Marked {changed} items as read")


@feed_app.command("add")
def feed_add_cmd(
    url: str = typer.Option(..., "--url"),
    name: str = typer.Option(..., "--name"),
    folder: str | None = typer.Option(None, "--folder"),
) -> None:
    """Add a feed to the feed list."""
    settings = get_settings()
    feed_list = _load_feed_list(settings)
    if feed_list.find_feed(url) is not None:
        raise _fail(f"Feed already exists: {url}")
    feed_list.add_feed(url=url, name=name, folder=folder)
    feed_list.save(settings.feed_list_path)
    typer.echo(f"Added {name}")


@feed_app.command("remove")
def feed_remove_cmd(url: str = typer.Option(..., "--url")) -> None:
    """Remove a feed from the feed list and drop its cached items."""
    settings = get_settings()
    feed_list = _load_feed_list(settings)
    if not feed_list.remove_feed(url):
        raise _fail(f"Unknown feed: {url}")
    feed_list.save(settings.feed_list_path)

    with _load_cache(settings) as cache:
        cache.remove_feed(url)
        _save_cache(cache)
    typer.echo(f"Removed {url}")


@feed_app.command("list")
def feed_list_cmd() -> None:
    """Show configured feeds grouped by folder."""
    settings = get_settings()
    feed_list = _load_feed_list(settings)
    if feed_list.total_feeds() == 0:
        typer.echo("No feeds configured.")
        return
    for folder in feed_list.folders:
        typer.echo(f"{folder.name}/")
        for feed in folder.feeds:
            typer.echo(f"  {feed.name}  {feed.url}")
    for feed in feed_list.feeds:
        typer.echo(f"{feed.name}  {feed.url}")


@sync_app.command("run")
def sync_run_cmd() -> None:
    """Import subscriptions and reconcile read state in both directions."""
    settings = get_settings()
    feed_list = _load_feed_list(settings)

    with _load_cache(settings) as cache:
        engine = _connect(settings)
        try:
            result = engine.full_sync(feed_list, cache)
        finally:
            engine.close()

        feed_list.save(settings.feed_list_path)
        _save_cache(cache)
    typer.echo(render_sync_result(result))


@sync_app.command("import")
def sync_import_cmd() -> None:
    """Import server subscriptions into the local feed list only."""
    settings = get_settings()
    feed_list = _load_feed_list(settings)

    engine = _connect(settings)
    try:
        result = engine.import_subscriptions(feed_list)
    except GReaderError as exc:
        raise _fail(str(exc)) from exc
    finally:
        engine.close()

    feed_list.save(settings.feed_list_path)
    typer.echo(render_sync_result(result))
