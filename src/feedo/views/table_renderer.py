from __future__ import annotations

from datetime import datetime, timezone
import re

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..schemas import CachedFeed, CacheStats, RefreshReport, SyncResult

_TAG_RE = re.compile(r"<[^>]+>")


def _format_time(dt: datetime | None) -> str:
    if dt is None:
        return "-"
    value = dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def _read_flag(is_read: bool) -> str:
    return "[x]" if is_read else "[ ]"


def _title_cell(title: str, url: str | None) -> Text | str:
    if not url:
        return title
    return Text(title, style=f"link {url}")


def _summary_cell(summary: str | None, limit: int = 80) -> str:
    compact = re.sub(r"\s+", " ", _TAG_RE.sub(" ", summary or "")).strip()
    if len(compact) <= limit:
        return compact
    return f"{compact[: limit - 1].rstrip()}…"


def _new_console() -> Console:
    return Console(
        force_terminal=True,
        color_system="standard",
        markup=False,
        highlight=False,
        width=160,
    )


def _build_item_table() -> Table:
    table = Table(
        show_header=True,
        header_style="bold cyan",
        box=box.SQUARE,
        show_lines=False,
        pad_edge=True,
        expand=True,
    )
    table.add_column("ID", width=16, no_wrap=True)
    table.add_column("Read", width=4, no_wrap=True)
    table.add_column("Published", width=16, no_wrap=True)
    table.add_column("Title", ratio=3, overflow="fold")
    table.add_column("Summary", ratio=4, overflow="fold")
    return table


def render_feeds(feeds: list[CachedFeed], unread_only: bool = False) -> str:
    console = _new_console()
    with console.capture() as capture:
        if not feeds:
            console.print("No cached feeds.")
        for index, feed in enumerate(feeds):
            if index > 0:
                console.print()
            console.print(f"{feed.name} ({feed.unread_count()} unread) {feed.url}")
            if feed.last_error:
                console.print(f"Last error: {feed.last_error}")
            items = [item for item in feed.items if not (unread_only and item.read)]
            if not items:
                console.print("No items.")
                continue
            table = _build_item_table()
            for item in items:
                table.add_row(
                    item.id,
                    _read_flag(item.read),
                    _format_time(item.published),
                    _title_cell(item.title, item.link),
                    _summary_cell(item.summary),
                )
            console.print(table)
    return capture.get()


def render_stats(stats: CacheStats) -> str:
    console = _new_console()
    table = Table(show_header=False, box=box.SQUARE)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Feeds", str(stats.total_feeds))
    table.add_row("Items", str(stats.total_items))
    table.add_row("Unread", str(stats.unread_items))
    table.add_row("Oldest fetch", _format_time(stats.oldest_fetch))
    with console.capture() as capture:
        console.print(table)
    return capture.get()


def render_sync_result(result: SyncResult, max_errors: int = 10) -> str:
    lines = [
        f"Feeds imported: {result.feeds_imported} (already present: {result.feeds_existing})",
        f"Items marked read locally: {result.items_marked_read}",
        f"Items marked read on server: {result.items_synced_to_server}",
    ]
    if result.errors:
        lines.append(f"Errors: {len(result.errors)}")
        lines.extend(f"  - {error}" for error in result.errors[:max_errors])
        hidden = len(result.errors) - max_errors
        if hidden > 0:
            lines.append(f"  ... and {hidden} more")
    return "\n".join(lines)


def render_refresh_report(report: RefreshReport) -> str:
    lines = [f"Refreshed {report.success_count} feeds, {report.fail_count} failed"]
    lines.extend(f"  - {error}" for error in report.errors)
    return "\n".join(lines)
