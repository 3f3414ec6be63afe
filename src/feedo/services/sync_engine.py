"""Bidirectional read-state sync against a Google Reader API server.

A full pass runs three phases in order: import remote subscriptions into the
local feed list, pull remote read state into the offline cache, then push
local read state the server does not know about yet. Every step is safe to
repeat. The engine never saves the feed list or the cache; callers do.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..feed_list import FeedConfig, FeedList, FolderConfig
from ..identity import compute_item_id
from ..item_ids import parse_item_id
from ..providers.feed_parser import DEFAULT_TITLE
from ..providers.greader_client import GReaderClient, GReaderError
from ..providers.greader_types import (
    READ,
    AuthToken,
    RemoteStreamItem,
    RemoteSubscription,
    StreamContents,
    StreamItemIds,
    StreamOptions,
)
from ..schemas import SyncResult
from .offline_cache import OfflineCache

logger = logging.getLogger(__name__)

DEFAULT_READ_IDS_PAGE_SIZE = 10000
DEFAULT_STREAM_PAGE_SIZE = 100


class ReaderClient(Protocol):
    def subscriptions(self, auth: AuthToken) -> list[RemoteSubscription]: ...

    def stream_contents(
        self, auth: AuthToken, stream_id: str, options: StreamOptions | None = None
    ) -> StreamContents: ...

    def stream_item_ids(
        self, auth: AuthToken, stream_id: str, options: StreamOptions | None = None
    ) -> StreamItemIds: ...

    def mark_read(self, auth: AuthToken, item_ids: list[str]) -> None: ...


def local_item_id(item: RemoteStreamItem) -> str:
    # Same link/title cleanup as the feed parser applies before caching.
    link = (item.link() or "").strip() or None
    title = (item.title or "").strip() or DEFAULT_TITLE
    return compute_item_id(link, title)


class SyncEngine:
    def __init__(
        self,
        client: ReaderClient,
        auth: AuthToken,
        read_ids_page_size: int = DEFAULT_READ_IDS_PAGE_SIZE,
        stream_page_size: int = DEFAULT_STREAM_PAGE_SIZE,
    ) -> None:
        self.client = client
        self.auth = auth
        self.read_ids_page_size = read_ids_page_size
        self.stream_page_size = stream_page_size

    @classmethod
    def connect(
        cls,
        server: str,
        username: str,
        password: str,
        timeout_seconds: int = 30,
        user_agent: str = "feedo",
        read_ids_page_size: int = DEFAULT_READ_IDS_PAGE_SIZE,
        stream_page_size: int = DEFAULT_STREAM_PAGE_SIZE,
    ) -> SyncEngine:
        client = GReaderClient(server, timeout_seconds=timeout_seconds, user_agent=user_agent)
        try:
            auth = client.login(username, password)
        except GReaderError:
            client.close()
            raise
        return cls(client, auth, read_ids_page_size=read_ids_page_size, stream_page_size=stream_page_size)

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            close()

    def import_subscriptions(self, feed_list: FeedList) -> SyncResult:
        result = SyncResult()

        subs = self.client.subscriptions(self.auth)
        logger.info("Fetched %d subscriptions from server", len(subs))

        known_urls = set(feed_list.all_feed_urls())
        by_folder: dict[str, list[FeedConfig]] = {}
        root_feeds: list[FeedConfig] = []

        for sub in subs:
            if sub.url in known_urls:
                result.feeds_existing += 1
                continue
            known_urls.add(sub.url)

            feed = FeedConfig(name=sub.title, url=sub.url, sync_id=sub.id)
            folder_name = sub.folder_name()
            if folder_name is None:
                root_feeds.append(feed)
            else:
                by_folder.setdefault(folder_name, []).append(feed)

        for folder_name, feeds in by_folder.items():
            folder = feed_list.find_folder(folder_name)
            if folder is None:
                folder = FolderConfig(name=folder_name)
                feed_list.folders.append(folder)
            folder.feeds.extend(feeds)
            result.feeds_imported += len(feeds)

        feed_list.feeds.extend(root_feeds)
        result.feeds_imported += len(root_feeds)

        logger.info("Imported %d feeds, %d already existed", result.feeds_imported, result.feeds_existing)
        return result

    def fetch_read_ids(self) -> set[int]:
        refs = self.client.stream_item_ids(
            self.auth,
            READ,
            StreamOptions.with_count(self.read_ids_page_size),
        )
        read_ids: set[int] = set()
        for ref in refs.item_refs:
            value = parse_item_id(ref.id)
            if value is None:
                logger.debug("Skipping unparseable item ref %r", ref.id)
                continue
            read_ids.add(value)
        if refs.continuation:
            logger.warning(
                "Server has more than %d read items; older read state is not pulled",
                self.read_ids_page_size,
            )
        return read_ids

    def pull_read_states(self, cache: OfflineCache) -> SyncResult:
        result = SyncResult()

        read_ids = self.fetch_read_ids()
        logger.info("Server has %d read items", len(read_ids))

        subs = self.client.subscriptions(self.auth)
        for sub in subs:
            try:
                contents = self.client.stream_contents(
                    self.auth, sub.id, StreamOptions.with_count(self.stream_page_size)
                )
            except Exception as exc:  # noqa: BLE001
                result.errors.append(f"Failed to fetch {sub.title}: {exc}")
                continue

            for item in contents.items:
                value = item.id_value()
                if value is None or value not in read_ids:
                    continue
                if cache.set_item_read(sub.url, local_item_id(item), True):
                    result.items_marked_read += 1

        logger.info("Marked %d items as read from server", result.items_marked_read)
        return result

    def push_read_states(self, cache: OfflineCache, feed_list: FeedList) -> SyncResult:
        result = SyncResult()

        subs = self.client.subscriptions(self.auth)
        url_to_feed_id = {sub.url: sub.id for sub in subs}

        for feed_url in feed_list.all_feed_urls():
            cached_feed = cache.get(feed_url)
            if cached_feed is None:
                continue

            feed_id = url_to_feed_id.get(feed_url)
            if feed_id is None:
                logger.debug("Feed %s not found on server, skipping", feed_url)
                continue

            try:
                contents = self.client.stream_contents(
                    self.auth, feed_id, StreamOptions.with_count(self.stream_page_size)
                )
            except Exception as exc:  # noqa: BLE001
                result.errors.append(f"Failed to fetch {feed_url}: {exc}")
                continue

            to_mark_read: list[str] = []
            for item in contents.items:
                if item.is_read:
                    continue
                local_item = cached_feed.find_item(local_item_id(item))
                if local_item is not None and local_item.read:
                    to_mark_read.append(item.id)

            if not to_mark_read:
                continue

            try:
                self.client.mark_read(self.auth, to_mark_read)
            except Exception as exc:  # noqa: BLE001
                result.errors.append(f"Failed to mark read on server for {feed_url}: {exc}")
                continue
            result.items_synced_to_server += len(to_mark_read)
            logger.info("Marked %d items as read on server for %s", len(to_mark_read), feed_url)

        logger.info("Synced %d items to server", result.items_synced_to_server)
        return result

    def full_sync(self, feed_list: FeedList, cache: OfflineCache) -> SyncResult:
        result = SyncResult()

        logger.info("Step 1: Importing subscriptions from server...")
        self._run_phase(result, "Import subscriptions", lambda: self.import_subscriptions(feed_list))

        logger.info("Step 2: Syncing read states from server...")
        self._run_phase(result, "Pull read states", lambda: self.pull_read_states(cache))

        logger.info("Step 3: Syncing read states to server...")
        self._run_phase(result, "Push read states", lambda: self.push_read_states(cache, feed_list))

        return result

    def _run_phase(self, result: SyncResult, label: str, phase) -> None:
        try:
            phase_result = phase()
        except Exception as exc:  # noqa: BLE001
            logger.warning("%s failed: %s", label, exc)
            result.errors.append(f"{label} failed: {exc}")
            return
        result.merge(phase_result)
