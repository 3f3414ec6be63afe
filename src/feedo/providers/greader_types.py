"""Google Reader API payloads, parsed from the JSON the servers return."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..item_ids import parse_item_id
from ..time_utils import from_epoch_seconds

STATE_PREFIX = "user/-/state/com.google/"

READING_LIST = "user/-/state/com.google/reading-list"
READ = "user/-/state/com.google/read"
STARRED = "user/-/state/com.google/starred"
KEPT_UNREAD = "user/-/state/com.google/kept-unread"
BROADCAST = "user/-/state/com.google/broadcast"

# Servers may return either "user/-/..." or "user/<numeric id>/..." for state tags.
_READ_SUFFIX = "/state/com.google/read"
_STARRED_SUFFIX = "/state/com.google/starred"
_KEPT_UNREAD_SUFFIX = "/state/com.google/kept-unread"


def _opt_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _opt_int(value) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(slots=True)
class AuthToken:
    token: str

    def header(self) -> str:
        return f"GoogleLogin auth={self.token}"


@dataclass(slots=True)
class UserInfo:
    user_id: str
    user_name: str
    user_email: str | None = None
    user_profile_id: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> UserInfo:
        return cls(
            user_id=str(payload["userId"]),
            user_name=str(payload["userName"]),
            user_email=_opt_str(payload.get("userEmail")),
            user_profile_id=_opt_str(payload.get("userProfileId")),
        )


@dataclass(slots=True)
class Category:
    id: str
    label: str
    type: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> Category:
        return cls(id=str(payload["id"]), label=str(payload["label"]), type=_opt_str(payload.get("type")))


@dataclass(slots=True)
class RemoteSubscription:
    id: str
    title: str
    url: str
    html_url: str | None = None
    icon_url: str | None = None
    categories: list[Category] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: dict) -> RemoteSubscription:
        return cls(
            id=str(payload["id"]),
            title=str(payload["title"]),
            url=str(payload["url"]),
            html_url=_opt_str(payload.get("htmlUrl")),
            icon_url=_opt_str(payload.get("iconUrl")),
            categories=[Category.from_json(cat) for cat in payload.get("categories") or []],
        )

    def folder_name(self) -> str | None:
        if not self.categories:
            return None
        return self.categories[0].label


@dataclass(slots=True)
class Tag:
    id: str
    sort_id: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> Tag:
        return cls(id=str(payload["id"]), sort_id=_opt_str(payload.get("sortid")))


@dataclass(slots=True)
class UnreadCountItem:
    id: str
    count: int
    newest_item_timestamp_usec: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> UnreadCountItem:
        return cls(
            id=str(payload["id"]),
            count=int(payload["count"]),
            newest_item_timestamp_usec=_opt_str(payload.get("newestItemTimestampUsec")),
        )


@dataclass(slots=True)
class UnreadCount:
    max: int
    unreadcounts: list[UnreadCountItem] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: dict) -> UnreadCount:
        return cls(
            max=int(payload["max"]),
            unreadcounts=[UnreadCountItem.from_json(item) for item in payload.get("unreadcounts") or []],
        )


@dataclass(slots=True)
class StreamItemLink:
    href: str
    type: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> StreamItemLink:
        return cls(href=str(payload["href"]), type=_opt_str(payload.get("type")))


@dataclass(slots=True)
class StreamItemContent:
    content: str
    direction: str | None = None

    @classmethod
    def from_json(cls, payload: dict | None) -> StreamItemContent | None:
        if not payload:
            return None
        return cls(content=str(payload.get("content") or ""), direction=_opt_str(payload.get("direction")))


@dataclass(slots=True)
class StreamItemOrigin:
    stream_id: str
    title: str | None = None
    html_url: str | None = None

    @classmethod
    def from_json(cls, payload: dict | None) -> StreamItemOrigin | None:
        if not payload:
            return None
        return cls(
            stream_id=str(payload["streamId"]),
            title=_opt_str(payload.get("title")),
            html_url=_opt_str(payload.get("htmlUrl")),
        )


@dataclass(slots=True)
class RemoteStreamItem:
    id: str
    title: str | None = None
    author: str | None = None
    published: int | None = None
    updated: int | None = None
    crawl_time_msec: str | None = None
    timestamp_usec: str | None = None
    categories: list[str] = field(default_factory=list)
    canonical: list[StreamItemLink] = field(default_factory=list)
    alternate: list[StreamItemLink] = field(default_factory=list)
    summary: StreamItemContent | None = None
    content: StreamItemContent | None = None
    origin: StreamItemOrigin | None = None

    @classmethod
    def from_json(cls, payload: dict) -> RemoteStreamItem:
        return cls(
            id=str(payload["id"]),
            title=_opt_str(payload.get("title")),
            author=_opt_str(payload.get("author")),
            published=_opt_int(payload.get("published")),
            updated=_opt_int(payload.get("updated")),
            crawl_time_msec=_opt_str(payload.get("crawlTimeMsec")),
            timestamp_usec=_opt_str(payload.get("timestampUsec")),
            categories=[str(cat) for cat in payload.get("categories") or []],
            canonical=[StreamItemLink.from_json(link) for link in payload.get("canonical") or []],
            alternate=[StreamItemLink.from_json(link) for link in payload.get("alternate") or []],
            summary=StreamItemContent.from_json(payload.get("summary")),
            content=StreamItemContent.from_json(payload.get("content")),
            origin=StreamItemOrigin.from_json(payload.get("origin")),
        )

    @property
    def is_read(self) -> bool:
        return any(cat.endswith(_READ_SUFFIX) for cat in self.categories)

    @property
    def is_starred(self) -> bool:
        return any(cat.endswith(_STARRED_SUFFIX) for cat in self.categories)

    @property
    def is_kept_unread(self) -> bool:
        return any(cat.endswith(_KEPT_UNREAD_SUFFIX) for cat in self.categories)

    def link(self) -> str | None:
        if self.canonical:
            return self.canonical[0].href
        if self.alternate:
            return self.alternate[0].href
        return None

    def body(self) -> str | None:
        chosen = self.content or self.summary
        if chosen is None:
            return None
        return chosen.content

    def published_at(self) -> datetime | None:
        return from_epoch_seconds(self.published)

    def id_value(self) -> int | None:
        return parse_item_id(self.id)


@dataclass(slots=True)
class StreamContents:
    id: str
    items: list[RemoteStreamItem] = field(default_factory=list)
    title: str | None = None
    updated: int | None = None
    continuation: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> StreamContents:
        return cls(
            id=str(payload.get("id") or ""),
            title=_opt_str(payload.get("title")),
            updated=_opt_int(payload.get("updated")),
            continuation=_opt_str(payload.get("continuation")),
            items=[RemoteStreamItem.from_json(item) for item in payload.get("items") or []],
        )


@dataclass(slots=True)
class ItemRef:
    id: str
    timestamp_usec: str | None = None
    direct_stream_ids: list[str] | None = None

    @classmethod
    def from_json(cls, payload: dict) -> ItemRef:
        direct = payload.get("directStreamIds")
        return cls(
            id=str(payload["id"]),
            timestamp_usec=_opt_str(payload.get("timestampUsec")),
            direct_stream_ids=[str(value) for value in direct] if isinstance(direct, list) else None,
        )


@dataclass(slots=True)
class StreamItemIds:
    item_refs: list[ItemRef] = field(default_factory=list)
    continuation: str | None = None

    @classmethod
    def from_json(cls, payload: dict) -> StreamItemIds:
        return cls(
            item_refs=[ItemRef.from_json(ref) for ref in payload.get("itemRefs") or []],
            continuation=_opt_str(payload.get("continuation")),
        )


@dataclass(slots=True)
class StreamOptions:
    count: int | None = None
    continuation: str | None = None
    older_than: int | None = None
    newer_than: int | None = None
    exclude_target: str | None = None
    unread_only: bool = False

    @classmethod
    def with_count(cls, count: int) -> StreamOptions:
        return cls(count=count)

    @classmethod
    def unread(cls) -> StreamOptions:
        return cls(unread_only=True)

    def to_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self.count is not None:
            params.append(("n", str(self.count)))
        if self.continuation is not None:
            params.append(("c", self.continuation))
        if self.older_than is not None:
            params.append(("ot", str(self.older_than)))
        if self.newer_than is not None:
            params.append(("nt", str(self.newer_than)))
        if self.exclude_target is not None:
            params.append(("xt", self.exclude_target))
        if self.unread_only:
            params.append(("xt", READ))
        return params
