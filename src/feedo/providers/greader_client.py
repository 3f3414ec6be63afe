"""Google Reader API client (FreshRSS, Miniflux, Inoreader, The Old Reader...).

Reference: https://freshrss.github.io/FreshRSS/en/developers/06_GoogleReader_API.html
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from .greader_types import (
    READ,
    STARRED,
    AuthToken,
    RemoteSubscription,
    StreamContents,
    StreamItemIds,
    StreamOptions,
    Tag,
    UnreadCount,
    UserInfo,
)

logger = logging.getLogger(__name__)


class GReaderError(Exception):
    """Raised when a Google Reader API call fails."""


class GReaderAuthError(GReaderError):
    """Raised when login is rejected or returns no auth token."""


class GReaderClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: int = 30,
        user_agent: str = "feedo",
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> GReaderClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        auth: AuthToken | None = None,
        params: list[tuple[str, str]] | None = None,
        data: list[tuple[str, str]] | dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": auth.header()} if auth is not None else None
        url = f"{self.base_url}{path}"
        try:
            if data is not None:
                # httpx only takes dicts for form bodies; repeated keys need a manual encoding.
                body = httpx.QueryParams(data)
                headers = dict(headers or {})
                headers["Content-Type"] = "application/x-www-form-urlencoded"
                response = self.client.request(method, url, params=params, content=str(body), headers=headers)
            else:
                response = self.client.request(method, url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise GReaderError(f"{action}: {exc}") from exc

        if not response.is_success:
            raise GReaderError(f"{action}: HTTP {response.status_code}")
        return response

    def _json(self, response: httpx.Response, action: str) -> dict:
        try:
            payload = response.json()
        except ValueError as exc:
            raise GReaderError(f"{action}: invalid JSON response") from exc
        if not isinstance(payload, dict):
            raise GReaderError(f"{action}: unexpected response shape")
        return payload

    def login(self, username: str, password: str) -> AuthToken:
        try:
            response = self._request(
                "POST",
                "/accounts/ClientLogin",
                "Login failed",
                data={"Email": username, "Passwd": password},
            )
        except GReaderError as exc:
            raise GReaderAuthError(str(exc)) from exc

        # Body is "SID=...\nLSID=...\nAuth=..."
        for line in response.text.splitlines():
            if line.startswith("Auth="):
                token = line[len("Auth=") :].strip()
                if token:
                    return AuthToken(token=token)
        raise GReaderAuthError("Login failed: no Auth token in response")

    def token(self, auth: AuthToken) -> str:
        response = self._request("GET", "/reader/api/0/token", "Failed to get token", auth=auth)
        return response.text.strip()

    def user_info(self, auth: AuthToken) -> UserInfo:
        action = "Failed to get user info"
        response = self._request("GET", "/reader/api/0/user-info", action, auth=auth, params=[("output", "json")])
        return self._parse(action, UserInfo.from_json, self._json(response, action))

    def subscriptions(self, auth: AuthToken) -> list[RemoteSubscription]:
        action = "Failed to list subscriptions"
        response = self._request(
            "GET", "/reader/api/0/subscription/list", action, auth=auth, params=[("output", "json")]
        )
        payload = self._json(response, action)
        return self._parse(
            action,
            lambda body: [RemoteSubscription.from_json(sub) for sub in body.get("subscriptions") or []],
            payload,
        )

    def tags(self, auth: AuthToken) -> list[Tag]:
        action = "Failed to list tags"
        response = self._request("GET", "/reader/api/0/tag/list", action, auth=auth, params=[("output", "json")])
        payload = self._json(response, action)
        return self._parse(action, lambda body: [Tag.from_json(tag) for tag in body.get("tags") or []], payload)

    def unread_count(self, auth: AuthToken) -> UnreadCount:
        action = "Failed to get unread count"
        response = self._request("GET", "/reader/api/0/unread-count", action, auth=auth, params=[("output", "json")])
        return self._parse(action, UnreadCount.from_json, self._json(response, action))

    def stream_contents(
        self,
        auth: AuthToken,
        stream_id: str,
        options: StreamOptions | None = None,
    ) -> StreamContents:
        action = "Failed to get stream contents"
        params = [("output", "json")]
        if options is not None:
            params.extend(options.to_params())
        logger.debug("Fetching stream %s", stream_id)
        response = self._request(
            "GET",
            f"/reader/api/0/stream/contents/{quote(stream_id, safe='')}",
            action,
            auth=auth,
            params=params,
        )
        return self._parse(action, StreamContents.from_json, self._json(response, action))

    def stream_item_ids(
        self,
        auth: AuthToken,
        stream_id: str,
        options: StreamOptions | None = None,
    ) -> StreamItemIds:
        action = "Failed to get stream item IDs"
        params = [("output", "json"), ("s", stream_id)]
        if options is not None:
            params.extend(options.to_params())
        response = self._request("GET", "/reader/api/0/stream/items/ids", action, auth=auth, params=params)
        return self._parse(action, StreamItemIds.from_json, self._json(response, action))

    def items_contents(self, auth: AuthToken, item_ids: list[str]) -> StreamContents:
        action = "Failed to get item contents"
        response = self._request(
            "POST",
            "/reader/api/0/stream/items/contents",
            action,
            auth=auth,
            params=[("output", "json")],
            data=[("i", item_id) for item_id in item_ids],
        )
        return self._parse(action, StreamContents.from_json, self._json(response, action))

    def edit_tag(
        self,
        auth: AuthToken,
        item_ids: list[str],
        add_tag: str | None = None,
        remove_tag: str | None = None,
    ) -> None:
        token = self.token(auth)
        form: list[tuple[str, str]] = [("T", token)]
        form.extend(("i", item_id) for item_id in item_ids)
        if add_tag is not None:
            form.append(("a", add_tag))
        if remove_tag is not None:
            form.append(("r", remove_tag))
        self._request("POST", "/reader/api/0/edit-tag", "Failed to edit tag", auth=auth, data=form)

    def mark_read(self, auth: AuthToken, item_ids: list[str]) -> None:
        self.edit_tag(auth, item_ids, add_tag=READ)

    def mark_unread(self, auth: AuthToken, item_ids: list[str]) -> None:
        self.edit_tag(auth, item_ids, remove_tag=READ)

    def star(self, auth: AuthToken, item_ids: list[str]) -> None:
        self.edit_tag(auth, item_ids, add_tag=STARRED)

    def unstar(self, auth: AuthToken, item_ids: list[str]) -> None:
        self.edit_tag(auth, item_ids, remove_tag=STARRED)

    def mark_all_as_read(self, auth: AuthToken, stream_id: str, timestamp: int | None = None) -> None:
        token = self.token(auth)
        form = [("T", token), ("s", stream_id)]
        if timestamp is not None:
            form.append(("ts", str(timestamp)))
        self._request("POST", "/reader/api/0/mark-all-as-read", "Failed to mark all as read", auth=auth, data=form)

    def add_subscription(
        self,
        auth: AuthToken,
        feed_url: str,
        title: str | None = None,
        category: str | None = None,
    ) -> None:
        token = self.token(auth)
        form = [("T", token), ("ac", "subscribe"), ("s", f"feed/{feed_url}")]
        if title is not None:
            form.append(("t", title))
        if category is not None:
            form.append(("a", category))
        self._request("POST", "/reader/api/0/subscription/edit", "Failed to add subscription", auth=auth, data=form)

    def remove_subscription(self, auth: AuthToken, feed_id: str) -> None:
        token = self.token(auth)
        form = [("T", token), ("ac", "unsubscribe"), ("s", feed_id)]
        self._request(
            "POST", "/reader/api/0/subscription/edit", "Failed to remove subscription", auth=auth, data=form
        )

    def rename_subscription(self, auth: AuthToken, feed_id: str, new_title: str) -> None:
        token = self.token(auth)
        form = [("T", token), ("ac", "edit"), ("s", feed_id), ("t", new_title)]
        self._request(
            "POST", "/reader/api/0/subscription/edit", "Failed to rename subscription", auth=auth, data=form
        )

    @staticmethod
    def _parse(action: str, parser, payload: dict):
        try:
            return parser(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise GReaderError(f"{action}: unexpected response shape ({exc})") from exc
