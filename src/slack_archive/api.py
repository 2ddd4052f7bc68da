from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

import requests

from .config import CONNECT_TIMEOUT, CONVERSATIONS_PAGE_SIZE, DEFAULT_LIMIT
from .errors import RemoteNotOK, TransportError

logger = logging.getLogger(__name__)


class API(Protocol):
    """The remote call capability everything else is built on."""

    def call(
        self,
        verb: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> bytes: ...


# Typed requests, one per endpoint


@dataclass(frozen=True)
class RepliesRequest:
    endpoint: ClassVar[str] = "conversations.replies"

    channel: str
    ts: str
    limit: int = DEFAULT_LIMIT
    oldest: str = ""
    inclusive: bool = True

    def params(self) -> dict[str, str]:
        params = {
            "channel": self.channel,
            "ts": self.ts,
            "inclusive": _flag(self.inclusive),
            "limit": str(self.limit),
        }
        if self.oldest:
            params["oldest"] = self.oldest
        return params


@dataclass(frozen=True)
class HistoryRequest:
    endpoint: ClassVar[str] = "conversations.history"

    channel: str
    oldest: str
    limit: int = DEFAULT_LIMIT
    inclusive: bool = True

    def params(self) -> dict[str, str]:
        return {
            "channel": self.channel,
            "oldest": self.oldest,
            "inclusive": _flag(self.inclusive),
            "limit": str(self.limit),
        }


@dataclass(frozen=True)
class ConversationsListRequest:
    endpoint: ClassVar[str] = "conversations.list"

    cursor: str = ""
    limit: int = CONVERSATIONS_PAGE_SIZE
    exclude_archived: bool = True
    # TODO: include "im,mpim" once direct messages can be archived
    types: tuple[str, ...] = ("public_channel", "private_channel")

    def params(self) -> dict[str, str]:
        params = {
            "exclude_archived": _flag(self.exclude_archived),
            "limit": str(self.limit),
            "types": ",".join(self.types),
        }
        if self.cursor:
            params["cursor"] = self.cursor
        return params


@dataclass(frozen=True)
class ConversationInfoRequest:
    endpoint: ClassVar[str] = "conversations.info"

    channel: str

    def params(self) -> dict[str, str]:
        return {"channel": self.channel}


@dataclass(frozen=True)
class UsersListRequest:
    endpoint: ClassVar[str] = "users.list"

    def params(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True)
class UsersInfoRequest:
    endpoint: ClassVar[str] = "users.info"

    user: str

    def params(self) -> dict[str, str]:
        return {"user": self.user}


Request = (
    RepliesRequest
    | HistoryRequest
    | ConversationsListRequest
    | ConversationInfoRequest
    | UsersListRequest
    | UsersInfoRequest
)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def send(api: API, request: Request) -> dict[str, Any]:
    """Issue a GET for ``request`` and return the decoded, ok-checked payload.

    Raises:
        TransportError: the call failed or the body is not a JSON object.
        RemoteNotOK: the service reported ``ok: false``.
    """
    body = api.call("GET", request.endpoint, request.params(), None)
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise TransportError(
            f"{request.endpoint} returned an undecodable response: {exc}"
        ) from exc
    if not isinstance(data, dict):
        raise TransportError(f"{request.endpoint} returned a non-object response")
    if not data.get("ok"):
        raise RemoteNotOK(request.endpoint, body)
    return data


class SlackAPI:
    """HTTP transport authenticating with a session token and ``d`` cookie."""

    def __init__(
        self,
        team: str,
        token: str,
        cookie: str,
        session: requests.Session | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        self.team = team
        self.base_url = f"https://{team}.slack.com/api/"
        self.connect_timeout = connect_timeout
        self.session = session or requests.Session()
        self.session.headers["Authorization"] = f"Bearer {token}"
        self.session.cookies.set("d", cookie, domain=".slack.com")

    def call(
        self,
        verb: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> bytes:
        logger.debug("%s %s %s", verb, endpoint, params)
        try:
            response = self.session.request(
                verb,
                self.base_url + endpoint,
                params=params,
                data=body,
                timeout=(self.connect_timeout, None),
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(f"{verb} {endpoint} failed: {exc}") from exc
        return response.content
