from __future__ import annotations

import logging
from typing import Protocol

from .api import (
    API,
    ConversationInfoRequest,
    ConversationsListRequest,
    UsersInfoRequest,
    UsersListRequest,
    send,
)
from .cache import CacheStore
from .config import CONVERSATIONS_PAGE_SIZE
from .errors import NotFound, SlackArchiveError
from .models import Channel, IdentifierCache, Message, User
from .parser import next_cursor, parse_channel, parse_user

logger = logging.getLogger(__name__)


class UserResolver(Protocol):
    def resolve_user_name(self, user_id: str) -> str: ...


class IdentityResolver:
    """Resolver for degraded mode: every user ID is its own name."""

    def resolve_user_name(self, user_id: str) -> str:
        return user_id


def username_for_message(resolver: UserResolver, message: Message) -> str:
    """Return the label shown in a message's speaker header."""
    if message.user:
        return resolver.resolve_user_name(message.user)
    if message.bot_id:
        return f"bot {message.bot_id}"
    return "ghost"


def list_users(api: API) -> list[User]:
    """Fetch every user in the workspace. users.list is not paginated here."""
    data = send(api, UsersListRequest())
    users = (parse_user(u) for u in data.get("members") or [])
    return [u for u in users if u.id]


def list_conversations(
    api: API, page_size: int = CONVERSATIONS_PAGE_SIZE
) -> list[Channel]:
    """Fetch every non-archived conversation, following the cursor to the end."""
    channels: list[Channel] = []
    cursor = ""
    while True:
        logger.debug("Fetching conversations with cursor %r", cursor)
        data = send(api, ConversationsListRequest(cursor=cursor, limit=page_size))
        page = (parse_channel(c) for c in data.get("channels") or [])
        channels.extend(c for c in page if c.id)
        logger.info("Fetched %d conversations...", len(channels))

        cursor = next_cursor(data)
        if not cursor:
            break
    return channels


class DirectoryResolver:
    """Resolves user and channel identifiers, backed by the on-disk cache.

    A miss replaces the whole relevant map with a fresh listing and saves it.
    Only one refresh is attempted per lookup.
    """

    def __init__(
        self,
        api: API,
        store: CacheStore,
        cache: IdentifierCache | None = None,
        page_size: int = CONVERSATIONS_PAGE_SIZE,
    ) -> None:
        self.api = api
        self.store = store
        self.cache = store.load() if cache is None else cache
        self.page_size = page_size

    def _commit(self, cache: IdentifierCache) -> None:
        self.store.save(cache)
        self.cache = cache

    def refresh_users(self) -> IdentifierCache:
        logger.info("Populating user cache...")
        users = {u.id: u.name for u in list_users(self.api)}
        refreshed = IdentifierCache(channels=self.cache.channels, users=users)
        self._commit(refreshed)
        return refreshed

    def refresh_channels(self) -> IdentifierCache:
        logger.info("Populating channel cache (this may take a while)...")
        channels: dict[str, str] = {}
        for channel in list_conversations(self.api, self.page_size):
            if not channel.is_channel:
                logger.warning("Skipping non-channel %r", channel.name)
                continue
            channels[channel.name] = channel.id
        refreshed = IdentifierCache(channels=channels, users=self.cache.users)
        self._commit(refreshed)
        return refreshed

    def resolve_user_name(self, user_id: str) -> str:
        if user_id in self.cache.users:
            return self.cache.users[user_id]

        cache = self.refresh_users()
        if user_id in cache.users:
            return cache.users[user_id]

        logger.info("User %s missing from users.list, looking it up directly", user_id)
        try:
            data = send(self.api, UsersInfoRequest(user=user_id))
        except SlackArchiveError as exc:
            raise NotFound(f"no such user {user_id!r}: {exc}") from exc

        user = parse_user({"id": user_id, **(data.get("user") or {})})
        users = dict(cache.users)
        users[user_id] = user.name
        self._commit(IdentifierCache(channels=cache.channels, users=users))
        return user.name

    def resolve_channel_id(self, name: str) -> str:
        if name in self.cache.channels:
            return self.cache.channels[name]

        cache = self.refresh_channels()
        if name in cache.channels:
            return cache.channels[name]

        raise NotFound(f"no channel named {name!r}")

    def channel_info(self, channel_id: str) -> Channel:
        data = send(self.api, ConversationInfoRequest(channel=channel_id))
        return parse_channel({"id": channel_id, **(data.get("channel") or {})})
