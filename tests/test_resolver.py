from __future__ import annotations

import json

import pytest

from slack_archive.cache import CacheStore
from slack_archive.errors import NotFound, TransportError
from slack_archive.models import IdentifierCache, Message
from slack_archive.resolver import (
    DirectoryResolver,
    IdentityResolver,
    list_conversations,
    username_for_message,
)


@pytest.fixture
def store(tmp_path):
    return CacheStore(tmp_path / "data" / "cache.json")


def _saved(store: CacheStore) -> dict:
    return json.loads(store.path.read_text(encoding="utf-8"))


class TestResolveUserName:
    def test_cache_hit_makes_no_calls(self, api, store):
        resolver = DirectoryResolver(api, store, IdentifierCache(users={"U1": "alice"}))
        assert resolver.resolve_user_name("U1") == "alice"
        assert api.calls == []

    def test_bulk_refresh_on_miss(self, api, store):
        api.queue(
            "users.list",
            {"ok": True, "members": [{"id": "U1", "name": "alice"}, {"id": "U2", "name": "bob"}]},
        )
        resolver = DirectoryResolver(api, store, IdentifierCache(users={"U0": "stale"}))
        assert resolver.resolve_user_name("U2") == "bob"
        assert api.endpoints == ["users.list"]
        assert resolver.cache.users == {"U1": "alice", "U2": "bob"}
        assert _saved(store)["users"] == {"U1": "alice", "U2": "bob"}

    def test_point_lookup_after_bulk_miss(self, api, store):
        api.queue("users.list", {"ok": True, "members": [{"id": "U1", "name": "alice"}]})
        api.queue("users.info", {"ok": True, "user": {"id": "U9", "name": "guest"}})
        resolver = DirectoryResolver(api, store, IdentifierCache())
        assert resolver.resolve_user_name("U9") == "guest"
        assert api.calls[-1] == ("GET", "users.info", {"user": "U9"})
        assert _saved(store)["users"] == {"U1": "alice", "U9": "guest"}

    def test_point_lookup_without_id(self, api, store):
        api.queue("users.list", {"ok": True, "members": [{"name": "nobody"}]})
        api.queue("users.info", {"ok": True, "user": {"name": "guest"}})
        resolver = DirectoryResolver(api, store, IdentifierCache())
        assert resolver.resolve_user_name("U9") == "guest"
        assert resolver.cache.users == {"U9": "guest"}

    def test_point_lookup_not_ok(self, api, store):
        api.queue("users.list", {"ok": True, "members": []})
        api.queue("users.info", {"ok": False, "error": "user_not_found"})
        resolver = DirectoryResolver(api, store, IdentifierCache())
        with pytest.raises(NotFound, match="no such user"):
            resolver.resolve_user_name("U9")

    def test_point_lookup_transport_error(self, api, store):
        api.queue("users.list", {"ok": True, "members": []})
        api.queue("users.info", TransportError("timed out"))
        resolver = DirectoryResolver(api, store, IdentifierCache())
        with pytest.raises(NotFound):
            resolver.resolve_user_name("U9")

    def test_bulk_refresh_failure_propagates(self, api, store):
        api.queue("users.list", TransportError("connection refused"))
        resolver = DirectoryResolver(api, store, IdentifierCache())
        with pytest.raises(TransportError):
            resolver.resolve_user_name("U1")
        assert not store.path.exists()

    def test_loads_cache_from_store(self, api, store):
        store.save(IdentifierCache(users={"U1": "alice"}))
        resolver = DirectoryResolver(api, store)
        assert resolver.resolve_user_name("U1") == "alice"
        assert api.calls == []


class TestResolveChannelID:
    def test_cache_hit(self, api, store):
        resolver = DirectoryResolver(api, store, IdentifierCache(channels={"general": "C1"}))
        assert resolver.resolve_channel_id("general") == "C1"
        assert api.calls == []

    def test_paginated_refresh(self, api, store):
        api.queue(
            "conversations.list",
            {
                "ok": True,
                "channels": [{"id": "C1", "name": "general", "is_channel": True}],
                "response_metadata": {"next_cursor": "page2"},
            },
        )
        api.queue(
            "conversations.list",
            {
                "ok": True,
                "channels": [
                    {"id": "C2", "name": "random", "is_channel": True},
                    {"id": "G3", "name": "mpdm-a--b", "is_channel": False},
                ],
                "response_metadata": {"next_cursor": ""},
            },
        )
        resolver = DirectoryResolver(api, store, IdentifierCache(), page_size=2)
        assert resolver.resolve_channel_id("random") == "C2"
        assert resolver.cache.channels == {"general": "C1", "random": "C2"}
        assert [params.get("cursor") for _, _, params in api.calls] == [None, "page2"]
        assert api.calls[0][2]["limit"] == "2"
        assert api.calls[0][2]["types"] == "public_channel,private_channel"

    def test_not_found_keeps_refreshed_cache(self, api, store):
        api.queue(
            "conversations.list",
            {"ok": True, "channels": [{"id": "C1", "name": "general", "is_channel": True}]},
        )
        resolver = DirectoryResolver(
            api, store, IdentifierCache(channels={"old": "C0"}, users={"U1": "alice"})
        )
        with pytest.raises(NotFound, match="no channel named 'missing'"):
            resolver.resolve_channel_id("missing")
        assert resolver.cache.channels == {"general": "C1"}
        assert _saved(store) == {"channels": {"general": "C1"}, "users": {"U1": "alice"}}
        assert api.endpoints == ["conversations.list"]


class TestListConversations:
    def test_single_page(self, api):
        api.queue("conversations.list", {"ok": True, "channels": []})
        assert list_conversations(api) == []
        assert api.calls[0][2]["limit"] == "1000"

    def test_skips_entries_without_id(self, api):
        api.queue(
            "conversations.list",
            {"ok": True, "channels": [{"name": "broken"}, {"id": "C1", "name": "general"}]},
        )
        assert [c.id for c in list_conversations(api)] == ["C1"]


class TestChannelInfo:
    def test_returns_channel(self, api, store):
        api.queue(
            "conversations.info",
            {"ok": True, "channel": {"id": "C1", "name": "general", "is_channel": True}},
        )
        resolver = DirectoryResolver(api, store, IdentifierCache())
        channel = resolver.channel_info("C1")
        assert channel.name == "general"
        assert api.calls == [("GET", "conversations.info", {"channel": "C1"})]

    def test_channel_without_id(self, api, store):
        api.queue("conversations.info", {"ok": True, "channel": {"name": "general"}})
        resolver = DirectoryResolver(api, store, IdentifierCache())
        channel = resolver.channel_info("C1")
        assert (channel.id, channel.name) == ("C1", "general")


class TestUsernameForMessage:
    def test_user(self, resolver):
        assert username_for_message(resolver, Message(user="U1", bot_id="B1")) == "alice"

    def test_bot(self, resolver):
        assert username_for_message(resolver, Message(bot_id="B1")) == "bot B1"

    def test_ghost(self, resolver):
        assert username_for_message(resolver, Message()) == "ghost"


class TestIdentityResolver:
    def test_returns_id(self):
        assert IdentityResolver().resolve_user_name("U123") == "U123"
