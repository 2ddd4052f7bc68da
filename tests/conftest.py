from __future__ import annotations

import json
from collections import defaultdict

import pytest

from slack_archive.errors import TransportError


class FakeAPI:
    """In-memory stand-in for the remote API, answering from queued payloads."""

    def __init__(self) -> None:
        self.responses: dict[str, list[object]] = defaultdict(list)
        self.calls: list[tuple[str, str, dict[str, str]]] = []

    def queue(self, endpoint: str, payload: object) -> None:
        if isinstance(payload, dict):
            payload = json.dumps(payload).encode()
        self.responses[endpoint].append(payload)

    def call(self, verb, endpoint, params=None, body=None) -> bytes:
        self.calls.append((verb, endpoint, dict(params or {})))
        queued = self.responses[endpoint]
        if not queued:
            raise TransportError(f"unexpected call to {endpoint}")
        item = queued.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def endpoints(self) -> list[str]:
        return [endpoint for _, endpoint, _ in self.calls]


class StubResolver:
    def __init__(self, names: dict[str, str]) -> None:
        self.names = names

    def resolve_user_name(self, user_id: str) -> str:
        return self.names[user_id]


@pytest.fixture
def api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def resolver() -> StubResolver:
    return StubResolver({"U1": "alice", "U2": "bob"})
