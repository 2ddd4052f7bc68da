from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    id: str
    name: str


@dataclass
class Channel:
    id: str
    name: str
    is_channel: bool = False


@dataclass(frozen=True)
class Attachment:
    id: int = 0
    text: str = ""


@dataclass(frozen=True)
class Message:
    user: str = ""
    text: str = ""
    ts: str = ""
    bot_id: str = ""
    type: str = ""
    reply_count: int = 0
    attachments: tuple[Attachment, ...] = ()

    @property
    def speaker_id(self) -> str:
        """Identity used to group consecutive messages under one header."""
        return self.user or self.bot_id


@dataclass
class HistoryBatch:
    ok: bool = False
    has_more: bool = False
    next_cursor: str = ""
    messages: list[Message] = field(default_factory=list)


@dataclass
class IdentifierCache:
    channels: dict[str, str] = field(default_factory=dict)
    users: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Permalink:
    team: str
    channel_id: str
    timestamp: str
    thread_ts: str = ""
