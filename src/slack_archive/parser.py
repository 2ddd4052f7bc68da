from __future__ import annotations

from typing import Any

from .models import Attachment, Channel, HistoryBatch, Message, User


def next_cursor(data: dict[str, Any]) -> str:
    """Return the pagination cursor of a listing response, "" at the end."""
    metadata = data.get("response_metadata") or {}
    return metadata.get("next_cursor", "") or ""


def parse_message(raw: dict[str, Any]) -> Message:
    """Parse a raw message dict into a Message object."""
    attachments = tuple(
        Attachment(id=a.get("id", 0), text=a.get("text", "") or "")
        for a in raw.get("attachments") or []
    )
    return Message(
        user=raw.get("user", "") or "",
        bot_id=raw.get("bot_id", "") or "",
        text=raw.get("text", "") or "",
        ts=raw.get("ts", "") or "",
        type=raw.get("type", "") or "",
        reply_count=raw.get("reply_count", 0) or 0,
        attachments=attachments,
    )


def parse_history(data: dict[str, Any]) -> HistoryBatch:
    """Parse a conversations.replies or conversations.history payload."""
    return HistoryBatch(
        ok=bool(data.get("ok")),
        has_more=bool(data.get("has_more")),
        next_cursor=next_cursor(data),
        messages=[parse_message(m) for m in data.get("messages") or []],
    )


def parse_channel(raw: dict[str, Any]) -> Channel:
    return Channel(
        id=raw.get("id", ""),
        name=raw.get("name", ""),
        is_channel=bool(raw.get("is_channel")),
    )


def parse_user(raw: dict[str, Any]) -> User:
    return User(id=raw.get("id", ""), name=raw.get("name", ""))
