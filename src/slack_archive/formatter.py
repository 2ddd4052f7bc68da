from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone, tzinfo

from .config import GROUP_GAP_MINUTES
from .errors import MalformedTimestamp
from .models import HistoryBatch, Message
from .resolver import UserResolver, username_for_message

_DIGITS = re.compile(r"[0-9]+", re.ASCII)
_USER_MENTION = re.compile(r"<@([A-Z0-9]+)>")
_LINK = re.compile(r"<(https?://[^|>]+)\|([^>]+)>")
_OPEN_CODEFENCE = re.compile(r"^```", re.MULTILINE)
_CLOSE_CODEFENCE = re.compile(r"(.)```$", re.MULTILINE)


def parse_timestamp(ts: str) -> datetime:
    """Convert a ``<seconds>.<fraction>`` Slack timestamp to an aware UTC datetime."""
    parts = ts.split(".")
    if len(parts) != 2 or not all(_DIGITS.fullmatch(p) for p in parts):
        raise MalformedTimestamp(ts)
    seconds, fraction = parts
    try:
        base = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedTimestamp(ts) from exc
    micros = int(fraction[:6].ljust(6, "0"))
    return base + timedelta(microseconds=micros)


def _format_timestamp(dt: datetime, tz: tzinfo | None = None) -> str:
    """Render a header time as ``YYYY-MM-DD HH:MM TZ`` in ``tz`` (local by default)."""
    return dt.astimezone(tz).strftime("%Y-%m-%d %H:%M %Z")


def interpolate_users(resolver: UserResolver, text: str) -> str:
    """Replace ``<@U123>`` mentions with a code-styled ``@name``."""
    parts: list[str] = []
    last = 0
    for m in _USER_MENTION.finditer(text):
        username = resolver.resolve_user_name(m.group(1))
        parts.append(text[last : m.start()])
        parts.append(f"`@{username}`")
        last = m.end()
    parts.append(text[last:])
    return "".join(parts)


def rewrite_inline(resolver: UserResolver, text: str) -> str:
    """Convert Slack mrkdwn references to Markdown.

    Mentions are resolved to names, ``<url|label>`` links become Markdown
    links, and code fences are put on lines of their own.
    """
    text = interpolate_users(resolver, text)
    text = _LINK.sub(r"[\2](\1)", text)
    text = _OPEN_CODEFENCE.sub("```\n", text)
    text = _CLOSE_CODEFENCE.sub("\\1\n```", text)
    return text


def convert_text(resolver: UserResolver, text: str) -> str:
    """Rewrite ``text`` and quote every resulting line."""
    # TODO: escape markdown inside quoted lines
    return "".join(f"> {line}\n" for line in rewrite_inline(resolver, text).split("\n"))


def format_messages(
    resolver: UserResolver,
    messages: HistoryBatch | Iterable[Message],
    tz: tzinfo | None = None,
    gap_minutes: int = GROUP_GAP_MINUTES,
) -> str:
    """Format a batch of messages as a blockquoted Markdown transcript.

    Messages are sorted by timestamp first since the API does not reliably
    return them in order. Consecutive messages from the same speaker share
    one header unless more than ``gap_minutes`` separate them.
    """
    if isinstance(messages, HistoryBatch):
        messages = messages.messages

    timed = [(parse_timestamp(msg.ts), msg) for msg in messages]
    timed.sort(key=lambda pair: pair[0])

    out: list[str] = []
    last_speaker = ""
    last_time: datetime | None = None

    for i, (when, msg) in enumerate(timed):
        speaker = msg.speaker_id
        gap = 0
        if last_time is not None:
            gap = int((when - last_time).total_seconds() // 60)

        include_header = i == 0 or speaker != last_speaker or gap > gap_minutes

        if include_header:
            if i > 0:
                out.append("\n")
            label = username_for_message(resolver, msg)
            out.append(f"> **{label}** at {_format_timestamp(when, tz)}\n")
        out.append(">\n")

        if msg.text:
            out.append(convert_text(resolver, msg.text))

        # Mostly bot messages so far.
        for att in msg.attachments:
            out.append(convert_text(resolver, att.text))

        if not include_header:
            out.append("\n")

        last_speaker = speaker
        last_time = when

    return "".join(out)


def wrap_in_details(channel_name: str, link: str, text: str) -> str:
    """Wrap a transcript in a collapsible block for embedding in issues or docs."""
    return (
        f"Slack conversation archive of [`#{channel_name}`]({link})\n\n"
        "<details>\n"
        "  <summary>Click to expand</summary>\n\n"
        f"{text}\n"
        "</details>"
    )
