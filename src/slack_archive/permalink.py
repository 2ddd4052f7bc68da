from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from .errors import InvalidLink
from .models import Permalink

_HOST_SUFFIX = ".slack.com"
_TIMESTAMP_SEGMENT = re.compile(r"p([0-9]+)([0-9]{6})", re.ASCII)


def parse_permalink(link: str) -> Permalink:
    """Split a Slack message permalink into team, channel and timestamps.

    Permalinks drop the decimal point from the message timestamp, so it is
    put back six digits from the end.
    """
    try:
        url = urlparse(link)
        host = url.hostname or ""
    except ValueError as exc:
        raise InvalidLink(f"cannot parse link {link!r}: {exc}") from exc

    if not host.endswith(_HOST_SUFFIX):
        raise InvalidLink(f"expected slack.com subdomain: {link!r}")
    team = host[: -len(_HOST_SUFFIX)]

    segments = url.path.removeprefix("/").split("/")
    if len(segments) != 3 or segments[0] != "archives":
        raise InvalidLink(
            f"expected path of the form /archives/<channel>/p<timestamp>: {link!r}"
        )

    m = _TIMESTAMP_SEGMENT.fullmatch(segments[2])
    if not m:
        raise InvalidLink(f"expected a p<digits> message timestamp: {link!r}")

    thread = parse_qs(url.query).get("thread_ts", [""])[0]
    return Permalink(
        team=team,
        channel_id=segments[1],
        timestamp=f"{m.group(1)}.{m.group(2)}",
        thread_ts=thread,
    )


def format_permalink(team: str, channel_id: str, ts: str, thread_ts: str = "") -> str:
    link = f"https://{team}{_HOST_SUFFIX}/archives/{channel_id}/p{ts.replace('.', '')}"
    if thread_ts:
        link += f"?thread_ts={thread_ts}"
    return link
