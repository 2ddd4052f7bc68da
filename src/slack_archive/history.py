from __future__ import annotations

import logging

from .api import API, HistoryRequest, RepliesRequest, send
from .config import DEFAULT_LIMIT
from .errors import EmptyResult
from .models import HistoryBatch
from .parser import parse_history

logger = logging.getLogger(__name__)


def fetch_history(
    api: API,
    channel_id: str,
    start_ts: str,
    thread_ts: str = "",
    limit: int = DEFAULT_LIMIT,
) -> HistoryBatch:
    """Fetch the messages a permalink points at.

    conversations.replies is always asked first. With a thread anchor it
    returns a window inside that thread. Without one it doubles as a probe:
    if ``start_ts`` is itself a thread root the whole thread comes back and
    is returned, otherwise the channel history from ``start_ts`` onwards is
    fetched instead.
    """
    if thread_ts:
        request = RepliesRequest(
            channel=channel_id, ts=thread_ts, oldest=start_ts, limit=limit
        )
    else:
        request = RepliesRequest(channel=channel_id, ts=start_ts, limit=limit)

    batch = parse_history(send(api, request))
    if not batch.messages:
        raise EmptyResult(
            f"{request.endpoint} returned no messages for {channel_id} at {request.ts}"
        )

    # Fetching part of a thread: the root comes back first with a reply
    # count, and it is not part of the requested window. A lone message is
    # kept even when it has replies.
    if thread_ts and batch.messages[0].reply_count != 0 and len(batch.messages) > 1:
        batch.messages = batch.messages[1:]

    if thread_ts or batch.messages[0].reply_count != 0:
        return batch

    logger.info("%s is not a thread root, reading channel history", start_ts)
    request = HistoryRequest(channel=channel_id, oldest=start_ts, limit=limit)
    return parse_history(send(api, request))
