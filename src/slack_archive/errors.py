from __future__ import annotations


class SlackArchiveError(Exception):
    """Base class for every error raised while archiving a conversation."""


class InvalidLink(SlackArchiveError):
    pass


class TransportError(SlackArchiveError):
    pass


class RemoteNotOK(SlackArchiveError):
    """The service answered, but with ``ok: false``."""

    def __init__(self, endpoint: str, body: bytes) -> None:
        self.endpoint = endpoint
        self.body = body
        super().__init__(
            f"{endpoint} response not OK: {body.decode('utf-8', 'replace')}"
        )


class NotFound(SlackArchiveError):
    pass


class MalformedTimestamp(SlackArchiveError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"timestamp {value!r} is not in <seconds>.<fraction> format"
        )


class EmptyResult(SlackArchiveError):
    pass


class CacheError(SlackArchiveError):
    pass
