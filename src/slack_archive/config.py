from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "slack-archive"

# How far apart in minutes two messages by the same author can be before
# the speaker header is repeated.
GROUP_GAP_MINUTES = 60

CONVERSATIONS_PAGE_SIZE = 1000
DEFAULT_LIMIT = 10

# Seconds. Applies to the connection handshake only, reads are unbounded.
CONNECT_TIMEOUT = 5.0


def default_cache_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the identifier cache location.

    ``SLACK_ARCHIVE_CACHE`` wins when set, otherwise the file lives in the
    platform's user data directory.
    """
    environ = os.environ if environ is None else environ
    override = environ.get("SLACK_ARCHIVE_CACHE", "")
    if override:
        return Path(override).expanduser()
    return Path(user_data_dir(APP_NAME)) / "cache.json"


@dataclass
class Settings:
    token: str = ""
    cookie: str = ""
    cache_path: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        environ = os.environ if environ is None else environ
        return cls(
            token=environ.get("SLACK_TOKEN", ""),
            cookie=environ.get("SLACK_COOKIE", ""),
            cache_path=default_cache_path(environ),
        )
