from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import CacheError
from .models import IdentifierCache

logger = logging.getLogger(__name__)


class CacheStore:
    """Reads and writes the identifier cache file.

    There is no locking: two processes sharing a path may race, the last
    writer wins.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> IdentifierCache:
        """Load the cache, returning an empty one if the file does not exist."""
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("No identifier cache at %s", self.path)
            return IdentifierCache()
        except OSError as exc:
            raise CacheError(f"cannot read cache {self.path}: {exc}") from exc

        try:
            data = json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheError(f"cannot decode cache {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CacheError(f"cache {self.path} does not hold a JSON object")

        return IdentifierCache(
            channels=self._mapping(data, "channels"),
            users=self._mapping(data, "users"),
        )

    def _mapping(self, data: dict, key: str) -> dict[str, str]:
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise CacheError(f"cache {self.path}: {key!r} is not a JSON object")
        return dict(value)

    def save(self, cache: IdentifierCache) -> None:
        """Persist the cache, creating the parent directory if needed."""
        payload = json.dumps(
            {"channels": cache.channels, "users": cache.users},
            indent=2,
            sort_keys=True,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CacheError(f"cannot write cache {self.path}: {exc}") from exc

        logger.debug(
            "Saved %d channels and %d users to %s",
            len(cache.channels),
            len(cache.users),
            self.path,
        )
