"""Key/value storage tiers used by the approved-community cache.

Each tier behaves like browser web storage: string keys, string values, a
byte quota, and ``StorageQuotaExceeded`` when a write does not fit.

- ``MemoryStorage``: process lifetime (the session-scoped tier).
- ``FileStorage``: one JSON file per key under a directory, written
  atomically (the persistent tier shared by every process on the host).
- ``RedisStorage``: persistent tier shared across hosts.
"""

from __future__ import annotations

import errno
import logging
import os
import re
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

import redis
from redis.exceptions import RedisError, ResponseError

from circle_hub.services.errors import StorageQuotaExceeded

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]+")


class KeyValueStorage(Protocol):
    """Web-storage style interface."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def _check_quota(key: str, value: str, quota_bytes: int | None) -> None:
    if quota_bytes is None:
        return
    size = len(value.encode("utf-8"))
    if size > quota_bytes:
        raise StorageQuotaExceeded(
            f"Value for {key!r} is {size} bytes; quota is {quota_bytes}"
        )


class MemoryStorage:
    """In-process storage; contents vanish with the process."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}
        self._lock = Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            if self.quota_bytes is not None:
                used = sum(
                    len(v.encode("utf-8")) for k, v in self._items.items() if k != key
                )
                _check_quota(key, value, self.quota_bytes - used)
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class FileStorage:
    """Directory-backed storage surviving restarts."""

    def __init__(self, directory: str | Path, quota_bytes: int | None = None) -> None:
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{_SAFE_KEY.sub('_', key)}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        """Persist ``value`` atomically."""
        _check_quota(key, value, self.quota_bytes)
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(f".{os.getpid()}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            if exc.errno in (errno.ENOSPC, errno.EDQUOT):
                raise StorageQuotaExceeded(f"No space left writing {key!r}") from exc
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class RedisStorage:
    """Redis-backed storage; Redis ``maxmemory`` maps to the quota error."""

    def __init__(self, client: Any, quota_bytes: int | None = None) -> None:
        self._redis = client
        self.quota_bytes = quota_bytes

    @classmethod
    def from_url(cls, url: str, quota_bytes: int | None = None) -> RedisStorage:
        return cls(redis.from_url(url, decode_responses=True), quota_bytes)  # type: ignore[no-untyped-call]

    def get_item(self, key: str) -> str | None:
        value = self._redis.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set_item(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota_bytes)
        try:
            self._redis.set(key, value)
        except ResponseError as exc:
            if str(exc).startswith("OOM"):
                raise StorageQuotaExceeded(f"Redis out of memory writing {key!r}") from exc
            raise

    def remove_item(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except RedisError as exc:
            logger.warning("Failed to remove %s from redis: %s", key, exc)
