"""Durable cache of approved communities across two storage tiers.

The cache is advisory: it lets the listing show an approval before (or
without) the remote store reflecting it. Each tier holds a JSON array of
listing entries, most recent first, capped at the tier's limit.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import ValidationError
from redis.exceptions import RedisError

from circle_hub.core.settings import settings
from circle_hub.schemas.community import ApprovedCommunity
from circle_hub.services.errors import StorageQuotaExceeded
from circle_hub.services.storage import (
    FileStorage,
    KeyValueStorage,
    MemoryStorage,
    RedisStorage,
)

logger = logging.getLogger(__name__)

SESSION_CACHE_KEY = "approvedCommunities:session"
PERSISTENT_CACHE_KEY = "approvedCommunities:persistent"


@dataclass(frozen=True)
class CacheTier:
    """One storage location of the cached list."""

    name: str
    storage: KeyValueStorage
    key: str
    max_entries: int


def _decode(raw: str | None, tier: str) -> list[ApprovedCommunity]:
    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable %s cache contents", tier)
        return []
    if not isinstance(payload, list):
        logger.warning("Discarding non-list %s cache contents", tier)
        return []
    entries: list[ApprovedCommunity] = []
    for item in payload:
        try:
            entries.append(ApprovedCommunity.model_validate(item))
        except ValidationError:
            logger.debug("Skipping malformed %s cache entry: %r", tier, item)
    return entries


def _encode(entries: Sequence[ApprovedCommunity]) -> str:
    return json.dumps([entry.model_dump(mode="json") for entry in entries])


def dedupe_by_id(entries: Sequence[ApprovedCommunity]) -> list[ApprovedCommunity]:
    """Drop later entries that repeat an id; order is otherwise kept."""
    seen: set[str] = set()
    unique: list[ApprovedCommunity] = []
    for entry in entries:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        unique.append(entry)
    return unique


class LocalDurableCache:
    """Approved-community list stored redundantly in several tiers."""

    def __init__(self, tiers: Sequence[CacheTier], fallback_entries: int = 20) -> None:
        self.tiers = list(tiers)
        self.fallback_entries = fallback_entries

    def _read_tier(self, tier: CacheTier) -> list[ApprovedCommunity]:
        try:
            raw = tier.storage.get_item(tier.key)
        except (OSError, RedisError) as exc:
            logger.warning("Could not read %s cache tier: %s", tier.name, exc)
            return []
        return _decode(raw, tier.name)

    def load(self) -> list[ApprovedCommunity]:
        """Return the merged, deduplicated contents of every tier."""
        merged: list[ApprovedCommunity] = []
        for tier in self.tiers:
            merged.extend(self._read_tier(tier))
        return dedupe_by_id(merged)

    def load_tier(self, name: str) -> list[ApprovedCommunity]:
        """Return the contents of a single tier."""
        for tier in self.tiers:
            if tier.name == name:
                return self._read_tier(tier)
        raise KeyError(name)

    def add(self, record: ApprovedCommunity) -> None:
        """Put ``record`` at the front of every tier.

        Each tier is re-read immediately before writing so that concurrent
        writers sharing a tier only race on their own entry.
        """
        for tier in self.tiers:
            current = self._read_tier(tier)
            entries = [record, *(e for e in current if e.id != record.id)]
            self._write_tier(tier, entries[: tier.max_entries])

    def remove(self, community_id: str) -> bool:
        """Drop ``community_id`` from every tier. Returns True if any tier held it."""
        removed = False
        for tier in self.tiers:
            current = self._read_tier(tier)
            entries = [e for e in current if e.id != community_id]
            if len(entries) != len(current):
                self._write_tier(tier, entries)
                removed = True
        if removed:
            logger.info("Removed %s from the local cache", community_id)
        return removed

    def _write_tier(self, tier: CacheTier, entries: list[ApprovedCommunity]) -> None:
        try:
            tier.storage.set_item(tier.key, _encode(entries))
            return
        except StorageQuotaExceeded as exc:
            logger.warning(
                "%s cache tier full (%s); clearing and keeping %d most recent",
                tier.name, exc, self.fallback_entries,
            )
        except (OSError, RedisError) as exc:
            logger.error("Failed to write %s cache tier: %s", tier.name, exc)
            return

        try:
            tier.storage.remove_item(tier.key)
            tier.storage.set_item(tier.key, _encode(entries[: self.fallback_entries]))
        except (StorageQuotaExceeded, OSError, RedisError) as exc:
            logger.error("Retry write to %s cache tier failed: %s", tier.name, exc)

    def clear(self) -> None:
        """Remove every tier's key."""
        for tier in self.tiers:
            try:
                tier.storage.remove_item(tier.key)
            except (OSError, RedisError) as exc:
                logger.warning("Could not clear %s cache tier: %s", tier.name, exc)


def build_local_cache() -> LocalDurableCache:
    """Create a cache wired to the configured storage backends."""
    if settings.persistent_cache_backend == "redis":
        persistent: KeyValueStorage = RedisStorage.from_url(
            settings.redis_url, settings.cache_quota_bytes
        )
    else:
        persistent = FileStorage(settings.persistent_cache_dir, settings.cache_quota_bytes)

    return LocalDurableCache(
        [
            CacheTier(
                name="session",
                storage=MemoryStorage(settings.cache_quota_bytes),
                key=SESSION_CACHE_KEY,
                max_entries=settings.session_cache_max_entries,
            ),
            CacheTier(
                name="persistent",
                storage=persistent,
                key=PERSISTENT_CACHE_KEY,
                max_entries=settings.persistent_cache_max_entries,
            ),
        ],
        fallback_entries=settings.cache_fallback_entries,
    )


class _LocalCacheSingleton:
    """Singleton wrapper for the process-wide cache."""

    _instance: LocalDurableCache | None = None

    @classmethod
    def get_instance(cls) -> LocalDurableCache:
        if cls._instance is None:
            cls._instance = build_local_cache()
        return cls._instance


def get_local_cache() -> LocalDurableCache:
    """Return the process-wide approved-community cache."""
    return _LocalCacheSingleton.get_instance()
