"""Response caches injected into the survey services.

Only the dashboard rollups are cached. Writes delete the affected survey's
keys, and a cache that never hits must leave every result unchanged.
"""
import logging
import time
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class ResponseCache(Protocol):
    """Best-effort key/value store with per-entry TTL in seconds."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class SimpleCache:
    """
    In-process TTL cache for category score rollups.

    Expired entries are dropped lazily on read and swept at most once per
    ``sweep_interval`` seconds.
    """

    def __init__(self, default_ttl: float = 30.0, sweep_interval: float = 60.0):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._entries: dict[str, tuple[Any, float]] = {}
        self._last_sweep = time.time()

    def get(self, key: str) -> Optional[Any]:
        now = time.time()
        self._sweep(now)

        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if now > expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, time.time() + lifetime)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.sweep_interval:
            return
        expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug(f"Swept {len(expired)} expired rollup cache entries")


class NullCache:
    """Cache that stores nothing; every get misses."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        return None

    def delete(self, key: str) -> None:
        return None
