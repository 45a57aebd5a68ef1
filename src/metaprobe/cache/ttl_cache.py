"""
In-memory TTL cache keyed by normalized URL.

The cache is the only state that survives between fetches. It is an explicit
component handed to MetadataService, so tests can swap in NullCache or a
TTLCache driven by a fake clock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog

from metaprobe.observability.metrics import increment

logger = structlog.get_logger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """
    Canonical cache key for a URL.

    Lowercases scheme and host, drops default ports, fragment and user info,
    strips the trailing slash from the path and sorts the query pairs.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        port = None
    netloc = host if port is None or _DEFAULT_PORTS.get(scheme) == port else f"{host}:{port}"
    path = parts.path.rstrip("/")
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((scheme, netloc, path, query, ""))


class TTLCache:
    """Async key/value cache with per-entry expiry."""

    def __init__(self, max_entries: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        # key -> (expires_at, value)
        self._entries: Dict[str, Tuple[float, Any]] = {}
        # Held only for dict updates; nothing awaits I/O under it
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Tuple[Any, bool]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                increment("cache_lookups_total", labels={"result": "miss"})
                return None, False
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                increment("cache_lookups_total", labels={"result": "expired"})
                return None, False
        increment("cache_lookups_total", labels={"result": "hit"})
        return value, True

    async def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            await self.invalidate(key)
            return
        async with self._lock:
            now = self._clock()
            self._entries[key] = (now + ttl, value)
            if self.max_entries is not None and len(self._entries) > self.max_entries:
                self._evict(now)

    async def invalidate(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _evict(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        while self.max_entries is not None and len(self._entries) > self.max_entries:
            soonest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[soonest]
        logger.debug("Cache evicted entries", expired=len(expired), size=len(self._entries))


class NullCache:
    """Cache that never stores anything."""

    async def get(self, key: str) -> Tuple[Any, bool]:
        return None, False

    async def set(self, key: str, value: Any, ttl: float) -> None:
        return None

    async def invalidate(self, key: str) -> None:
        return None

    async def clear(self) -> None:
        return None

    def __len__(self) -> int:
        return 0
