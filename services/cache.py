import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, NamedTuple, Optional

from models.preview import PreviewResult

logger = logging.getLogger(__name__)

PREVIEW_KEY_PREFIX = "bookmark-embed"


def make_key(prefix: str, params: Mapping[str, Any]) -> str:
    """Build a cache key that does not depend on the order of ``params``."""
    query = "&".join(f"{name}={json.dumps(params[name])}" for name in sorted(params))
    return f"{prefix}:{query}"


def cache_key(url: str) -> str:
    return make_key(PREVIEW_KEY_PREFIX, {"url": url})


class PreviewCache(ABC):
    """Key/TTL store the resolver consults before fetching anything."""

    @abstractmethod
    def get(self, key: str) -> Optional[PreviewResult]:
        ...

    @abstractmethod
    def set(self, key: str, value: PreviewResult, ttl: float) -> None:
        ...

    @abstractmethod
    def invalidate_by_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``; returns how many were dropped."""


class _Entry(NamedTuple):
    value: PreviewResult
    expires_at: float


class InMemoryPreviewCache(PreviewCache):
    """
    Process-local cache. Expired entries are evicted lazily on ``get`` and in
    bulk by ``cleanup``, which the service runs periodically.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[PreviewResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: PreviewResult, ttl: float) -> None:
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_by_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired preview cache entries")
        return len(expired)
