import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


class _Miss:
    def __repr__(self):
        return 'MISS'

    def __bool__(self):
        return False


MISS = _Miss()


def make_key(endpoint: str, **params) -> str:
    """Request fingerprint: endpoint name followed by its sorted, non-empty parameters."""
    parts = [f"{name}={params[name]}" for name in sorted(params) if params[name] is not None]
    return f"{endpoint}?{'&'.join(parts)}" if parts else endpoint


class TTLCache:
    """
    In-process key/value memoization with per-entry expiry.
    Expired entries are dropped lazily when they are read.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, clock=time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return MISS
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)
