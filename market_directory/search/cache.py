from __future__ import annotations

import hashlib
import json
import threading
import time
from datetime import datetime
from typing import Any

from .models import SearchIntent

_DEFAULT_TTL = 300  # 5 minutes


def _make_key(intent: SearchIntent) -> str:
    normalized = json.dumps(intent.model_dump(mode="json"), sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


class SearchCache:
    """TTL cache of complete search results, keyed by the normalized intent."""

    def __init__(self, ttl: float = _DEFAULT_TTL) -> None:
        self.ttl = ttl
        self._entries: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, intent: SearchIntent, now: datetime | None = None) -> Any | None:
        """Return the stored value, or None once it is past its TTL or ``valid_until``."""
        key = _make_key(intent)
        with self._lock:
            entry = self._entries.get(key)
            if entry and self._is_fresh(entry, now):
                self._hits += 1
                return entry["value"]
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, intent: SearchIntent, value: Any, valid_until: datetime | None = None) -> None:
        key = _make_key(intent)
        with self._lock:
            self._entries[key] = {
                "value": value,
                "created_at": time.time(),
                "valid_until": valid_until,
            }

    def _is_fresh(self, entry: dict[str, Any], now: datetime | None) -> bool:
        if time.time() - entry["created_at"] >= self.ttl:
            return False
        valid_until = entry["valid_until"]
        return valid_until is None or now is None or now < valid_until

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
