"""Time-limited cache for SDK responses keyed by method and params."""

from __future__ import annotations

import hashlib
import json
import logging
import sys
import threading
from typing import Any

from cachetools import TTLCache

logger = logging.getLogger(__name__)

DEFAULT_TTL = 120.0


class ResponseCache:
    """Stores responses for a limited time, keyed by method and query params."""

    def __init__(self, ttl: float = DEFAULT_TTL, maxsize: int = sys.maxsize):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    @staticmethod
    def _key(method: str, params: Any) -> str:
        if not isinstance(params, dict):
            raise TypeError("params must be a mapping")
        encoded = json.dumps(params, sort_keys=True, separators=(",", ":")).encode()
        return f"{method}|{hashlib.sha256(encoded).hexdigest()}"

    def save(self, method: str, params: Any, response: Any) -> None:
        try:
            key = self._key(method, params)
        except (TypeError, ValueError):
            logger.error("unable to get key")
            return
        with self._lock:
            self._cache[key] = response

    def retrieve(self, method: str, params: Any) -> Any:
        try:
            key = self._key(method, params)
        except (TypeError, ValueError):
            logger.error("unable to get key")
            return None
        with self._lock:
            return self._cache.get(key)

    def count(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def flush(self) -> None:
        with self._lock:
            self._cache.clear()


_response_cache = ResponseCache()


def get_response_cache() -> ResponseCache:
    return _response_cache


def init_response_cache(cache: ResponseCache) -> None:
    global _response_cache
    _response_cache = cache