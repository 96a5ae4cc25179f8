"""Cache of classifier targets keyed by normalised message text.

Two tiers: a bounded in-process LRU with expiry, and an optional shared Redis
(enabled by REDIS_URL) so that every worker answers the same text the same way.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Optional

from redis import asyncio as redis_asyncio

from app.config import settings
from app.logging_config import get_logger

logger = get_logger("classifier_cache")

CACHE_PREFIX = "chathub:classifier"

_redis_client = None
_classifier_cache = None


def build_cache_key(normalized_text: str) -> str:
    digest = hashlib.sha256(normalized_text.encode("utf-8")).hexdigest()
    return f"{CACHE_PREFIX}:{digest}"


def get_redis_client():
    """Shared Redis client, or None when REDIS_URL is not configured."""
    global _redis_client
    if not settings.redis_url:
        return None
    if _redis_client is None:
        _redis_client = redis_asyncio.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
    return _redis_client


class ClassifierCache:
    def __init__(self, max_size: int = 1024, ttl_seconds: int = 86400, redis_client=None):
        if max_size < 1:
            raise ValueError("cache size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self.redis = redis_client
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _get_local(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def _set_local(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic() + self.ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    async def get(self, key: str) -> Optional[str]:
        value = self._get_local(key)
        if value is not None or self.redis is None:
            return value

        try:
            value = await self.redis.get(key)
        except Exception as exc:
            logger.warning(f"Classifier cache read failed: {exc}")
            return None
        if not value:
            return None
        self._set_local(key, value)
        return value

    async def set(self, key: str, value: str) -> None:
        self._set_local(key, value)
        if self.redis is None:
            return
        try:
            await self.redis.setex(key, self.ttl_seconds, value)
        except Exception as exc:
            logger.warning(f"Classifier cache write failed: {exc}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def get_classifier_cache() -> ClassifierCache:
    """Get or create the process-wide classifier cache."""
    global _classifier_cache
    if _classifier_cache is None:
        _classifier_cache = ClassifierCache(
            max_size=settings.classifier_cache_size,
            ttl_seconds=settings.classifier_cache_ttl_seconds,
            redis_client=get_redis_client(),
        )
    return _classifier_cache
