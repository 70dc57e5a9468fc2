"""Generated-content caching with TTL support."""

import hashlib
import json
import threading
from typing import Any, Dict, Optional

from cachetools import TTLCache

from app.utils.logger import get_logger

logger = get_logger(__name__)


class ContentCache:
    """In-memory cache for generated text (definitions) keyed by request parameters."""

    DEFAULT_TTL = 86400  # 24 hours
    MAX_CACHE_SIZE = 1000

    def __init__(self, max_size: int = MAX_CACHE_SIZE, default_ttl: int = DEFAULT_TTL):
        """
        Initialize content cache.

        Args:
            max_size: Maximum number of items to cache
            default_ttl: Time-to-live in seconds (24 hours)
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.cache: TTLCache = TTLCache(maxsize=max_size, ttl=default_ttl)
        self._lock = threading.Lock()

        logger.info(
            "ContentCache initialized with max_size=%d, default_ttl=%d seconds",
            max_size, default_ttl
        )

    @staticmethod
    def cache_key(params: Dict[str, Any]) -> str:
        """
        Generate a cache key from generation parameters.

        Args:
            params: Dictionary of generation parameters

        Returns:
            Hash-based cache key
        """
        # Sort params for consistent hashing
        sorted_params = json.dumps(params, sort_keys=True, default=str)
        hash_digest = hashlib.sha256(sorted_params.encode()).hexdigest()

        return f"cache_{hash_digest}"

    def get_cached(self, key: str) -> Optional[Dict[str, Any]]:
        """Return cached content, or None if missing or expired."""
        with self._lock:
            content = self.cache.get(key)
        logger.debug("Cache %s for key: %s", "hit" if content is not None else "miss", key)
        return content

    def set_cached(self, key: str, content: Dict[str, Any]) -> None:
        """Store content; the oldest entry is evicted when full."""
        with self._lock:
            self.cache[key] = content
        logger.debug("Cached content with key: %s", key)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self.cache.pop(key, None)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        with self._lock:
            self.cache.expire()
            total = len(self.cache)
        return {
            "total_items": total,
            "max_size": self.max_size,
            "usage_percent": (total / self.max_size) * 100,
            "default_ttl_seconds": self.default_ttl,
        }
