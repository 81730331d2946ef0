"""Bounded, time-expiring in-memory cache of extracted recipes."""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class RecipeCache:
    """
    Maps the exact request URL to a previously extracted recipe.

    Eviction is by insertion order, not by access: when full, the entry that
    was inserted first goes, however often it has been read. Overwriting a key
    keeps its original position.
    """

    def __init__(self, max_entries: int = 200, ttl_seconds: float = 60 * 60, clock=time.time):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, url: str):
        """Returns the cached recipe, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None

            recipe, inserted_at = entry
            if self._clock() - inserted_at > self.ttl_seconds:
                del self._entries[url]
                logger.debug(f"Cache entry expired: {url}")
                return None
            return recipe

    def set(self, url: str, recipe) -> None:
        with self._lock:
            if len(self._entries) >= self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug(f"Cache full, evicted: {oldest}")
            self._entries[url] = (recipe, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
