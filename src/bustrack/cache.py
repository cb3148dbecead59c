"""File-backed cache for realtime feed payloads."""

import json
import logging
import os
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

CACHE_DURATION_MS = 300_000  # Five minutes

TRIP_UPDATES_CACHE = "trip-updates-cache.json"
VEHICLE_POSITIONS_CACHE = "vehicle-locations-cache.json"
ALERTS_CACHE = "alerts-cache.json"


class CacheStore:
    """
    Stores timestamped JSON payloads, one file per key.

    Files have the shape ``{"timestamp": <epoch ms>, "data": <payload>}``. An
    entry is fresh while it is younger than ``CACHE_DURATION_MS``.
    """

    def __init__(self, cache_dir: str = "cached-data", clock: Callable[[], float] = time.time):
        """
        Initialize the cache store.

        Args:
            cache_dir: Directory holding the cache files.
            clock: Returns the current time in seconds (overridable for tests).
        """
        self.cache_dir = cache_dir
        self._clock = clock

    def _path(self, key: str) -> str:
        return os.path.join(self.cache_dir, key)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def write(self, key: str, payload: Any) -> None:
        """Write a payload under key. Failures are logged, never raised."""
        path = self._path(key)
        try:
            content = json.dumps({"timestamp": self._now_ms(), "data": payload})
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
            logger.debug(f"Wrote cache file {path}")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write cache file {path}: {e}")

    def read(self, key: str) -> Optional[Any]:
        """
        Read a fresh payload.

        Returns:
            The cached payload, or None if the file is missing, malformed or stale.
        """
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                cached = json.load(f)
            timestamp = cached["timestamp"]
            data = cached["data"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"No usable cache at {path}: {e}")
            return None

        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            logger.debug(f"Cache file {path} has no valid timestamp")
            return None

        if self._now_ms() - timestamp >= CACHE_DURATION_MS:
            logger.debug(f"Cache file {path} is stale")
            return None

        logger.debug(f"Using cached data from {path}")
        return data
