"""Runtime configuration for the bus station tracker."""

from dataclasses import dataclass

# UQ Lakes station
DEFAULT_PARENT_STATION = "place_uqlksa"

# Local GTFS-Realtime proxy for South East Queensland
DEFAULT_FEED_BASE_URL = "http://127.0.0.1:5343/gtfs/seq/"

TRIP_UPDATES_FEED = "trip_updates.json"
VEHICLE_POSITIONS_FEED = "vehicle_positions.json"
ALERTS_FEED = "alerts.json"

STATIC_FILES = ("stops.txt", "stop_times.txt", "trips.txt", "routes.txt", "calendar.txt")


@dataclass
class TrackerConfig:
    """Settings shared by the loader, the realtime client and the tracker."""
    parent_station: str = DEFAULT_PARENT_STATION
    static_dir: str = "static-data"
    cache_dir: str = "cached-data"
    feed_base_url: str = DEFAULT_FEED_BASE_URL
    match_window_minutes: int = 10
    request_timeout: float = 10.0  # seconds

    def feed_url(self, feed_name: str) -> str:
        """Join a feed file name onto the base URL."""
        return self.feed_base_url.rstrip("/") + "/" + feed_name
