"""Main bus station tracker class."""

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

import requests
from google.protobuf import json_format

from .cache import CacheStore
from .config import TrackerConfig
from .correlator import LiveCorrelator
from .gtfs_loader import GTFSLoader
from .models import Alert, DepartureBoard, LiveData, Route, StaticDataset, Time
from .realtime_client import RealtimeClient
from .schedule import ScheduleMatcher

logger = logging.getLogger(__name__)

ALL_ROUTES = "all"

# ValueError covers bodies that are not UTF-8 or not JSON
FEED_ERRORS = (requests.RequestException, json_format.ParseError, ValueError)


class BusStationTracker:
    """
    Tracks scheduled and live bus departures for a single station.

    This class holds the state loaded at startup and provides methods to:
    - Resolve the user's route choice against the station's routes
    - Search scheduled departures around a date and time
    - Merge live arrival times, vehicle positions and alerts
    """

    def __init__(self, config: TrackerConfig = None, load_static: bool = True, fetch_live: bool = True):
        """
        Initialize the tracker.

        Args:
            config: Tracker configuration. Defaults to UQ Lakes station.
            load_static: If True, load the station's GTFS static data on init.
            fetch_live: If True (and static data is loaded), fetch the realtime feeds on init.

        Raises:
            StaticDataError: If the static data cannot be loaded.
        """
        self.config = config or TrackerConfig()
        self.gtfs_loader = GTFSLoader(self.config)
        self.realtime_client = RealtimeClient(self.config, CacheStore(self.config.cache_dir))
        self.dataset = StaticDataset(stops=[], stop_times=[], trips=[], routes=[], calendars=[])
        self.live = LiveData()

        if load_static:
            self.load_static()
            if fetch_live:
                self.refresh_live()

    def load_static(self) -> StaticDataset:
        """Load the station's static GTFS tables."""
        self.dataset = self.gtfs_loader.load()
        return self.dataset

    def refresh_live(self) -> LiveData:
        """
        Fetch realtime data for the station's routes.

        A feed that cannot be fetched or parsed is treated as having no live data.
        """
        route_ids = self.dataset.route_ids
        live = LiveData()

        try:
            live.trip_updates = self.realtime_client.get_trip_updates(route_ids)
        except FEED_ERRORS as e:
            logger.warning(f"No live trip updates available: {e}")

        try:
            live.vehicle_positions = self.realtime_client.get_vehicle_positions(route_ids)
        except FEED_ERRORS as e:
            logger.warning(f"No live vehicle positions available: {e}")

        try:
            live.alerts = self.realtime_client.get_alerts(route_ids)
        except FEED_ERRORS as e:
            logger.warning(f"No service alerts available: {e}")

        self.live = live
        return live

    @property
    def routes(self) -> List[Route]:
        return self.dataset.routes

    def route_choices(self) -> Dict[str, List[Route]]:
        """
        Map selection keys to the station's routes.

        Keys are route short names (route_id when there is none), in load order.
        Routes sharing a short name share a key.
        """
        choices: Dict[str, List[Route]] = OrderedDict()
        for route in self.routes:
            choices.setdefault(route.display_name.lower(), []).append(route)
        return choices

    def resolve_routes(self, selection: str) -> List[Route]:
        """
        Turn a user's route selection into routes.

        Args:
            selection: "all", a route short name (e.g. "66") or a route ID.

        Returns:
            List of matching Route objects. A short name can match several routes.

        Raises:
            ValueError: If the selection does not name a route serving the station.
        """
        key = selection.strip().lower()
        if key == ALL_ROUTES:
            return list(self.routes)

        choices = self.route_choices()
        if key in choices:
            return list(choices[key])

        for route in self.routes:
            if route.route_id.lower() == key:
                return [route]

        raise ValueError(f"No route '{selection}' serves this station")

    def get_alerts(self, routes: Iterable[Route]) -> List[Alert]:
        """
        Get service alerts for the given routes.

        Args:
            routes: Routes the user is interested in.

        Returns:
            List of Alert objects.
        """
        route_ids = {route.route_id for route in routes}
        return [alert for alert in self.live.alerts if alert.route_id in route_ids]

    def search(
        self,
        day: date,
        time: Time,
        routes: Optional[Iterable[Route]] = None,
        today: Optional[date] = None,
    ) -> DepartureBoard:
        """
        Find departures for the chosen routes at a date and time.

        Args:
            day: Travel date.
            time: Requested departure time.
            routes: Routes to include. Defaults to every route serving the station.
            today: Current date, used to decide whether live data applies.

        Returns:
            DepartureBoard with merged rows and relevant alerts.
        """
        routes = list(routes) if routes is not None else list(self.routes)

        matcher = ScheduleMatcher(self.dataset, self.config.match_window_minutes)
        scheduled, trip_ids = matcher.match(routes, day, time)

        correlator = LiveCorrelator(self.dataset.stop_ids)
        rows = correlator.correlate(day, trip_ids, self.live, scheduled, today=today)

        logger.info(f"Found {len(rows)} departures on {day} from {time.hours}:{time.minutes}")
        return DepartureBoard(
            rows=rows,
            alerts=self.get_alerts(routes),
            last_updated=datetime.now(),
        )
