"""GTFS static data loader, narrowed to a single station."""

import logging
import os
from typing import Iterable, List

import pandas as pd

from .config import TrackerConfig
from .models import Calendar, Route, StaticDataset, Stop, StopTime, Trip

logger = logging.getLogger(__name__)


class StaticDataError(Exception):
    """A required static GTFS file is missing or unreadable."""


class GTFSLoader:
    """
    Loads the GTFS static tables relevant to one station.

    Each stage keeps only the rows referenced by the previous stage:
    stops (by parent station) -> stop_times -> trips -> routes and calendar.
    Source file order is preserved throughout.
    """

    def __init__(self, config: TrackerConfig = None):
        """
        Initialize the GTFS loader.

        Args:
            config: Tracker configuration (static directory and parent station).
        """
        self.config = config or TrackerConfig()

    def _read_table(self, filename: str, key_column: str) -> pd.DataFrame:
        """Read a GTFS table as strings, failing if the key column is absent."""
        path = os.path.join(self.config.static_dir, filename)
        try:
            table = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        except (OSError, ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StaticDataError(f"Could not read {path}: {e}") from e

        if key_column not in table.columns:
            logger.error(f"{path} has no '{key_column}' column")
            raise StaticDataError(f"{path} is missing the '{key_column}' column")
        return table

    @staticmethod
    def _to_records(table: pd.DataFrame, factory) -> list:
        try:
            return [factory(row) for row in table.to_dict("records")]
        except (KeyError, ValueError) as e:
            raise StaticDataError(f"Malformed GTFS row: {e}") from e

    def load_stops(self) -> List[Stop]:
        """Return all stops sharing the configured parent station."""
        stops = self._read_table("stops.txt", "parent_station")
        station_stops = stops[stops["parent_station"] == self.config.parent_station]
        return self._to_records(station_stops, Stop.from_row)

    def load_stop_times(self, stops: Iterable[Stop]) -> List[StopTime]:
        """Return stop times served at any of the given stops."""
        stop_ids = {stop.stop_id for stop in stops}
        stop_times = self._read_table("stop_times.txt", "stop_id")
        station_stop_times = stop_times[stop_times["stop_id"].isin(stop_ids)]
        return self._to_records(station_stop_times, StopTime.from_row)

    def load_trips(self, stop_times: Iterable[StopTime]) -> List[Trip]:
        """Return trips that call at the station."""
        trip_ids = {stop_time.trip_id for stop_time in stop_times}
        trips = self._read_table("trips.txt", "trip_id")
        station_trips = trips[trips["trip_id"].isin(trip_ids)]
        return self._to_records(station_trips, Trip.from_row)

    def load_routes(self, trips: Iterable[Trip]) -> List[Route]:
        """Return routes operating the given trips."""
        route_ids = {trip.route_id for trip in trips}
        routes = self._read_table("routes.txt", "route_id")
        station_routes = routes[routes["route_id"].isin(route_ids)]
        return self._to_records(station_routes, Route.from_row)

    def load_calendar(self, trips: Iterable[Trip]) -> List[Calendar]:
        """Return calendar entries for the given trips' services."""
        service_ids = {trip.service_id for trip in trips}
        calendar = self._read_table("calendar.txt", "service_id")
        station_calendar = calendar[calendar["service_id"].isin(service_ids)]
        return self._to_records(station_calendar, Calendar.from_row)

    def load(self) -> StaticDataset:
        """Run the full filter chain and return the station's dataset."""
        logger.info(
            f"Loading GTFS data for {self.config.parent_station} from {self.config.static_dir}"
        )
        stops = self.load_stops()
        stop_times = self.load_stop_times(stops)
        trips = self.load_trips(stop_times)
        routes = self.load_routes(trips)
        calendars = self.load_calendar(trips)

        logger.info(
            f"Loaded {len(stops)} stops, {len(stop_times)} stop times, "
            f"{len(trips)} trips, {len(routes)} routes and {len(calendars)} calendar entries"
        )
        return StaticDataset(
            stops=stops,
            stop_times=stop_times,
            trips=trips,
            routes=routes,
            calendars=calendars,
        )
