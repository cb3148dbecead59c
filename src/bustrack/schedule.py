"""Matching scheduled stop times against a requested date and time."""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from .models import Calendar, Route, ScheduledArrival, StaticDataset, StopTime, Time

logger = logging.getLogger(__name__)

# date.weekday() -> calendar.txt column
WEEKDAY_COLUMNS = {
    0: "monday",
    1: "tuesday",
    2: "wednesday",
    3: "thursday",
    4: "friday",
    5: "saturday",
    6: "sunday",
}


def parse_time(value: str) -> Time:
    """Split an "HH:MM" or "HH:MM:SS" string into a Time."""
    return Time(hours=value[0:2], minutes=value[3:5])


def convert_time(time: Time) -> int:
    """Minutes since midnight, e.g. Time("09", "05") -> 545."""
    return int(time.hours) * 60 + int(time.minutes)


def _parse_gtfs_date(value: str) -> date:
    return datetime.strptime(value, "%Y%m%d").date()


def date_is_active(day: date, entry: Calendar) -> bool:
    """True if the service runs on day: within its date range and on that weekday."""
    if not _parse_gtfs_date(entry.start_date) <= day <= _parse_gtfs_date(entry.end_date):
        return False
    column = WEEKDAY_COLUMNS.get(day.weekday())
    if column is None:
        return False
    return getattr(entry, column) == 1


def active_service_ids(calendars: Iterable[Calendar], day: date) -> List[str]:
    """Service IDs running on the given date."""
    if WEEKDAY_COLUMNS.get(day.weekday()) is None:
        return []
    return [entry.service_id for entry in calendars if date_is_active(day, entry)]


def within_window(stop_time: StopTime, requested_minutes: int, window_minutes: int = 10) -> bool:
    """
    Whether a stop time is catchable at the requested time.

    Stops without a departure end the trip and never match. Otherwise the
    arrival time is used when present, else the departure time, and the bus
    must be due between 0 and window_minutes after the requested time.
    """
    if not stop_time.departure_time:
        return False

    scheduled = stop_time.arrival_time or stop_time.departure_time
    difference = convert_time(parse_time(scheduled)) - requested_minutes
    return 0 <= difference <= window_minutes


class ScheduleMatcher:
    """Selects scheduled arrivals for chosen routes around a date and time."""

    def __init__(self, dataset: StaticDataset, window_minutes: int = 10):
        self.dataset = dataset
        self.window_minutes = window_minutes

    def match_stop_times(self, routes: Iterable[Route], day: date, time: Time) -> List[StopTime]:
        """Stop times of active trips on the chosen routes inside the time window."""
        services = set(active_service_ids(self.dataset.calendars, day))
        route_ids = {route.route_id for route in routes}
        trip_ids = {
            trip.trip_id
            for trip in self.dataset.trips
            if trip.service_id in services and trip.route_id in route_ids
        }

        requested = convert_time(time)
        return [
            stop_time
            for stop_time in self.dataset.stop_times
            if stop_time.trip_id in trip_ids
            and within_window(stop_time, requested, self.window_minutes)
        ]

    def match(
        self, routes: Iterable[Route], day: date, time: Time
    ) -> Tuple[List[ScheduledArrival], List[str]]:
        """
        Build display rows for matching stop times.

        Args:
            routes: Routes the user wants to take.
            day: Travel date.
            time: Requested departure time.

        Returns:
            (rows, trip_ids) in stop-time order. trip_ids holds each trip once.
        """
        stop_times = self.match_stop_times(routes, day, time)

        rows: List[ScheduledArrival] = []
        trip_ids: List[str] = []
        for stop_time in stop_times:
            trip = self.dataset.trip_by_id(stop_time.trip_id)
            route = self.dataset.route_by_id(trip.route_id if trip else None)
            rows.append(self._build_row(stop_time, trip, route))
            if stop_time.trip_id not in trip_ids:
                trip_ids.append(stop_time.trip_id)

        logger.debug(f"Matched {len(rows)} scheduled arrivals on {day} at {time.hours}:{time.minutes}")
        return rows, trip_ids

    @staticmethod
    def _build_row(stop_time: StopTime, trip, route: Optional[Route]) -> ScheduledArrival:
        return ScheduledArrival(
            trip_id=stop_time.trip_id,
            route_short_name=route.route_short_name if route else None,
            route_long_name=route.route_long_name if route else None,
            service_id=trip.service_id if trip else None,
            headsign=trip.trip_headsign if trip else None,
            scheduled_time=stop_time.arrival_time or stop_time.departure_time,
        )
