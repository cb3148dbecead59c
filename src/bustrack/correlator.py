"""Joins scheduled arrivals with realtime trip updates and vehicle positions."""

import logging
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional

from .models import (
    NO_LIVE_DATA,
    ArrivalRow,
    LiveData,
    LiveTripUpdate,
    LiveVehiclePosition,
    ScheduledArrival,
)

logger = logging.getLogger(__name__)


def format_live_time(timestamp: int, tz: Optional[tzinfo] = None) -> str:
    """Format a Unix timestamp as local "HH:MM:00"."""
    moment = datetime.fromtimestamp(timestamp, tz)
    return f"{moment.hour:02d}:{moment.minute:02d}:00"


class LiveCorrelator:
    """
    Merges scheduled display rows with live data for the station.

    Live data is only considered for requests on today's weekday. Rows are
    joined to trip updates and vehicle positions by trip ID.
    """

    def __init__(self, station_stop_ids: Iterable[str], tz: Optional[tzinfo] = None):
        """
        Args:
            station_stop_ids: Stop IDs belonging to the station.
            tz: Timezone for live arrival times. Defaults to the system's local time.
        """
        self.station_stop_ids = set(station_stop_ids)
        self.tz = tz

    def live_arrival(self, update: Optional[LiveTripUpdate]) -> str:
        """Predicted arrival at the station from a trip update."""
        if update is None:
            return NO_LIVE_DATA
        matching = next(
            (u for u in update.stop_time_updates if u.stop_id in self.station_stop_ids),
            None,
        )
        if matching and matching.arrival and matching.arrival.time:
            return format_live_time(matching.arrival.time, self.tz)
        return NO_LIVE_DATA

    @staticmethod
    def live_position(position: Optional[LiveVehiclePosition]) -> str:
        if position is None:
            return NO_LIVE_DATA
        return position.coordinates or NO_LIVE_DATA

    def correlate(
        self,
        day: date,
        trip_ids: Iterable[str],
        live: LiveData,
        rows: List[ScheduledArrival],
        today: Optional[date] = None,
    ) -> List[ArrivalRow]:
        """
        Attach live arrival time and vehicle position to each row.

        Args:
            day: Requested travel date.
            trip_ids: Trip IDs of the scheduled rows.
            live: Realtime records for the station's routes.
            rows: Scheduled display rows.
            today: Current date (defaults to date.today()).

        Returns:
            One ArrivalRow per scheduled row, in the same order.
        """
        today = today or date.today()
        if day.weekday() != today.weekday():
            logger.debug(f"{day} is not on today's weekday, skipping live data")
            return [ArrivalRow(scheduled=row) for row in rows]

        wanted = set(trip_ids)
        updates: Dict[str, LiveTripUpdate] = {}
        for update in live.trip_updates:
            if update.trip_id in wanted:
                updates.setdefault(update.trip_id, update)

        positions: Dict[str, LiveVehiclePosition] = {}
        for position in live.vehicle_positions:
            if position.trip_id in wanted:
                positions.setdefault(position.trip_id, position)

        logger.debug(
            f"Correlating {len(rows)} rows with {len(updates)} trip updates "
            f"and {len(positions)} vehicle positions"
        )
        return [
            ArrivalRow(
                scheduled=row,
                live_arrival_time=self.live_arrival(updates.get(row.trip_id)),
                live_vehicle_position=self.live_position(positions.get(row.trip_id)),
            )
            for row in rows
        ]
