"""Data models for the bus station tracker."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

NO_LIVE_DATA = "No Live Data"


def _optional(value: Any) -> Optional[str]:
    """Return None for empty CSV cells."""
    if value is None or value == "":
        return None
    return str(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class Stop:
    """Represents a physical stop (platform) from stops.txt."""
    stop_id: str
    stop_code: Optional[str] = None
    stop_name: Optional[str] = None
    stop_lat: Optional[float] = None
    stop_lon: Optional[float] = None
    location_type: Optional[int] = None
    parent_station: Optional[str] = None
    platform_code: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Stop":
        return cls(
            stop_id=row["stop_id"],
            stop_code=_optional(row.get("stop_code")),
            stop_name=_optional(row.get("stop_name")),
            stop_lat=_optional_float(row.get("stop_lat")),
            stop_lon=_optional_float(row.get("stop_lon")),
            location_type=_optional_int(row.get("location_type")),
            parent_station=_optional(row.get("parent_station")),
            platform_code=_optional(row.get("platform_code")),
        )


@dataclass(frozen=True)
class StopTime:
    """Represents a scheduled visit of a trip to a stop."""
    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: Optional[str] = None  # HH:MM:SS
    departure_time: Optional[str] = None  # None for trip-ending stops
    pickup_type: Optional[int] = None
    drop_off_type: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StopTime":
        return cls(
            trip_id=row["trip_id"],
            stop_id=row["stop_id"],
            stop_sequence=int(row["stop_sequence"]),
            arrival_time=_optional(row.get("arrival_time")),
            departure_time=_optional(row.get("departure_time")),
            pickup_type=_optional_int(row.get("pickup_type")),
            drop_off_type=_optional_int(row.get("drop_off_type")),
        )


@dataclass(frozen=True)
class Trip:
    """Represents a static trip from trips.txt."""
    trip_id: str
    route_id: str
    service_id: str
    trip_headsign: Optional[str] = None
    direction_id: Optional[int] = None
    block_id: Optional[str] = None
    shape_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Trip":
        return cls(
            trip_id=row["trip_id"],
            route_id=row["route_id"],
            service_id=row["service_id"],
            trip_headsign=_optional(row.get("trip_headsign")),
            direction_id=_optional_int(row.get("direction_id")),
            block_id=_optional(row.get("block_id")),
            shape_id=_optional(row.get("shape_id")),
        )


@dataclass(frozen=True)
class Route:
    """Represents a bus line from routes.txt."""
    route_id: str
    route_type: Optional[str] = None
    route_short_name: Optional[str] = None
    route_long_name: Optional[str] = None
    route_desc: Optional[str] = None
    route_color: Optional[str] = None
    route_text_color: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Route":
        return cls(
            route_id=row["route_id"],
            route_type=_optional(row.get("route_type")),
            route_short_name=_optional(row.get("route_short_name")),
            route_long_name=_optional(row.get("route_long_name")),
            route_desc=_optional(row.get("route_desc")),
            route_color=_optional(row.get("route_color")),
            route_text_color=_optional(row.get("route_text_color")),
        )

    @property
    def display_name(self) -> str:
        return self.route_short_name or self.route_id


@dataclass(frozen=True)
class Calendar:
    """Weekly service pattern for a service_id, valid between two dates."""
    service_id: str
    monday: int
    tuesday: int
    wednesday: int
    thursday: int
    friday: int
    saturday: int
    sunday: int
    start_date: str  # YYYYMMDD, inclusive
    end_date: str  # YYYYMMDD, inclusive

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Calendar":
        return cls(
            service_id=row["service_id"],
            monday=int(row["monday"]),
            tuesday=int(row["tuesday"]),
            wednesday=int(row["wednesday"]),
            thursday=int(row["thursday"]),
            friday=int(row["friday"]),
            saturday=int(row["saturday"]),
            sunday=int(row["sunday"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
        )


@dataclass
class StaticDataset:
    """Static GTFS tables narrowed to a single station."""
    stops: List[Stop]
    stop_times: List[StopTime]
    trips: List[Trip]
    routes: List[Route]
    calendars: List[Calendar]

    @property
    def stop_ids(self) -> set:
        return {stop.stop_id for stop in self.stops}

    @property
    def route_ids(self) -> List[str]:
        return [route.route_id for route in self.routes]

    def trip_by_id(self, trip_id: str) -> Optional[Trip]:
        return next((trip for trip in self.trips if trip.trip_id == trip_id), None)

    def route_by_id(self, route_id: Optional[str]) -> Optional[Route]:
        return next((route for route in self.routes if route.route_id == route_id), None)


@dataclass(frozen=True)
class Time:
    """Time of day as typed, e.g. Time("09", "05")."""
    hours: str
    minutes: str


@dataclass
class StopTimeEvent:
    """Predicted arrival or departure at a stop."""
    delay: Optional[int] = None
    time: Optional[int] = None  # Unix timestamp
    uncertainty: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["StopTimeEvent"]:
        if not data:
            return None
        return cls(
            delay=_optional_int(data.get("delay")),
            time=_optional_int(data.get("time")),
            uncertainty=_optional_int(data.get("uncertainty")),
        )


@dataclass
class StopTimeUpdate:
    """Realtime prediction for one stop of a trip."""
    stop_id: Optional[str]
    stop_sequence: Optional[int] = None
    arrival: Optional[StopTimeEvent] = None
    departure: Optional[StopTimeEvent] = None
    schedule_relationship: str = "SCHEDULED"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StopTimeUpdate":
        return cls(
            stop_id=data.get("stopId"),
            stop_sequence=_optional_int(data.get("stopSequence")),
            arrival=StopTimeEvent.from_dict(data.get("arrival")),
            departure=StopTimeEvent.from_dict(data.get("departure")),
            schedule_relationship=data.get("scheduleRelationship", "SCHEDULED"),
        )


@dataclass
class LiveTripUpdate:
    """Realtime prediction for a whole trip."""
    trip_id: Optional[str]
    route_id: Optional[str]
    vehicle_id: Optional[str] = None
    stop_time_updates: List[StopTimeUpdate] = field(default_factory=list)
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveTripUpdate":
        trip = data.get("trip", {})
        return cls(
            trip_id=trip.get("tripId"),
            route_id=trip.get("routeId"),
            vehicle_id=data.get("vehicle", {}).get("id"),
            stop_time_updates=[StopTimeUpdate.from_dict(u) for u in data.get("stopTimeUpdate", [])],
            timestamp=_optional_int(data.get("timestamp")),
        )


@dataclass
class LiveVehiclePosition:
    """Current location of a vehicle serving a trip."""
    trip_id: Optional[str]
    route_id: Optional[str]
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    vehicle_id: Optional[str] = None
    vehicle_label: Optional[str] = None
    stop_id: Optional[str] = None
    current_status: Optional[str] = None  # e.g., "IN_TRANSIT_TO", "STOPPED_AT"
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveVehiclePosition":
        trip = data.get("trip", {})
        vehicle = data.get("vehicle", {})
        position = data.get("position", {})
        return cls(
            trip_id=trip.get("tripId"),
            route_id=trip.get("routeId"),
            latitude=_optional_float(position.get("latitude")),
            longitude=_optional_float(position.get("longitude")),
            vehicle_id=vehicle.get("id"),
            vehicle_label=vehicle.get("label"),
            stop_id=data.get("stopId"),
            current_status=data.get("currentStatus"),
            timestamp=_optional_int(data.get("timestamp")),
        )

    @property
    def coordinates(self) -> Optional[str]:
        if self.latitude is None or self.longitude is None:
            return None
        return f"{self.latitude}, {self.longitude}"


@dataclass
class Alert:
    """Represents a service alert for a route."""
    route_id: str
    header: str
    description: str = ""
    cause: Optional[str] = None
    effect: Optional[str] = None
    url: Optional[str] = None
    active_start: Optional[int] = None  # Unix timestamp

    @property
    def message(self) -> str:
        return f"{self.header} {self.description}".strip()


@dataclass
class LiveData:
    """Realtime records relevant to the station's routes."""
    trip_updates: List[LiveTripUpdate] = field(default_factory=list)
    vehicle_positions: List[LiveVehiclePosition] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)


@dataclass
class ScheduledArrival:
    """A scheduled stop-time resolved to its trip and route."""
    trip_id: str
    route_short_name: Optional[str]
    route_long_name: Optional[str]
    service_id: Optional[str]
    headsign: Optional[str]
    scheduled_time: Optional[str]


@dataclass
class ArrivalRow:
    """A scheduled arrival merged with its live data."""
    scheduled: ScheduledArrival
    live_arrival_time: str = NO_LIVE_DATA
    live_vehicle_position: str = NO_LIVE_DATA

    def as_table_row(self) -> Dict[str, Optional[str]]:
        return {
            "Route Short Name": self.scheduled.route_short_name,
            "Route Long Name": self.scheduled.route_long_name,
            "Service ID": self.scheduled.service_id,
            "Heading Sign": self.scheduled.headsign,
            "Scheduled Arrival Time": self.scheduled.scheduled_time,
            "Live Arrival Time": self.live_arrival_time,
            "Live Vehicle Position": self.live_vehicle_position,
        }


@dataclass
class DepartureBoard:
    """Complete result of a departure search."""
    rows: List[ArrivalRow]
    alerts: List[Alert]
    last_updated: datetime
