"""bustrack - Scheduled and live bus departures for a single GTFS station."""

__version__ = "0.1.0"

from .models import (
    Alert,
    ArrivalRow,
    Calendar,
    DepartureBoard,
    LiveData,
    LiveTripUpdate,
    LiveVehiclePosition,
    Route,
    ScheduledArrival,
    StaticDataset,
    Stop,
    StopTime,
    Time,
    Trip,
)
from .config import TrackerConfig
from .cache import CacheStore
from .gtfs_loader import GTFSLoader, StaticDataError
from .realtime_client import RealtimeClient
from .schedule import ScheduleMatcher
from .correlator import LiveCorrelator
from .station_tracker import BusStationTracker

__all__ = [
    "BusStationTracker",
    "TrackerConfig",
    "CacheStore",
    "GTFSLoader",
    "StaticDataError",
    "RealtimeClient",
    "ScheduleMatcher",
    "LiveCorrelator",
    "Stop",
    "StopTime",
    "Trip",
    "Route",
    "Calendar",
    "StaticDataset",
    "Time",
    "LiveTripUpdate",
    "LiveVehiclePosition",
    "LiveData",
    "Alert",
    "ScheduledArrival",
    "ArrivalRow",
    "DepartureBoard",
]
