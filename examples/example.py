"""Example usage of BusStationTracker."""

import logging
import sys
from datetime import date
from pathlib import Path

# Add src to path so we can import bustrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bustrack.cli import parse_time_input
from bustrack.gtfs_loader import StaticDataError
from bustrack.station_tracker import BusStationTracker

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_departures(route_selection: str, at: str):
    """
    Fetch and display today's departures for a route.

    Args:
        route_selection: "all" or a route short name (e.g. "66")
        at: Departure time as HH:MM
    """
    print(f"\n{'='*70}")
    print(f"Departures for route '{route_selection}' from {at}")
    print(f"{'='*70}\n")

    try:
        # Loads static data and fetches the realtime feeds
        tracker = BusStationTracker()
    except StaticDataError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        routes = tracker.resolve_routes(route_selection)
        board = tracker.search(date.today(), parse_time_input(at), routes)
    except ValueError as e:
        print(f"Error: {e}")
        print("Routes serving this station: " + ", ".join(tracker.route_choices()))
        sys.exit(1)

    print(f"Last updated: {board.last_updated.strftime('%H:%M:%S')}\n")
    if board.rows:
        for row in board.rows:
            scheduled = row.scheduled
            print(
                f"  {scheduled.route_short_name or '':>5}  {scheduled.scheduled_time}  "
                f"live {row.live_arrival_time:<12}  → {scheduled.headsign or ''}"
            )
    else:
        print("  No departures found")

    print("\nSERVICE ALERTS:")
    print("-" * 70)
    if board.alerts:
        for alert in board.alerts:
            print(f"  Route {alert.route_id}: {alert.message}")
    else:
        print("  No service alerts")


if __name__ == "__main__":
    if len(sys.argv) > 2:
        print_departures(sys.argv[1], sys.argv[2])
    else:
        print_departures("all", "09:00")
