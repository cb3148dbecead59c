"""
Text interface for querying bus departures at the station.

Asks for a date, a time and a route, then prints scheduled departures
alongside live arrival times and vehicle positions.
"""

import argparse
import logging
import re
import sys
from datetime import date
from typing import Callable, List, Optional, TypeVar

import pandas as pd

from .config import DEFAULT_FEED_BASE_URL, DEFAULT_PARENT_STATION, TrackerConfig
from .gtfs_loader import StaticDataError
from .models import DepartureBoard, Route, Time
from .station_tracker import ALL_ROUTES, BusStationTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

ACCEPTS = ("y", "yes")
DECLINES = ("n", "no")


def parse_date_input(text: str) -> date:
    """Parse a YYYY-MM-DD date."""
    text = text.strip()
    if not DATE_PATTERN.match(text):
        raise ValueError("Incorrect date format. Please use YYYY-MM-DD")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValueError(f"{text} is not a valid date") from None


def parse_time_input(text: str) -> Time:
    """Parse an HH:mm time (00:00 to 23:59)."""
    match = TIME_PATTERN.match(text.strip())
    if not match:
        raise ValueError("Incorrect time format. Please use HH:mm")
    hours, minutes = match.groups()
    return Time(hours=hours.zfill(2), minutes=minutes)


def ask(
    question: str,
    parser: Callable[[str], T],
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> T:
    """Prompt until parser accepts the answer."""
    while True:
        answer = input_fn(question)
        try:
            return parser(answer)
        except ValueError as e:
            output(str(e))


def parse_yes_no(text: str) -> bool:
    answer = text.strip().lower()
    if answer in ACCEPTS:
        return True
    if answer in DECLINES:
        return False
    raise ValueError("Please enter a valid option.")


def describe_routes(routes: List[Route]) -> str:
    lines = [f"  {ALL_ROUTES:<6} Show all routes"]
    for route in routes:
        lines.append(f"  {route.display_name:<6} {route.route_long_name or ''}".rstrip())
    return "\n".join(lines)


def format_board(board: DepartureBoard) -> str:
    """Render a departure board as a text table followed by any alerts."""
    if not board.rows:
        table = "No scheduled departures in this window."
    else:
        frame = pd.DataFrame([row.as_table_row() for row in board.rows])
        table = frame.fillna("").to_string(index=False)

    lines = [table]
    if board.alerts:
        lines.append("")
        lines.append("SERVICE ALERTS:")
        seen = set()
        for alert in board.alerts:
            alert_key = (alert.route_id, alert.message)
            if alert_key not in seen:
                lines.append(f"Route {alert.route_id}: {alert.message}")
                seen.add(alert_key)
    return "\n".join(lines)


def run_session(
    tracker: BusStationTracker,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
    today: Optional[date] = None,
) -> None:
    """Run searches until the user declines to search again."""
    output("Welcome to the UQ Lakes station bus tracker!")

    while True:
        day = ask("What date will you depart by bus? (YYYY-MM-DD) ", parse_date_input, input_fn, output)
        time = ask("What time will you depart by bus? (HH:mm) ", parse_time_input, input_fn, output)

        output("Routes serving this station:")
        output(describe_routes(tracker.routes))
        routes = ask("What bus route would you like to take? ", tracker.resolve_routes, input_fn, output)

        board = tracker.search(day, time, routes, today=today)
        output(format_board(board))

        if not ask("Would you like to search again? (y/n) ", parse_yes_no, input_fn, output):
            break

    output("Thanks for using the UQ Lakes station bus tracker!")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scheduled and live bus departures for one station.")
    parser.add_argument("--station", default=DEFAULT_PARENT_STATION, help="GTFS parent station ID")
    parser.add_argument("--static-dir", default="static-data", help="Directory holding GTFS static files")
    parser.add_argument("--cache-dir", default="cached-data", help="Directory for cached realtime feeds")
    parser.add_argument("--feed-url", default=DEFAULT_FEED_BASE_URL, help="Base URL of the GTFS-Realtime feeds")
    parser.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING or ERROR")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = TrackerConfig(
        parent_station=args.station,
        static_dir=args.static_dir,
        cache_dir=args.cache_dir,
        feed_base_url=args.feed_url,
    )

    try:
        tracker = BusStationTracker(config)
    except StaticDataError as e:
        print(f"Error: could not load timetable data. {e}")
        return 1

    try:
        run_session(tracker)
    except (KeyboardInterrupt, EOFError):
        print("\nGoodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
