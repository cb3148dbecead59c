"""Tests for schedule matching and live correlation."""

import sys
import unittest
from datetime import date, datetime, timezone
from pathlib import Path

# Add src to path so we can import bustrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bustrack.correlator import LiveCorrelator, format_live_time
from bustrack.models import (
    NO_LIVE_DATA,
    Calendar,
    LiveData,
    LiveTripUpdate,
    LiveVehiclePosition,
    Route,
    ScheduledArrival,
    StaticDataset,
    Stop,
    StopTime,
    StopTimeEvent,
    StopTimeUpdate,
    Time,
    Trip,
)
from bustrack.schedule import (
    ScheduleMatcher,
    active_service_ids,
    convert_time,
    date_is_active,
    parse_time,
    within_window,
)

MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)


def weekday_calendar(service_id="SV1", start="20240101", end="20241231", **days):
    flags = {day: 0 for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")}
    flags.update(days)
    return Calendar(service_id=service_id, start_date=start, end_date=end, **flags)


def epoch(hour: int, minute: int) -> int:
    return int(datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc).timestamp())


class TestTimeHelpers(unittest.TestCase):
    """Test time-of-day conversion."""

    def test_convert_time(self):
        self.assertEqual(convert_time(Time(hours="09", minutes="05")), 545)
        self.assertEqual(convert_time(Time(hours="00", minutes="00")), 0)
        self.assertEqual(convert_time(Time(hours="23", minutes="59")), 1439)

    def test_parse_time(self):
        self.assertEqual(parse_time("09:05:00"), Time(hours="09", minutes="05"))
        self.assertEqual(parse_time("17:45"), Time(hours="17", minutes="45"))

    def test_parse_then_convert(self):
        self.assertEqual(convert_time(parse_time("09:05:00")), 545)


class TestCalendar(unittest.TestCase):
    """Test service activity by date."""

    def test_active_on_flagged_weekday_in_range(self):
        entry = weekday_calendar(monday=1)
        self.assertTrue(date_is_active(MONDAY, entry))
        self.assertFalse(date_is_active(TUESDAY, entry))

    def test_range_is_inclusive(self):
        """Test that both start_date and end_date are active days."""
        entry = weekday_calendar(start="20240101", end="20240108", monday=1)
        self.assertTrue(date_is_active(date(2024, 1, 1), entry))
        self.assertTrue(date_is_active(date(2024, 1, 8), entry))
        self.assertFalse(date_is_active(date(2024, 1, 15), entry))
        self.assertFalse(date_is_active(date(2023, 12, 25), entry))

    def test_active_service_ids(self):
        calendars = [
            weekday_calendar("WEEKDAY", monday=1, tuesday=1, wednesday=1, thursday=1, friday=1),
            weekday_calendar("SUNDAY", sunday=1),
            weekday_calendar("EXPIRED", start="20230101", end="20231231", monday=1),
        ]
        self.assertEqual(active_service_ids(calendars, MONDAY), ["WEEKDAY"])
        self.assertEqual(active_service_ids(calendars, date(2024, 1, 7)), ["SUNDAY"])


class TestTimeWindow(unittest.TestCase):
    """Test the 0 to 10 minute matching window."""

    REQUESTED = 9 * 60  # 09:00

    def test_departure_only_boundaries(self):
        def departing(at):
            return StopTime(trip_id="T1", stop_id="S1", stop_sequence=0, departure_time=at)

        self.assertTrue(within_window(departing("09:00:00"), self.REQUESTED))
        self.assertTrue(within_window(departing("09:10:00"), self.REQUESTED))
        self.assertFalse(within_window(departing("09:11:00"), self.REQUESTED))
        self.assertFalse(within_window(departing("08:59:00"), self.REQUESTED))

    def test_arrival_takes_priority(self):
        """Test that the arrival time decides when both times are present."""
        stop_time = StopTime(
            trip_id="T1", stop_id="S1", stop_sequence=3,
            arrival_time="09:12:00", departure_time="09:05:00",
        )
        self.assertFalse(within_window(stop_time, self.REQUESTED))

        stop_time = StopTime(
            trip_id="T1", stop_id="S1", stop_sequence=3,
            arrival_time="09:05:00", departure_time="09:20:00",
        )
        self.assertTrue(within_window(stop_time, self.REQUESTED))

    def test_trip_ending_stop_excluded(self):
        stop_time = StopTime(trip_id="T1", stop_id="S1", stop_sequence=9, arrival_time="09:05:00")
        self.assertFalse(within_window(stop_time, self.REQUESTED))


class TestScheduleMatcher(unittest.TestCase):
    """Test selection of scheduled arrivals."""

    def setUp(self):
        self.dataset = StaticDataset(
            stops=[Stop(stop_id="S1", parent_station="place_uqlksa")],
            stop_times=[
                StopTime(trip_id="T1", stop_id="S1", stop_sequence=0, departure_time="09:10:00"),
                StopTime(trip_id="T2", stop_id="S1", stop_sequence=4,
                         arrival_time="09:03:00", departure_time="09:04:00"),
                StopTime(trip_id="T3", stop_id="S1", stop_sequence=0, departure_time="09:05:00"),
                StopTime(trip_id="T4", stop_id="S1", stop_sequence=7, arrival_time="09:06:00"),
            ],
            trips=[
                Trip(trip_id="T1", route_id="R1", service_id="SV1", trip_headsign="Chermside"),
                Trip(trip_id="T2", route_id="R2", service_id="SV1", trip_headsign="City"),
                Trip(trip_id="T3", route_id="R1", service_id="SV2"),
                Trip(trip_id="T4", route_id="R1", service_id="SV1"),
            ],
            routes=[
                Route(route_id="R1", route_type="3", route_short_name="66", route_long_name="UQ Lakes - RBWH"),
                Route(route_id="R2", route_type="3", route_short_name="29"),
            ],
            calendars=[
                weekday_calendar("SV1", monday=1),
                weekday_calendar("SV2", tuesday=1),
            ],
        )
        self.matcher = ScheduleMatcher(self.dataset)

    def test_matches_in_stop_time_order(self):
        rows, trip_ids = self.matcher.match(self.dataset.routes, MONDAY, Time("09", "00"))

        self.assertEqual(trip_ids, ["T1", "T2"])
        self.assertEqual([row.scheduled_time for row in rows], ["09:10:00", "09:03:00"])
        self.assertEqual(rows[0].route_short_name, "66")
        self.assertEqual(rows[0].route_long_name, "UQ Lakes - RBWH")
        self.assertEqual(rows[0].service_id, "SV1")
        self.assertEqual(rows[0].headsign, "Chermside")

    def test_filters_by_route(self):
        rows, trip_ids = self.matcher.match([self.dataset.routes[1]], MONDAY, Time("09", "00"))
        self.assertEqual(trip_ids, ["T2"])
        self.assertEqual(rows[0].route_short_name, "29")

    def test_filters_by_service_day(self):
        rows, trip_ids = self.matcher.match(self.dataset.routes, TUESDAY, Time("09", "00"))
        self.assertEqual(trip_ids, ["T3"])
        self.assertEqual(rows[0].scheduled_time, "09:05:00")

    def test_no_routes_no_rows(self):
        rows, trip_ids = self.matcher.match([], MONDAY, Time("09", "00"))
        self.assertEqual(rows, [])
        self.assertEqual(trip_ids, [])


class TestLiveCorrelator(unittest.TestCase):
    """Test merging scheduled rows with live data."""

    def setUp(self):
        self.correlator = LiveCorrelator({"S1", "S2"}, tz=timezone.utc)
        self.rows = [
            ScheduledArrival("T1", "66", None, "SV1", "Chermside", "09:10:00"),
            ScheduledArrival("T2", "29", None, "SV1", "City", "09:03:00"),
        ]
        self.live = LiveData(
            trip_updates=[
                # Deliberately out of row order
                LiveTripUpdate(
                    trip_id="T2",
                    route_id="R2",
                    stop_time_updates=[
                        StopTimeUpdate(stop_id="X9", arrival=StopTimeEvent(time=epoch(8, 40))),
                        StopTimeUpdate(stop_id="S2", arrival=StopTimeEvent(delay=120, time=epoch(9, 5))),
                    ],
                ),
                LiveTripUpdate(
                    trip_id="T1",
                    route_id="R1",
                    stop_time_updates=[StopTimeUpdate(stop_id="S1", departure=StopTimeEvent(time=epoch(9, 11)))],
                ),
            ],
            vehicle_positions=[
                LiveVehiclePosition(trip_id="T2", route_id="R2", latitude=-27.5, longitude=153.25),
                LiveVehiclePosition(trip_id="T7", route_id="R2", latitude=-27.0, longitude=153.0),
            ],
        )

    def test_format_live_time(self):
        self.assertEqual(format_live_time(epoch(9, 5), timezone.utc), "09:05:00")

    def test_joins_by_trip_id(self):
        """Test that each row gets the live data of its own trip."""
        merged = self.correlator.correlate(MONDAY, ["T1", "T2"], self.live, self.rows, today=MONDAY)

        self.assertEqual(merged[0].scheduled.trip_id, "T1")
        # T1's station update has no arrival prediction
        self.assertEqual(merged[0].live_arrival_time, NO_LIVE_DATA)
        self.assertEqual(merged[0].live_vehicle_position, NO_LIVE_DATA)

        self.assertEqual(merged[1].live_arrival_time, "09:05:00")
        self.assertEqual(merged[1].live_vehicle_position, "-27.5, 153.25")

    def test_other_weekday_has_no_live_data(self):
        merged = self.correlator.correlate(MONDAY, ["T1", "T2"], self.live, self.rows, today=TUESDAY)

        for row in merged:
            self.assertEqual(row.live_arrival_time, NO_LIVE_DATA)
            self.assertEqual(row.live_vehicle_position, NO_LIVE_DATA)

    def test_same_weekday_of_another_week_uses_live_data(self):
        merged = self.correlator.correlate(MONDAY, ["T2"], self.live, self.rows[1:], today=date(2024, 1, 8))
        self.assertEqual(merged[0].live_arrival_time, "09:05:00")

    def test_trips_outside_selection_ignored(self):
        merged = self.correlator.correlate(MONDAY, ["T1"], self.live, self.rows[1:], today=MONDAY)
        self.assertEqual(merged[0].live_arrival_time, NO_LIVE_DATA)
        self.assertEqual(merged[0].live_vehicle_position, NO_LIVE_DATA)

    def test_table_row_labels(self):
        merged = self.correlator.correlate(MONDAY, ["T2"], self.live, self.rows[1:], today=MONDAY)
        table_row = merged[0].as_table_row()

        self.assertEqual(table_row["Route Short Name"], "29")
        self.assertEqual(table_row["Scheduled Arrival Time"], "09:03:00")
        self.assertEqual(table_row["Live Arrival Time"], "09:05:00")
        self.assertEqual(table_row["Live Vehicle Position"], "-27.5, 153.25")


if __name__ == "__main__":
    unittest.main()
