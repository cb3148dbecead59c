"""Tests for the realtime feed cache."""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add src to path so we can import bustrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bustrack.cache import CACHE_DURATION_MS, TRIP_UPDATES_CACHE, CacheStore


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheStore(unittest.TestCase):
    """Test cache writes, reads and freshness."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.cache_dir = os.path.join(self.tmp.name, "cached-data")
        self.clock = FakeClock()
        self.cache = CacheStore(self.cache_dir, clock=self.clock)

    def tearDown(self):
        self.tmp.cleanup()

    def test_write_then_read_returns_payload(self):
        """Test that a fresh entry round-trips unchanged."""
        payload = [{"trip": {"tripId": "T1", "routeId": "R1"}}]
        self.cache.write(TRIP_UPDATES_CACHE, payload)

        self.assertEqual(self.cache.read(TRIP_UPDATES_CACHE), payload)

    def test_file_format(self):
        """Test the on-disk shape of a cache entry."""
        self.cache.write("feed.json", {"a": 1})

        with open(os.path.join(self.cache_dir, "feed.json"), encoding="utf-8") as f:
            stored = json.load(f)

        self.assertEqual(stored, {"timestamp": 1_700_000_000_000, "data": {"a": 1}})

    def test_entry_expires_after_five_minutes(self):
        """Test that an entry is stale once it is 300000 ms old."""
        written_at = self.clock.now
        self.cache.write("feed.json", ["x"])

        self.clock.now = written_at + 299
        self.assertEqual(self.cache.read("feed.json"), ["x"])

        self.clock.now = written_at + CACHE_DURATION_MS // 1000
        self.assertIsNone(self.cache.read("feed.json"))

    def test_forced_old_timestamp_is_stale(self):
        """Test that an entry with an old stored timestamp is ignored."""
        os.makedirs(self.cache_dir)
        old = int(self.clock.now * 1000) - CACHE_DURATION_MS - 1
        with open(os.path.join(self.cache_dir, "feed.json"), "w", encoding="utf-8") as f:
            json.dump({"timestamp": old, "data": ["x"]}, f)

        self.assertIsNone(self.cache.read("feed.json"))

    def test_missing_file_reads_as_absent(self):
        self.assertIsNone(self.cache.read("missing.json"))

    def test_malformed_file_reads_as_absent(self):
        """Test that unparsable or incomplete files are treated as a cache miss."""
        os.makedirs(self.cache_dir)
        with open(os.path.join(self.cache_dir, "broken.json"), "w", encoding="utf-8") as f:
            f.write("{not json")
        with open(os.path.join(self.cache_dir, "no-timestamp.json"), "w", encoding="utf-8") as f:
            json.dump({"data": ["x"]}, f)
        with open(os.path.join(self.cache_dir, "text-timestamp.json"), "w", encoding="utf-8") as f:
            json.dump({"timestamp": "yesterday", "data": ["x"]}, f)

        self.assertIsNone(self.cache.read("broken.json"))
        self.assertIsNone(self.cache.read("no-timestamp.json"))
        self.assertIsNone(self.cache.read("text-timestamp.json"))

    def test_write_overwrites_existing_entry(self):
        self.cache.write("feed.json", ["old"])
        self.cache.write("feed.json", ["new"])

        self.assertEqual(self.cache.read("feed.json"), ["new"])

    def test_write_failure_is_swallowed(self):
        """Test that an unwritable cache location does not raise."""
        blocker = os.path.join(self.tmp.name, "not-a-directory")
        with open(blocker, "w", encoding="utf-8") as f:
            f.write("")
        cache = CacheStore(blocker, clock=self.clock)

        with self.assertLogs("bustrack.cache", level="WARNING"):
            cache.write("feed.json", ["x"])
        self.assertIsNone(cache.read("feed.json"))

    def test_unserialisable_payload_is_swallowed(self):
        with self.assertLogs("bustrack.cache", level="WARNING"):
            self.cache.write("feed.json", {"bad": object()})
        self.assertIsNone(self.cache.read("feed.json"))


if __name__ == "__main__":
    unittest.main()
