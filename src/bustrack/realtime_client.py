"""GTFS-Realtime JSON feed fetcher and parser."""

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests
from google.protobuf import json_format
from google.transit import gtfs_realtime_pb2

from .cache import ALERTS_CACHE, TRIP_UPDATES_CACHE, VEHICLE_POSITIONS_CACHE, CacheStore
from .config import ALERTS_FEED, TRIP_UPDATES_FEED, VEHICLE_POSITIONS_FEED, TrackerConfig
from .models import Alert, LiveTripUpdate, LiveVehiclePosition

logger = logging.getLogger(__name__)

EntityFilter = Callable[[gtfs_realtime_pb2.FeedEntity, set], Optional[Any]]
Converter = Callable[[List[Dict[str, Any]]], List[Any]]

# Raised when a cached payload does not have the shape of feed records
CACHE_SHAPE_ERRORS = (AttributeError, TypeError, ValueError, KeyError, IndexError)


def _trip_update_for_routes(entity, route_ids: set):
    if entity.HasField("trip_update") and entity.trip_update.trip.route_id in route_ids:
        return entity.trip_update
    return None


def _vehicle_for_routes(entity, route_ids: set):
    if entity.HasField("vehicle") and entity.vehicle.trip.route_id in route_ids:
        return entity.vehicle
    return None


def _alert_for_routes(entity, route_ids: set):
    if not entity.HasField("alert"):
        return None
    for informed_entity in entity.alert.informed_entity:
        # Route can be specified directly in route_id OR in trip.route_id
        route_id = informed_entity.route_id or informed_entity.trip.route_id
        if route_id in route_ids:
            return entity.alert
    return None


def _raw_field(raw_entity: Any, record_key: str, field: str) -> Optional[Any]:
    """Look up entity[record_key][field] in the undecoded feed JSON."""
    record = raw_entity.get(record_key) if isinstance(raw_entity, dict) else None
    return record.get(field) if isinstance(record, dict) else None


def _first_translation(text: Dict[str, Any]) -> str:
    translations = (text or {}).get("translation", [])
    return translations[0].get("text", "") if translations else ""


class RealtimeClient:
    """Fetches GTFS-Realtime JSON feeds and narrows them to a station's routes."""

    def __init__(self, config: TrackerConfig = None, cache: CacheStore = None):
        """
        Initialize the realtime client.

        Args:
            config: Tracker configuration (feed base URL, request timeout).
            cache: Cache store for fetched payloads. Defaults to one in config.cache_dir.
        """
        self.config = config or TrackerConfig()
        self.cache = cache or CacheStore(self.config.cache_dir)

    def get_trip_updates(self, route_ids: Iterable[str]) -> List[LiveTripUpdate]:
        """
        Get trip updates for the given routes.

        Args:
            route_ids: Route IDs served at the station.

        Returns:
            List of LiveTripUpdate objects in feed order.

        Raises:
            requests.RequestException: If the feed cannot be fetched.
            ValueError: If the body is not UTF-8 JSON.
            json_format.ParseError: If the feed is not valid GTFS-Realtime JSON.
        """
        return self._get_feed(
            TRIP_UPDATES_FEED,
            TRIP_UPDATES_CACHE,
            route_ids,
            _trip_update_for_routes,
            lambda payloads: [LiveTripUpdate.from_dict(payload) for payload in payloads],
        )

    def get_vehicle_positions(self, route_ids: Iterable[str]) -> List[LiveVehiclePosition]:
        """
        Get vehicle positions for the given routes.

        Coordinates are taken from the feed JSON as published; the protobuf
        schema stores them as 32-bit floats, which would shorten them.

        Args:
            route_ids: Route IDs served at the station.

        Returns:
            List of LiveVehiclePosition objects in feed order.
        """
        return self._get_feed(
            VEHICLE_POSITIONS_FEED,
            VEHICLE_POSITIONS_CACHE,
            route_ids,
            _vehicle_for_routes,
            lambda payloads: [LiveVehiclePosition.from_dict(payload) for payload in payloads],
            raw_field=("vehicle", "position"),
        )

    def get_alerts(self, route_ids: Iterable[str]) -> List[Alert]:
        """
        Get service alerts affecting the given routes.

        Args:
            route_ids: Route IDs served at the station.

        Returns:
            One Alert per (alert, affected station route) pair.
        """
        route_ids = set(route_ids)
        return self._get_feed(
            ALERTS_FEED,
            ALERTS_CACHE,
            route_ids,
            _alert_for_routes,
            lambda payloads: self._parse_alerts(payloads, route_ids),
        )

    def _get_feed(
        self,
        feed_name: str,
        cache_key: str,
        route_ids: Iterable[str],
        entity_filter: EntityFilter,
        convert: Converter,
        raw_field: Optional[Tuple[str, str]] = None,
    ) -> List[Any]:
        """
        Return the feed's records for the routes, from cache when fresh.

        A cached payload that cannot be converted counts as a cache miss.
        raw_field names a (record, field) pair copied from the undecoded JSON.
        """
        cached = self.cache.read(cache_key)
        if cached is not None:
            try:
                records = convert(cached)
            except CACHE_SHAPE_ERRORS as e:
                logger.warning(f"Ignoring malformed cache for {feed_name}: {e}")
            else:
                logger.debug(f"Using cached {feed_name}")
                return records

        route_ids = set(route_ids)
        raw, feed = self._fetch_feed(self.config.feed_url(feed_name))

        payloads = []
        for entity, raw_entity in zip(feed.entity, raw.get("entity", [])):
            record = entity_filter(entity, route_ids)
            if record is None:
                continue
            payload = json_format.MessageToDict(record)
            if raw_field:
                value = _raw_field(raw_entity, *raw_field)
                if value is not None:
                    payload[raw_field[1]] = value
            payloads.append(payload)

        logger.info(f"Fetched {len(payloads)} relevant records from {feed_name}")
        records = convert(payloads)
        self.cache.write(cache_key, payloads)
        return records

    def _fetch_feed(self, feed_url: str) -> Tuple[Dict[str, Any], gtfs_realtime_pb2.FeedMessage]:
        """
        Fetch and decode a GTFS-Realtime JSON feed.

        Args:
            feed_url: Full URL to the feed.

        Returns:
            The feed JSON as decoded and the matching FeedMessage, entity for entity.
        """
        logger.debug(f"Fetching {feed_url}")
        try:
            response = requests.get(feed_url, timeout=self.config.request_timeout)
            response.raise_for_status()
            raw = json.loads(response.content.decode("utf-8"))
            if not isinstance(raw, dict):
                raise json_format.ParseError("Feed is not a JSON object")
            feed = json_format.ParseDict(
                raw, gtfs_realtime_pb2.FeedMessage(), ignore_unknown_fields=True
            )
            return raw, feed
        except (requests.RequestException, json_format.ParseError, ValueError) as e:
            logger.error(f"Failed to fetch {feed_url}: {e}")
            raise

    @staticmethod
    def _parse_alerts(payloads: List[Dict[str, Any]], route_ids: set) -> List[Alert]:
        alerts: List[Alert] = []

        for payload in payloads:
            header = _first_translation(payload.get("headerText"))
            description = _first_translation(payload.get("descriptionText"))
            url = _first_translation(payload.get("url")) or None
            periods = payload.get("activePeriod", [])
            start = periods[0].get("start") if periods else None

            seen_routes = set()
            for informed_entity in payload.get("informedEntity", []):
                route_id = informed_entity.get("routeId") or informed_entity.get("trip", {}).get("routeId")
                if route_id in route_ids and route_id not in seen_routes:
                    alerts.append(
                        Alert(
                            route_id=route_id,
                            header=header,
                            description=description,
                            cause=payload.get("cause"),
                            effect=payload.get("effect"),
                            url=url,
                            active_start=int(start) if start else None,
                        )
                    )
                    seen_routes.add(route_id)

        logger.debug(f"Parsed {len(alerts)} alerts")
        return alerts
