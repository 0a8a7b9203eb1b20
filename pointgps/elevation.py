"""
PointGPS — Elevation lookup (GSI DEM service) and backfill

Lookup failures never reach the caller: they are logged and the stored
value is left as it was.
"""

from __future__ import annotations
import json
import logging
import math
import time
import http.client
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, Iterable, Optional, Union

from . import config
from .fields import is_positive_elevation, needs_elevation_lookup, normalize_elevation
from .models import LookupPolicy
from .store import WaypointStore

logger = logging.getLogger(__name__)

Number = Union[int, float]
Fetcher = Callable[[float, float], Optional[Number]]


def round_elevation(value: float) -> Number:
    """One decimal place; whole values come back as int (123.0 -> 123)."""
    text = normalize_elevation(value)
    num = float(text)
    return int(num) if num.is_integer() else num


def fetch_elevation(lat: float, lng: float, timeout: float = config.ELEVATION_API_TIMEOUT) -> Optional[Number]:
    """Query the GSI elevation API. Returns None on any failure."""
    query = urllib.parse.urlencode({"lon": lng, "lat": lat, "outtype": "JSON"})
    url = f"{config.ELEVATION_API_URL}?{query}"
    req = urllib.request.Request(url, headers={"User-Agent": f"{config.SOFT_FULL_NAME} (elevation)"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read().decode("utf-8"))
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
        logger.warning("Elevation lookup failed for %s, %s: %s", lat, lng, e)
        return None

    raw = data.get("elevation") if isinstance(data, dict) else None
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        # Outside the DEM coverage the service answers "-----"
        logger.info("No elevation data at %s, %s (%r)", lat, lng, raw)
        return None
    if not math.isfinite(value):
        return None
    return round_elevation(value)


class ElevationEnricher:
    """
    Fills missing elevations from the lookup service.

    `field` selects where results go: "elevation", or "gps_elevation" to
    keep looked-up values apart from spreadsheet ones.
    """

    def __init__(self, store: WaypointStore, fetcher: Fetcher = fetch_elevation,
                 policy: LookupPolicy = LookupPolicy.NON_POSITIVE,
                 field: str = "elevation",
                 delay: float = config.ELEVATION_REQUEST_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        if field not in ("elevation", "gps_elevation"):
            raise ValueError(f"Unknown elevation field: {field}")
        self.store = store
        self.fetcher = fetcher
        self.policy = policy
        self.field = field
        self.delay = delay
        self._sleep = sleep

    def needs_lookup(self, point_id: str) -> bool:
        point = self.store.get_by_id(point_id)
        return point is not None and needs_elevation_lookup(getattr(point, self.field), self.policy)

    def ensure_valid_elevation(self, point_id: str) -> Optional[str]:
        """
        Current elevation of a point, looked up first if it is missing.
        Returns None for an unknown id.
        """
        point = self.store.get_by_id(point_id)
        if point is None:
            return None
        current = getattr(point, self.field)
        if not needs_elevation_lookup(current, self.policy):
            return current

        try:
            result = self.fetcher(point.lat, point.lng)
        except Exception as e:
            logger.warning("Elevation lookup raised for %s: %s", point_id, e)
            return current

        if result is None or not is_positive_elevation(result):
            logger.debug("No usable elevation for %s: %r", point_id, result)
            return current

        updated = self.store.update(point_id, {self.field: result})
        if updated is None:
            # Removed while the lookup was in flight
            return current
        value = getattr(updated, self.field)
        logger.info("Elevation for %s set to %s", point_id, value)
        return value

    def enrich_all(self, point_ids: Optional[Iterable[str]] = None) -> int:
        """Backfill several points one request at a time. Returns how many changed."""
        ids = list(point_ids) if point_ids is not None else self.store.ids()
        changed = 0
        first = True
        for point_id in ids:
            if not self.needs_lookup(point_id):
                continue
            if not first and self.delay > 0:
                self._sleep(self.delay)
            first = False
            point = self.store.get_by_id(point_id)
            if point is None:
                continue
            before = getattr(point, self.field)
            after = self.ensure_valid_elevation(point_id)
            if after is not None and after != before:
                changed += 1
        return changed
