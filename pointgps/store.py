"""
PointGPS — In-memory waypoint collection

Insertion-ordered, ids unique. Mutations are serialised with a lock so a
background elevation run and UI edits cannot interleave.
"""

from __future__ import annotations
import logging
import math
import re
import threading
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from . import config
from .columns import EXPORT_ROLES, header_labels
from .coords import is_valid_coordinate
from .errors import DuplicateIdError, InvalidCoordinateError
from .fields import normalize_elevation
from .models import IdScheme, ParsePolicy, Waypoint

logger = logging.getLogger(__name__)

_ELEVATION_FIELDS = ("elevation", "gps_elevation")
_MUTABLE_FIELDS = {"id", "lat", "lng", "elevation", "location", "remarks", "type", "gps_elevation"}


def first_free_number(used: Iterable[int]) -> int:
    """Smallest positive integer not in `used` (1, 2, 4 -> 3)."""
    n = 1
    for value in sorted(set(used)):
        if value < n:
            continue
        if value != n:
            break
        n += 1
    return n


def _export_number(text: str):
    """Numeric text as int/float, anything else unchanged, blank as None."""
    if text == "":
        return None
    try:
        num = float(text)
    except ValueError:
        return text
    if not math.isfinite(num):
        return text
    return int(num) if num.is_integer() else num


def waypoints_to_rows(waypoints: Iterable[Waypoint], policy: ParsePolicy = ParsePolicy.STRICT) -> List[list]:
    """
    Header row plus one row per point, in the policy's column order.
    Coordinates are rounded to 5 decimals; numeric elevations become numbers.
    """
    rows: List[list] = [header_labels(policy)]
    for p in waypoints:
        row = []
        for role in EXPORT_ROLES[policy]:
            if role in ("lat", "lng"):
                row.append(round(getattr(p, role), config.COORD_DECIMALS))
            elif role in _ELEVATION_FIELDS:
                row.append(_export_number(getattr(p, role)))
            else:
                row.append(getattr(p, role))
        rows.append(row)
    return rows


class WaypointStore:
    """Ordered, id-unique collection of waypoints."""

    def __init__(self, id_scheme: IdScheme = IdScheme.TEMPORARY,
                 type_prefixes: Optional[Dict[str, str]] = None):
        self._points: List[Waypoint] = []
        self._lock = threading.RLock()
        self._counter = 0
        self.id_scheme = id_scheme
        self.type_prefixes = dict(config.TYPE_PREFIXES if type_prefixes is None else type_prefixes)

    # ─── Lookup ───────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Waypoint]:
        return iter(self.get_all())

    def __contains__(self, point_id) -> bool:
        return self.get_by_id(point_id) is not None

    def count(self) -> int:
        return len(self._points)

    def get_all(self) -> List[Waypoint]:
        with self._lock:
            return list(self._points)

    def get_by_id(self, point_id: str) -> Optional[Waypoint]:
        with self._lock:
            for p in self._points:
                if p.id == point_id:
                    return p
        return None

    def ids(self) -> List[str]:
        with self._lock:
            return [p.id for p in self._points]

    def bounds(self) -> Tuple[float, float, float, float]:
        """Returns (min_lat, min_lng, max_lat, max_lng)."""
        points = self.get_all()
        if not points:
            return (0, 0, 0, 0)
        lats = [p.lat for p in points]
        lngs = [p.lng for p in points]
        return (min(lats), min(lngs), max(lats), max(lngs))

    # ─── Id generation ────────────────────────────────────────

    def _next_numbered(self, prefix: str) -> str:
        pattern = re.compile(re.escape(prefix) + r"(\d{2,})")
        used = []
        for point_id in self.ids():
            m = pattern.fullmatch(point_id)
            if m:
                used.append(int(m.group(1)))
        return f"{prefix}{first_free_number(used):02d}"

    def next_id(self, type: str = "") -> str:
        """Allocate an id according to the store's id scheme."""
        with self._lock:
            if self.id_scheme is IdScheme.COUNTER:
                taken = set(self.ids())
                while True:
                    self._counter += 1
                    candidate = f"{config.COUNTER_PREFIX}{self._counter}"
                    if candidate not in taken:
                        return candidate
            if self.id_scheme is IdScheme.TYPED:
                prefix = self.type_prefixes.get(type, config.TEMPORARY_PREFIX)
                return self._next_numbered(prefix)
            return self._next_numbered(config.TEMPORARY_PREFIX)

    # ─── Mutation ─────────────────────────────────────────────

    def add(self, lat: float, lng: float, id: Optional[str] = None,
            elevation="", location: str = "", remarks: str = "",
            type: str = "", gps_elevation="") -> Waypoint:
        if not (is_valid_coordinate(lat) and is_valid_coordinate(lng)):
            raise InvalidCoordinateError(lat, lng)
        with self._lock:
            point_id = id or self.next_id(type)
            if self.get_by_id(point_id) is not None:
                raise DuplicateIdError(point_id)
            point = Waypoint(
                id=point_id,
                lat=float(lat),
                lng=float(lng),
                elevation=normalize_elevation(elevation),
                location=location or "",
                remarks=remarks or "",
                type=type or "",
                gps_elevation=normalize_elevation(gps_elevation),
            )
            self._points.append(point)
        logger.debug("Added point %s at %.5f, %.5f", point.id, point.lat, point.lng)
        return point

    def update(self, point_id: str, updates: Optional[dict] = None, **fields) -> Optional[Waypoint]:
        """
        Merge fields over an existing point. Returns None for an unknown id.

        Elevation fields are re-normalised; coordinates must stay finite and
        a new id must not collide with another point.
        """
        changes = {Waypoint.field_name(k): v for k, v in {**(updates or {}), **fields}.items()}
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown waypoint fields: {', '.join(sorted(unknown))}")

        with self._lock:
            point = self.get_by_id(point_id)
            if point is None:
                return None

            for name in _ELEVATION_FIELDS:
                if name in changes:
                    changes[name] = normalize_elevation(changes[name])

            lat = changes.get("lat", point.lat)
            lng = changes.get("lng", point.lng)
            if not (is_valid_coordinate(lat) and is_valid_coordinate(lng)):
                raise InvalidCoordinateError(lat, lng)

            new_id = changes.get("id", point.id)
            if not new_id:
                changes.pop("id", None)
            elif new_id != point.id and self.get_by_id(new_id) is not None:
                raise DuplicateIdError(new_id)

            for name, value in changes.items():
                if name in ("lat", "lng"):
                    value = float(value)
                elif value is None:
                    value = ""
                setattr(point, name, value)
            return point

    def remove(self, point_id: str) -> Optional[Waypoint]:
        with self._lock:
            for i, p in enumerate(self._points):
                if p.id == point_id:
                    return self._points.pop(i)
        return None

    def replace_all(self, waypoints: Iterable[Waypoint]):
        """Swap the whole collection, as an import does. Later duplicates are dropped."""
        fresh: List[Waypoint] = []
        seen = set()
        for wp in waypoints:
            if wp.id in seen:
                logger.debug("Dropped duplicate id %s", wp.id)
                continue
            seen.add(wp.id)
            fresh.append(wp)
        with self._lock:
            self._points = fresh
        return len(fresh)

    def clear(self):
        with self._lock:
            self._points = []

    # ─── Export ───────────────────────────────────────────────

    def export_rows(self, policy: ParsePolicy = ParsePolicy.STRICT) -> List[list]:
        return waypoints_to_rows(self.get_all(), policy)
