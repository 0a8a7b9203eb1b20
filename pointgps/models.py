"""
PointGPS — Data models: Waypoint and the policy enums
"""

from __future__ import annotations
import math
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Dict


class ParsePolicy(Enum):
    """How headers are matched and which rows are accepted."""
    STRICT = "strict"   # exact labels, required columns, remarks
    LOOSE = "loose"     # substring labels, auto ids, no required columns


class IdScheme(Enum):
    COUNTER = "counter"       # P1, P2, ...
    TEMPORARY = "temporary"   # 仮01, 仮02, ... filling gaps
    TYPED = "typed"           # <type prefix>01, ... filling gaps per prefix


class LookupPolicy(Enum):
    """When an elevation is considered missing."""
    NON_POSITIVE = "non_positive"
    EMPTY_OR_ZERO = "empty_or_zero"


# Wire names used in JSON and GeoJSON properties
_WIRE_KEYS = {"gps_elevation": "gpsElevation"}


@dataclass
class Waypoint:
    """A single point with coordinates and descriptive fields."""
    id: str
    lat: float
    lng: float
    elevation: str = ""
    location: str = ""
    remarks: str = ""
    type: str = ""
    gps_elevation: str = ""

    def distance_from(self, other: Waypoint) -> float:
        """Haversine distance in meters."""
        R = 6371000  # Earth radius in meters
        lat1, lat2 = math.radians(self.lat), math.radians(other.lat)
        dlat = math.radians(other.lat - self.lat)
        dlng = math.radians(other.lng - self.lng)
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
        return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    def copy(self) -> Waypoint:
        return replace(self)

    def to_dict(self) -> Dict[str, object]:
        return {_WIRE_KEYS.get(k, k): v for k, v in asdict(self).items()}

    @classmethod
    def field_name(cls, key: str) -> str:
        """Map a wire key (gpsElevation) back to the attribute name."""
        for attr, wire in _WIRE_KEYS.items():
            if key == wire:
                return attr
        return key
