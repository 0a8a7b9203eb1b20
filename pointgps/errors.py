"""
PointGPS — Error types

Row-level problems are never raised: a bad row is skipped and logged.
Lookups by unknown id return None rather than raising.
"""

from __future__ import annotations
from typing import Iterable, List


class PointGpsError(Exception):
    """Base class for all PointGPS errors."""


class MissingColumnsError(PointGpsError, ValueError):
    """Required columns are absent from the header row. Import is aborted."""

    SEPARATOR = "、"

    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(f"必須列が見つかりません: {self.SEPARATOR.join(self.missing)}")


class InvalidCoordinateError(PointGpsError, ValueError):
    """Latitude or longitude is not a finite number."""

    def __init__(self, lat, lng):
        self.lat = lat
        self.lng = lng
        super().__init__(f"Invalid coordinates: lat={lat!r}, lng={lng!r}")


class DuplicateIdError(PointGpsError, ValueError):
    def __init__(self, point_id: str):
        self.point_id = point_id
        super().__init__(f"Point id already exists: {point_id}")


class DuplicatePointError(PointGpsError):
    """A new point would sit on top of an existing one at the current zoom."""

    def __init__(self, existing_id: str, message: str = ""):
        self.existing_id = existing_id
        super().__init__(message or f"Too close to existing point {existing_id}")


class UnsupportedFormatError(PointGpsError, ValueError):
    def __init__(self, ext: str, supported: Iterable[str]):
        self.ext = ext
        super().__init__(f"Unsupported format: .{ext}\n"
                         f"Supported: {', '.join(supported)}")
