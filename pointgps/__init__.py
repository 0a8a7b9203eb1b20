"""
PointGPS — Waypoint spreadsheet editor core
==========================================
Import points from Excel/CSV/GeoJSON, edit them, fill missing elevations
from the GSI elevation service, and export them again.

Quick start:
    pointgps points.xlsx --info          # CLI
    pointgps-server --static ./web       # JSON API for a map UI

Library:
    from pointgps import read_file, WaypointStore
    result = read_file("points.xlsx")
    store = WaypointStore()
    store.replace_all(result.waypoints)
"""

from .models import Waypoint, ParsePolicy, IdScheme, LookupPolicy
from .store import WaypointStore
from .parser import TableParser, parse_table
from .columns import resolve_columns
from .coords import parse_coordinate, format_coordinate_dms
from .fields import (
    normalize_elevation, is_positive_elevation, needs_elevation_lookup,
    format_point_id, is_valid_point_id_format, get_cell_text, is_blank_row,
)
from .elevation import ElevationEnricher, fetch_elevation
from .errors import PointGpsError, MissingColumnsError
from .formats import (
    read_file, write_file, convert,
    supported_input_formats, supported_output_formats,
    get_format, FORMAT_REGISTRY,
)

__version__ = "1.0.0"
__all__ = [
    "Waypoint", "ParsePolicy", "IdScheme", "LookupPolicy", "WaypointStore",
    "TableParser", "parse_table", "resolve_columns",
    "parse_coordinate", "format_coordinate_dms",
    "normalize_elevation", "is_positive_elevation", "needs_elevation_lookup",
    "format_point_id", "is_valid_point_id_format", "get_cell_text", "is_blank_row",
    "ElevationEnricher", "fetch_elevation", "PointGpsError", "MissingColumnsError",
    "read_file", "write_file", "convert",
    "supported_input_formats", "supported_output_formats",
    "get_format", "FORMAT_REGISTRY",
]
