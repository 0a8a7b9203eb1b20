"""
PointGPS — File Readers & Writers

Supported formats:
  Read & Write: XLSX (first sheet), CSV, GeoJSON (Point features)

Readers accept a path or the raw file bytes and return an ImportResult.
Writers return the encoded bytes and also write them when given a target.
"""

from __future__ import annotations
import csv
import io
import json
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from openpyxl import Workbook, load_workbook

from . import config
from .coords import parse_coordinate
from .errors import UnsupportedFormatError
from .fields import is_blank_row, normalize_elevation
from .models import ParsePolicy, Waypoint
from .parser import TableParser
from .store import waypoints_to_rows

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes]
Target = Optional[Union[str, Path]]

# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────


@dataclass
class SheetData:
    """Rows of the first sheet, header included."""
    rows: List[list]
    truncated: bool = False


@dataclass
class ImportResult:
    waypoints: List[Waypoint] = field(default_factory=list)
    truncated: bool = False
    max_rows: int = config.MAX_ROWS


def default_export_name(today: Optional[date] = None) -> str:
    """ポイントGPS-yyyymmdd"""
    today = today or date.today()
    return f"{config.EXPORT_NAME_PREFIX}-{today:%Y%m%d}"


def _as_stream(source: Source):
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    return source


def _cap_rows(rows, max_rows: Optional[int]) -> SheetData:
    """Keep the first max_rows rows; blank rows past the cap do not count as truncation."""
    kept: List[list] = []
    truncated = False
    for values in rows:
        if max_rows and len(kept) >= max_rows:
            if not is_blank_row(values):
                truncated = True
                break
            continue
        kept.append(list(values))
    if truncated:
        logger.warning("Sheet truncated to the first %d rows", max_rows)
    return SheetData(kept, truncated)


def _emit(data: bytes, target: Target) -> bytes:
    if target is not None:
        with open(target, "wb") as f:
            f.write(data)
    return data


# ─────────────────────────────────────────────────────────────
# XLSX (Excel workbook) - .xlsx
# ─────────────────────────────────────────────────────────────

def read_xlsx_rows(source: Source, max_rows: Optional[int] = config.MAX_ROWS) -> SheetData:
    """Read the first worksheet as a list of rows (cells: str, number or None)."""
    wb = load_workbook(_as_stream(source), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return _cap_rows(ws.iter_rows(values_only=True), max_rows)
    finally:
        wb.close()


def write_xlsx_rows(rows: List[list], target: Target = None) -> bytes:
    """Write rows to a single-sheet workbook. Empty strings become empty cells."""
    wb = Workbook()
    ws = wb.active
    ws.title = config.SHEET_TITLE
    for r, row in enumerate(rows, start=1):
        for c, value in enumerate(row, start=1):
            if value is None or value == "":
                continue
            cell = ws.cell(row=r, column=c, value=value)
            # Text such as "=山頂" is a label, not a formula
            if isinstance(value, str) and value.startswith("="):
                cell.data_type = "s"
    buf = io.BytesIO()
    wb.save(buf)
    return _emit(buf.getvalue(), target)


def read_xlsx(source: Source, policy: ParsePolicy = ParsePolicy.STRICT,
              max_rows: Optional[int] = config.MAX_ROWS) -> ImportResult:
    """Read an Excel sheet of points."""
    sheet = read_xlsx_rows(source, max_rows)
    waypoints = TableParser(policy).parse(sheet.rows)
    return ImportResult(waypoints, sheet.truncated, max_rows)


def write_xlsx(target: Target, waypoints: List[Waypoint],
               policy: ParsePolicy = ParsePolicy.STRICT) -> bytes:
    """Write points to an Excel sheet."""
    return write_xlsx_rows(waypoints_to_rows(waypoints, policy), target)


# ─────────────────────────────────────────────────────────────
# CSV (Comma Separated Values) - .csv
# ─────────────────────────────────────────────────────────────

def read_csv_rows(source: Source, max_rows: Optional[int] = config.MAX_ROWS) -> SheetData:
    """Read CSV text (UTF-8, BOM tolerated). All cells come back as text."""
    if isinstance(source, (bytes, bytearray)):
        text = bytes(source).decode("utf-8-sig")
    else:
        with open(source, "r", encoding="utf-8-sig", newline="") as f:
            text = f.read()
    return _cap_rows(csv.reader(io.StringIO(text, newline="")), max_rows)


def write_csv_rows(rows: List[list], target: Target = None) -> bytes:
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, lineterminator="\r\n")
    for row in rows:
        writer.writerow(["" if cell is None else cell for cell in row])
    # BOM so spreadsheet applications detect UTF-8
    return _emit(buf.getvalue().encode("utf-8-sig"), target)


def read_csv(source: Source, policy: ParsePolicy = ParsePolicy.STRICT,
             max_rows: Optional[int] = config.MAX_ROWS) -> ImportResult:
    """Read a CSV table of points."""
    sheet = read_csv_rows(source, max_rows)
    waypoints = TableParser(policy).parse(sheet.rows)
    return ImportResult(waypoints, sheet.truncated, max_rows)


def write_csv(target: Target, waypoints: List[Waypoint],
              policy: ParsePolicy = ParsePolicy.STRICT) -> bytes:
    """Write points as CSV."""
    return write_csv_rows(waypoints_to_rows(waypoints, policy), target)


# ─────────────────────────────────────────────────────────────
# GeoJSON - .geojson
# ─────────────────────────────────────────────────────────────

def _first_prop(props: dict, *keys) -> str:
    for key in keys:
        value = props.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def waypoints_to_geojson(waypoints: List[Waypoint]) -> dict:
    features = []
    for wp in waypoints:
        props = {"id": wp.id, "elevation": wp.elevation, "location": wp.location}
        if wp.gps_elevation:
            props["gpsElevation"] = wp.gps_elevation
        if wp.remarks:
            props["remarks"] = wp.remarks
        if wp.type:
            props["type"] = wp.type
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [wp.lng, wp.lat]},
            "properties": props,
        })
    return {"type": "FeatureCollection", "features": features}


def waypoints_from_geojson(data: dict, id_factory: Optional[Callable[[], str]] = None) -> List[Waypoint]:
    """Point features of a FeatureCollection. Other geometries are ignored."""
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection" \
            or not isinstance(data.get("features"), list):
        raise ValueError("無効なGeoJSON形式です")

    counter = 0

    def _auto_id() -> str:
        nonlocal counter
        if id_factory is not None:
            return id_factory()
        counter += 1
        return f"{config.COUNTER_PREFIX}{counter}"

    waypoints: List[Waypoint] = []
    taken = set()
    for feat in data["features"]:
        if not isinstance(feat, dict) or feat.get("type") != "Feature":
            continue
        geom = feat.get("geometry") or {}
        coords = geom.get("coordinates")
        if geom.get("type") != "Point" or not isinstance(coords, list) or len(coords) < 2:
            continue
        lng = parse_coordinate(coords[0])
        lat = parse_coordinate(coords[1])
        if not (math.isfinite(lat) and math.isfinite(lng)):
            continue

        props = feat.get("properties") or {}
        point_id = _first_prop(props, "id", "name")
        while not point_id or point_id in taken:
            if point_id:
                logger.debug("Duplicate GeoJSON id %s renamed", point_id)
            point_id = _auto_id()
        taken.add(point_id)

        waypoints.append(Waypoint(
            id=point_id,
            lat=lat,
            lng=lng,
            elevation=normalize_elevation(_first_prop(props, "elevation", "標高")),
            gps_elevation=normalize_elevation(_first_prop(props, "gpsElevation", "GPS標高")),
            location=_first_prop(props, "location", "場所", "位置"),
            remarks=_first_prop(props, "remarks", "備考"),
            type=_first_prop(props, "type", "区分"),
        ))
    return waypoints


def read_geojson(source: Source) -> ImportResult:
    """Read a GeoJSON FeatureCollection of points."""
    if isinstance(source, (bytes, bytearray)):
        data = json.loads(bytes(source).decode("utf-8-sig"))
    else:
        with open(source, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    return ImportResult(waypoints_from_geojson(data))


def write_geojson(target: Target, waypoints: List[Waypoint]) -> bytes:
    """Write points as a GeoJSON FeatureCollection."""
    text = json.dumps(waypoints_to_geojson(waypoints), indent=2, ensure_ascii=False)
    return _emit(text.encode("utf-8"), target)


# ─────────────────────────────────────────────────────────────
# Format Registry
# ─────────────────────────────────────────────────────────────

@dataclass
class FormatDesc:
    """Description of a file format."""
    extension: str
    name: str
    reader: Optional[Callable] = None
    writer: Optional[Callable] = None
    mime: str = "application/octet-stream"


FORMAT_REGISTRY: List[FormatDesc] = [
    FormatDesc("xlsx",    "Excel Workbook",         read_xlsx,    write_xlsx,    config.XLSX_MIME),
    FormatDesc("csv",     "Comma Separated Values", read_csv,     write_csv,     "text/csv"),
    FormatDesc("geojson", "GeoJSON",                read_geojson, write_geojson, "application/geo+json"),
]

_READERS: Dict[str, Callable] = {}
_WRITERS: Dict[str, Callable] = {}
_FORMAT_BY_EXT: Dict[str, FormatDesc] = {}

for fmt in FORMAT_REGISTRY:
    _FORMAT_BY_EXT[fmt.extension] = fmt
    if fmt.reader:
        _READERS[fmt.extension] = fmt.reader
    if fmt.writer:
        _WRITERS[fmt.extension] = fmt.writer


def get_format(ext: str) -> Optional[FormatDesc]:
    """Get format descriptor by extension."""
    return _FORMAT_BY_EXT.get(ext.lower().lstrip("."))


def supported_input_formats() -> List[str]:
    return sorted(_READERS.keys())


def supported_output_formats() -> List[str]:
    return sorted(_WRITERS.keys())


def _filter_kwargs(func: Callable, opts: dict) -> dict:
    """Filter kwargs to only include parameters accepted by the function."""
    import inspect
    sig = inspect.signature(func)
    if any(p.kind == inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values()):
        return opts
    valid = set(sig.parameters.keys())
    return {k: v for k, v in opts.items() if k in valid}


def _extension(filepath: Union[str, Path]) -> str:
    return Path(filepath).suffix.lower().lstrip(".")


def read_file(filepath: Union[str, Path], data: Optional[bytes] = None, **opts) -> ImportResult:
    """
    Read points, picking the reader from the file extension.
    With `data`, the bytes are parsed and `filepath` only names the format.
    """
    ext = _extension(filepath)
    reader = _READERS.get(ext)
    if not reader:
        raise UnsupportedFormatError(ext, supported_input_formats())
    result = reader(filepath if data is None else data, **_filter_kwargs(reader, opts))
    logger.info("Read %d points from %s", len(result.waypoints), filepath)
    return result


def write_file(filepath: Target, waypoints: List[Waypoint], ext: str = "", **opts) -> bytes:
    """
    Write points, picking the writer from `ext` or the file extension.
    With filepath=None only the encoded bytes are returned.
    """
    ext = (ext or _extension(filepath or "")).lower().lstrip(".")
    writer = _WRITERS.get(ext)
    if not writer:
        raise UnsupportedFormatError(ext, supported_output_formats())
    return writer(filepath, list(waypoints), **_filter_kwargs(writer, opts))


def convert(input_path: Union[str, Path], output_path: Union[str, Path], **opts) -> List[Waypoint]:
    """Convert a point file from one format to another."""
    result = read_file(input_path, **opts)
    if not result.waypoints:
        raise ValueError(f"No points found in {input_path}")
    write_file(output_path, result.waypoints, **opts)
    return result.waypoints
