"""
PointGPS — Coordinate notation

Decimal degrees <-> degrees/minutes/seconds text. Accepts both symbol
markers (34°48'30.5") and Japanese markers (34度48分30.5秒), with an optional
sign, N/S/E/W letter or 北緯/南緯/東経/西経 prefix.
"""

from __future__ import annotations
import math
import re
from numbers import Real

NAN = float("nan")

_DMS_RE = re.compile(
    r"(?P<prefix>北緯|南緯|東経|西経|[NSEW])?\s*"
    r"(?P<sign>[-+])?\s*"
    r"(?P<deg>\d+(?:\.\d+)?)\s*[°度]\s*"
    r"(?P<min>\d+(?:\.\d+)?)\s*['′分]\s*"
    r"(?P<sec>\d+(?:\.\d*)?)\s*[\"″秒]\s*"
    r"(?P<suffix>[NSEW])?"
)

_NEGATIVE_MARKERS = {"S", "W", "南緯", "西経"}


def parse_coordinate(raw) -> float:
    """
    Convert a cell value to decimal degrees.

    Numbers are returned unchanged. Text is tried as DMS first, then as a
    plain decimal. Anything else gives NaN, which callers must check for.
    """
    if isinstance(raw, bool):
        return NAN
    if isinstance(raw, Real):
        return float(raw)
    if not isinstance(raw, str):
        return NAN

    text = raw.strip()
    if not text:
        return NAN

    m = _DMS_RE.search(text)
    if m:
        value = (float(m.group("deg"))
                 + float(m.group("min")) / 60
                 + float(m.group("sec")) / 3600)
        negative = (m.group("sign") == "-"
                    or m.group("prefix") in _NEGATIVE_MARKERS
                    or m.group("suffix") in _NEGATIVE_MARKERS)
        return -value if negative else value

    try:
        return float(text)
    except ValueError:
        return NAN


def is_valid_coordinate(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def format_coordinate_dms(decimal: float, is_longitude: bool) -> str:
    """Format as D°M'S.SS"<dir>. Returns an empty string for non-finite input."""
    if not is_valid_coordinate(decimal):
        return ""

    abs_value = abs(decimal)
    degrees = int(math.floor(abs_value))
    minutes = int(math.floor((abs_value - degrees) * 60))
    seconds = round((abs_value - degrees - minutes / 60) * 3600, 2)

    # 59.999 rounds up to 60.00
    if seconds >= 60:
        seconds = 0.0
        minutes += 1
    if minutes >= 60:
        minutes = 0
        degrees += 1

    if is_longitude:
        direction = "E" if decimal >= 0 else "W"
    else:
        direction = "N" if decimal >= 0 else "S"

    return f"{degrees}°{minutes}'{seconds:.2f}\"{direction}"


def format_dms_pair(lat: float, lng: float) -> str:
    """Longitude first, then latitude: 135°28'19.35"E 34°51'13.20"N"""
    return f"{format_coordinate_dms(lng, True)} {format_coordinate_dms(lat, False)}"
