"""
PointGPS — Table rows → waypoints

Row 0 is always the header. Rows that fail validation are skipped, never
raised; only a structurally broken header (strict policy) is an error.
"""

from __future__ import annotations
import logging
import math
from typing import List, Optional, Sequence, Set

from . import config
from .columns import ColumnRoleMap, require_columns, resolve_columns
from .coords import parse_coordinate
from .fields import get_cell_text, is_blank_row, normalize_elevation
from .models import ParsePolicy, Waypoint

logger = logging.getLogger(__name__)

Rows = Sequence[Sequence]


class TableParser:
    """
    Turns spreadsheet rows into waypoints.

    Under STRICT a row needs id, name and both coordinates; a header
    without those columns raises MissingColumnsError. Under LOOSE a header
    without latitude/longitude yields no records, and blank ids are filled
    in as P1, P2, ...
    """

    def __init__(self, policy: ParsePolicy = ParsePolicy.STRICT):
        self.policy = policy
        self._counter = 0

    def _next_auto_id(self, taken: Set[str]) -> str:
        while True:
            self._counter += 1
            candidate = f"{config.COUNTER_PREFIX}{self._counter}"
            if candidate not in taken:
                return candidate

    def parse(self, rows: Rows, roles: Optional[ColumnRoleMap] = None) -> List[Waypoint]:
        if not rows:
            return []

        if roles is None:
            roles = resolve_columns(rows[0], self.policy)

        strict = self.policy is ParsePolicy.STRICT
        if strict:
            require_columns(roles)
        elif "lat" not in roles or "lng" not in roles:
            logger.warning("No latitude/longitude columns in header, nothing imported")
            return []

        waypoints: List[Waypoint] = []
        taken: Set[str] = set()
        # Ids typed further down must not be handed out as auto ids
        explicit = {get_cell_text(row, roles.get("id")) for row in rows[1:] if row} - {""}

        for row_num, row in enumerate(rows[1:], start=2):
            if not row or is_blank_row(row):
                continue

            point_id = get_cell_text(row, roles.get("id"))
            location = get_cell_text(row, roles.get("location"))
            lat_text = get_cell_text(row, roles.get("lat"))
            lng_text = get_cell_text(row, roles.get("lng"))

            if strict and not (point_id and location and lat_text and lng_text):
                logger.debug("Row %d skipped: missing required cell", row_num)
                continue

            lat = parse_coordinate(lat_text)
            lng = parse_coordinate(lng_text)
            if not (math.isfinite(lat) and math.isfinite(lng)):
                logger.debug("Row %d skipped: bad coordinates %r, %r", row_num, lat_text, lng_text)
                continue

            if not point_id:
                point_id = self._next_auto_id(taken | explicit)
            if point_id in taken:
                logger.debug("Row %d skipped: duplicate id %s", row_num, point_id)
                continue
            taken.add(point_id)

            wp = Waypoint(
                id=point_id,
                lat=lat,
                lng=lng,
                elevation=normalize_elevation(get_cell_text(row, roles.get("elevation"))),
                location=location,
            )
            if strict:
                wp.remarks = get_cell_text(row, roles.get("remarks"))
                wp.type = get_cell_text(row, roles.get("type"))
            else:
                wp.gps_elevation = normalize_elevation(get_cell_text(row, roles.get("gps_elevation")))
            waypoints.append(wp)

        logger.info("Parsed %d waypoints from %d data rows", len(waypoints), len(rows) - 1)
        return waypoints


def parse_table(rows: Rows, policy: ParsePolicy = ParsePolicy.STRICT) -> List[Waypoint]:
    return TableParser(policy).parse(rows)
