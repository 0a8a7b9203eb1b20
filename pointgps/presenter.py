"""
PointGPS — Presentation adapter

Sits between the waypoint store and whatever draws the map and the point
form. The UI hands over a FormState and gets FormStates and message
strings back; marker objects live here as opaque handles keyed by point id.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from . import config
from .config import MESSAGES, format_message
from .coords import format_dms_pair
from .elevation import ElevationEnricher
from .errors import DuplicatePointError
from .fields import format_point_id, is_valid_point_id_format
from .models import Waypoint
from .store import WaypointStore

logger = logging.getLogger(__name__)

TILE_SIZE = 256


@dataclass
class FormState:
    """Values shown in (or typed into) the point form."""
    point_id: str = ""
    lat_decimal: str = ""
    lng_decimal: str = ""
    dms: str = ""
    elevation: str = ""
    gps_elevation: str = ""
    location: str = ""
    remarks: str = ""
    type: str = ""
    point_count: int = 0


def world_pixels(lat: float, lng: float, zoom: float) -> Tuple[float, float]:
    """Web Mercator pixel position at a zoom level."""
    scale = TILE_SIZE * 2 ** zoom
    lat = max(min(lat, 85.05112878), -85.05112878)
    x = (lng + 180.0) / 360.0 * scale
    lat_rad = math.radians(lat)
    y = (1 - math.log(math.tan(lat_rad / 2 + math.pi / 4)) / math.pi) / 2 * scale
    return x, y


def pixel_distance(a: Tuple[float, float], b: Tuple[float, float], zoom: float) -> float:
    """On-screen distance between two (lat, lng) pairs."""
    ax, ay = world_pixels(a[0], a[1], zoom)
    bx, by = world_pixels(b[0], b[1], zoom)
    return math.hypot(ax - bx, ay - by)


class PointPresenter:

    def __init__(self, store: WaypointStore, enricher: Optional[ElevationEnricher] = None,
                 duplicate_distance: float = config.DUPLICATE_CHECK_DISTANCE):
        self.store = store
        self.enricher = enricher
        self.duplicate_distance = duplicate_distance
        self.handles: Dict[str, Any] = {}
        self.selected_id: Optional[str] = None
        self.adding = False
        self.moving = False

    # ─── Handles ──────────────────────────────────────────────

    def register_handle(self, point_id: str, handle: Any):
        self.handles[point_id] = handle

    def handle_for(self, point_id: str) -> Any:
        return self.handles.get(point_id)

    def reset_handles(self):
        """Forget all markers, e.g. after a new file was loaded."""
        self.handles.clear()
        self.selected_id = None

    # ─── Forms ────────────────────────────────────────────────

    def blank_form(self) -> FormState:
        return FormState(point_count=self.store.count())

    def form_for(self, wp: Waypoint) -> FormState:
        return FormState(
            point_id=wp.id,
            lat_decimal=f"{wp.lat:.5f}",
            lng_decimal=f"{wp.lng:.5f}",
            dms=format_dms_pair(wp.lat, wp.lng),
            elevation=wp.elevation,
            gps_elevation=wp.gps_elevation,
            location=wp.location,
            remarks=wp.remarks,
            type=wp.type,
            point_count=self.store.count(),
        )

    def select(self, point_id: str) -> FormState:
        """Select a point; missing elevations are looked up before the form is built."""
        wp = self.store.get_by_id(point_id)
        if wp is None:
            self.selected_id = None
            return self.blank_form()
        self.selected_id = point_id
        if self.enricher is not None:
            self.enricher.ensure_valid_elevation(point_id)
        return self.form_for(wp)

    def apply_form(self, form: FormState) -> str:
        """Write edited form fields back to the selected point."""
        if self.selected_id is None:
            return MESSAGES["NO_POINT_SELECTED"]

        new_id = format_point_id(form.point_id.strip()) or self.selected_id
        if new_id != self.selected_id and not is_valid_point_id_format(new_id):
            return format_message(MESSAGES["INVALID_POINT_ID"], id=new_id)

        old_id = self.selected_id
        self.store.update(old_id, {
            "id": new_id,
            "elevation": form.elevation,
            "gps_elevation": form.gps_elevation,
            "location": form.location,
            "remarks": form.remarks,
            "type": form.type,
        })
        if new_id != old_id:
            if old_id in self.handles:
                self.handles[new_id] = self.handles.pop(old_id)
            self.selected_id = new_id
        return format_message(MESSAGES["POINT_UPDATED"], id=new_id)

    # ─── Map actions ──────────────────────────────────────────

    def find_nearby(self, lat: float, lng: float, zoom: float) -> Optional[Waypoint]:
        """First point closer than the duplicate distance on screen."""
        for wp in self.store.get_all():
            if pixel_distance((lat, lng), (wp.lat, wp.lng), zoom) < self.duplicate_distance:
                return wp
        return None

    def add_at(self, lat: float, lng: float, zoom: Optional[float] = None) -> Tuple[Waypoint, str]:
        """Add a point where the map was clicked. With a zoom, refuses near-duplicates."""
        if zoom is not None:
            existing = self.find_nearby(lat, lng, zoom)
            if existing is not None:
                logger.info("Refused new point next to %s", existing.id)
                raise DuplicatePointError(
                    existing.id,
                    format_message(MESSAGES["DUPLICATE_POINT_WARNING"], id=existing.id))
        wp = self.store.add(lat, lng)
        self.selected_id = wp.id
        self.adding = False
        return wp, format_message(MESSAGES["POINT_ADDED"], id=wp.id)

    def move(self, point_id: str, lat: float, lng: float) -> Optional[str]:
        if self.store.update(point_id, lat=lat, lng=lng) is None:
            return None
        return format_message(MESSAGES["POINT_MOVED"], id=point_id)

    def delete_selected(self) -> str:
        if self.selected_id is None:
            return MESSAGES["NO_POINT_SELECTED"]
        point_id = self.selected_id
        self.store.remove(point_id)
        self.handles.pop(point_id, None)
        self.selected_id = None
        return format_message(MESSAGES["POINT_DELETED"], id=point_id)

    def cancel_modes(self):
        self.adding = False
        self.moving = False
