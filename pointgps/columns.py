"""
PointGPS — Header row → column roles

A role map is a plain dict {role: column index}, rebuilt for every parse.
Each cell claims at most one role (first rule that matches). When several
cells match the same role the right-most one wins.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Sequence

from . import config
from .errors import MissingColumnsError
from .models import ParsePolicy

ColumnRoleMap = Dict[str, int]

# Rule order per policy; the first matching rule claims the cell
_STRICT_ORDER = ("id", "location", "lat", "lng", "elevation", "remarks", "type")

# Export column order per policy
EXPORT_ROLES = {
    ParsePolicy.STRICT: ("id", "location", "lat", "lng", "elevation", "remarks", "type"),
    ParsePolicy.LOOSE: ("id", "lat", "lng", "elevation", "gps_elevation", "location"),
}


def _match_strict(header: str) -> Optional[str]:
    for role in _STRICT_ORDER:
        if header == config.STRICT_LABELS[role]:
            return role
    return None


def _match_loose(header: str) -> Optional[str]:
    if config.LOOSE_ID_TOKEN in header:
        return "id"
    for role, label in config.LOOSE_EXACT_LABELS.items():
        if header == label:
            return role
    if any(token in header for token in config.LOOSE_LOCATION_TOKENS):
        return "location"
    return None


def resolve_columns(header_row: Sequence, policy: ParsePolicy = ParsePolicy.STRICT) -> ColumnRoleMap:
    """Map semantic roles to zero-based column positions."""
    match = _match_strict if policy is ParsePolicy.STRICT else _match_loose
    roles: ColumnRoleMap = {}
    for i, cell in enumerate(header_row):
        header = "" if cell is None else str(cell).strip()
        if not header:
            continue
        role = match(header)
        if role is not None:
            roles[role] = i
    return roles


def missing_roles(roles: ColumnRoleMap, required: Sequence[str]) -> List[str]:
    return [role for role in required if role not in roles]


def require_columns(roles: ColumnRoleMap, required: Sequence[str] = config.STRICT_REQUIRED):
    """Raise MissingColumnsError naming the absent header labels."""
    missing = missing_roles(roles, required)
    if missing:
        raise MissingColumnsError(config.STRICT_LABELS.get(r, r) for r in missing)


def header_labels(policy: ParsePolicy) -> List[str]:
    """Export header, in column order, for a policy."""
    if policy is ParsePolicy.STRICT:
        return [config.STRICT_LABELS[r] for r in EXPORT_ROLES[policy]]
    return [config.LOOSE_LABELS[r] for r in EXPORT_ROLES[policy]]
