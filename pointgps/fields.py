"""
PointGPS — Cell and field normalisation

Elevation values, point identifiers and raw spreadsheet cells.
"""

from __future__ import annotations
import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from numbers import Real
from typing import Optional, Sequence

from .models import LookupPolicy

# ─────────────────────────────────────────────────────────────
# Elevation
# ─────────────────────────────────────────────────────────────

_ONE_DECIMAL = Decimal("0.1")


def _to_number(value) -> Optional[float]:
    """Finite float for numbers and numeric text, otherwise None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Real):
        num = float(value)
    else:
        try:
            num = float(str(value).strip())
        except ValueError:
            return None
    return num if math.isfinite(num) else None


def normalize_elevation(raw) -> str:
    """
    Canonical elevation text.

    Numbers are rounded half-up to one decimal (on their decimal text, so
    "123.45" gives "123.5"); a zero fraction collapses to the integer
    ("123.0" gives "123"). Non-numeric text is returned trimmed.
    """
    if raw is None:
        return ""
    text = str(raw).strip()
    if text == "":
        return ""

    num = _to_number(raw)
    if num is None:
        return text

    try:
        source = Decimal(text) if isinstance(raw, str) else Decimal(str(num))
        q = source.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        q = Decimal(f"{num:.1f}")

    if q == q.to_integral_value():
        return str(int(q))
    return format(q, "f")


def is_positive_elevation(value) -> bool:
    num = _to_number(value)
    return num is not None and num > 0


def needs_elevation_lookup(value, policy: LookupPolicy = LookupPolicy.NON_POSITIVE) -> bool:
    """
    Whether a stored elevation should be replaced by a remote lookup.

    NON_POSITIVE: anything that is not a positive number (blank included).
    EMPTY_OR_ZERO: only blank or exactly zero; negative and non-numeric
    values are left alone.
    """
    if policy is LookupPolicy.NON_POSITIVE:
        return not is_positive_elevation(value)

    if value is None or str(value).strip() == "":
        return True
    num = _to_number(value)
    if num is None:
        return False
    return num == 0


# ─────────────────────────────────────────────────────────────
# Point identifiers
# ─────────────────────────────────────────────────────────────

_HYPHENS = "－−‐―"
_HALF_WIDTH = {ord(c): ord(c) - 0xFEE0 for c in
               "ＡＢＣＤＥＦＧＨＩＪＫＬＭＮＯＰＱＲＳＴＵＶＷＸＹＺ"
               "ａｂｃｄｅｆｇｈｉｊｋｌｍｎｏｐｑｒｓｔｕｖｗｘｙｚ"
               "０１２３４５６７８９"}
_HALF_WIDTH.update({ord(c): ord("-") for c in _HYPHENS})

_WHITESPACE_RE = re.compile(r"[\s　]")
_NON_LATIN_RE = re.compile(r"[^\x00-\x7f\s　]")
_LETTER_HYPHEN_DIGIT_RE = re.compile(r"([A-Z]+)-([0-9])")
_TRAILING_DIGIT_RE = re.compile(r"(.*)([0-9])")
_TWO_DIGIT_END_RE = re.compile(r".*[0-9]{2}")
_SHORT_ID_RE = re.compile(r"([A-Z]+)([0-9]{2})")
_POINT_ID_RE = re.compile(r"[A-Z]-[0-9]{2}")


def to_half_width(text: str) -> str:
    """Full-width Latin letters, digits and hyphens to ASCII, letters upper-cased."""
    return text.translate(_HALF_WIDTH).upper()


def format_point_id(raw):
    """
    Reshape a typed identifier toward the X-nn form. Never rejects input.

        "a1" -> "A-01", "Ａ１" -> "A-01", "A-1" -> "A-01", "A12" -> "A12"

    Identifiers containing kana, kanji or other non-Latin script are only
    width-normalised.
    """
    if not isinstance(raw, str):
        return raw
    original = raw.strip()
    if original == "":
        return raw

    converted = to_half_width(original)
    if _NON_LATIN_RE.search(converted):
        return converted

    converted = _WHITESPACE_RE.sub("", converted)
    if converted == "":
        return original

    m = _LETTER_HYPHEN_DIGIT_RE.fullmatch(converted)
    if m:
        return f"{m.group(1)}-0{m.group(2)}"

    padded = False
    m = _TRAILING_DIGIT_RE.fullmatch(converted)
    if m and not m.group(1).endswith("-") and not _TWO_DIGIT_END_RE.fullmatch(converted):
        converted = f"{m.group(1)}0{m.group(2)}"
        padded = True

    # Only a freshly padded short id gets a hyphen; "A12" is left as typed
    if padded and len(converted) <= 3 and "-" not in converted:
        m = _SHORT_ID_RE.fullmatch(converted)
        if m:
            return f"{m.group(1)}-{m.group(2)}"

    return converted


def is_valid_point_id_format(value) -> bool:
    """Blank counts as valid; otherwise exactly one capital, a hyphen, two digits."""
    if value is None or str(value).strip() == "":
        return True
    return bool(_POINT_ID_RE.fullmatch(str(value)))


# ─────────────────────────────────────────────────────────────
# Cells
# ─────────────────────────────────────────────────────────────

def get_cell_text(row: Sequence, index: Optional[int]) -> str:
    if index is None or index < 0 or index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value).strip()


def is_blank_row(row: Sequence) -> bool:
    return all(cell is None or str(cell).strip() == "" for cell in row)
