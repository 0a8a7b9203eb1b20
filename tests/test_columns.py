import pytest

from pointgps.columns import (
    header_labels, missing_roles, require_columns, resolve_columns,
)
from pointgps.errors import MissingColumnsError
from pointgps.models import ParsePolicy


def test_strict_exact_labels():
    roles = resolve_columns(["ポイントID", "名称", "緯度", "経度", "標高", "備考", "区分"])
    assert roles == {"id": 0, "location": 1, "lat": 2, "lng": 3,
                     "elevation": 4, "remarks": 5, "type": 6}


def test_strict_ignores_near_misses():
    roles = resolve_columns(["ポイント番号", "名称 ", "緯度(度)", None, ""])
    assert roles == {"location": 1}


def test_rightmost_duplicate_header_wins():
    roles = resolve_columns(["緯度", "経度", "緯度"])
    assert roles["lat"] == 2


def test_loose_substring_matching():
    header = ["No", "ポイント番号", "緯度", "経度", "標高", "GPS標高", "場所名"]
    roles = resolve_columns(header, ParsePolicy.LOOSE)
    assert roles == {"id": 1, "lat": 2, "lng": 3, "elevation": 4,
                     "gps_elevation": 5, "location": 6}


def test_loose_location_tokens():
    for label in ("名称", "位置情報", "場所"):
        assert resolve_columns([label], ParsePolicy.LOOSE) == {"location": 0}


def test_missing_roles_keep_required_order():
    assert missing_roles({"id": 0, "lat": 2}, ("id", "location", "lat", "lng")) == ["location", "lng"]


def test_require_columns_names_labels():
    roles = resolve_columns(["ポイントID", "名称", "緯度", "標高"])
    with pytest.raises(MissingColumnsError) as exc:
        require_columns(roles)
    assert exc.value.missing == ["経度"]
    assert "経度" in str(exc.value)


def test_header_labels():
    assert header_labels(ParsePolicy.STRICT) == ["ポイントID", "名称", "緯度", "経度", "標高", "備考", "区分"]
    assert header_labels(ParsePolicy.LOOSE) == ["ポイントID", "緯度", "経度", "標高", "GPS標高", "場所"]


@pytest.mark.parametrize("policy", list(ParsePolicy))
def test_export_header_reads_back(policy):
    labels = header_labels(policy)
    assert len(resolve_columns(labels, policy)) == len(labels)
