import logging

import pytest

from pointgps.errors import MissingColumnsError
from pointgps.models import ParsePolicy
from pointgps.parser import TableParser, parse_table


def test_strict_sample_row():
    rows = [
        ["ポイントID", "名称", "緯度", "経度", "標高", "備考"],
        ["A-01", "Trailhead", "34.8", "135.4", "123.0", ""],
    ]
    points = parse_table(rows)
    assert len(points) == 1
    wp = points[0]
    assert (wp.id, wp.location, wp.lat, wp.lng) == ("A-01", "Trailhead", 34.8, 135.4)
    assert wp.elevation == "123"
    assert wp.remarks == ""


def test_strict_missing_longitude_header():
    rows = [["ポイントID", "名称", "緯度", "標高"], ["A-01", "x", "34.8", "1"]]
    with pytest.raises(MissingColumnsError, match="経度"):
        parse_table(rows)


def test_empty_input():
    assert parse_table([]) == []
    assert parse_table([["ポイントID", "名称", "緯度", "経度"]]) == []


def test_strict_skips_incomplete_and_bad_rows(strict_rows):
    rows = strict_rows + [
        ["", "No id", "34.1", "135.1", "", ""],
        ["A-03", "", "34.1", "135.1", "", ""],
        ["A-04", "Bad lat", "north", "135.1", "", ""],
        [None, None, None, None, None, None],
        ["A-05", "DMS", "34°48'30.5\"", "135度28分19.35秒", "", "メモ"],
    ]
    points = parse_table(rows)
    assert [p.id for p in points] == ["A-01", "A-02", "A-05"]
    assert points[1].elevation == "812.5"
    assert points[1].remarks == "展望あり"
    assert points[2].lat == pytest.approx(34.808472, abs=1e-6)


def test_strict_reads_type_column():
    rows = [
        ["区分", "ポイントID", "名称", "緯度", "経度"],
        ["山頂", "S-01", "Summit", 34.9, 135.5],
    ]
    wp = parse_table(rows)[0]
    assert wp.type == "山頂"
    assert wp.lat == 34.9


def test_duplicate_ids_keep_first(strict_rows, caplog):
    rows = strict_rows + [["A-01", "Again", "35.0", "136.0", "", ""]]
    with caplog.at_level(logging.DEBUG, logger="pointgps.parser"):
        points = parse_table(rows)
    assert [p.location for p in points] == ["Trailhead", "Summit"]
    assert "duplicate id A-01" in caplog.text


def test_loose_fills_missing_ids():
    rows = [
        ["ポイント", "緯度", "経度", "GPS標高", "場所"],
        ["", "34.1", "135.1", "456.0", "Pass"],
        ["P2", "34.2", "135.2", "", ""],
        ["", "34.3", "135.3", "", ""],
    ]
    points = parse_table(rows, ParsePolicy.LOOSE)
    assert [p.id for p in points] == ["P1", "P2", "P3"]
    assert points[0].gps_elevation == "456"
    assert points[0].location == "Pass"


def test_loose_auto_ids_continue_across_parses():
    rows = [
        ["ID", "緯度", "経度"],
        ["", "34.1", "135.1"],
    ]
    parser = TableParser(ParsePolicy.LOOSE)
    first = parser.parse(rows)
    second = parser.parse(rows)
    assert first[0].id == "P1"
    assert second[0].id == "P2"


def test_loose_without_coordinates_imports_nothing(caplog):
    rows = [["ポイント", "名称"], ["A-01", "x"]]
    with caplog.at_level(logging.WARNING):
        assert parse_table(rows, ParsePolicy.LOOSE) == []
    assert "No latitude/longitude" in caplog.text


def test_loose_auto_id_avoids_ids_typed_later():
    rows = [
        ["ポイント", "緯度", "経度"],
        ["", "34.1", "135.1"],
        ["P1", "34.2", "135.2"],
    ]
    points = parse_table(rows, ParsePolicy.LOOSE)
    assert [(p.id, p.lat) for p in points] == [("P2", 34.1), ("P1", 34.2)]
