import math

import pytest

from pointgps.coords import (
    format_coordinate_dms, format_dms_pair, is_valid_coordinate, parse_coordinate,
)

ONE_HUNDREDTH_SECOND = 0.01 / 3600


def test_parse_symbol_dms():
    expected = 34 + 48 / 60 + 30.5 / 3600
    assert parse_coordinate("34°48'30.5\"") == pytest.approx(expected)


def test_parse_japanese_dms():
    expected = 135 + 28 / 60 + 19.35 / 3600
    assert parse_coordinate("135度28分19.35秒") == pytest.approx(expected)


@pytest.mark.parametrize("text", ["-34°48'30.5\"", "34°48'30.5\"S", "南緯34度48分30.5秒"])
def test_parse_negative_markers(text):
    assert parse_coordinate(text) == pytest.approx(-(34 + 48 / 60 + 30.5 / 3600))


def test_parse_plain_decimal_and_numbers():
    assert parse_coordinate(" 135.5 ") == 135.5
    assert parse_coordinate(34) == 34.0
    assert parse_coordinate(34.25) == 34.25


@pytest.mark.parametrize("raw", ["", "abc", None, True, [34]])
def test_parse_garbage_is_nan(raw):
    assert math.isnan(parse_coordinate(raw))


def test_is_valid_coordinate():
    assert is_valid_coordinate(34.5)
    assert not is_valid_coordinate(float("nan"))
    assert not is_valid_coordinate(float("inf"))
    assert not is_valid_coordinate("34.5")
    assert not is_valid_coordinate(True)


def test_format_dms_directions():
    assert format_coordinate_dms(34.5, False) == "34°30'0.00\"N"
    assert format_coordinate_dms(-34.5, False) == "34°30'0.00\"S"
    assert format_coordinate_dms(135.25, True) == "135°15'0.00\"E"
    assert format_coordinate_dms(-135.25, True) == "135°15'0.00\"W"


def test_format_dms_carries_sixty_seconds():
    assert format_coordinate_dms(34.99999999, False) == "35°0'0.00\"N"


def test_format_dms_non_finite_is_empty():
    assert format_coordinate_dms(float("nan"), False) == ""
    assert format_coordinate_dms(float("inf"), True) == ""


def test_dms_pair_puts_longitude_first():
    assert format_dms_pair(34.5, 135.25) == "135°15'0.00\"E 34°30'0.00\"N"


@pytest.mark.parametrize("value, is_lng", [
    (34.853667, False),
    (-33.8688197, False),
    (135.472042, True),
    (-70.6692655, True),
    (0.0001, False),
])
def test_dms_survives_format_and_parse(value, is_lng):
    text = format_coordinate_dms(value, is_lng)
    assert abs(parse_coordinate(text) - value) <= ONE_HUNDREDTH_SECOND
