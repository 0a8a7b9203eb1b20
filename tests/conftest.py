"""Shared fixtures: sample sheets and an offline elevation fetcher."""

from __future__ import annotations

import pytest

from pointgps.models import IdScheme
from pointgps.store import WaypointStore

STRICT_HEADER = ["ポイントID", "名称", "緯度", "経度", "標高", "備考"]


class SpyFetcher:
    """Records every lookup and answers with a fixed value."""

    def __init__(self, result=250):
        self.result = result
        self.calls = []

    def __call__(self, lat, lng):
        self.calls.append((lat, lng))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def strict_rows():
    return [
        STRICT_HEADER,
        ["A-01", "Trailhead", "34.8", "135.4", "123.0", ""],
        ["A-02", "Summit", "34.85367", "135.47204", "812.45", "展望あり"],
    ]


@pytest.fixture
def store():
    return WaypointStore(IdScheme.TEMPORARY)


@pytest.fixture
def spy_fetcher():
    return SpyFetcher()
