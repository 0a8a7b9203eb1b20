import base64
import json
import threading
import urllib.error
import urllib.request

import pytest

from conftest import SpyFetcher
from pointgps.formats import write_file
from pointgps.models import Waypoint
from pointgps.server import PointApp, make_server


@pytest.fixture
def api():
    app = PointApp(fetcher=SpyFetcher(480))
    server = make_server(app, port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{server.server_address[1]}"

    def call(path, body=None):
        data = None if body is None else json.dumps(body).encode("utf-8")
        req = urllib.request.Request(base + path, data=data,
                                     headers={"Content-Type": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=5) as resp:
                return resp.status, json.loads(resp.read())
        except urllib.error.HTTPError as e:
            return e.code, json.loads(e.read())

    call.app = app
    yield call
    server.shutdown()
    server.server_close()


def _upload(points, name="points.xlsx"):
    data = write_file(None, points, ext=name.rsplit(".", 1)[1])
    return {"filename": name, "data": base64.b64encode(data).decode("ascii")}


def test_about_and_formats(api):
    status, about = api("/api/about")
    assert status == 200
    assert about["policy"] == "strict"
    assert about["map"]["zoom"] > 0
    _, formats = api("/api/formats")
    assert {"ext": "xlsx", "name": "Excel Workbook"} in formats["input"]


def test_import_then_export(api):
    status, body = api("/api/import", _upload([
        Waypoint("A-01", 34.8, 135.4, elevation="123", location="Trailhead"),
        Waypoint("A-02", 34.9, 135.5, location="Summit"),
    ]))
    assert status == 200
    assert body["count"] == 2
    assert body["messages"] == ["2個のポイントを読み込みました"]
    assert [p["id"] for p in body["points"]] == ["A-01", "A-02"]

    status, out = api("/api/export", {"format": "geojson", "name": "trip"})
    assert status == 200
    assert out["filename"] == "trip.geojson"
    features = json.loads(base64.b64decode(out["data"]))["features"]
    assert len(features) == 2


def test_import_missing_column_is_bad_request(api):
    data = "ポイントID,名称,緯度\nA-01,x,34\n".encode("utf-8")
    status, body = api("/api/import", {"filename": "bad.csv",
                                       "data": base64.b64encode(data).decode("ascii")})
    assert status == 400
    assert "経度" in body["error"]


def test_add_update_delete(api):
    status, added = api("/api/points", {"lat": 34.0, "lng": 135.0, "zoom": 15})
    assert status == 200
    assert added["point"]["id"] == "仮01"

    status, _ = api("/api/points", {"lat": 34.00001, "lng": 135.00001, "zoom": 15})
    assert status == 409

    status, updated = api("/api/points/update", {"id": "仮01", "newId": "A-01", "gpsElevation": "99.95"})
    assert status == 200
    assert updated["point"]["id"] == "A-01"
    assert updated["point"]["gpsElevation"] == "100"

    status, _ = api("/api/points/update", {"id": "nope", "location": "x"})
    assert status == 404

    status, deleted = api("/api/points/delete", {"id": "A-01"})
    assert status == 200
    assert deleted["message"] == "ポイント A-01 を削除しました"
    _, listing = api("/api/points")
    assert listing["points"] == []


def test_elevation_lookup(api):
    api("/api/points", {"lat": 34.0, "lng": 135.0})
    status, body = api("/api/elevation", {"id": "仮01"})
    assert status == 200
    assert body == {"id": "仮01", "elevation": "480"}
    status, _ = api("/api/elevation", {"id": "nope"})
    assert status == 404


def test_format_id(api):
    _, body = api("/api/format-id", {"value": "ａ１"})
    assert body == {"value": "A-01", "valid": True}


def test_unknown_route(api):
    status, _ = api("/api/nothing", {})
    assert status == 404
    status, _ = api("/api/nothing")
    assert status == 404


def test_enrichment_runs_one_loop_at_a_time():
    release = threading.Event()
    guard = threading.Lock()
    active = []
    peak = []

    def slow_fetcher(lat, lng):
        with guard:
            active.append(lat)
            peak.append(len(active))
        release.wait(5)
        with guard:
            active.remove(lat)
        return 300

    app = PointApp(fetcher=slow_fetcher)
    app.enricher.delay = 0
    app.store.add(34.0, 135.0, id="A-01")
    app.store.add(34.1, 135.1, id="A-02")

    first = app.start_enrichment()
    second = app.start_enrichment()
    assert second is first

    release.set()
    first.join(5)
    assert not first.is_alive()
    assert max(peak) == 1
    assert [p.elevation for p in app.store.get_all()] == ["300", "300"]

    again = app.start_enrichment()
    assert again is not first
    again.join(5)
