#!/usr/bin/env python3
"""
PointGPS — Web Server
JSON API over one in-memory point collection, for a map front-end.

Usage:
    pointgps-server                      # Start on port 8080
    pointgps-server --port 9000          # Custom port
    pointgps-server --static ./web       # Also serve the map UI from ./web
"""

from __future__ import annotations
import argparse
import base64
import http.server
import json
import logging
import os
import threading
import urllib.parse
from typing import Optional

from . import config
from .config import MESSAGES, format_message
from .elevation import ElevationEnricher, Fetcher, fetch_elevation
from .errors import (
    DuplicateIdError, DuplicatePointError, InvalidCoordinateError,
    MissingColumnsError, UnsupportedFormatError,
)
from .fields import format_point_id, is_valid_point_id_format
from .formats import FORMAT_REGISTRY, default_export_name, get_format, read_file, write_file
from .models import IdScheme, ParsePolicy
from .presenter import PointPresenter
from .store import WaypointStore

logger = logging.getLogger(__name__)


class PointApp:
    """State shared by all requests: the store and its helpers."""

    def __init__(self, policy: ParsePolicy = ParsePolicy.STRICT,
                 id_scheme: IdScheme = IdScheme.TEMPORARY,
                 max_rows: int = config.MAX_ROWS,
                 fetcher: Fetcher = fetch_elevation,
                 fill_on_import: bool = False):
        self.policy = policy
        self.max_rows = max_rows
        self.store = WaypointStore(id_scheme)
        self.enricher = ElevationEnricher(self.store, fetcher)
        self.presenter = PointPresenter(self.store, self.enricher)
        self.fill_on_import = fill_on_import
        self._enrich_lock = threading.Lock()
        self._enrich_thread: Optional[threading.Thread] = None
        self._enrich_running = False
        self._enrich_pending = False

    def start_enrichment(self) -> threading.Thread:
        """
        Backfill elevations in the background. Only one loop runs at a time;
        a request made while it runs is folded into one more pass.
        """
        with self._enrich_lock:
            if self._enrich_running:
                self._enrich_pending = True
                return self._enrich_thread
            self._enrich_running = True
            self._enrich_thread = threading.Thread(
                target=self._run_enrichment, name="elevation-fill", daemon=True)
            self._enrich_thread.start()
            return self._enrich_thread

    def _run_enrichment(self):
        while True:
            try:
                self.enricher.enrich_all()
            except Exception as e:
                logger.warning("Elevation backfill stopped: %s", e)
            with self._enrich_lock:
                if not self._enrich_pending:
                    self._enrich_running = False
                    return
                self._enrich_pending = False


class PointGpsHandler(http.server.SimpleHTTPRequestHandler):

    app: PointApp = None
    static_dir: Optional[str] = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, directory=self.static_dir or os.getcwd(), **kwargs)

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path == "/api/points":
            self._send_json({"points": [p.to_dict() for p in self.app.store.get_all()]})
        elif parsed.path == "/api/formats":
            self._send_json({
                "input": [{"ext": f.extension, "name": f.name} for f in FORMAT_REGISTRY if f.reader],
                "output": [{"ext": f.extension, "name": f.name} for f in FORMAT_REGISTRY if f.writer],
            })
        elif parsed.path == "/api/about":
            self._send_json({
                "name": config.SOFT_FULL_NAME,
                "policy": self.app.policy.value,
                "map": {"center": config.MAP_CENTER, "zoom": config.MAP_ZOOM,
                        "tiles": config.GSI_TILE_URL, "attribution": config.GSI_ATTRIBUTION},
            })
        elif self.static_dir:
            if parsed.path in ("/", ""):
                self.path = "/index.html"
            return super().do_GET()
        else:
            self._send_json({"error": "Not found"}, 404)

    def do_POST(self):
        parsed = urllib.parse.urlparse(self.path)
        routes = {
            "/api/import": self._handle_import,
            "/api/export": self._handle_export,
            "/api/points": self._handle_add,
            "/api/points/update": self._handle_update,
            "/api/points/delete": self._handle_delete,
            "/api/elevation": self._handle_elevation,
            "/api/format-id": self._handle_format_id,
        }
        handler = routes.get(parsed.path)
        if not handler:
            self._send_json({"error": "Not found"}, 404)
            return
        try:
            handler(self._read_json())
        except (MissingColumnsError, UnsupportedFormatError, InvalidCoordinateError) as e:
            self._send_json({"error": str(e)}, 400)
        except (DuplicateIdError, DuplicatePointError) as e:
            self._send_json({"error": str(e)}, 409)
        except Exception as e:
            logger.warning("%s failed: %s", parsed.path, e)
            self._send_json({"error": str(e)}, 400)

    def _read_json(self) -> dict:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length) if length else b""
        return json.loads(body) if body else {}

    def _send_json(self, data, status=200):
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", len(body))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    # ─── Handlers ─────────────────────────────────────────────

    def _handle_import(self, body: dict):
        filename = body.get("filename", "upload.xlsx")
        data = base64.b64decode(body.get("data", ""))
        result = read_file(filename, data=data, policy=self.app.policy, max_rows=self.app.max_rows)

        count = self.app.store.replace_all(result.waypoints)
        self.app.presenter.reset_handles()
        messages = [format_message(MESSAGES["POINTS_LOADED"], count=count)]
        if result.truncated:
            messages.append(format_message(MESSAGES["EXCEL_ROWS_LIMITED"], rows=result.max_rows))
        if self.app.fill_on_import:
            self.app.start_enrichment()

        self._send_json({
            "filename": filename,
            "count": count,
            "truncated": result.truncated,
            "messages": messages,
            "points": [p.to_dict() for p in self.app.store.get_all()],
        })

    def _handle_export(self, body: dict):
        ext = body.get("format", "xlsx")
        fmt = get_format(ext)
        name = body.get("name") or default_export_name()
        data = write_file(None, self.app.store.get_all(), ext=ext, policy=self.app.policy)
        self._send_json({
            "filename": f"{name}.{fmt.extension if fmt else ext}",
            "mime": fmt.mime if fmt else "application/octet-stream",
            "data": base64.b64encode(data).decode("ascii"),
            "size": len(data),
        })

    def _handle_add(self, body: dict):
        wp, message = self.app.presenter.add_at(float(body["lat"]), float(body["lng"]), body.get("zoom"))
        self._send_json({"point": wp.to_dict(), "message": message})

    def _handle_update(self, body: dict):
        point_id = body.pop("id")
        if "newId" in body:
            body["id"] = body.pop("newId")
        wp = self.app.store.update(point_id, body)
        if wp is None:
            self._send_json({"error": f"Unknown point: {point_id}"}, 404)
            return
        self._send_json({"point": wp.to_dict()})

    def _handle_delete(self, body: dict):
        wp = self.app.store.remove(body["id"])
        if wp is None:
            self._send_json({"error": f"Unknown point: {body['id']}"}, 404)
            return
        self.app.presenter.handles.pop(wp.id, None)
        self._send_json({"point": wp.to_dict(),
                         "message": format_message(MESSAGES["POINT_DELETED"], id=wp.id)})

    def _handle_elevation(self, body: dict):
        value = self.app.enricher.ensure_valid_elevation(body["id"])
        if value is None:
            self._send_json({"error": f"Unknown point: {body['id']}"}, 404)
            return
        self._send_json({"id": body["id"], "elevation": value})

    def _handle_format_id(self, body: dict):
        value = format_point_id(str(body.get("value", "")))
        self._send_json({"value": value, "valid": is_valid_point_id_format(value)})

    def do_OPTIONS(self):
        self.send_response(200)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def make_server(app: PointApp, host: str = "127.0.0.1", port: int = 8080,
                static_dir: Optional[str] = None) -> http.server.HTTPServer:
    handler = type("BoundPointGpsHandler", (PointGpsHandler,), {"app": app, "static_dir": static_dir})
    return http.server.HTTPServer((host, port), handler)


def main(argv=None):
    parser = argparse.ArgumentParser(description=f"{config.SOFT_FULL_NAME} — Web API")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--static", help="Directory with the map UI to serve")
    parser.add_argument("--policy", choices=[p.value for p in ParsePolicy], default=ParsePolicy.STRICT.value)
    parser.add_argument("--max-rows", type=int, default=config.MAX_ROWS)
    parser.add_argument("--fill-elevation", action="store_true",
                        help="Look up missing elevations after each import")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = PointApp(policy=ParsePolicy(args.policy), max_rows=args.max_rows,
                   fill_on_import=args.fill_elevation)
    server = make_server(app, args.host, args.port, args.static)
    url = f"http://{args.host}:{args.port}"
    print(f"{config.SOFT_FULL_NAME} — listening on {url} (Ctrl+C to stop)")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nServer stopped.")
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
