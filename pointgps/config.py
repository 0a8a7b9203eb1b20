"""
PointGPS — Application constants

Everything here is a plain in-memory table. Entry points may override a
few values (row cap, policy, port) from the command line.
"""

from __future__ import annotations
import re

SOFT_NAME = "PointGPS"
SOFT_VERSION = "1.0"
SOFT_FULL_NAME = f"{SOFT_NAME} v{SOFT_VERSION}"

# ─────────────────────────────────────────────────────────────
# Map
# ─────────────────────────────────────────────────────────────

MAP_CENTER = (34.853667, 135.472041)  # 箕面大滝
MAP_ZOOM = 15

GSI_TILE_URL = "https://cyberjapandata.gsi.go.jp/xyz/std/{z}/{x}/{y}.png"
GSI_ATTRIBUTION = ('<a href="https://maps.gsi.go.jp/development/ichiran.html" '
                   'target="_blank">地理院タイル</a>')

POINT_MARKER_COLOR = "#008000"
POINT_MARKER_RADIUS = 6
SELECTED_POINT_COLOR = "#32cd32"
MOVE_BUTTON_ACTIVE_COLOR = "#32cd32"

# Minimum on-screen distance (pixels) between a new point and existing ones
DUPLICATE_CHECK_DISTANCE = 10

# ─────────────────────────────────────────────────────────────
# Files
# ─────────────────────────────────────────────────────────────

ACCEPTED_EXTENSIONS = (".xlsx", ".csv", ".geojson")
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "GPS_Points"
EXPORT_NAME_PREFIX = "ポイントGPS"

# Rows read from a sheet, header included
MAX_ROWS = 1000

# Exported coordinates are rounded to this many decimals
COORD_DECIMALS = 5

# ─────────────────────────────────────────────────────────────
# Column labels
# ─────────────────────────────────────────────────────────────

# Strict policy: exact header text per role
STRICT_LABELS = {
    "id": "ポイントID",
    "location": "名称",
    "lat": "緯度",
    "lng": "経度",
    "elevation": "標高",
    "remarks": "備考",
    "type": "区分",
}
STRICT_REQUIRED = ("id", "location", "lat", "lng")

# Loose policy
LOOSE_ID_TOKEN = "ポイント"
LOOSE_EXACT_LABELS = {
    "lat": "緯度",
    "lng": "経度",
    "elevation": "標高",
    "gps_elevation": "GPS標高",
}
LOOSE_LOCATION_TOKENS = ("名称", "位置", "場所")
LOOSE_LABELS = {
    "id": "ポイントID",
    "lat": "緯度",
    "lng": "経度",
    "elevation": "標高",
    "gps_elevation": "GPS標高",
    "location": "場所",
}

# ─────────────────────────────────────────────────────────────
# Identifiers
# ─────────────────────────────────────────────────────────────

COUNTER_PREFIX = "P"
TEMPORARY_PREFIX = "仮"

# Point type → id prefix for the typed id scheme
TYPE_PREFIXES = {
    "登山口": "T",
    "山頂": "S",
    "分岐": "J",
    "水場": "W",
    "避難小屋": "H",
}

# ─────────────────────────────────────────────────────────────
# Elevation service
# ─────────────────────────────────────────────────────────────

ELEVATION_API_URL = "https://cyberjapandata2.gsi.go.jp/general/dem/scripts/getelevation.php"
ELEVATION_API_TIMEOUT = 5.0
# Pause between consecutive lookups in a bulk run (seconds)
ELEVATION_REQUEST_DELAY = 0.1

# ─────────────────────────────────────────────────────────────
# Messages
# ─────────────────────────────────────────────────────────────

MESSAGE_DISPLAY_DURATION = 3000  # ms

MESSAGES = {
    "EXCEL_LOAD_SUCCESS": "Excelファイルを正常に読み込みました",
    "EXCEL_LOAD_ERROR": "Excelファイルの読み込みに失敗しました",
    "POINTS_LOADED": "{count}個のポイントを読み込みました",
    "POINT_ADDED": "ポイント {id} を追加しました",
    "POINT_MOVED": "ポイント {id} を移動しました",
    "POINT_DELETED": "ポイント {id} を削除しました",
    "POINT_UPDATED": "ポイント {id} を更新しました",
    "NO_POINT_SELECTED": "ポイントが選択されていません",
    "INVALID_POINT_ID": "ポイントIDは「X-nn」形式で入力してください: {id}",
    "EXPORT_SUCCESS": "ファイルを出力しました",
    "EXPORT_ERROR": "ファイル出力に失敗しました",
    "EXCEL_ROWS_LIMITED": "読み込み行数が上限に達しました。最初の{rows}行のみ処理されました。",
    "DUPLICATE_POINT_WARNING": "既存のポイント {id} と同じ場所には追加できません",
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def format_message(template: str, **params) -> str:
    """Fill {name} placeholders. Unknown placeholders are left as-is."""
    def _sub(m):
        key = m.group(1)
        return str(params[key]) if key in params else m.group(0)
    return _PLACEHOLDER.sub(_sub, template)
