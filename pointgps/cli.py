#!/usr/bin/env python3
"""
PointGPS — Point file converter
================================
Read a spreadsheet or GeoJSON of points, optionally fill missing
elevations, and write it out again.

Usage:
    pointgps points.xlsx --info                      # Show file info
    pointgps points.xlsx points.geojson              # Convert XLSX → GeoJSON
    pointgps points.xlsx out.xlsx --fill-elevation   # Look up missing elevations
    pointgps --formats                               # List all formats
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List

from . import config
from .config import MESSAGES, format_message
from .elevation import ElevationEnricher
from .formats import (
    FORMAT_REGISTRY, get_format, read_file, write_file,
    supported_input_formats, supported_output_formats,
)
from .models import IdScheme, ParsePolicy, Waypoint
from .store import WaypointStore


def format_distance(meters: float) -> str:
    """Format distance in human-readable form."""
    if meters >= 1000:
        return f"{meters / 1000:.2f} km"
    return f"{meters:.0f} m"


def show_info(store: WaypointStore, filepath: str = ""):
    """Print a summary of the loaded points."""
    if filepath:
        print(f"\nFile: {filepath}")
        fmt = get_format(Path(filepath).suffix)
        if fmt:
            print(f"   Format: {fmt.name} (.{fmt.extension})")

    points: List[Waypoint] = store.get_all()
    print(f"   Points: {len(points)}")
    if not points:
        return

    min_lat, min_lng, max_lat, max_lng = store.bounds()
    print(f"   Bounds: ({min_lat:.5f}, {min_lng:.5f}) → ({max_lat:.5f}, {max_lng:.5f})")
    spread = points[0].distance_from(points[-1]) if len(points) > 1 else 0.0
    print(f"   First → last: {format_distance(spread)}")

    missing = sum(1 for p in points if not p.elevation)
    if missing:
        print(f"   Without elevation: {missing}")

    for p in points[:10]:
        print(f"   {p.id:<8} {p.lat:10.5f} {p.lng:11.5f}  {p.elevation or '-':>7}  {p.location}")
    if len(points) > 10:
        print(f"   ... {len(points) - 10} more")


def list_formats():
    """Display all supported formats."""
    print(f"\n{config.SOFT_FULL_NAME}")
    print("=" * 45)
    print(f"{'Extension':<12} {'Format Name':<24} {'R':>3} {'W':>3}")
    print("-" * 45)
    for fmt in sorted(FORMAT_REGISTRY, key=lambda f: f.extension):
        r = "✓" if fmt.reader else "-"
        w = "✓" if fmt.writer else "-"
        print(f"  .{fmt.extension:<10} {fmt.name:<24} {r:>3} {w:>3}")
    print("-" * 45)
    print(f"  Readable: {len(supported_input_formats())}, Writable: {len(supported_output_formats())}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pointgps",
        description=f"{config.SOFT_FULL_NAME} — point file converter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s points.xlsx --info                  Show file information
  %(prog)s points.xlsx points.geojson          Convert to GeoJSON
  %(prog)s old.xlsx new.xlsx --policy loose    Read an older sheet layout
  %(prog)s in.xlsx out.xlsx --fill-elevation   Fill blank elevations from GSI
        """)

    parser.add_argument("input", nargs="?", help="Input point file")
    parser.add_argument("outputs", nargs="*", help="Output file(s)")
    parser.add_argument("--formats", action="store_true", help="List supported formats")
    parser.add_argument("--info", action="store_true", help="Show file info")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--policy", choices=[p.value for p in ParsePolicy],
                        default=ParsePolicy.STRICT.value,
                        help="Header matching rules (default: strict)")
    parser.add_argument("--max-rows", type=int, default=config.MAX_ROWS,
                        help=f"Rows read from a sheet, header included (default: {config.MAX_ROWS})")
    parser.add_argument("--fill-elevation", action="store_true",
                        help="Look up missing elevations before writing")
    parser.add_argument("--gps-field", action="store_true",
                        help="Store looked-up elevations in the GPS標高 field (exported by --policy loose)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    if args.formats:
        list_formats()
        return 0

    if not args.input:
        build_parser().print_help()
        return 1

    policy = ParsePolicy(args.policy)

    try:
        result = read_file(args.input, policy=policy, max_rows=args.max_rows)
    except Exception as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    if result.truncated:
        print(format_message(MESSAGES["EXCEL_ROWS_LIMITED"], rows=result.max_rows), file=sys.stderr)

    if not result.waypoints:
        print(f"No points found in {args.input}", file=sys.stderr)
        return 1

    store = WaypointStore(IdScheme.TEMPORARY)
    store.replace_all(result.waypoints)

    if args.verbose or args.info:
        show_info(store, args.input)

    if args.fill_elevation:
        field = "gps_elevation" if args.gps_field else "elevation"
        changed = ElevationEnricher(store, field=field).enrich_all()
        print(f"Elevation filled for {changed} point(s)")

    if not args.outputs:
        if not args.info:
            print(f"Read {store.count()} points from {args.input}")
            print("   (specify output file(s) to convert, or use --info for details)")
        return 0

    for output_path in args.outputs:
        try:
            write_file(output_path, store.get_all(), policy=policy)
        except Exception as e:
            print(f"Error writing {output_path}: {e}", file=sys.stderr)
            return 1
        fmt = get_format(Path(output_path).suffix)
        fmt_name = fmt.name if fmt else Path(output_path).suffix.upper()
        print(f"Converted → {output_path} ({fmt_name}, {store.count()} points)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
