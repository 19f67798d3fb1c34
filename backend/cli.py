#!/usr/bin/env python3
"""
Command-line track import.

Usage:
    python cli.py import --file ride.gpx [--weather] [--wind] [--payload]
    python cli.py stats --file ride.gpx
"""

import argparse
import json
import sys
from typing import List, Optional

from config.settings import WEATHER_SAMPLING_MODES, PipelineOptions, configure_logging
from core.cache import MemoryCacheStore
from core.constants import WIND_INTERPOLATION_DENSITIES
from core.statistics import parse_track, stats_summary
from core.storage import InMemoryTrackStore
from core.validation import TrackParseError
from services.track_import_service import import_track
from services.track_view_service import TrackViewService

EXIT_PARSE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import GPX tracks and enrich them with weather and wind")
    parser.add_argument("--log-level", default=None, help="Logging level (default from FLYOVER_LOG_LEVEL)")
    commands = parser.add_subparsers(dest="command", required=True)

    stats = commands.add_parser("stats", help="Parse a GPX file and print its statistics")
    stats.add_argument("--file", required=True, help="Path to the GPX file")

    imp = commands.add_parser("import", help="Import a GPX file through the full pipeline")
    imp.add_argument("--file", required=True, help="Path to the GPX file")
    imp.add_argument("--weather", action="store_true", help="Enable weather enrichment")
    imp.add_argument("--wind", action="store_true", help="Enable wind interpolation (needs --weather)")
    imp.add_argument("--sampling", choices=WEATHER_SAMPLING_MODES, default=None)
    imp.add_argument("--step-km", type=float, default=None)
    imp.add_argument("--step-min", type=int, default=None)
    imp.add_argument("--multi-point", action="store_true")
    imp.add_argument("--density", type=int, choices=WIND_INTERPOLATION_DENSITIES, default=None)
    imp.add_argument("--simplify-target", type=int, default=None)
    imp.add_argument("--payload", action="store_true", help="Print the presentation payload as well")
    return parser


def options_from_args(args: argparse.Namespace) -> PipelineOptions:
    """Environment options overridden by explicit flags."""
    options = PipelineOptions.from_env()
    if args.weather:
        options.weather_enabled = True
    if args.wind:
        options.wind_analysis_enabled = True
    if args.multi_point:
        options.weather_multi_point = True
    if args.sampling is not None:
        options.weather_sampling = args.sampling
    if args.step_km is not None:
        options.weather_step_km = args.step_km
    if args.step_min is not None:
        options.weather_step_min = args.step_min
    if args.density is not None:
        options.wind_interpolation_density = args.density
    if args.simplify_target is not None:
        options.simplify_target = args.simplify_target
    return options.validate()


def run_stats(args: argparse.Namespace) -> int:
    parsed = parse_track(args.file)
    output = {
        'points_count': parsed.points_count,
        'stats': parsed.stats.to_dict(),
        'summary': stats_summary(parsed.stats),
    }
    print(json.dumps(output, indent=2, default=str))
    return 0


def run_import(args: argparse.Namespace) -> int:
    options = options_from_args(args)
    store = InMemoryTrackStore()
    cache = MemoryCacheStore()

    result = import_track(args.file, store, cache=cache, options=options)
    output = result.to_dict()
    if args.payload:
        output['payload'] = TrackViewService(store, cache, options=options).get_track_payload(result.track_id)

    print(json.dumps(output, indent=2, default=str))
    if result.weather is not None and not result.weather.success:
        print(f"Warning: weather enrichment failed: {result.weather.error}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper() if args.log_level else None)

    try:
        if args.command == "stats":
            return run_stats(args)
        return run_import(args)
    except TrackParseError as e:
        print(f"Error ({e.code}): {e}", file=sys.stderr)
        return EXIT_PARSE_ERROR


if __name__ == "__main__":
    sys.exit(main())
