#!/usr/bin/env python3
"""
MixDeck command line.

Usage:
  mixdeck list [--sort FIELD] [--order asc|desc]
  mixdeck ingest ANALYSIS.json [ANALYSIS.json ...]
  mixdeck select ID
  mixdeck suggest [ID]
  mixdeck timeline [ID]
  mixdeck delete ID
  mixdeck import FILE
  mixdeck export FILE
  mixdeck stats

The config file is taken from MIXDECK_CONFIG_PATH (default: configs/mixdeck.toml).
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .analyze.batch import BatchAnalysisError, BatchIngestor, load_analysis_file
from .config import Config, ConfigError
from .db import open_storage
from .generate.suggest import get_suggestions, split_suggestions
from .generate.timeline import build_segments, format_time
from .library import SORT_DIRECTIONS, SORT_FIELDS, LibraryImportError, LibraryStore
from .models import LibraryTrack

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


class UserError(Exception):
    """Non-fatal problem reported to the user as a plain message."""
    pass


def _format_track(track: LibraryTrack) -> str:
    added = datetime.fromtimestamp(track.date_added / 1000).strftime("%Y-%m-%d")
    return f"{track.id:<36}  {track.bpm:>6.1f}  {track.key:<10.10}  {added}  {track.file_name}"


def _resolve_track(store: LibraryStore, track_id: Optional[str]) -> LibraryTrack:
    if track_id:
        track = store.get(track_id)
        if track is None:
            raise UserError(f"No track with id {track_id}")
        return track
    if store.selected is None:
        raise UserError("No track selected; pass an id or run 'mixdeck select ID'")
    return store.selected


def cmd_list(store: LibraryStore, config: Config, args) -> int:
    # Newest first by default; other fields default to ascending
    order = args.order or ("desc" if args.sort == "dateAdded" else "asc")
    tracks = store.sort_by(args.sort, order)
    if not tracks:
        print("Library is empty.")
        return 0
    for track in tracks:
        marker = "*" if track.id == store.selected_id else " "
        print(f"{marker} {_format_track(track)}")
    return 0


def cmd_ingest(store: LibraryStore, config: Config, args) -> int:
    ingestor = BatchIngestor(
        store,
        load_analysis_file,
        delay_seconds=config.get("batch", "inter_item_delay_seconds", 1.0),
    )
    try:
        result = ingestor.run(args.files)
    except BatchAnalysisError as e:
        raise UserError(f"{e}. Check the analysis files.")

    print(f"Added {len(result.succeeded)} of {result.total} tracks.")
    for source, message in result.failed:
        print(f"  failed: {source}: {message}")
    return 0


def cmd_select(store: LibraryStore, config: Config, args) -> int:
    try:
        track = store.select(args.id)
    except KeyError:
        raise UserError(f"No track with id {args.id}")
    print(f"Selected {track.file_name}")
    return 0


def cmd_suggest(store: LibraryStore, config: Config, args) -> int:
    target = _resolve_track(store, args.id)
    limit = config.get("suggestions", "max_suggestions", 3)
    best, alternatives = split_suggestions(get_suggestions(target, store.tracks), limit)

    print(f"Mixing from: {target.file_name} ({target.bpm:g} BPM, {target.key})")
    if best is None:
        print("No compatible tracks yet. Add more tracks to get harmonic suggestions.")
        return 0

    print(f"Best match:  {_format_track(best)}")
    for track in alternatives:
        print(f"Alternative: {_format_track(track)}")
    return 0


def cmd_timeline(store: LibraryStore, config: Config, args) -> int:
    track = _resolve_track(store, args.id)
    segments = build_segments(
        track.structural_points,
        track.duration,
        min_width_percent=config.get("timeline", "min_width_percent", 1.0),
        default_duration_seconds=config.get("timeline", "default_duration_seconds", 180),
    )

    print(f"{track.file_name}  [{track.duration}]")
    if not segments:
        print("No structural points.")
        return 0
    for segment in segments:
        print(
            f"  {format_time(segment.start_seconds):>6}  {format_time(segment.remaining_seconds):>6}  "
            f"{segment.label:<8}  {segment.energy.value:<8}  {segment.kind:<9}  "
            f"{segment.width_percent:5.1f}%"
        )
    return 0


def cmd_delete(store: LibraryStore, config: Config, args) -> int:
    if store.delete(args.id):
        print(f"Deleted {args.id}")
    else:
        print(f"No track with id {args.id}; nothing deleted")
    return 0


def cmd_import(store: LibraryStore, config: Config, args) -> int:
    path = Path(args.file)
    try:
        payload = path.read_bytes()
    except OSError as e:
        raise UserError(f"Could not read {path}: {e}")

    try:
        accepted = store.import_json(payload)
    except LibraryImportError as e:
        raise UserError(str(e))

    print(f"Imported {accepted} new tracks ({len(store)} in library)")
    return 0


def cmd_export(store: LibraryStore, config: Config, args) -> int:
    if not len(store):
        raise UserError("Nothing to export: the library is empty")
    Path(args.file).write_bytes(store.export_all())
    print(f"Exported {len(store)} tracks to {args.file}")
    return 0


def cmd_stats(store: LibraryStore, config: Config, args) -> int:
    stats = store.stats()
    print(f"Tracks:   {stats['total_tracks']}")
    print(f"Mean BPM: {stats['avg_bpm']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mixdeck", description="DJ track library and mix suggestions")
    parser.add_argument("-c", "--config", help="Path to mixdeck.toml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List library tracks")
    p.add_argument("--sort", choices=SORT_FIELDS, default="dateAdded")
    p.add_argument("--order", choices=SORT_DIRECTIONS)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("ingest", help="Add analysis results (JSON files) to the library")
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_ingest)

    p = sub.add_parser("select", help="Select a track")
    p.add_argument("id")
    p.set_defaults(func=cmd_select)

    p = sub.add_parser("suggest", help="Show compatible tracks")
    p.add_argument("id", nargs="?")
    p.set_defaults(func=cmd_suggest)

    p = sub.add_parser("timeline", help="Show a track's structure timeline")
    p.add_argument("id", nargs="?")
    p.set_defaults(func=cmd_timeline)

    p = sub.add_parser("delete", help="Delete a track")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("import", help="Merge an exported library file")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("export", help="Write the library to a JSON file")
    p.add_argument("file")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("stats", help="Library statistics")
    p.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    storage = None
    try:
        config = Config.load(args.config)
        storage = open_storage(config)

        store = LibraryStore(storage)
        if not store.load():
            print(f"Warning: {store.last_error}. Starting with an empty library.", file=sys.stderr)

        return args.func(store, config, args)

    except UserError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        return 1
    finally:
        if storage is not None and hasattr(storage, "disconnect"):
            storage.disconnect()


if __name__ == "__main__":
    sys.exit(main())
