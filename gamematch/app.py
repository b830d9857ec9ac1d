import argparse
import json
import sys
from pathlib import Path
from typing import Dict, Optional

from . import __version__
from .batch import run_cover_backfill, run_detail_backfill, run_rating_backfill
from .clients.auth import TwitchAuthClient
from .clients.igdb import IGDBSearchClient
from .clients.translate import LibreTranslateClient
from .config import MatchSettings, load_settings
from .covers import CoverMatcher
from .details import DetailMatcher
from .env import database_path, load_env, log_level
from .errors import ConfigurationError
from .logger import get_logger
from .ratings import RatingMatcher
from .schema import build_override_map, validate_catalog_entry, validate_overrides
from .storage import SqlCatalogStore, needs_cover, needs_details, needs_ratings


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _read_json(path_str: str):
    path = Path(path_str)
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise SystemExit(f"Invalid JSON in {path}: {e}")


def _load_overrides(path_str: Optional[str]) -> Dict[str, str]:
    if not path_str:
        return {}
    data = _read_json(path_str)
    errors = validate_overrides(data)
    if errors:
        print("Invalid overrides:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    return build_override_map(data)


def _settings(args: argparse.Namespace) -> MatchSettings:
    settings = load_settings(Path(args.config) if args.config else None)
    return settings.with_overrides(min_score=getattr(args, "min_score", None))


def _store(args: argparse.Namespace) -> SqlCatalogStore:
    return SqlCatalogStore(Path(args.db) if args.db else database_path())


def _search_client() -> IGDBSearchClient:
    return IGDBSearchClient(TwitchAuthClient())


def cmd_covers(args: argparse.Namespace) -> None:
    settings = _settings(args)
    overrides = _load_overrides(args.overrides)
    store = _store(args)
    try:
        summary = run_cover_backfill(
            store,
            _search_client(),
            settings=settings,
            overrides=overrides,
            dry_run=args.dry_run,
            overwrite=args.overwrite,
            size2x=not args.no_2x,
            limit=args.limit,
        )
    finally:
        store.close()
    _print_json(summary)


def cmd_details(args: argparse.Namespace) -> None:
    settings = _settings(args)
    store = _store(args)
    translator = LibreTranslateClient(
        target=settings.translate_target,
        max_length=settings.max_text_length,
    )
    try:
        summary = run_detail_backfill(
            store,
            _search_client(),
            translator,
            settings=settings,
            dry_run=args.dry_run,
            overwrite=args.overwrite,
            limit=args.limit,
        )
    finally:
        store.close()
    _print_json(summary)


def cmd_ratings(args: argparse.Namespace) -> None:
    settings = _settings(args)
    store = _store(args)
    try:
        summary = run_rating_backfill(
            store,
            _search_client(),
            settings=settings,
            dry_run=args.dry_run,
            only_missing=not args.all,
            limit=args.limit,
        )
    finally:
        store.close()
    _print_json(summary)


def cmd_match(args: argparse.Namespace) -> None:
    """Resolve a single title without touching the store."""
    settings = _settings(args)
    search_client = _search_client()
    search_client.authenticate()

    if args.kind == "covers":
        found = CoverMatcher(search_client, settings).match(
            args.title, _load_overrides(args.overrides), size2x=not args.no_2x
        )
        result = None if found is None else {
            "match": found.name, "url": found.url, "score": found.score, "source": found.source,
        }
    elif args.kind == "ratings":
        found = RatingMatcher(search_client, settings).match(args.title)
        result = None if found is None else {
            "match": found.name, "igdb_id": found.igdb_id, "query": found.query, **found.fields,
        }
    else:
        translator = LibreTranslateClient(target=settings.translate_target,
                                          max_length=settings.max_text_length)
        found = DetailMatcher(search_client, translator, settings).match(args.title)
        result = None if found is None else {
            "match": found.name, "query": found.query, "genres": found.genres,
            "genres_external": found.external_genres, "description": found.description,
        }

    if result is None:
        print(f"No match for '{args.title}'")
        raise SystemExit(1)
    _print_json({"title": args.title, **result})


def cmd_import(args: argparse.Namespace) -> None:
    data = _read_json(args.input)
    entries = data if isinstance(data, list) else [data]
    errors = []
    for i, entry in enumerate(entries):
        errors.extend(f"#{i}: {e}" for e in validate_catalog_entry(entry))
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)

    store = _store(args)
    try:
        counts = store.add_titles(entries)
    finally:
        store.close()
    print(f"Done. added={counts['added']} skipped={counts['skipped']}")


def cmd_list(args: argparse.Namespace) -> None:
    store = _store(args)
    try:
        records = store.list_records()
    finally:
        store.close()
    if args.pending == "covers":
        records = [r for r in records if needs_cover(r)]
    elif args.pending == "details":
        records = [r for r in records if needs_details(r)]
    elif args.pending == "ratings":
        records = [r for r in records if needs_ratings(r)]

    if not records:
        print("No games in store.")
        return
    print(f"Found {len(records)} games:\n")
    for r in records:
        print(f"ID: {r.id}")
        print(f"  Title: {r.title}")
        print(f"  Cover: {r.cover_url or '-'}")
        print(f"  Genres: {', '.join(r.genres) if r.genres else '-'}")
        print(f"  Description: {'yes' if r.description else '-'}")
        print(f"  Age rating: {r.age_rating_label or '-'}")
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gamematch", description="Backfill covers, synopses, genres and ratings from IGDB")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")

    cov = subparsers.add_parser("covers", help="Find cover art for games without one")
    cov.add_argument("--db", help="Path to SQLite catalog (default: $GAMEMATCH_DB or data/catalog.db)")
    cov.add_argument("--config", help="JSON settings file (thresholds, stopwords, aliases, genre map)")
    cov.add_argument("--overrides", help="JSON file of manual title -> cover URL overrides")
    cov.add_argument("--dry-run", action="store_true", help="Resolve but do not write")
    cov.add_argument("--overwrite", action="store_true", help="Also process games that already have a cover")
    cov.add_argument("--no-2x", action="store_true", help="Use normal resolution covers instead of 2x")
    cov.add_argument("--min-score", type=float, help="Minimum similarity to accept (default 0.55)")
    cov.add_argument("--limit", type=int, help="Process at most N pending games")
    cov.set_defaults(func=cmd_covers)

    det = subparsers.add_parser("details", help="Fill description and genres for games missing them")
    det.add_argument("--db", help="Path to SQLite catalog (default: $GAMEMATCH_DB or data/catalog.db)")
    det.add_argument("--config", help="JSON settings file (thresholds, stopwords, aliases, genre map)")
    det.add_argument("--dry-run", action="store_true", help="Resolve but do not write")
    det.add_argument("--overwrite", action="store_true", help="Replace existing description/genres")
    det.add_argument("--limit", type=int, help="Process at most N pending games")
    det.set_defaults(func=cmd_details)

    rat = subparsers.add_parser("ratings", help="Refresh IGDB ratings, release date, companies and age rating")
    rat.add_argument("--db", help="Path to SQLite catalog (default: $GAMEMATCH_DB or data/catalog.db)")
    rat.add_argument("--config", help="JSON settings file (thresholds, stopwords, aliases, genre map)")
    rat.add_argument("--dry-run", action="store_true", help="Resolve but do not write")
    rat.add_argument("--all", action="store_true", help="Refresh every game, not only those without an age rating")
    rat.add_argument("--limit", type=int, help="Process at most N pending games")
    rat.set_defaults(func=cmd_ratings)

    mat = subparsers.add_parser("match", help="Resolve one title and print the result")
    mat.add_argument("--title", required=True, help="Game title as stored in the catalog")
    mat.add_argument("--kind", choices=["covers", "details", "ratings"], default="covers", help="What to resolve")
    mat.add_argument("--config", help="JSON settings file")
    mat.add_argument("--overrides", help="JSON file of manual title -> cover URL overrides")
    mat.add_argument("--no-2x", action="store_true", help="Use normal resolution covers instead of 2x")
    mat.add_argument("--min-score", type=float, help="Minimum similarity to accept (default 0.55)")
    mat.set_defaults(func=cmd_match)

    imp = subparsers.add_parser("import", help="Add titles from a JSON file to the catalog")
    imp.add_argument("--input", required=True, help="JSON list of titles or {title, ...} objects")
    imp.add_argument("--db", help="Path to SQLite catalog")
    imp.set_defaults(func=cmd_import)

    lst = subparsers.add_parser("list", help="List catalog games")
    lst.add_argument("--db", help="Path to SQLite catalog")
    lst.add_argument("--pending", choices=["covers", "details", "ratings"], help="Only games still missing data")
    lst.set_defaults(func=cmd_list)

    return parser


def main(argv=None):
    # Load .env if present (TWITCH_CLIENT_ID, TWITCH_CLIENT_SECRET, LIBRETRANSLATE_URL, ...)
    load_env()
    logger = get_logger()
    logger.set_console_level(log_level())

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        args.func(args)
    except ConfigurationError as e:
        logger.critical("Run aborted", error=str(e))
        raise SystemExit(f"Configuration error: {e}")
    finally:
        if args.command in ("covers", "details", "ratings", "match"):
            logger.log_metrics_summary()


if __name__ == "__main__":
    main(sys.argv[1:])
