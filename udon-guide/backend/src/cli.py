"""Command line entry point for cache maintenance.

Usage:
  python cli.py sync-places
  python cli.py sync-details
  python cli.py export-csv --out places_kagawa_udon.csv
  python cli.py delete-all --yes
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, Sequence

from loguru import logger

from config import Configuration
from services.patterns import build_classifier
from services.places import GooglePlacesClient
from services.store import ShopStore
from services.sync import sync_details, sync_places


def _print(obj: dict) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def cmd_sync_places(cfg: Configuration, store: ShopStore, args: argparse.Namespace) -> int:
    cfg.require_google()
    result = sync_places(GooglePlacesClient(cfg), store)
    store.save()
    _print({"ok": True, **result})
    return 0


def cmd_sync_details(cfg: Configuration, store: ShopStore, args: argparse.Namespace) -> int:
    cfg.require_google()
    classifier = build_classifier(cfg)
    summary = sync_details(GooglePlacesClient(cfg), store, classifier, cfg)
    store.save()
    _print(summary)
    return 0


def cmd_export_csv(cfg: Configuration, store: ShopStore, args: argparse.Namespace) -> int:
    count = store.export_csv(args.out)
    print(f"exported: {count} rows -> {args.out}")
    return 0


def cmd_delete_all(cfg: Configuration, store: ShopStore, args: argparse.Namespace) -> int:
    print(f"records: {len(store)}")
    if not args.yes:
        print("This will DELETE ALL cached records. Re-run with --yes to continue.")
        return 1
    deleted = store.delete_all()
    store.save()
    print(f"deleted: {deleted}")
    return 0


COMMANDS = {
    "sync-places": cmd_sync_places,
    "sync-details": cmd_sync_details,
    "export-csv": cmd_export_csv,
    "delete-all": cmd_delete_all,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kagawa udon guide cache tools")
    parser.add_argument("--store", default=None, help="store JSON path (defaults to STORE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync-places", help="search upstream and upsert places in the region")
    sub.add_parser("sync-details", help="fetch details, classify and refresh cached shops")
    export = sub.add_parser("export-csv", help="write cached places to CSV")
    export.add_argument("--out", default="places_kagawa_udon.csv")
    delete = sub.add_parser("delete-all", help="remove every cached record")
    delete.add_argument("--yes", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = Configuration.from_env({"store_path": args.store})
    store = ShopStore(cfg.store_path).load()
    try:
        return COMMANDS[args.command](cfg, store, args)
    except ValueError as exc:
        logger.error("{}", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
