"""
featuretree CLI: run the service and manage the local workspace.

Usage examples:
    featuretree serve --port 3000
    featuretree show
    featuretree export -o features.json
    featuretree restore backup_1717000000000
    featuretree status test-1-1
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import httpx

from featuretree.base.config import get_config, setup_logging
from featuretree.client.status_client import StatusClient
from featuretree.data.db import Database
from featuretree.data.local_store import LocalStore
from featuretree.errors import FeatureTreeError, handle_error
from featuretree.tree.seed import sample_forest
from featuretree.tree.view import annotate_forest

logger = logging.getLogger(__name__)

STATUS_MARKS = {"pass": "[pass]", "failed": "[FAIL]", None: ""}


def _store() -> LocalStore:
    store = LocalStore()
    store.init()
    return store


def cmd_serve(args) -> int:
    from featuretree.server.api import serve

    print("Starting featuretree API...")
    serve(host=args.host, port=args.port)
    return 0


def cmd_show(args) -> int:
    forest = _store().load()
    if not forest:
        if not args.sample:
            print("Workspace is empty.")
            return 0
        forest = sample_forest()
    for row in annotate_forest(forest):
        if not (row["visible"] or args.all):
            continue
        share = "" if row["contribution"] is None else f" {row['contribution']}%"
        marker = "-" if row["childCount"] == 0 else ("v" if row["expanded"] else ">")
        required = " *" if row["required"] else ""
        print(
            f"{'  ' * row['depth']}{marker} {row['name']}{required} "
            f"(w={row['weight']}{share}) {STATUS_MARKS[row['status']]}".rstrip()
        )
    return 0


def cmd_stats(args) -> int:
    print(json.dumps(_store().get_stats(), indent=2))
    return 0


def cmd_export(args) -> int:
    document = json.dumps(_store().export(), indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(document)
        print(f"Exported workspace to {args.output}")
    else:
        print(document)
    return 0


def cmd_import(args) -> int:
    with open(args.file, "r", encoding="utf-8") as fh:
        document = json.load(fh)
    forest = _store().import_data(document)
    print(f"Imported {len(forest)} root features from {args.file}")
    return 0


async def _lookup_status(feature_id: str):
    config = get_config()
    if not config.status.service_url:
        return await Database.instance().get_status(feature_id)
    client = StatusClient(config.status.service_url, config.status.request_timeout)
    try:
        status = await client.get_status(feature_id)
    finally:
        await client.aclose()
    return status.value if status else None


def cmd_status(args) -> int:
    """Print the stored test status of one feature (remote service when configured)."""
    status = asyncio.run(_lookup_status(args.feature_id))
    print(f"{args.feature_id}\t{status or 'none'}")
    return 0


def cmd_backup(args) -> int:
    key = _store().create_backup()
    if key is None:
        print("Backup failed.", file=sys.stderr)
        return 1
    print(key)
    return 0


def cmd_backups(args) -> int:
    for backup in _store().list_backups():
        print(f"{backup['key']}\t{backup['timestamp']}")
    return 0


def cmd_restore(args) -> int:
    forest = _store().restore(args.key)
    print(f"Restored {args.key} ({len(forest)} root features)")
    return 0


def cmd_clear(args) -> int:
    if not args.yes:
        print("Refusing to clear the workspace without --yes", file=sys.stderr)
        return 2
    return 0 if _store().clear() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="featuretree", description="Feature prioritisation tree")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    show = sub.add_parser("show", help="Print the feature tree with weights")
    show.add_argument("--all", action="store_true", help="Include nodes under collapsed parents")
    show.add_argument("--sample", action="store_true", help="Show the sample tree when empty")
    show.set_defaults(func=cmd_show)

    sub.add_parser("stats", help="Workspace statistics").set_defaults(func=cmd_stats)

    export = sub.add_parser("export", help="Write an export document")
    export.add_argument("-o", "--output", default=None)
    export.set_defaults(func=cmd_export)

    imp = sub.add_parser("import", help="Replace the workspace from an export document")
    imp.add_argument("file")
    imp.set_defaults(func=cmd_import)

    status = sub.add_parser("status", help="Show the stored test status of a feature")
    status.add_argument("feature_id")
    status.set_defaults(func=cmd_status)

    sub.add_parser("backup", help="Create a backup").set_defaults(func=cmd_backup)
    sub.add_parser("backups", help="List backups, newest first").set_defaults(func=cmd_backups)

    restore = sub.add_parser("restore", help="Restore a backup by key")
    restore.add_argument("key")
    restore.set_defaults(func=cmd_restore)

    clear = sub.add_parser("clear", help="Delete the stored workspace")
    clear.add_argument("--yes", action="store_true")
    clear.set_defaults(func=cmd_clear)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(get_config())
    try:
        return args.func(args)
    except (FeatureTreeError, httpx.HTTPError, OSError, ValueError) as e:
        error = handle_error(e, context=args.command)
        logger.debug(f"[CLI] {args.command} failed: {error!r}")
        print(f"Error {error.code.value}: {error.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
