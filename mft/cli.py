"""Command line entry points: ``mft crawl``, ``mft build``, ``mft merge-pending``."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

import yaml

from mft.config import settings
from mft.errors import StorageError
from mft.logging_config import setup_logging
from mft.pending import load_pending, merge_pending
from mft.render import build_site
from mft.storage import registry_store
from mft.workers.crawler import crawl_once

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STORAGE = 1
EXIT_BAD_INPUT = 2


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def _cmd_crawl(args: argparse.Namespace) -> int:
    report = crawl_once(settings)
    _emit({"status": "ok", **report.as_dict()})
    return EXIT_OK


def _cmd_build(args: argparse.Namespace) -> int:
    path = build_site(settings)
    _emit({"status": "ok", "output": str(path)})
    return EXIT_OK


def _cmd_merge_pending(args: argparse.Namespace) -> int:
    try:
        entries = load_pending(args.input)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        _emit({"status": "error", "reason": f"cannot read {args.input}: {exc}"})
        return EXIT_BAD_INPUT

    store = registry_store(settings.feeds_path)
    registry = store.load()
    report = merge_pending(registry, entries)
    if report.added and not args.dry_run:
        store.store(registry)
    _emit({"status": "ok", "dry_run": args.dry_run, **report.as_dict()})
    return EXIT_OK


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mft", description="Track favourite pages and record their changes.")
    sub = parser.add_subparsers(dest="command")

    crawl = sub.add_parser("crawl", help="Run one crawl pass over every registered feed")
    crawl.set_defaults(func=_cmd_crawl)

    build = sub.add_parser("build", help="Regenerate the static site from feeds/history")
    build.set_defaults(func=_cmd_build)

    merge = sub.add_parser("merge-pending", help="Merge an exported pending-feeds file into the registry")
    merge.add_argument("input", type=Path)
    merge.add_argument("--dry-run", action="store_true")
    merge.set_defaults(func=_cmd_merge_pending)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        # Bare ``mft`` runs a crawl pass.
        args.func = _cmd_crawl
    return args


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    setup_logging(settings)
    try:
        return args.func(args)
    except StorageError as exc:
        logger.error("Run aborted: %s", exc, extra={"path": str(exc.path)})
        _emit({"status": "error", "reason": str(exc)})
        return EXIT_STORAGE


def crawl_main() -> int:
    return main(["crawl"])


def build_main() -> int:
    return main(["build"])


if __name__ == "__main__":
    sys.exit(main())
