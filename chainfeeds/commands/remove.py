from __future__ import annotations

import argparse
import logging
from pathlib import Path

from ..opml import StoreError
from ..pipeline import remove_dead_feeds
from . import Command, MaybeAwaitable, add_opml_argument

logger = logging.getLogger(__name__)


class RemoveCommand(Command):
    name = "remove"
    help = "Remove the feeds listed in the dead-feed export from the feed list"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--dead-feeds",
            type=Path,
            default=None,
            help="JSON array of feed URLs (default: $DEAD_FEEDS_PATH or /tmp/dead-feeds.json).",
        )
        add_opml_argument(parser)

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        settings = cls.settings()
        opml_path = args.opml or settings.opml_path
        try:
            removed = remove_dead_feeds(args.dead_feeds or settings.dead_feeds_path, opml_path)
        except StoreError as exc:
            logger.error("%s", exc)
            return 1
        if not removed:
            print("No dead feeds to remove.")
            return 0
        for name in removed:
            print(f"Removed: {name}")
        print(f"\n{len(removed)} feed(s) removed from {opml_path}")
        return 0


__all__ = ["RemoveCommand"]
