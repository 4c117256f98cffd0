from __future__ import annotations

import argparse
import logging

from ..fetcher import DEFAULT_TIMEOUT
from ..opml import StoreError
from ..pipeline import run_health_check
from ..prober import DEFAULT_CONCURRENCY
from . import Command, CommandResult, MaybeAwaitable, add_opml_argument

logger = logging.getLogger(__name__)


class CheckCommand(Command):
    name = "check"
    help = "Check the health of every feed in the feed list"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_opml_argument(parser)
        parser.add_argument(
            "--concurrency",
            type=int,
            default=DEFAULT_CONCURRENCY,
            help="Maximum number of simultaneous requests.",
        )
        parser.add_argument(
            "--timeout",
            type=float,
            default=DEFAULT_TIMEOUT,
            help="Per-request timeout in seconds.",
        )

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        settings = cls.settings()

        async def _runner() -> CommandResult:
            try:
                report = await run_health_check(
                    args.opml or settings.opml_path,
                    settings.dead_feeds_path,
                    concurrency=args.concurrency,
                    timeout=args.timeout,
                )
            except StoreError as exc:
                logger.error("%s", exc)
                return 1
            print(report)
            return 0

        return _runner()


__all__ = ["CheckCommand"]
