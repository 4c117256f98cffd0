from __future__ import annotations

import argparse
import logging

from ..config import ConfigurationError
from ..pipeline import run_discovery
from . import Command, CommandResult, MaybeAwaitable, add_opml_argument

logger = logging.getLogger(__name__)


class DiscoverCommand(Command):
    name = "discover"
    help = "Search the web for new feeds"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_opml_argument(parser)

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        settings = cls.settings()
        try:
            api_key = settings.require_api_key()
        except ConfigurationError as exc:
            logger.error("%s", exc)
            return 1

        async def _runner() -> CommandResult:
            print(await run_discovery(args.opml or settings.opml_path, api_key))
            return 0

        return _runner()


__all__ = ["DiscoverCommand"]
