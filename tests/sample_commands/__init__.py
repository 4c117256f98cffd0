"""Feed-style commands used by the plugin discovery tests."""
from __future__ import annotations

import argparse

from chainfeeds.commands import Command, CommandResult, MaybeAwaitable, add_opml_argument


class ListFeedsCommand(Command):
    name = "list-feeds"
    help = "Print the stored feed list location"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        add_opml_argument(parser)

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        async def _runner() -> CommandResult:
            print(args.opml or cls.settings().opml_path)
            return 0

        return _runner()


class CountFeedsCommand(Command):
    name = "count-feeds"
    help = "Count the URLs given on the command line"
    aliases = ("count",)

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("urls", nargs="*", metavar="URL")

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        return len(args.urls)


class _UnnamedCommand(Command):
    name = ""


__all__ = ["CountFeedsCommand", "ListFeedsCommand"]
