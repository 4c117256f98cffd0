from __future__ import annotations

import argparse

from ..pipeline import probe_homepages
from . import Command, CommandResult, MaybeAwaitable


class ProbeCommand(Command):
    name = "probe"
    help = "Auto-detect the RSS/Atom feed of one or more homepages"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("urls", nargs="+", metavar="URL", help="Homepage URL to probe.")

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        async def _runner() -> CommandResult:
            for result in await probe_homepages(args.urls):
                if result.feed_url:
                    print(
                        f"{result.homepage}: {result.feed_url} "
                        f"({result.method}, title: {result.feed_title or 'unknown'})"
                    )
                else:
                    print(f"{result.homepage}: no feed found")
            return 0

        return _runner()


__all__ = ["ProbeCommand"]
