from __future__ import annotations

import argparse
from pathlib import Path

from ..pipeline import run_sync
from . import Command, CommandResult, MaybeAwaitable, add_opml_argument


class SyncCommand(Command):
    name = "sync"
    help = "Reconcile the protocol registry with the feed list"

    @classmethod
    def configure_parser(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--registry",
            type=Path,
            default=None,
            help="Protocol registry YAML (default: bundled registry or $PROTOCOL_REGISTRY).",
        )
        add_opml_argument(parser)
        parser.add_argument(
            "--verify",
            action="store_true",
            help="Verify every resolved feed before diffing.",
        )
        parser.add_argument(
            "--write",
            action="store_true",
            help="Overwrite the feed list with the reconciled registry feeds.",
        )
        parser.add_argument(
            "--discover",
            action="store_true",
            help="Look for feeds for registry sources without a URL.",
        )

    @classmethod
    def handle(cls, args: argparse.Namespace) -> MaybeAwaitable:
        settings = cls.settings()

        async def _runner() -> CommandResult:
            outcome = await run_sync(
                args.registry or settings.registry_path,
                args.opml or settings.opml_path,
                verify=args.verify,
                write=args.write,
                discover=args.discover,
                api_key=settings.brave_api_key,
            )
            print(outcome.report)
            return 0

        return _runner()


__all__ = ["SyncCommand"]
