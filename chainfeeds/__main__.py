"""Command-line entry point for the chainfeeds package."""
from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import pkgutil
import sys
from types import ModuleType
from typing import Coroutine, Dict, Iterator, List, Optional, Sequence, Type, cast

from .commands import Command, CommandResult, MaybeAwaitable, discover_commands

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
COMMANDS_PACKAGE = "chainfeeds.commands"


def _iter_command_modules() -> Iterator[ModuleType]:
    package = importlib.import_module(COMMANDS_PACKAGE)
    yield package
    for info in pkgutil.iter_modules(package.__path__, prefix=f"{COMMANDS_PACKAGE}."):
        yield importlib.import_module(info.name)


def _load_command_modules() -> List[Type[Command]]:
    """Collect one command per name from every ``chainfeeds.commands`` module."""

    by_name: Dict[str, Type[Command]] = {
        command_type.name: command_type
        for module in _iter_command_modules()
        for command_type in discover_commands(module)
    }
    return [by_name[name] for name in sorted(by_name)]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chainfeeds",
        description="Maintain the blockchain-signals feed registry",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level applied to all commands.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Shortcut for setting --log-level=DEBUG.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command_cls in _load_command_modules():
        command_cls.attach(subparsers)
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.DEBUG if args.debug else getattr(logging, args.log_level.upper(), logging.INFO)
    # Logs go to stderr so reports on stdout can be redirected cleanly.
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def _execute_handler(result: MaybeAwaitable) -> int:
    if asyncio.iscoroutine(result):
        outcome: CommandResult = asyncio.run(cast(Coroutine[object, object, CommandResult], result))
    else:
        outcome = cast(CommandResult, result)
    return int(outcome or 0)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    command_cls: Optional[Type[Command]] = getattr(args, "_command_cls", None)
    if command_cls is None:
        parser.print_help()
        return 1
    return _execute_handler(command_cls.handle(args))


if __name__ == "__main__":  # pragma: no cover - thin wrapper
    sys.exit(main())
