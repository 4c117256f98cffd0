"""Runtime configuration read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .registry import DEFAULT_REGISTRY_PATH

DEFAULT_DEAD_FEEDS_PATH = Path("/tmp/dead-feeds.json")
DEFAULT_OPML_PATH = Path("feeds.opml")


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing."""


@dataclass
class Settings:
    """Paths and credentials shared by every command."""

    brave_api_key: Optional[str]
    dead_feeds_path: Path
    opml_path: Path
    registry_path: Path

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            brave_api_key=env.get("BRAVE_SEARCH_API_KEY") or None,
            dead_feeds_path=Path(env.get("DEAD_FEEDS_PATH") or DEFAULT_DEAD_FEEDS_PATH),
            opml_path=Path(env.get("FEEDS_OPML") or DEFAULT_OPML_PATH),
            registry_path=Path(env.get("PROTOCOL_REGISTRY") or DEFAULT_REGISTRY_PATH),
        )

    def require_api_key(self) -> str:
        if not self.brave_api_key:
            raise ConfigurationError("BRAVE_SEARCH_API_KEY is required")
        return self.brave_api_key
