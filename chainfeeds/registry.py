"""Declarative protocol registry: protocols and the sources they publish."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).parent / "data" / "protocols.yaml"


class Category(str, Enum):
    L1 = "L1"
    L2 = "L2"
    DEFI = "DeFi"
    INFRASTRUCTURE = "Infrastructure"
    PRIVACY = "Privacy"


class SourceType(str, Enum):
    BLOG = "blog"
    GITHUB = "github"
    FORUM = "forum"
    GOVERNANCE = "governance"
    SECURITY = "security"
    RESEARCH = "research"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Source:
    """A single publication channel of a protocol.

    ``repo`` is only meaningful for github sources and holds ``"org/repo"``.
    """

    type: SourceType
    url: Optional[str] = None
    repo: Optional[str] = None

    @property
    def is_resolvable(self) -> bool:
        if self.type is SourceType.GITHUB:
            return bool(self.repo)
        return bool(self.url)


@dataclass(frozen=True)
class Protocol:
    """Registry entry for a blockchain project."""

    name: str
    slug: str
    homepage: str
    category: Category
    sources: Tuple[Source, ...] = ()


def _parse_source(entry: Dict[str, object]) -> Source:
    url = entry.get("url")
    repo = entry.get("repo")
    return Source(
        type=SourceType(str(entry["type"])),
        url=str(url) if url else None,
        repo=str(repo) if repo else None,
    )


def parse_protocols(raw: List[Dict[str, object]]) -> List[Protocol]:
    """Build :class:`Protocol` objects from already-decoded registry data."""

    protocols: List[Protocol] = []
    for entry in raw:
        sources = tuple(_parse_source(item) for item in entry.get("sources") or [])
        protocols.append(
            Protocol(
                name=str(entry["name"]),
                slug=str(entry["slug"]),
                homepage=str(entry["homepage"]),
                category=Category(str(entry["category"])),
                sources=sources,
            )
        )
    return protocols


def load_protocols(path: Optional[Path] = None) -> List[Protocol]:
    """Load the protocol registry from YAML, defaulting to the bundled copy."""

    registry_path = path or DEFAULT_REGISTRY_PATH
    raw = yaml.safe_load(registry_path.read_text(encoding="utf-8")) or []
    protocols = parse_protocols(raw)
    logger.debug("Loaded %d protocols from %s", len(protocols), registry_path)
    return protocols
