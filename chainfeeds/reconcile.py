"""Reconciliation of the resolved registry against the persisted feed list."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

from .opml import StoredFeed, StoreError, read_opml
from .resolver import ResolvedFeed

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    added: List[ResolvedFeed] = field(default_factory=list)
    removed: List[StoredFeed] = field(default_factory=list)
    unchanged: int = 0


def normalise_url(url: str) -> str:
    """Comparison key for feed identity: lowercase, no trailing slash."""

    return url.lower().rstrip("/")


def diff(resolved: Sequence[ResolvedFeed], persisted: Sequence[StoredFeed]) -> DiffResult:
    """Partition feeds into added/removed/unchanged by normalised URL."""

    persisted_keys = {normalise_url(feed.xml_url) for feed in persisted}
    resolved_keys = {normalise_url(feed.xml_url) for feed in resolved}

    result = DiffResult()
    for feed in resolved:
        if normalise_url(feed.xml_url) in persisted_keys:
            result.unchanged += 1
        else:
            result.added.append(feed)
    result.removed = [
        feed for feed in persisted if normalise_url(feed.xml_url) not in resolved_keys
    ]
    return result


def load_persisted(path: Path) -> List[StoredFeed]:
    """Read the persisted list, treating an unreadable store as empty."""

    try:
        return read_opml(path)
    except StoreError as exc:
        logger.warning("Treating persisted feed list as empty: %s", exc)
        return []


def merge_candidates(
    resolved: Sequence[ResolvedFeed], extra: Iterable[ResolvedFeed]
) -> List[ResolvedFeed]:
    """Append discovered feeds whose URL is not already resolved."""

    merged = list(resolved)
    seen = {normalise_url(feed.xml_url) for feed in merged}
    for feed in extra:
        key = normalise_url(feed.xml_url)
        if key not in seen:
            seen.add(key)
            merged.append(feed)
    return merged
