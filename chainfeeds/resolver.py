"""Resolution of registry sources into concrete feed URLs."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from .registry import Category, Protocol, Source, SourceType


@dataclass(frozen=True)
class ResolvedFeed:
    """A fetchable feed derived from a (protocol, source) pair."""

    protocol: str
    source_type: SourceType
    label: str
    xml_url: str
    html_url: str
    category: Category


_PLATFORM_FEED_SEGMENT = re.compile(r"/feed/(?=[^/])")
_FEED_SUFFIX = re.compile(
    r"/(?:feed|rss|atom|index)\.(?:xml|json|rss|atom)$"
    r"|/latest\.(?:rss|atom)$"
    r"|/(?:feed|rss|atom)$",
    re.IGNORECASE,
)


def derive_html_url(feed_url: str, homepage: str) -> str:
    """Guess the human-browsable page behind ``feed_url``.

    ``medium.com/feed/foo`` becomes ``medium.com/foo``; otherwise a trailing
    feed suffix (``/rss``, ``/feed.xml``, ``/latest.rss``...) is dropped.
    When neither applies the protocol homepage is used.
    """

    cleaned = feed_url.rstrip("/")
    platform = _PLATFORM_FEED_SEGMENT.sub("/", cleaned, count=1)
    if platform != cleaned:
        return platform
    stripped = _FEED_SUFFIX.sub("", cleaned)
    if stripped == cleaned or not urlparse(stripped).netloc:
        return homepage
    return stripped


def resolve_source(protocol: Protocol, source: Source) -> Optional[ResolvedFeed]:
    """Map a registry source to a :class:`ResolvedFeed`, or ``None``."""

    if source.type is SourceType.GITHUB:
        if not source.repo:
            return None
        repo_name = source.repo.rsplit("/", 1)[-1]
        return ResolvedFeed(
            protocol=protocol.name,
            source_type=source.type,
            label=f"{protocol.name} - {repo_name} Releases",
            xml_url=f"https://github.com/{source.repo}/releases.atom",
            html_url=f"https://github.com/{source.repo}/releases",
            category=protocol.category,
        )

    if source.type in (SourceType.FORUM, SourceType.GOVERNANCE):
        if not source.url:
            return None
        base = source.url.rstrip("/")
        return ResolvedFeed(
            protocol=protocol.name,
            source_type=source.type,
            label=f"{protocol.name} - {source.type.label}",
            xml_url=f"{base}/latest.rss",
            html_url=f"{base}/latest",
            category=protocol.category,
        )

    if source.type in (SourceType.BLOG, SourceType.SECURITY, SourceType.RESEARCH):
        if not source.url:
            return None
        return ResolvedFeed(
            protocol=protocol.name,
            source_type=source.type,
            label=f"{protocol.name} - {source.type.label}",
            xml_url=source.url,
            html_url=derive_html_url(source.url, protocol.homepage),
            category=protocol.category,
        )

    return None


def resolve_all(protocols: Iterable[Protocol]) -> List[ResolvedFeed]:
    """Resolve every source in registry declaration order."""

    feeds: List[ResolvedFeed] = []
    for protocol in protocols:
        for source in protocol.sources:
            resolved = resolve_source(protocol, source)
            if resolved is not None:
                feeds.append(resolved)
    return feeds


def find_unresolved(protocols: Iterable[Protocol]) -> List[Tuple[Protocol, Source]]:
    """Return the sources still missing their URL (or repo for github)."""

    return [
        (protocol, source)
        for protocol in protocols
        for source in protocol.sources
        if not source.is_resolvable
    ]
