"""Reading and writing the persisted OPML feed list."""
from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from .registry import SourceType
from .resolver import ResolvedFeed

logger = logging.getLogger(__name__)

CATEGORY_ORDER = (
    SourceType.BLOG,
    SourceType.GITHUB,
    SourceType.FORUM,
    SourceType.GOVERNANCE,
    SourceType.SECURITY,
    SourceType.RESEARCH,
)

CATEGORY_LABELS = {
    SourceType.BLOG: "Blog",
    SourceType.GITHUB: "Releases",
    SourceType.FORUM: "Forum",
    SourceType.GOVERNANCE: "Governance",
    SourceType.SECURITY: "Security",
    SourceType.RESEARCH: "Research",
}

_OUTLINE = re.compile(r"<outline\b([^>]*)>")
_ATTRIBUTE = re.compile(r"([\w:-]+)\s*=\s*\"([^\"]*)\"")
_TEXT_ATTRIBUTE = re.compile(r"text=\"([^\"]*)\"")


class StoreError(RuntimeError):
    """Raised when the feed list cannot be read."""


@dataclass(frozen=True)
class StoredFeed:
    """A feed record as persisted in the OPML document."""

    name: str
    xml_url: str
    html_url: str
    category: str


def escape_xml(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _attributes(raw: str) -> Dict[str, str]:
    return {key: html.unescape(value) for key, value in _ATTRIBUTE.findall(raw)}


def parse_opml(text: str) -> List[StoredFeed]:
    """Extract feed records from an OPML document.

    Outlines carrying ``xmlUrl`` are feeds; any other outline opens a
    category. Records without a usable ``xmlUrl`` are skipped.
    """

    if "<opml" not in text:
        raise StoreError("Document has no <opml> root")

    feeds: List[StoredFeed] = []
    category = ""
    for match in _OUTLINE.finditer(text):
        attrs = _attributes(match.group(1))
        if "xmlUrl" not in attrs:
            if "text" in attrs:
                category = attrs["text"]
            continue
        xml_url = attrs["xmlUrl"].strip()
        if not xml_url:
            logger.debug("Skipping outline without a feed URL: %s", match.group(0))
            continue
        feeds.append(
            StoredFeed(
                name=attrs.get("text") or attrs.get("title") or xml_url,
                xml_url=xml_url,
                html_url=attrs.get("htmlUrl", ""),
                category=category,
            )
        )
    return feeds


def read_opml(path: Path) -> List[StoredFeed]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise StoreError(f"Cannot read {path}: {exc}") from exc
    return parse_opml(text)


def generate_opml(feeds: Iterable[ResolvedFeed], title: str = "blockchain-signals") -> str:
    """Render feeds grouped by source type, each group sorted by label."""

    grouped: Dict[SourceType, List[ResolvedFeed]] = {}
    for feed in feeds:
        grouped.setdefault(feed.source_type, []).append(feed)

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<opml version="1.0">',
        "  <head>",
        f"    <title>{escape_xml(title)}</title>",
        "  </head>",
        "  <body>",
    ]
    for source_type in CATEGORY_ORDER:
        members = grouped.get(source_type)
        if not members:
            continue
        label = CATEGORY_LABELS[source_type]
        lines.append(f'    <outline text="{label}" title="{label}">')
        for feed in sorted(members, key=lambda item: item.label):
            text = escape_xml(feed.label)
            lines.append(
                f'      <outline text="{text}" title="{text}" type="rss" '
                f'xmlUrl="{escape_xml(feed.xml_url)}" htmlUrl="{escape_xml(feed.html_url)}"/>'
            )
        lines.append("    </outline>")
    lines.extend(["  </body>", "</opml>", ""])
    return "\n".join(lines)


def write_opml(path: Path, feeds: Iterable[ResolvedFeed]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_opml(feeds), encoding="utf-8")


def remove_feeds(text: str, urls: Sequence[str]) -> Tuple[str, List[str]]:
    """Drop every line whose ``xmlUrl`` attribute equals one of ``urls``.

    Returns the rewritten document and the names of the removed feeds.
    """

    needles = [(url, f'xmlUrl="{escape_xml(url)}"') for url in urls]
    removed: List[str] = []
    kept: List[str] = []
    for line in text.split("\n"):
        hit = next((url for url, needle in needles if needle in line), None)
        if hit is None:
            kept.append(line)
            continue
        name = _TEXT_ATTRIBUTE.search(line)
        removed.append(html.unescape(name.group(1)) if name else hit)
    return "\n".join(kept), removed
