"""Asynchronous feed verification utilities."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urljoin

import aiohttp
from feedparser.datetimes import _parse_date

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
RATE_LIMIT_BACKOFF = 3.0
USER_AGENT = "blockchain-signals/2.0"

_FEED_MARKERS = (re.compile(r"<rss[\s>]"), re.compile(r"<feed[\s>]"))
_TITLE = re.compile(r"<title>([^<]+)</title>")
_DATE_TAGS = (
    re.compile(r"<pubDate>([^<]+)</pubDate>"),
    re.compile(r"<updated>([^<]+)</updated>"),
)
_ALTERNATE_LINK = re.compile(
    r"<link\s[^>]*type=[\"']application/(?:rss|atom)\+xml[\"'][^>]*>", re.IGNORECASE
)
_HREF = re.compile(r"href=[\"']([^\"']+)[\"']")

COMMON_FEED_PATHS = (
    "/feed",
    "/feed.xml",
    "/rss",
    "/rss.xml",
    "/atom.xml",
    "/blog/rss",
    "/blog/feed",
    "/blog/rss.xml",
    "/blog/feed.xml",
    "/blog/atom.xml",
    "/index.xml",
    "/blog/index.xml",
)


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a single verification request."""

    url: str
    ok: bool
    title: Optional[str] = None
    last_post: Optional[datetime] = None
    http_status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class ProbeResult:
    """Feed auto-detected from a homepage, if any."""

    homepage: str
    feed_url: Optional[str] = None
    feed_title: Optional[str] = None
    method: Optional[str] = None


def is_rss_or_atom(body: str) -> bool:
    return any(marker.search(body) for marker in _FEED_MARKERS)


def extract_feed_title(body: str) -> Optional[str]:
    match = _TITLE.search(body)
    return match.group(1).strip() if match else None


def parse_feed_date(value: str) -> Optional[datetime]:
    """Parse an RSS/Atom timestamp into an aware UTC datetime.

    Relies on ``feedparser.datetimes._parse_date``, which feedparser 6.x
    exposes without a public alias; ``pyproject.toml`` pins the major
    version accordingly.
    """

    parsed = _parse_date(value.strip())
    if parsed is None:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc)


def extract_last_post_date(body: str) -> Optional[datetime]:
    """Return the first parseable ``<pubDate>`` (RSS) or ``<updated>`` (Atom)."""

    for pattern in _DATE_TAGS:
        match = pattern.search(body)
        if match:
            parsed = parse_feed_date(match.group(1))
            if parsed is not None:
                return parsed
    return None


def describe_error(exc: BaseException, timeout: float) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"Timed out after {timeout:g}s"
    return str(exc) or exc.__class__.__name__


async def verify_feed(session, url: str, timeout: float = DEFAULT_TIMEOUT) -> VerifyResult:
    """Fetch ``url`` once and check that it serves RSS or Atom."""

    try:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers={"User-Agent": USER_AGENT},
        ) as response:
            status = response.status
            if not 200 <= status < 300:
                return VerifyResult(url=url, ok=False, http_status=status, error=f"HTTP {status}")
            body = await response.text(errors="replace")
    except Exception as exc:
        error = describe_error(exc, timeout)
        logger.debug("Failed to fetch %s: %s", url, error)
        return VerifyResult(url=url, ok=False, error=error)

    if not is_rss_or_atom(body):
        return VerifyResult(url=url, ok=False, http_status=status, error="Not RSS/Atom")
    return VerifyResult(
        url=url,
        ok=True,
        title=extract_feed_title(body),
        last_post=extract_last_post_date(body),
        http_status=status,
    )


async def verify_with_retry(
    session,
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    retry_delay: float = RATE_LIMIT_BACKOFF,
) -> VerifyResult:
    """Verify ``url``, retrying exactly once after an HTTP 429."""

    result = await verify_feed(session, url, timeout)
    if result.http_status == 429:
        logger.info("Rate limited by %s; retrying in %gs", url, retry_delay)
        await asyncio.sleep(retry_delay)
        result = await verify_feed(session, url, timeout)
    return result


def extract_feed_links(html: str, base_url: str) -> List[str]:
    """Collect ``<link rel="alternate">`` feed hrefs, resolved against ``base_url``."""

    links: List[str] = []
    for tag in _ALTERNATE_LINK.finditer(html):
        href = _HREF.search(tag.group(0))
        if href:
            links.append(urljoin(base_url + "/", href.group(1)))
    return links


async def _fetch_text(session, url: str, timeout: float) -> Optional[str]:
    try:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers={"User-Agent": USER_AGENT},
        ) as response:
            if not 200 <= response.status < 300:
                return None
            return await response.text(errors="replace")
    except Exception as exc:
        logger.debug("Failed to fetch %s: %s", url, describe_error(exc, timeout))
        return None


async def probe_homepage(
    session,
    homepage: str,
    page_timeout: float = 10.0,
    path_timeout: float = 8.0,
) -> ProbeResult:
    """Auto-detect the feed of a site from its homepage.

    Advertised ``<link>`` tags are tried first, then a list of common feed
    paths. The first URL that serves RSS or Atom wins.
    """

    base = homepage.rstrip("/")
    result = ProbeResult(homepage=homepage)

    html = await _fetch_text(session, base, page_timeout)
    if html is not None:
        for link in extract_feed_links(html, base):
            verified = await verify_feed(session, link, page_timeout)
            if verified.ok:
                result.feed_url = link
                result.feed_title = verified.title
                result.method = "link-tag"
                return result

    for path in COMMON_FEED_PATHS:
        url = f"{base}{path}"
        verified = await verify_feed(session, url, path_timeout)
        if verified.ok:
            result.feed_url = url
            result.feed_title = verified.title
            result.method = "common-path"
            return result

    logger.debug("No feed found for %s", homepage)
    return result
