"""Discovery of new feeds through web search and homepage probing."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set
from urllib.parse import urlparse

from .fetcher import probe_homepage
from .opml import StoredFeed
from .prober import DEFAULT_CONCURRENCY, probe_all
from .reconcile import normalise_url
from .registry import Protocol, Source, SourceType
from .resolver import ResolvedFeed, find_unresolved, resolve_source
from .search import BraveSearch, SearchHit

logger = logging.getLogger(__name__)

DISCOVERY_TIMEOUT = 10.0
QUERY_DELAY = 1.0
MAX_HITS_PER_SOURCE = 5

SEARCH_QUERIES = (
    "blockchain protocol blog RSS feed",
    "crypto security research RSS atom feed",
    "ethereum L2 rollup blog RSS feed",
    "web3 developer tooling blog RSS feed",
    "DeFi protocol engineering blog RSS",
)

GUESSED_FEED_PATHS = ("/feed", "/rss", "/feed.xml", "/rss.xml", "/atom.xml")

_FEED_EXTENSION = re.compile(r"\.(xml|atom|rss)$", re.IGNORECASE)
_FEED_SEGMENT = re.compile(r"/(feed|rss|atom)(/|$)", re.IGNORECASE)
_GITHUB_REPO = re.compile(r"^https?://(?:www\.)?github\.com/([\w.-]+)/([\w.-]+)", re.IGNORECASE)
_DISCOURSE_FEED = "/latest.rss"


@dataclass
class Candidate:
    """A speculative feed URL and the search that surfaced it."""

    title: str
    url: str
    query: str
    feed_title: Optional[str] = None

    @property
    def name(self) -> str:
        return self.feed_title or self.title


def extract_feed_url(url: str) -> Optional[str]:
    """Return ``url`` when its shape already looks like a feed."""

    path = urlparse(url).path
    if _FEED_EXTENSION.search(path) or _FEED_SEGMENT.search(path):
        return url
    return None


def hostname(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def _origin(url: str) -> Optional[str]:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def candidate_urls(url: str) -> List[str]:
    """Feed URLs worth trying for a search hit pointing at ``url``."""

    urls: List[str] = []
    direct = extract_feed_url(url)
    if direct:
        urls.append(direct)
    origin = _origin(url)
    if origin:
        urls.extend(f"{origin}{path}" for path in GUESSED_FEED_PATHS)
    return urls


class CandidateCollector:
    """Accumulates at most one candidate per hostname.

    Hosts already present in the persisted list are never proposed again, and
    candidates are additionally keyed by normalised URL.
    """

    def __init__(self, existing: Iterable[StoredFeed]) -> None:
        existing = list(existing)
        self.existing_urls: Set[str] = {normalise_url(feed.xml_url) for feed in existing}
        self.seen_hosts: Set[str] = {
            host for host in (hostname(feed.xml_url) for feed in existing) if host
        }
        self._candidates: Dict[str, Candidate] = {}

    @property
    def candidates(self) -> List[Candidate]:
        return list(self._candidates.values())

    def add_hits(self, query: str, hits: Iterable[SearchHit]) -> None:
        for hit in hits:
            for url in candidate_urls(hit.url):
                host = hostname(url)
                if not host or host in self.seen_hosts:
                    continue
                key = normalise_url(url)
                if key in self.existing_urls:
                    continue
                self.seen_hosts.add(host)
                self._candidates[key] = Candidate(title=hit.title, url=url, query=query)
                break


async def discover_feeds(
    search: BraveSearch,
    existing: Sequence[StoredFeed],
    session,
    queries: Sequence[str] = SEARCH_QUERIES,
    query_delay: float = QUERY_DELAY,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DISCOVERY_TIMEOUT,
) -> List[Candidate]:
    """Search for new feeds and keep the candidates that verify."""

    collector = CandidateCollector(existing)
    for query in queries:
        logger.info('Searching: "%s"...', query)
        collector.add_hits(query, await search.search(session, query))
        await asyncio.sleep(query_delay)

    candidates = collector.candidates
    logger.info("Verifying %d candidate URLs...", len(candidates))
    results = await probe_all(
        [candidate.url for candidate in candidates],
        concurrency=concurrency,
        timeout=timeout,
        session=session,
    )
    verified = {result.url: result for result in results if result.ok}
    confirmed: List[Candidate] = []
    for candidate in candidates:
        result = verified.get(candidate.url)
        if result is not None:
            candidate.feed_title = result.title
            confirmed.append(candidate)
    return confirmed


def _github_repo(hits: Iterable[SearchHit]) -> Optional[str]:
    for hit in hits:
        match = _GITHUB_REPO.match(hit.url)
        if match:
            repo = match.group(2)
            if repo.endswith(".git"):
                repo = repo[: -len(".git")]
            return f"{match.group(1)}/{repo}"
    return None


def _search_candidates(source_type: SourceType, hits: Sequence[SearchHit]) -> List[str]:
    urls: List[str] = []
    for hit in hits[:MAX_HITS_PER_SOURCE]:
        if source_type in (SourceType.FORUM, SourceType.GOVERNANCE):
            origin = _origin(hit.url)
            guesses = [f"{origin}{_DISCOURSE_FEED}"] if origin else []
        else:
            guesses = candidate_urls(hit.url)
        urls.extend(url for url in guesses if url not in urls)
    return urls


def _source_for(source: Source, feed_url: str) -> Source:
    if source.type in (SourceType.FORUM, SourceType.GOVERNANCE) and feed_url.endswith(_DISCOURSE_FEED):
        return Source(type=source.type, url=feed_url[: -len(_DISCOURSE_FEED)])
    return Source(type=source.type, url=feed_url)


async def _fill_from_search(
    protocol: Protocol,
    source: Source,
    search: BraveSearch,
    session,
    concurrency: int,
    timeout: float,
) -> Optional[Source]:
    if source.type is SourceType.GITHUB:
        hits = await search.search(session, f"{protocol.name} github repository")
        repo = _github_repo(hits)
        return Source(type=source.type, repo=repo) if repo else None

    hits = await search.search(session, f"{protocol.name} {source.type.value} RSS feed")
    urls = _search_candidates(source.type, hits)
    if not urls:
        return None
    results = await probe_all(urls, concurrency=concurrency, timeout=timeout, session=session)
    verified = {result.url for result in results if result.ok}
    for url in urls:
        if url in verified:
            return _source_for(source, url)
    return None


async def fill_unresolved(
    protocols: Sequence[Protocol],
    session,
    search: Optional[BraveSearch] = None,
    query_delay: float = QUERY_DELAY,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DISCOVERY_TIMEOUT,
) -> List[ResolvedFeed]:
    """Find feeds for registry sources that have no URL yet.

    Blog sources are first probed from the protocol homepage. When a search
    client is available, anything still missing is looked up on the web.
    """

    found: List[ResolvedFeed] = []
    for protocol, source in find_unresolved(protocols):
        filled: Optional[Source] = None
        if source.type is SourceType.BLOG:
            probe = await probe_homepage(session, protocol.homepage)
            if probe.feed_url:
                filled = Source(type=source.type, url=probe.feed_url)
        if filled is None and search is not None:
            filled = await _fill_from_search(protocol, source, search, session, concurrency, timeout)
            await asyncio.sleep(query_delay)
        if filled is None:
            logger.info("No %s feed found for %s", source.type.value, protocol.name)
            continue
        resolved = resolve_source(protocol, filled)
        if resolved is not None:
            logger.info("Discovered %s: %s", resolved.label, resolved.xml_url)
            found.append(resolved)
    return found
