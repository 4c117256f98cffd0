"""High-level orchestration of the feed maintenance workflows."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Set

from .discovery import QUERY_DELAY, discover_feeds, fill_unresolved
from .fetcher import DEFAULT_TIMEOUT, ProbeResult, probe_homepage
from .health import FeedResult, Status, check_feeds
from .opml import StoreError, read_opml, remove_feeds, write_opml
from .prober import DEFAULT_CONCURRENCY, open_session, probe_all
from .reconcile import DiffResult, diff, load_persisted, merge_candidates
from .registry import load_protocols
from .report import format_diff_report, format_discovery_report, format_health_report
from .resolver import resolve_all
from .search import BraveSearch

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    diff: DiffResult
    failed: List[str] = field(default_factory=list)
    written: Optional[Path] = None
    report: str = ""


def write_dead_feeds(path: Path, results: Sequence[FeedResult]) -> List[str]:
    """Export the URLs of dead feeds as a JSON array."""

    dead = [result.feed.xml_url for result in results if result.status is Status.DEAD]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(dead, indent=2))
    return dead


async def run_health_check(
    opml_path: Path,
    dead_feeds_path: Path,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    now: Optional[datetime] = None,
    session=None,
) -> str:
    """Check every persisted feed and return the markdown report.

    Args:
        opml_path: Location of the persisted feed list.
        dead_feeds_path: Where the JSON list of dead feed URLs is written.
        concurrency: Maximum number of simultaneous requests.
        timeout: Per-request timeout in seconds.
        now: Reference time for staleness; defaults to the current time.
        session: Optional pre-built HTTP session.

    Raises:
        StoreError: The feed list could not be read.
    """

    moment = now or datetime.now(timezone.utc)
    feeds = read_opml(opml_path)
    results = await check_feeds(feeds, concurrency, timeout, now=moment, session=session)
    dead = write_dead_feeds(dead_feeds_path, results)
    logger.info("Wrote %d dead feed URLs to %s", len(dead), dead_feeds_path)
    return format_health_report(results, moment.date())


async def run_sync(
    registry_path: Path,
    opml_path: Path,
    verify: bool = False,
    write: bool = False,
    discover: bool = False,
    api_key: Optional[str] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    session=None,
) -> SyncOutcome:
    """Reconcile the protocol registry with the persisted feed list.

    Args:
        registry_path: Protocol registry YAML file.
        opml_path: Persisted feed list that is diffed and optionally rewritten.
        verify: Verify every resolved feed before diffing.
        write: Overwrite ``opml_path`` with the reconciled feed set, leaving
            out feeds that failed verification.
        discover: Look for feeds for unresolved registry sources.
        api_key: Brave Search key; discovery falls back to homepage probing
            without it.
        concurrency: Maximum number of simultaneous requests.
        timeout: Per-request verification timeout in seconds.
        session: Optional pre-built HTTP session.
    """

    if session is None and (verify or discover):
        async with open_session(concurrency) as owned:
            return await run_sync(
                registry_path, opml_path, verify, write, discover, api_key, concurrency, timeout, owned
            )

    protocols = load_protocols(registry_path)
    resolved = resolve_all(protocols)
    logger.info("Resolved %d feeds from %d protocols", len(resolved), len(protocols))

    if discover:
        search = BraveSearch(api_key) if api_key else None
        if search is None:
            logger.error("BRAVE_SEARCH_API_KEY is not set; search-based discovery skipped")
        extra = await fill_unresolved(protocols, session, search, concurrency=concurrency)
        resolved = merge_candidates(resolved, extra)

    failed: Set[str] = set()
    if verify:
        results = await probe_all(
            [feed.xml_url for feed in resolved],
            concurrency=concurrency,
            timeout=timeout,
            session=session,
        )
        failed = {result.url for result in results if not result.ok}
        for result in results:
            if not result.ok:
                logger.warning("Verification failed for %s: %s", result.url, result.error)

    outcome = SyncOutcome(
        diff=diff(resolved, load_persisted(opml_path)),
        failed=[feed.xml_url for feed in resolved if feed.xml_url in failed],
    )
    if write:
        keep = [feed for feed in resolved if feed.xml_url not in failed]
        write_opml(opml_path, keep)
        outcome.written = opml_path
        logger.info("Wrote %d feeds to %s", len(keep), opml_path)
    outcome.report = format_diff_report(outcome.diff, outcome.failed)
    return outcome


async def run_discovery(
    opml_path: Path,
    api_key: str,
    now: Optional[datetime] = None,
    session=None,
    query_delay: float = QUERY_DELAY,
) -> str:
    """Search the web for feeds that are not yet in the feed list."""

    if session is None:
        async with open_session() as owned:
            return await run_discovery(opml_path, api_key, now, owned, query_delay)

    existing = load_persisted(opml_path)
    confirmed = await discover_feeds(
        BraveSearch(api_key), existing, session, query_delay=query_delay
    )
    moment = now or datetime.now(timezone.utc)
    return format_discovery_report(confirmed, moment.date())


async def probe_homepages(homepages: Sequence[str], session=None) -> List[ProbeResult]:
    if session is None:
        async with open_session() as owned:
            return await probe_homepages(homepages, owned)
    results: List[ProbeResult] = []
    for homepage in homepages:
        logger.info("Probing: %s", homepage)
        results.append(await probe_homepage(session, homepage))
    return results


def remove_dead_feeds(dead_feeds_path: Path, opml_path: Path) -> List[str]:
    """Delete the feeds listed in the dead-feed export from the feed list.

    Raises:
        StoreError: Either file could not be read.
    """

    try:
        dead_urls = json.loads(dead_feeds_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise StoreError(f"Cannot read dead feed list {dead_feeds_path}: {exc}") from exc
    if not dead_urls:
        return []
    try:
        text = opml_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StoreError(f"Cannot read {opml_path}: {exc}") from exc
    rewritten, removed = remove_feeds(text, [str(url) for url in dead_urls])
    opml_path.write_text(rewritten, encoding="utf-8")
    return removed
