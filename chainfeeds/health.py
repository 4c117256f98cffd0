"""Health classification of persisted feeds."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Sequence

from .fetcher import (
    DEFAULT_TIMEOUT,
    RATE_LIMIT_BACKOFF,
    VerifyResult,
    describe_error,
    verify_with_retry,
)
from .opml import StoredFeed
from .prober import DEFAULT_CONCURRENCY, open_session, run_pool

logger = logging.getLogger(__name__)

# Six 30-day months, deliberately not calendar aware.
STALE_THRESHOLD = timedelta(days=6 * 30)


class Status(str, Enum):
    HEALTHY = "healthy"
    STALE = "stale"
    INVALID = "invalid"
    DEAD = "dead"


@dataclass(frozen=True)
class FeedResult:
    """A feed together with its status and the evidence behind it."""

    feed: StoredFeed
    status: Status
    http_status: Optional[int] = None
    last_post: Optional[datetime] = None
    error: Optional[str] = None


def classify(result: VerifyResult, now: datetime) -> Status:
    """Assign a status using the priority dead > invalid > stale > healthy."""

    if result.http_status is None or not 200 <= result.http_status < 300:
        return Status.DEAD
    if not result.ok:
        return Status.INVALID
    if result.last_post is not None and now - result.last_post > STALE_THRESHOLD:
        return Status.STALE
    return Status.HEALTHY


async def check_feed(
    session,
    feed: StoredFeed,
    now: datetime,
    timeout: float = DEFAULT_TIMEOUT,
    retry_delay: float = RATE_LIMIT_BACKOFF,
) -> FeedResult:
    verified = await verify_with_retry(session, feed.xml_url, timeout, retry_delay)
    status = classify(verified, now)
    if status is not Status.HEALTHY:
        logger.debug("%s is %s (%s)", feed.xml_url, status.value, verified.error or verified.http_status)
    return FeedResult(
        feed=feed,
        status=status,
        http_status=verified.http_status,
        last_post=verified.last_post,
        error=verified.error,
    )


async def check_feeds(
    feeds: Sequence[StoredFeed],
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    now: Optional[datetime] = None,
    session=None,
    retry_delay: float = RATE_LIMIT_BACKOFF,
) -> List[FeedResult]:
    """Check every feed through the worker pool."""

    moment = now or datetime.now(timezone.utc)
    if session is None:
        async with open_session(concurrency) as owned:
            return await check_feeds(feeds, concurrency, timeout, moment, owned, retry_delay)

    async def _check(feed: StoredFeed) -> FeedResult:
        return await check_feed(session, feed, moment, timeout, retry_delay)

    def _failed(feed: StoredFeed, exc: Exception) -> FeedResult:
        return FeedResult(feed=feed, status=Status.DEAD, error=describe_error(exc, timeout))

    logger.info("Checking %d feeds...", len(feeds))
    return await run_pool(feeds, _check, concurrency, on_error=_failed)
