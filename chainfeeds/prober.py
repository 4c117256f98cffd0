"""Bounded-concurrency worker pool for probing many URLs."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

import aiohttp

from .fetcher import (
    DEFAULT_TIMEOUT,
    RATE_LIMIT_BACKOFF,
    VerifyResult,
    describe_error,
    verify_with_retry,
)

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5

T = TypeVar("T")
R = TypeVar("R")


async def run_pool(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int = DEFAULT_CONCURRENCY,
    on_error: Optional[Callable[[T, Exception], R]] = None,
) -> List[Union[R, Exception]]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Results are appended as workers finish, so their order is not the input
    order. Every item yields exactly one result: an exception escaping
    ``worker`` is logged and turned into ``on_error(item, exc)``, or kept as
    the exception itself when no ``on_error`` is given.
    """

    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    queue: asyncio.Queue = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)
    results: List[Union[R, Exception]] = []

    async def _drain() -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results.append(await worker(item))
            except Exception as exc:
                logger.exception("Worker failed for %r", item)
                results.append(on_error(item, exc) if on_error else exc)

    await asyncio.gather(*(_drain() for _ in range(min(concurrency, len(items)))))
    return results


def open_session(concurrency: int = DEFAULT_CONCURRENCY) -> aiohttp.ClientSession:
    connector = aiohttp.TCPConnector(limit_per_host=concurrency)
    return aiohttp.ClientSession(connector=connector)


async def probe_all(
    urls: Sequence[str],
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    session=None,
    retry_delay: float = RATE_LIMIT_BACKOFF,
) -> List[VerifyResult]:
    """Verify every URL through the pool; each result carries its ``url``."""

    if session is None:
        async with open_session(concurrency) as owned:
            return await probe_all(urls, concurrency, timeout, owned, retry_delay)

    async def _verify(url: str) -> VerifyResult:
        return await verify_with_retry(session, url, timeout, retry_delay)

    def _failed(url: str, exc: Exception) -> VerifyResult:
        return VerifyResult(url=url, ok=False, error=describe_error(exc, timeout))

    results = await run_pool(urls, _verify, concurrency, on_error=_failed)
    failed = sum(1 for result in results if not result.ok)
    logger.info("Verified %d URLs (%d failed)", len(results), failed)
    return results
