"""Brave Search web API client used for feed discovery."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import aiohttp

logger = logging.getLogger(__name__)

BRAVE_API = "https://api.search.brave.com/res/v1/web/search"
PAGE_SIZE = 20


@dataclass(frozen=True)
class SearchHit:
    title: str
    url: str


class BraveSearch:
    """Thin wrapper around the Brave web search endpoint.

    Errors never propagate: they are logged and an empty hit list returned.
    """

    def __init__(self, api_key: str, timeout: float = 15.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    async def search(self, session, query: str) -> List[SearchHit]:
        params = {"q": query, "count": str(PAGE_SIZE)}
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
            "X-Subscription-Token": self.api_key,
        }
        try:
            async with session.get(
                BRAVE_API,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    logger.error('Brave Search error for "%s": HTTP %s', query, response.status)
                    return []
                payload = await response.json()
        except Exception as exc:
            logger.error('Brave Search request for "%s" failed: %s', query, exc)
            return []

        results = ((payload or {}).get("web") or {}).get("results") or []
        hits: List[SearchHit] = []
        for item in results[:PAGE_SIZE]:
            url = item.get("url") if isinstance(item, dict) else None
            if url:
                hits.append(SearchHit(title=str(item.get("title") or ""), url=str(url)))
        logger.debug('"%s" returned %d hits', query, len(hits))
        return hits
