"""Markdown reports for health checks, discovery runs and registry diffs."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from .discovery import Candidate
from .health import FeedResult, Status
from .reconcile import DiffResult


def _day(value: Optional[datetime]) -> Optional[str]:
    return value.date().isoformat() if value else None


def _table(header: Sequence[str], rows: Sequence[Sequence[object]]) -> List[str]:
    lines = [
        "| " + " | ".join(header) + " |",
        "|" + "|".join("-" * (len(title) + 2) for title in header) + "|",
    ]
    lines.extend("| " + " | ".join(str(cell) for cell in row) + " |" for row in rows)
    lines.append("")
    return lines


def format_health_report(results: Sequence[FeedResult], today: date) -> str:
    grouped: Dict[Status, List[FeedResult]] = {status: [] for status in Status}
    for result in results:
        grouped[result.status].append(result)

    lines = [
        "# Feed Health Check Report",
        "",
        f"**Date**: {today.isoformat()}",
        f"**Total feeds**: {len(results)}",
        "",
    ]
    lines += _table(
        ["Status", "Count"],
        [(status.value.capitalize(), len(grouped[status])) for status in Status],
    )

    if grouped[Status.DEAD]:
        lines += ["## Dead Feeds", ""]
        lines += _table(
            ["Feed", "Category", "Error"],
            [(r.feed.name, r.feed.category, r.error or "-") for r in grouped[Status.DEAD]],
        )
    if grouped[Status.INVALID]:
        lines += ["## Invalid Feeds (not RSS/Atom)", ""]
        lines += _table(
            ["Feed", "Category", "HTTP Status"],
            [(r.feed.name, r.feed.category, r.http_status or "-") for r in grouped[Status.INVALID]],
        )
    if grouped[Status.STALE]:
        lines += ["## Stale Feeds (>6 months)", ""]
        lines += _table(
            ["Feed", "Category", "Last Post"],
            [(r.feed.name, r.feed.category, _day(r.last_post) or "unknown") for r in grouped[Status.STALE]],
        )
    if grouped[Status.HEALTHY]:
        lines += ["## Healthy Feeds", ""]
        lines += _table(
            ["Feed", "Category", "Last Post"],
            [
                (r.feed.name, r.feed.category, _day(r.last_post) or "date unknown")
                for r in grouped[Status.HEALTHY]
            ],
        )
    return "\n".join(lines)


def format_discovery_report(confirmed: Sequence[Candidate], today: date) -> str:
    lines = [
        "# Feed Discovery Report",
        "",
        f"**Date**: {today.isoformat()}",
        f"**Verified feeds**: {len(confirmed)}",
        "",
    ]
    if confirmed:
        lines += _table(
            ["#", "Feed", "URL", "Found via"],
            [(index, c.name, c.url, c.query) for index, c in enumerate(confirmed, start=1)],
        )
    else:
        lines += ["No new feeds found this week.", ""]
    return "\n".join(lines)


def format_diff_report(result: DiffResult, failed: Sequence[str] = ()) -> str:
    lines = [
        "# Registry Sync Report",
        "",
        f"**Added**: {len(result.added)}",
        f"**Removed**: {len(result.removed)}",
        f"**Unchanged**: {result.unchanged}",
        "",
    ]
    if result.added:
        lines += ["## Added", ""]
        lines += _table(
            ["Feed", "Type", "URL"],
            [(feed.label, feed.source_type.value, feed.xml_url) for feed in result.added],
        )
    if result.removed:
        lines += ["## Removed", ""]
        lines += _table(["Feed", "URL"], [(feed.name, feed.xml_url) for feed in result.removed])
    if failed:
        lines += ["## Failed Verification", ""]
        lines += [f"- {url}" for url in failed]
        lines.append("")
    return "\n".join(lines)
