import asyncio
from datetime import datetime, timedelta, timezone

from chainfeeds.fetcher import VerifyResult, verify_feed
from chainfeeds.health import STALE_THRESHOLD, Status, check_feeds, classify
from chainfeeds.opml import StoredFeed
from tests.fakes import DummyResponse, DummySession, rss

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def ok_result(last_post=None) -> VerifyResult:
    return VerifyResult(url="https://x.io/feed", ok=True, last_post=last_post, http_status=200)


def test_threshold_is_six_thirty_day_months():
    assert STALE_THRESHOLD.total_seconds() * 1000 == 15_552_000_000


def test_http_error_with_feed_body_is_dead():
    session = DummySession({"https://x.io/feed": DummyResponse(500, rss())})
    result = asyncio.run(verify_feed(session, "https://x.io/feed"))
    assert classify(result, NOW) is Status.DEAD


def test_fetch_failure_is_dead():
    result = VerifyResult(url="https://x.io/feed", ok=False, error="Timed out after 15s")
    assert classify(result, NOW) is Status.DEAD


def test_non_feed_content_is_invalid():
    result = VerifyResult(url="https://x.io/feed", ok=False, http_status=200, error="Not RSS/Atom")
    assert classify(result, NOW) is Status.INVALID


def test_staleness_boundary():
    assert classify(ok_result(NOW - STALE_THRESHOLD), NOW) is Status.HEALTHY
    older = NOW - STALE_THRESHOLD - timedelta(milliseconds=1)
    assert classify(ok_result(older), NOW) is Status.STALE


def test_missing_date_is_healthy():
    assert classify(ok_result(), NOW) is Status.HEALTHY


def test_old_feed_is_stale_against_far_future():
    body = "<rss><channel><pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate></channel></rss>"
    session = DummySession({"https://x.io/feed": DummyResponse(200, body)})
    result = asyncio.run(verify_feed(session, "https://x.io/feed"))
    assert result.ok
    assert result.last_post.date().isoformat() == "2024-01-01"
    assert classify(result, datetime(2100, 1, 1, tzinfo=timezone.utc)) is Status.STALE


def test_check_feeds_classifies_each_feed_once():
    feeds = [
        StoredFeed("Healthy", "https://a.io/feed", "https://a.io", "Blog"),
        StoredFeed("Stale", "https://b.io/feed", "https://b.io", "Blog"),
        StoredFeed("Invalid", "https://c.io/feed", "https://c.io", "Forum"),
        StoredFeed("Dead", "https://d.io/feed", "https://d.io", "Releases"),
    ]
    session = DummySession(
        {
            "https://a.io/feed": DummyResponse(200, rss("Sun, 01 Jun 2025 00:00:00 GMT")),
            "https://b.io/feed": DummyResponse(200, rss("Mon, 01 Jan 2024 00:00:00 GMT")),
            "https://c.io/feed": DummyResponse(200, "<html></html>"),
        }
    )

    results = asyncio.run(check_feeds(feeds, now=NOW, session=session, retry_delay=0))

    statuses = {result.feed.name: result.status for result in results}
    assert statuses == {
        "Healthy": Status.HEALTHY,
        "Stale": Status.STALE,
        "Invalid": Status.INVALID,
        "Dead": Status.DEAD,
    }
    dead = next(result for result in results if result.status is Status.DEAD)
    assert dead.http_status == 404
    assert dead.error == "HTTP 404"


def test_feed_in_another_charset_is_healthy():
    body = (
        b"<rss><channel><title>Caf\xe9</title>"
        b"<pubDate>Sun, 01 Jun 2025 00:00:00 GMT</pubDate></channel></rss>"
    )
    session = DummySession({"https://a.io/feed": DummyResponse(200, body)})
    result = asyncio.run(verify_feed(session, "https://a.io/feed"))
    assert classify(result, NOW) is Status.HEALTHY


def test_check_feeds_reports_every_feed_when_a_check_raises(monkeypatch):
    async def explode(session, url, timeout, retry_delay):
        raise ValueError("unexpected")

    monkeypatch.setattr("chainfeeds.health.verify_with_retry", explode)
    feeds = [
        StoredFeed("One", "https://a.io/feed", "https://a.io", "Blog"),
        StoredFeed("Two", "https://b.io/feed", "https://b.io", "Blog"),
    ]

    results = asyncio.run(check_feeds(feeds, now=NOW, session=DummySession()))

    assert sorted(result.feed.name for result in results) == ["One", "Two"]
    assert all(result.status is Status.DEAD for result in results)
    assert all(result.error == "unexpected" for result in results)
