import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from chainfeeds.opml import StoreError, read_opml
from chainfeeds.pipeline import remove_dead_feeds, run_health_check, run_sync
from tests.fakes import DummyResponse, DummySession, rss

REGISTRY = """
- name: Ethereum
  slug: ethereum
  homepage: https://ethereum.org
  category: L1
  sources:
    - {type: github, repo: ethereum/go-ethereum}
    - {type: blog, url: "https://blog.ethereum.org/feed.xml"}
    - {type: forum}
"""

STORE = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="1.0">
  <body>
    <outline text="Blog" title="Blog">
      <outline text="Ethereum - Blog" type="rss" xmlUrl="https://blog.ethereum.org/feed.xml/" htmlUrl="https://blog.ethereum.org"/>
      <outline text="Retired - Blog" type="rss" xmlUrl="https://retired.io/feed" htmlUrl="https://retired.io"/>
    </outline>
  </body>
</opml>
"""


@pytest.fixture
def registry(tmp_path: Path) -> Path:
    path = tmp_path / "protocols.yaml"
    path.write_text(REGISTRY)
    return path


@pytest.fixture
def store(tmp_path: Path) -> Path:
    path = tmp_path / "feeds.opml"
    path.write_text(STORE)
    return path


def test_sync_reports_diff_without_network(registry, store):
    outcome = asyncio.run(run_sync(registry, store))

    assert [feed.label for feed in outcome.diff.added] == ["Ethereum - go-ethereum Releases"]
    assert [feed.name for feed in outcome.diff.removed] == ["Retired - Blog"]
    assert outcome.diff.unchanged == 1
    assert outcome.written is None
    assert "**Added**: 1" in outcome.report


def test_sync_write_excludes_feeds_that_failed_verification(registry, store):
    session = DummySession(
        {"https://github.com/ethereum/go-ethereum/releases.atom": DummyResponse(200, rss())}
    )

    outcome = asyncio.run(run_sync(registry, store, verify=True, write=True, session=session))

    assert outcome.failed == ["https://blog.ethereum.org/feed.xml"]
    assert [feed.xml_url for feed in read_opml(store)] == [
        "https://github.com/ethereum/go-ethereum/releases.atom"
    ]
    assert "## Failed Verification" in outcome.report


def test_sync_with_missing_store_adds_everything(registry, tmp_path):
    outcome = asyncio.run(run_sync(registry, tmp_path / "absent.opml"))
    assert len(outcome.diff.added) == 2
    assert outcome.diff.removed == []


def test_sync_discovery_without_api_key_still_reconciles(registry, store, caplog):
    session = DummySession({"https://ethresear.ch/latest.rss": DummyResponse(200, rss())})

    outcome = asyncio.run(run_sync(registry, store, discover=True, session=session))

    assert "BRAVE_SEARCH_API_KEY" in caplog.text
    assert outcome.diff.unchanged == 1
    assert session.calls == []


def test_health_check_writes_dead_feed_export(store, tmp_path):
    dead_path = tmp_path / "dead.json"
    session = DummySession({"https://blog.ethereum.org/feed.xml/": DummyResponse(200, rss())})
    now = datetime(2024, 2, 1, tzinfo=timezone.utc)

    report = asyncio.run(run_health_check(store, dead_path, now=now, session=session))

    assert json.loads(dead_path.read_text()) == ["https://retired.io/feed"]
    assert "**Total feeds**: 2" in report
    assert "| Retired - Blog | Blog | HTTP 404 |" in report
    assert "| Ethereum - Blog | Blog | 2024-01-01 |" in report


def test_health_check_requires_readable_store(tmp_path):
    with pytest.raises(StoreError):
        asyncio.run(run_health_check(tmp_path / "absent.opml", tmp_path / "dead.json"))


def test_remove_dead_feeds_rewrites_store(store, tmp_path):
    dead_path = tmp_path / "dead.json"
    dead_path.write_text(json.dumps(["https://retired.io/feed"]))

    removed = remove_dead_feeds(dead_path, store)

    assert removed == ["Retired - Blog"]
    assert [feed.name for feed in read_opml(store)] == ["Ethereum - Blog"]


def test_remove_dead_feeds_with_empty_export_is_noop(store, tmp_path):
    dead_path = tmp_path / "dead.json"
    dead_path.write_text("[]")
    assert remove_dead_feeds(dead_path, store) == []
    assert store.read_text() == STORE
