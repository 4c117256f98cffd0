"""Feed registry maintenance for blockchain and crypto projects."""

from .config import ConfigurationError, Settings
from .fetcher import ProbeResult, VerifyResult, probe_homepage, verify_feed, verify_with_retry
from .health import FeedResult, Status, check_feeds, classify
from .opml import StoredFeed, StoreError, generate_opml, parse_opml, read_opml, remove_feeds
from .prober import probe_all, run_pool
from .reconcile import DiffResult, diff, load_persisted, normalise_url
from .registry import Category, Protocol, Source, SourceType, load_protocols
from .resolver import ResolvedFeed, find_unresolved, resolve_all, resolve_source

__all__ = [
    "Settings",
    "ConfigurationError",
    "Category",
    "SourceType",
    "Source",
    "Protocol",
    "load_protocols",
    "ResolvedFeed",
    "resolve_source",
    "resolve_all",
    "find_unresolved",
    "VerifyResult",
    "ProbeResult",
    "verify_feed",
    "verify_with_retry",
    "probe_homepage",
    "run_pool",
    "probe_all",
    "Status",
    "FeedResult",
    "classify",
    "check_feeds",
    "StoredFeed",
    "StoreError",
    "parse_opml",
    "read_opml",
    "generate_opml",
    "remove_feeds",
    "DiffResult",
    "diff",
    "normalise_url",
    "load_persisted",
]
