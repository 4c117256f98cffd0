from pathlib import Path

import pytest

from chainfeeds.opml import StoreError, generate_opml, parse_opml, read_opml, remove_feeds, write_opml
from chainfeeds.registry import Category, SourceType
from chainfeeds.resolver import ResolvedFeed

SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="1.0">
  <head><title>blockchain-signals</title></head>
  <body>
    <outline text="Blog" title="Blog">
      <outline htmlUrl="https://blog.ethereum.org" xmlUrl="https://blog.ethereum.org/feed.xml" type="rss" text="Ethereum - Blog"/>
      <outline text="R&amp;D &quot;Notes&quot;" type="rss" xmlUrl="https://a.io/rss?x=1&amp;y=2" htmlUrl="https://a.io"/>
      <outline text="Broken" type="rss" xmlUrl="" htmlUrl="https://broken.io"/>
      <outline type="rss" xmlUrl="https://nameless.io/feed"/>
    </outline>
    <outline text="Releases" title="Releases">
      <outline text="Ethereum - go-ethereum Releases" xmlUrl="https://github.com/ethereum/go-ethereum/releases.atom" htmlUrl="https://github.com/ethereum/go-ethereum/releases"/>
    </outline>
  </body>
</opml>
"""


def feed(label: str, source_type: SourceType, url: str) -> ResolvedFeed:
    return ResolvedFeed(
        protocol=label.split(" - ")[0],
        source_type=source_type,
        label=label,
        xml_url=url,
        html_url=url.rsplit("/", 1)[0],
        category=Category.L1,
    )


def test_parse_opml_tolerates_attribute_order_and_skips_malformed():
    feeds = parse_opml(SAMPLE)

    assert [f.name for f in feeds] == [
        "Ethereum - Blog",
        'R&D "Notes"',
        "https://nameless.io/feed",
        "Ethereum - go-ethereum Releases",
    ]
    assert feeds[0].html_url == "https://blog.ethereum.org"
    assert feeds[1].xml_url == "https://a.io/rss?x=1&y=2"
    assert feeds[2].html_url == ""
    assert [f.category for f in feeds] == ["Blog", "Blog", "Blog", "Releases"]


def test_parse_opml_rejects_non_opml_documents():
    with pytest.raises(StoreError):
        parse_opml("<html><body>nope</body></html>")


def test_read_opml_missing_file(tmp_path: Path):
    with pytest.raises(StoreError):
        read_opml(tmp_path / "absent.opml")


def test_generate_opml_groups_in_fixed_order_and_sorts_labels():
    document = generate_opml(
        [
            feed("Zcash - Blog", SourceType.BLOG, "https://electriccoin.co/feed/"),
            feed("Lido - Research", SourceType.RESEARCH, "https://research.lido.fi/latest.rss"),
            feed("Aave - Governance", SourceType.GOVERNANCE, "https://governance.aave.com/latest.rss"),
            feed("Cosmos - cosmos-sdk Releases", SourceType.GITHUB, "https://github.com/cosmos/cosmos-sdk/releases.atom"),
            feed("Brave - Blog", SourceType.BLOG, "https://brave.com/blog/index.xml"),
        ]
    )

    groups = [line.strip() for line in document.splitlines() if 'type="rss"' not in line and "<outline text=" in line]
    assert groups == [
        '<outline text="Blog" title="Blog">',
        '<outline text="Releases" title="Releases">',
        '<outline text="Governance" title="Governance">',
        '<outline text="Research" title="Research">',
    ]
    assert document.index("Brave - Blog") < document.index("Zcash - Blog")
    assert document.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert document.endswith("</opml>\n")


def test_generate_opml_escapes_reserved_characters():
    document = generate_opml([feed('A&B <"x"> - Blog', SourceType.BLOG, "https://a.io/rss?x=1&y=2")])
    assert 'text="A&amp;B &lt;&quot;x&quot;&gt; - Blog"' in document
    assert 'xmlUrl="https://a.io/rss?x=1&amp;y=2"' in document


def test_written_document_reads_back(tmp_path: Path):
    path = tmp_path / "out" / "feeds.opml"
    written = [
        feed("Ethereum - Blog", SourceType.BLOG, "https://blog.ethereum.org/feed.xml"),
        feed("Ethereum - Forum", SourceType.FORUM, "https://ethresear.ch/latest.rss"),
    ]
    write_opml(path, written)

    stored = read_opml(path)
    assert [(f.name, f.xml_url, f.category) for f in stored] == [
        ("Ethereum - Blog", "https://blog.ethereum.org/feed.xml", "Blog"),
        ("Ethereum - Forum", "https://ethresear.ch/latest.rss", "Forum"),
    ]


def test_remove_feeds_drops_matching_lines():
    text, removed = remove_feeds(
        SAMPLE,
        ["https://blog.ethereum.org/feed.xml", "https://a.io/rss?x=1&y=2", "https://unknown.io/feed"],
    )

    assert removed == ["Ethereum - Blog", 'R&D "Notes"']
    assert "blog.ethereum.org/feed.xml" not in text
    assert "a.io/rss" not in text
    assert "go-ethereum/releases.atom" in text


def test_remove_feeds_requires_exact_url():
    text, removed = remove_feeds(SAMPLE, ["https://blog.ethereum.org/feed"])
    assert removed == []
    assert text == SAMPLE
