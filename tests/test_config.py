from pathlib import Path

import pytest

from chainfeeds.config import ConfigurationError, Settings
from chainfeeds.registry import DEFAULT_REGISTRY_PATH


def test_defaults_without_environment():
    settings = Settings.from_env({})
    assert settings.brave_api_key is None
    assert settings.dead_feeds_path == Path("/tmp/dead-feeds.json")
    assert settings.opml_path == Path("feeds.opml")
    assert settings.registry_path == DEFAULT_REGISTRY_PATH


def test_environment_overrides():
    settings = Settings.from_env(
        {
            "BRAVE_SEARCH_API_KEY": "secret",
            "DEAD_FEEDS_PATH": "/data/dead.json",
            "FEEDS_OPML": "/data/feeds.opml",
            "PROTOCOL_REGISTRY": "/data/protocols.yaml",
        }
    )
    assert settings.require_api_key() == "secret"
    assert settings.dead_feeds_path == Path("/data/dead.json")
    assert settings.opml_path == Path("/data/feeds.opml")
    assert settings.registry_path == Path("/data/protocols.yaml")


def test_missing_api_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        Settings.from_env({"BRAVE_SEARCH_API_KEY": ""}).require_api_key()
