"""Tests for runtime settings and publication config loading."""

import pytest

from rmlpub.config.settings import Config, ConfigurationError, FeedConfig, HttpConfig, MapperConfig
from rmlpub.config_loader import build_metadata, load_publication_config
from rmlpub.types import InvalidInputError
from rmlpub.utils import split_multi

ENV_KEYS = [
    "RMLPUB_BEARER_TOKEN", "RMLPUB_CONNECT_TIMEOUT", "RMLPUB_REQUEST_TIMEOUT",
    "RMLMAPPER_COMMAND", "RMLMAPPER_TIMEOUT", "RMLPUB_URN_NAMESPACE", "TEMP_RETENTION_HOURS", "RMLPUB_TEMP_DIR",
]


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so teardown also removes values loaded from .env files
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


class TestConfig:
    def test_defaults(self, clean_env):
        config = Config()
        assert config.http.timeouts().as_requests() == (20.0, 120.0)
        assert config.http.bearer_token is None
        assert config.mapper.argv() == ["java", "-jar", "rmlmapper.jar"]
        assert config.feed.urn_namespace == "deployEMDS"
        assert config.temp.retention_hours == 24
        assert config.temp.temp_root is None

    def test_explicit_timeouts_override_configured(self, clean_env):
        clean_env.setenv("RMLPUB_CONNECT_TIMEOUT", "5")
        http = Config().http
        assert http.timeouts(request=45).as_requests() == (5.0, 45)
        assert http.timeouts(connect=1, request=2).as_requests() == (1, 2)

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("RMLPUB_CONNECT_TIMEOUT", "5")
        clean_env.setenv("RMLPUB_REQUEST_TIMEOUT", "30")
        clean_env.setenv("RMLPUB_BEARER_TOKEN", "s3cret")
        clean_env.setenv("RMLMAPPER_COMMAND", "rmlmapper --strict")
        clean_env.setenv("RMLPUB_URN_NAMESPACE", "acme")
        clean_env.setenv("RMLPUB_TEMP_DIR", "/var/tmp/rmlpub-test")

        config = Config()

        assert config.http.timeouts().as_requests() == (5.0, 30.0)
        assert config.http.bearer_token == "s3cret"
        assert config.mapper.argv() == ["rmlmapper", "--strict"]
        assert config.feed.urn_namespace == "acme"
        assert config.temp.temp_root == "/var/tmp/rmlpub-test"

    def test_summary_and_repr_hide_token(self, clean_env):
        clean_env.setenv("RMLPUB_BEARER_TOKEN", "s3cret")
        config = Config()
        assert "s3cret" not in repr(config)
        summary = config.get_security_summary()
        assert summary["bearer_token_configured"] is True
        assert "s3cret" not in str(summary)

    def test_invalid_timeout(self, clean_env):
        clean_env.setenv("RMLPUB_CONNECT_TIMEOUT", "0")
        with pytest.raises(ConfigurationError):
            Config()

    def test_non_numeric_timeout(self, clean_env):
        clean_env.setenv("RMLPUB_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError):
            Config()

    def test_missing_env_file(self, clean_env, tmp_path):
        with pytest.raises(ConfigurationError):
            Config(env_file=tmp_path / "missing.env")

    def test_explicit_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / "publish.env"
        env_file.write_text("RMLPUB_URN_NAMESPACE=fromfile\n", encoding="utf-8")
        assert Config(env_file=env_file).feed.urn_namespace == "fromfile"


def test_section_validation():
    with pytest.raises(ValueError):
        HttpConfig(request_timeout=-1)
    with pytest.raises(ValueError):
        MapperConfig(command="  ")
    with pytest.raises(ValueError):
        FeedConfig(urn_namespace="a:b")
    assert HttpConfig(bearer_token=" ").bearer_token is None


def test_split_multi():
    assert split_multi(["a, b", "c", " ", "d,,e"]) == ["a", "b", "c", "d", "e"]
    assert split_multi(None) == []


class TestPublicationConfig:
    def test_no_path_means_no_defaults(self):
        assert load_publication_config(None) == {}

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "pub.yml"
        path.write_text("title: Roads\nkeywords: [roads, mobility]\nfeed_url: https://f\n", encoding="utf-8")
        assert load_publication_config(str(path)) == {
            "title": "Roads", "keywords": ["roads", "mobility"], "feed_url": "https://f",
        }

    def test_unknown_keys_rejected(self, tmp_path):
        path = tmp_path / "pub.yml"
        path.write_text("titel: typo\n", encoding="utf-8")
        with pytest.raises(ValueError, match="titel"):
            load_publication_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_publication_config(str(tmp_path / "nope.yml"))

    def test_cli_values_override_file(self):
        defaults = {
            "input_url": "https://d/file", "title": "From file", "keywords": "a, b",
            "ontologies": ["https://o/1"], "feed_url": "https://f",
        }
        metadata = build_metadata(defaults, title="From CLI", shapes=["https://s/1,https://s/2"])

        assert metadata.title == "From CLI"
        assert metadata.keywords == ("a", "b")
        assert metadata.ontology_urls == ("https://o/1",)
        assert metadata.validation_urls == ("https://s/1", "https://s/2")
        assert metadata.feed_id == "https://f"
        assert metadata.description == ""

    def test_feed_id_preferred_over_feed_url(self):
        metadata = build_metadata({}, input_url="https://d", keywords=["k"], feed_id="urn:feed", feed_url="https://f")
        assert metadata.feed_id == "urn:feed"

    def test_missing_required_fields(self):
        with pytest.raises(InvalidInputError, match="input_url.*feed_id/feed_url.*keywords"):
            build_metadata({})

    def test_missing_keywords_rejected(self):
        with pytest.raises(InvalidInputError, match="keywords"):
            build_metadata({}, input_url="https://d", feed_url="https://f", keywords=[" , "])
