"""Tests for configuration loading."""

import os
import pytest

from quotesync.config import Config, load_config
from quotesync.transfer import ImportPolicy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove any QUOTESYNC_ variables from the environment."""
    for key in list(os.environ):
        if key.startswith("QUOTESYNC_"):
            monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_default_config(self):
        config = load_config()

        assert isinstance(config, Config)
        assert config.storage.db_path == "~/.quotesync/quotes.db"
        assert config.remote.enabled is True
        assert config.remote.fetch_limit == 5
        assert config.sync.interval_seconds == 15
        assert config.sync.push_local_only is True
        assert config.import_export.import_policy == ImportPolicy.REPLACE
        assert config.import_export.export_filename == "quotes.json"

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")

        assert config.sync.interval_seconds == 15


class TestYamlLoading:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            """
storage:
  db_path: /tmp/q.db
remote:
  endpoint: http://feed.test/posts
  timeout_seconds: 3
sync:
  interval_seconds: 30
  push_local_only: false
import_export:
  import_policy: append
"""
        )

        config = load_config(path)

        assert config.storage.db_path == "/tmp/q.db"
        assert config.remote.endpoint == "http://feed.test/posts"
        assert config.remote.timeout_seconds == 3
        assert config.remote.enabled is True
        assert config.sync.interval_seconds == 30
        assert config.sync.push_local_only is False
        assert config.import_export.import_policy == ImportPolicy.APPEND

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path).remote.fetch_limit == 5

    def test_invalid_import_policy(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("import_export:\n  import_policy: merge\n")

        with pytest.raises(ValueError):
            load_config(path)


class TestEnvOverrides:
    def test_env_overrides(self, monkeypatch, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("sync:\n  interval_seconds: 30\n")
        monkeypatch.setenv("QUOTESYNC_SYNC_INTERVAL", "60")
        monkeypatch.setenv("QUOTESYNC_DB_PATH", "/data/q.db")
        monkeypatch.setenv("QUOTESYNC_REMOTE_ENABLED", "false")
        monkeypatch.setenv("QUOTESYNC_SYNC_PUSH_LOCAL_ONLY", "no")
        monkeypatch.setenv("QUOTESYNC_IMPORT_POLICY", "APPEND")

        config = load_config(path)

        assert config.sync.interval_seconds == 60
        assert config.storage.db_path == "/data/q.db"
        assert config.remote.enabled is False
        assert config.sync.push_local_only is False
        assert config.import_export.import_policy == ImportPolicy.APPEND

    def test_remote_endpoint_override(self, monkeypatch):
        monkeypatch.setenv("QUOTESYNC_REMOTE_ENDPOINT", "http://other.test/items")
        monkeypatch.setenv("QUOTESYNC_REMOTE_TIMEOUT", "2.5")

        config = load_config()

        assert config.remote.endpoint == "http://other.test/items"
        assert config.remote.timeout_seconds == 2.5
