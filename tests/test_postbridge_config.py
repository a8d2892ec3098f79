"""Tests for postbridge.config: PostbridgeConfig, TOML loading, overrides."""

from pathlib import Path

import pytest
from postbridge.config import PostbridgeConfig, load_config, merge_cli_overrides
from postbridge.tags import DEFAULT_TAG

ENV_VARS = ("POSTBRIDGE_POSTS_DIR", "POSTBRIDGE_SESSIONS_DIR", "POSTBRIDGE_DEFAULT_TAG")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove env vars that _apply_env_vars reads so tests see TOML values."""
    for key in ENV_VARS:
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_storage(self):
        cfg = PostbridgeConfig()
        assert cfg.storage.posts_dir == "./posts"
        assert cfg.storage.sessions_dir == "./uploads/sessions"
        assert cfg.storage.posts_path == Path("posts")

    def test_publish(self):
        cfg = PostbridgeConfig()
        assert cfg.publish.default_tag == DEFAULT_TAG
        assert cfg.publish.posts_url_prefix == "/posts"
        assert cfg.publish.index_filename == "index.md"


class TestLoadConfig:
    def test_loads_toml(self, tmp_path: Path):
        path = tmp_path / "postbridge.toml"
        path.write_text(
            '[storage]\nposts_dir = "/srv/blog/posts"\n\n[publish]\ndefault_tag = "misc"\n',
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.storage.posts_dir == "/srv/blog/posts"
        assert cfg.storage.sessions_dir == "./uploads/sessions"
        assert cfg.publish.default_tag == "misc"

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        cfg = load_config(tmp_path / "nope.toml")
        assert cfg.model_dump() == PostbridgeConfig().model_dump()

    def test_corrupt_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[storage\nposts_dir = ", encoding="utf-8")
        cfg = load_config(path)
        assert cfg.storage.posts_dir == "./posts"

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "postbridge.toml"
        path.write_text('[storage]\nposts_dir = "/from/toml"\n', encoding="utf-8")
        monkeypatch.setenv("POSTBRIDGE_POSTS_DIR", "/from/env")
        monkeypatch.setenv("POSTBRIDGE_DEFAULT_TAG", "notes")

        cfg = load_config(path)
        assert cfg.storage.posts_dir == "/from/env"
        assert cfg.publish.default_tag == "notes"


class TestMergeCliOverrides:
    def test_overrides_only_given_values(self):
        cfg = merge_cli_overrides(PostbridgeConfig(), posts_dir=Path("/tmp/p"), sessions_dir=None)
        assert cfg.storage.posts_dir == "/tmp/p"
        assert cfg.storage.sessions_dir == "./uploads/sessions"

    def test_ignores_unknown_keys(self):
        cfg = merge_cli_overrides(PostbridgeConfig(), colour="blue")
        assert cfg.model_dump() == PostbridgeConfig().model_dump()
