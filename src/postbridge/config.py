"""Unified configuration loaded from .postbridge.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from postbridge.tags import DEFAULT_TAG

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".postbridge.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "postbridge" / "config.toml"


class StorageConfig(BaseModel):
    """[storage] section."""

    posts_dir: str = "./posts"
    sessions_dir: str = "./uploads/sessions"

    @property
    def posts_path(self) -> Path:
        return Path(self.posts_dir).expanduser()

    @property
    def sessions_path(self) -> Path:
        return Path(self.sessions_dir).expanduser()


class PublishConfig(BaseModel):
    """[publish] section."""

    default_tag: str = DEFAULT_TAG
    posts_url_prefix: str = "/posts"
    index_filename: str = "index.md"


class PostbridgeConfig(BaseModel):
    """Top-level configuration model."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)


def load_config(path: str | Path | None = None) -> PostbridgeConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .postbridge.toml in CWD
    3. ~/.config/postbridge/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged PostbridgeConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = PostbridgeConfig.model_validate(data) if data else PostbridgeConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: PostbridgeConfig, **cli_kwargs: object) -> PostbridgeConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "posts_dir": ("storage", "posts_dir"),
        "sessions_dir": ("storage", "sessions_dir"),
        "default_tag": ("publish", "default_tag"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value)

    return PostbridgeConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: PostbridgeConfig) -> PostbridgeConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "POSTBRIDGE_POSTS_DIR": ("storage", "posts_dir"),
        "POSTBRIDGE_SESSIONS_DIR": ("storage", "sessions_dir"),
        "POSTBRIDGE_DEFAULT_TAG": ("publish", "default_tag"),
    }

    changed = False
    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value:
            data[section][field] = value
            changed = True

    return PostbridgeConfig.model_validate(data) if changed else config
