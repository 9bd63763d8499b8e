"""Configuration loading for Igor.

Priority for the GitLab connection (highest to lowest):
1. Command-line flags
2. Environment variables (GITLAB_HOST, GITLAB_TOKEN, also read from .env)
3. config.toml
4. Defaults
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_APP_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_GITLAB_HOST,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_POLL_TIMEOUT_S,
)
from .exceptions import IgorError, UserError


@dataclass
class AppConfig:
    """Settings read from config.toml."""

    poll_interval_secs: int = DEFAULT_POLL_INTERVAL_S
    poll_timeout_secs: int = DEFAULT_POLL_TIMEOUT_S
    gitlab_host: str | None = None
    gitlab_token: str | None = None
    source: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> AppConfig:
        """Create AppConfig from parsed TOML, keeping defaults for absent keys."""
        config = cls(source=source)
        for key in ("poll_interval_secs", "poll_timeout_secs"):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                    raise IgorError(f"{key} must be a positive integer, got {value!r}")
                setattr(config, key, value)
        for key in ("gitlab_host", "gitlab_token"):
            if key in data:
                value = data[key]
                if not isinstance(value, str):
                    raise IgorError(f"{key} must be a string, got {type(value).__name__}")
                setattr(config, key, value or None)
        return config

    @classmethod
    def from_toml(cls, text: str, source: Path | None = None) -> AppConfig:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            where = f" in {source}" if source else ""
            raise IgorError(f"Invalid TOML{where}: {e}") from e
        return cls.from_dict(data, source=source)


def config_search_paths() -> list[Path]:
    """Return candidate config files in lookup order."""
    paths = [Path.cwd() / CONFIG_FILE_NAME]
    xdg = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(xdg) if xdg else Path.home() / ".config"
    paths.append(config_home / CONFIG_APP_DIR_NAME / CONFIG_FILE_NAME)
    return paths


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from an explicit path or the first file found.

    Raises:
        IgorError: If the file is unreadable or not valid TOML
        UserError: If an explicit config_path does not exist
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise UserError(f"Config file not found: {path}")
        candidates = [path]
    else:
        candidates = [p for p in config_search_paths() if p.exists()]

    for path in candidates:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise IgorError(f"Failed to read {path}: {e}") from e
        return AppConfig.from_toml(text, source=path)

    return AppConfig()


@dataclass
class Connection:
    host: str
    token: str


def resolve_connection(
    *,
    host: str | None,
    token: str | None,
    config: AppConfig,
) -> Connection:
    """Resolve GitLab host and token.

    ``host``/``token`` are the CLI values; click has already folded the
    environment variables into them.
    """
    resolved_host = host or config.gitlab_host or DEFAULT_GITLAB_HOST
    resolved_token = token or config.gitlab_token
    if not resolved_token:
        raise UserError(
            "GITLAB_TOKEN must be set via environment variable, --token flag, or config.toml"
        )
    return Connection(host=resolved_host, token=resolved_token)
