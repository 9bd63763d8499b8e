"""Type definitions for CLI command arguments."""

from __future__ import annotations

from dataclasses import dataclass

from .config import AppConfig


@dataclass
class TuiArgs:
    """Arguments for tui command."""

    host: str
    token: str
    config: AppConfig


@dataclass
class WatchArgs:
    """Arguments for watch command."""

    host: str
    token: str
    config: AppConfig
    command: str
    tags: str | None
    interval: int | None
    timeout: int | None
    once: bool
    json: bool
    status: str | None = None
    runner_type: str | None = None


@dataclass
class WhoamiArgs:
    """Arguments for whoami command."""

    host: str
    token: str
    json: bool
