"""Interactive curses dashboard for GitLab runners."""

from __future__ import annotations

from .entry import cmd_tui
from .formatting import (
    clip_cell,
    format_health_line,
    format_poll_header,
    format_runner_brief,
    manager_row_values,
    render_table,
    runner_row_values,
)
from .state import Session
from .types import AppMode

__all__ = [
    "AppMode",
    "Session",
    "clip_cell",
    "cmd_tui",
    "format_health_line",
    "format_poll_header",
    "format_runner_brief",
    "manager_row_values",
    "render_table",
    "runner_row_values",
]
