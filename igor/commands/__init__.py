"""Igor command implementations."""

from __future__ import annotations

from .tui import cmd_tui
from .watch import cmd_watch
from .whoami import cmd_whoami

__all__ = [
    "cmd_tui",
    "cmd_watch",
    "cmd_whoami",
]
