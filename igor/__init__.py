"""Igor: a GitLab runner monitor.

Pages through a GitLab instance's runners, enriches each with its detail
record and runner managers, and presents derived views (offline, stale,
manager-less, rotating, health) in a curses dashboard or headless poller.
"""

from __future__ import annotations

from .conductor import Command, CommandResult, Conductor, ResultView, execute_command
from .exceptions import (
    AggregationError,
    CommandFailureError,
    GitLabError,
    IgorError,
    UserError,
)
from .gitlab import GitLabClient
from .models import Runner, RunnerFilters, RunnerManager, User

__all__ = [
    "AggregationError",
    "Command",
    "CommandFailureError",
    "CommandResult",
    "Conductor",
    "GitLabClient",
    "GitLabError",
    "IgorError",
    "ResultView",
    "Runner",
    "RunnerFilters",
    "RunnerManager",
    "User",
    "UserError",
    "execute_command",
]
