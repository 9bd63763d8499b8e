"""Derived views over an aggregated runner collection.

Everything here is pure: no I/O, no logging, input order preserved.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass

from .constants import MANAGER_ONLINE_STATUS
from .models import Runner, RunnerManager
from .utils import parse_timestamp, utc_now


@dataclass(frozen=True)
class ManagerRow:
    """Flattened (runner, manager) pair for the workers view."""

    runner_id: int
    runner_tags: tuple[str, ...]
    manager: RunnerManager


@dataclass(frozen=True)
class HealthSummary:
    """Online/total ratio derived from first-manager status."""

    online_count: int = 0
    total_count: int = 0

    def percentage(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.online_count / self.total_count * 100.0

    def is_healthy(self) -> bool:
        # An empty fleet is never healthy
        return self.online_count == self.total_count and self.total_count > 0


def _first_manager_online(runner: Runner) -> bool:
    manager = runner.current_manager
    return manager is not None and manager.status == MANAGER_ONLINE_STATUS


def offline_runners(runners: Iterable[Runner]) -> list[Runner]:
    """Runners whose current manager is not online (no manager: excluded)."""
    return [
        r
        for r in runners
        if r.current_manager is not None and r.current_manager.status != MANAGER_ONLINE_STATUS
    ]


def is_uncontacted(runner: Runner, threshold_s: int, *, now: dt.datetime) -> bool:
    """Return True if the current manager has gone quiet for too long.

    A missing or unparseable ``contacted_at`` counts as uncontacted. Runners
    without managers never match.
    """
    manager = runner.current_manager
    if manager is None:
        return False
    contacted = parse_timestamp(manager.contacted_at)
    if contacted is None:
        return True
    return (now - contacted).total_seconds() > threshold_s


def uncontacted_runners(
    runners: Iterable[Runner],
    threshold_s: int,
    *,
    now: dt.datetime | None = None,
) -> list[Runner]:
    """Runners whose current manager has not checked in within threshold_s."""
    now = now or utc_now()
    return [r for r in runners if is_uncontacted(r, threshold_s, now=now)]


def runners_without_managers(runners: Iterable[Runner]) -> list[Runner]:
    return [r for r in runners if not r.managers]


def rotating_runners(runners: Iterable[Runner]) -> list[Runner]:
    """Runners with more than one manager, i.e. mid host rotation."""
    return [r for r in runners if len(r.managers) > 1]


def health_summary(runners: Iterable[Runner]) -> HealthSummary:
    runners = list(runners)
    online = sum(1 for r in runners if _first_manager_online(r))
    return HealthSummary(online_count=online, total_count=len(runners))


def manager_rows(runners: Iterable[Runner]) -> list[ManagerRow]:
    return [
        ManagerRow(runner_id=r.id, runner_tags=r.tag_list, manager=m)
        for r in runners
        for m in r.managers
    ]
