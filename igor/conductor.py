"""Runner aggregation and command dispatch.

The Conductor pages through ``runners/all``, enriches every runner with its
detail record and manager list on a bounded thread pool, then applies the
filters GitLab cannot evaluate server-side. ``execute_command`` maps each
dashboard/headless command onto one aggregation plus one view derivation.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from typing import Protocol

from .constants import ENRICH_WORKERS, RUNNERS_PAGE_SIZE, UNCONTACTED_THRESHOLD_S
from .exceptions import AggregationError, GitLabError
from .models import Runner, RunnerFilters, RunnerManager
from .views import (
    HealthSummary,
    ManagerRow,
    health_summary,
    manager_rows,
    offline_runners,
    rotating_runners,
    runners_without_managers,
    uncontacted_runners,
)

logger = logging.getLogger(__name__)


class RunnerSource(Protocol):
    """Transport operations the Conductor depends on (see GitLabClient)."""

    def list_runners(self, filters: RunnerFilters, page: int, per_page: int) -> list[Runner]: ...

    def get_runner_detail(self, runner_id: int) -> Runner: ...

    def list_managers(self, runner_id: int) -> list[RunnerManager]: ...


@dataclass(frozen=True)
class EnrichmentOutcome:
    """Result of enriching one listed runner.

    ``degraded`` is set when the detail or manager call failed and a
    fallback was used; ``problems`` holds the reasons.
    """

    index: int
    runner: Runner
    degraded: bool = False
    problems: tuple[str, ...] = ()


class Conductor:
    """Aggregates runner data from a RunnerSource."""

    def __init__(
        self,
        client: RunnerSource,
        *,
        page_size: int = RUNNERS_PAGE_SIZE,
        workers: int = ENRICH_WORKERS,
    ) -> None:
        self.client = client
        self.page_size = page_size
        self.workers = workers

    def enrich_runner(self, index: int, listed: Runner) -> EnrichmentOutcome:
        """Fetch detail then managers for one runner, degrading on failure."""
        problems: list[str] = []
        try:
            base = self.client.get_runner_detail(listed.id)
        except GitLabError as e:
            logger.warning("Runner %d: detail fetch failed, using list record: %s", listed.id, e)
            problems.append(f"detail: {e}")
            base = listed

        managers: list[RunnerManager]
        try:
            managers = self.client.list_managers(listed.id)
        except GitLabError as e:
            logger.warning("Runner %d: manager fetch failed, assuming none: %s", listed.id, e)
            problems.append(f"managers: {e}")
            managers = []

        return EnrichmentOutcome(
            index=index,
            runner=replace(base, managers=tuple(managers)),
            degraded=bool(problems),
            problems=tuple(problems),
        )

    def _enrich_page(self, executor: Executor, listed: list[Runner]) -> list[Runner]:
        enriched: list[Runner | None] = [None] * len(listed)
        futures = [executor.submit(self.enrich_runner, i, r) for i, r in enumerate(listed)]
        degraded = 0
        for future in as_completed(futures):
            outcome = future.result()
            enriched[outcome.index] = outcome.runner
            if outcome.degraded:
                degraded += 1
        if degraded:
            logger.info("%d of %d runner(s) on page degraded", degraded, len(listed))
        return [r for r in enriched if r is not None]

    def fetch_runners(self, filters: RunnerFilters) -> list[Runner]:
        """Return every runner matching filters, fully enriched, in page order.

        Raises:
            AggregationError: If any list page cannot be fetched
        """
        all_runners: list[Runner] = []
        page = 1

        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="igor-enrich"
        ) as executor:
            while True:
                try:
                    listed = self.client.list_runners(filters, page, self.page_size)
                except GitLabError as e:
                    raise AggregationError(page, e) from e
                logger.debug("Page %d: %d runner(s)", page, len(listed))
                if not listed:
                    break

                all_runners.extend(self._enrich_page(executor, listed))

                if len(listed) < self.page_size:
                    break
                page += 1

        matched = [r for r in all_runners if filters.matches_locally(r)]
        logger.debug(
            "Aggregated %d runner(s), %d after local filters", len(all_runners), len(matched)
        )
        return matched

    def list_offline_runners(self, filters: RunnerFilters) -> list[Runner]:
        return offline_runners(self.fetch_runners(filters))

    def list_uncontacted_runners(
        self,
        filters: RunnerFilters,
        threshold_s: int,
        *,
        now: dt.datetime | None = None,
    ) -> list[Runner]:
        return uncontacted_runners(self.fetch_runners(filters), threshold_s, now=now)

    def check_runner_statuses(self, filters: RunnerFilters) -> HealthSummary:
        return health_summary(self.fetch_runners(filters))

    def list_runners_without_managers(self, filters: RunnerFilters) -> list[Runner]:
        return runners_without_managers(self.fetch_runners(filters))

    def detect_rotating_runners(self, filters: RunnerFilters) -> list[Runner]:
        return rotating_runners(self.fetch_runners(filters))

    def list_manager_rows(self, filters: RunnerFilters) -> list[ManagerRow]:
        return manager_rows(self.fetch_runners(filters))


class Command(enum.Enum):
    """Named operations offered by the dashboard and headless mode."""

    FETCH = "fetch"
    LIGHTS = "lights"
    SWITCH = "switch"
    WORKERS = "workers"
    FLAMES = "flames"
    EMPTY = "empty"
    ROTATE = "rotate"

    @property
    def description(self) -> str:
        return COMMAND_DESCRIPTIONS[self]

    @classmethod
    def names(cls) -> list[str]:
        return [c.value for c in cls]


COMMAND_DESCRIPTIONS = {
    Command.FETCH: "Fetch GitLab Runner details",
    Command.LIGHTS: "Check if runners are online (health check)",
    Command.SWITCH: "List runners with offline managers",
    Command.WORKERS: "Show runner managers (flattened view)",
    Command.FLAMES: "List runners not contacted recently",
    Command.EMPTY: "List runners with no managers",
    Command.ROTATE: "Detect runners rotating between hosts",
}


class ResultView(enum.Enum):
    """Which result container a command populates."""

    RUNNERS = "runners"
    WORKERS = "workers"
    HEALTH_CHECK = "health_check"
    ROTATION = "rotation"


@dataclass
class CommandResult:
    command: Command
    view: ResultView
    runners: list[Runner] = field(default_factory=list)
    manager_rows: list[ManagerRow] = field(default_factory=list)
    health: HealthSummary | None = None

    @property
    def row_count(self) -> int:
        if self.view is ResultView.WORKERS:
            return len(self.manager_rows)
        return len(self.runners)


def execute_command(
    conductor: Conductor,
    command: Command,
    filters: RunnerFilters,
    *,
    uncontacted_threshold_s: int = UNCONTACTED_THRESHOLD_S,
) -> CommandResult:
    """Run one command: a single aggregation followed by its view derivation."""
    if command is Command.FETCH:
        return CommandResult(command, ResultView.RUNNERS, runners=conductor.fetch_runners(filters))
    if command is Command.LIGHTS:
        return CommandResult(
            command, ResultView.HEALTH_CHECK, health=conductor.check_runner_statuses(filters)
        )
    if command is Command.SWITCH:
        return CommandResult(
            command, ResultView.RUNNERS, runners=conductor.list_offline_runners(filters)
        )
    if command is Command.WORKERS:
        return CommandResult(
            command, ResultView.WORKERS, manager_rows=conductor.list_manager_rows(filters)
        )
    if command is Command.FLAMES:
        return CommandResult(
            command,
            ResultView.RUNNERS,
            runners=conductor.list_uncontacted_runners(filters, uncontacted_threshold_s),
        )
    if command is Command.EMPTY:
        return CommandResult(
            command, ResultView.RUNNERS, runners=conductor.list_runners_without_managers(filters)
        )
    if command is Command.ROTATE:
        return CommandResult(
            command, ResultView.ROTATION, runners=conductor.detect_rotating_runners(filters)
        )
    raise ValueError(f"Unhandled command: {command!r}")
