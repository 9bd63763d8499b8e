"""Shared pytest fixtures for Igor tests."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from concurrent.futures import Executor, Future

import pytest
from igor.config import AppConfig
from igor.exceptions import GitLabError, NotFoundError
from igor.models import Runner, RunnerFilters, RunnerManager


def make_manager(
    manager_id: int,
    *,
    status: str = "online",
    system_id: str | None = None,
    contacted_at: str | None = "2024-01-20T14:00:00Z",
    version: str | None = "17.0.0",
    ip_address: str | None = "10.0.0.1",
) -> RunnerManager:
    """Build a RunnerManager with sensible defaults."""
    return RunnerManager(
        id=manager_id,
        system_id=system_id or f"s_{manager_id:04d}",
        created_at="2024-01-01T00:00:00Z",
        status=status,
        contacted_at=contacted_at,
        ip_address=ip_address,
        version=version,
    )


def make_runner(
    runner_id: int,
    *,
    status: str = "online",
    tags: Iterable[str] = (),
    version: str | None = None,
    managers: Iterable[RunnerManager] = (),
    runner_type: str = "instance_type",
) -> Runner:
    """Build a Runner with sensible defaults."""
    return Runner(
        id=runner_id,
        status=status,
        runner_type=runner_type,
        version=version,
        tag_list=tuple(tags),
        managers=tuple(managers),
    )


class FakeGitLabClient:
    """In-memory stand-in for GitLabClient.

    ``pages`` are the list-endpoint pages (1-based when requested). Detail
    records default to the listed record when not given explicitly.
    """

    def __init__(
        self,
        pages: list[list[Runner]] | None = None,
        *,
        details: dict[int, Runner] | None = None,
        managers: dict[int, list[RunnerManager]] | None = None,
        page_errors: dict[int, Exception] | None = None,
        detail_errors: dict[int, GitLabError] | None = None,
        manager_errors: dict[int, GitLabError] | None = None,
    ) -> None:
        self.pages = pages or []
        self.details = details or {}
        self.managers = managers or {}
        self.page_errors = page_errors or {}
        self.detail_errors = detail_errors or {}
        self.manager_errors = manager_errors or {}
        self.listed = {r.id: r for page in self.pages for r in page}
        self.list_calls: list[tuple[int, int]] = []
        self.filters_seen: list[RunnerFilters] = []
        self.detail_calls: list[int] = []
        self.manager_calls: list[int] = []
        self.closed = False
        self._lock = threading.Lock()

    def list_runners(self, filters: RunnerFilters, page: int, per_page: int) -> list[Runner]:
        with self._lock:
            self.list_calls.append((page, per_page))
            self.filters_seen.append(filters)
        if page in self.page_errors:
            raise self.page_errors[page]
        if page - 1 < len(self.pages):
            return list(self.pages[page - 1])
        return []

    def get_runner_detail(self, runner_id: int) -> Runner:
        with self._lock:
            self.detail_calls.append(runner_id)
        if runner_id in self.detail_errors:
            raise self.detail_errors[runner_id]
        if runner_id in self.details:
            return self.details[runner_id]
        if runner_id in self.listed:
            return self.listed[runner_id]
        raise NotFoundError(
            f"GitLab API returned 404 for runners/{runner_id}",
            status_code=404,
            endpoint=f"runners/{runner_id}",
        )

    def list_managers(self, runner_id: int) -> list[RunnerManager]:
        with self._lock:
            self.manager_calls.append(runner_id)
        if runner_id in self.manager_errors:
            raise self.manager_errors[runner_id]
        return list(self.managers.get(runner_id, []))

    def close(self) -> None:
        self.closed = True


class ImmediateExecutor(Executor):
    """Executor that runs submitted work synchronously."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class ManualExecutor(Executor):
    """Executor that holds work until ``run_all`` is called."""

    def __init__(self) -> None:
        self.queue: list[tuple[Future, object, tuple, dict]] = []

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        self.queue.append((future, fn, args, kwargs))
        return future

    def run_all(self) -> None:
        queue, self.queue = self.queue, []
        for future, fn, args, kwargs in queue:
            try:
                future.set_result(fn(*args, **kwargs))
            except BaseException as e:
                future.set_exception(e)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def two_runner_client() -> FakeGitLabClient:
    """Two listed runners: 1 with an online manager, 2 with an offline one."""
    return FakeGitLabClient(
        pages=[[make_runner(1), make_runner(2)]],
        details={
            1: make_runner(1, tags=("alm", "prod"), version="17.0.0"),
            2: make_runner(2, tags=("alm",), version="16.11.1"),
        },
        managers={
            1: [make_manager(10, status="online")],
            2: [make_manager(20, status="offline")],
        },
    )


@pytest.fixture
def app_config() -> AppConfig:
    """Config with short, predictable polling values."""
    return AppConfig(poll_interval_secs=30, poll_timeout_secs=300)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
