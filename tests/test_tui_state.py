"""Tests for igor/commands/tui/state.py - dashboard state machine."""

from __future__ import annotations

import curses

import pytest
from conftest import FakeGitLabClient, ImmediateExecutor, ManualExecutor, make_manager, make_runner
from igor.commands.tui.state import KEY_ESC, Session
from igor.commands.tui.types import SPINNER_FRAMES, AppMode, Command, ResultView
from igor.conductor import Conductor
from igor.exceptions import ServerError

ENTER = ord("\n")


@pytest.fixture
def session(two_runner_client, app_config, fake_clock) -> Session:
    return Session(
        Conductor(two_runner_client),
        app_config,
        executor=ImmediateExecutor(),
        clock=fake_clock,
    )


def select(session: Session, command: Command) -> None:
    session.selected_command_index = session.commands.index(command)


def run_command(session: Session, command: Command, tags: str = "") -> None:
    """Drive the key sequence for running a command and apply the result."""
    if session.mode is AppMode.RESULTS_VIEW:
        session.handle_key(KEY_ESC)
    select(session, command)
    session.handle_key(ENTER)
    for ch in tags:
        session.handle_key(ord(ch))
    session.handle_key(ENTER)
    session.tick()


class TestCommandSelection:
    """Tests for navigation in CommandSelection mode."""

    def test_initial_state(self, session):
        assert session.mode is AppMode.COMMAND_SELECTION
        assert session.selected_command is Command.FETCH
        assert session.is_loading is False
        assert session.polling_active is False

    def test_next_wraps_after_seven(self, session):
        """Seven presses of next return to the starting command."""
        for _ in range(7):
            session.handle_key(curses.KEY_DOWN)
        assert session.selected_command_index == 0

    def test_previous_wraps(self, session):
        session.handle_key(curses.KEY_UP)
        assert session.selected_command is Command.ROTATE

    def test_vi_keys(self, session):
        session.handle_key(ord("j"))
        assert session.selected_command is Command.LIGHTS
        session.handle_key(ord("k"))
        assert session.selected_command is Command.FETCH

    def test_enter_opens_filter_input(self, session):
        session.input_buffer = "stale"
        session.handle_key(ENTER)
        assert session.mode is AppMode.FILTER_INPUT
        assert session.input_buffer == ""

    def test_q_quits(self, session):
        assert session.handle_key(ord("q")) is True
        assert session.should_quit is True

    def test_esc_quits(self, session):
        assert session.handle_key(KEY_ESC) is True


class TestHelp:
    """Tests for the help overlay."""

    def test_help_from_command_selection(self, session):
        session.handle_key(ord("?"))
        assert session.mode is AppMode.HELP

    def test_any_key_closes_help(self, session):
        session.handle_key(ord("?"))
        assert session.handle_key(ord("q")) is False
        assert session.mode is AppMode.COMMAND_SELECTION

    def test_help_from_results(self, session):
        run_command(session, Command.FETCH)
        session.handle_key(ord("?"))
        assert session.mode is AppMode.HELP

    def test_question_mark_is_text_in_filter_input(self, session):
        session.handle_key(ENTER)
        session.handle_key(ord("?"))
        assert session.mode is AppMode.FILTER_INPUT
        assert session.input_buffer == "?"


class TestFilterInput:
    """Tests for typing tags."""

    def test_typing_and_backspace(self, session):
        session.handle_key(ENTER)
        for ch in "alm,x":
            session.handle_key(ord(ch))
        session.handle_key(curses.KEY_BACKSPACE)
        session.handle_key(127)
        assert session.input_buffer == "alm"

    def test_esc_returns_to_selection(self, session):
        session.handle_key(ENTER)
        session.handle_key(KEY_ESC)
        assert session.mode is AppMode.COMMAND_SELECTION

    def test_build_filters(self, session):
        session.input_buffer = " alm , prod ,, "
        assert session.build_filters().tag_list == ["alm", "prod"]

    def test_build_filters_blank(self, session):
        session.input_buffer = "  "
        assert session.build_filters().tag_list is None


class TestExecution:
    """Tests for running commands and applying results."""

    def test_fetch_populates_runners(self, session):
        run_command(session, Command.FETCH)
        assert session.mode is AppMode.RESULTS_VIEW
        assert [r.id for r in session.runners] == [1, 2]
        assert session.results_view is ResultView.RUNNERS
        assert session.selected_row == 0
        assert session.is_loading is False
        assert session.health_summary is None

    def test_tags_filter(self, session):
        run_command(session, Command.FETCH, tags="prod")
        assert [r.id for r in session.runners] == [1]

    def test_lights_only_health(self, session):
        run_command(session, Command.FETCH)
        run_command(session, Command.LIGHTS)
        assert session.results_view is ResultView.HEALTH_CHECK
        assert session.health_summary is not None
        assert session.health_summary.online_count == 1
        assert session.health_summary.total_count == 2
        assert session.runners == []
        assert session.manager_rows == []
        assert session.selected_row is None

    def test_workers_only_manager_rows(self, session):
        run_command(session, Command.WORKERS)
        assert session.results_view is ResultView.WORKERS
        assert len(session.manager_rows) == 2
        assert session.runners == []
        assert session.result_count == 2

    def test_empty_result_leaves_cursor_unset(self, session):
        run_command(session, Command.ROTATE)
        assert session.results_view is ResultView.ROTATION
        assert session.runners == []
        assert session.selected_row is None

    def test_loading_flag_while_in_flight(self, two_runner_client, app_config, fake_clock):
        executor = ManualExecutor()
        session = Session(
            Conductor(two_runner_client), app_config, executor=executor, clock=fake_clock
        )
        session.handle_key(ENTER)
        session.handle_key(ENTER)
        assert session.is_loading is True
        assert session.mode is AppMode.FILTER_INPUT

        assert session.tick() is True
        assert session.spinner_char == SPINNER_FRAMES[1]

        executor.run_all()
        session.tick()
        assert session.is_loading is False
        assert session.mode is AppMode.RESULTS_VIEW

    def test_search_ignored_while_loading(self, two_runner_client, app_config, fake_clock):
        executor = ManualExecutor()
        session = Session(
            Conductor(two_runner_client), app_config, executor=executor, clock=fake_clock
        )
        session.handle_key(ENTER)
        session.handle_key(ENTER)
        session.handle_key(ENTER)
        assert len(executor.queue) == 1

    def test_result_applied_after_backing_out(self, two_runner_client, app_config, fake_clock):
        """A user result landing after Esc still switches to the results view."""
        executor = ManualExecutor()
        session = Session(
            Conductor(two_runner_client), app_config, executor=executor, clock=fake_clock
        )
        session.handle_key(ENTER)
        session.handle_key(ENTER)
        session.handle_key(KEY_ESC)
        executor.run_all()
        session.tick()
        assert session.mode is AppMode.RESULTS_VIEW
        assert len(session.runners) == 2

    def test_failure_sets_error(self, app_config, fake_clock):
        client = FakeGitLabClient(
            pages=[[make_runner(1)]],
            page_errors={1: ServerError("GitLab API returned 500", status_code=500, endpoint="x")},
        )
        session = Session(
            Conductor(client), app_config, executor=ImmediateExecutor(), clock=fake_clock
        )
        run_command(session, Command.FETCH)
        assert session.mode is AppMode.RESULTS_VIEW
        assert session.is_loading is False
        assert "page 1" in session.error_message

    def test_esc_dismisses_error(self, app_config, fake_clock):
        client = FakeGitLabClient(
            page_errors={1: ServerError("GitLab API returned 500", status_code=500, endpoint="x")},
        )
        session = Session(
            Conductor(client), app_config, executor=ImmediateExecutor(), clock=fake_clock
        )
        run_command(session, Command.FETCH)
        session.handle_key(KEY_ESC)
        assert session.error_message is None
        assert session.mode is AppMode.COMMAND_SELECTION

    def test_new_search_clears_error(self, session):
        session.error_message = "old failure"
        run_command(session, Command.FETCH)
        assert session.error_message is None

    def test_unexpected_worker_error_shown(self, app_config, fake_clock):
        """A non-GitLab exception in the worker becomes an error, not a crash."""
        client = FakeGitLabClient(page_errors={1: RuntimeError("kaboom")})
        session = Session(
            Conductor(client), app_config, executor=ImmediateExecutor(), clock=fake_clock
        )
        run_command(session, Command.FETCH)
        assert session.mode is AppMode.RESULTS_VIEW
        assert session.is_loading is False
        assert "kaboom" in session.error_message

    def test_background_worker_result_applied(self, two_runner_client, app_config):
        """The owned worker thread runs the command; waiting applies the result."""
        session = Session(Conductor(two_runner_client), app_config)
        try:
            session.handle_key(ENTER)
            session.handle_key(ENTER)
            assert session.is_loading is True
            assert session.wait_for_pending(timeout=5) is True
            assert session.is_loading is False
            assert session.mode is AppMode.RESULTS_VIEW
            assert [r.id for r in session.runners] == [1, 2]
            assert session.wait_for_pending() is False
        finally:
            session.close()


class TestResultsNavigation:
    """Tests for scrolling results."""

    @pytest.fixture
    def many(self, app_config, fake_clock) -> Session:
        client = FakeGitLabClient(
            pages=[[make_runner(i) for i in range(1, 4)]],
            managers={i: [make_manager(i * 10)] for i in range(1, 4)},
        )
        session = Session(
            Conductor(client), app_config, executor=ImmediateExecutor(), clock=fake_clock
        )
        run_command(session, Command.FETCH)
        return session

    def test_next_wraps(self, many):
        for _ in range(3):
            many.handle_key(curses.KEY_DOWN)
        assert many.selected_row == 0

    def test_previous_wraps(self, many):
        many.handle_key(curses.KEY_UP)
        assert many.selected_row == 2

    def test_navigation_noop_without_results(self, session):
        run_command(session, Command.ROTATE)
        session.handle_key(curses.KEY_DOWN)
        assert session.selected_row is None

    def test_q_quits_from_results(self, many):
        assert many.handle_key(ord("q")) is True


class TestPolling:
    """Tests for automatic refresh."""

    def test_toggle_sets_and_resets_times(self, session, fake_clock):
        run_command(session, Command.FETCH)
        session.handle_key(ord("p"))
        assert session.polling_active is True
        assert session.poll_started_at == fake_clock.now
        assert session.last_poll_at == fake_clock.now

        session.handle_key(ord("p"))
        assert session.polling_active is False
        assert session.poll_started_at is None
        assert session.last_poll_at is None

    def test_p_ignored_outside_results(self, session):
        session.handle_key(ord("p"))
        assert session.polling_active is False

    def test_refresh_after_interval(self, session, two_runner_client, fake_clock):
        run_command(session, Command.FETCH)
        session.handle_key(ord("p"))
        calls = len(two_runner_client.list_calls)

        fake_clock.advance(29)
        session.tick()
        assert len(two_runner_client.list_calls) == calls

        fake_clock.advance(1)
        session.tick()
        session.tick()
        assert len(two_runner_client.list_calls) == calls + 1
        assert session.last_poll_at == fake_clock.now

    def test_refresh_reuses_last_filters(self, session, two_runner_client, fake_clock):
        run_command(session, Command.FETCH, tags="prod")
        session.handle_key(ord("p"))
        fake_clock.advance(30)
        session.tick()
        session.tick()
        assert two_runner_client.filters_seen[-1].tag_list == ["prod"]
        assert [r.id for r in session.runners] == [1]

    def test_no_refresh_outside_results(self, session, two_runner_client, fake_clock):
        run_command(session, Command.FETCH)
        session.handle_key(ord("p"))
        session.handle_key(KEY_ESC)
        calls = len(two_runner_client.list_calls)
        fake_clock.advance(60)
        session.tick()
        assert len(two_runner_client.list_calls) == calls

    def test_poll_result_keeps_mode(self, two_runner_client, app_config, fake_clock):
        executor = ManualExecutor()
        session = Session(
            Conductor(two_runner_client), app_config, executor=executor, clock=fake_clock
        )
        run_command(session, Command.FETCH)
        executor.run_all()
        session.tick()
        session.handle_key(ord("p"))
        fake_clock.advance(30)
        session.tick()
        assert session.is_loading is True

        session.handle_key(ord("?"))
        executor.run_all()
        session.tick()
        assert session.mode is AppMode.HELP

    def test_timeout_suppresses_refresh(self, session, two_runner_client, fake_clock):
        run_command(session, Command.FETCH)
        session.handle_key(ord("p"))
        fake_clock.advance(300)
        assert session.poll_timed_out() is True
        calls = len(two_runner_client.list_calls)
        session.tick()
        assert len(two_runner_client.list_calls) == calls
        assert session.polling_active is True

    def test_restart_after_timeout(self, session, fake_clock):
        run_command(session, Command.FETCH)
        session.handle_key(ord("p"))
        fake_clock.advance(300)
        session.handle_key(ord("p"))
        session.handle_key(ord("p"))
        assert session.poll_timed_out() is False
        assert session.poll_elapsed_secs() == 0


class TestSessionClose:
    """Tests for executor ownership."""

    def test_injected_executor_not_shut_down(self, session, mocker):
        shutdown = mocker.patch.object(ImmediateExecutor, "shutdown")
        session.close()
        shutdown.assert_not_called()

    def test_owned_executor_shut_down(self, two_runner_client, app_config):
        session = Session(Conductor(two_runner_client), app_config)
        session.close()
        with pytest.raises(RuntimeError):
            session._executor.submit(lambda: None)
