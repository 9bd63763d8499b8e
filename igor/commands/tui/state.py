"""Dashboard session state machine.

A Session owns all interactive state and is only mutated from the event
loop thread through ``handle_key`` and ``tick``. Commands run on a single
background worker so the loop keeps ticking (spinner, redraws) while an
aggregation is in flight; the finished result is applied in one step by
``poll_pending`` on the loop thread.

There is no mid-flight cancellation. A result that lands after the user
has backed out of the results view is still stored; only user-initiated
commands switch the mode to the results view.
"""

from __future__ import annotations

import curses
import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass

from ...conductor import CommandResult, Conductor, execute_command
from ...config import AppConfig
from ...constants import UNCONTACTED_THRESHOLD_S
from ...exceptions import IgorError
from ...models import Runner, RunnerFilters
from ...utils import parse_tag_list
from ...views import HealthSummary, ManagerRow
from .types import SPINNER_FRAMES, AppMode, Command, ResultView

logger = logging.getLogger(__name__)

KEY_ESC = 27
ENTER_KEYS = (curses.KEY_ENTER, ord("\n"), ord("\r"))
BACKSPACE_KEYS = (curses.KEY_BACKSPACE, 127, 8)
UP_KEYS = (curses.KEY_UP, ord("k"))
DOWN_KEYS = (curses.KEY_DOWN, ord("j"))

ORIGIN_USER = "user"
ORIGIN_POLL = "poll"


@dataclass
class PendingCommand:
    command: Command
    filters: RunnerFilters
    origin: str
    future: Future


class Session:
    """Interactive state: mode, results, loading/error and polling."""

    def __init__(
        self,
        conductor: Conductor,
        config: AppConfig,
        *,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
        uncontacted_threshold_s: int = UNCONTACTED_THRESHOLD_S,
    ) -> None:
        self.conductor = conductor
        self.config = config
        self.clock = clock
        self.uncontacted_threshold_s = uncontacted_threshold_s

        self.mode = AppMode.COMMAND_SELECTION
        self.should_quit = False
        self.commands: list[Command] = list(Command)
        self.selected_command_index = 0
        self.input_buffer = ""

        self.runners: list[Runner] = []
        self.manager_rows: list[ManagerRow] = []
        self.health_summary: HealthSummary | None = None
        self.results_view = ResultView.RUNNERS
        self.selected_row: int | None = None

        self.is_loading = False
        self.error_message: str | None = None
        self.spinner_frame = 0
        self.last_updated_at: float | None = None

        self.polling_active = False
        self.poll_started_at: float | None = None
        self.last_poll_at: float | None = None
        self.last_command: Command | None = None
        self.last_filters: RunnerFilters | None = None

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="igor-command"
        )
        self._pending: PendingCommand | None = None

    # -- command selection -------------------------------------------------

    @property
    def selected_command(self) -> Command:
        return self.commands[self.selected_command_index]

    def next_command(self) -> None:
        self.selected_command_index = (self.selected_command_index + 1) % len(self.commands)

    def previous_command(self) -> None:
        self.selected_command_index = (self.selected_command_index - 1) % len(self.commands)

    def select_command(self) -> None:
        self.mode = AppMode.FILTER_INPUT
        self.input_buffer = ""

    # -- execution -----------------------------------------------------------

    def build_filters(self) -> RunnerFilters:
        return RunnerFilters(tag_list=parse_tag_list(self.input_buffer))

    def execute_search(self) -> None:
        """Run the selected command with the tags typed in the filter box."""
        if self.is_loading:
            logger.debug("Ignoring search while a command is in flight")
            return
        self.error_message = None
        self._submit(self.selected_command, self.build_filters(), ORIGIN_USER)

    def _submit(self, command: Command, filters: RunnerFilters, origin: str) -> None:
        self.is_loading = True
        self.last_command = command
        self.last_filters = filters
        if self.polling_active:
            self.last_poll_at = self.clock()
        logger.info("Running %s (%s) tags=%s", command.value, origin, filters.tag_list)
        future = self._executor.submit(
            execute_command,
            self.conductor,
            command,
            filters,
            uncontacted_threshold_s=self.uncontacted_threshold_s,
        )
        self._pending = PendingCommand(command, filters, origin, future)

    def poll_pending(self) -> bool:
        """Apply the in-flight command's outcome if it has finished.

        Returns:
            True if state changed
        """
        pending = self._pending
        if pending is None or not pending.future.done():
            return False
        self._pending = None
        self.is_loading = False
        try:
            result = pending.future.result()
        except IgorError as e:
            logger.warning("%s failed: %s", pending.command.value, e)
            self.apply_error(str(e), origin=pending.origin)
        except Exception as e:
            logger.exception("%s raised an unexpected error", pending.command.value)
            self.apply_error(f"Unexpected error: {e}", origin=pending.origin)
        else:
            self.apply_result(result, origin=pending.origin)
        return True

    def wait_for_pending(self, timeout: float | None = None) -> bool:
        """Block until the in-flight command finishes, then apply it."""
        pending = self._pending
        if pending is None:
            return False
        wait_futures([pending.future], timeout=timeout)
        return self.poll_pending()

    def apply_result(self, result: CommandResult, *, origin: str = ORIGIN_USER) -> None:
        self.runners = []
        self.manager_rows = []
        self.health_summary = None

        if result.view is ResultView.WORKERS:
            self.manager_rows = list(result.manager_rows)
        elif result.view is ResultView.HEALTH_CHECK:
            self.health_summary = result.health
        else:
            self.runners = list(result.runners)
        self.results_view = result.view

        self.error_message = None
        self.selected_row = 0 if self.result_count > 0 else None
        self.last_updated_at = self.clock()
        if origin == ORIGIN_USER:
            self.mode = AppMode.RESULTS_VIEW

    def apply_error(self, message: str, *, origin: str = ORIGIN_USER) -> None:
        self.error_message = message
        if origin == ORIGIN_USER:
            self.mode = AppMode.RESULTS_VIEW

    # -- results navigation ----------------------------------------------------

    @property
    def result_count(self) -> int:
        if self.results_view is ResultView.WORKERS:
            return len(self.manager_rows)
        return len(self.runners)

    def next_result(self) -> None:
        count = self.result_count
        if count == 0:
            return
        if self.selected_row is None:
            self.selected_row = 0
        else:
            self.selected_row = (self.selected_row + 1) % count

    def previous_result(self) -> None:
        count = self.result_count
        if count == 0:
            return
        if self.selected_row is None:
            self.selected_row = 0
        else:
            self.selected_row = (self.selected_row - 1) % count

    # -- polling -----------------------------------------------------------------

    def toggle_polling(self) -> None:
        if self.polling_active:
            self.polling_active = False
            self.poll_started_at = None
            self.last_poll_at = None
        else:
            now = self.clock()
            self.polling_active = True
            self.poll_started_at = now
            self.last_poll_at = now

    def poll_elapsed_secs(self) -> float:
        if self.poll_started_at is None:
            return 0.0
        return self.clock() - self.poll_started_at

    def poll_timed_out(self) -> bool:
        return self.poll_elapsed_secs() >= self.config.poll_timeout_secs

    def should_poll_now(self) -> bool:
        if not self.polling_active or self.is_loading:
            return False
        if self.mode is not AppMode.RESULTS_VIEW:
            return False
        if self.last_command is None or self.poll_timed_out():
            return False
        if self.last_poll_at is None:
            return False
        return self.clock() - self.last_poll_at >= self.config.poll_interval_secs

    # -- event handling ------------------------------------------------------------

    @property
    def spinner_char(self) -> str:
        return SPINNER_FRAMES[self.spinner_frame % len(SPINNER_FRAMES)]

    def tick(self) -> bool:
        """Handle a timer tick. Returns True if a redraw is needed."""
        changed = self.poll_pending()
        if self.is_loading:
            self.spinner_frame = (self.spinner_frame + 1) % len(SPINNER_FRAMES)
            changed = True
        if self.should_poll_now():
            assert self.last_command is not None and self.last_filters is not None
            self._submit(self.last_command, self.last_filters, ORIGIN_POLL)
            changed = True
        return changed

    def handle_key(self, key: int) -> bool:
        """Handle a keypress. Returns True if we should exit."""
        if self.mode is AppMode.FILTER_INPUT:
            if key in ENTER_KEYS:
                self.execute_search()
            elif key == KEY_ESC:
                self.error_message = None
                self.mode = AppMode.COMMAND_SELECTION
            elif key in BACKSPACE_KEYS:
                self.input_buffer = self.input_buffer[:-1]
            elif 32 <= key < 127:
                self.input_buffer += chr(key)
            return False

        if self.mode is AppMode.HELP:
            self.mode = AppMode.COMMAND_SELECTION
            return False

        if key == ord("?"):
            self.mode = AppMode.HELP
        elif key in (ord("q"), ord("Q")):
            self.should_quit = True
        elif key == ord("p") and self.mode is AppMode.RESULTS_VIEW:
            self.toggle_polling()
        elif key in UP_KEYS:
            if self.mode is AppMode.COMMAND_SELECTION:
                self.previous_command()
            else:
                self.previous_result()
        elif key in DOWN_KEYS:
            if self.mode is AppMode.COMMAND_SELECTION:
                self.next_command()
            else:
                self.next_result()
        elif key in ENTER_KEYS:
            if self.mode is AppMode.COMMAND_SELECTION:
                self.select_command()
        elif key == KEY_ESC:
            if self.mode is AppMode.COMMAND_SELECTION:
                self.should_quit = True
            else:
                self.error_message = None
                self.mode = AppMode.COMMAND_SELECTION
        return self.should_quit

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
