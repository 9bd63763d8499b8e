"""Curses-based UI display for the dashboard."""

from __future__ import annotations

from curses import error as curses_error

from ...utils import age_seconds, format_clock, humanize_duration
from .colors import CursesColors
from .formatting import (
    LABELS,
    RUNNER_COLUMNS,
    WORKER_COLUMNS,
    clip_cell,
    compute_widths,
    format_health_line,
    manager_row_values,
    runner_row_values,
)
from .help_popup import draw_help_popup
from .state import Session
from .types import ERROR_HINTS, ERROR_STATUS_TEXT, STATUS_BAR_TEXT, AppMode, ResultView

COL_SEP = "  "
TITLE = "Igor - GitLab Runner Monitor"


def scroll_offset(selected: int | None, offset: int, page_size: int) -> int:
    """Return a scroll offset that keeps the selected row visible."""
    if selected is None or page_size <= 0:
        return 0
    if selected < offset:
        return selected
    if selected >= offset + page_size:
        return selected - page_size + 1
    return offset


class TuiDisplay:
    """Draws a Session onto a curses screen."""

    def __init__(self, stdscr, session: Session, *, host: str) -> None:
        self.stdscr = stdscr
        self.session = session
        self.host = host
        self.colors = CursesColors(stdscr)
        self.curses_mod = self.colors.curses_mod
        self.offset = 0

    def safe_addstr(self, row: int, col: int, text: str, attr: int = 0) -> None:
        try:
            if attr:
                self.stdscr.addstr(row, col, text, attr)
            else:
                self.stdscr.addstr(row, col, text)
        except curses_error:
            return

    def updated_indicator(self) -> str:
        session = self.session
        if session.last_updated_at is None:
            return ""
        age = int(session.clock() - session.last_updated_at)
        return f"updated {humanize_duration(age)} ago"

    def polling_indicator(self) -> str:
        session = self.session
        if not session.polling_active:
            return ""
        elapsed = format_clock(session.poll_elapsed_secs())
        if session.poll_timed_out():
            return f"[polling timed out after {elapsed}]"
        return f"[polling every {session.config.poll_interval_secs}s | {elapsed}]"

    def _draw_title(self, width: int) -> None:
        attrs = self.colors.attrs
        self.safe_addstr(0, 0, TITLE[:width], attrs.title_attr)
        right = self.host
        if self.session.is_loading:
            right = f"{self.session.spinner_char} Loading... {right}"
        for indicator in (self.updated_indicator(), self.polling_indicator()):
            if indicator:
                right = f"{indicator} {right}"
        col = max(width - len(right) - 1, len(TITLE) + 2)
        if col < width:
            self.safe_addstr(0, col, right[: width - col - 1], attrs.header_attr)

    def _draw_status_bar(self, height: int, width: int) -> None:
        if self.session.error_message and self.session.mode is AppMode.RESULTS_VIEW:
            text = ERROR_STATUS_TEXT
        else:
            text = STATUS_BAR_TEXT[self.session.mode]
        self.safe_addstr(height - 1, 0, clip_cell(text, width - 1), self.colors.attrs.selected_attr)

    def _draw_command_list(self, start_row: int, height: int, width: int) -> None:
        attrs = self.colors.attrs
        session = self.session
        self.safe_addstr(start_row, 0, "Select a command:", attrs.column_attr)
        for i, command in enumerate(session.commands):
            row = start_row + 2 + i
            if row >= height - 1:
                break
            marker = ">" if i == session.selected_command_index else " "
            text = f"{marker} {command.value:<10} {command.description}"
            attr = attrs.selected_attr if i == session.selected_command_index else 0
            self.safe_addstr(row, 0, text[: width - 1], attr)

    def _draw_filter_input(self, start_row: int, width: int) -> None:
        attrs = self.colors.attrs
        session = self.session
        title = f"Command: {session.selected_command.value}"
        self.safe_addstr(start_row, 0, title, attrs.column_attr)
        self.safe_addstr(start_row + 1, 0, session.selected_command.description[: width - 1])
        prompt = f"Tags (comma-separated, blank for all): {session.input_buffer}_"
        self.safe_addstr(start_row + 3, 0, prompt[: width - 1])
        if session.is_loading:
            self.safe_addstr(start_row + 5, 0, f"{session.spinner_char} Fetching runners...")

    def _draw_error(self, start_row: int, height: int, width: int) -> None:
        attrs = self.colors.attrs
        self.safe_addstr(start_row, 0, "Error", attrs.error_attr)
        row = start_row + 1
        for line in (self.session.error_message or "").splitlines() or [""]:
            if row >= height - 1:
                return
            self.safe_addstr(row, 2, line[: width - 3], attrs.error_attr)
            row += 1
        row += 1
        for line in ERROR_HINTS:
            if row >= height - 1:
                return
            self.safe_addstr(row, 0, line[: width - 1])
            row += 1

    def _draw_health(self, start_row: int, width: int) -> None:
        summary = self.session.health_summary
        if summary is None:
            self.safe_addstr(start_row, 0, "No health data")
            return
        self.safe_addstr(start_row, 0, "Runner health", self.colors.attrs.column_attr)
        self.safe_addstr(
            start_row + 2,
            2,
            format_health_line(summary)[: width - 3],
            self.colors.health_attr(summary.is_healthy()),
        )

    def _table_rows(self) -> tuple[list[str], list[dict[str, str]]]:
        session = self.session
        if session.results_view is ResultView.WORKERS:
            return WORKER_COLUMNS, [manager_row_values(r) for r in session.manager_rows]
        return RUNNER_COLUMNS, [runner_row_values(r) for r in session.runners]

    def _cell_attr(self, col: str, values: dict[str, str], index: int) -> int:
        session = self.session
        if col == "status":
            return self.colors.status_attr(values["status"])
        if col == "contacted" and session.results_view is ResultView.WORKERS:
            contacted_at = session.manager_rows[index].manager.contacted_at
            return self.colors.contacted_attr(age_seconds(contacted_at))
        return 0

    def _draw_table(self, start_row: int, height: int, width: int) -> None:
        attrs = self.colors.attrs
        session = self.session
        all_columns, rows = self._table_rows()
        if session.results_view is ResultView.ROTATION:
            title = f"Rotating runners: {len(rows)}"
        else:
            name = session.last_command.value if session.last_command else "results"
            title = f"{name}: {len(rows)} row(s)"
        self.safe_addstr(start_row, 0, title[: width - 1], attrs.column_attr)
        if not rows:
            self.safe_addstr(start_row + 2, 2, "No runners matched.")
            return

        columns, widths = compute_widths(
            all_columns, rows, max_width=width - 1, sep_len=len(COL_SEP)
        )
        header_row = start_row + 1
        col = 0
        for name in columns:
            label = clip_cell(LABELS[name], widths[name])
            self.safe_addstr(header_row, col, label, attrs.column_attr)
            col += widths[name] + len(COL_SEP)

        page_size = max(height - header_row - 2, 0)
        self.offset = scroll_offset(session.selected_row, self.offset, page_size)
        visible = range(self.offset, min(self.offset + page_size, len(rows)))
        for screen_idx, index in enumerate(visible):
            row = header_row + 1 + screen_idx
            values = rows[index]
            selected = index == session.selected_row
            col = 0
            for name in columns:
                if col >= width - 1:
                    break
                text = clip_cell(values[name], widths[name])[: width - 1 - col]
                attr = attrs.selected_attr if selected else self._cell_attr(name, values, index)
                self.safe_addstr(row, col, text, attr)
                col += widths[name] + len(COL_SEP)

    def draw_screen(self) -> None:
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()
        if height < 3 or width < 20:
            self.safe_addstr(0, 0, "Terminal too small"[: max(width - 1, 0)])
            self.stdscr.refresh()
            return

        self._draw_title(width)
        body_row = 2
        mode = self.session.mode
        if mode in (AppMode.COMMAND_SELECTION, AppMode.HELP):
            self._draw_command_list(body_row, height, width)
        elif mode is AppMode.FILTER_INPUT:
            self._draw_filter_input(body_row, width)
        elif self.session.error_message:
            self._draw_error(body_row, height, width)
        elif self.session.results_view is ResultView.HEALTH_CHECK:
            self._draw_health(body_row, width)
        else:
            self._draw_table(body_row, height, width)
        self._draw_status_bar(height, width)

        # Refresh main screen first, then draw help popup on top
        if mode is AppMode.HELP:
            self.stdscr.noutrefresh()
            text_attr, mascot_attr = self.colors.popup_attrs()
            draw_help_popup(
                self.stdscr, self.curses_mod, text_attr=text_attr, mascot_attr=mascot_attr
            )
            self.curses_mod.doupdate()
        else:
            self.stdscr.refresh()
