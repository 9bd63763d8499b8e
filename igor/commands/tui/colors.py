"""Curses color initialization and attribute lookup for the dashboard."""

from __future__ import annotations

from curses import error as curses_error
from dataclasses import dataclass

from ...constants import MANAGER_ONLINE_STATUS

PAIR_TITLE = 1
PAIR_HEADER = 2
PAIR_COLUMN = 3
PAIR_GREEN = 4
PAIR_YELLOW = 5
PAIR_RED = 6
PAIR_POPUP = 7
PAIR_MASCOT = 8


@dataclass
class CursesAttrs:
    """Named curses attributes for consistent styling."""

    title_attr: int
    header_attr: int
    column_attr: int
    selected_attr: int
    error_attr: int


class CursesColors:
    """Color pair setup and status-to-attribute mapping."""

    def __init__(self, stdscr) -> None:
        self.stdscr = stdscr
        self.curses_mod = None
        self.color_enabled = False
        self.attrs = CursesAttrs(
            title_attr=0,
            header_attr=0,
            column_attr=0,
            selected_attr=0,
            error_attr=0,
        )
        self._init_curses()

    def _init_curses(self) -> None:
        try:
            import curses

            self.curses_mod = curses
            curses.curs_set(0)
            if curses.has_colors():
                curses.start_color()
                curses.use_default_colors()
                curses.init_pair(PAIR_TITLE, curses.COLOR_CYAN, -1)
                curses.init_pair(PAIR_HEADER, curses.COLOR_YELLOW, -1)
                curses.init_pair(PAIR_COLUMN, curses.COLOR_MAGENTA, -1)
                curses.init_pair(PAIR_GREEN, curses.COLOR_GREEN, -1)
                curses.init_pair(PAIR_YELLOW, curses.COLOR_YELLOW, -1)
                curses.init_pair(PAIR_RED, curses.COLOR_RED, -1)
                curses.init_pair(PAIR_POPUP, curses.COLOR_WHITE, curses.COLOR_BLACK)
                curses.init_pair(PAIR_MASCOT, curses.COLOR_YELLOW, curses.COLOR_BLACK)
                self.color_enabled = True
            self.attrs = CursesAttrs(
                title_attr=curses.A_BOLD | self._pair(PAIR_TITLE),
                header_attr=self._pair(PAIR_HEADER),
                column_attr=curses.A_BOLD | self._pair(PAIR_COLUMN),
                selected_attr=curses.A_REVERSE,
                error_attr=curses.A_BOLD | self._pair(PAIR_RED),
            )
        except curses_error:
            return

    def _pair(self, number: int) -> int:
        if not self.color_enabled:
            return 0
        return self.curses_mod.color_pair(number)

    def status_attr(self, status: str) -> int:
        """Color a runner/manager status: green online, yellow stale, red otherwise."""
        if not self.color_enabled:
            return 0
        if status == MANAGER_ONLINE_STATUS:
            return self._pair(PAIR_GREEN)
        if status == "stale":
            return self._pair(PAIR_YELLOW)
        return self._pair(PAIR_RED)

    def health_attr(self, healthy: bool) -> int:
        if not self.color_enabled:
            return 0
        return self.curses_mod.A_BOLD | self._pair(PAIR_GREEN if healthy else PAIR_RED)

    def threshold_color_attr(self, seconds_value: int | None, thresholds: tuple[int, int]) -> int:
        """Green below thresholds[0], yellow below thresholds[1], red otherwise."""
        if not self.color_enabled or seconds_value is None:
            return 0
        green_max, yellow_max = thresholds
        if seconds_value < green_max:
            return self._pair(PAIR_GREEN)
        if seconds_value < yellow_max:
            return self._pair(PAIR_YELLOW)
        return self._pair(PAIR_RED)

    def contacted_attr(self, seconds_value: int | None) -> int:
        """Color manager last contact: green < 5m, yellow < 1h, red >= 1h."""
        return self.threshold_color_attr(seconds_value, (5 * 60, 60 * 60))

    def popup_attrs(self) -> tuple[int, int]:
        """Return (text, mascot) attributes for the help popup."""
        if not self.color_enabled:
            reverse = self.curses_mod.A_REVERSE if self.curses_mod else 0
            return reverse, reverse
        return self._pair(PAIR_POPUP), self._pair(PAIR_MASCOT)
