"""Help popup rendering for the dashboard."""

from __future__ import annotations

from curses import error as curses_error
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from .types import HELP_TEXT, IGOR_MASCOT


def help_lines() -> tuple[list[str], int]:
    """Return popup lines and how many leading lines are the mascot block."""
    try:
        ver = get_version("igor")
    except PackageNotFoundError:
        ver = "?"
    mascot_with_version = IGOR_MASCOT + [f"igor v{ver}"]
    return mascot_with_version + [""] + HELP_TEXT.split("\n"), len(mascot_with_version)


def draw_help_popup(stdscr, curses_mod, *, text_attr: int, mascot_attr: int) -> None:
    """Draw a centered, bordered help popup over the current screen."""
    if not curses_mod:
        return

    height, width = stdscr.getmaxyx()
    all_lines, mascot_line_count = help_lines()

    h_pad = 2
    v_pad = 1
    content_width = max(len(line) for line in all_lines)
    popup_width = content_width + (h_pad * 2)
    popup_height = len(all_lines) + (v_pad * 2)

    start_y = max((height - popup_height - 2) // 2, 0)
    start_x = max((width - popup_width - 2) // 2, 0)

    # Clip to screen, leaving room for the border
    if start_y + popup_height + 2 > height:
        popup_height = max(height - start_y - 2, 1)
    if start_x + popup_width + 2 > width:
        popup_width = max(width - start_x - 2, 10)

    try:
        popup_win = curses_mod.newwin(popup_height + 2, popup_width + 2, start_y, start_x)
    except curses_error:
        return

    popup_win.bkgd(" ", text_attr)
    popup_win.border()

    max_content_rows = popup_height - (v_pad * 2)
    for i, line in enumerate(all_lines[:max_content_rows]):
        if i < mascot_line_count:
            padded = " " * h_pad + line.center(content_width) + " " * h_pad
            attr = mascot_attr
        else:
            padded = " " * h_pad + line.ljust(content_width) + " " * h_pad
            attr = text_attr
        try:
            popup_win.addstr(v_pad + 1 + i, 1, padded[:popup_width], attr)
        except curses_error:
            pass

    popup_win.noutrefresh()
