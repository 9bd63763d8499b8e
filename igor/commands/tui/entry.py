"""Dashboard command entry point."""

from __future__ import annotations

import curses
import logging
from curses import wrapper as curses_wrapper
from typing import TYPE_CHECKING

from ...conductor import Conductor
from ...constants import TICK_INTERVAL_MS
from ...gitlab import GitLabClient
from .display import TuiDisplay
from .state import Session
from .types import AppMode

if TYPE_CHECKING:
    from ...cli_types import TuiArgs

logger = logging.getLogger(__name__)


def run_event_loop(stdscr, session: Session, display: TuiDisplay) -> None:
    """Read keys and timer ticks until the session asks to quit."""
    stdscr.timeout(TICK_INTERVAL_MS)
    display.draw_screen()
    while True:
        key = stdscr.getch()

        if key == curses.KEY_RESIZE:
            display.draw_screen()
        elif key != -1:
            if session.handle_key(key):
                return
            display.draw_screen()

        # Ages and the poll clock in the results view change every tick
        if session.tick() or session.mode is AppMode.RESULTS_VIEW:
            display.draw_screen()


def cmd_tui(args: TuiArgs) -> None:
    """Run the interactive runner dashboard."""
    client = GitLabClient(args.host, args.token)
    session = Session(Conductor(client), args.config)
    logger.info("Dashboard started against %s", args.host)

    def curses_main(stdscr) -> None:
        # Esc should register immediately, not after the default 1s delay
        curses.set_escdelay(25)
        display = TuiDisplay(stdscr, session, host=args.host)
        try:
            run_event_loop(stdscr, session, display)
        except KeyboardInterrupt:
            logger.info("Interrupted, exiting dashboard")

    try:
        curses_wrapper(curses_main)
    finally:
        session.close()
        client.close()
        logger.info("Dashboard stopped")
