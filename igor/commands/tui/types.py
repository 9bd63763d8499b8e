"""Shared types and constants for the dashboard."""

from __future__ import annotations

import enum

from ...conductor import COMMAND_DESCRIPTIONS, Command, ResultView

__all__ = ["AppMode", "Command", "HELP_TEXT", "IGOR_MASCOT", "ResultView", "SPINNER_FRAMES"]


class AppMode(enum.Enum):
    """Dashboard state machine modes."""

    COMMAND_SELECTION = "command_selection"
    FILTER_INPUT = "filter_input"
    RESULTS_VIEW = "results_view"
    HELP = "help"


SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

IGOR_MASCOT = [
    "  ▄█████▄  ",
    " ▐▛▀▀▀▀▀▜▌ ",
    "▗▟█▄███▄█▙▖",
    "  ▀▘   ▀▘  ",
]

STATUS_BAR_TEXT = {
    AppMode.COMMAND_SELECTION: "↑/↓: Navigate | Enter: Select | ?: Help | q: Quit",
    AppMode.FILTER_INPUT: "Enter: Search | Esc: Back | Type to filter by tags",
    AppMode.RESULTS_VIEW: "↑/↓: Scroll | p: Toggle polling | Esc: Back | q: Quit",
    AppMode.HELP: "Press any key to close help",
}

ERROR_STATUS_TEXT = "Press Esc to dismiss error and go back"

ERROR_HINTS = [
    "Troubleshooting:",
    "  • Check GITLAB_HOST and GITLAB_TOKEN are set correctly",
    "  • Verify network connectivity to GitLab",
    "  • Ensure your token has 'read_api' scope",
]


def _command_help_lines() -> list[str]:
    return [f"  {cmd.value:<12}  {COMMAND_DESCRIPTIONS[cmd]}" for cmd in Command]


HELP_TEXT = "\n".join(
    [
        "Igor - GitLab Runner Monitor (press any key to close)",
        "",
        "Navigation:",
        "  ↑/↓ or k/j    Navigate commands / Scroll results",
        "  Enter         Select command / Execute search",
        "  Esc           Back / Cancel",
        "  p             Toggle polling (results view)",
        "  ?             Show this help",
        "  q             Quit application",
        "",
        "Commands:",
        *_command_help_lines(),
        "",
        "Filter (in filter mode):",
        "  Tags          Comma-separated tags (e.g., alm,prod), any match",
    ]
)
