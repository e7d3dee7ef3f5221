"""Terminal output renderer for the mirrored board.

Renders the board and status notices in a human-readable format for terminal
display. Uses ASCII art and ANSI colors for readability.
"""

from __future__ import annotations

import re

from ttt_bridge.models import GRID_SIZE, BoardState
from ttt_bridge.router import Announcement, AnnouncementKind


# ANSI Color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\x1b[0m"

    RED = "\x1b[0;31m"
    GREEN = "\x1b[0;32m"
    YELLOW = "\x1b[0;33m"
    BLUE = "\x1b[0;34m"


CLEAR_SCREEN = "\x1b[H\x1b[J"

HEADER_RULE = "=" * 27
BOARD_EDGE = "  +-----------+"
BOARD_DIVIDER = "  |-----------|"

HELP_TEXT = (
    "Enter move as 'row,col' (e.g. '1,3')\n"
    "Or 'r' to reset, 'q' to quit, 'a' to automate"
)
INVALID_MOVE_TEXT = "Invalid move! Row and column must be between 1 and 3."
INVALID_INPUT_TEXT = (
    "Invalid input! Enter 'row,col', 'r' to reset, "
    "'a' to toggle autoplay, or 'q' to quit."
)

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text.

    Args:
        text: Text potentially containing ANSI codes

    Returns:
        Text with all ANSI escape sequences removed
    """
    return _ANSI_PATTERN.sub("", text)


def colorize(text: str, color: str, enabled: bool = True) -> str:
    """Wrap text in a color code when colors are enabled."""
    if not enabled:
        return text
    return f"{color}{text}{Colors.RESET}"


def render_board(board: BoardState, color: bool = True, clear: bool = False) -> str:
    """Render the board with header, current player and grid.

    Args:
        board: Snapshot to render
        color: Emit ANSI colors
        clear: Prefix with a clear-screen sequence

    Returns:
        Formatted board view string
    """
    lines: list[str] = []

    lines.append(colorize(HEADER_RULE, Colors.YELLOW, color))
    lines.append(colorize("Tic-Tac-Toe Game Board", Colors.YELLOW, color))
    lines.append(colorize(HEADER_RULE, Colors.YELLOW, color))
    lines.append("")

    player = colorize(board.current_player.value, Colors.GREEN, color)
    lines.append(f"Current Player: {player}")
    lines.append("")

    lines.append("    " + "   ".join(str(c + 1) for c in range(GRID_SIZE)))
    lines.append(BOARD_EDGE)

    for r in range(GRID_SIZE):
        cells = [colorize(board.cell(r, c), Colors.RED, color) for c in range(GRID_SIZE)]
        lines.append(f"{r + 1} | " + " | ".join(cells) + " |")
        if r < GRID_SIZE - 1:
            lines.append(BOARD_DIVIDER)

    lines.append(BOARD_EDGE)
    lines.append("")
    lines.append(HELP_TEXT)

    text = "\n".join(lines) + "\n"
    if clear:
        return CLEAR_SCREEN + text
    return text


def render_announcement(announcement: Announcement, color: bool = True) -> str:
    """Render a status or move notice as a single colored line.

    Args:
        announcement: The notice to render
        color: Emit ANSI colors

    Returns:
        Formatted line (without trailing newline)
    """
    kind = announcement.kind
    if kind is AnnouncementKind.WIN:
        return colorize(f"Player {announcement.payload}!", Colors.GREEN, color)
    if kind is AnnouncementKind.DRAW:
        return colorize("Game ended in a draw!", Colors.BLUE, color)
    if kind is AnnouncementKind.RESET:
        return colorize("Game has been reset.", Colors.YELLOW, color)
    return colorize(f"Move made: {announcement.payload}", Colors.BLUE, color)
