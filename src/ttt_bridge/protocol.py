"""Protocol constants and message handling for the bridge.

Handles:
- Topic layout under the configured root
- Command lines for mosquitto_sub / mosquitto_pub
- Splitting subscriber output lines into events
- Outbound command formatting
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ttt_bridge.models import InboundEvent

if TYPE_CHECKING:
    from ttt_bridge.config import Config

# =============================================================================
# Protocol Constants
# =============================================================================

DEFAULT_TOPIC_ROOT: str = "TTT"

# Subtopics published by the game server
BOARD_SUBTOPIC: str = "board"
PLAYER_SUBTOPIC: str = "player"
STATUS_SUBTOPIC: str = "status"
MOVES_SUBTOPIC: str = "moves"

# Status payloads
STATUS_WINS_MARKER: str = "wins"
STATUS_DRAW: str = "draw"
STATUS_RESET: str = "reset"

# Outbound reset command
RESET_COMMAND: str = "r"

# mosquitto_sub -v separates topic and payload with one space
TOPIC_PAYLOAD_SEPARATOR: str = " "

# Leading "row,col"; trailing text after the second number is ignored
MOVE_PATTERN = re.compile(r"\s*([+-]?[0-9]+),\s*([+-]?[0-9]+)")

# Buffer sizes
READ_CHUNK_SIZE: int = 4096

BOARD_SIZE: int = 3


# =============================================================================
# Topics and command lines
# =============================================================================


def subtopic(root: str, name: str) -> str:
    """Build <root>/<name>."""
    return f"{root}/{name}"


def wildcard_topic(root: str) -> str:
    """Build the multi-level wildcard subscription <root>/#."""
    return f"{root}/#"


def _broker_args(config: Config) -> list[str]:
    args = ["-h", config.broker_host]
    if config.broker_port is not None:
        args += ["-p", str(config.broker_port)]
    return args


def build_subscribe_command(config: Config) -> list[str]:
    """Build the argv for the long-lived subscriber.

    ``-v`` makes mosquitto_sub print ``<topic> <payload>`` per message.

    Args:
        config: Application configuration

    Returns:
        Argument vector suitable for create_subprocess_exec
    """
    return [
        config.sub_command,
        *_broker_args(config),
        "-t",
        wildcard_topic(config.topic_root),
        "-v",
    ]


def build_publish_command(config: Config, message: str) -> list[str]:
    """Build the argv for a single publish of ``message`` to the root topic.

    The message is passed as its own argument, never through a shell.

    Args:
        config: Application configuration
        message: Payload to publish

    Returns:
        Argument vector suitable for create_subprocess_exec
    """
    return [
        config.pub_command,
        *_broker_args(config),
        "-t",
        config.topic_root,
        "-m",
        message,
    ]


# =============================================================================
# Message handling
# =============================================================================


def is_valid_message(line: str) -> bool:
    """Check if a line is worth routing.

    Empty lines and whitespace-only lines are not valid messages.

    Args:
        line: The line to check

    Returns:
        True if the line is a valid message
    """
    return bool(line.strip())


def parse_event(line: str) -> InboundEvent | None:
    """Split a subscriber line into an event on its first space.

    The payload may itself contain spaces. A line with no space carries no
    payload delimiter and is dropped.

    Args:
        line: One framed line, without its newline

    Returns:
        The parsed InboundEvent, or None if the line has no separator
    """
    if not is_valid_message(line):
        return None
    topic, sep, payload = line.partition(TOPIC_PAYLOAD_SEPARATOR)
    if not sep:
        return None
    return InboundEvent(topic=topic, payload=payload)


def format_move(row: int, col: int) -> str:
    """Format a 1-indexed move command as ``row,col``."""
    return f"{row},{col}"


def parse_move(text: str) -> tuple[int, int] | None:
    """Parse a leading ``row,col`` into integers.

    The comma must follow the row directly; whitespace may precede either
    number. Anything after the column is ignored, so ``1,2x`` is ``(1, 2)``.
    Range is not checked here.

    Returns:
        (row, col) or None if the text does not start with a move
    """
    match = MOVE_PATTERN.match(text)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def is_on_board(row: int, col: int) -> bool:
    """Check that a 1-indexed coordinate lies on the 3x3 board."""
    return 1 <= row <= BOARD_SIZE and 1 <= col <= BOARD_SIZE
