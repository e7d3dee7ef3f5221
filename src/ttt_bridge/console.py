"""Interactive console game loop.

Reads commands from the user, publishes moves and resets, runs autoplay, and
redraws the board whenever the subscriber delivers a new state.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import sys
import threading
from typing import Protocol, TextIO

from ttt_bridge.autoplay import MoveGenerator
from ttt_bridge.config import Config
from ttt_bridge.models import BoardState
from ttt_bridge.protocol import RESET_COMMAND, format_move, is_on_board, parse_move
from ttt_bridge.publisher import Publisher
from ttt_bridge.router import Announcement
from ttt_bridge.state import BoardStateManager
from ttt_bridge.subscriber import SubscriberSupervisor
from ttt_bridge.terminal import (
    INVALID_INPUT_TEXT,
    INVALID_MOVE_TEXT,
    render_announcement,
    render_board,
)

logger = logging.getLogger(__name__)

PROMPT = "> "


class LineSource(Protocol):
    """Protocol for console input sources."""

    def has_pending(self) -> bool:
        """Check if a line (or EOF) is ready without blocking."""
        ...

    async def readline(self) -> str | None:
        """Read one line without its newline, or None at end of input."""
        ...


class ThreadedConsoleReader:
    """Async console reader backed by a daemon thread.

    Blocking reads from the console happen on a background thread and lines
    are handed to the event loop through an asyncio queue, so the subscriber
    reader task keeps running while the user thinks.
    """

    def __init__(self, stdin: TextIO | None = None) -> None:
        """Initialize the threaded console reader.

        Args:
            stdin: Text stream to read (defaults to sys.stdin)
        """
        self._stdin = stdin if stdin is not None else sys.stdin
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _reader_thread(self) -> None:
        """Background thread that reads lines and puts them in the queue."""
        try:
            while True:
                line = self._stdin.readline()
                if not line:
                    logger.info("ThreadedConsoleReader: input EOF received")
                    break
                if self._loop is not None:
                    self._loop.call_soon_threadsafe(
                        self._queue.put_nowait, line.rstrip("\r\n")
                    )
        except Exception as e:
            logger.error(
                "ThreadedConsoleReader crashed: %s: %s",
                type(e).__name__,
                e,
                exc_info=True,
            )
        finally:
            # Signal EOF with None
            if self._loop is not None:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, None)

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start the background reader thread.

        Args:
            loop: The asyncio event loop to use for queue operations
        """
        self._loop = loop
        self._thread = threading.Thread(target=self._reader_thread, daemon=True)
        self._thread.start()

    def has_pending(self) -> bool:
        """Check if a line (or EOF) is ready without blocking."""
        return not self._queue.empty()

    async def readline(self) -> str | None:
        """Read a line asynchronously.

        Returns:
            The next line without its newline, or None on EOF.
        """
        return await self._queue.get()


class CommandKind(enum.Enum):
    """Parsed console commands."""

    QUIT = "quit"
    RESET = "reset"
    AUTOPLAY = "autoplay"
    MOVE = "move"
    INVALID_MOVE = "invalid_move"
    INVALID = "invalid"


def parse_command(line: str | None) -> tuple[CommandKind, tuple[int, int] | None]:
    """Classify a raw console line.

    Only the first character matters for q/r/a.

    Args:
        line: Raw input line, or None at end of input

    Returns:
        (kind, (row, col) for moves else None)
    """
    if line is None:
        return CommandKind.QUIT, None

    text = line.strip()
    first = text[:1].lower()
    if first == "q":
        return CommandKind.QUIT, None
    if first == "r":
        return CommandKind.RESET, None
    if first == "a":
        return CommandKind.AUTOPLAY, None

    move = parse_move(text)
    if move is None:
        return CommandKind.INVALID, None
    if not is_on_board(*move):
        return CommandKind.INVALID_MOVE, move
    return CommandKind.MOVE, move


class ConsoleGame:
    """Foreground game loop around the bridge core.

    Attributes:
        config: Application configuration
        autoplay_enabled: Whether moves are currently generated automatically
    """

    def __init__(
        self,
        config: Config,
        publisher: Publisher,
        state_manager: BoardStateManager,
        supervisor: SubscriberSupervisor | None = None,
        reader: LineSource | None = None,
        out: TextIO | None = None,
        generator: MoveGenerator | None = None,
    ) -> None:
        """Initialize the game loop.

        Args:
            config: Application configuration
            publisher: Publisher for moves and resets
            state_manager: Board mirrored from the broker
            supervisor: Subscriber to start/stop around the loop (optional)
            reader: Console input (defaults to a ThreadedConsoleReader on stdin)
            out: Output stream (defaults to sys.stdout)
            generator: Autoplay move source
        """
        self.config = config
        self._publisher = publisher
        self._state_manager = state_manager
        self._supervisor = supervisor
        self._reader = reader
        self._out = out if out is not None else sys.stdout
        self._generator = generator if generator is not None else MoveGenerator()
        self.autoplay_enabled = False
        self._awaiting_input = False

        state_manager.on_state_change(self._on_board_change)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()

    def _println(self, text: str = "") -> None:
        self._write(text + "\n")

    def display_board(self, board: BoardState | None = None) -> None:
        """Clear the screen and draw the board."""
        if board is None:
            board = self._state_manager.get_current_state()
        self._write(render_board(board, color=self.config.color, clear=True))
        self._println()

    def _on_board_change(self, board: BoardState) -> None:
        self.display_board(board)
        if self._awaiting_input:
            self._write(PROMPT)

    def on_announcement(self, announcement: Announcement) -> None:
        """Print a status or move notice from the broker."""
        self._println(render_announcement(announcement, color=self.config.color))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send(self, message: str) -> bool:
        """Publish a message, reporting failure without stopping the loop."""
        self._println(f"Sending: {message}")
        ok = await self._publisher.publish(message)
        if not ok:
            self._println(f"Failed to send: {message}")
        return ok

    async def reset_game(self) -> bool:
        """Ask the game server to reset the board."""
        ok = await self.send(RESET_COMMAND)
        self._println("Game reset command sent")
        await asyncio.sleep(self.config.reset_delay)
        return ok

    def toggle_autoplay(self) -> bool:
        """Flip autoplay; enabling it reseeds and reshuffles the move pool.

        Returns:
            The new autoplay state
        """
        self.autoplay_enabled = not self.autoplay_enabled
        if self.autoplay_enabled:
            self._generator.activate()
            self._println("Autoplay enabled")
        else:
            self._println("Autoplay disabled")
        return self.autoplay_enabled

    async def autoplay_tick(self) -> str:
        """Send one random move.

        Returns:
            The move that was sent
        """
        before = self._generator.regenerations
        move = self._generator.next_move()
        if self._generator.regenerations != before:
            self._println("All positions played. Restarting board...")
        await self.send(move)
        self._println(f"Random move sent: {move}")
        await asyncio.sleep(self.config.autoplay_move_delay)
        return move

    async def handle_command(self, line: str | None) -> bool:
        """Execute one console command.

        Args:
            line: Raw input line, or None at end of input

        Returns:
            False when the loop should exit, True otherwise
        """
        kind, move = parse_command(line)

        if kind is CommandKind.QUIT:
            return False
        if kind is CommandKind.RESET:
            await self.reset_game()
        elif kind is CommandKind.AUTOPLAY:
            self.toggle_autoplay()
        elif kind is CommandKind.MOVE and move is not None:
            await self.send(format_move(*move))
        elif kind is CommandKind.INVALID_MOVE:
            self._println(INVALID_MOVE_TEXT)
            await asyncio.sleep(self.config.invalid_input_delay)
        else:
            self._println(INVALID_INPUT_TEXT)
            await asyncio.sleep(self.config.invalid_input_delay)
        return True

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def _read_command(self, reader: LineSource) -> str | None:
        self._write(PROMPT)
        self._awaiting_input = True
        try:
            return await reader.readline()
        finally:
            self._awaiting_input = False

    async def loop(self, reader: LineSource) -> None:
        """Run until the user quits or input ends."""
        while True:
            self.display_board()

            if self.autoplay_enabled:
                # Commands typed during autoplay still get through
                if reader.has_pending():
                    if not await self.handle_command(await reader.readline()):
                        return
                    continue
                await self.autoplay_tick()
                await asyncio.sleep(self.config.autoplay_delay)
                continue

            line = await self._read_command(reader)
            if not await self.handle_command(line):
                return

    async def run(self) -> int:
        """Start the listener, run the loop, and always clean up.

        Returns:
            Exit code (0 for a normal quit)
        """
        reader = self._reader
        if reader is None:
            threaded = ThreadedConsoleReader()
            threaded.start(asyncio.get_running_loop())
            reader = threaded

        try:
            if self._supervisor is not None:
                if await self._supervisor.start():
                    self._println("MQTT subscriber started")
                else:
                    self._println(
                        "Could not start MQTT subscriber; board updates will not appear"
                    )
            await self.loop(reader)
            return 0
        finally:
            if self._supervisor is not None and self._supervisor.is_running:
                await self._supervisor.stop()
                self._println("MQTT listener stopped")
            self._println("Thanks for playing!")
