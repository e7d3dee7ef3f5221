"""Subscriber process supervisor.

Runs mosquitto_sub as a long-lived child process, drains its stdout in a
background task and feeds every framed ``topic payload`` line to the
TopicRouter.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ttt_bridge.config import Config
from ttt_bridge.framing import LineFramer
from ttt_bridge.protocol import READ_CHUNK_SIZE, build_subscribe_command, parse_event
from ttt_bridge.router import TopicRouter

logger = logging.getLogger(__name__)


class SubscriberState(enum.Enum):
    """Lifecycle of the subscriber process."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


@dataclass(eq=False)
class SubscriberSession:
    """Everything that lives and dies with one subscriber process.

    The supervisor swaps whole sessions in and out, so the running flag and
    the process/pipe handles can never be observed half-updated.
    """

    process: asyncio.subprocess.Process
    stdout: asyncio.StreamReader
    framer: LineFramer
    reader_task: asyncio.Task[None] | None = field(default=None)

    @property
    def pid(self) -> int:
        return self.process.pid


class SubscriberSupervisor:
    """Owns the subscriber subprocess and the task that reads it.

    start() and stop() are idempotent and serialised by a lock, so they can
    be called from the game loop, a signal handler and shutdown code alike.

    Attributes:
        config: Application configuration
        command: argv used to launch the subscriber
    """

    def __init__(
        self,
        router: TopicRouter,
        config: Config,
        command: Sequence[str] | None = None,
    ) -> None:
        """Initialize the supervisor.

        Args:
            router: Router that receives every parsed event
            config: Application configuration
            command: Override for the subscriber argv (defaults to mosquitto_sub)
        """
        self._router = router
        self.config = config
        self.command: list[str] = (
            list(command) if command is not None else build_subscribe_command(config)
        )
        self._session: SubscriberSession | None = None
        self._starting = False
        self._lifecycle_lock = asyncio.Lock()
        self._lines_processed = 0

    @property
    def state(self) -> SubscriberState:
        """Current lifecycle state."""
        if self._session is not None:
            return SubscriberState.RUNNING
        if self._starting:
            return SubscriberState.STARTING
        return SubscriberState.STOPPED

    @property
    def is_running(self) -> bool:
        """Check if the subscriber is running."""
        return self._session is not None

    @property
    def pid(self) -> int | None:
        """PID of the running subscriber, if any."""
        session = self._session
        return session.pid if session is not None else None

    @property
    def lines_processed(self) -> int:
        """Number of framed lines handed to the router."""
        return self._lines_processed

    async def start(self) -> bool:
        """Start the subscriber process and its reader task.

        Returns:
            True if the subscriber is running afterwards, False if it could
            not be spawned
        """
        async with self._lifecycle_lock:
            if self._session is not None:
                return True

            self._starting = True
            try:
                process = await asyncio.create_subprocess_exec(
                    *self.command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.DEVNULL,
                )
            except OSError as e:
                logger.error(
                    "Failed to start subscriber %r: %s", self.command[0], e
                )
                return False
            finally:
                self._starting = False

            if process.stdout is None:
                logger.error("Subscriber started without a stdout pipe")
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
                return False

            session = SubscriberSession(
                process=process,
                stdout=process.stdout,
                framer=LineFramer(self.config.line_limit),
            )
            self._session = session
            session.reader_task = asyncio.create_task(self._read_loop(session))

        logger.info(
            "Subscriber started (pid %d): %s", process.pid, " ".join(self.command)
        )
        return True

    async def stop(self) -> None:
        """Stop the subscriber process. Safe to call when already stopped."""
        async with self._lifecycle_lock:
            session = self._session
            if session is None:
                return
            # Clearing the session is what tells the reader loop to exit
            self._session = None

        await self._teardown(session)
        logger.info("Subscriber stopped")

    async def _teardown(self, session: SubscriberSession) -> None:
        """Terminate and reap a session's process and wait for its reader."""
        process = session.process
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()

        task = session.reader_task
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task

        try:
            await asyncio.wait_for(process.wait(), timeout=self.config.terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Subscriber (pid %d) ignored SIGTERM, killing", process.pid
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()

    async def _release(self, session: SubscriberSession) -> None:
        """Drop a session whose stream ended on its own."""
        async with self._lifecycle_lock:
            if self._session is not session:
                # stop() already took it
                return
            self._session = None
        await self._teardown(session)

    async def _read_loop(self, session: SubscriberSession) -> None:
        """Drain subscriber stdout until stopped or end of stream."""
        eof = False
        try:
            while self._session is session:
                # Read with a timeout to check the running flag periodically
                try:
                    data = await asyncio.wait_for(
                        session.stdout.read(READ_CHUNK_SIZE),
                        timeout=self.config.poll_interval,
                    )
                except asyncio.TimeoutError:
                    continue

                if not data:
                    logger.info("Subscriber stream closed (pid %d)", session.pid)
                    eof = True
                    break

                for line in session.framer.feed(data):
                    if self._session is not session:
                        # Stopped mid-chunk; nothing more reaches the board
                        break
                    self._process_line(line)

        except asyncio.CancelledError:
            logger.info("Subscriber read loop cancelled")
            raise
        except OSError as e:
            logger.info("Subscriber stream error: %s", e)
            eof = True

        if eof:
            # Only a natural end of stream flushes the tail. After stop() the
            # pipe closes too, but a half-written line must not be applied.
            if self._session is session:
                trailing = session.framer.flush()
                if trailing is not None:
                    self._process_line(trailing)
            await self._release(session)

    def _process_line(self, line: str) -> None:
        """Route a single framed line.

        Args:
            line: A complete line without its newline
        """
        event = parse_event(line)
        if event is None:
            logger.debug("Dropping line without topic separator: %r", line)
            return

        self._lines_processed += 1
        try:
            self._router.dispatch(event)
        except Exception as e:
            # Keep draining; one bad message must not stop the mirror
            logger.error(
                "Error routing message on %s: %s", event.topic, e, exc_info=True
            )
