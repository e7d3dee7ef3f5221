"""Outbound publishing via short-lived mosquitto_pub processes.

Every message is one subprocess. The caller waits a bounded time for it to
finish, then always carries on; failures come back as False, never as an
exception.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from ttt_bridge.config import Config
from ttt_bridge.protocol import build_publish_command

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Protocol for anything that can publish a game command.

    MosquittoPublisher is the real implementation; tests substitute fakes.
    """

    async def publish(self, message: str) -> bool:
        """Publish a message to the topic root.

        Args:
            message: Payload to send

        Returns:
            True if the message was published, False otherwise
        """
        ...


class MosquittoPublisher:
    """Publishes each message with a fresh mosquitto_pub invocation.

    Attributes:
        config: Application configuration
        invocations: Number of publish subprocesses spawned so far
    """

    def __init__(self, config: Config) -> None:
        """Initialize the publisher.

        Args:
            config: Application configuration (command, broker, timeouts)
        """
        self.config = config
        self.invocations = 0

    async def publish(self, message: str) -> bool:
        """Publish ``message`` to the configured topic root.

        Waits up to publish_timeout for the process to exit, then sleeps
        settle_delay so the broker round-trip can land before the caller acts
        again. A process that outlives the timeout is left to finish alone.

        Args:
            message: Payload to send

        Returns:
            True if mosquitto_pub exited with status 0 in time
        """
        args = build_publish_command(self.config, message)
        logger.debug("Publishing %r: %s", message, args)

        try:
            ok = await self._run(args)
        finally:
            # Give the broker time to echo state back before the next action
            await asyncio.sleep(self.config.settle_delay)
        return ok

    async def _run(self, args: list[str]) -> bool:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error("Failed to start publisher %r: %s", args[0], e)
            return False

        self.invocations += 1

        try:
            returncode = await asyncio.wait_for(
                process.wait(), timeout=self.config.publish_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Publisher (pid %d) still running after %.1fs, not waiting further",
                process.pid,
                self.config.publish_timeout,
            )
            return False

        if returncode != 0:
            logger.warning("Publisher exited with status %d", returncode)
            return False
        return True
