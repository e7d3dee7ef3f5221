"""Entry point for the TTT bridge client.

Usage:
    python -m ttt_bridge
    ttt-bridge

Environment Variables:
    TTT_BROKER_HOST: MQTT broker address (default: localhost)
    TTT_BROKER_PORT: MQTT broker port (default: mosquitto's own default)
    TTT_TOPIC_ROOT: Root of the game's topic tree (default: TTT)
    TTT_LOG_LEVEL: Logging level (default: WARNING)
    TTT_LOG_FILE: Log to this file instead of stderr

See ttt_bridge.config for the full list.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

from pydantic import ValidationError

from ttt_bridge.config import Config, get_config
from ttt_bridge.console import ConsoleGame
from ttt_bridge.publisher import MosquittoPublisher
from ttt_bridge.router import TopicRouter
from ttt_bridge.state import BoardStateManager
from ttt_bridge.subscriber import SubscriberSupervisor

logger = logging.getLogger(__name__)


def build_game(config: Config) -> ConsoleGame:
    """Wire the state manager, router, subscriber and publisher together.

    Args:
        config: Application configuration

    Returns:
        A ConsoleGame ready to run
    """
    state_manager = BoardStateManager()
    router = TopicRouter(state_manager, topic_root=config.topic_root)
    supervisor = SubscriberSupervisor(router, config)
    publisher = MosquittoPublisher(config)

    game = ConsoleGame(
        config,
        publisher=publisher,
        state_manager=state_manager,
        supervisor=supervisor,
    )
    router.on_announcement(game.on_announcement)
    return game


def _install_signal_handlers(task: asyncio.Task[int]) -> None:
    """Cancel the game task on SIGINT/SIGTERM so its cleanup runs."""
    loop = asyncio.get_running_loop()

    def _on_signal(signum: int) -> None:
        print(f"\nReceived signal {signum}. Exiting...")
        task.cancel()

    for signum in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signum, _on_signal, signum)


async def run_client(config: Config) -> int:
    """Run the interactive client until the user quits.

    Args:
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    game = build_game(config)
    task = asyncio.current_task()
    if task is not None:
        _install_signal_handlers(task)

    try:
        return await game.run()
    except asyncio.CancelledError:
        logger.info("Client cancelled")
        return 0


def main() -> int:
    """Main entry point."""
    try:
        config = get_config()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    config.setup_logging()
    logger.debug("Configuration: %s", config.to_dict())

    try:
        return asyncio.run(run_client(config))
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.error(f"Client error: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
