"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add the src directory to the Python path so tests run without installing
_repo_root = Path(__file__).parent.parent
_src = _repo_root / "src"

if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from ttt_bridge.config import Config  # noqa: E402
from ttt_bridge.router import TopicRouter  # noqa: E402
from ttt_bridge.state import BoardStateManager  # noqa: E402


@pytest.fixture
def config() -> Config:
    """Config with short timings and no .env lookup."""
    return Config(
        _env_file=None,
        broker_host="broker.test",
        topic_root="TTT",
        publish_timeout=0.5,
        settle_delay=0.0,
        poll_interval=0.02,
        terminate_timeout=0.5,
        reset_delay=0.0,
        autoplay_delay=0.0,
        autoplay_move_delay=0.0,
        invalid_input_delay=0.0,
        color=False,
    )


@pytest.fixture
def state_manager() -> BoardStateManager:
    """Create a fresh BoardStateManager for each test."""
    return BoardStateManager()


@pytest.fixture
def router(state_manager: BoardStateManager) -> TopicRouter:
    """Router bound to the shared test state manager under TTT/."""
    return TopicRouter(state_manager, topic_root="TTT")


def make_fake_process(stdout: asyncio.StreamReader, pid: int = 4242) -> MagicMock:
    """Build a stand-in for asyncio.subprocess.Process.

    terminate() closes the fake stdout the way a dying process closes its pipe.
    """
    process = MagicMock()
    process.pid = pid
    process.stdout = stdout
    process.returncode = None
    process.terminate = MagicMock(side_effect=stdout.feed_eof)
    process.kill = MagicMock(side_effect=stdout.feed_eof)
    process.wait = AsyncMock(return_value=0)
    return process


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01
) -> bool:
    """Poll a condition from async test code.

    Returns:
        True if the predicate became true before the timeout
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()
