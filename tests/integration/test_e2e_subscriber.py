"""End-to-end tests for the subscriber pipeline with a real child process.

A small Python script stands in for mosquitto_sub, writing verbose-mode
lines to stdout in awkward chunks. Tests the full pipeline:
1. SubscriberSupervisor spawns the child
2. The reader task frames its stdout
3. TopicRouter applies events to the BoardStateManager
"""

from __future__ import annotations

import asyncio
import sys
import textwrap

import pytest

from ttt_bridge.config import Config
from ttt_bridge.models import Mark
from ttt_bridge.router import Announcement, AnnouncementKind, TopicRouter
from ttt_bridge.state import BoardStateManager
from ttt_bridge.subscriber import SubscriberState, SubscriberSupervisor

pytestmark = pytest.mark.asyncio


# =============================================================================
# Fixtures
# =============================================================================


def fake_subscriber(body: str) -> list[str]:
    """argv for a Python child that runs ``body``."""
    script = "import sys, time\nout = sys.stdout.buffer\n" + textwrap.dedent(body)
    return [sys.executable, "-c", script]


async def wait_for_condition(predicate, timeout: float = 5.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.02)
    return predicate()


# =============================================================================
# Tests
# =============================================================================


class TestRealSubprocess:
    """Tests against a real child process."""

    async def test_partial_writes_are_framed(self, config: Config) -> None:
        """Lines written in pieces with pauses arrive whole and in order."""
        state_manager = BoardStateManager()
        router = TopicRouter(state_manager, topic_root="TTT")
        announcements: list[Announcement] = []
        router.on_announcement(announcements.append)

        command = fake_subscriber(
            """
            for piece in [b"TTT/board X", b"OXOXOXO \\nTTT/play", b"er O\\n",
                          b"TTT/moves 2,2\\nTTT/status dr", b"aw\\n"]:
                out.write(piece)
                out.flush()
                time.sleep(0.05)
            time.sleep(30)
            """
        )
        supervisor = SubscriberSupervisor(router, config, command=command)

        assert await supervisor.start() is True
        try:
            assert await wait_for_condition(lambda: len(announcements) == 2)
        finally:
            await supervisor.stop()

        board = state_manager.get_current_state()
        assert board.to_flat() == "XOXOXOXO "
        assert board.current_player is Mark.O
        assert [a.kind for a in announcements] == [
            AnnouncementKind.MOVE,
            AnnouncementKind.DRAW,
        ]
        assert supervisor.state is SubscriberState.STOPPED

    async def test_child_exit_stops_supervisor(self, config: Config) -> None:
        """When the child exits the supervisor notices and stops itself."""
        state_manager = BoardStateManager()
        router = TopicRouter(state_manager, topic_root="TTT")
        command = fake_subscriber(
            """
            out.write(b"TTT/player O\\nTTT/board OOO")
            out.flush()
            """
        )
        supervisor = SubscriberSupervisor(router, config, command=command)

        assert await supervisor.start() is True
        assert await wait_for_condition(lambda: not supervisor.is_running)

        board = state_manager.get_current_state()
        assert board.current_player is Mark.O
        assert board.to_flat() == "OOO      "
        await supervisor.stop()

    async def test_stop_terminates_long_running_child(self, config: Config) -> None:
        """stop() ends a silent child promptly."""
        router = TopicRouter(BoardStateManager(), topic_root="TTT")
        command = fake_subscriber("time.sleep(60)\n")
        supervisor = SubscriberSupervisor(router, config, command=command)

        assert await supervisor.start() is True
        await asyncio.sleep(0.1)
        assert supervisor.is_running

        loop = asyncio.get_running_loop()
        started = loop.time()
        await supervisor.stop()
        assert loop.time() - started < 3.0
        assert supervisor.pid is None
