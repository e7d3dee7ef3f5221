"""Tests for the entry point wiring."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ttt_bridge import __main__ as entry
from ttt_bridge.config import Config, reset_config
from ttt_bridge.console import ConsoleGame
from ttt_bridge.models import InboundEvent


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestBuildGame:
    """Tests for component wiring."""

    def test_returns_console_game(self, config: Config) -> None:
        game = entry.build_game(config)
        assert isinstance(game, ConsoleGame)

    def test_announcements_reach_game(self, config: Config) -> None:
        """Status messages routed by the subscriber reach the game."""
        with patch.object(ConsoleGame, "on_announcement") as on_announcement:
            game = entry.build_game(config)
            supervisor = game._supervisor
            assert supervisor is not None
            supervisor._router.dispatch(
                InboundEvent(topic="TTT/status", payload="draw")
            )

        on_announcement.assert_called_once()


class TestRunClient:
    """Tests for run_client()."""

    async def test_cancel_returns_zero(self, config: Config) -> None:
        game = MagicMock()
        game.run = AsyncMock(side_effect=asyncio.CancelledError)
        with patch.object(entry, "build_game", return_value=game), patch.object(
            entry, "_install_signal_handlers"
        ):
            assert await entry.run_client(config) == 0

    async def test_returns_game_exit_code(self, config: Config) -> None:
        game = MagicMock()
        game.run = AsyncMock(return_value=0)
        with patch.object(entry, "build_game", return_value=game), patch.object(
            entry, "_install_signal_handlers"
        ) as install:
            assert await entry.run_client(config) == 0
        install.assert_called_once()


class TestMain:
    """Tests for main()."""

    def test_invalid_config_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TTT_BROKER_PORT", "not-a-port")
        assert entry.main() == 2

    def test_unexpected_error_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TTT_LOG_LEVEL", "CRITICAL")
        with patch.object(entry, "run_client", side_effect=RuntimeError("boom")):
            assert entry.main() == 1
