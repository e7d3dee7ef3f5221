"""Tests for configuration system.

Tests the configuration module's ability to:
- Load settings from TTT_ environment variables
- Use sensible defaults when not configured
- Validate and normalise configuration values
"""

from __future__ import annotations

import logging
import os
from typing import Generator

import pytest
from pydantic import ValidationError

from ttt_bridge.config import Config, get_config, reset_config, set_config


# ==============================================================================
# Test Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Clear TTT_ variables around each test and reset the singleton."""
    original_env = {
        key: value for key, value in os.environ.items() if key.startswith("TTT_")
    }
    for key in original_env:
        del os.environ[key]
    reset_config()

    yield

    for key in [key for key in os.environ if key.startswith("TTT_")]:
        del os.environ[key]
    os.environ.update(original_env)
    reset_config()


# ==============================================================================
# Happy Path Tests
# ==============================================================================


class TestConfigHappyPath:
    """Tests for normal configuration operation."""

    def test_default_values(self) -> None:
        """Defaults work when no config is set."""
        config = Config(_env_file=None)

        assert config.broker_host == "localhost"
        assert config.broker_port is None
        assert config.topic_root == "TTT"
        assert config.sub_command == "mosquitto_sub"
        assert config.pub_command == "mosquitto_pub"
        assert config.publish_timeout == 1.0
        assert config.settle_delay == 0.1
        assert config.poll_interval == 0.1
        assert config.max_line_length == 65536
        assert config.log_level == "WARNING"
        assert config.log_file is None
        assert config.color is True

    def test_env_overrides(self) -> None:
        """TTT_ environment variables override defaults."""
        os.environ["TTT_BROKER_HOST"] = "mqtt.example"
        os.environ["TTT_BROKER_PORT"] = "1884"
        os.environ["TTT_TOPIC_ROOT"] = "game1"
        os.environ["TTT_PUBLISH_TIMEOUT"] = "2.5"
        os.environ["TTT_COLOR"] = "false"

        config = Config(_env_file=None)

        assert config.broker_host == "mqtt.example"
        assert config.broker_port == 1884
        assert config.topic_root == "game1"
        assert config.publish_timeout == 2.5
        assert config.color is False

    def test_explicit_args_win(self) -> None:
        """Constructor arguments take precedence over the environment."""
        os.environ["TTT_TOPIC_ROOT"] = "from-env"
        config = Config(_env_file=None, topic_root="from-arg")
        assert config.topic_root == "from-arg"

    def test_to_dict(self) -> None:
        config = Config(_env_file=None)
        data = config.to_dict()
        assert data["topic_root"] == "TTT"
        assert "publish_timeout" in data


# ==============================================================================
# Validation Tests
# ==============================================================================


class TestConfigValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("TTT/", "TTT"), ("  game/1//", "game/1"), ("home/ttt", "home/ttt")],
    )
    def test_topic_root_normalised(self, raw: str, expected: str) -> None:
        """Whitespace and trailing slashes are stripped."""
        assert Config(_env_file=None, topic_root=raw).topic_root == expected

    @pytest.mark.parametrize("raw", ["", "/", "TTT/#", "a/+/b"])
    def test_topic_root_rejected(self, raw: str) -> None:
        """Empty roots and wildcards are invalid."""
        with pytest.raises(ValidationError):
            Config(_env_file=None, topic_root=raw)

    def test_log_level_case_insensitive(self) -> None:
        assert Config(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Config(_env_file=None, log_level="LOUD")

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, port: int) -> None:
        with pytest.raises(ValidationError):
            Config(_env_file=None, broker_port=port)

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Config(_env_file=None, publish_timeout=0)

    def test_invalid_env_value(self) -> None:
        """A malformed environment value fails loudly."""
        os.environ["TTT_BROKER_PORT"] = "not-a-port"
        with pytest.raises(ValidationError):
            Config(_env_file=None)

    def test_line_limit(self) -> None:
        """max_line_length of 0 means unbounded."""
        assert Config(_env_file=None, max_line_length=128).line_limit == 128
        assert Config(_env_file=None, max_line_length=0).line_limit is None


# ==============================================================================
# Singleton Tests
# ==============================================================================


class TestConfigSingleton:
    """Tests for get_config/set_config/reset_config."""

    def test_get_config_cached(self) -> None:
        assert get_config() is get_config()

    def test_set_config(self) -> None:
        custom = Config(_env_file=None, topic_root="custom")
        set_config(custom)
        assert get_config() is custom

    def test_reset_reloads_environment(self) -> None:
        first = get_config()
        os.environ["TTT_TOPIC_ROOT"] = "reloaded"
        reset_config()
        second = get_config()
        assert second is not first
        assert second.topic_root == "reloaded"


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_log_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        """log_file routes basicConfig to a file handler."""
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)
        log_path = tmp_path / "bridge.log"

        Config(_env_file=None, log_file=str(log_path), log_level="INFO").setup_logging()
        try:
            logging.getLogger("ttt_bridge.test").info("hello file")
            for handler in root.handlers:
                handler.flush()
            assert "hello file" in log_path.read_text()
        finally:
            for handler in root.handlers:
                handler.close()
