"""Configuration management for the TTT bridge client.

This module provides centralized configuration with support for:
- Environment variables (primary)
- Sensible defaults for all settings
- Type validation via Pydantic
- Easy testing through config overrides

Environment Variables:
    TTT_BROKER_HOST: MQTT broker address passed to -h (default: localhost)
    TTT_BROKER_PORT: MQTT broker port passed to -p (default: unset)
    TTT_TOPIC_ROOT: Root of the topic tree (default: TTT)
    TTT_SUB_COMMAND: Subscriber executable (default: mosquitto_sub)
    TTT_PUB_COMMAND: Publisher executable (default: mosquitto_pub)
    TTT_PUBLISH_TIMEOUT: Seconds to wait for a publish to exit (default: 1.0)
    TTT_SETTLE_DELAY: Seconds to pause after each publish (default: 0.1)
    TTT_POLL_INTERVAL: Reader poll interval in seconds (default: 0.1)
    TTT_MAX_LINE_LENGTH: Max buffered bytes per line, 0 = unbounded (default: 65536)
    TTT_LOG_LEVEL: Logging level (default: WARNING)
    TTT_LOG_FILE: Write logs to this file instead of stderr (default: unset)

Usage:
    from ttt_bridge.config import get_config, Config

    config = get_config()
    root = config.topic_root

    # For testing, create a custom config
    test_config = Config(topic_root="TEST", publish_timeout=0.2)
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration with environment variable support.

    All settings can be overridden via environment variables prefixed with TTT_.
    For example, TTT_TOPIC_ROOT=game1 moves the whole topic tree under game1/.

    Attributes:
        broker_host: Broker address handed to both mosquitto tools
        broker_port: Optional broker port; omitted from the command line when None
        topic_root: Root topic; the client subscribes to <root>/# and publishes to <root>
        sub_command: Executable used for the long-lived subscriber
        pub_command: Executable used for each publish
        publish_timeout: Seconds to wait for a publish subprocess to exit
        settle_delay: Seconds to pause after each publish for the broker round-trip
        poll_interval: Seconds the reader task waits for data before rechecking
        terminate_timeout: Seconds to wait for the subscriber after SIGTERM
        max_line_length: Max bytes buffered for one line (0 disables the cap)
        reset_delay: Pause after sending a reset command
        autoplay_delay: Pause between autoplay iterations
        autoplay_move_delay: Extra pause after each autoplay move
        invalid_input_delay: Pause after rejecting a command
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        color: Emit ANSI colors in terminal output
    """

    model_config = SettingsConfigDict(
        env_prefix="TTT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Broker configuration
    broker_host: str = Field(
        default="localhost",
        description="MQTT broker address passed to mosquitto_sub/mosquitto_pub",
    )
    broker_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="MQTT broker port (omitted from the command line when unset)",
    )
    topic_root: str = Field(
        default="TTT",
        min_length=1,
        description="Root of the game's topic tree",
    )

    # Transport executables
    sub_command: str = Field(
        default="mosquitto_sub",
        description="Subscriber executable",
    )
    pub_command: str = Field(
        default="mosquitto_pub",
        description="Publisher executable",
    )

    # Timing
    publish_timeout: float = Field(
        default=1.0,
        gt=0,
        description="Seconds to wait for a publish subprocess to complete",
    )
    settle_delay: float = Field(
        default=0.1,
        ge=0,
        description="Seconds to pause after a publish before returning",
    )
    poll_interval: float = Field(
        default=0.1,
        gt=0,
        description="Seconds the reader waits for subscriber output per iteration",
    )
    terminate_timeout: float = Field(
        default=1.0,
        gt=0,
        description="Seconds to wait for the subscriber to exit after SIGTERM",
    )
    reset_delay: float = Field(default=0.5, ge=0)
    autoplay_delay: float = Field(default=0.5, ge=0)
    autoplay_move_delay: float = Field(default=1.0, ge=0)
    invalid_input_delay: float = Field(default=1.0, ge=0)

    # Framing
    max_line_length: int = Field(
        default=64 * 1024,
        ge=0,
        description="Maximum buffered bytes for a single line (0 = unbounded)",
    )

    # Logging / output
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Write logs to this file instead of stderr",
    )
    color: bool = Field(default=True, description="Use ANSI colors")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("topic_root")
    @classmethod
    def strip_topic_root(cls, v: str) -> str:
        """Drop trailing slashes so <root>/board is built consistently."""
        stripped = v.strip().rstrip("/")
        if not stripped:
            raise ValueError("topic_root must not be empty")
        if "#" in stripped or "+" in stripped:
            raise ValueError("topic_root must not contain MQTT wildcards")
        return stripped

    @property
    def line_limit(self) -> int | None:
        """The framer's line cap, with 0 mapped to unbounded."""
        return self.max_line_length or None

    def setup_logging(self) -> None:
        """Configure logging based on config settings.

        Logs go to stderr unless log_file is set; stdout belongs to the board.
        """
        kwargs: dict[str, Any] = {}
        if self.log_file:
            kwargs["filename"] = self.log_file
        logging.basicConfig(
            level=getattr(logging, self.log_level, logging.WARNING),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for logging/debugging.

        Returns:
            Dictionary of all config values
        """
        return self.model_dump()


# Module-level singleton instance
_config_instance: Config | None = None


def get_config() -> Config:
    """Get the singleton configuration instance.

    Creates the config on first call, caching it for subsequent calls.
    The config is loaded from environment variables and optional .env file.

    Returns:
        The Config singleton instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def set_config(config: Config) -> None:
    """Set the configuration instance (primarily for testing).

    Args:
        config: Config instance to use as the singleton
    """
    global _config_instance
    _config_instance = config


def reset_config() -> None:
    """Reset the configuration singleton.

    Forces the next get_config() call to reload from environment.
    """
    global _config_instance
    _config_instance = None
