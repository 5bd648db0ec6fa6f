"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.exceptions import ConfigurationError
from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    ChannelCount,
    NonEmptyStr,
    PortNumber,
    PositiveSeconds,
    SampleRate,
)
from ..domain.shared.validators import validate_discord_snowflake
from ..domain.voice.state import NoSubscriberBehavior


class VoiceSettings(BaseModel):
    """Voice session configuration.

    ``self_deaf``/``self_mute`` apply to the initial join and to every rejoin.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    self_deaf: bool = False
    self_mute: bool = False
    connect_timeout: PositiveSeconds = 30.0
    signalling_timeout: PositiveSeconds = Field(
        default=5.0,
        validation_alias=AliasChoices("signalling_timeout", "signaling_timeout"),
    )
    connecting_timeout: PositiveSeconds = 5.0
    watchdog_interval: PositiveSeconds = 1.0


class PlaybackSettings(BaseModel):
    """Playback loop and decoder configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    restart_delay: PositiveSeconds = 0.2
    error_backoff: PositiveSeconds = 2.0
    ffmpeg_path: NonEmptyStr = Field(
        default="ffmpeg", validation_alias=AliasChoices("ffmpeg_path", "ffmpeg")
    )
    sample_rate: SampleRate = 48000
    channels: ChannelCount = 2
    no_subscriber: NoSubscriberBehavior = NoSubscriberBehavior.PLAY


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - DISCORD_BOT_TOKEN (or DISCORD_TOKEN), VOICE_CHANNEL_ID (required)
    - AUDIO_FILE, PORT, DEBUG, LOG_LEVEL, ENVIRONMENT (top-level)
    - VOICE__SELF_DEAF, VOICE__SIGNALLING_TIMEOUT, etc. (nested)
    - PLAYBACK__RESTART_DELAY, PLAYBACK__FFMPEG_PATH, etc. (nested)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("discord_bot_token", "discord_token", "token"),
    )
    voice_channel_id: int | None = Field(
        default=None, validation_alias=AliasChoices("voice_channel_id", "channel_id")
    )
    audio_file: Path = Field(
        default=Path("doubletake.mp4"), validation_alias=AliasChoices("audio_file", "audio_path")
    )
    port: PortNumber = Field(default=3000, validation_alias=AliasChoices("port", "uptime_port"))
    shutdown_grace_seconds: PositiveSeconds = 1.0

    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels)
            )
        return v_upper

    @field_validator("voice_channel_id", mode="before")
    @classmethod
    def validate_channel_id(cls, v: int | str | None) -> int | None:
        """Treat an empty value as absent and validate the snowflake range."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return validate_discord_snowflake(int(v))

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def missing_required(self) -> list[str]:
        """Names of required environment variables that are not set."""
        missing: list[str] = []
        if not self.token.get_secret_value():
            missing.append("DISCORD_BOT_TOKEN")
        if self.voice_channel_id is None:
            missing.append("VOICE_CHANNEL_ID")
        return missing

    def ensure_required(self) -> None:
        """Raise ConfigurationError if a required value is absent."""
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                missing, ErrorMessages.MISSING_REQUIRED_CONFIG % ", ".join(missing)
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
