#!/usr/bin/env python3
"""Main entry point for the Discord Loop Player."""

from __future__ import annotations

import json
import logging
import logging.config
import sys
from pathlib import Path

import discord
from pydantic import ValidationError

from discord_loop_player.domain.shared.exceptions import ConfigurationError
from discord_loop_player.domain.shared.messages import ErrorMessages, LogTemplates

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"


def setup_logging(log_level: str = "INFO") -> None:
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.warning(
            "Could not load %s, falling back to basic config", _LOGGING_CONFIG_PATH
        )

    logging.getLogger().setLevel(resolved_level)


def main() -> int:
    from discord_loop_player.config.settings import get_settings

    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logging.getLogger(__name__).error(ErrorMessages.INVALID_CONFIG, e)
        return 1

    setup_logging(settings.effective_log_level)

    logger = logging.getLogger(__name__)

    try:
        settings.ensure_required()
    except ConfigurationError as e:
        logger.error(e.message)
        return 1

    if not settings.audio_file.is_file():
        logger.error(ErrorMessages.AUDIO_FILE_NOT_FOUND, settings.audio_file.resolve())
        return 1

    logger.info(LogTemplates.BOT_STARTING.format(environment=settings.environment))

    from discord_loop_player.config.container import create_container
    from discord_loop_player.infrastructure.discord.bot import create_bot

    container = create_container(settings)
    bot = create_bot(container, settings)

    try:
        logger.info(LogTemplates.BOT_STARTING_RUN)
        bot.run_with_graceful_shutdown(settings.token.get_secret_value())
        logger.info(LogTemplates.BOT_STOPPED)
        return 0
    except discord.LoginFailure as e:
        logger.error(ErrorMessages.DISCORD_LOGIN_FAILED, e)
        return 1
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
        return 0
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
