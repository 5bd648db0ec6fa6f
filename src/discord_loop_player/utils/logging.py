"""Colored logging formatter for console output."""

from __future__ import annotations

import logging
import os
import sys


class ColoredFormatter(logging.Formatter):
    """Logging formatter that applies ANSI color codes to the levelname field.

    Records from the ffmpeg stderr relay are dimmed so decoder chatter stands
    apart from the bot's own messages. Colors are disabled when the
    ``NO_COLOR`` environment variable is set or when the output stream is not
    a TTY (e.g. redirected to a file).
    """

    COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",     # cyan
        logging.INFO: "\033[32m",      # green
        logging.WARNING: "\033[33m",   # yellow
        logging.ERROR: "\033[31m",     # red
        logging.CRITICAL: "\033[1;31m",  # bold red
    }
    DIM = "\033[2m"
    RESET = "\033[0m"
    DIMMED_LOGGERS: tuple[str, ...] = ("discord_loop_player.ffmpeg",)

    def _use_color(self) -> bool:
        if os.environ.get("NO_COLOR") is not None:
            return False
        stream = getattr(self, "_stream", None) or sys.stdout
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self._use_color():
            return super().format(record)

        color = self.COLORS.get(record.levelno, "")
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        formatted = super().format(record)
        if record.name in self.DIMMED_LOGGERS:
            return f"{self.DIM}{formatted}{self.RESET}"
        return formatted
