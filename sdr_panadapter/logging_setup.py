"""Logging configuration for the panadapter.

Modules log through ``logging.getLogger(__name__)``; entry points call
``configure_logging`` once to attach a console handler to the package logger.
The level comes from the argument, then ``PANADAPTER_LOG_LEVEL``, then INFO.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from typing import Optional


_root_logger_name = "sdr_panadapter"


class ConsoleFormatter(logging.Formatter):
    """Human-readable console format with optional color."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        level = record.levelname
        if self.use_color:
            level_str = f"{self.LEVEL_COLORS.get(level, '')}{level:8}{self.RESET}"
        else:
            level_str = f"{level:8}"
        name = record.name.replace(f"{_root_logger_name}.", "")
        base = f"[{ts}] {level_str} [{name}] {record.getMessage()}"
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(level: Optional[str] = None, use_color: bool = True) -> logging.Logger:
    """Attach a console handler to the package logger; safe to call repeatedly."""

    if level is None:
        level = os.environ.get("PANADAPTER_LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)

    logger = logging.getLogger(_root_logger_name)
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ConsoleFormatter(use_color=use_color))
    logger.addHandler(console_handler)
    logger.propagate = False
    return logger
