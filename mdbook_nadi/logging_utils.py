"""
Logging Utilities for mdbook-nadi

Standard output carries the processed book back to mdBook, so every log
record goes to stderr.
"""

import logging
import re
import sys
from enum import Enum
from typing import Optional, Union

LOGGER_NAME = "mdbook_nadi"
LOG_FORMAT = "[mdbook-nadi] %(levelname)s %(name)s: %(message)s"


class LogLevel(str, Enum):
    """Log levels accepted in configuration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# Patterns for secret masking (environment variables, tokens, keys)
SECRET_PATTERNS = [
    (re.compile(r"(API_KEY|TOKEN|SECRET|PASSWORD|PASS|AUTH)[=:]\s*['\"]?([^'\"\ \n]+)", re.I), r"\1=***"),
    (re.compile(r"(Bearer|token)\s+([a-zA-Z0-9_\-\.]+)", re.I), r"\1 ***"),
]


def mask_secrets(text: str) -> str:
    """
    Mask secrets in text before logging.

    Args:
        text: Raw text that may contain secrets

    Returns:
        Text with secrets replaced by ***
    """
    masked = text
    for pattern, replacement in SECRET_PATTERNS:
        masked = pattern.sub(replacement, masked)
    return masked


def parse_level(level: Union[str, LogLevel]) -> LogLevel:
    """Normalize a level name; unknown names fall back to INFO."""
    try:
        return LogLevel(str(getattr(level, "value", level)).upper())
    except ValueError:
        return LogLevel.INFO


class _StderrHandler(logging.StreamHandler):
    """Handler bound to the current sys.stderr at emit time."""

    def __init__(self):
        super().__init__()

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def configure_logging(level: Union[str, LogLevel] = LogLevel.INFO) -> logging.Logger:
    """
    Route package logs to stderr at the given level.

    Safe to call more than once: the handler is installed a single time and
    only the level changes afterwards.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(h, _StderrHandler) for h in logger.handlers):
        handler = _StderrHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(parse_level(level).value)
    return logger


def log_command(
    logger: logging.Logger,
    command: str,
    cwd: str,
    returncode: int,
    duration_ms: Optional[float] = None,
) -> None:
    """Log one evaluator invocation, masked, at WARNING level when it failed."""
    summary = f'CMD="{mask_secrets(command)}" CWD=\'{cwd}\' RC={returncode}'
    if duration_ms is not None:
        summary += f" DURATION={duration_ms:.1f}ms"
    logger.log(logging.WARNING if returncode != 0 else logging.DEBUG, summary)
