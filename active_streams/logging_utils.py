"""
Logging helpers: a package root logger and a filter that redacts credentials.
"""

import logging
import re
from typing import Iterable, Optional

ROOT_LOGGER_NAME = 'active_streams'

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

TOKEN_REGEX = re.compile(
    r'(?i)\b(x-plex-token|x-emby-token|api_key|token)\b(\s*[:=]\s*)[^\s&\'",]+'
)

logger = logging.getLogger(ROOT_LOGGER_NAME)


def redact(text: str, secrets: Optional[Iterable[str]] = None) -> str:
    """
    Mask credentials in a message.

    Args:
        text: Message that may contain a token (URLs, header dumps)
        secrets: Known credential values to mask wherever they appear

    Returns:
        The message with token values replaced by ***
    """
    text = TOKEN_REGEX.sub(lambda m: f"{m.group(1)}{m.group(2)}***", str(text))
    for secret in secrets or ():
        if secret:
            text = text.replace(secret, '***')
    return text


class RedactingFilter(logging.Filter):
    """Masks X-Plex-Token / X-Emby-Token / api_key / token values."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = ()
        return True


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a redacting stream handler to the package root logger (idempotent)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger.setLevel(level)
    if not any(getattr(h, '_active_streams', False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RedactingFilter())
        handler._active_streams = True
        logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Return a child logger:
    e.g. active_streams.fetcher, active_streams.web
    """
    return logger.getChild(name)
