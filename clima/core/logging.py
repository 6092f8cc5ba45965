"""Logging utilities for clima modules."""

import logging
from typing import Optional


def get_logger(name: str) -> logging.Logger:
    """Get a logger that automatically inherits from root logger.

    Loggers obtained here work with basicConfig() or the CLI's rich handler
    without an explicit setup_logging() call. The logger will:
    - Propagate to root logger (default behavior)
    - Only set a default level if nobody configured the root logger yet

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True

    root_logger = logging.getLogger()
    if not root_logger.handlers and logger.level == logging.NOTSET:
        logger.setLevel(logging.WARNING)

    return logger


def redact(value: Optional[str], keep: int = 6) -> str:
    """
    Shorten a token so it can appear in a log line.

    Args:
        value: Secret value (token, session id)
        keep: Characters kept at each end

    Returns:
        Masked representation, '<none>' for empty values
    """
    if not value:
        return '<none>'
    if len(value) <= keep * 2:
        return '***'
    return f"{value[:keep]}...{value[-keep:]}"
