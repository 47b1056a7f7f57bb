"""Logger module.

Every module takes its logger from here:

    logger = get_logger(__name__)

The level defaults to the LOG_LEVEL environment variable, then INFO.
"""

import logging
import os
import sys

import colorlog

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

STREAMS = ("stdout", "stderr")

loggers: dict[str, logging.Logger] = {}


def _resolve_level(log_level: str | None) -> int:
    name = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if name not in LOG_LEVELS:
        err_msg = f"Invalid log level: {name}"
        raise ValueError(err_msg)
    return LOG_LEVELS[name]


def _build_handler(log_handler: str, log_color: bool) -> logging.Handler:
    if log_handler not in STREAMS:
        err_msg = f"Invalid handler: {log_handler}"
        raise ValueError(err_msg)

    stream = getattr(sys, log_handler)
    if log_color:
        handler: logging.Handler = colorlog.StreamHandler(stream)
        handler.setFormatter(
            colorlog.ColoredFormatter(f"%(log_color)s {LOG_FORMAT}", log_colors=LOG_COLORS)
        )
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def get_logger(
    name: str,
    log_handler: str = "stdout",
    log_level: str | None = None,
    log_color: bool = False,
) -> logging.Logger:
    """Get logger.

    Loggers are cached by name; later calls ignore the other arguments.

    Args:
        name: The name of the logger.
        log_handler: Stream to write to ('stdout' or 'stderr').
        log_level: The logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR',
            'CRITICAL'). Falls back to LOG_LEVEL, then to INFO.
        log_color: Whether to use colored output.

    Returns:
        logging.Logger: Configured logger instance.

    Raises:
        ValueError: If invalid handler or log level is provided.
    """
    if name in loggers:
        return loggers[name]

    level = _resolve_level(log_level)
    handler = _build_handler(log_handler, log_color)
    handler.setLevel(level)

    logger = colorlog.getLogger(name) if log_color else logging.getLogger(name)
    logger.setLevel(level)
    logger.addHandler(handler)

    loggers[name] = logger
    return logger


__all__ = ["LOG_FORMAT", "get_logger"]
