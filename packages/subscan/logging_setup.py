"""Logging for the ``subscan`` package.

Engine modules only call ``get_logger("subscan.<module>")``; nothing below the
CLI attaches handlers. ``configure_logging`` is the CLI's single switch: it
routes the ``"subscan"`` logger to stderr (stdout carries scan results) and
keeps the OpenAI client's per-request HTTP logging quiet during ``--enrich``
unless DEBUG was asked for.
"""

from __future__ import annotations

import logging
import os
import sys

_PKG_LOGGER_NAME = "subscan"
_LEVEL_ENV_VAR = "SUBSCAN_LOG_LEVEL"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
# Loggers of the enrichment client stack.
_HTTP_LOGGERS = ("openai", "httpx", "httpcore")

_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(_LEVEL_ENV_VAR) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if numeric is not None else logging.INFO


def configure_logging(level: int | str | None = None) -> int:
    """Route ``subscan`` logs to stderr at ``level`` and return the level used.

    ``level`` falls back to ``SUBSCAN_LOG_LEVEL`` and then INFO. Calling again
    replaces the previous handler, so repeated CLI invocations in one process
    do not stack output.
    """

    global _handler
    resolved = _parse_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)

    for h in list(logger.handlers):
        if h is _handler or isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(resolved)
    logger.propagate = False

    http_level = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
    return resolved


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, giving the package a NullHandler until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
