import logging
from collections.abc import Iterator

import pytest

import subscan.logging_setup as logging_setup
from subscan.logging_setup import configure_logging, get_logger


@pytest.fixture()
def pkg_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[logging.Logger]:
    logger = logging.getLogger("subscan")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    http_levels = {name: logging.getLogger(name).level for name in ("openai", "httpx", "httpcore")}
    monkeypatch.setattr(logging_setup, "_handler", None)
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
    for name, level in http_levels.items():
        logging.getLogger(name).setLevel(level)


def _stream_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if type(h) is logging.StreamHandler]


def test_repeated_configuration_keeps_one_handler(pkg_logger: logging.Logger) -> None:
    assert configure_logging("debug") == logging.DEBUG
    assert configure_logging("warning") == logging.WARNING
    assert len(_stream_handlers(pkg_logger)) == 1
    assert pkg_logger.level == logging.WARNING
    assert pkg_logger.propagate is False


def test_http_client_logs_follow_debug_only(pkg_logger: logging.Logger) -> None:
    configure_logging("INFO")
    assert logging.getLogger("httpx").level == logging.WARNING
    configure_logging(logging.DEBUG)
    assert logging.getLogger("openai").level == logging.DEBUG


def test_level_from_env_then_default(pkg_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch) -> None:
    assert configure_logging() == logging.INFO
    monkeypatch.setenv("SUBSCAN_LOG_LEVEL", "error")
    assert configure_logging() == logging.ERROR
    assert configure_logging("10") == logging.DEBUG
    assert configure_logging("chatty") == logging.INFO


def test_get_logger_installs_null_handler_when_unconfigured(pkg_logger: logging.Logger) -> None:
    pkg_logger.handlers.clear()
    log = get_logger("subscan.detect")
    assert log.name == "subscan.detect"
    assert any(isinstance(h, logging.NullHandler) for h in pkg_logger.handlers)
