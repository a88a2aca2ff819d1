"""Pytest configuration for test isolation.

The CLI and the enrichment layer read ``SUBSCAN_*`` settings and
``OPENAI_API_KEY`` from the environment (and from a local ``.env``). A
developer shell that exports any of them would change what the tests
exercise, so every test starts from a clean slate via an autouse fixture.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `subscan` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
# Ensure `packages/` precedes the repo root so `tests.helpers` and `subscan` both resolve.
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

_ENV_VARS = (
    "OPENAI_API_KEY",
    "SUBSCAN_LOG_LEVEL",
    "SUBSCAN_ENRICH_MODEL",
    "SUBSCAN_ENRICH_MAX_WORKERS",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop configuration env vars and run each test from its own directory.

    Changing into ``tmp_path`` keeps the CLI from picking up a ``.env`` in the
    repository checkout.
    """

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _isolate_logging() -> Iterator[None]:
    """Restore the ``subscan`` logger after each test.

    CLI tests run ``configure_logging`` against pytest's captured stderr; without
    this the handler they attach leaks into later tests.
    """

    import subscan.logging_setup as logging_setup

    logger = logging.getLogger("subscan")
    saved = (list(logger.handlers), logger.level, logger.propagate, logging_setup._handler)
    yield
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
    logging_setup._handler = saved[3]
