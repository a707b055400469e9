"""Tests for structured logging setup and per-pass context."""

import logging
import os

import pytest
import structlog

from harvester.config.settings import get_settings
from harvester.observability.logging import (
    add_worker_pid,
    bind_source,
    clear_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    clear_context()
    structlog.reset_defaults()


class TestSetupLogging:
    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        get_settings.cache_clear()

        setup_logging("DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        get_settings.cache_clear()

        setup_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_quiets_client_libraries(self):
        setup_logging("DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("asyncpg").level == logging.WARNING


class TestContext:
    def test_worker_pid_is_added(self):
        event = add_worker_pid(None, "info", {"event": "Claimed source"})
        assert event["pid"] == os.getpid()

    def test_bind_source_then_clear(self):
        bind_source("100044", "backfilling")

        assert structlog.contextvars.get_contextvars() == {
            "source_id": "100044",
            "mode": "backfilling",
        }

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}
