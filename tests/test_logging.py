"""Tests for structured logging setup and context binding."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest
import structlog

from comwatt_monitor.logging.context import (
    bind_context,
    clear_context,
    current_context,
    unbind_context,
)
from comwatt_monitor.logging.structured import fingerprint, redact_secrets, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    clear_context()


class TestSetupLogging:
    def test_json_lines_to_file(self, tmp_path: Path, restore_logging) -> None:
        log_file = tmp_path / "monitor.log"
        setup_logging(level="DEBUG", fmt="json", log_file=str(log_file))

        bind_context(poller="daily")
        logging.getLogger("comwatt_monitor.test").info("fetched %d points", 3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "fetched 3 points"
        assert record["level"] == "info"
        assert record["logger"] == "comwatt_monitor.test"
        assert record["poller"] == "daily"
        assert "timestamp" in record

    def test_level_applied(self, restore_logging) -> None:
        setup_logging(level="warning", fmt="console")
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_credentials_are_redacted(self, tmp_path: Path, restore_logging) -> None:
        log_file = tmp_path / "monitor.log"
        setup_logging(level="INFO", fmt="json", log_file=str(log_file))

        structlog.get_logger("comwatt_monitor.test").info("login", email="me@example.com", password="hunter2")
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["email"] == "me@example.com"
        assert record["password"] == fingerprint("hunter2")
        assert "hunter2" not in log_file.read_text()


class TestRedaction:
    def test_fingerprint_is_stable_and_short(self) -> None:
        assert fingerprint("abc") == fingerprint("abc")
        assert fingerprint("abc").startswith("len=3 sha256=")
        assert fingerprint(None) == "empty"
        assert fingerprint("") == "empty"

    def test_only_secret_keys_change(self) -> None:
        event = {"event": "auth", "Token": "t0k", "site_id": 3}
        out = redact_secrets(None, "info", event)
        assert out["Token"] == fingerprint("t0k")
        assert out["site_id"] == 3
        assert out["event"] == "auth"


class TestContext:
    def test_bind_and_unbind(self) -> None:
        clear_context()
        bind_context(poller="weather", site_id=4)
        assert current_context() == {"poller": "weather", "site_id": 4}
        unbind_context("site_id")
        assert current_context() == {"poller": "weather"}
        clear_context()
        assert current_context() == {}

    @pytest.mark.asyncio
    async def test_context_is_per_task(self) -> None:
        clear_context()

        async def loop(name: str) -> dict:
            bind_context(poller=name)
            await asyncio.sleep(0)
            return current_context()

        first, second = await asyncio.gather(loop("realtime"), loop("daily"))
        assert first == {"poller": "realtime"}
        assert second == {"poller": "daily"}
        assert current_context() == {}
