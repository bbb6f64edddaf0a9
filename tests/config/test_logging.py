"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from cartctl.config.logging import bind_command, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    cart = logging.getLogger("cartctl")
    cart_level = cart.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    cart.setLevel(cart_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("cartctl").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("cartctl").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        log = structlog.get_logger("cartctl.test")
        log.warning("json test", answer=42)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "json test"
        assert parsed["answer"] == 42
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "cartctl.test"
        assert "timestamp" in parsed

    def test_stdlib_module_logger_gets_structured_fields(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("cartctl.services.cart").debug("Added %s x%d", "penne", 2)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Added penne x2"
        assert parsed["level"] == "debug"
        assert parsed["logger"] == "cartctl.services.cart"

    def test_debug_hidden_when_not_verbose(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        logging.getLogger("cartctl.services.cart").debug("noise")
        logging.getLogger("sqlalchemy.engine").info("more noise")
        assert capfd.readouterr().err == ""

    def test_idempotent_calls(self) -> None:
        configure_logging(verbose=True, log_json=False)
        configure_logging(verbose=True, log_json=True)
        assert len(logging.getLogger().handlers) == 1

    def test_sqlalchemy_quieted(self) -> None:
        logging.getLogger("sqlalchemy").setLevel(logging.DEBUG)
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("sqlalchemy").level == logging.WARNING


class TestBindCommand:
    @pytest.fixture(autouse=True)
    def _clear_context(self) -> Generator[None]:
        yield
        structlog.contextvars.clear_contextvars()

    def test_command_in_json_lines(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        bind_command("add")
        logging.getLogger("cartctl.services.cart").info("Added penne")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["command"] == "add"

    def test_none_clears(self) -> None:
        bind_command("add")
        bind_command(None)
        assert structlog.contextvars.get_contextvars() == {}
