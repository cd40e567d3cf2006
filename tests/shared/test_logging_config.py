import logging

import pytest
import structlog

from shared.logging import bound_context, configure_logging, get_log_level


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestLogLevel:
    def test_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.setenv("DAKARCART_ENV", "production")
        assert get_log_level() == "INFO"

        monkeypatch.setenv("DAKARCART_ENV", "development")
        assert get_log_level() == "DEBUG"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"


class TestConfigureLogging:
    def test_writes_log_files(self, tmp_path, restore_logging):
        configure_logging(log_dir=str(tmp_path), log_file_prefix="checkout", json_output=True)

        structlog.get_logger("tests").error("Payment received but order creation failed", payment_id="PAY1")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert '"payment_id": "PAY1"' in (tmp_path / "checkout.log").read_text()
        assert "order creation failed" in (tmp_path / "checkout_error.log").read_text()

    def test_context_is_merged(self, tmp_path, restore_logging):
        configure_logging(log_dir=str(tmp_path), json_output=True)

        with bound_context(attempt_id="a1"):
            structlog.get_logger("tests").warning("Checkout submitted")
        structlog.get_logger("tests").warning("After the attempt")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = (tmp_path / "dakarcart.log").read_text().splitlines()
        assert '"attempt_id": "a1"' in lines[0]
        assert "attempt_id" not in lines[1]

    def test_nested_context_restores_outer_values(self, restore_logging):
        structlog.contextvars.clear_contextvars()
        with bound_context(attempt_id="a1"):
            with bound_context(payment_id="PAY1"):
                assert structlog.contextvars.get_contextvars() == {"attempt_id": "a1", "payment_id": "PAY1"}
            assert structlog.contextvars.get_contextvars() == {"attempt_id": "a1"}
        assert structlog.contextvars.get_contextvars() == {}
