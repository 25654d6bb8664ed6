"""
Tests for configuration and structured logging
"""

import pytest
import json
import logging

from pydantic import ValidationError

from bank_ledger import config as config_module
from bank_ledger.config import LedgerConfig, get_config, reload_config
from bank_ledger.logging_config import JSONFormatter, get_logger, log_action, setup_logging


class TestLedgerConfig:
    """Test LedgerConfig settings"""

    def test_defaults(self, monkeypatch):
        for name in ("LEDGER_DATA_DIR", "LEDGER_DEFAULT_CURRENCY", "LEDGER_DAYS_PER_YEAR"):
            monkeypatch.delenv(name, raising=False)

        settings = LedgerConfig(_env_file=None)

        assert settings.data_dir == "data"
        assert settings.default_currency == "NGN"
        assert settings.default_savings_rate == "0.05"
        assert settings.days_per_year == 365
        assert settings.account_number_length == 10

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DATA_DIR", "/var/lib/ledger")
        monkeypatch.setenv("LEDGER_DEFAULT_CURRENCY", "usd")
        monkeypatch.setenv("LEDGER_DAYS_PER_YEAR", "360")

        settings = LedgerConfig(_env_file=None)

        assert settings.data_dir == "/var/lib/ledger"
        assert settings.default_currency == "USD"
        assert settings.days_per_year == 360

    def test_rejects_unknown_currency(self):
        with pytest.raises(ValidationError):
            LedgerConfig(default_currency="XYZ", _env_file=None)

    def test_rejects_unknown_log_format(self):
        with pytest.raises(ValidationError):
            LedgerConfig(log_format="xml", _env_file=None)

    def test_rejects_short_account_numbers(self):
        with pytest.raises(ValidationError):
            LedgerConfig(account_number_length=3, _env_file=None)

    def test_reload_config(self, monkeypatch):
        original = get_config()
        monkeypatch.setenv("LEDGER_JSON_INDENT", "4")
        try:
            assert reload_config().json_indent == 4
            assert get_config().json_indent == 4
        finally:
            monkeypatch.setattr(config_module, "config", original)


class TestLogging:
    """Test structured log output"""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="bank_ledger.transfers", level=logging.INFO, pathname=__file__, lineno=1,
            msg="Transfer completed", args=(), exc_info=None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter_fields(self):
        output = json.loads(JSONFormatter().format(self.make_record(
            action="transfer", resource="account:1000000001", extra={"amount": "300"}
        )))

        assert output["level"] == "INFO"
        assert output["logger"] == "bank_ledger.transfers"
        assert output["message"] == "Transfer completed"
        assert output["action"] == "transfer"
        assert output["resource"] == "account:1000000001"
        assert output["extra"] == {"amount": "300"}
        assert "timestamp" in output

    def test_json_formatter_drops_empty_fields(self):
        output = json.loads(JSONFormatter().format(self.make_record()))
        assert "action" not in output
        assert "resource" not in output

    def test_setup_logging(self):
        logger = setup_logging(level="DEBUG", log_format="text", logger_name="bank_ledger.test_setup")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

        # Calling again replaces rather than stacks handlers
        logger = setup_logging(level="INFO", log_format="json", logger_name="bank_ledger.test_setup")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_log_action(self, caplog):
        logger = get_logger("bank_ledger.test_actions")

        with caplog.at_level(logging.INFO, logger="bank_ledger.test_actions"):
            log_action(logger, "info", "Account created", action="create_account",
                       resource="account:1", extra={"kind": "savings"})

        record = caplog.records[-1]
        assert record.getMessage() == "Account created"
        assert record.action == "create_account"
        assert record.resource == "account:1"
        assert record.extra == {"kind": "savings"}
