"""
Tests for configuration and structured logging
"""

import json
import logging

from bank_ledger import config as config_module
from bank_ledger.config import LedgerConfig, get_config, reload_config
from bank_ledger.logging_config import JSONFormatter, get_logger, log_action, setup_logging


class ListHandler(logging.Handler):
    """Collects formatted records"""

    def __init__(self):
        super().__init__()
        self.setFormatter(JSONFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


class TestLedgerConfig:
    """Test configuration defaults and environment overrides"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_MAX_LOGIN_ATTEMPTS", raising=False)
        config = LedgerConfig()

        assert config.max_login_attempts == 3
        assert config.lockout_duration_seconds == 300
        assert config.transaction_history_limit == 10
        assert config.account_number_prefix == "ACC"
        assert config.customer_id_prefix == "CUST"
        assert config.api_port == 8090
        assert config.access_token_minutes == 30
        assert config.seed_sample_data is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_MAX_LOGIN_ATTEMPTS", "5")
        monkeypatch.setenv("LEDGER_LOCKOUT_DURATION_SECONDS", "60")
        monkeypatch.setenv("LEDGER_SEED_SAMPLE_DATA", "true")

        config = LedgerConfig()

        assert config.max_login_attempts == 5
        assert config.lockout_duration_seconds == 60
        assert config.seed_sample_data is True

    def test_reload_config(self, monkeypatch):
        original = get_config()
        monkeypatch.setenv("LEDGER_DATA_DIR", "/tmp/ledger-data")
        try:
            reloaded = reload_config()
            assert reloaded.data_dir == "/tmp/ledger-data"
            assert get_config() is reloaded
        finally:
            config_module.config = original


class TestStructuredLogging:
    """Test JSON formatting and log_action"""

    def setup_method(self):
        self.logger = logging.getLogger("bank_ledger.test")
        self.logger.setLevel(logging.DEBUG)
        self.handler = ListHandler()
        self.logger.addHandler(self.handler)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)

    def test_log_action_fields(self):
        log_action(self.logger, "info", "Deposit made", account_number="ACC001001",
                   action="deposit", extra={"amount": "10"})

        entry = json.loads(self.handler.lines[0])
        assert entry["level"] == "INFO"
        assert entry["message"] == "Deposit made"
        assert entry["account_number"] == "ACC001001"
        assert entry["action"] == "deposit"
        assert entry["extra"] == {"amount": "10"}
        assert "timestamp" in entry

    def test_missing_fields_omitted(self):
        log_action(self.logger, "warning", "Something happened")

        entry = json.loads(self.handler.lines[0])
        assert entry["level"] == "WARNING"
        assert "account_number" not in entry
        assert "action" not in entry
        assert "extra" not in entry

    def test_disabled_level_is_skipped(self):
        self.logger.setLevel(logging.WARNING)
        log_action(self.logger, "info", "Quiet")
        assert self.handler.lines == []

    def test_setup_logging_replaces_handlers(self, tmp_path):
        log_file = tmp_path / "ledger.log"
        logger = setup_logging("DEBUG", logger_name="bank_ledger.setup_test", log_file=str(log_file))
        logger = setup_logging("DEBUG", logger_name="bank_ledger.setup_test", log_file=str(log_file))

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

        log_action(logger, "debug", "Written to file", action="test")
        logger.handlers[0].flush()
        entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
        assert entry["action"] == "test"

        logger.handlers[0].close()
        logger.removeHandler(logger.handlers[0])

    def test_setup_logging_text_format(self):
        logger = setup_logging("INFO", logger_name="bank_ledger.text_test", log_format="text")
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert get_logger("bank_ledger.text_test") is logger
        logger.removeHandler(logger.handlers[0])
