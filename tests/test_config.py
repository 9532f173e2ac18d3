"""
Unit tests for configuration helpers and logger naming.
"""

from __future__ import annotations

import logging

import pytest

from clinic_dashboard.utils import config
from clinic_dashboard.utils.logging_config import (
    ROOT_LOGGER_NAME,
    SensitiveDataFilter,
    get_logger,
    log_error_with_context,
    setup_logging,
)


class TestConfig:
    def test_defaults_are_valid(self) -> None:
        assert config.validate_environment()

    @pytest.mark.parametrize(
        "name, value",
        [
            ("API_BASE_URL", "localhost:3000"),
            ("API_TIMEOUT", 0),
            ("USAGE_WARNING_THRESHOLD", 120),
            ("TRIAL_WARNING_DAYS", -1),
        ],
    )
    def test_invalid_settings(self, monkeypatch, name, value) -> None:
        monkeypatch.setattr(config, name, value)
        assert not config.validate_environment()

    def test_streamlit_config_is_a_copy(self) -> None:
        page_config = config.get_streamlit_config()
        page_config["page_title"] = "Changed"
        assert config.STREAMLIT_CONFIG["page_title"] == "Clinic Dashboard"

    def test_time_slots(self) -> None:
        slots = config.get_time_slots()
        assert slots[0] == "08:00"
        assert slots[-1] == "20:00"
        assert len(slots) == 25

    def test_usage_bands_are_ordered(self) -> None:
        assert config.USAGE_YELLOW_THRESHOLD < config.USAGE_WARNING_THRESHOLD
        assert config.USAGE_WARNING_THRESHOLD < config.USAGE_RED_THRESHOLD


class TestLoggerNames:
    def test_module_loggers_nest_under_root(self) -> None:
        assert get_logger("pages.tasks").name == f"{ROOT_LOGGER_NAME}.pages.tasks"

    def test_package_names_unchanged(self) -> None:
        name = "clinic_dashboard.core.records"
        assert get_logger(name).name == name

    def test_error_with_context(self, caplog) -> None:
        logger = logging.getLogger("clinic_dashboard.tests")
        with caplog.at_level(logging.ERROR, logger="clinic_dashboard.tests"):
            try:
                raise ValueError("bad row")
            except ValueError as e:
                log_error_with_context(logger, e, "export")

        record = caplog.records[-1]
        assert record.getMessage() == "export - Error: bad row"
        assert record.exc_info is not None


@pytest.fixture
def restore_logging():
    yield
    setup_logging(force=True)


class TestSetupLogging:
    def test_repeat_call_keeps_handlers(self, restore_logging) -> None:
        logger = setup_logging("INFO", log_to_file=False, force=True)
        handlers = list(logger.handlers)

        assert setup_logging("INFO", log_to_file=False).handlers == handlers

    def test_level_change_rebuilds_handlers(self, restore_logging) -> None:
        setup_logging("INFO", log_to_file=False, force=True)
        logger = setup_logging("DEBUG", log_to_file=False)

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.DEBUG

    def test_file_handler_in_log_dir(self, restore_logging, tmp_path) -> None:
        logger = setup_logging("INFO", log_to_file=True, log_dir=str(tmp_path / "logs"))

        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        log_files = list((tmp_path / "logs").glob("clinic_dashboard_*.log"))
        assert len(log_files) == 1
        assert "Logging initialized" in log_files[0].read_text(encoding="utf-8")

    def test_unknown_level_falls_back_to_info(self, restore_logging) -> None:
        assert setup_logging("LOUD", log_to_file=False).level == logging.INFO


class TestSensitiveDataFilter:
    @pytest.mark.parametrize(
        "message, hidden",
        [
            ("headers={'Authorization': 'Bearer abc.def-123'}", "abc.def-123"),
            ("payload={'email': 'ana@calm.test', 'password': 'Secret123'}", "Secret123"),
            ("refreshToken=r-9f8e", "r-9f8e"),
        ],
    )
    def test_masks_secrets(self, message, hidden) -> None:
        record = logging.LogRecord("clinic_dashboard", logging.INFO, __file__, 1, message, None, None)

        assert SensitiveDataFilter().filter(record)
        assert hidden not in record.getMessage()
        assert "***" in record.getMessage()

    def test_plain_message_untouched(self) -> None:
        record = logging.LogRecord(
            "clinic_dashboard", logging.INFO, __file__, 1, "Fetching usage for %s", ("t1",), None
        )

        SensitiveDataFilter().filter(record)
        assert record.getMessage() == "Fetching usage for t1"
