import json
import logging

import pytest

from wallybot.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_level_defaults_follow_environment(settings_factory):
    assert settings_factory(environment="production").effective_log_level == "INFO"
    assert settings_factory(environment="development").effective_log_level == "DEBUG"
    assert settings_factory(environment="production", log_level="warning").effective_log_level == "WARNING"


def test_production_writes_rotating_json_files(settings_factory, tmp_path, restore_root_logger):
    setup_logging(settings=settings_factory(environment="production", log_dir=str(tmp_path)))

    logging.getLogger("wallybot.test").info("Message sent successfully: SM1")
    logging.getLogger("wallybot.test").error("Error sending WhatsApp message")

    combined = (tmp_path / "combined.log").read_text().splitlines()
    errors = (tmp_path / "error.log").read_text().splitlines()
    assert [json.loads(line)["event"] for line in combined] == [
        "Message sent successfully: SM1",
        "Error sending WhatsApp message",
    ]
    assert [json.loads(line)["level"] for line in errors] == ["error"]


def test_development_logs_to_console_only(settings_factory, tmp_path, restore_root_logger):
    setup_logging(settings=settings_factory(environment="development", log_dir=str(tmp_path)))

    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.level == logging.DEBUG
    assert not (tmp_path / "combined.log").exists()
