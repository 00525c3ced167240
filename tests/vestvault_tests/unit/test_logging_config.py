import importlib
import json
import logging

import pytest

import vestvault.core.config as config_module
from vestvault.core.logging_config import (
    VestingJsonFormatter,
    get_logger,
    setup_logging,
    setup_program_logging,
)


def _read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


def test_file_handler_writes_json_with_context(tmp_path):
    log_file = tmp_path / "logs" / "program.json"
    logger = setup_logging(
        name="vestvault_logtest.file",
        log_file=str(log_file),
        level="DEBUG",
        environment="testnet",
        enable_console=False,
    )

    logger.info("Vesting schedule claimed", extra={"event": "vesting.claimed", "amount": 1000})
    for handler in logger.handlers:
        handler.flush()

    entries = _read_lines(log_file)
    assert len(entries) == 1
    entry = entries[0]
    assert entry["message"] == "Vesting schedule claimed"
    assert entry["level"] == "info"
    assert entry["environment"] == "testnet"
    assert entry["service"] == "vestvault_logtest"
    assert entry["event"] == "vesting.claimed"
    assert entry["amount"] == 1000
    assert entry["source"]["function"] == "test_file_handler_writes_json_with_context"
    assert "timestamp" in entry


def test_setup_logging_replaces_handlers(tmp_path):
    name = "vestvault_logtest.handlers"
    setup_logging(name=name, log_file=str(tmp_path / "a.json"), enable_console=True)
    logger = setup_logging(name=name, log_file=None, enable_console=True)

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, VestingJsonFormatter)


def test_level_filters_records(tmp_path):
    log_file = tmp_path / "warn.json"
    logger = setup_logging(
        name="vestvault_logtest.level",
        log_file=str(log_file),
        level="WARNING",
        enable_console=False,
    )

    logger.info("dropped")
    logger.warning("kept")
    for handler in logger.handlers:
        handler.flush()

    assert [entry["message"] for entry in _read_lines(log_file)] == ["kept"]


def test_get_logger_reuses_configured_logger():
    first = get_logger("vestvault_logtest.reuse")
    handlers = list(first.handlers)
    second = get_logger("vestvault_logtest.reuse", level="DEBUG")

    assert second is first
    assert second.handlers == handlers
    assert second.level == logging.INFO


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        setup_logging(name="vestvault_logtest.badlevel", level="chatty", enable_console=False)


def test_program_logging_follows_network_config(tmp_path, monkeypatch):
    log_file = tmp_path / "program.json"
    monkeypatch.setenv("VESTVAULT_LOG_FILE", str(log_file))
    monkeypatch.setenv("VESTVAULT_LOG_LEVEL", "debug")
    importlib.reload(config_module)

    logger = setup_program_logging()
    try:
        assert logger.name == "vestvault"
        assert logger.level == logging.DEBUG
        logging.getLogger("vestvault.core.lifecycle").debug("slot checked", extra={"event": "vesting.debug"})
        for handler in logger.handlers:
            handler.flush()

        entry = _read_lines(log_file)[-1]
        assert entry["environment"] == "testnet"
        assert entry["service"] == "vestvault"
        assert entry["name"] == "vestvault.core.lifecycle"
        assert entry["level"] == "debug"
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        monkeypatch.delenv("VESTVAULT_LOG_FILE")
        monkeypatch.delenv("VESTVAULT_LOG_LEVEL")
        importlib.reload(config_module)
