"""
Structured JSON logging for the vesting program.

Every record is one JSON object carrying the service, the network environment,
the level, the emitting source location and any structured ``extra`` fields
(the program logs ``event`` plus event-specific keys):

    {"timestamp": "...", "level": "info", "name": "vestvault.core.lifecycle",
     "message": "Vesting schedule claimed", "service": "vestvault",
     "environment": "testnet", "event": "vesting.claimed", "amount": 1000,
     "source": {"function": "claim", "module": "lifecycle", "line": 240}}

Usage:
    from vestvault.core.logging_config import setup_program_logging

    logger = setup_program_logging()
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pythonjsonlogger.json import JsonFormatter

DEFAULT_MAX_BYTES = 100 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 10


class VestingJsonFormatter(JsonFormatter):
    """JSON formatter stamping service and environment onto each record."""

    def __init__(self, service_name: str = "vestvault", environment: str = "production"):
        super().__init__(
            "%(name)s %(message)s",
            static_fields={"service": service_name, "environment": environment},
            timestamp=True,
        )

    def add_fields(
        self,
        log_data: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_data, record, message_dict)
        log_data["level"] = record.levelname.lower()
        log_data["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def _build_handlers(
    formatter: logging.Formatter,
    level: int,
    log_file: Optional[str],
    enable_console: bool,
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    name: str = "vestvault",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    enable_console: bool = True,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """
    Attach JSON handlers to the named logger, replacing any it already has.

    Args:
        name: Logger name; its first dotted component is the service name
        log_file: Rotating JSON log file, or None for console only
        level: Level name applied to the logger and its handlers
        environment: Network environment stamped on every record
        enable_console: Also write records to stdout
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep

    Returns:
        The configured logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    formatter = VestingJsonFormatter(service_name=name.split(".")[0], environment=environment)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in _build_handlers(formatter, numeric_level, log_file, enable_console, max_bytes, backup_count):
        logger.addHandler(handler)
    return logger


def get_logger(name: str, log_file: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """Return `name`'s logger, configuring it only on first use."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    return setup_logging(name=name, log_file=log_file, level=level)


def setup_program_logging() -> logging.Logger:
    """Configure the package logger from the active network configuration."""
    from vestvault.core import config

    return setup_logging(
        name="vestvault",
        log_file=config.Config.LOG_FILE,
        level=config.Config.LOG_LEVEL,
        environment=config.Config.LOG_ENVIRONMENT,
    )
