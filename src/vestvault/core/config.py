"""
VestVault Configuration

Supports testnet and mainnet with separate configurations.

All settings come from environment variables:
- VESTVAULT_NETWORK: "testnet" (default) or "mainnet"
- VESTVAULT_PROGRAM_ID: base58 program identity (required on mainnet)
- VESTVAULT_LOG_LEVEL / VESTVAULT_LOG_FILE: logging setup
- VESTVAULT_RENT_LAMPORTS_PER_BYTE_YEAR / VESTVAULT_RENT_EXEMPTION_THRESHOLD:
  rent exemption policy applied to record slots
"""

from __future__ import annotations

import logging
import os
from enum import Enum

from vestvault.core.keys import Pubkey
from vestvault.core.ledger import (
    DEFAULT_EXEMPTION_THRESHOLD,
    DEFAULT_LAMPORTS_PER_BYTE_YEAR,
    Rent,
)

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


# Fixed development identity used when no program id is configured on testnet
TESTNET_PROGRAM_ID = "DFGuapfSuXhUpU9V1yNbMUZ76tReRqeY8F4byVTcUWV8"


def _parse_program_id(value: str, env_var: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} is not a valid base58 32-byte identity: {value!r}") from exc


def _get_program_id(env_var: str, network: str) -> Pubkey:
    """Get the program identity, with mainnet enforcement.

    On mainnet, a missing value raises ConfigurationError.
    On testnet, a missing value falls back to the development identity.
    """
    value = os.getenv(env_var, "").strip()
    if value:
        return _parse_program_id(value, env_var)

    if network.lower() == "mainnet":
        raise ConfigurationError(f"CRITICAL: {env_var} environment variable required for mainnet.")

    logger.warning(
        "%s not set, using development program id for testnet.",
        env_var,
        extra={"event": "config.program_id_default", "env_var": env_var},
    )
    return _parse_program_id(TESTNET_PROGRAM_ID, env_var)


def _get_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc


def _get_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be a number, got {raw!r}") from exc


# Get network type from environment variable
NETWORK = os.getenv("VESTVAULT_NETWORK", "testnet")  # Default to testnet for safety

LOG_LEVEL = os.getenv("VESTVAULT_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("VESTVAULT_LOG_FILE", "").strip() or None
RENT_LAMPORTS_PER_BYTE_YEAR = _get_int("VESTVAULT_RENT_LAMPORTS_PER_BYTE_YEAR", DEFAULT_LAMPORTS_PER_BYTE_YEAR)
RENT_EXEMPTION_THRESHOLD = _get_float("VESTVAULT_RENT_EXEMPTION_THRESHOLD", DEFAULT_EXEMPTION_THRESHOLD)


class TestnetConfig:
    """Testnet Configuration (for local testing)"""

    NETWORK_TYPE = NetworkType.TESTNET
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    LOG_ENVIRONMENT = "testnet"
    RENT = Rent(RENT_LAMPORTS_PER_BYTE_YEAR, RENT_EXEMPTION_THRESHOLD)


class MainnetConfig:
    """Mainnet Configuration (production ledger)"""

    NETWORK_TYPE = NetworkType.MAINNET
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    LOG_ENVIRONMENT = "production"
    RENT = Rent(RENT_LAMPORTS_PER_BYTE_YEAR, RENT_EXEMPTION_THRESHOLD)


if NETWORK.lower() == "mainnet":
    Config = MainnetConfig
elif NETWORK.lower() == "testnet":
    Config = TestnetConfig
else:
    raise ConfigurationError(f"VESTVAULT_NETWORK must be 'testnet' or 'mainnet', got {NETWORK!r}")

Config.PROGRAM_ID = _get_program_id("VESTVAULT_PROGRAM_ID", NETWORK)

# Export config
__all__ = [
    "Config",
    "ConfigurationError",
    "NetworkType",
    "TestnetConfig",
    "MainnetConfig",
    "TESTNET_PROGRAM_ID",
]
