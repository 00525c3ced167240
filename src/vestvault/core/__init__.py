"""
VestVault Core Module

Core functionality for the vesting program including:
- Record layout and codec
- Vault authority derivation
- Lifecycle state machine and instruction dispatch
- Host ledger model, token transfers and atomic execution
- Configuration, logging and metrics

This package contains the fundamental building blocks of the program.
"""

__all__ = []
