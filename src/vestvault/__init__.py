"""
VestVault - Time-Locked Custody Program

A single-recipient vesting program: a funder locks a fixed amount of a
fungible asset in a program-controlled vault and the recipient may withdraw
the full amount once the unlock time has passed.

Main Components:
- State Codec: fixed-width binary layout of the vesting record
- Authority Deriver: keyless program-derived signing authority over the vault
- Lifecycle Manager: Initialize / Claim state transitions
- Instruction Dispatcher: opcode + payload decoding
- Host model: in-memory ledger, rent, clock and reference token program
"""

__version__ = "0.1.0"
__author__ = "VestVault Development Team"

__all__ = []
