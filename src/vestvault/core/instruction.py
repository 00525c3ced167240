"""
Instruction encoding and dispatch.

Wire format: one opcode byte followed by an opcode-specific payload.

    0x00  InitializeVesting  payload: amount (u64 LE) | end_time (i64 LE)
    0x01  ClaimVesting       payload: empty

Account order per instruction:

    InitializeVesting: record slot (w), vault (w), funder (signer), receiver
    ClaimVesting:      record slot (w), vault (w), receiver (w)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Union

from vestvault.core.keys import Pubkey
from vestvault.core.vesting_exceptions import InvalidPayload, UnknownInstruction

_INIT_PAYLOAD = struct.Struct("<Qq")

OPCODE_INITIALIZE = 0
OPCODE_CLAIM = 1


@dataclass(frozen=True)
class InitializeVesting:
    amount: int
    end_time: int

    OPCODE: ClassVar[int] = OPCODE_INITIALIZE
    NAME: ClassVar[str] = "initialize"

    @classmethod
    def unpack(cls, payload: bytes) -> "InitializeVesting":
        if len(payload) != _INIT_PAYLOAD.size:
            raise InvalidPayload(
                f"initialize payload must be {_INIT_PAYLOAD.size} bytes, got {len(payload)}",
                details={"opcode": cls.OPCODE, "length": len(payload)},
            )
        amount, end_time = _INIT_PAYLOAD.unpack(payload)
        return cls(amount=amount, end_time=end_time)

    def pack(self) -> bytes:
        try:
            payload = _INIT_PAYLOAD.pack(self.amount, self.end_time)
        except struct.error as exc:
            raise InvalidPayload(
                f"initialize fields out of range: {exc}",
                details={"amount": self.amount, "end_time": self.end_time},
            ) from exc
        return bytes([self.OPCODE]) + payload


@dataclass(frozen=True)
class ClaimVesting:
    OPCODE: ClassVar[int] = OPCODE_CLAIM
    NAME: ClassVar[str] = "claim"

    @classmethod
    def unpack(cls, payload: bytes) -> "ClaimVesting":
        if payload:
            raise InvalidPayload(
                f"claim takes no payload, got {len(payload)} bytes",
                details={"opcode": cls.OPCODE, "length": len(payload)},
            )
        return cls()

    def pack(self) -> bytes:
        return bytes([self.OPCODE])


VestingInstruction = Union[InitializeVesting, ClaimVesting]

INSTRUCTION_TABLE: Dict[int, Callable[[bytes], VestingInstruction]] = {
    InitializeVesting.OPCODE: InitializeVesting.unpack,
    ClaimVesting.OPCODE: ClaimVesting.unpack,
}


def _validate_table() -> None:
    expected = {OPCODE_INITIALIZE, OPCODE_CLAIM}
    if set(INSTRUCTION_TABLE) != expected:
        raise RuntimeError(f"instruction table must cover exactly {sorted(expected)}")


_validate_table()


def dispatch(opcode: int, payload: bytes) -> VestingInstruction:
    """Route an opcode and its payload to the matching instruction decoder.

    Raises:
        UnknownInstruction: No decoder is registered for the opcode
        InvalidPayload: The payload does not match the opcode's layout
    """
    decoder = INSTRUCTION_TABLE.get(opcode)
    if decoder is None:
        raise UnknownInstruction(
            f"unknown instruction opcode {opcode}",
            details={"opcode": opcode},
        )
    return decoder(bytes(payload))


def decode_instruction(data: bytes) -> VestingInstruction:
    """Split raw instruction data into opcode and payload, then dispatch."""
    if not data:
        raise InvalidPayload("instruction data is empty", details={"length": 0})
    return dispatch(data[0], data[1:])


def instruction_name(data: bytes) -> str:
    """Metric label for raw instruction data, without validating the payload."""
    if data and data[0] == OPCODE_INITIALIZE:
        return InitializeVesting.NAME
    if data and data[0] == OPCODE_CLAIM:
        return ClaimVesting.NAME
    return "unknown"


# ==================== Client-side builders ====================


@dataclass(frozen=True)
class AccountMeta:
    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True)
class Instruction:
    program_id: Pubkey
    accounts: List[AccountMeta]
    data: bytes


def initialize_instruction(
    program_id: Pubkey,
    record_slot: Pubkey,
    vault: Pubkey,
    funder: Pubkey,
    receiver: Pubkey,
    amount: int,
    end_time: int,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(record_slot, is_writable=True),
            AccountMeta(vault, is_writable=True),
            AccountMeta(funder, is_signer=True, is_writable=True),
            AccountMeta(receiver),
        ],
        data=InitializeVesting(amount=amount, end_time=end_time).pack(),
    )


def claim_instruction(
    program_id: Pubkey,
    record_slot: Pubkey,
    vault: Pubkey,
    receiver: Pubkey,
) -> Instruction:
    return Instruction(
        program_id=program_id,
        accounts=[
            AccountMeta(record_slot, is_writable=True),
            AccountMeta(vault, is_writable=True),
            AccountMeta(receiver, is_writable=True),
        ],
        data=ClaimVesting().pack(),
    )
