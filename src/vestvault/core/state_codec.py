"""
Vesting Record Codec

Fixed-width little-endian layout of the persisted vesting schedule:

    offset  size  field
    0       32    receiver identity
    32      32    funder identity
    64      8     amount (u64)
    72      8     start_time (i64)
    80      8     end_time (i64)
    88      1     status (0x01 active, 0x02 claimed)

An all-zero slot is an uninitialized record. Presence is decided by the caller
with `is_empty_slot` before decoding; `decode` never returns an "empty" record.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from vestvault.core.keys import PUBKEY_BYTES, Pubkey
from vestvault.core.vesting_exceptions import CodecError, CodecErrorKind

_LAYOUT = struct.Struct("<32s32sQqqB")

RECORD_LEN = _LAYOUT.size  # 89
FIELDS_LEN = RECORD_LEN - 1

U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1


class VestingStatus(IntEnum):
    UNINITIALIZED = 0
    ACTIVE = 1
    CLAIMED = 2


@dataclass(frozen=True)
class VestingRecord:
    """One vesting schedule. Only `active` changes after creation."""

    receiver: Pubkey
    funder: Pubkey
    amount: int
    start_time: int
    end_time: int
    active: bool = True

    @property
    def status(self) -> VestingStatus:
        return VestingStatus.ACTIVE if self.active else VestingStatus.CLAIMED

    def is_unlocked(self, now: int) -> bool:
        return now > self.end_time

    def mark_claimed(self) -> "VestingRecord":
        return VestingRecord(
            receiver=self.receiver,
            funder=self.funder,
            amount=self.amount,
            start_time=self.start_time,
            end_time=self.end_time,
            active=False,
        )

    def to_dict(self) -> dict:
        return {
            "receiver": str(self.receiver),
            "funder": str(self.funder),
            "amount": self.amount,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status.name.lower(),
        }


def is_empty_slot(buffer: bytes | bytearray | memoryview) -> bool:
    """True when every byte of the slot is zero (never initialized)."""
    return not any(buffer)


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CodecError(
            f"{name} must be an integer, got {type(value).__name__}",
            CodecErrorKind.OUT_OF_RANGE,
            details={"field": name},
        )
    if not low <= value <= high:
        raise CodecError(
            f"{name}={value} outside [{low}, {high}]",
            CodecErrorKind.OUT_OF_RANGE,
            details={"field": name, "value": value},
        )


def encode(record: VestingRecord) -> bytes:
    """Serialize a record into exactly RECORD_LEN bytes."""
    for name in ("receiver", "funder"):
        identity = getattr(record, name)
        if not isinstance(identity, Pubkey) or len(identity.raw) != PUBKEY_BYTES:
            raise CodecError(
                f"{name} must be a {PUBKEY_BYTES}-byte identity",
                CodecErrorKind.OUT_OF_RANGE,
                details={"field": name},
            )
    _check_range("amount", record.amount, 0, U64_MAX)
    _check_range("start_time", record.start_time, I64_MIN, I64_MAX)
    _check_range("end_time", record.end_time, I64_MIN, I64_MAX)

    return _LAYOUT.pack(
        record.receiver.raw,
        record.funder.raw,
        record.amount,
        record.start_time,
        record.end_time,
        int(record.status),
    )


def encode_into(record: VestingRecord, buffer: bytearray) -> None:
    """Write a record into the head of a mutable slot buffer."""
    if len(buffer) < RECORD_LEN:
        raise CodecError(
            f"slot holds {len(buffer)} bytes, record needs {RECORD_LEN}",
            CodecErrorKind.TRUNCATED,
            details={"length": len(buffer), "required": RECORD_LEN},
        )
    buffer[:RECORD_LEN] = encode(record)


def decode(buffer: bytes | bytearray | memoryview) -> VestingRecord:
    """Deserialize the first RECORD_LEN bytes of a slot buffer.

    Raises:
        CodecError: TRUNCATED for short buffers, INVALID_STATUS when the status
            byte is neither active nor claimed.
    """
    if len(buffer) < RECORD_LEN:
        raise CodecError(
            f"buffer holds {len(buffer)} bytes, record needs {RECORD_LEN}",
            CodecErrorKind.TRUNCATED,
            details={"length": len(buffer), "required": RECORD_LEN},
        )

    receiver, funder, amount, start_time, end_time, status = _LAYOUT.unpack_from(buffer, 0)

    if status == VestingStatus.ACTIVE:
        active = True
    elif status == VestingStatus.CLAIMED:
        active = False
    else:
        raise CodecError(
            f"unrecognized status byte 0x{status:02x}",
            CodecErrorKind.INVALID_STATUS,
            details={"status": status},
        )

    return VestingRecord(
        receiver=Pubkey(receiver),
        funder=Pubkey(funder),
        amount=amount,
        start_time=start_time,
        end_time=end_time,
        active=active,
    )
