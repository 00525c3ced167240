import struct

import pytest

from vestvault.core.instruction import (
    INSTRUCTION_TABLE,
    ClaimVesting,
    InitializeVesting,
    claim_instruction,
    decode_instruction,
    dispatch,
    initialize_instruction,
    instruction_name,
)
from vestvault.core.keys import Pubkey
from vestvault.core.vesting_exceptions import (
    DispatchError,
    InvalidPayload,
    UnknownInstruction,
    VestingErrorCode,
)


def test_initialize_payload_decodes_little_endian_fields():
    payload = struct.pack("<Qq", 1000, 1_700_000_100)
    instruction = dispatch(0, payload)
    assert instruction == InitializeVesting(amount=1000, end_time=1_700_000_100)


def test_claim_takes_empty_payload():
    assert dispatch(1, b"") == ClaimVesting()


def test_unknown_opcode_is_rejected():
    with pytest.raises(UnknownInstruction) as excinfo:
        dispatch(2, b"")
    assert excinfo.value.code == VestingErrorCode.UNKNOWN_INSTRUCTION
    assert isinstance(excinfo.value, DispatchError)


@pytest.mark.parametrize("opcode", [2, 7, 0xFF])
def test_every_unregistered_opcode_is_unknown(opcode):
    with pytest.raises(UnknownInstruction):
        decode_instruction(bytes([opcode]) + b"\x00" * 16)


def test_short_initialize_payload_is_invalid():
    with pytest.raises(InvalidPayload) as excinfo:
        dispatch(0, b"\x00" * 10)
    assert excinfo.value.details["length"] == 10


@pytest.mark.parametrize("length", [0, 15, 17, 32])
def test_initialize_payload_must_be_exactly_sixteen_bytes(length):
    with pytest.raises(InvalidPayload):
        dispatch(0, b"\x01" * length)


def test_claim_with_payload_is_invalid():
    with pytest.raises(InvalidPayload):
        dispatch(1, b"\x00")


def test_empty_instruction_data_is_invalid():
    with pytest.raises(InvalidPayload):
        decode_instruction(b"")


def test_pack_produces_wire_format():
    data = InitializeVesting(amount=1000, end_time=-1).pack()
    assert data[0] == 0
    assert data[1:] == struct.pack("<Qq", 1000, -1)
    assert ClaimVesting().pack() == b"\x01"
    assert decode_instruction(data) == InitializeVesting(amount=1000, end_time=-1)


def test_pack_rejects_values_outside_wire_range():
    with pytest.raises(InvalidPayload):
        InitializeVesting(amount=-1, end_time=0).pack()
    with pytest.raises(InvalidPayload):
        InitializeVesting(amount=1, end_time=2**63).pack()


def test_instruction_table_covers_both_opcodes():
    assert sorted(INSTRUCTION_TABLE) == [0, 1]


def test_builders_order_accounts():
    program_id, slot, vault, funder, receiver = (Pubkey.new_unique() for _ in range(5))

    init = initialize_instruction(program_id, slot, vault, funder, receiver, 50, 100)
    assert [meta.pubkey for meta in init.accounts] == [slot, vault, funder, receiver]
    assert init.accounts[2].is_signer
    assert init.accounts[0].is_writable and init.accounts[1].is_writable
    assert not init.accounts[3].is_writable

    claim = claim_instruction(program_id, slot, vault, receiver)
    assert [meta.pubkey for meta in claim.accounts] == [slot, vault, receiver]
    assert all(meta.is_writable for meta in claim.accounts)
    assert claim.data == b"\x01"


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"\x00" + b"\x00" * 16, "initialize"),
        (b"\x00", "initialize"),
        (b"\x01", "claim"),
        (b"\x09", "unknown"),
        (b"", "unknown"),
    ],
)
def test_instruction_name_labels_raw_data(data, expected):
    assert instruction_name(data) == expected
