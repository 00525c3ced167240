"""
Vesting Lifecycle Manager

State machine for one vesting record slot:

    Uninitialized --Initialize--> Active --Claim--> Claimed (terminal)

Initialize writes the record and pulls the funder's deposit into the vault.
Claim releases the full amount from the vault to the recorded receiver once
the unlock time has passed, signing with the vault's derived authority.
Every check reads the record slot as it is at execution time, so a second
Claim against the same slot always observes the Claimed status and fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Sequence

from vestvault.core.authority import derive_authority
from vestvault.core.keys import Pubkey
from vestvault.core.ledger import AccountInfo, Clock, Rent
from vestvault.core.state_codec import (
    I64_MAX,
    U64_MAX,
    VestingRecord,
    decode,
    encode_into,
    is_empty_slot,
)
from vestvault.core.token_program import TransferService
from vestvault.core.vesting_exceptions import (
    AccountMismatch,
    AlreadyClaimed,
    AlreadyInitialized,
    InvalidSchedule,
    MissingAccount,
    NotRentExempt,
    PeriodNotEnded,
    RecordNotFound,
    Unauthorized,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationContext:
    """Everything one invocation may touch, supplied by the host."""

    program_id: Pubkey
    accounts: Sequence[AccountInfo]
    signers: AbstractSet[Pubkey]
    clock: Clock
    rent: Rent
    transfer: TransferService


def _take_accounts(ctx: InvocationContext, count: int, instruction: str) -> Sequence[AccountInfo]:
    if len(ctx.accounts) < count:
        raise MissingAccount(
            f"{instruction} requires {count} accounts, got {len(ctx.accounts)}",
            details={"instruction": instruction, "required": count, "provided": len(ctx.accounts)},
        )
    return ctx.accounts[:count]


def _validate_schedule(amount: int, end_time: int, now: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or not 0 < amount <= U64_MAX:
        raise InvalidSchedule(
            f"vesting amount must be a positive u64, got {amount!r}",
            details={"amount": amount},
        )
    if isinstance(end_time, bool) or not isinstance(end_time, int) or end_time > I64_MAX:
        raise InvalidSchedule(
            f"end_time must be an i64 timestamp, got {end_time!r}",
            details={"end_time": end_time},
        )
    if end_time <= now:
        raise InvalidSchedule(
            f"end_time {end_time} must be after current time {now}",
            details={"end_time": end_time, "now": now},
        )


def initialize(ctx: InvocationContext, amount: int, end_time: int) -> VestingRecord:
    """
    Create an Active vesting record and deposit `amount` into the vault.

    Args:
        ctx: Invocation context (accounts: record slot, vault, funder, receiver)
        amount: Value to lock
        end_time: Unlock timestamp, strictly after the current clock

    Returns:
        The record as written to the slot

    Raises:
        Unauthorized: Funder did not sign
        AlreadyInitialized: Record slot is not empty
        NotRentExempt: Record slot cannot persist
        InvalidSchedule: amount is zero or end_time is not in the future
        AccountMismatch: Vault is not controlled by this record's derived authority
        TransferError: The deposit was rejected by the token program
    """
    record_slot, vault, funder, receiver = _take_accounts(ctx, 4, "initialize")

    if not funder.is_signer or funder.key not in ctx.signers:
        raise Unauthorized(
            f"funder {funder.key} must sign initialize",
            details={"funder": str(funder.key)},
        )

    slot_data = record_slot.writable_data()
    if not is_empty_slot(slot_data):
        raise AlreadyInitialized(
            f"record slot {record_slot.key} is already initialized",
            details={"record_slot": str(record_slot.key)},
        )

    if not ctx.rent.is_exempt(record_slot.lamports, record_slot.data_len()):
        raise NotRentExempt(
            f"record slot {record_slot.key} is not rent exempt",
            details={
                "record_slot": str(record_slot.key),
                "lamports": record_slot.lamports,
                "required": ctx.rent.minimum_balance(record_slot.data_len()),
            },
        )

    now = ctx.clock.unix_timestamp
    _validate_schedule(amount, end_time, now)

    authority, _ = derive_authority(ctx.program_id, record_slot.key)
    vault_authority = ctx.transfer.authority_of(vault.key)
    if vault_authority != authority:
        raise AccountMismatch(
            f"vault {vault.key} is not controlled by the record's derived authority",
            details={
                "vault": str(vault.key),
                "vault_authority": str(vault_authority),
                "expected_authority": str(authority),
            },
        )

    record = VestingRecord(
        receiver=receiver.key,
        funder=funder.key,
        amount=amount,
        start_time=now,
        end_time=end_time,
        active=True,
    )
    encode_into(record, slot_data)

    ctx.transfer.transfer(
        source=funder.key,
        destination=vault.key,
        amount=amount,
        authority=funder.key,
        signers=ctx.signers,
    )

    logger.info(
        "Vesting schedule initialized",
        extra={
            "event": "vesting.initialized",
            "record_slot": str(record_slot.key),
            "funder": funder.key.short(),
            "receiver": receiver.key.short(),
            "amount": amount,
            "start_time": now,
            "end_time": end_time,
        },
    )
    return record


def claim(ctx: InvocationContext) -> VestingRecord:
    """
    Release the vault to the recorded receiver and mark the record Claimed.

    Args:
        ctx: Invocation context (accounts: record slot, vault, receiver)

    Returns:
        The record as rewritten (inactive)

    Raises:
        RecordNotFound: Record slot is empty
        CodecError: Record slot cannot be decoded
        AlreadyClaimed: Record is no longer Active
        PeriodNotEnded: Current time is at or before end_time
        AccountMismatch: Receiver account differs from the recorded receiver
        TransferError: The release was rejected by the token program
    """
    record_slot, vault, receiver = _take_accounts(ctx, 3, "claim")

    slot_data = record_slot.writable_data()
    if is_empty_slot(slot_data):
        raise RecordNotFound(
            f"record slot {record_slot.key} holds no vesting record",
            details={"record_slot": str(record_slot.key)},
        )

    record = decode(slot_data)
    if not record.active:
        raise AlreadyClaimed(
            f"vesting record {record_slot.key} was already claimed",
            details={"record_slot": str(record_slot.key)},
        )

    now = ctx.clock.unix_timestamp
    if not record.is_unlocked(now):
        raise PeriodNotEnded(
            f"vesting period ends at {record.end_time}, current time is {now}",
            details={"end_time": record.end_time, "now": now, "remaining": record.end_time - now},
        )

    if receiver.key != record.receiver:
        raise AccountMismatch(
            f"receiver {receiver.key} does not match recorded receiver {record.receiver}",
            details={"receiver": str(receiver.key), "expected": str(record.receiver)},
        )

    authority, proof = derive_authority(ctx.program_id, record_slot.key)

    claimed = record.mark_claimed()
    encode_into(claimed, slot_data)

    ctx.transfer.transfer(
        source=vault.key,
        destination=record.receiver,
        amount=record.amount,
        authority=authority,
        signers=ctx.signers,
        proof=proof,
    )

    logger.info(
        "Vesting schedule claimed",
        extra={
            "event": "vesting.claimed",
            "record_slot": str(record_slot.key),
            "receiver": record.receiver.short(),
            "amount": record.amount,
            "claimed_at": now,
        },
    )
    return claimed
