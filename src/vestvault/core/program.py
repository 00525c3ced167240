"""
Vesting program entrypoint and host runtime.

`VestingProgram.process_instruction` is the single entrypoint: it decodes the
instruction data, looks up the handler for the decoded instruction and runs
it against the invocation context.

`ProgramRuntime` plays the host: it verifies transaction signatures, resolves the
instruction's accounts, builds the clock and token program for the
invocation, and executes everything inside one ledger transaction so that a
failure at any step leaves no trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional

from vestvault.core import config, lifecycle
from vestvault.core.instruction import (
    ClaimVesting,
    InitializeVesting,
    Instruction,
    VestingInstruction,
    decode_instruction,
    instruction_name,
)
from vestvault.core.keys import Keypair, Pubkey, verify_signature
from vestvault.core.ledger import AccountInfo, Clock, Ledger, Rent, system_time
from vestvault.core.lifecycle import InvocationContext
from vestvault.core.state_codec import VestingRecord
from vestvault.core.token_program import TokenProgram
from vestvault.core.vesting_exceptions import (
    Unauthorized,
    VestingError,
    get_error_context,
)
from vestvault.core.vesting_metrics import VestingMetrics, get_vesting_metrics

logger = logging.getLogger(__name__)

Handler = Callable[[InvocationContext, VestingInstruction], VestingRecord]


def _handle_initialize(ctx: InvocationContext, instruction: InitializeVesting) -> VestingRecord:
    return lifecycle.initialize(ctx, instruction.amount, instruction.end_time)


def _handle_claim(ctx: InvocationContext, instruction: ClaimVesting) -> VestingRecord:
    return lifecycle.claim(ctx)


HANDLERS: Dict[type, Handler] = {
    InitializeVesting: _handle_initialize,
    ClaimVesting: _handle_claim,
}


class VestingProgram:
    """The vesting program bound to its own identity."""

    def __init__(self, program_id: Pubkey, metrics: Optional[VestingMetrics] = None):
        self.program_id = program_id
        self.metrics = metrics or get_vesting_metrics()

    @classmethod
    def from_config(cls, metrics: Optional[VestingMetrics] = None) -> "VestingProgram":
        """Program bound to the identity configured for the active network."""
        return cls(config.Config.PROGRAM_ID, metrics=metrics)

    def process_instruction(self, ctx: InvocationContext, data: bytes) -> VestingRecord:
        """
        Decode and execute one instruction.

        Args:
            ctx: Invocation context supplied by the host
            data: Raw instruction data (opcode byte + payload)

        Returns:
            The vesting record as left by the instruction

        Raises:
            VestingError: Any rejected precondition or collaborator failure
        """
        name = "unknown"
        try:
            instruction = decode_instruction(data)
            name = instruction.NAME
            record = HANDLERS[type(instruction)](ctx, instruction)
        except VestingError as exc:
            self.metrics.record_failure(name, type(exc).__name__)
            raise

        self.metrics.record_success(name)
        if isinstance(instruction, InitializeVesting):
            self.metrics.record_locked(record.amount)
        else:
            self.metrics.record_released(record.amount)
        return record


@dataclass
class Transaction:
    """A single-instruction transaction carrying its signers' signatures."""

    instruction: Instruction
    signatures: Dict[Pubkey, bytes] = field(default_factory=dict)

    def message(self) -> bytes:
        parts = [self.instruction.program_id.raw]
        for meta in self.instruction.accounts:
            flags = (1 if meta.is_signer else 0) | (2 if meta.is_writable else 0)
            parts.append(meta.pubkey.raw + bytes([flags]))
        parts.append(self.instruction.data)
        return b"".join(parts)

    def sign(self, *keypairs: Keypair) -> "Transaction":
        message = self.message()
        for keypair in keypairs:
            self.signatures[keypair.pubkey] = keypair.sign(message)
        return self


class ProgramRuntime:
    """Host executor: one atomic, serialized invocation per submitted transaction."""

    def __init__(
        self,
        ledger: Ledger,
        program: VestingProgram,
        rent: Optional[Rent] = None,
        time_provider: Optional[Callable[[], int]] = None,
    ):
        self.ledger = ledger
        self.program = program
        self.rent = rent if rent is not None else config.Config.RENT
        self._time_provider = time_provider or system_time

    def _verify_signatures(self, transaction: Transaction) -> frozenset:
        message = transaction.message()
        for pubkey, signature in transaction.signatures.items():
            if not verify_signature(pubkey, message, signature):
                raise Unauthorized(
                    f"signature verification failed for {pubkey}",
                    details={"signer": str(pubkey)},
                )
        return frozenset(transaction.signatures)

    def _authorize(self, transaction: Transaction) -> frozenset:
        """Check the target program and every signature before touching the ledger."""
        instruction = transaction.instruction
        try:
            if instruction.program_id != self.program.program_id:
                raise Unauthorized(
                    f"instruction targets program {instruction.program_id}, runtime hosts {self.program.program_id}",
                    details={"program_id": str(instruction.program_id)},
                )
            return self._verify_signatures(transaction)
        except Unauthorized as exc:
            self.program.metrics.record_failure(instruction_name(instruction.data), type(exc).__name__)
            raise

    def execute(self, instruction: Instruction, signers: Iterable[Keypair] = ()) -> VestingRecord:
        """Sign `instruction` with `signers` and submit it."""
        return self.submit(Transaction(instruction).sign(*signers))

    def submit(self, transaction: Transaction) -> VestingRecord:
        """
        Execute a signed transaction as one all-or-nothing unit.

        Args:
            transaction: Instruction plus signatures over its message

        Returns:
            The vesting record as left by the instruction

        Raises:
            VestingError: The invocation was rejected; ledger state is unchanged
        """
        instruction = transaction.instruction
        try:
            signer_keys = self._authorize(transaction)
            with self.ledger.transaction() as ledger:
                accounts = [
                    AccountInfo(
                        ledger.get_account(meta.pubkey),
                        is_signer=meta.is_signer and meta.pubkey in signer_keys,
                        is_writable=meta.is_writable,
                        program_id=self.program.program_id,
                    )
                    for meta in instruction.accounts
                ]
                ctx = InvocationContext(
                    program_id=self.program.program_id,
                    accounts=accounts,
                    signers=signer_keys,
                    clock=Clock.from_provider(self._time_provider),
                    rent=self.rent,
                    transfer=TokenProgram(ledger, invoking_program=self.program.program_id),
                )
                return self.program.process_instruction(ctx, instruction.data)
        except VestingError as exc:
            logger.warning(
                "Vesting instruction rejected",
                extra={"event": "vesting.rejected", **get_error_context(exc)},
            )
            raise
