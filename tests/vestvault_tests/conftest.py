from dataclasses import dataclass

import pytest
from prometheus_client import CollectorRegistry

from vestvault.core.authority import derive_authority
from vestvault.core.instruction import claim_instruction, initialize_instruction
from vestvault.core.keys import Keypair, Pubkey
from vestvault.core.ledger import Ledger, Rent
from vestvault.core.program import ProgramRuntime, VestingProgram
from vestvault.core.state_codec import RECORD_LEN
from vestvault.core.vesting_metrics import VestingMetrics

START_TIME = 1_700_000_000
FUNDER_BALANCE = 10_000


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int):
        self.current_time += seconds

    def set(self, timestamp: int):
        self.current_time = timestamp


@dataclass
class VestingSetup:
    """Accounts for one vesting schedule plus helpers to build its instructions."""

    runtime: ProgramRuntime
    ledger: Ledger
    program_id: Pubkey
    funder: Keypair
    receiver: Pubkey
    record_slot: Pubkey
    vault: Pubkey
    vault_authority: Pubkey

    def initialize(self, amount: int, end_time: int, signers=None):
        instruction = initialize_instruction(
            self.program_id,
            self.record_slot,
            self.vault,
            self.funder.pubkey,
            self.receiver,
            amount,
            end_time,
        )
        return self.runtime.execute(instruction, signers=[self.funder] if signers is None else signers)

    def claim(self, receiver=None):
        instruction = claim_instruction(
            self.program_id,
            self.record_slot,
            self.vault,
            receiver or self.receiver,
        )
        return self.runtime.execute(instruction)

    def balance(self, address: Pubkey) -> int:
        return self.ledger.token_balance(address)

    def slot_data(self) -> bytes:
        return bytes(self.ledger.accounts[self.record_slot].data)


@pytest.fixture
def clock():
    return ManualClock(START_TIME)


@pytest.fixture
def metrics_registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(metrics_registry):
    return VestingMetrics(registry=metrics_registry)


@pytest.fixture
def program_id():
    return Pubkey.new_unique()


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def rent():
    return Rent()


@pytest.fixture
def runtime(ledger, program_id, metrics, rent, clock):
    program = VestingProgram(program_id, metrics=metrics)
    return ProgramRuntime(ledger, program, rent=rent, time_provider=clock.now)


def make_vesting_setup(runtime: ProgramRuntime, rent: Rent, funder_balance: int = FUNDER_BALANCE) -> VestingSetup:
    ledger = runtime.ledger
    program_id = runtime.program.program_id

    funder = Keypair()
    receiver = Keypair().pubkey
    record_slot = Pubkey.new_unique()
    vault = Pubkey.new_unique()
    vault_authority, _ = derive_authority(program_id, record_slot)

    ledger.create_account(
        record_slot,
        lamports=rent.minimum_balance(RECORD_LEN),
        space=RECORD_LEN,
        owner=program_id,
    )
    ledger.create_token_account(funder.pubkey, authority=funder.pubkey, balance=funder_balance)
    ledger.create_token_account(receiver, authority=receiver)
    ledger.create_token_account(vault, authority=vault_authority)

    return VestingSetup(
        runtime=runtime,
        ledger=ledger,
        program_id=program_id,
        funder=funder,
        receiver=receiver,
        record_slot=record_slot,
        vault=vault,
        vault_authority=vault_authority,
    )


@pytest.fixture
def vesting(runtime, rent):
    return make_vesting_setup(runtime, rent)


@pytest.fixture
def vesting_factory(runtime, rent):
    def _factory(funder_balance: int = FUNDER_BALANCE) -> VestingSetup:
        return make_vesting_setup(runtime, rent, funder_balance=funder_balance)

    return _factory
