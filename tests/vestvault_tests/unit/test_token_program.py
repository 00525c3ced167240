import pytest

from vestvault.core.authority import derive_authority
from vestvault.core.keys import Pubkey
from vestvault.core.ledger import Ledger
from vestvault.core.token_program import TokenProgram
from vestvault.core.vesting_exceptions import (
    AuthorityMismatch,
    InsufficientFunds,
    InvalidTransferAmount,
    MissingAuthoritySignature,
    TokenAccountNotFound,
    TransferError,
)


@pytest.fixture
def accounts():
    ledger = Ledger()
    program_id = Pubkey.new_unique()
    alice = Pubkey.new_unique()
    bob = Pubkey.new_unique()
    ledger.create_token_account(alice, authority=alice, balance=500)
    ledger.create_token_account(bob, authority=bob)
    return ledger, program_id, alice, bob


def test_signed_transfer_moves_balance(accounts):
    ledger, program_id, alice, bob = accounts
    tokens = TokenProgram(ledger, program_id)

    tokens.transfer(alice, bob, 200, authority=alice, signers={alice})

    assert tokens.balance_of(alice) == 300
    assert tokens.balance_of(bob) == 200


def test_unsigned_transfer_is_rejected(accounts):
    ledger, program_id, alice, bob = accounts
    tokens = TokenProgram(ledger, program_id)

    with pytest.raises(MissingAuthoritySignature):
        tokens.transfer(alice, bob, 200, authority=alice, signers=set())
    assert tokens.balance_of(alice) == 500


def test_wrong_authority_is_rejected(accounts):
    ledger, program_id, alice, bob = accounts
    tokens = TokenProgram(ledger, program_id)

    with pytest.raises(AuthorityMismatch):
        tokens.transfer(alice, bob, 1, authority=bob, signers={bob})


def test_overdraft_is_rejected(accounts):
    ledger, program_id, alice, bob = accounts
    tokens = TokenProgram(ledger, program_id)

    with pytest.raises(InsufficientFunds) as excinfo:
        tokens.transfer(alice, bob, 501, authority=alice, signers={alice})
    assert excinfo.value.recoverable


@pytest.mark.parametrize("amount", [0, -5, 1.5, True])
def test_invalid_amounts_are_rejected(accounts, amount):
    ledger, program_id, alice, bob = accounts
    tokens = TokenProgram(ledger, program_id)

    with pytest.raises(InvalidTransferAmount):
        tokens.transfer(alice, bob, amount, authority=alice, signers={alice})


def test_missing_accounts_are_rejected(accounts):
    ledger, program_id, alice, _ = accounts
    tokens = TokenProgram(ledger, program_id)

    with pytest.raises(TokenAccountNotFound):
        tokens.transfer(alice, Pubkey.new_unique(), 1, authority=alice, signers={alice})
    with pytest.raises(TokenAccountNotFound):
        tokens.authority_of(Pubkey.new_unique())


def test_derived_authority_transfers_with_proof(accounts):
    ledger, program_id, _, bob = accounts
    authority, proof = derive_authority(program_id, Pubkey.new_unique())
    vault = Pubkey.new_unique()
    ledger.create_token_account(vault, authority=authority, balance=100)
    tokens = TokenProgram(ledger, program_id)

    tokens.transfer(vault, bob, 100, authority=authority, signers=set(), proof=proof)

    assert tokens.balance_of(vault) == 0
    assert tokens.balance_of(bob) == 100


def test_proof_presented_by_other_program_is_rejected(accounts):
    ledger, program_id, _, bob = accounts
    authority, proof = derive_authority(program_id, Pubkey.new_unique())
    vault = Pubkey.new_unique()
    ledger.create_token_account(vault, authority=authority, balance=100)
    foreign = TokenProgram(ledger, invoking_program=Pubkey.new_unique())

    with pytest.raises(MissingAuthoritySignature):
        foreign.transfer(vault, bob, 100, authority=authority, signers=set(), proof=proof)


def test_proof_for_different_vault_is_rejected(accounts):
    ledger, program_id, _, bob = accounts
    authority, _ = derive_authority(program_id, Pubkey.new_unique())
    _, other_proof = derive_authority(program_id, Pubkey.new_unique())
    vault = Pubkey.new_unique()
    ledger.create_token_account(vault, authority=authority, balance=100)
    tokens = TokenProgram(ledger, program_id)

    with pytest.raises(TransferError):
        tokens.transfer(vault, bob, 100, authority=authority, signers=set(), proof=other_proof)
    assert tokens.balance_of(vault) == 100
