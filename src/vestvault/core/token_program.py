"""
Token Transfer Collaborator.

The vesting program never moves value itself; it asks a TransferService to
move `amount` from a source token account to a destination, authorized either
by a transaction signer or by a SigningProof for a program-derived authority.

`TokenProgram` is the in-memory reference service backed by the host Ledger.
Security checks:
- Positive integer amounts only
- Both token accounts must exist
- Presented authority must control the source account
- Authority must have signed, or be proven by the invoking program
- Source balance must cover the amount
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Optional, Protocol

from vestvault.core.authority import SigningProof
from vestvault.core.keys import Pubkey
from vestvault.core.ledger import Ledger, TokenAccount
from vestvault.core.vesting_exceptions import (
    AuthorityMismatch,
    InsufficientFunds,
    InvalidTransferAmount,
    MissingAuthoritySignature,
    TokenAccountNotFound,
)

logger = logging.getLogger(__name__)


class TransferService(Protocol):
    """Interface of the external asset-transfer primitive."""

    def transfer(
        self,
        source: Pubkey,
        destination: Pubkey,
        amount: int,
        authority: Pubkey,
        signers: AbstractSet[Pubkey],
        proof: Optional[SigningProof] = None,
    ) -> None:
        ...

    def balance_of(self, account: Pubkey) -> int:
        ...

    def authority_of(self, account: Pubkey) -> Pubkey:
        ...


class TokenProgram:
    """Reference TransferService over the host ledger's token accounts."""

    def __init__(self, ledger: Ledger, invoking_program: Pubkey):
        self.ledger = ledger
        self.invoking_program = invoking_program

    def _require_account(self, address: Pubkey, role: str) -> TokenAccount:
        token_account = self.ledger.token_accounts.get(address)
        if token_account is None:
            raise TokenAccountNotFound(
                f"{role} token account {address} does not exist",
                details={"role": role, "account": str(address)},
            )
        return token_account

    def balance_of(self, account: Pubkey) -> int:
        return self._require_account(account, "queried").balance

    def authority_of(self, account: Pubkey) -> Pubkey:
        return self._require_account(account, "queried").authority

    def transfer(
        self,
        source: Pubkey,
        destination: Pubkey,
        amount: int,
        authority: Pubkey,
        signers: AbstractSet[Pubkey],
        proof: Optional[SigningProof] = None,
    ) -> None:
        """
        Move tokens between two token accounts.

        Raises:
            TransferError: If any transfer precondition fails
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidTransferAmount(
                f"transfer amount must be a positive integer, got {amount!r}",
                details={"amount": amount},
            )

        source_account = self._require_account(source, "source")
        destination_account = self._require_account(destination, "destination")

        if source_account.authority != authority:
            raise AuthorityMismatch(
                f"{authority} does not control token account {source}",
                details={
                    "source": str(source),
                    "expected_authority": str(source_account.authority),
                    "presented_authority": str(authority),
                },
            )

        signed = authority in signers
        proven = (
            proof is not None
            and proof.address == authority
            and proof.verify(self.invoking_program)
        )
        if not (signed or proven):
            raise MissingAuthoritySignature(
                f"authority {authority} did not sign the transfer",
                details={"authority": str(authority)},
            )

        if source_account.balance < amount:
            raise InsufficientFunds(
                f"transfer amount exceeds balance ({amount} > {source_account.balance})",
                details={"source": str(source), "amount": amount, "balance": source_account.balance},
            )

        source_account.balance -= amount
        destination_account.balance += amount

        logger.debug(
            "Token transfer",
            extra={
                "event": "token.transfer",
                "source": source.short(),
                "destination": destination.short(),
                "amount": amount,
                "derived_signer": proven and not signed,
            },
        )
