"""
In-memory host ledger.

Models the pieces of the host platform the vesting program relies on without
reimplementing them in the program itself:
- Accounts with a lamport balance, an owning program and a data buffer
- Token accounts (balance + controlling authority) used by the token program
- Rent exemption policy and a per-invocation clock
- The atomic execution unit: one lock serializes invocations, and any
  exception restores the state captured when the unit began
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

from vestvault.core.keys import Pubkey
from vestvault.core.vesting_exceptions import AccountAccessError, get_error_context

logger = logging.getLogger(__name__)

ACCOUNT_STORAGE_OVERHEAD = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR = 3480
DEFAULT_EXEMPTION_THRESHOLD = 2.0


@dataclass
class Account:
    key: Pubkey
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    owner: Pubkey = field(default_factory=Pubkey.default)


@dataclass
class TokenAccount:
    address: Pubkey
    authority: Pubkey
    balance: int = 0


@dataclass(frozen=True)
class Rent:
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR
    exemption_threshold: float = DEFAULT_EXEMPTION_THRESHOLD

    def minimum_balance(self, data_len: int) -> int:
        return int((ACCOUNT_STORAGE_OVERHEAD + data_len) * self.lamports_per_byte_year * self.exemption_threshold)

    def is_exempt(self, lamports: int, data_len: int) -> bool:
        return lamports >= self.minimum_balance(data_len)


@dataclass(frozen=True)
class Clock:
    unix_timestamp: int

    @classmethod
    def from_provider(cls, time_provider: Callable[[], int]) -> "Clock":
        timestamp = time_provider()
        try:
            return cls(int(timestamp))
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc


def system_time() -> int:
    return int(time.time())


class AccountInfo:
    """A program's view of one account for the duration of an invocation."""

    def __init__(self, account: Account, is_signer: bool, is_writable: bool, program_id: Pubkey):
        self._account = account
        self.is_signer = is_signer
        self.is_writable = is_writable
        self._program_id = program_id

    @property
    def key(self) -> Pubkey:
        return self._account.key

    @property
    def lamports(self) -> int:
        return self._account.lamports

    @property
    def owner(self) -> Pubkey:
        return self._account.owner

    @property
    def data(self) -> bytes:
        return bytes(self._account.data)

    def data_len(self) -> int:
        return len(self._account.data)

    def writable_data(self) -> bytearray:
        """Mutable data buffer; only for writable accounts owned by the program."""
        if not self.is_writable:
            raise AccountAccessError(
                f"account {self.key} was not passed as writable",
                details={"account": str(self.key)},
            )
        if self._account.owner != self._program_id:
            raise AccountAccessError(
                f"account {self.key} is owned by {self._account.owner}, not {self._program_id}",
                details={"account": str(self.key), "owner": str(self._account.owner)},
            )
        return self._account.data

    def __repr__(self) -> str:
        return f"AccountInfo(key={self.key}, signer={self.is_signer}, writable={self.is_writable})"


class Ledger:
    """Account store with serialized, all-or-nothing execution units."""

    def __init__(self) -> None:
        self.accounts: Dict[Pubkey, Account] = {}
        self.token_accounts: Dict[Pubkey, TokenAccount] = {}
        self._lock = threading.RLock()

    # ==================== Account management ====================

    def create_account(
        self,
        key: Pubkey,
        lamports: int = 0,
        space: int = 0,
        owner: Optional[Pubkey] = None,
    ) -> Account:
        with self._lock:
            if key in self.accounts:
                raise ValueError(f"Account {key} already exists.")
            account = Account(
                key=key,
                lamports=lamports,
                data=bytearray(space),
                owner=owner or Pubkey.default(),
            )
            self.accounts[key] = account
            return account

    def get_account(self, key: Pubkey) -> Account:
        """Existing account, or a fresh zero-lamport system account."""
        with self._lock:
            account = self.accounts.get(key)
            if account is None:
                account = Account(key=key)
                self.accounts[key] = account
            return account

    def create_token_account(self, address: Pubkey, authority: Pubkey, balance: int = 0) -> TokenAccount:
        with self._lock:
            if address in self.token_accounts:
                raise ValueError(f"Token account {address} already exists.")
            token_account = TokenAccount(address=address, authority=authority, balance=balance)
            self.token_accounts[address] = token_account
            return token_account

    def token_balance(self, address: Pubkey) -> int:
        token_account = self.token_accounts.get(address)
        return token_account.balance if token_account else 0

    # ==================== Atomic execution ====================

    def _snapshot(self) -> tuple[Dict[Pubkey, Account], Dict[Pubkey, TokenAccount]]:
        return copy.deepcopy(self.accounts), copy.deepcopy(self.token_accounts)

    def _restore(self, snapshot: tuple[Dict[Pubkey, Account], Dict[Pubkey, TokenAccount]]) -> None:
        accounts, token_accounts = snapshot
        # Restore in place so AccountInfo views held by callers stay consistent.
        for key in list(self.accounts):
            if key not in accounts:
                del self.accounts[key]
        for key, saved in accounts.items():
            live = self.accounts.get(key)
            if live is None:
                self.accounts[key] = saved
            else:
                live.lamports = saved.lamports
                live.owner = saved.owner
                live.data[:] = saved.data
        self.token_accounts.clear()
        self.token_accounts.update(token_accounts)

    @contextmanager
    def transaction(self) -> Iterator["Ledger"]:
        """Run the body as one atomic unit.

        Invocations are serialized by the ledger lock. If the body raises,
        every account and token balance is restored and the error propagates.
        """
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield self
            except Exception as exc:
                self._restore(snapshot)
                logger.debug(
                    "Ledger transaction rolled back",
                    extra={"event": "ledger.rollback", **get_error_context(exc)},
                )
                raise
