"""Ledger identities: 32-byte public keys and ed25519 keypairs."""

from __future__ import annotations

import hashlib
import itertools
from dataclasses import dataclass

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

PUBKEY_BYTES = 32

_unique_counter = itertools.count(1)


@dataclass(frozen=True, order=True)
class Pubkey:
    """A 32-byte ledger identity, rendered as base58 text."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError("Pubkey must be constructed from bytes.")
        if len(self.raw) != PUBKEY_BYTES:
            raise ValueError(f"Pubkey must be exactly {PUBKEY_BYTES} bytes, got {len(self.raw)}.")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_string(cls, text: str) -> "Pubkey":
        try:
            raw = base58.b58decode(text.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid base58 public key: {text!r}") from exc
        return cls(raw)

    @classmethod
    def default(cls) -> "Pubkey":
        return cls(bytes(PUBKEY_BYTES))

    @classmethod
    def new_unique(cls) -> "Pubkey":
        """Deterministic, process-unique key for tests and fixtures."""
        counter = next(_unique_counter)
        return cls(hashlib.sha256(b"vestvault-unique" + counter.to_bytes(8, "little")).digest())

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def __repr__(self) -> str:
        return f"Pubkey({self})"

    def short(self) -> str:
        return str(self)[:10]


class Keypair:
    """ed25519 keypair whose public half is a ledger identity."""

    def __init__(self, private_key: ed25519.Ed25519PrivateKey | None = None):
        self._private_key = private_key or ed25519.Ed25519PrivateKey.generate()
        raw_public = self._private_key.public_key().public_bytes(
            serialization.Encoding.Raw,
            serialization.PublicFormat.Raw,
        )
        self.pubkey = Pubkey(raw_public)

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        if len(seed) != 32:
            raise ValueError("Keypair seed must be exactly 32 bytes.")
        return cls(ed25519.Ed25519PrivateKey.from_private_bytes(seed))

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def __repr__(self) -> str:
        return f"Keypair(pubkey={self.pubkey})"


def verify_signature(pubkey: Pubkey, message: bytes, signature: bytes) -> bool:
    try:
        public_key = ed25519.Ed25519PublicKey.from_public_bytes(pubkey.raw)
        public_key.verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False
