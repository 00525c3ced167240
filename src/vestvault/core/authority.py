"""
Vault Authority Derivation

Derives a keyless signing authority for the vault of one vesting record.
The address is a SHA-256 digest over the seeds, a bump byte and the program id,
chosen so that it is not a valid ed25519 point: no private key can exist for
it, and only the owning program can vouch for it by presenting a SigningProof.

Seeds are the constant tag ``b"vesting"`` and the record slot's own identity,
both of which are fixed for the life of the record.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Sequence

from vestvault.core.keys import Pubkey
from vestvault.core.vesting_exceptions import AuthorityError

logger = logging.getLogger(__name__)

VAULT_SEED = b"vesting"
PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LEN = 32
MAX_SEEDS = 16

# edwards25519: -x^2 + y^2 = 1 + d*x^2*y^2 over GF(2^255 - 19)
_FIELD_PRIME = 2**255 - 19
_EDWARDS_D = -121665 * pow(121666, _FIELD_PRIME - 2, _FIELD_PRIME) % _FIELD_PRIME


def is_on_curve(candidate: bytes) -> bool:
    """True when `candidate` decompresses to a point of the ed25519 curve.

    Plain curve membership: small-order and torsion points count as on the
    curve. The encoded y is reduced modulo the field prime and the sign bit is
    ignored, so a point exists exactly when x^2 = (y^2 - 1) / (d*y^2 + 1) has
    a square root.
    """
    if len(candidate) != 32:
        raise ValueError(f"curve points are encoded in 32 bytes, got {len(candidate)}")
    p = _FIELD_PRIME
    y = (int.from_bytes(candidate, "little") & ((1 << 255) - 1)) % p
    y_squared = y * y % p
    numerator = (y_squared - 1) % p
    denominator = (_EDWARDS_D * y_squared + 1) % p
    x_squared = numerator * pow(denominator, p - 2, p) % p
    return x_squared == 0 or pow(x_squared, (p - 1) // 2, p) == 1


def _validate_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise AuthorityError(
            f"at most {MAX_SEEDS} seeds allowed, got {len(seeds)}",
            details={"seed_count": len(seeds)},
        )
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise AuthorityError(
                f"seed exceeds {MAX_SEED_LEN} bytes",
                details={"seed_length": len(seed)},
            )


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """Hash seeds into an address, rejecting results that land on the curve."""
    _validate_seeds(seeds)
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(program_id.raw)
    hasher.update(PDA_MARKER)
    candidate = hasher.digest()
    if is_on_curve(candidate):
        raise AuthorityError("derived address lies on the ed25519 curve")
    return Pubkey(candidate)


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Search bump bytes from 255 downwards for the first off-curve address."""
    _validate_seeds(list(seeds) + [b"\x00"])
    for bump in range(255, -1, -1):
        try:
            address = create_program_address([*seeds, bytes([bump])], program_id)
        except AuthorityError:
            continue
        return address, bump
    raise AuthorityError("no bump seed produced an off-curve address")


@dataclass(frozen=True)
class SigningProof:
    """Evidence that `program_id` may sign for `address` during one invocation.

    Not secret material: the token program re-derives the address from the
    seeds and bump and checks that the invoking program matches.
    """

    program_id: Pubkey
    seeds: tuple[bytes, ...]
    bump: int
    address: Pubkey

    def signer_seeds(self) -> list[bytes]:
        return [*self.seeds, bytes([self.bump])]

    def verify(self, invoking_program: Pubkey) -> bool:
        if invoking_program != self.program_id:
            return False
        try:
            return create_program_address(self.signer_seeds(), self.program_id) == self.address
        except AuthorityError:
            return False


def vault_seeds(record_slot: Pubkey) -> tuple[bytes, ...]:
    return (VAULT_SEED, record_slot.raw)


def derive_authority(program_id: Pubkey, record_slot: Pubkey) -> tuple[Pubkey, SigningProof]:
    """Derive the vault authority for one record slot.

    Args:
        program_id: Identity of the vesting program
        record_slot: Identity of the record's storage slot

    Returns:
        Tuple of (authority address, signing proof for this program)
    """
    seeds = vault_seeds(record_slot)
    address, bump = find_program_address(seeds, program_id)
    logger.debug(
        "Vault authority derived",
        extra={
            "event": "vesting.authority_derived",
            "record_slot": record_slot.short(),
            "authority": address.short(),
            "bump": bump,
        },
    )
    return address, SigningProof(program_id=program_id, seeds=seeds, bump=bump, address=address)
