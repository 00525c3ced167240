"""
Vesting program exception hierarchy.

Every rejected precondition maps to exactly one typed exception with a stable
integer code, so callers can branch on the error kind and decide whether to
resubmit. All errors abort the whole invocation; the host restores the
pre-invocation state before the exception reaches the caller.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class VestingErrorCode(IntEnum):
    """Stable error codes surfaced to callers."""

    # Program errors
    PERIOD_NOT_ENDED = 0
    ALREADY_INITIALIZED = 1
    INVALID_SCHEDULE = 2
    UNAUTHORIZED = 3
    RECORD_NOT_FOUND = 4
    CODEC_ERROR = 5
    ALREADY_CLAIMED = 6
    UNKNOWN_INSTRUCTION = 7
    INVALID_PAYLOAD = 8
    NOT_RENT_EXEMPT = 9
    MISSING_ACCOUNT = 10
    ACCOUNT_MISMATCH = 11
    AUTHORITY_ERROR = 12

    # Host / collaborator errors
    ACCOUNT_ACCESS = 100
    INSUFFICIENT_FUNDS = 101
    AUTHORITY_MISMATCH = 102
    MISSING_AUTHORITY_SIGNATURE = 103
    TOKEN_ACCOUNT_NOT_FOUND = 104
    INVALID_TRANSFER_AMOUNT = 105


class VestingError(Exception):
    """Base exception for all vesting program errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether resubmitting the same request could succeed later
    """

    code: Optional[VestingErrorCode] = None
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Lifecycle Errors ====================


class AlreadyInitialized(VestingError):
    """Raised when Initialize targets a record slot that is not empty."""

    code = VestingErrorCode.ALREADY_INITIALIZED


class InvalidSchedule(VestingError):
    """Raised when amount is zero/out of range or end_time is not in the future."""

    code = VestingErrorCode.INVALID_SCHEDULE


class Unauthorized(VestingError):
    """Raised when a required signer did not authorize the invocation."""

    code = VestingErrorCode.UNAUTHORIZED


class RecordNotFound(VestingError):
    """Raised when Claim targets an empty record slot."""

    code = VestingErrorCode.RECORD_NOT_FOUND


class PeriodNotEnded(VestingError):
    """Raised when Claim is attempted at or before the unlock time."""

    code = VestingErrorCode.PERIOD_NOT_ENDED
    recoverable = True  # Same request succeeds once the clock passes end_time


class AlreadyClaimed(VestingError):
    """Raised when Claim targets a record that has already been released."""

    code = VestingErrorCode.ALREADY_CLAIMED


class NotRentExempt(VestingError):
    """Raised when the record slot does not hold enough lamports to persist."""

    code = VestingErrorCode.NOT_RENT_EXEMPT


class MissingAccount(VestingError):
    """Raised when an instruction is submitted with too few accounts."""

    code = VestingErrorCode.MISSING_ACCOUNT


class AccountMismatch(VestingError):
    """Raised when a passed account does not match the one the record expects."""

    code = VestingErrorCode.ACCOUNT_MISMATCH


class AuthorityError(VestingError):
    """Raised when a vault authority cannot be derived from the given seeds."""

    code = VestingErrorCode.AUTHORITY_ERROR


# ==================== Codec Errors ====================


class CodecErrorKind(Enum):
    TRUNCATED = "truncated"
    INVALID_STATUS = "invalid_status"
    OUT_OF_RANGE = "out_of_range"


class CodecError(VestingError):
    """Raised when a record buffer cannot be encoded or decoded."""

    code = VestingErrorCode.CODEC_ERROR

    def __init__(self, message: str, kind: CodecErrorKind, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.kind = kind


# ==================== Dispatch Errors ====================


class DispatchError(VestingError):
    """Raised when instruction data cannot be routed to a handler."""


class UnknownInstruction(DispatchError):
    """Raised for an opcode with no registered handler."""

    code = VestingErrorCode.UNKNOWN_INSTRUCTION


class InvalidPayload(DispatchError):
    """Raised when the payload length does not match the opcode's layout."""

    code = VestingErrorCode.INVALID_PAYLOAD


# ==================== Host & Transfer Errors ====================


class HostError(VestingError):
    """Raised by the host platform or an external collaborator."""


class AccountAccessError(HostError):
    """Raised when a program writes an account it does not own or that is readonly."""

    code = VestingErrorCode.ACCOUNT_ACCESS


class TransferError(HostError):
    """Raised when the token program rejects a transfer."""


class InsufficientFunds(TransferError):
    """Raised when the source token account holds less than the amount."""

    code = VestingErrorCode.INSUFFICIENT_FUNDS
    recoverable = True  # Funder may top up and resubmit


class AuthorityMismatch(TransferError):
    """Raised when the presented authority does not control the source account."""

    code = VestingErrorCode.AUTHORITY_MISMATCH


class MissingAuthoritySignature(TransferError):
    """Raised when the authority neither signed nor was proven by a derived signer."""

    code = VestingErrorCode.MISSING_AUTHORITY_SIGNATURE


class TokenAccountNotFound(TransferError):
    """Raised when a source or destination token account does not exist."""

    code = VestingErrorCode.TOKEN_ACCOUNT_NOT_FOUND


class InvalidTransferAmount(TransferError):
    """Raised when a transfer amount is not a positive integer."""

    code = VestingErrorCode.INVALID_TRANSFER_AMOUNT


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Check if an exception represents a condition that may clear on resubmission.

    Args:
        exc: The exception to check

    Returns:
        True if resubmitting the same request later could succeed
    """
    if isinstance(exc, VestingError):
        return exc.recoverable
    return False


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, code and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, VestingError):
        if exc.code is not None:
            context["error_code"] = int(exc.code)
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, CodecError):
        context["codec_error_kind"] = exc.kind.value

    return context
