"""Base types for the sign-and-submit relay.

Relay flow:
1. Validate the request fields
2. Convert the human amount into atomic units
3. Materialize the signing key
4. Open a network session, resolve the access key, broadcast the transfer
5. Normalize the outcome into a SubmissionResult
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class RelayStage(str, Enum):
    """Per-call state. Transitions only move forward."""
    VALIDATING = "validating"
    CONVERTING_AMOUNT = "converting_amount"
    MATERIALIZING_KEY = "materializing_key"
    SUBMITTING = "submitting_transaction"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Category of a network-side failure."""
    CONNECTION = "connection_error"
    TIMEOUT = "timeout"
    REJECTED = "rejected"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCESS_KEY_NOT_FOUND = "access_key_not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    PROTOCOL = "protocol_error"


class TransactionOutcome(str, Enum):
    """Result of looking up a previously broadcast transaction."""
    INCLUDED = "included"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TransferRequest:
    """Validated transfer. Holds no key material."""
    signer_id: str
    receiver_id: str
    amount: Decimal


@dataclass(frozen=True)
class SubmissionResult:
    """Normalized outcome of one submission.

    Attributes:
        success: Whether the network included the transaction
        transaction_hash: Network-assigned transaction id on success
        kind: Failure category on failure
        message: Failure message on failure
        http_status: Transport status code when the failure came from HTTP
    """
    success: bool
    transaction_hash: Optional[str] = None
    kind: Optional[FailureKind] = None
    message: Optional[str] = None
    http_status: Optional[int] = None

    @classmethod
    def ok(cls, transaction_hash: str) -> "SubmissionResult":
        return cls(success=True, transaction_hash=transaction_hash)

    @classmethod
    def failed(
        cls, kind: FailureKind, message: str, http_status: Optional[int] = None
    ) -> "SubmissionResult":
        return cls(success=False, kind=kind, message=message, http_status=http_status)


@dataclass(frozen=True)
class LookupResult:
    """Status of a transaction looked up by hash."""
    transaction_hash: str
    outcome: TransactionOutcome
    message: Optional[str] = None


class RelayError(Exception):
    """Base exception for relay errors."""

    http_status = 500


class RelayInputError(RelayError):
    """Client supplied bad input. Never retried."""

    http_status = 400


class MissingFieldError(RelayInputError):
    """A required request field is absent."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}.")


class InvalidFieldError(RelayInputError):
    """A request field has the wrong type or shape."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InvalidAmountError(RelayInputError):
    """Amount is non-positive or cannot be represented in atomic units."""
    pass


class NetworkError(RelayError):
    """Session, account lookup or broadcast failed.

    Args:
        message: Failure reason, usually as reported by the network
        kind: Failure category
        transport_status: HTTP status code from the node when known
    """

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.PROTOCOL,
        transport_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.transport_status = transport_status
