"""Sign-and-submit relay for native NEAR transfers.

This module validates transfer requests, converts amounts to yoctoNEAR,
and builds, signs and broadcasts the transaction.
"""

from chainweaver.relay.base import (
    FailureKind,
    InvalidAmountError,
    InvalidFieldError,
    LookupResult,
    MissingFieldError,
    NetworkError,
    RelayError,
    RelayInputError,
    SubmissionResult,
    TransactionOutcome,
    TransferRequest,
)
from chainweaver.relay.service import TransferRelay
from chainweaver.relay.units import to_atomic_units
from chainweaver.relay.validation import validate_transfer

__all__ = [
    "FailureKind",
    "InvalidAmountError",
    "InvalidFieldError",
    "LookupResult",
    "MissingFieldError",
    "NetworkError",
    "RelayError",
    "RelayInputError",
    "SubmissionResult",
    "TransactionOutcome",
    "TransferRelay",
    "TransferRequest",
    "to_atomic_units",
    "validate_transfer",
]
