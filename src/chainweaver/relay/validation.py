"""Request validation for the sign-and-send relay."""

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from chainweaver.relay.base import InvalidFieldError, MissingFieldError, TransferRequest

REQUIRED_FIELDS = ("signerId", "privateKey", "receiverId", "amount")

# NEAR account ID rules: 2-64 chars, lowercase parts joined by '.', '-' or '_'
ACCOUNT_ID_PATTERN = re.compile(r"^(([a-z\d]+[\-_])*[a-z\d]+\.)*([a-z\d]+[\-_])*[a-z\d]+$")
MIN_ACCOUNT_ID_LENGTH = 2
MAX_ACCOUNT_ID_LENGTH = 64


@dataclass(frozen=True)
class ValidatedTransfer:
    """Validated request plus the secret it arrived with.

    The secret stays out of repr so the object is safe to log.
    """
    transfer: TransferRequest
    secret: str

    def __repr__(self) -> str:
        return f"ValidatedTransfer(transfer={self.transfer!r}, secret='***')"


def is_valid_account_id(account_id: str) -> bool:
    """Check NEAR account ID syntax."""
    if not MIN_ACCOUNT_ID_LENGTH <= len(account_id) <= MAX_ACCOUNT_ID_LENGTH:
        return False
    return ACCOUNT_ID_PATTERN.match(account_id) is not None


def _require_string(payload: dict, field: str) -> str:
    value = payload[field]
    if not isinstance(value, str) or not value:
        raise InvalidFieldError(field, f"{field} must be a non-empty string.")
    return value


def _require_amount(value: Any) -> Decimal:
    # bool is an int subclass; JSON true/false is not an amount
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidFieldError("amount", "amount must be a positive number.")

    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidFieldError("amount", "amount must be a positive number.")
        value = Decimal(repr(value))
    elif isinstance(value, int):
        value = Decimal(value)

    if not value.is_finite() or value <= 0:
        raise InvalidFieldError("amount", "amount must be a positive number.")
    return value


def validate_transfer(payload: Any) -> ValidatedTransfer:
    """Validate a sign-and-send request body.

    Args:
        payload: Decoded JSON body

    Returns:
        ValidatedTransfer

    Raises:
        MissingFieldError: A required field is absent or null
        InvalidFieldError: A field has the wrong type or shape
    """
    if not isinstance(payload, dict):
        raise InvalidFieldError("body", "Request body must be a JSON object.")

    for field in REQUIRED_FIELDS:
        if payload.get(field) is None:
            raise MissingFieldError(field)

    signer_id = _require_string(payload, "signerId")
    secret = _require_string(payload, "privateKey")
    receiver_id = _require_string(payload, "receiverId")

    for field, account_id in (("signerId", signer_id), ("receiverId", receiver_id)):
        if not is_valid_account_id(account_id):
            raise InvalidFieldError(field, f"{field} is not a valid account ID.")

    amount = _require_amount(payload["amount"])

    return ValidatedTransfer(
        transfer=TransferRequest(signer_id=signer_id, receiver_id=receiver_id, amount=amount),
        secret=secret,
    )
