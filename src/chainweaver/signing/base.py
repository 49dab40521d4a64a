"""Base interfaces for transaction signing.

Signing flow:
1. Materialize the caller's secret into a credential bound to one account
2. Serialize the unsigned transaction
3. Credential signs the transaction hash (key material never leaves it)
4. Attach signature and broadcast
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum

import base58

logger = logging.getLogger(__name__)


class KeyType(IntEnum):
    """Key curve tag as used in NEAR's borsh encoding."""
    ED25519 = 0
    SECP256K1 = 1


@dataclass(frozen=True)
class PublicKey:
    """Public half of a signing key.

    Attributes:
        key_type: Curve tag
        data: Raw public key bytes (32 bytes for ed25519)
    """
    key_type: KeyType
    data: bytes

    def __str__(self) -> str:
        return f"{self.key_type.name.lower()}:{base58.b58encode(self.data).decode()}"


class SigningCredential(ABC):
    """Signing capability bound to one account on one network.

    Implementations hold key material privately and expose only a
    sign operation. The secret cannot be read back out.
    """

    def __init__(self, account_id: str, network_id: str):
        self.account_id = account_id
        self.network_id = network_id

    @property
    @abstractmethod
    def public_key(self) -> PublicKey:
        """Public key matching the signing key."""
        pass

    @abstractmethod
    def sign(self, payload: bytes) -> bytes:
        """Sign an arbitrary byte payload.

        Args:
            payload: Bytes to sign

        Returns:
            Raw signature bytes
        """
        pass

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(account_id={self.account_id!r}, "
            f"network_id={self.network_id!r}, public_key={str(self.public_key)!r})"
        )


class SigningError(Exception):
    """Exception raised when signing fails."""
    pass


class InvalidCredentialError(SigningError):
    """Secret key does not decode into a usable signing key."""

    http_status = 400
