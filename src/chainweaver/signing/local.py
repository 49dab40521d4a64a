"""Local ed25519 signing.

Keys arrive with every request and live in memory only for the duration
of that request. Accepted format is NEAR's extended secret key:

    ed25519:<base58(32-byte seed || 32-byte public key)>

The curve prefix is optional and defaults to ed25519.
"""

import logging

import base58
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from chainweaver.signing.base import (
    InvalidCredentialError,
    KeyType,
    PublicKey,
    SigningCredential,
)

logger = logging.getLogger(__name__)

SEED_LENGTH = 32
EXTENDED_KEY_LENGTH = 64


class Ed25519Credential(SigningCredential):
    """In-memory ed25519 signing capability."""

    def __init__(self, account_id: str, network_id: str, private_key: Ed25519PrivateKey):
        super().__init__(account_id, network_id)
        self._private_key = private_key
        raw = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self._public_key = PublicKey(KeyType.ED25519, raw)

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    def sign(self, payload: bytes) -> bytes:
        return self._private_key.sign(payload)

    def __getstate__(self):
        raise TypeError("Signing credentials cannot be serialized")


def _decode_secret(secret: str) -> bytes:
    """Split off the curve prefix and base58-decode the key body."""
    if ":" in secret:
        curve, encoded = secret.split(":", 1)
    else:
        curve, encoded = "ed25519", secret

    if curve.lower() != "ed25519":
        raise InvalidCredentialError("Unsupported key type. Only ed25519 keys are accepted.")

    try:
        return base58.b58decode(encoded.strip())
    except ValueError:
        raise InvalidCredentialError("Private key is not valid base58") from None


def materialize(secret: str, account_id: str, network_id: str) -> Ed25519Credential:
    """Turn a raw secret string into a signing credential.

    Args:
        secret: Encoded extended secret key
        account_id: Account the key signs for
        network_id: Network the account lives on

    Returns:
        Ed25519Credential bound to the account

    Raises:
        InvalidCredentialError: Malformed encoding, wrong length or a public
            key half that does not match the seed
    """
    if not isinstance(secret, str) or not secret:
        raise InvalidCredentialError("Private key must be a non-empty string")

    decoded = _decode_secret(secret)
    if len(decoded) != EXTENDED_KEY_LENGTH:
        raise InvalidCredentialError(
            f"Private key must decode to {EXTENDED_KEY_LENGTH} bytes, got {len(decoded)}"
        )

    private_key = Ed25519PrivateKey.from_private_bytes(decoded[:SEED_LENGTH])
    credential = Ed25519Credential(account_id, network_id, private_key)

    # Trailing half must be the public key derived from the seed
    if credential.public_key.data != decoded[SEED_LENGTH:]:
        raise InvalidCredentialError("Private key checksum mismatch: public key does not match seed")

    logger.debug(f"Materialized signing key {credential.public_key} for {account_id}")
    return credential
