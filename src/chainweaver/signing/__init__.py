"""Transaction signing.

Provides the key materializer that turns a caller-supplied secret into an
in-memory signing capability.
"""

from chainweaver.signing.base import (
    InvalidCredentialError,
    KeyType,
    PublicKey,
    SigningCredential,
    SigningError,
)
from chainweaver.signing.local import Ed25519Credential, materialize

__all__ = [
    "Ed25519Credential",
    "InvalidCredentialError",
    "KeyType",
    "PublicKey",
    "SigningCredential",
    "SigningError",
    "materialize",
]
