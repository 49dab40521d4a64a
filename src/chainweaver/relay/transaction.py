"""NEAR transfer transaction encoding.

Transactions are borsh-serialized:

    Transaction {
        signer_id: string,         u32 length + utf-8
        public_key: PublicKey,     u8 key type + 32 bytes
        nonce: u64,
        receiver_id: string,
        block_hash: [u8; 32],
        actions: Vec<Action>,      u32 count + actions
    }
    Action::Transfer { deposit: u128 }   enum tag 3

The transaction hash is sha256 of the serialized transaction; that digest
is what gets signed and, base58 encoded, it is the transaction id.
"""

import hashlib
import struct
from dataclasses import dataclass

import base58

from chainweaver.signing.base import KeyType, PublicKey, SigningCredential

TRANSFER_ACTION_TAG = 3
BLOCK_HASH_LENGTH = 32
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


def _u8(value: int) -> bytes:
    return struct.pack("<B", value)


def _u32(value: int) -> bytes:
    return struct.pack("<I", value)


def _u64(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"Value out of u64 range: {value}")
    return struct.pack("<Q", value)


def _u128(value: int) -> bytes:
    if not 0 <= value <= U128_MAX:
        raise ValueError(f"Value out of u128 range: {value}")
    return value.to_bytes(16, "little")


def _string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return _u32(len(raw)) + raw


def _public_key(key: PublicKey) -> bytes:
    return _u8(int(key.key_type)) + key.data


@dataclass(frozen=True)
class TransferTransaction:
    """Unsigned single-action transfer."""
    signer_id: str
    public_key: PublicKey
    nonce: int
    receiver_id: str
    block_hash: bytes
    deposit: int

    def serialize(self) -> bytes:
        if len(self.block_hash) != BLOCK_HASH_LENGTH:
            raise ValueError(f"Block hash must be {BLOCK_HASH_LENGTH} bytes")
        return b"".join(
            [
                _string(self.signer_id),
                _public_key(self.public_key),
                _u64(self.nonce),
                _string(self.receiver_id),
                self.block_hash,
                _u32(1),
                _u8(TRANSFER_ACTION_TAG),
                _u128(self.deposit),
            ]
        )

    def digest(self) -> bytes:
        return hashlib.sha256(self.serialize()).digest()

    @property
    def hash(self) -> str:
        """Base58 transaction id, known before broadcast."""
        return base58.b58encode(self.digest()).decode()


@dataclass(frozen=True)
class SignedTransaction:
    transaction: TransferTransaction
    signature: bytes

    @property
    def hash(self) -> str:
        return self.transaction.hash

    def serialize(self) -> bytes:
        return (
            self.transaction.serialize()
            + _u8(int(self.transaction.public_key.key_type))
            + self.signature
        )


def build_transfer(
    credential: SigningCredential,
    receiver_id: str,
    deposit: int,
    nonce: int,
    block_hash: str,
) -> TransferTransaction:
    """Build an unsigned transfer from resolved access key state.

    Args:
        credential: Signer's credential (supplies account and public key)
        receiver_id: Receiving account
        deposit: Amount in atomic units
        nonce: Nonce to use (access key nonce + 1)
        block_hash: Recent block hash, base58 encoded
    """
    return TransferTransaction(
        signer_id=credential.account_id,
        public_key=credential.public_key,
        nonce=nonce,
        receiver_id=receiver_id,
        block_hash=base58.b58decode(block_hash),
        deposit=deposit,
    )


def sign_transaction(
    transaction: TransferTransaction, credential: SigningCredential
) -> SignedTransaction:
    """Sign the transaction digest with the credential."""
    if credential.public_key.key_type != KeyType.ED25519:
        raise ValueError(f"Unsupported key type: {credential.public_key.key_type.name}")
    return SignedTransaction(transaction, credential.sign(transaction.digest()))
