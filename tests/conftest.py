"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Optional

import base58
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["NEAR_NETWORK_ID"] = "testnet"
os.environ["NEAR_RPC_URL"] = "http://near-rpc.test"
os.environ["DEBUG"] = "true"

from chainweaver.config import NetworkConfig
from chainweaver.relay import LookupResult, NetworkError, TransactionOutcome
from chainweaver.relay.session import AccessKeyState, NetworkSession
from chainweaver.relay.transaction import SignedTransaction
from chainweaver.utils.locks import clear_account_locks

SIGNER_ID = "bot.testnet"
RECEIVER_ID = "alice.testnet"
BLOCK_HASH = base58.b58encode(bytes(range(32))).decode()


def make_secret(seed: bytes = b"\x01" * 32, tamper: bool = False) -> str:
    """Build an ed25519:<base58(seed || pubkey)> secret from a seed."""
    private_key = Ed25519PrivateKey.from_private_bytes(seed)
    public = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    if tamper:
        public = bytes([public[0] ^ 0xFF]) + public[1:]
    return "ed25519:" + base58.b58encode(seed + public).decode()


class FakeNetwork:
    """In-memory stand-in for the NEAR RPC node.

    Records every session opened so tests can assert on lifecycle.
    """

    def __init__(self):
        self.nonce = 41
        self.block_hash = BLOCK_HASH
        self.access_key_error: Optional[NetworkError] = None
        self.broadcast_error: Optional[NetworkError] = None
        self.broadcast_delay = 0.0
        self.broadcast_hash: Optional[str] = None
        self.lookup_result: Optional[LookupResult] = None
        self.sessions: list["FakeSession"] = []
        self.broadcasts: list[SignedTransaction] = []

    def session_factory(self, config: NetworkConfig) -> "FakeSession":
        session = FakeSession(config, self)
        self.sessions.append(session)
        return session


class FakeSession(NetworkSession):
    def __init__(self, config: NetworkConfig, network: FakeNetwork):
        super().__init__(config)
        self.network = network
        self.closed = False

    async def view_access_key(self, account_id, public_key):
        if self.network.access_key_error:
            raise self.network.access_key_error
        return AccessKeyState(nonce=self.network.nonce, block_hash=self.network.block_hash)

    async def broadcast(self, transaction):
        self.network.broadcasts.append(transaction)
        if self.network.broadcast_delay:
            await asyncio.sleep(self.network.broadcast_delay)
        if self.network.broadcast_error:
            raise self.network.broadcast_error
        return self.network.broadcast_hash or transaction.hash

    async def transaction_status(self, tx_hash, sender_id):
        return self.network.lookup_result or LookupResult(tx_hash, TransactionOutcome.INCLUDED)

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_locks():
    """Clear account locks before each test."""
    clear_account_locks()
    yield
    clear_account_locks()


@pytest.fixture
def network_config() -> NetworkConfig:
    return NetworkConfig(
        network_id="testnet",
        rpc_url="http://near-rpc.test",
        decimals=24,
        submission_timeout=2.0,
    )


@pytest.fixture
def fake_network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def secret() -> str:
    return make_secret()


@pytest.fixture
def valid_payload(secret) -> dict:
    return {
        "signerId": SIGNER_ID,
        "privateKey": secret,
        "receiverId": RECEIVER_ID,
        "amount": 50,
    }
