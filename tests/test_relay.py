"""Tests for the transfer relay pipeline."""

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest

from chainweaver.relay import (
    FailureKind,
    InvalidAmountError,
    InvalidFieldError,
    MissingFieldError,
    NetworkError,
    TransactionOutcome,
    TransferRelay,
)
from chainweaver.relay.base import LookupResult
from chainweaver.signing import InvalidCredentialError, materialize
from chainweaver.utils.locks import AccountLock, active_account_locks

from conftest import RECEIVER_ID, SIGNER_ID, make_secret


@pytest.fixture
def relay(network_config, fake_network) -> TransferRelay:
    return TransferRelay(network_config, session_factory=fake_network.session_factory)


class TestRelaySuccess:
    """Happy path."""

    @pytest.mark.asyncio
    async def test_success_returns_hash(self, relay, fake_network, valid_payload):
        result = await relay.relay(valid_payload)

        assert result.success is True
        assert result.transaction_hash
        assert result.transaction_hash == fake_network.broadcasts[0].hash

    @pytest.mark.asyncio
    async def test_transaction_contents(self, relay, fake_network, valid_payload):
        await relay.relay(valid_payload)

        transaction = fake_network.broadcasts[0].transaction
        assert transaction.signer_id == SIGNER_ID
        assert transaction.receiver_id == RECEIVER_ID
        assert transaction.deposit == 50 * 10**24
        assert transaction.nonce == fake_network.nonce + 1

    @pytest.mark.asyncio
    async def test_network_assigned_hash_is_returned(self, relay, fake_network, valid_payload):
        fake_network.broadcast_hash = "NetworkAssignedHash"

        result = await relay.relay(valid_payload)

        assert result.transaction_hash == "NetworkAssignedHash"

    @pytest.mark.asyncio
    async def test_session_closed_after_success(self, relay, fake_network, valid_payload):
        await relay.relay(valid_payload)

        assert len(fake_network.sessions) == 1
        assert fake_network.sessions[0].closed


class TestRelayInputErrors:
    """Input errors raise and never reach the network."""

    @pytest.mark.asyncio
    async def test_missing_field(self, relay, fake_network, valid_payload):
        del valid_payload["amount"]

        with pytest.raises(MissingFieldError):
            await relay.relay(valid_payload)

        assert fake_network.sessions == []

    @pytest.mark.asyncio
    async def test_negative_amount(self, relay, fake_network, valid_payload):
        valid_payload["amount"] = -5

        with pytest.raises(InvalidFieldError, match="amount must be a positive number."):
            await relay.relay(valid_payload)

        assert fake_network.sessions == []

    @pytest.mark.asyncio
    async def test_amount_too_precise(self, relay, fake_network, valid_payload):
        valid_payload["amount"] = 1e-25

        with pytest.raises(InvalidAmountError):
            await relay.relay(valid_payload)

        assert fake_network.sessions == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("1e15"), Decimal("1e999999")])
    async def test_amount_too_large(self, relay, fake_network, valid_payload, amount):
        valid_payload["amount"] = amount

        with pytest.raises(InvalidAmountError, match="too large"):
            await relay.relay(valid_payload)

        assert fake_network.sessions == []

    @pytest.mark.asyncio
    async def test_undecodable_secret_never_opens_session(self, relay, fake_network, valid_payload):
        valid_payload["privateKey"] = make_secret(tamper=True)

        with pytest.raises(InvalidCredentialError):
            await relay.relay(valid_payload)

        assert fake_network.sessions == []


class TestRelayNetworkFailures:
    """Network failures become Failure results."""

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, relay, fake_network, valid_payload):
        fake_network.broadcast_error = NetworkError(
            "Sender bot.testnet does not have enough balance 1 for operation costing 50",
            FailureKind.INSUFFICIENT_BALANCE,
        )

        result = await relay.relay(valid_payload)

        assert result.success is False
        assert result.kind == FailureKind.INSUFFICIENT_BALANCE
        assert "does not have enough balance" in result.message
        assert result.http_status is None

    @pytest.mark.asyncio
    async def test_account_not_found(self, relay, fake_network, valid_payload):
        fake_network.access_key_error = NetworkError(
            f"Account {SIGNER_ID} does not exist", FailureKind.ACCOUNT_NOT_FOUND
        )

        result = await relay.relay(valid_payload)

        assert result.kind == FailureKind.ACCOUNT_NOT_FOUND
        assert fake_network.broadcasts == []
        assert fake_network.sessions[0].closed

    @pytest.mark.asyncio
    async def test_transport_status_is_kept(self, relay, fake_network, valid_payload):
        fake_network.access_key_error = NetworkError(
            "RPC request failed with HTTP 503", FailureKind.PROTOCOL, transport_status=503
        )

        result = await relay.relay(valid_payload)

        assert result.kind == FailureKind.PROTOCOL
        assert result.http_status == 503

    @pytest.mark.asyncio
    async def test_timeout_is_distinct_from_rejection(self, network_config, fake_network, valid_payload):
        fast_config = replace(network_config, submission_timeout=0.05)
        relay = TransferRelay(fast_config, session_factory=fake_network.session_factory)
        fake_network.broadcast_delay = 1.0

        result = await relay.relay(valid_payload)

        assert result.kind == FailureKind.TIMEOUT
        assert "timed out" in result.message
        assert fake_network.broadcasts[0].hash in result.message
        assert fake_network.sessions[0].closed

    @pytest.mark.asyncio
    async def test_no_retry_after_failure(self, relay, fake_network, valid_payload):
        fake_network.broadcast_error = NetworkError("rejected", FailureKind.REJECTED)

        await relay.relay(valid_payload)

        assert len(fake_network.broadcasts) == 1
        assert len(fake_network.sessions) == 1


class TestAccountSerialization:
    """Submissions for one account do not overlap."""

    @pytest.mark.asyncio
    async def test_lock_registry_empty_after_relay(self, relay, valid_payload):
        for index in range(5):
            payload = dict(valid_payload, signerId=f"user{index}.testnet")
            result = await relay.relay(payload)
            assert result.success is True

        assert active_account_locks() == 0

    @pytest.mark.asyncio
    async def test_same_account_submissions_are_serialized(self, relay, fake_network, valid_payload):
        fake_network.broadcast_delay = 0.05
        active = 0
        max_active = 0
        original = fake_network.session_factory

        def tracking_factory(config):
            session = original(config)
            inner_broadcast = session.broadcast

            async def broadcast(transaction):
                nonlocal active, max_active
                active += 1
                max_active = max(max_active, active)
                try:
                    return await inner_broadcast(transaction)
                finally:
                    active -= 1

            session.broadcast = broadcast
            return session

        relay.session_factory = tracking_factory

        results = await asyncio.gather(relay.relay(valid_payload), relay.relay(dict(valid_payload)))

        assert all(r.success for r in results)
        assert max_active == 1

    @pytest.mark.asyncio
    async def test_waiting_for_lock_counts_toward_timeout(self, network_config, fake_network, valid_payload):
        fast_config = replace(network_config, submission_timeout=0.05)
        relay = TransferRelay(fast_config, session_factory=fake_network.session_factory)

        async with AccountLock(SIGNER_ID, operation="pending transfer"):
            result = await relay.relay(valid_payload)

        assert result.kind == FailureKind.TIMEOUT
        assert "waiting for a pending submission" in result.message
        assert fake_network.sessions == []
        assert fake_network.broadcasts == []


class TestSubmitDirect:
    """submit() with a pre-materialized credential."""

    @pytest.mark.asyncio
    async def test_submit(self, relay, secret):
        credential = materialize(secret, SIGNER_ID, "testnet")

        result = await relay.submit(credential, RECEIVER_ID, 1)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_deposit_out_of_range_is_a_failure(self, relay, fake_network, secret):
        credential = materialize(secret, SIGNER_ID, "testnet")

        result = await relay.submit(credential, RECEIVER_ID, 2**128)

        assert result.success is False
        assert result.kind == FailureKind.PROTOCOL
        assert "u128" in result.message
        assert fake_network.broadcasts == []
        assert fake_network.sessions[0].closed is True

    @pytest.mark.asyncio
    async def test_malformed_block_hash_is_a_failure(self, relay, fake_network, secret):
        fake_network.block_hash = "0OIl"
        credential = materialize(secret, SIGNER_ID, "testnet")

        result = await relay.submit(credential, RECEIVER_ID, 1)

        assert result.kind == FailureKind.PROTOCOL
        assert fake_network.broadcasts == []
        assert active_account_locks() == 0


class TestLookup:
    """Status lookup for possibly timed-out submissions."""

    @pytest.mark.asyncio
    async def test_lookup_included(self, relay):
        result = await relay.lookup("SomeHash", SIGNER_ID)
        assert result.outcome == TransactionOutcome.INCLUDED

    @pytest.mark.asyncio
    async def test_lookup_failed(self, relay, fake_network):
        fake_network.lookup_result = LookupResult("SomeHash", TransactionOutcome.FAILED, "Expired")

        result = await relay.lookup("SomeHash", SIGNER_ID)

        assert result.outcome == TransactionOutcome.FAILED

    @pytest.mark.asyncio
    async def test_lookup_invalid_sender(self, relay):
        with pytest.raises(ValueError):
            await relay.lookup("SomeHash", "Not An Account")
