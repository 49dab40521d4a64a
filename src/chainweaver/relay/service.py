"""Sign-and-submit relay.

Each call is independent: validate, convert, materialize, submit. The
signing credential and network session exist only inside the call.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from chainweaver.config import NetworkConfig
from chainweaver.relay.base import (
    FailureKind,
    LookupResult,
    NetworkError,
    RelayStage,
    SubmissionResult,
    TransactionOutcome,
)
from chainweaver.relay.session import NearRpcSession, NetworkSession
from chainweaver.relay.transaction import build_transfer, sign_transaction
from chainweaver.relay.units import format_atomic_units, to_atomic_units
from chainweaver.relay.validation import is_valid_account_id, validate_transfer
from chainweaver.signing import SigningCredential, materialize
from chainweaver.utils.locks import AccountLock

logger = logging.getLogger(__name__)

SessionFactory = Callable[[NetworkConfig], NetworkSession]


class TransferRelay:
    """Constructs, signs and submits native transfers.

    Args:
        config: Network endpoint, unit scale and timeout
        session_factory: Builds a fresh NetworkSession per call
    """

    def __init__(self, config: NetworkConfig, session_factory: SessionFactory = NearRpcSession):
        self.config = config
        self.session_factory = session_factory

    async def relay(self, payload: Any) -> SubmissionResult:
        """Run one request through the whole pipeline.

        Raises:
            RelayInputError: Missing, malformed or unconvertible input
            InvalidCredentialError: Secret does not decode to a signing key
        """
        logger.debug(f"Stage: {RelayStage.VALIDATING.value}")
        validated = validate_transfer(payload)
        transfer = validated.transfer

        logger.debug(f"Stage: {RelayStage.CONVERTING_AMOUNT.value}")
        atomic_amount = to_atomic_units(transfer.amount, self.config.decimals)

        logger.debug(f"Stage: {RelayStage.MATERIALIZING_KEY.value}")
        credential = materialize(validated.secret, transfer.signer_id, self.config.network_id)

        logger.debug(f"Stage: {RelayStage.SUBMITTING.value}")
        logger.info(
            f"Submitting transfer: {transfer.signer_id} -> {transfer.receiver_id}, "
            f"amount {transfer.amount} ({atomic_amount} atomic units)"
        )
        result = await self.submit(credential, transfer.receiver_id, atomic_amount)

        final = RelayStage.SUCCEEDED if result.success else RelayStage.FAILED
        logger.debug(f"Stage: {final.value}")
        return result

    async def submit(
        self,
        credential: SigningCredential,
        receiver_id: str,
        atomic_amount: int,
    ) -> SubmissionResult:
        """Submit one transfer. Never retries, never raises for network or encoding errors.

        Lock wait, access key lookup and broadcast share one deadline of
        config.submission_timeout seconds.

        Args:
            credential: Materialized signer credential
            receiver_id: Receiving account
            atomic_amount: Amount in atomic units

        Returns:
            SubmissionResult
        """
        timeout = self.config.submission_timeout
        signer_id = credential.account_id
        lock_acquired = False
        tx_hash: Optional[str] = None

        async def _submit() -> str:
            nonlocal lock_acquired, tx_hash
            async with AccountLock(signer_id, operation="transfer"):
                lock_acquired = True
                async with self.session_factory(self.config) as session:
                    state = await session.view_access_key(signer_id, credential.public_key)
                    transaction = build_transfer(
                        credential,
                        receiver_id,
                        atomic_amount,
                        nonce=state.nonce + 1,
                        block_hash=state.block_hash,
                    )
                    signed = sign_transaction(transaction, credential)
                    tx_hash = signed.hash
                    logger.info(f"Broadcasting {tx_hash} from {signer_id}")
                    return await session.broadcast(signed)

        try:
            included_hash = await asyncio.wait_for(_submit(), timeout=timeout)

        except asyncio.TimeoutError:
            if not lock_acquired:
                message = f"Timed out waiting for a pending submission from {signer_id}"
            else:
                message = f"Transaction submission timed out after {timeout:g}s"
                if tx_hash:
                    message += f"; transaction {tx_hash} may still be included"
            return self._failure(FailureKind.TIMEOUT, message, None, signer_id, receiver_id, atomic_amount)

        except NetworkError as e:
            message = str(e)
            if e.kind == FailureKind.TIMEOUT and tx_hash:
                message += f"; transaction {tx_hash} may still be included"
            return self._failure(
                e.kind, message, e.transport_status, signer_id, receiver_id, atomic_amount
            )

        except ValueError as e:
            # Access key state or amount that cannot be encoded into a transaction
            return self._failure(
                FailureKind.PROTOCOL,
                f"Could not build transaction: {e}",
                None,
                signer_id,
                receiver_id,
                atomic_amount,
            )

        logger.info(
            f"Transaction successful: {signer_id} -> {receiver_id}, "
            f"amount {format_atomic_units(atomic_amount, self.config.decimals)}, hash {included_hash}"
        )
        return SubmissionResult.ok(included_hash)

    def _failure(
        self,
        kind: FailureKind,
        message: str,
        http_status: Optional[int],
        signer_id: str,
        receiver_id: str,
        atomic_amount: int,
    ) -> SubmissionResult:
        logger.error(
            f"Transfer failed ({kind.value}): {message} "
            f"[signer={signer_id}, receiver={receiver_id}, "
            f"amount={format_atomic_units(atomic_amount, self.config.decimals)}]"
        )
        return SubmissionResult.failed(kind, message, http_status)

    async def lookup(self, tx_hash: str, sender_id: str) -> LookupResult:
        """Check whether an earlier, possibly timed-out, submission landed.

        Raises:
            ValueError: Sender ID is not a valid account ID
            NetworkError: Node could not be reached
        """
        if not is_valid_account_id(sender_id):
            raise ValueError("senderId is not a valid account ID.")

        try:
            async with self.session_factory(self.config) as session:
                return await asyncio.wait_for(
                    session.transaction_status(tx_hash, sender_id),
                    timeout=self.config.submission_timeout,
                )
        except asyncio.TimeoutError:
            return LookupResult(tx_hash, TransactionOutcome.UNKNOWN, "Status lookup timed out")
