"""Client for the signer relay.

Used by workflow nodes that hold the bot wallet credentials and delegate
signing to the relay over HTTP.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class SignerCredentials:
    """Bot wallet credentials from the credential store."""
    account_id: str
    private_key: str

    def __repr__(self) -> str:
        return f"SignerCredentials(account_id={self.account_id!r}, private_key='***')"


class SignerClientError(Exception):
    """Relay call failed. Carries the relay status when there was one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _json_amount(amount: Union[int, float, Decimal]) -> Union[int, float]:
    """Amount as a JSON number, refusing Decimals a float cannot hold exactly."""
    if not isinstance(amount, Decimal):
        return amount
    if amount.is_finite() and amount == amount.to_integral_value():
        return int(amount)
    as_float = float(amount)
    if Decimal(repr(as_float)) != amount:
        raise SignerClientError(
            f"ChainWeaver Error: amount {amount} cannot be sent without losing precision."
        )
    return as_float


class SignerClient:
    """HTTP client for the sign-and-send relay.

    Args:
        endpoint: Full URL of the relay's sign-and-send endpoint
        timeout: Request timeout in seconds
        client: Optional preconfigured httpx client (for testing)
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client

    async def send_near(
        self,
        credentials: Optional[SignerCredentials],
        receiver_id: str,
        amount: Union[int, float, Decimal],
    ) -> dict:
        """Ask the relay to send NEAR from the bot wallet.

        Args:
            credentials: Bot wallet account and key
            receiver_id: Receiving account
            amount: Amount in NEAR

        Returns:
            Relay response body ({"status": "success", "transactionHash": ...})

        Raises:
            SignerClientError: Missing credentials, transport error or any
                non-2xx response
        """
        if not credentials:
            raise SignerClientError(
                "ChainWeaver credentials not found. Please configure the credentials."
            )

        payload = {
            "signerId": credentials.account_id,
            "privateKey": credentials.private_key,
            "receiverId": receiver_id,
            "amount": _json_amount(amount),
        }

        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, payload)
            response.raise_for_status()

        except httpx.HTTPStatusError as e:
            message = self._error_message(e.response) or str(e)
            status = e.response.status_code
            raise SignerClientError(f"ChainWeaver Signer Error ({status}): {message}", status) from e

        except httpx.HTTPError as e:
            message = str(e) or "Signer API call failed"
            raise SignerClientError(f"ChainWeaver Signer Error (Unknown): {message}") from e

        try:
            return response.json()
        except ValueError as e:
            raise SignerClientError(f"ChainWeaver Error: invalid response from signer: {e}") from e

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        logger.info(
            f"Calling signer for {payload['signerId']} -> {payload['receiverId']}, "
            f"amount {payload['amount']}"
        )
        return await client.post(
            self.endpoint,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            data = response.json()
        except ValueError:
            return None
        if isinstance(data, dict):
            return data.get("message")
        return None
