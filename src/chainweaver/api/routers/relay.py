"""Sign-and-send relay endpoints."""

import json
import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from chainweaver.relay import (
    NetworkError,
    RelayInputError,
    TransferRelay,
)
from chainweaver.signing import InvalidCredentialError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Relay"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

UNEXPECTED_ERROR = "An unexpected error occurred while processing the transaction."


class SuccessResponse(BaseModel):
    """Transfer included by the network."""
    status: str = "success"
    transactionHash: str


class ErrorResponse(BaseModel):
    """Any failure, input or network."""
    status: str = "error"
    message: str


class TransactionStatusResponse(BaseModel):
    """Result of a transaction status lookup."""
    status: str = "success"
    transactionHash: str
    outcome: str
    message: Optional[str] = None


def get_relay(request: Request) -> TransferRelay:
    """Relay instance attached to the app at startup."""
    return request.app.state.relay


def _json(status_code: int, model: BaseModel) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(exclude_none=True),
        headers=CORS_HEADERS,
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return _json(status_code, ErrorResponse(message=message))


def _diagnostics(payload: Any) -> str:
    """Request fields safe to log. Never includes the private key."""
    if not isinstance(payload, dict):
        return "[no fields]"
    return (
        f"[signer={payload.get('signerId')}, receiver={payload.get('receiverId')}, "
        f"amount={payload.get('amount')}]"
    )


@router.api_route(
    "/sign-and-send",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE", "CONNECT"],
    include_in_schema=False,
)
async def method_not_allowed() -> JSONResponse:
    """Reject everything except POST and the CORS preflight."""
    return _error(405, "Method not allowed. Only POST requests are supported.")


@router.options("/sign-and-send", include_in_schema=False)
async def preflight() -> Response:
    """CORS preflight."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    "/sign-and-send",
    responses={200: {"model": SuccessResponse}, 400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def sign_and_send(request: Request, relay: TransferRelay = Depends(get_relay)) -> JSONResponse:
    """Sign and broadcast a native transfer on behalf of the caller."""
    raw = await request.body()
    try:
        payload = json.loads(raw, parse_float=Decimal) if raw else None
    except ValueError:
        return _error(400, "Request body must be valid JSON.")

    try:
        result = await relay.relay(payload)

    except (RelayInputError, InvalidCredentialError) as e:
        logger.warning(f"Rejected sign-and-send request: {e} {_diagnostics(payload)}")
        return _error(400, str(e))

    except Exception as e:
        logger.error(f"Signer error: {e} {_diagnostics(payload)}")
        return _error(500, str(e) or UNEXPECTED_ERROR)

    if result.success:
        return _json(200, SuccessResponse(transactionHash=result.transaction_hash))
    return _error(500, result.message or UNEXPECTED_ERROR)


@router.get("/transactions/{tx_hash}")
async def transaction_status(
    tx_hash: str,
    sender_id: Optional[str] = Query(None, alias="senderId"),
    relay: TransferRelay = Depends(get_relay),
) -> JSONResponse:
    """Look up whether a previously submitted transaction was included."""
    if not sender_id:
        return _error(400, "Missing required field: senderId.")

    try:
        result = await relay.lookup(tx_hash, sender_id)
    except ValueError as e:
        return _error(400, str(e))
    except NetworkError as e:
        logger.error(f"Status lookup for {tx_hash} failed: {e}")
        return _error(500, str(e))

    return _json(
        200,
        TransactionStatusResponse(
            transactionHash=result.transaction_hash,
            outcome=result.outcome.value,
            message=result.message,
        ),
    )
