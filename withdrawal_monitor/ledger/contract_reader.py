"""
web3 adapter for the WithdrawQueue contract.

This is where library exceptions become ``ErrorKind`` values; nothing above
this module looks at exception types from web3 or aiohttp.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp
import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    InvalidAddress,
    TimeExhausted,
    Web3ValidationError,
)

from withdrawal_monitor.ledger.abi import WITHDRAW_QUEUE_ABI
from withdrawal_monitor.ledger.base import BaseLedgerReader
from withdrawal_monitor.ledger.models import RequestId, WithdrawalRequest
from withdrawal_monitor.rpc.endpoints import Endpoint
from withdrawal_monitor.rpc.errors import ErrorKind, RpcError, make_error

logger = structlog.get_logger(__name__)

RATE_LIMIT_CODES = {-32005, 429}
INVALID_PARAMS_CODE = -32602


def _rpc_error_payload(error: BaseException) -> Optional[Dict[str, Any]]:
    """Extract the JSON-RPC error object carried by a web3 exception, if any."""
    response = getattr(error, "rpc_response", None)
    if isinstance(response, dict) and isinstance(response.get("error"), dict):
        return response["error"]
    if error.args and isinstance(error.args[0], dict):
        return error.args[0]
    return None


def classify_exception(error: BaseException) -> ErrorKind:
    """Translate a web3/aiohttp exception into an ErrorKind."""
    if isinstance(error, RpcError):
        return error.kind
    if isinstance(error, (asyncio.TimeoutError, TimeExhausted)):
        return ErrorKind.TIMEOUT
    if isinstance(error, ContractLogicError):
        return ErrorKind.EXECUTION_REVERTED
    if isinstance(error, (BadFunctionCallOutput, json.JSONDecodeError)):
        return ErrorKind.MALFORMED_RESPONSE
    if isinstance(error, (InvalidAddress, Web3ValidationError)):
        return ErrorKind.INVALID_ARGUMENT
    if getattr(error, "status", None) == 429:
        return ErrorKind.RATE_LIMITED

    payload = _rpc_error_payload(error)
    if payload is not None:
        code = payload.get("code")
        message = str(payload.get("message", "")).lower()
        if code in RATE_LIMIT_CODES or "rate limit" in message:
            return ErrorKind.RATE_LIMITED
        if code == INVALID_PARAMS_CODE:
            return ErrorKind.INVALID_ARGUMENT
        return ErrorKind.UNKNOWN

    if isinstance(error, (aiohttp.ClientError, OSError)):
        return ErrorKind.CONNECTION
    if isinstance(error, (TypeError, ValueError)):
        # Local arguments are checked before the call; these come from decoding
        return ErrorKind.MALFORMED_RESPONSE
    return ErrorKind.UNKNOWN


class Web3LedgerReader(BaseLedgerReader):
    """
    Reads the WithdrawQueue through one AsyncWeb3 instance per endpoint.

    Instances are created lazily and cached by URL, so failing over does not
    rebuild providers.
    """

    def __init__(self, contract_address: str, request_timeout: float = 30.0):
        if not AsyncWeb3.is_address(contract_address):
            raise ValueError(f"Invalid contract address: {contract_address}")
        self.contract_address = AsyncWeb3.to_checksum_address(contract_address)
        self.request_timeout = request_timeout
        self._web3: Dict[str, AsyncWeb3] = {}
        self._contracts: Dict[str, Any] = {}

    def get_source_name(self) -> str:
        return "web3"

    def _contract(self, endpoint: Endpoint) -> Any:
        contract = self._contracts.get(endpoint.url)
        if contract is None:
            w3 = AsyncWeb3(
                AsyncHTTPProvider(
                    endpoint.url,
                    request_kwargs={
                        "timeout": aiohttp.ClientTimeout(total=self.request_timeout)
                    },
                )
            )
            contract = w3.eth.contract(address=self.contract_address, abi=WITHDRAW_QUEUE_ABI)
            self._web3[endpoint.url] = w3
            self._contracts[endpoint.url] = contract
        return contract

    async def _call(self, endpoint: Endpoint, name: str, *args: Any) -> Any:
        try:
            contract = self._contract(endpoint)
            return await getattr(contract.functions, name)(*args).call()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            kind = classify_exception(e)
            raise make_error(kind, f"{name} failed: {e}", endpoint.url) from e

    async def get_requests_by_owner(
        self, endpoint: Endpoint, owner: str, offset: int = 0, limit: int = 0
    ) -> List[RequestId]:
        try:
            checksum_owner = AsyncWeb3.to_checksum_address(owner)
        except ValueError as e:
            raise make_error(
                ErrorKind.INVALID_ARGUMENT, f"invalid address {owner}: {e}", endpoint.url
            ) from e
        ids = await self._call(endpoint, "getRequestsByOwner", checksum_owner, offset, limit)
        return [str(i) for i in ids]

    def _uint(self, endpoint: Endpoint, request_id: RequestId) -> int:
        try:
            return int(request_id)
        except (TypeError, ValueError) as e:
            raise make_error(
                ErrorKind.INVALID_ARGUMENT, f"invalid request id {request_id!r}", endpoint.url
            ) from e

    async def can_claim_request(self, endpoint: Endpoint, request_id: RequestId) -> bool:
        request_uint = self._uint(endpoint, request_id)
        return bool(await self._call(endpoint, "canClaimRequest", request_uint))

    async def get_request_info(
        self, endpoint: Endpoint, request_id: RequestId
    ) -> WithdrawalRequest:
        request_uint = self._uint(endpoint, request_id)
        values = await self._call(endpoint, "getRequestInfo", request_uint)
        try:
            return WithdrawalRequest.from_contract_tuple(request_id, values)
        except (TypeError, ValueError) as e:
            raise make_error(
                ErrorKind.MALFORMED_RESPONSE,
                f"unexpected getRequestInfo output for {request_id}: {e}",
                endpoint.url,
            ) from e

    async def close(self) -> None:
        for url, w3 in self._web3.items():
            disconnect = getattr(w3.provider, "disconnect", None)
            if disconnect is None:
                continue
            try:
                await disconnect()
            except Exception as e:
                logger.warning("ledger.provider_close_failed", endpoint=url, error=str(e))
        self._web3.clear()
        self._contracts.clear()
