"""
Tests for the web3 ledger adapter.

No network access: exceptions are classified directly, and contract calls
are served by a mocked contract object.
"""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    InvalidAddress,
    TimeExhausted,
    Web3ValidationError,
)

from withdrawal_monitor.ledger.contract_reader import Web3LedgerReader, classify_exception
from withdrawal_monitor.rpc.endpoints import Endpoint
from withdrawal_monitor.rpc.errors import (
    ApplicationError,
    ErrorKind,
    TransportError,
    make_error,
)

CONTRACT = "0x" + "ab" * 20
OWNER = "0x" + "11" * 20
ENDPOINT = Endpoint("https://rpc.example", 0)


class RpcResponseError(Exception):
    """Exception carrying a JSON-RPC response, like web3's RPC errors."""

    def __init__(self, error):
        super().__init__("rpc error")
        self.rpc_response = {"jsonrpc": "2.0", "id": 1, "error": error}


class HttpStatusError(Exception):
    def __init__(self, status):
        super().__init__(f"HTTP {status}")
        self.status = status


class TestClassifyException:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
            (TimeExhausted("took too long"), ErrorKind.TIMEOUT),
            (ContractLogicError("execution reverted"), ErrorKind.EXECUTION_REVERTED),
            (BadFunctionCallOutput("could not decode"), ErrorKind.MALFORMED_RESPONSE),
            (json.JSONDecodeError("Expecting value", "", 0), ErrorKind.MALFORMED_RESPONSE),
            (InvalidAddress("bad checksum"), ErrorKind.INVALID_ARGUMENT),
            (Web3ValidationError("no matching function"), ErrorKind.INVALID_ARGUMENT),
            (TypeError("unexpected output type"), ErrorKind.MALFORMED_RESPONSE),
            (HttpStatusError(429), ErrorKind.RATE_LIMITED),
            (aiohttp.ClientConnectionError("refused"), ErrorKind.CONNECTION),
            (ConnectionResetError("reset by peer"), ErrorKind.CONNECTION),
            (ValueError("could not decode output"), ErrorKind.MALFORMED_RESPONSE),
            (RuntimeError("something odd"), ErrorKind.UNKNOWN),
        ],
    )
    def test_library_exceptions(self, error, expected):
        assert classify_exception(error) is expected

    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"code": -32005, "message": "limit exceeded"}, ErrorKind.RATE_LIMITED),
            ({"code": -32000, "message": "Rate limit reached"}, ErrorKind.RATE_LIMITED),
            ({"code": -32602, "message": "invalid argument 0"}, ErrorKind.INVALID_ARGUMENT),
            ({"code": -32000, "message": "header not found"}, ErrorKind.UNKNOWN),
        ],
    )
    def test_json_rpc_error_payloads(self, payload, expected):
        assert classify_exception(RpcResponseError(payload)) is expected
        # web3 also raises ValueError(dict) for node errors
        assert classify_exception(ValueError(payload)) is expected

    def test_already_classified_errors_keep_their_kind(self):
        error = make_error(ErrorKind.RATE_LIMITED, "slow down")
        assert classify_exception(error) is ErrorKind.RATE_LIMITED


def _reader_with_contract(contract) -> Web3LedgerReader:
    reader = Web3LedgerReader(CONTRACT)
    reader._contract = Mock(return_value=contract)
    return reader


def _function(contract, name, **call_kwargs):
    fn = getattr(contract.functions, name)
    fn.return_value.call = AsyncMock(**call_kwargs)
    return fn


@pytest.mark.asyncio
class TestWeb3LedgerReader:
    async def test_rejects_invalid_contract_address(self):
        with pytest.raises(ValueError):
            Web3LedgerReader("not-an-address")

    async def test_get_requests_by_owner_returns_decimal_strings(self):
        contract = Mock()
        fn = _function(contract, "getRequestsByOwner", return_value=[1, 2**70])
        reader = _reader_with_contract(contract)

        ids = await reader.get_requests_by_owner(ENDPOINT, OWNER)

        assert ids == ["1", str(2**70)]
        args = fn.call_args.args
        assert args[0].lower() == OWNER
        assert args[1:] == (0, 0)

    async def test_invalid_owner_is_invalid_argument(self):
        reader = _reader_with_contract(Mock())
        with pytest.raises(ApplicationError) as exc_info:
            await reader.get_requests_by_owner(ENDPOINT, "0x1234")
        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT

    async def test_non_numeric_request_id_is_invalid_argument(self):
        reader = _reader_with_contract(Mock())
        with pytest.raises(ApplicationError) as exc_info:
            await reader.can_claim_request(ENDPOINT, "abc")
        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT

    async def test_revert_becomes_application_error(self):
        contract = Mock()
        _function(
            contract, "canClaimRequest", side_effect=ContractLogicError("execution reverted")
        )
        reader = _reader_with_contract(contract)

        with pytest.raises(ApplicationError) as exc_info:
            await reader.can_claim_request(ENDPOINT, "7")
        assert exc_info.value.kind is ErrorKind.EXECUTION_REVERTED
        assert exc_info.value.endpoint == ENDPOINT.url

    async def test_connection_failure_becomes_transport_error(self):
        contract = Mock()
        _function(
            contract,
            "canClaimRequest",
            side_effect=aiohttp.ClientConnectionError("connection refused"),
        )
        reader = _reader_with_contract(contract)

        with pytest.raises(TransportError) as exc_info:
            await reader.can_claim_request(ENDPOINT, "7")
        assert exc_info.value.kind is ErrorKind.CONNECTION

    async def test_get_request_info_builds_model(self):
        contract = Mock()
        fn = _function(
            contract,
            "getRequestInfo",
            return_value=(OWNER, 10**18, 10**18, 1_700_000_000, 1_700_086_400, 1_700_691_200, 0),
        )
        reader = _reader_with_contract(contract)

        info = await reader.get_request_info(ENDPOINT, "42")

        fn.assert_called_once_with(42)
        assert info.id == "42"
        assert info.requester == OWNER
        assert info.shares == str(10**18)
        assert info.is_active

    async def test_unexpected_output_shape_is_malformed(self):
        contract = Mock()
        _function(contract, "getRequestInfo", return_value=(OWNER, 1))
        reader = _reader_with_contract(contract)

        with pytest.raises(TransportError) as exc_info:
            await reader.get_request_info(ENDPOINT, "42")
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE

    async def test_decode_error_during_call_is_retryable(self):
        contract = Mock()
        _function(
            contract, "canClaimRequest", side_effect=ValueError("invalid boolean output 0x02")
        )
        reader = _reader_with_contract(contract)

        with pytest.raises(TransportError) as exc_info:
            await reader.can_claim_request(ENDPOINT, "7")
        assert exc_info.value.kind is ErrorKind.MALFORMED_RESPONSE
        assert exc_info.value.kind.retryable
