"""
In-memory ledger reader for development and testing.

Holds withdrawal requests in dictionaries and can simulate latency and
per-endpoint or per-request failures.
"""

import asyncio
from typing import Dict, List, Optional, Set, Tuple

from withdrawal_monitor.ledger.base import BaseLedgerReader
from withdrawal_monitor.ledger.models import ZERO_ADDRESS, RequestId, WithdrawalRequest
from withdrawal_monitor.rpc.endpoints import Endpoint
from withdrawal_monitor.rpc.errors import ErrorKind, make_error


class MockLedgerReader(BaseLedgerReader):
    """
    Mock WithdrawQueue backed by plain dictionaries.

    ``calls`` records every (endpoint url, operation, argument) so tests can
    assert which endpoint served a query.
    """

    def __init__(self, latency_ms: int = 0):
        self.latency_ms = latency_ms
        self.requests: Dict[RequestId, WithdrawalRequest] = {}
        self.owners: Dict[str, List[RequestId]] = {}
        self.claimable: Set[RequestId] = set()
        self.endpoint_failures: Dict[str, ErrorKind] = {}
        self.request_failures: Dict[RequestId, ErrorKind] = {}
        self.calls: List[Tuple[str, str, str]] = []

    def get_source_name(self) -> str:
        return "mock"

    def add_request(
        self,
        owner: str,
        request_id: RequestId,
        claimable: bool = False,
        claimed: bool = False,
        shares: str = "1000000000000000000",
    ) -> WithdrawalRequest:
        """Register a request for ``owner``; ``claimed`` zeroes the requester."""
        request = WithdrawalRequest(
            id=str(request_id),
            requester=ZERO_ADDRESS if claimed else owner,
            shares=shares,
            expected_assets=shares,
            request_time=1_700_000_000,
            claimable_time=1_700_086_400,
            expiration_time=1_700_691_200,
            allocated_funds="0" if claimed else shares,
        )
        self.requests[request.id] = request
        self.owners.setdefault(owner.lower(), []).append(request.id)
        if claimable:
            self.claimable.add(request.id)
        else:
            self.claimable.discard(request.id)
        return request

    def mark_claimed(self, request_id: RequestId) -> None:
        request = self.requests[str(request_id)]
        self.requests[request.id] = request.model_copy(update={"requester": ZERO_ADDRESS})
        self.claimable.discard(request.id)

    async def _enter(
        self,
        endpoint: Endpoint,
        operation: str,
        argument: str,
        request_id: Optional[RequestId] = None,
    ) -> None:
        self.calls.append((endpoint.url, operation, argument))
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)

        kind = self.endpoint_failures.get(endpoint.url)
        if kind is None and request_id is not None:
            kind = self.request_failures.get(request_id)
        if kind is not None:
            raise make_error(kind, f"simulated {kind.value} in {operation}", endpoint.url)

    async def get_requests_by_owner(
        self, endpoint: Endpoint, owner: str, offset: int = 0, limit: int = 0
    ) -> List[RequestId]:
        await self._enter(endpoint, "getRequestsByOwner", owner)
        ids = list(self.owners.get(owner.lower(), []))
        if offset == 0 and limit == 0:
            return ids
        return ids[offset : offset + limit]

    async def can_claim_request(self, endpoint: Endpoint, request_id: RequestId) -> bool:
        await self._enter(endpoint, "canClaimRequest", request_id, request_id)
        return request_id in self.claimable

    async def get_request_info(
        self, endpoint: Endpoint, request_id: RequestId
    ) -> WithdrawalRequest:
        await self._enter(endpoint, "getRequestInfo", request_id, request_id)
        request = self.requests.get(request_id)
        if request is None:
            raise make_error(
                ErrorKind.EXECUTION_REVERTED, f"unknown request {request_id}", endpoint.url
            )
        return request
