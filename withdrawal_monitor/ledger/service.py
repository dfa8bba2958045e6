"""
Domain queries over the withdrawal queue.

Every query absorbs its own failure into a conservative default so one bad
endpoint or request id never aborts a poll cycle: no ids, not claimable,
no detail, inactive.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import structlog

from withdrawal_monitor.ledger.base import BaseLedgerReader
from withdrawal_monitor.ledger.models import (
    RequestId,
    RequestStatus,
    WithdrawalRequest,
    short_address,
)
from withdrawal_monitor.rpc.client import ResilientClient

logger = structlog.get_logger(__name__)


class LedgerQueryService:
    """Stateless façade over ResilientClient and a ledger reader."""

    def __init__(self, client: ResilientClient, reader: BaseLedgerReader):
        self.client = client
        self.reader = reader

    async def list_request_ids(self, owner: str) -> List[RequestId]:
        """All request ids of ``owner``; empty if the query ultimately fails."""
        try:
            ids = await self.client.execute(
                lambda endpoint: self.reader.get_requests_by_owner(endpoint, owner, 0, 0),
                f"getRequestsByOwner({owner})",
            )
        except Exception as e:
            logger.error("ledger.list_failed", owner=owner, error=str(e))
            return []

        logger.info("ledger.requests_found", owner=short_address(owner), count=len(ids))
        return list(ids)

    async def is_claimable(self, request_id: RequestId) -> bool:
        try:
            return bool(
                await self.client.execute(
                    lambda endpoint: self.reader.can_claim_request(endpoint, request_id),
                    f"canClaimRequest({request_id})",
                )
            )
        except Exception as e:
            logger.error("ledger.claimable_check_failed", request_id=request_id, error=str(e))
            return False

    async def get_request_detail(self, request_id: RequestId) -> Optional[WithdrawalRequest]:
        """Request detail, or None if it cannot be fetched or read."""
        try:
            detail = await self.client.execute(
                lambda endpoint: self.reader.get_request_info(endpoint, request_id),
                f"getRequestInfo({request_id})",
            )
            logger.debug("ledger.request_detail", request_id=request_id, **detail.log_fields())
        except Exception as e:
            logger.error("ledger.detail_failed", request_id=request_id, error=str(e))
            return None

        return detail

    async def classify(self, request_id: RequestId) -> RequestStatus:
        """ACTIVE unless claimed (zero requester) or the detail is unavailable."""
        detail = await self.get_request_detail(request_id)
        if detail is None:
            logger.info(
                "ledger.request_classified",
                request_id=request_id,
                status=RequestStatus.INACTIVE.value,
                reason="detail_unavailable",
            )
            return RequestStatus.INACTIVE

        status = RequestStatus.ACTIVE if detail.is_active else RequestStatus.INACTIVE
        logger.info(
            "ledger.request_classified",
            request_id=request_id,
            status=status.value,
            requester=detail.requester,
        )
        return status

    async def filter_active(self, request_ids: Sequence[RequestId]) -> List[RequestId]:
        statuses = await asyncio.gather(*(self.classify(i) for i in request_ids))
        return [i for i, s in zip(request_ids, statuses) if s is RequestStatus.ACTIVE]

    async def filter_claimable(self, request_ids: Sequence[RequestId]) -> List[RequestId]:
        checks = await asyncio.gather(*(self.is_claimable(i) for i in request_ids))
        return [i for i, ok in zip(request_ids, checks) if ok]

    async def get_claimable_requests(self, owner: str) -> List[RequestId]:
        """List, keep active, keep claimable."""
        active = await self.filter_active(await self.list_request_ids(owner))
        return await self.filter_claimable(active)

    async def wallet_summary(self, owner: str) -> Dict[str, Any]:
        ids = await self.list_request_ids(owner)
        active = await self.filter_active(ids)
        claimable = await self.filter_claimable(active)
        return {
            "wallet_address": owner,
            "request_ids": ids,
            "active_request_ids": active,
            "claimable_request_ids": claimable,
        }
