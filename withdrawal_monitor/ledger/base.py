"""
Base ledger reader interface.

Defines the read operations every WithdrawQueue backend must implement.
Each operation targets the endpoint chosen by the ResilientClient.
"""

from abc import ABC, abstractmethod
from typing import List

from withdrawal_monitor.ledger.models import RequestId, WithdrawalRequest
from withdrawal_monitor.rpc.endpoints import Endpoint


class BaseLedgerReader(ABC):
    """
    Abstract base class for withdrawal ledger backends.

    Implementations must raise ``TransportError`` or ``ApplicationError``
    (see ``withdrawal_monitor.rpc.errors``) so retry decisions can be made
    without inspecting messages.
    """

    @abstractmethod
    async def get_requests_by_owner(
        self, endpoint: Endpoint, owner: str, offset: int = 0, limit: int = 0
    ) -> List[RequestId]:
        """
        List request ids owned by ``owner``.

        Args:
            endpoint: Endpoint to query
            owner: Wallet address
            offset: Pagination offset
            limit: Page size; ``offset == limit == 0`` returns everything

        Returns:
            Request ids as decimal strings
        """
        pass

    @abstractmethod
    async def can_claim_request(self, endpoint: Endpoint, request_id: RequestId) -> bool:
        """Check whether the claim conditions of a request are met."""
        pass

    @abstractmethod
    async def get_request_info(
        self, endpoint: Endpoint, request_id: RequestId
    ) -> WithdrawalRequest:
        """Fetch the stored request struct."""
        pass

    @abstractmethod
    def get_source_name(self) -> str:
        """Backend identifier (e.g. 'web3', 'mock')."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
