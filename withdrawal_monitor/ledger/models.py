"""Withdrawal request models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# uint256 ids exceed native fixed-width ranges; they travel as decimal strings.
RequestId = str


def short_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


class RequestStatus(str, Enum):
    """Whether a request still belongs to its requester."""

    ACTIVE = "active"
    INACTIVE = "inactive"  # claimed, or unknown


class WithdrawalRequest(BaseModel):
    """One entry of the withdrawal queue as returned by getRequestInfo."""

    id: RequestId
    requester: str
    shares: str
    expected_assets: str
    request_time: int
    claimable_time: int
    expiration_time: int
    allocated_funds: str

    @property
    def is_active(self) -> bool:
        return self.requester.lower() != ZERO_ADDRESS

    @classmethod
    def from_contract_tuple(cls, request_id: RequestId, values: Sequence[Any]) -> "WithdrawalRequest":
        """Build from the (requester, shares, expectedAssets, ...) struct tuple."""
        (
            requester,
            shares,
            expected_assets,
            request_time,
            claimable_time,
            expiration_time,
            allocated_funds,
        ) = values
        return cls(
            id=str(request_id),
            requester=str(requester),
            shares=str(shares),
            expected_assets=str(expected_assets),
            request_time=int(request_time),
            claimable_time=int(claimable_time),
            expiration_time=int(expiration_time),
            allocated_funds=str(allocated_funds),
        )

    def log_fields(self) -> dict[str, Any]:
        """Readable representation for structured logs."""

        def _ts(value: int) -> str:
            try:
                return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
            except (OverflowError, ValueError, OSError):
                # Sentinels such as type(uint256).max are not representable dates
                return str(value)

        return {
            "requester": self.requester,
            "shares": self.shares,
            "expected_assets": self.expected_assets,
            "request_time": _ts(self.request_time),
            "claimable_time": _ts(self.claimable_time),
            "expiration_time": _ts(self.expiration_time),
            "allocated_funds": self.allocated_funds,
        }
