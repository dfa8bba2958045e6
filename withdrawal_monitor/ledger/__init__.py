"""Withdrawal queue readers and domain queries."""

from withdrawal_monitor.ledger.base import BaseLedgerReader
from withdrawal_monitor.ledger.mock_reader import MockLedgerReader
from withdrawal_monitor.ledger.models import (
    ZERO_ADDRESS,
    RequestId,
    RequestStatus,
    WithdrawalRequest,
)
from withdrawal_monitor.ledger.service import LedgerQueryService

__all__ = [
    "BaseLedgerReader",
    "MockLedgerReader",
    "ZERO_ADDRESS",
    "RequestId",
    "RequestStatus",
    "WithdrawalRequest",
    "LedgerQueryService",
]
