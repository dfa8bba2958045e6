"""Subscription and notification state models."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

FREQUENCY_OPTIONS: Dict[str, int] = {
    "6h": 6 * 60 * 60,
    "12h": 12 * 60 * 60,
    "24h": 24 * 60 * 60,
}


def frequency_label(seconds: int) -> str:
    for label, value in FREQUENCY_OPTIONS.items():
        if value == seconds:
            return label
    return "custom"


class Subscription(BaseModel):
    """A chat watching one wallet."""

    wallet_address: str
    frequency_seconds: int = Field(gt=0)
    active: bool = True
    created_at: float
    updated_at: float


class NotificationRecord(BaseModel):
    """When a chat was told about a claimable request."""

    first_notified_at: float
    last_notified_at: float


class CompletionStatus(BaseModel):
    """Tracks the one-off 'all claimed' message for a chat."""

    completion_sent: bool = False
    last_request_count: int = 0
    updated_at: Optional[float] = None


class StoreData(BaseModel):
    """Everything persisted by the JSON store."""

    subscriptions: Dict[int, Subscription] = Field(default_factory=dict)
    # chat id -> request id -> record
    notification_history: Dict[int, Dict[str, NotificationRecord]] = Field(
        default_factory=dict
    )
    completion_status: Dict[int, CompletionStatus] = Field(default_factory=dict)
