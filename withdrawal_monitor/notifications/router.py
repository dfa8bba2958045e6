"""Subscription management and wallet status routes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field
from web3 import Web3

from withdrawal_monitor.core.services import get_services
from withdrawal_monitor.notifications.models import FREQUENCY_OPTIONS, frequency_label

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions"])


class SubscribeRequest(BaseModel):
    chat_id: int
    wallet_address: str
    frequency: Optional[Union[str, int]] = Field(
        default=None, description="'6h', '12h', '24h' or a number of seconds"
    )


class SubscriptionResponse(BaseModel):
    chat_id: int
    wallet_address: str
    frequency_seconds: int
    frequency: str
    active: bool


class WalletStatusResponse(BaseModel):
    wallet_address: str
    request_ids: List[str]
    active_request_ids: List[str]
    claimable_request_ids: List[str]


def _checksum_or_400(address: str) -> str:
    if not Web3.is_address(address):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid wallet address: {address}",
        )
    return Web3.to_checksum_address(address)


def _resolve_frequency(frequency: Optional[Union[str, int]], default: int) -> int:
    if frequency is None:
        return default
    if isinstance(frequency, int):
        seconds = frequency
    elif frequency in FREQUENCY_OPTIONS:
        seconds = FREQUENCY_OPTIONS[frequency]
    elif frequency.isdigit():
        seconds = int(frequency)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown frequency '{frequency}'. Use one of {sorted(FREQUENCY_OPTIONS)} or seconds",
        )
    if seconds <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Frequency must be positive"
        )
    return seconds


@router.post("/subscriptions", response_model=SubscriptionResponse)
async def subscribe(body: SubscribeRequest):
    services = get_services()
    wallet = _checksum_or_400(body.wallet_address)
    seconds = _resolve_frequency(body.frequency, services.settings.DEFAULT_FREQ_SECONDS)

    sub = services.store.subscribe(body.chat_id, wallet, seconds)
    logger.info(f"Chat {body.chat_id} subscribed to {wallet}")
    return SubscriptionResponse(
        chat_id=body.chat_id,
        wallet_address=sub.wallet_address,
        frequency_seconds=sub.frequency_seconds,
        frequency=frequency_label(sub.frequency_seconds),
        active=sub.active,
    )


@router.get("/subscriptions/stats")
async def subscription_stats() -> Dict[str, Any]:
    return get_services().store.get_stats()


@router.get("/subscriptions/{chat_id}", response_model=SubscriptionResponse)
async def get_subscription(chat_id: int):
    sub = get_services().store.get_subscription(chat_id)
    if sub is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not subscribed")
    return SubscriptionResponse(
        chat_id=chat_id,
        wallet_address=sub.wallet_address,
        frequency_seconds=sub.frequency_seconds,
        frequency=frequency_label(sub.frequency_seconds),
        active=sub.active,
    )


@router.delete("/subscriptions/{chat_id}")
async def unsubscribe(chat_id: int) -> Dict[str, Any]:
    if not get_services().store.unsubscribe(chat_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not subscribed")
    return {"chat_id": chat_id, "unsubscribed": True}


@router.get("/wallets/{address}/status", response_model=WalletStatusResponse)
async def wallet_status(address: str):
    """Current requests of a wallet, split into active and claimable."""
    wallet = _checksum_or_400(address)
    summary = await get_services().ledger.wallet_summary(wallet)
    return WalletStatusResponse(**summary)
