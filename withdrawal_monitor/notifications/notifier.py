"""Notifiers delivering claimable-request alerts to subscribers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import httpx
import structlog

from withdrawal_monitor.ledger.models import short_address

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class DeliveryError(Exception):
    """Raised when a notification could not be delivered."""

    pass


def format_batch_message(wallet_address: str, request_ids: Sequence[str]) -> str:
    lines = ["🎉 *Withdrawal Ready*", "", f"`{short_address(wallet_address)}`", ""]
    lines.extend(f"• Request #{request_id}" for request_id in request_ids)
    lines.extend(["", "Ready to claim on Avalanche C-Chain"])
    return "\n".join(lines)


def format_completion_message() -> str:
    return "✅ All withdrawal requests claimed or expired."


class BaseNotifier(ABC):
    """Delivery channel used by the poll scheduler."""

    @abstractmethod
    async def send_batch(
        self, chat_id: int, wallet_address: str, request_ids: Sequence[str]
    ) -> None:
        """Tell ``chat_id`` that ``request_ids`` of ``wallet_address`` can be claimed."""
        pass

    @abstractmethod
    async def send_completion(self, chat_id: int) -> None:
        """Tell ``chat_id`` that nothing is left to claim."""
        pass

    async def close(self) -> None:
        return None


class LoggingNotifier(BaseNotifier):
    """Logs notifications instead of sending them (no bot token configured)."""

    async def send_batch(
        self, chat_id: int, wallet_address: str, request_ids: Sequence[str]
    ) -> None:
        logger.info(
            "notifier.would_send_batch",
            chat_id=chat_id,
            wallet=short_address(wallet_address),
            request_ids=list(request_ids),
        )

    async def send_completion(self, chat_id: int) -> None:
        logger.info("notifier.would_send_completion", chat_id=chat_id)


class TelegramNotifier(BaseNotifier):
    """Sends messages through the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        claim_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.claim_url = claim_url
        self._url = f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send_batch(
        self, chat_id: int, wallet_address: str, request_ids: Sequence[str]
    ) -> None:
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": format_batch_message(wallet_address, request_ids),
            "parse_mode": "Markdown",
        }
        if self.claim_url:
            payload["reply_markup"] = {
                "inline_keyboard": [[{"text": "🌐 Claim now", "url": self.claim_url}]]
            }
        await self._send(payload)
        logger.info("notifier.batch_sent", chat_id=chat_id, count=len(request_ids))

    async def send_completion(self, chat_id: int) -> None:
        await self._send({"chat_id": chat_id, "text": format_completion_message()})
        logger.info("notifier.completion_sent", chat_id=chat_id)

    async def _send(self, payload: Dict[str, Any]) -> None:
        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryError(f"Telegram request failed: {e}") from e

        if response.status_code >= 400:
            raise DeliveryError(
                f"Telegram returned HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError as e:
            raise DeliveryError("Telegram returned a non-JSON response") from e
        if not body.get("ok", False):
            raise DeliveryError(f"Telegram rejected message: {body.get('description')}")

    async def close(self) -> None:
        await self._client.aclose()
