"""
Subscription and notification-history persistence.

The poll scheduler talks to the store only through ``SubscriptionStore``.
Store operations never raise into the caller because of storage problems:
write failures are logged and the in-memory state stays authoritative.
"""

from __future__ import annotations

import os
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import structlog
from pydantic import ValidationError

from withdrawal_monitor.notifications.models import (
    CompletionStatus,
    NotificationRecord,
    StoreData,
    Subscription,
)

logger = structlog.get_logger(__name__)


class SubscriptionStore(ABC):
    """Persistence interface consumed by the poll scheduler."""

    @abstractmethod
    def list_monitored_wallets(self) -> List[str]:
        """Unique wallet addresses with at least one active subscription."""
        pass

    @abstractmethod
    def chats_for_wallet(self, wallet_address: str) -> List[int]:
        pass

    @abstractmethod
    def should_notify(self, chat_id: int, request_id: str) -> bool:
        """True for a never-notified request or once the chat's window elapsed."""
        pass

    @abstractmethod
    def record_notification(self, chat_id: int, request_id: str) -> None:
        pass

    @abstractmethod
    def cleanup_stale(self, chat_id: int, active_request_ids: Iterable[str]) -> None:
        """Forget history for requests that are no longer active."""
        pass

    @abstractmethod
    def should_send_completion(self, chat_id: int, active_count: int) -> bool:
        """Track the active count; True while a completion message is owed."""
        pass

    @abstractmethod
    def mark_completion_sent(self, chat_id: int) -> None:
        pass


class JsonSubscriptionStore(SubscriptionStore):
    """
    In-memory store written through to a JSON file on every mutation.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``. Passing ``path=None`` keeps everything in
    memory.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path) if path is not None else None
        self._clock = clock

        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self.data = self._load()
        logger.info(
            "store.initialized",
            path=str(self.path) if self.path else None,
            subscriptions=len(self.data.subscriptions),
        )

    def _load(self) -> StoreData:
        if self.path is None or not self.path.exists():
            return StoreData()
        try:
            return StoreData.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError) as e:
            logger.warning("store.load_failed", path=str(self.path), error=str(e))
            return StoreData()

    def _save(self) -> None:
        if self.path is None:
            return
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.data.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("store.save_failed", path=str(self.path), error=str(e))
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    # Subscription management

    def subscribe(self, chat_id: int, wallet_address: str, frequency_seconds: int) -> Subscription:
        """Point ``chat_id`` at ``wallet_address``, replacing any previous wallet."""
        now = self._clock()
        previous = self.data.subscriptions.get(chat_id)
        subscription = Subscription(
            wallet_address=wallet_address.lower(),
            frequency_seconds=frequency_seconds,
            active=True,
            created_at=previous.created_at if previous else now,
            updated_at=now,
        )
        self.data.subscriptions[chat_id] = subscription
        self.data.completion_status.pop(chat_id, None)
        self._save()

        logger.info(
            "store.subscribed",
            chat_id=chat_id,
            wallet=subscription.wallet_address,
            frequency_seconds=frequency_seconds,
        )
        return subscription

    def unsubscribe(self, chat_id: int) -> bool:
        if chat_id not in self.data.subscriptions:
            return False

        del self.data.subscriptions[chat_id]
        self.data.notification_history.pop(chat_id, None)
        self.data.completion_status.pop(chat_id, None)
        self._save()

        logger.info("store.unsubscribed", chat_id=chat_id)
        return True

    def get_subscription(self, chat_id: int) -> Optional[Subscription]:
        return self.data.subscriptions.get(chat_id)

    # Scheduler interface

    def list_monitored_wallets(self) -> List[str]:
        wallets: Dict[str, None] = {}
        for sub in self.data.subscriptions.values():
            if sub.active:
                wallets[sub.wallet_address] = None
        return list(wallets)

    def chats_for_wallet(self, wallet_address: str) -> List[int]:
        address = wallet_address.lower()
        return [
            chat_id
            for chat_id, sub in self.data.subscriptions.items()
            if sub.active and sub.wallet_address == address
        ]

    def should_notify(self, chat_id: int, request_id: str) -> bool:
        sub = self.data.subscriptions.get(chat_id)
        if sub is None:
            return False

        record = self.data.notification_history.get(chat_id, {}).get(request_id)
        if record is None:
            return True

        return self._clock() - record.last_notified_at >= sub.frequency_seconds

    def record_notification(self, chat_id: int, request_id: str) -> None:
        now = self._clock()
        history = self.data.notification_history.setdefault(chat_id, {})
        record = history.get(request_id)
        if record is None:
            history[request_id] = NotificationRecord(first_notified_at=now, last_notified_at=now)
        else:
            record.last_notified_at = now
        self._save()

    def cleanup_stale(self, chat_id: int, active_request_ids: Iterable[str]) -> None:
        history = self.data.notification_history.get(chat_id)
        if not history:
            return

        active = set(active_request_ids)
        stale = [request_id for request_id in history if request_id not in active]
        for request_id in stale:
            del history[request_id]
        if not history:
            del self.data.notification_history[chat_id]

        if stale:
            logger.debug("store.history_pruned", chat_id=chat_id, removed=stale)
            self._save()

    def should_send_completion(self, chat_id: int, active_count: int) -> bool:
        now = self._clock()
        status = self.data.completion_status.get(chat_id)

        # First sighting, or the wallet has requests again after an empty period
        if status is None or (status.last_request_count == 0 and active_count > 0):
            self.data.completion_status[chat_id] = CompletionStatus(
                completion_sent=False, last_request_count=active_count, updated_at=now
            )
            self._save()
            return active_count == 0

        if active_count == 0 and not status.completion_sent:
            # Record the empty period now so a single zero cycle still re-arms on 0 -> N
            if status.last_request_count != 0:
                status.last_request_count = 0
                status.updated_at = now
                self._save()
            return True

        if status.last_request_count != active_count:
            status.last_request_count = active_count
            status.updated_at = now
            if active_count > 0:
                status.completion_sent = False
            self._save()

        return False

    def mark_completion_sent(self, chat_id: int) -> None:
        status = self.data.completion_status.setdefault(
            chat_id, CompletionStatus(last_request_count=0)
        )
        status.completion_sent = True
        status.updated_at = self._clock()
        self._save()

    def reset_completion_status(self, chat_id: int) -> None:
        if self.data.completion_status.pop(chat_id, None) is not None:
            self._save()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_subscriptions": sum(1 for s in self.data.subscriptions.values() if s.active),
            "total_wallets": len(self.list_monitored_wallets()),
            "total_notification_history": sum(
                len(h) for h in self.data.notification_history.values()
            ),
        }

    def close(self) -> None:
        self._save()
        logger.info("store.closed")
