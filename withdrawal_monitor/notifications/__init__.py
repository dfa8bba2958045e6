"""Subscriptions, notification history and message delivery."""

from withdrawal_monitor.notifications.models import (
    FREQUENCY_OPTIONS,
    CompletionStatus,
    NotificationRecord,
    Subscription,
)
from withdrawal_monitor.notifications.notifier import (
    BaseNotifier,
    DeliveryError,
    LoggingNotifier,
    TelegramNotifier,
)
from withdrawal_monitor.notifications.store import JsonSubscriptionStore, SubscriptionStore

__all__ = [
    "FREQUENCY_OPTIONS",
    "CompletionStatus",
    "NotificationRecord",
    "Subscription",
    "BaseNotifier",
    "DeliveryError",
    "LoggingNotifier",
    "TelegramNotifier",
    "JsonSubscriptionStore",
    "SubscriptionStore",
]
