"""
Service wiring.

Builds the store, RPC client, ledger service, notifier and scheduler from
settings and keeps one process-wide instance for the API and CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from withdrawal_monitor.core.config import Settings, get_settings
from withdrawal_monitor.ledger.base import BaseLedgerReader
from withdrawal_monitor.ledger.contract_reader import Web3LedgerReader
from withdrawal_monitor.ledger.mock_reader import MockLedgerReader
from withdrawal_monitor.ledger.service import LedgerQueryService
from withdrawal_monitor.notifications.notifier import (
    BaseNotifier,
    LoggingNotifier,
    TelegramNotifier,
)
from withdrawal_monitor.notifications.store import JsonSubscriptionStore
from withdrawal_monitor.rpc.client import ResilientClient
from withdrawal_monitor.rpc.config import RetryPolicy
from withdrawal_monitor.rpc.endpoints import EndpointPool
from withdrawal_monitor.scheduler.config import SchedulerConfig
from withdrawal_monitor.scheduler.poller import PollScheduler

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    store: JsonSubscriptionStore
    ledger: LedgerQueryService
    notifier: BaseNotifier
    scheduler: PollScheduler

    async def aclose(self) -> None:
        await self.scheduler.stop()
        await self.scheduler.drain()
        await self.notifier.close()
        await self.ledger.reader.close()
        self.store.close()


def _build_reader(settings: Settings, policy: RetryPolicy) -> BaseLedgerReader:
    if settings.LEDGER_BACKEND == "mock":
        logger.warning("services.mock_ledger", reason="LEDGER_BACKEND=mock")
        return MockLedgerReader()
    if not settings.CONTRACT_ADDRESS:
        raise ValueError("CONTRACT_ADDRESS is required for the web3 ledger backend")
    return Web3LedgerReader(settings.CONTRACT_ADDRESS, request_timeout=policy.per_call_timeout)


def _build_notifier(settings: Settings) -> BaseNotifier:
    if not settings.BOT_TOKEN:
        logger.warning("services.notifications_disabled", reason="BOT_TOKEN not set")
        return LoggingNotifier()
    return TelegramNotifier(settings.BOT_TOKEN, claim_url=settings.CLAIM_URL)


def build_services(settings: Optional[Settings] = None) -> Services:
    settings = settings or get_settings()
    policy = RetryPolicy.from_settings(settings)

    client = ResilientClient(EndpointPool(settings.rpc_urls()), policy)
    ledger = LedgerQueryService(client, _build_reader(settings, policy))
    store = JsonSubscriptionStore(settings.STORE_PATH)
    notifier = _build_notifier(settings)
    scheduler = PollScheduler(ledger, store, notifier, SchedulerConfig.from_settings(settings))

    return Services(
        settings=settings,
        store=store,
        ledger=ledger,
        notifier=notifier,
        scheduler=scheduler,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """Get or create the process-wide services."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: Optional[Services]) -> None:
    """Replace the process-wide services (used by tests and the app lifespan)."""
    global _services
    _services = services
