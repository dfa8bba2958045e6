"""
Poll scheduler.

Aligns the first poll cycle to a wall-clock grid, then repeats on a fixed
interval. Each cycle walks the monitored wallets one at a time, finds
claimable requests and sends deduplicated notifications.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Set

import structlog

from withdrawal_monitor.ledger.models import RequestId, short_address
from withdrawal_monitor.ledger.service import LedgerQueryService
from withdrawal_monitor.notifications.notifier import BaseNotifier
from withdrawal_monitor.notifications.store import SubscriptionStore
from withdrawal_monitor.scheduler.config import SchedulerConfig
from withdrawal_monitor.scheduler.metrics import PollerMetrics, PollStatus

logger = structlog.get_logger(__name__)


def seconds_until_next_boundary(now: datetime, alignment_minutes: int = 15) -> float:
    """
    Seconds from ``now`` to the next multiple of ``alignment_minutes`` past
    the hour, rounding up. A time exactly on the grid returns 0.
    """
    grid = alignment_minutes * 60
    into_hour = now.minute * 60 + now.second + now.microsecond / 1_000_000
    return (-into_hour) % grid


class PollScheduler:
    """
    Runs poll cycles on an aligned, non-overlapping schedule.

    ``start`` arms a one-shot alignment timer; when it fires a cycle runs
    and a recurring interval timer takes over. A trigger that arrives while
    a cycle is still running is skipped, not queued. ``stop`` cancels the
    timers but lets a running cycle finish.
    """

    def __init__(
        self,
        ledger: LedgerQueryService,
        store: SubscriptionStore,
        notifier: BaseNotifier,
        config: Optional[SchedulerConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ledger = ledger
        self.store = store
        self.notifier = notifier
        self.config = config or SchedulerConfig()
        self.metrics = PollerMetrics()
        self._clock = clock

        self._alignment_task: Optional[asyncio.Task] = None
        self._interval_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._is_polling = False
        self._next_poll_at: Optional[datetime] = None
        self._last_poll_time: Optional[datetime] = None

        logger.info(
            "poller.initialized",
            poll_interval_seconds=self.config.poll_interval_seconds,
            alignment_minutes=self.config.alignment_minutes,
        )

    @property
    def is_running(self) -> bool:
        return self._alignment_task is not None or self._interval_task is not None

    @property
    def is_polling(self) -> bool:
        return self._is_polling

    async def start(self) -> None:
        if self.is_running:
            logger.warning("poller.already_running")
            return

        now = self._clock()
        delay = seconds_until_next_boundary(now, self.config.alignment_minutes)
        self._next_poll_at = now + timedelta(seconds=delay)
        self._alignment_task = asyncio.create_task(self._run_after_alignment(delay))

        logger.info(
            "poller.started",
            interval_seconds=self.config.poll_interval_seconds,
            first_poll_at=self._next_poll_at.strftime("%H:%M"),
            delay_seconds=round(delay),
        )

    async def stop(self) -> None:
        tasks = [t for t in (self._alignment_task, self._interval_task) if t is not None]
        if not tasks:
            logger.debug("poller.not_running")
            return

        self._alignment_task = None
        self._interval_task = None
        self._next_poll_at = None

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("poller.stopped", cycle_in_flight=self._is_polling)

    async def drain(self) -> None:
        """Wait for cycles that are already running."""
        if self._cycle_tasks:
            await asyncio.gather(*list(self._cycle_tasks), return_exceptions=True)

    async def _run_after_alignment(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._trigger()
        self._interval_task = asyncio.create_task(self._run_interval())
        self._alignment_task = None

    async def _run_interval(self) -> None:
        interval = self.config.poll_interval_seconds
        while True:
            self._next_poll_at = self._clock() + timedelta(seconds=interval)
            await asyncio.sleep(interval)
            self._trigger()

    def _trigger(self) -> None:
        task = asyncio.create_task(self.poll_once())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)

    async def poll_once(self) -> Dict[str, Any]:
        """
        Run one poll cycle over every monitored wallet.

        Returns:
            Dictionary with the run id, status and cycle counters
        """
        if self._is_polling:
            logger.info("poller.cycle_skipped", reason="previous cycle still running")
            skipped = self.metrics.record_skipped()
            return {"run_id": skipped.run_id, "status": PollStatus.SKIPPED.value}

        self._is_polling = True
        run_id = self.metrics.start_run()
        try:
            wallets = self.store.list_monitored_wallets()
            if not wallets:
                logger.info("poller.no_wallets", run_id=run_id)
            else:
                logger.info("poller.cycle_started", run_id=run_id, wallets=len(wallets))

            for wallet in wallets:
                await self._check_wallet_safely(wallet)

            run = self.metrics.end_run()
        except Exception as e:
            logger.error("poller.cycle_failed", run_id=run_id, error=str(e), exc_info=True)
            self.metrics.record_error(str(e))
            run = self.metrics.end_run(PollStatus.FAILED)
        finally:
            self._is_polling = False
            self._last_poll_time = self._clock()

        result = run.to_dict() if run else {"run_id": run_id}
        logger.info(
            "poller.cycle_completed",
            run_id=run_id,
            status=result.get("status"),
            wallets=result.get("wallets_checked"),
            notifications=result.get("notifications_sent"),
            duration_seconds=result.get("duration_seconds"),
        )
        return result

    async def _check_wallet_safely(self, wallet: str) -> None:
        try:
            await self.check_wallet(wallet)
        except Exception as e:
            logger.error("poller.wallet_failed", wallet=wallet, error=str(e), exc_info=True)
            self.metrics.record_error(f"{wallet}: {e}")

    async def check_wallet(self, wallet: str) -> None:
        """Check one wallet and notify its chats about claimable requests."""
        request_ids = await self.ledger.list_request_ids(wallet)
        if not request_ids:
            logger.info("poller.wallet_no_requests", wallet=short_address(wallet))
            self.metrics.record_wallet(0, 0, 0)
            return

        active_ids = await self.ledger.filter_active(request_ids)
        if not active_ids:
            logger.info("poller.wallet_all_inactive", wallet=short_address(wallet))
            self.metrics.record_wallet(len(request_ids), 0, 0)
            await self._handle_all_inactive(wallet)
            return

        # Lets the store see a 0 -> N transition and re-arm the completion message
        for chat_id in self.store.chats_for_wallet(wallet):
            self.store.should_send_completion(chat_id, len(active_ids))

        claimable_ids = await self.ledger.filter_claimable(active_ids)
        self.metrics.record_wallet(len(request_ids), len(active_ids), len(claimable_ids))

        if not claimable_ids:
            logger.info(
                "poller.wallet_checked",
                wallet=short_address(wallet),
                active=len(active_ids),
                claimable=0,
            )
            return

        logger.info(
            "poller.wallet_checked",
            wallet=short_address(wallet),
            active=len(active_ids),
            claimable=len(claimable_ids),
        )
        await self._notify_chats(wallet, claimable_ids, active_ids)

    async def _notify_chats(
        self, wallet: str, claimable_ids: List[RequestId], active_ids: List[RequestId]
    ) -> None:
        for chat_id in self.store.chats_for_wallet(wallet):
            self.store.cleanup_stale(chat_id, active_ids)

            due = [rid for rid in claimable_ids if self.store.should_notify(chat_id, rid)]
            if not due:
                continue

            try:
                await self.notifier.send_batch(chat_id, wallet, due)
            except Exception as e:
                logger.error("poller.delivery_failed", chat_id=chat_id, wallet=wallet, error=str(e))
                self.metrics.record_delivery_failure(f"chat {chat_id}: {e}")
                continue

            for rid in due:
                self.store.record_notification(chat_id, rid)
            self.metrics.record_notification(len(due))
            logger.info("poller.chat_notified", chat_id=chat_id, request_ids=due)

    async def _handle_all_inactive(self, wallet: str) -> None:
        for chat_id in self.store.chats_for_wallet(wallet):
            self.store.cleanup_stale(chat_id, [])

            if not self.store.should_send_completion(chat_id, 0):
                continue

            try:
                await self.notifier.send_completion(chat_id)
            except Exception as e:
                logger.error("poller.completion_delivery_failed", chat_id=chat_id, error=str(e))
                self.metrics.record_delivery_failure(f"chat {chat_id}: {e}")
                continue

            self.store.mark_completion_sent(chat_id)
            self.metrics.record_completion()
            logger.info("poller.completion_sent", chat_id=chat_id)

    def get_status(self) -> Dict[str, Any]:
        current_run = self.metrics.get_current_run()
        last_run = self.metrics.get_last_run()
        aggregate = self.metrics.get_aggregate_metrics(hours=24)

        return {
            "running": self.is_running,
            "polling": self._is_polling,
            "next_poll_at": self._next_poll_at.isoformat() if self._next_poll_at else None,
            "last_poll_time": (
                self._last_poll_time.isoformat() if self._last_poll_time else None
            ),
            "current_run": current_run.to_dict() if current_run else None,
            "last_run": last_run.to_dict() if last_run else None,
            "metrics_24h": aggregate.to_dict(),
            "success_rate_24h": self.metrics.get_success_rate(hours=24),
            "config": {
                "poll_interval_seconds": self.config.poll_interval_seconds,
                "alignment_minutes": self.config.alignment_minutes,
                "source": self.ledger.reader.get_source_name(),
            },
        }

    def get_metrics(self, hours: Optional[int] = None) -> Dict[str, Any]:
        aggregate = self.metrics.get_aggregate_metrics(hours)
        return {
            "aggregate": aggregate.to_dict(),
            "success_rate": self.metrics.get_success_rate(hours),
            "recent_runs": [r.to_dict() for r in self.metrics.get_history(limit=10)],
        }
