"""
Scheduled polling of monitored wallets.

This module aligns poll cycles to the wall clock, walks every monitored
wallet, and hands claimable requests to the notifier with deduplication.
"""

from withdrawal_monitor.scheduler.poller import PollScheduler, seconds_until_next_boundary
from withdrawal_monitor.scheduler.config import SchedulerConfig
from withdrawal_monitor.scheduler.metrics import PollerMetrics, PollStatus

__all__ = [
    "PollScheduler",
    "seconds_until_next_boundary",
    "SchedulerConfig",
    "PollerMetrics",
    "PollStatus",
]
