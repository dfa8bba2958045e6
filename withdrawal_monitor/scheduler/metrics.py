"""
Poll cycle metrics.

Tracks per-cycle counters (wallets, requests, notifications, delivery
failures) and keeps a bounded in-memory history for status reporting.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, field, asdict
from enum import Enum


class PollStatus(str, Enum):
    """Status of a poll cycle."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Cycle finished, but some wallets or deliveries failed
    FAILED = "failed"
    SKIPPED = "skipped"  # Previous cycle still running


@dataclass
class CycleMetrics:
    """Metrics for a single poll cycle."""

    run_id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    status: PollStatus = PollStatus.SUCCESS

    wallets_checked: int = 0
    requests_seen: int = 0
    active_requests: int = 0
    claimable_requests: int = 0
    notifications_sent: int = 0
    completions_sent: int = 0
    delivery_failures: int = 0

    duration_seconds: float = 0.0

    errors: List[str] = field(default_factory=list)
    error_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        data["status"] = self.status.value
        return data


@dataclass
class AggregateMetrics:
    """Aggregated metrics across multiple poll cycles."""

    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    partial_runs: int = 0
    skipped_runs: int = 0

    total_notifications: int = 0
    total_completions: int = 0
    total_delivery_failures: int = 0
    total_errors: int = 0

    avg_duration_seconds: float = 0.0

    first_run: Optional[datetime] = None
    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ["first_run", "last_run", "last_success", "last_failure"]:
            if data[key]:
                data[key] = data[key].isoformat()
        return data


class PollerMetrics:
    """In-memory metrics tracker for the poll scheduler."""

    def __init__(self, history_size: int = 100):
        self.history_size = history_size
        self._current_run: Optional[CycleMetrics] = None
        self._history: List[CycleMetrics] = []
        self._run_counter = 0

    def _next_run_id(self) -> str:
        self._run_counter += 1
        return f"poll-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}-{self._run_counter}"

    def _append(self, run: CycleMetrics) -> None:
        self._history.append(run)
        if len(self._history) > self.history_size:
            self._history = self._history[-self.history_size :]

    def start_run(self) -> str:
        """Start tracking a new cycle and return its run id."""
        run_id = self._next_run_id()
        self._current_run = CycleMetrics(run_id=run_id, started_at=datetime.now(timezone.utc))
        return run_id

    def end_run(self, status: Optional[PollStatus] = None) -> Optional[CycleMetrics]:
        """
        Finish the current cycle.

        Without an explicit status the cycle is PARTIAL if anything failed,
        otherwise SUCCESS.
        """
        run = self._current_run
        if run is None:
            return None

        run.ended_at = datetime.now(timezone.utc)
        if status is None:
            failed = run.error_count > 0 or run.delivery_failures > 0
            status = PollStatus.PARTIAL if failed else PollStatus.SUCCESS
        run.status = status
        run.duration_seconds = (run.ended_at - run.started_at).total_seconds()

        self._append(run)
        self._current_run = None
        return run

    def record_skipped(self) -> CycleMetrics:
        """Record a trigger that was dropped because a cycle was in flight."""
        now = datetime.now(timezone.utc)
        run = CycleMetrics(
            run_id=self._next_run_id(),
            started_at=now,
            ended_at=now,
            status=PollStatus.SKIPPED,
        )
        self._append(run)
        return run

    def record_wallet(self, requests: int, active: int, claimable: int) -> None:
        if self._current_run:
            self._current_run.wallets_checked += 1
            self._current_run.requests_seen += requests
            self._current_run.active_requests += active
            self._current_run.claimable_requests += claimable

    def record_notification(self, request_count: int) -> None:
        if self._current_run:
            self._current_run.notifications_sent += request_count

    def record_completion(self) -> None:
        if self._current_run:
            self._current_run.completions_sent += 1

    def record_delivery_failure(self, error: str) -> None:
        if self._current_run:
            self._current_run.delivery_failures += 1
            self._current_run.errors.append(error)

    def record_error(self, error: str) -> None:
        if self._current_run:
            self._current_run.errors.append(error)
            self._current_run.error_count += 1

    def get_current_run(self) -> Optional[CycleMetrics]:
        return self._current_run

    def get_last_run(self) -> Optional[CycleMetrics]:
        return self._history[-1] if self._history else None

    def get_history(self, limit: Optional[int] = None) -> List[CycleMetrics]:
        """Recent cycles, newest first."""
        history = list(reversed(self._history))
        if limit:
            history = history[:limit]
        return history

    def get_aggregate_metrics(self, hours: Optional[int] = None) -> AggregateMetrics:
        """
        Aggregate recent cycles.

        Args:
            hours: Only include cycles from the last N hours (None = all history)
        """
        runs = self._history

        if hours:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
            runs = [r for r in runs if r.started_at >= cutoff]

        if not runs:
            return AggregateMetrics()

        metrics = AggregateMetrics()
        metrics.total_runs = len(runs)

        for run in runs:
            if run.status == PollStatus.SUCCESS:
                metrics.successful_runs += 1
            elif run.status == PollStatus.FAILED:
                metrics.failed_runs += 1
            elif run.status == PollStatus.PARTIAL:
                metrics.partial_runs += 1
            elif run.status == PollStatus.SKIPPED:
                metrics.skipped_runs += 1

        metrics.total_notifications = sum(r.notifications_sent for r in runs)
        metrics.total_completions = sum(r.completions_sent for r in runs)
        metrics.total_delivery_failures = sum(r.delivery_failures for r in runs)
        metrics.total_errors = sum(r.error_count for r in runs)
        metrics.avg_duration_seconds = sum(r.duration_seconds for r in runs) / len(runs)

        metrics.first_run = runs[0].started_at
        metrics.last_run = runs[-1].started_at

        for run in reversed(runs):
            if run.status == PollStatus.SUCCESS and not metrics.last_success:
                metrics.last_success = run.started_at
            if run.status == PollStatus.FAILED and not metrics.last_failure:
                metrics.last_failure = run.started_at
            if metrics.last_success and metrics.last_failure:
                break

        return metrics

    def get_success_rate(self, hours: Optional[int] = None) -> float:
        """Share of non-skipped cycles that finished with SUCCESS (0.0 to 1.0)."""
        agg = self.get_aggregate_metrics(hours)
        executed = agg.total_runs - agg.skipped_runs
        if executed == 0:
            return 0.0
        return agg.successful_runs / executed
