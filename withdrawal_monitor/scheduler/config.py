"""Poll scheduler configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from withdrawal_monitor.core.config import Settings


class SchedulerConfig(BaseModel):
    """Timing of the poll loop."""

    poll_interval_seconds: float = Field(
        default=900.0, gt=0, description="Seconds between poll cycles"
    )
    alignment_minutes: int = Field(
        default=15, ge=1, le=60, description="Wall-clock grid for the first cycle"
    )
    enabled: bool = Field(default=True, description="Start the scheduler on app startup")

    @field_validator("alignment_minutes")
    @classmethod
    def _divides_hour(cls, value: int) -> int:
        if 60 % value != 0:
            raise ValueError("alignment_minutes must divide 60")
        return value

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulerConfig":
        return cls(
            poll_interval_seconds=settings.POLL_INTERVAL_MS / 1000.0,
            alignment_minutes=settings.POLL_ALIGNMENT_MINUTES,
            enabled=settings.POLLER_AUTOSTART,
        )
