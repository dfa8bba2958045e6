"""Retry and failover configuration for ledger RPC calls."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from withdrawal_monitor.core.config import Settings


class RetryPolicy(BaseModel):
    """Configuration for retry behavior with exponential backoff."""

    max_attempts_per_endpoint: int = Field(
        default=3, ge=1, description="Attempts on one endpoint before failing over"
    )
    base_delay: float = Field(default=1.0, gt=0, description="Initial delay in seconds")
    max_delay: float = Field(default=10.0, gt=0, description="Maximum delay in seconds")
    per_call_timeout: float = Field(
        default=30.0, gt=0, description="Timeout for a single call in seconds"
    )

    @model_validator(mode="after")
    def _check_delays(self) -> "RetryPolicy":
        if self.base_delay > self.max_delay:
            raise ValueError("base_delay must not exceed max_delay")
        return self

    def next_delay(self, delay: float) -> float:
        """Delay to use after waiting ``delay`` once."""
        return min(delay * 2, self.max_delay)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts_per_endpoint=settings.RPC_MAX_RETRIES,
            base_delay=settings.RPC_BASE_DELAY_MS / 1000.0,
            max_delay=settings.RPC_MAX_DELAY_MS / 1000.0,
            per_call_timeout=settings.RPC_TIMEOUT_MS / 1000.0,
        )
