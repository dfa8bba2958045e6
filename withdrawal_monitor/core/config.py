from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Millisecond values keep the names operators already use for the
    deployment; component configs convert them to seconds.
    """

    # App basics
    ENV: Literal["development", "staging", "production"] = "development"
    """Environment mode: affects logging output."""

    DEBUG: bool = False
    """Enable debug logging."""

    # Ledger / RPC
    RPC_URL: str = "https://api.avax.network/ext/bc/C/rpc"
    """Primary RPC endpoint."""

    FALLBACK_RPC_URLS: str = ""
    """Comma separated fallback endpoints, tried in order after RPC_URL."""

    CONTRACT_ADDRESS: Optional[str] = None
    """WithdrawQueue contract address."""

    LEDGER_BACKEND: Literal["web3", "mock"] = "web3"
    """Ledger reader implementation. 'mock' serves an empty in-memory ledger."""

    RPC_MAX_RETRIES: int = 3
    """Attempts per endpoint before failing over."""

    RPC_TIMEOUT_MS: int = 30000
    """Per-call timeout."""

    RPC_BASE_DELAY_MS: int = 1000
    """First backoff delay on an endpoint."""

    RPC_MAX_DELAY_MS: int = 10000
    """Backoff cap."""

    # Notifications
    BOT_TOKEN: Optional[str] = None
    """Telegram bot token. When unset, notifications are only logged."""

    CLAIM_URL: str = "https://hypha.sh/unstake"
    """Link attached to 'ready to claim' notifications."""

    DEFAULT_FREQ_SECONDS: int = 86400
    """Default minimum interval between repeated notifications."""

    STORE_PATH: str = "data/bot-data.json"
    """JSON file backing subscriptions and notification history."""

    # Poller
    POLL_INTERVAL_MS: int = 900000
    """Interval between poll cycles."""

    POLL_ALIGNMENT_MINUTES: int = 15
    """First cycle is aligned to this wall-clock grid (must divide 60)."""

    POLLER_AUTOSTART: bool = True
    """Start the scheduler when the app starts."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def rpc_urls(self) -> list[str]:
        """Primary endpoint followed by the configured fallbacks."""
        fallbacks = [u.strip() for u in self.FALLBACK_RPC_URLS.split(",")]
        return [self.RPC_URL, *[u for u in fallbacks if u]]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing .env repeatedly."""
    return Settings()
