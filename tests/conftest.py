import os
import sys
from pathlib import Path
from typing import List

import pytest

# Ensure project root is on sys.path so `import withdrawal_monitor` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The API tests wire their own services; never autostart a real scheduler.
os.environ["POLLER_AUTOSTART"] = "false"
os.environ["LEDGER_BACKEND"] = "mock"

from withdrawal_monitor.ledger.mock_reader import MockLedgerReader  # noqa: E402
from withdrawal_monitor.ledger.service import LedgerQueryService  # noqa: E402
from withdrawal_monitor.notifications.store import JsonSubscriptionStore  # noqa: E402
from withdrawal_monitor.rpc.client import ResilientClient  # noqa: E402
from withdrawal_monitor.rpc.config import RetryPolicy  # noqa: E402
from withdrawal_monitor.rpc.endpoints import EndpointPool  # noqa: E402

PRIMARY = "https://primary.example"
FALLBACK_1 = "https://fallback-1.example"
FALLBACK_2 = "https://fallback-2.example"

WALLET = "0x1111111111111111111111111111111111111111"
OTHER_WALLET = "0x2222222222222222222222222222222222222222"


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts_per_endpoint=3, base_delay=1.0, max_delay=10.0, per_call_timeout=5.0
    )


@pytest.fixture
def pool() -> EndpointPool:
    return EndpointPool([PRIMARY, FALLBACK_1, FALLBACK_2])


@pytest.fixture
def client(pool, policy, sleeps) -> ResilientClient:
    return ResilientClient(pool, policy, sleep=sleeps)


@pytest.fixture
def reader() -> MockLedgerReader:
    return MockLedgerReader(latency_ms=0)


@pytest.fixture
def ledger(client, reader) -> LedgerQueryService:
    return LedgerQueryService(client, reader)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock) -> JsonSubscriptionStore:
    return JsonSubscriptionStore(tmp_path / "bot-data.json", clock=clock)
