"""
Tests for the HTTP API.

Services are wired by hand (mock ledger, logging notifier, temp store) and
installed before the app starts, so no network or scheduler timers are used.
"""

import pytest
from fastapi.testclient import TestClient

from withdrawal_monitor.core.config import Settings
from withdrawal_monitor.core.services import Services, set_services
from withdrawal_monitor.main import app
from withdrawal_monitor.notifications.notifier import LoggingNotifier
from withdrawal_monitor.notifications.store import JsonSubscriptionStore
from withdrawal_monitor.scheduler.config import SchedulerConfig
from withdrawal_monitor.scheduler.poller import PollScheduler

WALLET = "0x1111111111111111111111111111111111111111"


@pytest.fixture
def services(tmp_path, ledger):
    store = JsonSubscriptionStore(tmp_path / "api-store.json")
    notifier = LoggingNotifier()
    services = Services(
        settings=Settings(POLLER_AUTOSTART=False, DEFAULT_FREQ_SECONDS=86400),
        store=store,
        ledger=ledger,
        notifier=notifier,
        scheduler=PollScheduler(ledger, store, notifier, SchedulerConfig(enabled=False)),
    )
    set_services(services)
    yield services
    set_services(None)


@pytest.fixture
def api(services):
    with TestClient(app) as client:
        yield client


class TestHealth:
    def test_root(self, api):
        response = api.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_healthz(self, api):
        response = api.get("/healthz")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_header_is_echoed(self, api):
        response = api.get("/", headers={"x-request-id": "abc-123"})
        assert response.headers["x-request-id"] == "abc-123"


class TestSubscriptions:
    def test_subscribe_with_default_frequency(self, api):
        response = api.post("/subscriptions", json={"chat_id": 1, "wallet_address": WALLET})

        assert response.status_code == 200
        body = response.json()
        assert body["wallet_address"] == WALLET
        assert body["frequency_seconds"] == 86400
        assert body["frequency"] == "24h"

    def test_subscribe_with_label(self, api):
        response = api.post(
            "/subscriptions", json={"chat_id": 1, "wallet_address": WALLET, "frequency": "12h"}
        )
        assert response.json()["frequency_seconds"] == 12 * 3600

    def test_subscribe_with_seconds(self, api):
        response = api.post(
            "/subscriptions", json={"chat_id": 1, "wallet_address": WALLET, "frequency": 3600}
        )
        assert response.json()["frequency"] == "custom"

    def test_invalid_address_rejected(self, api):
        response = api.post("/subscriptions", json={"chat_id": 1, "wallet_address": "0x123"})
        assert response.status_code == 400

    def test_unknown_frequency_rejected(self, api):
        response = api.post(
            "/subscriptions", json={"chat_id": 1, "wallet_address": WALLET, "frequency": "weekly"}
        )
        assert response.status_code == 400

    def test_get_and_delete(self, api):
        assert api.get("/subscriptions/1").status_code == 404

        api.post("/subscriptions", json={"chat_id": 1, "wallet_address": WALLET})
        assert api.get("/subscriptions/1").json()["wallet_address"] == WALLET

        assert api.delete("/subscriptions/1").status_code == 200
        assert api.delete("/subscriptions/1").status_code == 404

    def test_stats(self, api):
        api.post("/subscriptions", json={"chat_id": 1, "wallet_address": WALLET})
        api.post("/subscriptions", json={"chat_id": 2, "wallet_address": WALLET})

        stats = api.get("/subscriptions/stats").json()
        assert stats["total_subscriptions"] == 2
        assert stats["total_wallets"] == 1


class TestWalletStatus:
    def test_wallet_status(self, api, reader):
        reader.add_request(WALLET, "1", claimable=True)
        reader.add_request(WALLET, "2", claimed=True)

        response = api.get(f"/wallets/{WALLET}/status")

        assert response.status_code == 200
        assert response.json() == {
            "wallet_address": WALLET,
            "request_ids": ["1", "2"],
            "active_request_ids": ["1"],
            "claimable_request_ids": ["1"],
        }

    def test_invalid_wallet(self, api):
        assert api.get("/wallets/not-a-wallet/status").status_code == 400


class TestPollerRoutes:
    def test_manual_poll(self, api, services, reader):
        services.store.subscribe(1, WALLET, 86400)
        reader.add_request(WALLET, "1", claimable=True)

        response = api.post("/poller/poll")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["details"]["notifications_sent"] == 1

    def test_status_when_not_started(self, api):
        status = api.get("/poller/status").json()
        assert status["running"] is False
        assert status["config"]["source"] == "mock"

    def test_start_and_stop(self, api):
        assert api.post("/poller/start").json() == {"running": True, "message": "Poller started"}
        assert api.post("/poller/start").json()["message"] == "Poller already running"
        assert api.get("/poller/status").json()["next_poll_at"] is not None

        assert api.post("/poller/stop").json() == {"running": False, "message": "Poller stopped"}
        assert api.post("/poller/stop").json()["message"] == "Poller is not running"

    def test_metrics(self, api):
        api.post("/poller/poll")

        metrics = api.get("/poller/metrics", params={"hours": 24}).json()
        assert metrics["aggregate"]["total_runs"] == 1
        assert metrics["success_rate"] == 1.0
        assert len(metrics["recent_runs"]) == 1
