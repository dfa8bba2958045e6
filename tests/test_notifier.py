"""Tests for message formatting and Telegram delivery."""

import json

import httpx
import pytest

from withdrawal_monitor.notifications.notifier import (
    DeliveryError,
    LoggingNotifier,
    TelegramNotifier,
    format_batch_message,
    format_completion_message,
)

WALLET = "0x1234567890abcdef1234567890abcdef12345678"


def _telegram(handler, claim_url="https://claim.example/unstake"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramNotifier("TEST:TOKEN", claim_url=claim_url, client=client)


class TestFormatting:
    def test_batch_message_lists_every_request(self):
        text = format_batch_message(WALLET, ["1", "2", "3"])

        assert text.startswith("🎉 *Withdrawal Ready*")
        assert "`0x1234...5678`" in text
        assert "• Request #1\n• Request #2\n• Request #3" in text
        assert text.endswith("Ready to claim on Avalanche C-Chain")

    def test_completion_message(self):
        assert "claimed" in format_completion_message()


@pytest.mark.asyncio
class TestTelegramNotifier:
    async def test_send_batch_posts_markdown_with_claim_button(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

        notifier = _telegram(handler)
        await notifier.send_batch(42, WALLET, ["7", "8"])
        await notifier.close()

        assert len(requests) == 1
        assert requests[0].url.path == "/botTEST:TOKEN/sendMessage"
        body = json.loads(requests[0].content)
        assert body["chat_id"] == 42
        assert body["parse_mode"] == "Markdown"
        assert "Request #7" in body["text"] and "Request #8" in body["text"]
        button = body["reply_markup"]["inline_keyboard"][0][0]
        assert button["url"] == "https://claim.example/unstake"

    async def test_no_button_without_claim_url(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        notifier = _telegram(handler, claim_url=None)
        await notifier.send_batch(42, WALLET, ["7"])

        assert "reply_markup" not in bodies[0]

    async def test_send_completion(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        notifier = _telegram(handler)
        await notifier.send_completion(5)

        assert bodies == [{"chat_id": 5, "text": format_completion_message()}]

    async def test_http_error_status_raises(self):
        notifier = _telegram(lambda request: httpx.Response(403, text="Forbidden: bot was blocked"))

        with pytest.raises(DeliveryError, match="403"):
            await notifier.send_batch(42, WALLET, ["7"])

    async def test_api_rejection_raises(self):
        notifier = _telegram(
            lambda request: httpx.Response(200, json={"ok": False, "description": "chat not found"})
        )

        with pytest.raises(DeliveryError, match="chat not found"):
            await notifier.send_completion(42)

    async def test_non_json_body_raises(self):
        notifier = _telegram(lambda request: httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(DeliveryError):
            await notifier.send_completion(42)

    async def test_transport_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = _telegram(handler)

        with pytest.raises(DeliveryError, match="connection refused"):
            await notifier.send_batch(42, WALLET, ["7"])


@pytest.mark.asyncio
async def test_logging_notifier_never_fails():
    notifier = LoggingNotifier()
    await notifier.send_batch(1, WALLET, ["1"])
    await notifier.send_completion(1)
    await notifier.close()
