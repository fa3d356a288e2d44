import json
from datetime import datetime, timezone

import httpx
import pytest

from delivery_ledger.core.enums import OrderStatus, UserRole
from delivery_ledger.db.models import Order, User
from delivery_ledger.exceptions import NotificationFailure
from delivery_ledger.services.notifications import (
    ExpoPushSender,
    NotificationDispatcher,
)
from tests.utils.fakes import RecordingSender

EXPO_URL = "https://push.test/--/api/v2/push/send"


def _sender(handler) -> ExpoPushSender:
    return ExpoPushSender(
        url=EXPO_URL, access_token="secret", transport=httpx.MockTransport(handler)
    )


def _order() -> Order:
    return Order(
        id=12,
        restaurant_id=1,
        driver_id=2,
        status=OrderStatus.ASSIGNED,
        customer_name="Mona Adel",
        customer_phone="01098765432",
        delivery_address="12 Tahrir Street, Downtown",
        collection_amount=1000,
        delivery_fee=100,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _driver(push_token=None) -> User:
    return User(
        id=2,
        email="driver@fleetmail.com",
        password_hash="x",
        role=UserRole.DRIVER,
        full_name="Driver",
        push_token=push_token,
    )


class TestExpoPushSender:
    async def test_posts_message(self) -> None:
        captured = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"data": [{"status": "ok", "id": "t1"}]})

        await _sender(handler).notify(
            "ExponentPushToken[abc]", "New order", "Order #12", {"orderId": 12}
        )

        assert len(captured) == 1
        request = captured[0]
        assert str(request.url) == EXPO_URL
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body[0]["to"] == "ExponentPushToken[abc]"
        assert body[0]["data"] == {"orderId": 12}

    async def test_rejects_malformed_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(NotificationFailure):
            await _sender(handler).notify("not-a-token", "t", "b")

    async def test_ticket_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"data": [{"status": "error", "message": "DeviceNotRegistered"}]},
            )

        with pytest.raises(NotificationFailure, match="DeviceNotRegistered"):
            await _sender(handler).notify("ExpoPushToken[abc]", "t", "b")

    async def test_http_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        with pytest.raises(NotificationFailure):
            await _sender(handler).notify("ExpoPushToken[abc]", "t", "b")


class TestNotificationDispatcher:
    async def test_sends_assignment(self) -> None:
        sender = RecordingSender()

        sent = await NotificationDispatcher(sender).order_assigned(
            _order(), _driver("ExpoPushToken[x]")
        )

        assert sent is True
        assert sender.sent[0]["body"] == "You have been assigned order #12"

    async def test_skips_driver_without_token(self) -> None:
        sender = RecordingSender()

        sent = await NotificationDispatcher(sender).order_assigned(_order(), _driver())

        assert sent is False
        assert sender.sent == []

    async def test_swallows_sender_failure(self) -> None:
        sender = RecordingSender()
        sender.fail_with = NotificationFailure("down")

        sent = await NotificationDispatcher(sender).order_assigned(
            _order(), _driver("ExpoPushToken[x]")
        )

        assert sent is False
