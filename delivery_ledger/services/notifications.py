import logging
import re
from typing import Any, Optional, Protocol

import httpx

from delivery_ledger.db.models import Order, User
from delivery_ledger.exceptions import NotificationFailure
from delivery_ledger.metrics import notifications_total

logger = logging.getLogger(__name__)

EXPO_TOKEN_PATTERN = re.compile(r"^Expo(nent)?PushToken\[.+\]$")


class NotificationSender(Protocol):
    async def notify(
        self,
        push_token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        """Deliver one push message or raise NotificationFailure."""


class NullNotificationSender:
    async def notify(
        self,
        push_token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        logger.debug("Push notifications disabled, dropping message to %s", push_token)


class ExpoPushSender:
    """Sends messages through the Expo push API."""

    def __init__(
        self,
        url: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def is_push_token(token: str) -> bool:
        return bool(EXPO_TOKEN_PATTERN.match(token))

    async def notify(
        self,
        push_token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        if not self.is_push_token(push_token):
            raise NotificationFailure(f"Invalid Expo push token: {push_token}")

        message = {
            "to": push_token,
            "title": title,
            "body": body,
            "data": data or {},
            "sound": "default",
            "priority": "high",
        }
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(self.url, json=[message], headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise NotificationFailure(f"Expo push request failed: {e}") from e

        if payload.get("errors"):
            raise NotificationFailure(f"Expo push rejected: {payload['errors']}")
        tickets = payload.get("data") or []
        if isinstance(tickets, dict):
            tickets = [tickets]
        for ticket in tickets:
            if ticket.get("status") == "error":
                raise NotificationFailure(
                    f"Expo push ticket error: {ticket.get('message')}"
                )
        logger.info("Push notification sent tickets=%s", tickets)


class NotificationTemplates:
    @staticmethod
    def order_assigned(order_id: int) -> tuple[str, str, dict[str, Any]]:
        return (
            "New order",
            f"You have been assigned order #{order_id}",
            {"type": "order_assigned", "orderId": order_id},
        )


class NotificationDispatcher:
    """Best-effort hook run after an order transition has committed.

    Nothing raised here ever reaches the caller of the state machine.
    """

    def __init__(self, sender: NotificationSender) -> None:
        self.sender = sender

    async def order_assigned(self, order: Order, driver: Optional[User]) -> bool:
        if driver is None or not driver.push_token:
            logger.info(
                "Assigned driver has no push token order_id=%s driver_id=%s",
                order.id,
                order.driver_id,
                extra={"order_id": order.id, "driver_id": order.driver_id},
            )
            notifications_total.labels(outcome="skipped").inc()
            return False

        title, body, data = NotificationTemplates.order_assigned(order.id)
        try:
            await self.sender.notify(driver.push_token, title, body, data)
        except NotificationFailure as e:
            logger.warning(
                "Notification failed order_id=%s driver_id=%s: %s",
                order.id,
                driver.id,
                e,
                extra={"order_id": order.id, "driver_id": driver.id},
            )
            notifications_total.labels(outcome="failed").inc()
            return False
        except Exception as e:
            logger.error(
                "Unexpected notification error order_id=%s driver_id=%s: %s",
                order.id,
                driver.id,
                e,
                exc_info=True,
                extra={"order_id": order.id, "driver_id": driver.id},
            )
            notifications_total.labels(outcome="failed").inc()
            return False

        notifications_total.labels(outcome="sent").inc()
        return True
