import pytest
from httpx import AsyncClient

from tests.utils import (
    actor_headers,
    create_order,
    create_user,
    get_balance,
    get_transactions,
    patch_order,
)
from tests.utils.fakes import RecordingSender


@pytest.mark.e2e
class TestCompleteWorkflow:
    async def test_dispatch_to_settlement(
        self, client: AsyncClient, notification_sender: RecordingSender
    ) -> None:
        dispatcher = await create_user(client, role="dispatcher")
        restaurant = await create_user(client, role="restaurant")
        driver = await create_user(client, role="driver")
        await client.patch(
            f"/v1/users/{driver['id']}/push-token",
            json={"push_token": "ExponentPushToken[e2e]"},
        )

        # Step 1: Restaurant places two orders
        first = await create_order(
            client, restaurant["id"], collection_amount=30000, delivery_fee=2500
        )
        second = await create_order(
            client, restaurant["id"], collection_amount=12000, delivery_fee=1500
        )
        pending = await client.get("/v1/orders/pending")
        assert {o["id"] for o in pending.json()} == {first["id"], second["id"]}

        # Step 2: Dispatcher assigns both to the driver
        for order in (first, second):
            response = await patch_order(
                client,
                order["id"],
                {
                    "status": "assigned",
                    "driver_id": driver["id"],
                    "dispatcher_notes": "Priority customer",
                },
                headers=actor_headers(dispatcher["id"], "dispatcher"),
            )
            assert response.status_code == 200
        assert len(notification_sender.sent) == 2
        assert (await client.get("/v1/orders/pending")).json() == []

        # Step 3: Driver delivers the first order
        driver_headers = actor_headers(driver["id"], "driver")
        await patch_order(
            client, first["id"], {"status": "picked_up"}, headers=driver_headers
        )
        delivered = await patch_order(
            client,
            first["id"],
            {"status": "delivered", "proof_image_url": "https://cdn.test/proof.jpg"},
            headers=driver_headers,
        )
        assert delivered.status_code == 200

        # Step 4: The second order is cancelled by the dispatcher
        cancelled = await patch_order(
            client,
            second["id"],
            {"status": "cancelled", "reason": "Restaurant closed early"},
            headers=actor_headers(dispatcher["id"], "dispatcher"),
        )
        assert cancelled.status_code == 200

        # Step 5: Balances reflect only the delivered order
        assert await get_balance(client, driver["id"]) == 2500
        assert await get_balance(client, restaurant["id"]) == 30000
        assert len(await get_transactions(client, driver["id"])) == 1

        # Step 6: Restaurant rates the driver; analytics agree
        rating = await client.post(
            "/v1/ratings",
            json={"order_id": first["id"], "rating": 5},
            headers=actor_headers(restaurant["id"], "restaurant"),
        )
        assert rating.status_code == 201

        day = first["created_at"][:10]
        stats = (
            await client.get("/v1/analytics/daily", params={"date": day})
        ).json()
        assert stats["collections"] == 30000
        assert stats["commissions"] == 2500
        assert stats["pending_orders"] == 0

        leaderboard = (
            await client.get("/v1/analytics/drivers/leaderboard")
        ).json()["drivers"]
        assert leaderboard[0]["driver_id"] == driver["id"]
        assert leaderboard[0]["total_deliveries"] == 1
        assert leaderboard[0]["average_rating"] == 5.0
        assert leaderboard[0]["completion_percentage"] == 50.0

        # Step 7: Driver cashes out part of the balance
        payout = await client.post(
            f"/v1/users/{driver['id']}/transactions",
            json={"amount": 2000, "type": "withdrawal", "description": "Cash out"},
        )
        assert payout.status_code == 201
        assert await get_balance(client, driver["id"]) == 500

    async def test_health_and_metrics(self, client: AsyncClient) -> None:
        health = await client.get("/health")
        assert health.status_code == 200
        assert health.json() == {"status": "healthy"}

        restaurant = await create_user(client, role="restaurant")
        order = await create_order(client, restaurant["id"])
        await patch_order(client, order["id"], {"status": "cancelled"})

        metrics = await client.get("/metrics/")
        assert metrics.status_code == 200
        assert "delivery_order_transitions_total" in metrics.text
