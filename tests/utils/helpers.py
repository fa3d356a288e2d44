import asyncio
from typing import List, Optional

from httpx import AsyncClient, Response

from tests.utils.factories import OrderFactory, UserFactory


def actor_headers(user_id: int, role: str) -> dict:
    return {"X-Actor-Id": str(user_id), "X-Actor-Role": role}


async def create_user(client: AsyncClient, role: str = "driver", **overrides) -> dict:
    response = await client.post(
        "/v1/users", json=UserFactory.create_user_data(role=role, **overrides)
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_order(client: AsyncClient, restaurant_id: int, **overrides) -> dict:
    response = await client.post(
        "/v1/orders", json=OrderFactory.create_order_data(restaurant_id, **overrides)
    )
    assert response.status_code == 201, response.text
    return response.json()


async def patch_order(
    client: AsyncClient,
    order_id: int,
    payload: dict,
    headers: Optional[dict] = None,
) -> Response:
    return await client.patch(f"/v1/orders/{order_id}", json=payload, headers=headers)


async def deliver_order(client: AsyncClient, order_id: int, driver_id: int) -> dict:
    """Walk an order through assigned, picked_up and delivered."""
    for payload in (
        {"status": "assigned", "driver_id": driver_id},
        {"status": "picked_up"},
        {"status": "delivered"},
    ):
        response = await patch_order(client, order_id, payload)
        assert response.status_code == 200, response.text
    return response.json()


async def get_balance(client: AsyncClient, user_id: int) -> int:
    response = await client.get(f"/v1/users/{user_id}")
    return response.json()["balance"]


async def get_transactions(client: AsyncClient, user_id: int) -> List[dict]:
    response = await client.get(f"/v1/users/{user_id}/transactions")
    return response.json()


async def patch_order_concurrent(
    client: AsyncClient,
    order_id: int,
    payloads: List[dict],
) -> List[Response]:
    """Send several PATCH requests for the same order at once."""
    tasks = [patch_order(client, order_id, payload) for payload in payloads]
    return list(await asyncio.gather(*tasks))
