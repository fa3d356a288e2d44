import pytest
from httpx import AsyncClient

from tests.utils import (
    actor_headers,
    create_order,
    create_user,
    deliver_order,
    patch_order,
)


async def _delivered_order(client: AsyncClient) -> tuple[dict, dict, dict]:
    restaurant = await create_user(client, role="restaurant")
    driver = await create_user(client, role="driver")
    order = await create_order(client, restaurant["id"])
    await deliver_order(client, order["id"], driver["id"])
    return restaurant, driver, order


@pytest.mark.integration
class TestRatingsAPI:
    async def test_rate_delivered_order(self, client: AsyncClient) -> None:
        restaurant, driver, order = await _delivered_order(client)

        response = await client.post(
            "/v1/ratings",
            json={"order_id": order["id"], "rating": 5, "comment": "Fast and polite"},
            headers=actor_headers(restaurant["id"], "restaurant"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["driver_id"] == driver["id"]
        assert data["restaurant_id"] == restaurant["id"]
        assert data["rating"] == 5

    async def test_order_can_be_rated_once(self, client: AsyncClient) -> None:
        _, _, order = await _delivered_order(client)
        await client.post("/v1/ratings", json={"order_id": order["id"], "rating": 4})

        response = await client.post(
            "/v1/ratings", json={"order_id": order["id"], "rating": 1}
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "RATING_ALREADY_EXISTS"

    async def test_undelivered_order_cannot_be_rated(self, client: AsyncClient) -> None:
        restaurant = await create_user(client, role="restaurant")
        driver = await create_user(client, role="driver")
        order = await create_order(client, restaurant["id"])
        await patch_order(
            client, order["id"], {"status": "assigned", "driver_id": driver["id"]}
        )

        response = await client.post(
            "/v1/ratings", json={"order_id": order["id"], "rating": 3}
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "RATING_NOT_ALLOWED"

    async def test_only_owning_restaurant_may_rate(self, client: AsyncClient) -> None:
        _, _, order = await _delivered_order(client)
        stranger = await create_user(client, role="restaurant")

        response = await client.post(
            "/v1/ratings",
            json={"order_id": order["id"], "rating": 2},
            headers=actor_headers(stranger["id"], "restaurant"),
        )

        assert response.status_code == 403

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_range(self, client: AsyncClient, rating: int) -> None:
        _, _, order = await _delivered_order(client)

        response = await client.post(
            "/v1/ratings", json={"order_id": order["id"], "rating": rating}
        )

        assert response.status_code == 422

    async def test_rating_missing_order(self, client: AsyncClient) -> None:
        response = await client.post("/v1/ratings", json={"order_id": 31337, "rating": 5})

        assert response.status_code == 404

    async def test_driver_rating_summary(self, client: AsyncClient) -> None:
        restaurant = await create_user(client, role="restaurant")
        driver = await create_user(client, role="driver")
        for rating in (5, 4, 3):
            order = await create_order(client, restaurant["id"])
            await deliver_order(client, order["id"], driver["id"])
            await client.post(
                "/v1/ratings", json={"order_id": order["id"], "rating": rating}
            )

        response = await client.get(f"/v1/ratings/drivers/{driver['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["driver_id"] == driver["id"]
        assert data["rating_count"] == 3
        assert data["average_rating"] == 4.0
        assert len(data["ratings"]) == 3

    async def test_new_rating_refreshes_cached_summary(
        self, client: AsyncClient
    ) -> None:
        _, driver, order = await _delivered_order(client)
        empty = await client.get(f"/v1/ratings/drivers/{driver['id']}")

        await client.post("/v1/ratings", json={"order_id": order["id"], "rating": 2})
        updated = await client.get(f"/v1/ratings/drivers/{driver['id']}")

        assert empty.json()["rating_count"] == 0
        assert updated.json()["rating_count"] == 1
        assert updated.json()["average_rating"] == 2.0
