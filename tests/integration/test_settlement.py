import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError, OperationalError

from delivery_ledger.core.enums import OrderStatus, TransactionType
from delivery_ledger.db.models import Transaction
from delivery_ledger.db.repositories import OrderRepository, TransactionRepository
from delivery_ledger.schemas.orders import DeliverOrder
from delivery_ledger.services.ledger_service import LedgerService
from delivery_ledger.services.notifications import NotificationDispatcher
from delivery_ledger.services.order_state_machine import OrderStateMachine
from tests.utils import (
    create_order,
    create_user,
    deliver_order,
    get_balance,
    get_transactions,
    patch_order,
    patch_order_concurrent,
)


async def _picked_up_order(client: AsyncClient) -> tuple[dict, dict, dict]:
    restaurant = await create_user(client, role="restaurant")
    driver = await create_user(client, role="driver")
    order = await create_order(
        client, restaurant["id"], collection_amount=40000, delivery_fee=2500
    )
    await patch_order(
        client, order["id"], {"status": "assigned", "driver_id": driver["id"]}
    )
    await patch_order(client, order["id"], {"status": "picked_up"})
    return restaurant, driver, order


async def _count_order_transactions(session_factory, order_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count(Transaction.id)).where(Transaction.order_id == order_id)
        )
        return result.scalar() or 0


@pytest.mark.idempotency
class TestSettlementIdempotency:
    async def test_redelivery_is_a_noop(
        self, client: AsyncClient, session_factory
    ) -> None:
        restaurant, driver, order = await _picked_up_order(client)

        first = await patch_order(client, order["id"], {"status": "delivered"})
        second = await patch_order(client, order["id"], {"status": "delivered"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["status"] == "delivered"
        assert second.json()["delivered_at"] == first.json()["delivered_at"]
        assert await get_balance(client, driver["id"]) == 2500
        assert await get_balance(client, restaurant["id"]) == 40000
        assert await _count_order_transactions(session_factory, order["id"]) == 2

    async def test_concurrent_deliveries_settle_once(
        self, client: AsyncClient, session_factory
    ) -> None:
        restaurant, driver, order = await _picked_up_order(client)

        responses = await patch_order_concurrent(
            client, order["id"], [{"status": "delivered"}] * 3
        )

        status_codes = [r.status_code for r in responses]
        assert 200 in status_codes
        # A request that loses the database write lock is told to retry.
        assert all(code in (200, 503) for code in status_codes)
        assert await _count_order_transactions(session_factory, order["id"]) == 2
        assert await get_balance(client, driver["id"]) == 2500
        assert await get_balance(client, restaurant["id"]) == 40000

    async def test_lost_compare_and_set_is_retried(
        self,
        client: AsyncClient,
        session_factory,
        notification_sender,
        cache,
        monkeypatch,
    ) -> None:
        restaurant, driver, order = await _picked_up_order(client)
        original = OrderRepository.transition_status
        calls = []

        async def flaky(self, order_id, expected_status, values):
            calls.append(expected_status)
            if len(calls) == 1:
                return False
            return await original(self, order_id, expected_status, values)

        monkeypatch.setattr(OrderRepository, "transition_status", flaky)

        async with session_factory() as session:
            machine = OrderStateMachine(
                session, NotificationDispatcher(notification_sender), cache
            )
            result = await machine.transition(
                order["id"], DeliverOrder(status="delivered")
            )

        assert result.status == OrderStatus.DELIVERED
        assert calls == [OrderStatus.PICKED_UP, OrderStatus.PICKED_UP]
        assert await _count_order_transactions(session_factory, order["id"]) == 2
        assert await get_balance(client, driver["id"]) == 2500

    async def test_losing_a_race_returns_winner_state(
        self,
        client: AsyncClient,
        session_factory,
        notification_sender,
        cache,
        monkeypatch,
    ) -> None:
        restaurant, driver, order = await _picked_up_order(client)
        dispatcher = NotificationDispatcher(notification_sender)
        original = OrderRepository.transition_status
        raced = []

        async def racing(self, order_id, expected_status, values):
            if not raced:
                raced.append(order_id)
                # Another request delivers and commits before this write lands.
                async with session_factory() as other:
                    winner = OrderStateMachine(other, dispatcher, cache)
                    await winner.transition(order_id, DeliverOrder(status="delivered"))
                return False
            return await original(self, order_id, expected_status, values)

        monkeypatch.setattr(OrderRepository, "transition_status", racing)

        async with session_factory() as session:
            loser = OrderStateMachine(session, dispatcher, cache)
            result = await loser.transition(
                order["id"], DeliverOrder(status="delivered")
            )

        assert result.status == OrderStatus.DELIVERED
        assert await _count_order_transactions(session_factory, order["id"]) == 2
        assert await get_balance(client, driver["id"]) == 2500
        assert await get_balance(client, restaurant["id"]) == 40000

    async def test_settlement_postings_are_unique_per_order(
        self, client: AsyncClient, session_factory
    ) -> None:
        restaurant = await create_user(client, role="restaurant")
        driver = await create_user(client, role="driver")
        order = await create_order(client, restaurant["id"])
        await deliver_order(client, order["id"], driver["id"])

        async with session_factory() as session:
            order_row = await OrderRepository(session).get_by_id(order["id"])
            with pytest.raises(IntegrityError):
                await LedgerService(session).settle_delivery(order_row)
            await session.rollback()

        assert await _count_order_transactions(session_factory, order["id"]) == 2


@pytest.mark.integration
class TestSettlementAtomicity:
    async def test_compare_and_set_updates_once(
        self, client: AsyncClient, session_factory
    ) -> None:
        restaurant = await create_user(client, role="restaurant")
        order = await create_order(client, restaurant["id"])

        async with session_factory() as session:
            async with session.begin():
                repo = OrderRepository(session)
                assert await repo.transition_status(
                    order["id"], OrderStatus.PENDING, {"status": OrderStatus.CANCELLED}
                )
                assert not await repo.transition_status(
                    order["id"], OrderStatus.PENDING, {"status": OrderStatus.CANCELLED}
                )

    async def test_ledger_failure_rolls_back_status(
        self, client: AsyncClient, session_factory, monkeypatch
    ) -> None:
        restaurant, driver, order = await _picked_up_order(client)

        async def broken_settlement(self, order):
            raise OperationalError(
                "INSERT INTO transactions", {}, Exception("disk I/O error")
            )

        monkeypatch.setattr(LedgerService, "settle_delivery", broken_settlement)

        response = await patch_order(client, order["id"], {"status": "delivered"})

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "LEDGER_WRITE_FAILURE"
        assert error["details"]["retryable"] is True

        current = await client.get(f"/v1/orders/{order['id']}")
        assert current.json()["status"] == "picked_up"
        assert current.json()["delivered_at"] is None
        assert await _count_order_transactions(session_factory, order["id"]) == 0
        assert await get_balance(client, driver["id"]) == 0

    async def test_balances_match_transaction_history(
        self, client: AsyncClient
    ) -> None:
        restaurant = await create_user(client, role="restaurant")
        drivers = [await create_user(client, role="driver") for _ in range(2)]
        for index, fee in enumerate((1500, 2000, 2500)):
            order = await create_order(
                client,
                restaurant["id"],
                collection_amount=10000 * (index + 1),
                delivery_fee=fee,
            )
            await deliver_order(client, order["id"], drivers[index % 2]["id"])
        cancelled = await create_order(client, restaurant["id"])
        await patch_order(client, cancelled["id"], {"status": "cancelled"})
        await client.post(
            f"/v1/users/{drivers[0]['id']}/transactions",
            json={"amount": 1000, "type": "withdrawal"},
        )

        for user in [restaurant, *drivers]:
            signed = sum(
                -tx["amount"] if tx["type"] == "withdrawal" else tx["amount"]
                for tx in await get_transactions(client, user["id"])
            )
            assert await get_balance(client, user["id"]) == signed

        assert await get_balance(client, restaurant["id"]) == 60000
        assert await get_balance(client, drivers[0]["id"]) == 1500 + 2500 - 1000
        assert await get_balance(client, drivers[1]["id"]) == 2000

    async def test_delivery_posts_commission_and_payment(
        self, client: AsyncClient, session_factory
    ) -> None:
        restaurant, driver, order = await _picked_up_order(client)
        await patch_order(client, order["id"], {"status": "delivered"})

        async with session_factory() as session:
            postings = await TransactionRepository(session).list_for_order(order["id"])
            by_driver = await OrderRepository(session).list_by_driver(driver["id"])
            by_restaurant = await OrderRepository(session).list_by_restaurant(
                restaurant["id"]
            )

        assert [(p.type, p.user_id, p.amount) for p in postings] == [
            (TransactionType.COMMISSION, driver["id"], 2500),
            (TransactionType.PAYMENT, restaurant["id"], 40000),
        ]
        assert [o.id for o in by_driver] == [order["id"]]
        assert [o.id for o in by_restaurant] == [order["id"]]
        assert by_driver[0].status == OrderStatus.DELIVERED

    async def test_unique_posting_index_is_partial(
        self, client: AsyncClient, session_factory
    ) -> None:
        async with session_factory() as session:
            result = await session.execute(
                text(
                    "SELECT sql FROM sqlite_master "
                    "WHERE type = 'index' AND name = 'uq_transactions_order_type'"
                )
            )
            ddl = result.scalar_one()
        assert "UNIQUE" in ddl.upper()
        assert "WHERE order_id IS NOT NULL" in ddl

        driver = await create_user(client, role="driver")
        for _ in range(2):
            response = await client.post(
                f"/v1/users/{driver['id']}/transactions",
                json={"amount": 700, "type": "deposit"},
            )
            assert response.status_code == 201
        assert await get_balance(client, driver["id"]) == 1400
