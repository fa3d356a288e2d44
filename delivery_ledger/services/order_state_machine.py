import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import OrderStatus, UserRole
from delivery_ledger.db.base import utcnow
from delivery_ledger.db.models import Order
from delivery_ledger.db.repositories import OrderRepository, UserRepository
from delivery_ledger.exceptions import (
    BaseAPIException,
    InvalidDriverException,
    InvalidTransitionException,
    LedgerWriteFailureException,
    MissingDriverForAssignmentException,
    OrderNotFoundException,
    SettlementConflict,
    TransitionForbiddenException,
)
from delivery_ledger.metrics import order_transitions_total, settlements_total
from delivery_ledger.schemas.orders import (
    AssignOrder,
    CancelOrder,
    DeliverOrder,
    PickUpOrder,
    ReopenOrder,
)
from delivery_ledger.services.cache import MemoryCache
from delivery_ledger.services.ledger_service import LedgerService
from delivery_ledger.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

TransitionRequest = Union[AssignOrder, PickUpOrder, DeliverOrder, CancelOrder, ReopenOrder]

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ASSIGNED, OrderStatus.CANCELLED}),
    # assigned -> assigned is a reassignment to another driver
    OrderStatus.ASSIGNED: frozenset(
        {OrderStatus.ASSIGNED, OrderStatus.PICKED_UP, OrderStatus.CANCELLED}
    ),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class Actor:
    """Caller identity resolved by the authentication layer."""

    user_id: int
    role: UserRole


class OrderStateMachine:
    """
    Applies order status transitions and their ledger side effects.

    Each call owns one database transaction on `session`: the order row is
    re-read under a row lock, the status is written with a compare-and-set
    on the status that was read, and settlement postings are only made when
    that write hit exactly one row. A lost race is a `SettlementConflict`;
    the operation is retried once against the fresh row, which then resolves
    to an idempotent no-op or a regular transition error.

    Notifications run after commit and never affect the outcome.
    """

    MAX_ATTEMPTS = 2

    def __init__(
        self,
        session: AsyncSession,
        notifier: NotificationDispatcher,
        cache: MemoryCache,
    ) -> None:
        self.session = session
        self.order_repo = OrderRepository(session)
        self.user_repo = UserRepository(session)
        self.ledger_service = LedgerService(session)
        self.notifier = notifier
        self.cache = cache

    async def transition(
        self,
        order_id: int,
        request: TransitionRequest,
        actor: Optional[Actor] = None,
    ) -> Order:
        target = OrderStatus(request.status)

        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                order, applied = await self._apply(order_id, target, request, actor)
            except SettlementConflict as e:
                settlements_total.labels(outcome="conflict").inc()
                logger.warning(
                    "Concurrent update detected order_id=%s expected_status=%s target=%s attempt=%s",
                    order_id,
                    e.expected_status,
                    target.value,
                    attempt,
                    extra={
                        "order_id": order_id,
                        "expected_status": e.expected_status,
                        "target_status": target.value,
                    },
                )
                continue
            break
        else:
            # Still losing after retrying: report the state the winner left.
            order = await self.order_repo.get_by_id_for_update(order_id)
            await self.session.commit()
            if order is None:
                raise OrderNotFoundException(order_id)
            return order

        if applied:
            self.cache.invalidate("stats:*")
            if target == OrderStatus.ASSIGNED:
                await self._notify_assignment(order)

        return order

    async def _apply(
        self,
        order_id: int,
        target: OrderStatus,
        request: TransitionRequest,
        actor: Optional[Actor],
    ) -> tuple[Order, bool]:
        try:
            async with self.session.begin():
                order = await self.order_repo.get_by_id_for_update(order_id)
                if order is None:
                    raise OrderNotFoundException(order_id)

                current = OrderStatus(order.status)
                resubmission = self._is_resubmission(order, current, target, request)
                # Closed orders report the illegal edge to every caller.
                if not resubmission and target not in ALLOWED_TRANSITIONS[current]:
                    raise InvalidTransitionException(order.id, current.value, target.value)
                self._authorize(order, current, target, actor)

                if resubmission:
                    if target == OrderStatus.DELIVERED:
                        settlements_total.labels(outcome="noop").inc()
                    logger.info(
                        "Idempotent transition ignored order_id=%s status=%s",
                        order.id,
                        current.value,
                        extra={"order_id": order.id, "status": current.value},
                    )
                    return order, False

                values = await self._derive_values(order, current, target, request)
                if not await self.order_repo.transition_status(order.id, current, values):
                    raise SettlementConflict(order.id, current.value)
                await self.order_repo.refresh(order)

                if target == OrderStatus.DELIVERED:
                    await self.ledger_service.settle_delivery(order)
                    settlements_total.labels(outcome="settled").inc()
                elif target == OrderStatus.CANCELLED:
                    await self.ledger_service.settle_cancellation(order, current)
        except (BaseAPIException, SettlementConflict):
            raise
        except SQLAlchemyError as e:
            logger.error(
                "Order transition rolled back order_id=%s target=%s: %s",
                order_id,
                target.value,
                e,
                exc_info=True,
                extra={"order_id": order_id, "target_status": target.value},
            )
            raise LedgerWriteFailureException(
                order_id, operation=f"transition:{target.value}"
            ) from e

        order_transitions_total.labels(
            from_status=current.value, to_status=target.value
        ).inc()
        logger.info(
            "Order transitioned order_id=%s from=%s to=%s driver_id=%s",
            order.id,
            current.value,
            target.value,
            order.driver_id,
            extra={
                "order_id": order.id,
                "from_status": current.value,
                "to_status": target.value,
                "driver_id": order.driver_id,
            },
        )
        return order, True

    def _is_resubmission(
        self,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        request: TransitionRequest,
    ) -> bool:
        if current != target:
            return False
        if isinstance(request, AssignOrder):
            return request.driver_id is None or request.driver_id == order.driver_id
        return True

    async def _derive_values(
        self,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        request: TransitionRequest,
    ) -> dict[str, Any]:
        now = utcnow()
        values: dict[str, Any] = {"status": target, "updated_at": now}

        if isinstance(request, AssignOrder):
            if request.driver_id is None:
                raise MissingDriverForAssignmentException(order.id)
            driver = await self.user_repo.get_by_id(request.driver_id)
            if driver is None or driver.role != UserRole.DRIVER or not driver.is_active:
                raise InvalidDriverException(request.driver_id)
            values["driver_id"] = driver.id
            if request.dispatcher_notes is not None:
                values["dispatcher_notes"] = request.dispatcher_notes

        elif isinstance(request, PickUpOrder):
            if order.picked_at is None:
                values["picked_at"] = now
            if request.notes is not None:
                values["notes"] = request.notes

        elif isinstance(request, DeliverOrder):
            values["delivered_at"] = now
            if request.proof_image_url is not None:
                values["proof_image_url"] = request.proof_image_url
            if request.notes is not None:
                values["notes"] = request.notes

        elif isinstance(request, CancelOrder) and request.reason:
            line = f"Cancelled ({current.value}): {request.reason}"
            values["notes"] = f"{order.notes}\n{line}" if order.notes else line

        return values

    def _authorize(
        self,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        actor: Optional[Actor],
    ) -> None:
        if actor is None or actor.role == UserRole.ADMIN:
            return

        if actor.role == UserRole.DISPATCHER:
            allowed = target in (OrderStatus.ASSIGNED, OrderStatus.CANCELLED)
        elif actor.role == UserRole.DRIVER:
            allowed = (
                target in (OrderStatus.PICKED_UP, OrderStatus.DELIVERED)
                and order.driver_id == actor.user_id
            )
        elif actor.role == UserRole.RESTAURANT:
            allowed = (
                target == OrderStatus.CANCELLED
                and order.restaurant_id == actor.user_id
                and current == OrderStatus.PENDING
            )
        else:
            allowed = False

        if not allowed:
            logger.warning(
                "Transition forbidden order_id=%s actor_id=%s role=%s target=%s",
                order.id,
                actor.user_id,
                actor.role.value,
                target.value,
                extra={"order_id": order.id, "actor_id": actor.user_id},
            )
            raise TransitionForbiddenException(
                order.id, actor.user_id, actor.role.value, f"move to '{target.value}'"
            )

    async def _notify_assignment(self, order: Order) -> None:
        try:
            driver = await self.user_repo.get_by_id(order.driver_id)
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.warning(
                "Could not load driver for notification order_id=%s: %s",
                order.id,
                e,
                extra={"order_id": order.id, "driver_id": order.driver_id},
            )
            return
        await self.notifier.order_assigned(order, driver)
